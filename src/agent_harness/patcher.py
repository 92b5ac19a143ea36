# patcher.py
# Unified-diff hunk parser and applier.
#
# Application is positional: a single cursor walks the original lines and
# never rewinds. Hunks are applied in the order they were written. Context
# lines are emitted as recorded even when they disagree with the original,
# and malformed input degrades to best-effort output instead of raising.

import logging
import re

from agent_harness.models import DiffHunk, DiffOp

logger = logging.getLogger(__name__)

HUNK_HEADER_RE = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")

_OP_KINDS = {" ": "context", "+": "add", "-": "delete"}


def is_unified_diff(raw_edit: str) -> bool:
    """True when the first non-blank line of `raw_edit` is a hunk header."""
    for line in raw_edit.split("\n"):
        if line.strip():
            return HUNK_HEADER_RE.match(line) is not None
    return False


def _to_cursor(start: str) -> int:
    # Headers are 1-indexed; "-0,0" (insert into empty file) stays at 0.
    return max(int(start) - 1, 0)


def parse_hunks(raw_edit: str) -> list[DiffHunk]:
    """
    Split `raw_edit` into hunks. Lines before the first header are ignored;
    inside a hunk any line without a ' ', '+' or '-' prefix closes the body
    and everything up to the next header is skipped.
    """
    hunks: list[DiffHunk] = []
    current: DiffHunk | None = None
    skipped = 0

    for line in raw_edit.split("\n"):
        header = HUNK_HEADER_RE.match(line)
        if header:
            old_start, old_count, new_start, new_count = header.groups()
            current = DiffHunk(
                old_start=_to_cursor(old_start),
                old_count=int(old_count) if old_count is not None else 1,
                new_start=_to_cursor(new_start),
                new_count=int(new_count) if new_count is not None else 1,
            )
            hunks.append(current)
            continue

        if current is None:
            skipped += 1
            continue

        kind = _OP_KINDS.get(line[:1])
        if kind is None:
            current = None
            skipped += 1
            continue
        current.ops.append(DiffOp(kind=kind, text=line[1:]))

    if skipped:
        logger.debug("Diff parse skipped %d line(s) outside hunk bodies", skipped)
    logger.debug("Parsed %d hunk(s)", len(hunks))
    return hunks


def apply_hunks(original: list[str], hunks: list[DiffHunk]) -> list[str]:
    """Replay `hunks` over `original` and return the new line list."""
    result: list[str] = []
    cursor = 0

    for hunk in hunks:
        while cursor < hunk.old_start and cursor < len(original):
            result.append(original[cursor])
            cursor += 1

        for op in hunk.ops:
            if op.kind == "context":
                if cursor < len(original) and original[cursor] != op.text:
                    logger.debug(
                        "Context mismatch at line %d: expected %r, found %r",
                        cursor + 1,
                        op.text,
                        original[cursor],
                    )
                result.append(op.text)
                cursor += 1
            elif op.kind == "delete":
                cursor += 1
            else:
                result.append(op.text)

    result.extend(original[cursor:])
    return result


def patch(original: str, raw_edit: str) -> str:
    lines = original.split("\n")
    return "\n".join(apply_hunks(lines, parse_hunks(raw_edit)))
