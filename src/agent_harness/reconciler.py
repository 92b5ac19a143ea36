# reconciler.py
# Applies partial edits written with "... existing code ..." elision markers.
#
# Two cursors: one over the edit lines, one over the original lines. The
# original cursor only moves forward. Matching is exact and heuristic: short
# or duplicated anchors can land in the wrong place, and the reconciler never
# raises; it always produces some output.

import logging

logger = logging.getLogger(__name__)

ELISION_MARKERS = frozenset(
    {
        "// ... existing code ...",
        "# ... existing code ...",
        "/* ... existing code ... */",
        "<!-- ... existing code ... -->",
    }
)

ANCHOR_SIZE = 3
ANCHOR_WINDOW = 4
LOOKAHEAD = 10


def is_marker(line: str) -> bool:
    return line.strip() in ELISION_MARKERS


def has_markers(raw_edit: str) -> bool:
    return any(is_marker(line) for line in raw_edit.split("\n"))


def _forward_anchor(edit: list[str], index: int) -> list[str]:
    """Up to ANCHOR_SIZE non-marker lines from the next ANCHOR_WINDOW edit lines."""
    anchor: list[str] = []
    for line in edit[index + 1 : index + 1 + ANCHOR_WINDOW]:
        if is_marker(line):
            continue
        anchor.append(line)
        if len(anchor) == ANCHOR_SIZE:
            break
    return anchor


def _backward_anchor(edit: list[str], index: int) -> list[str]:
    """The non-marker lines among the ANCHOR_SIZE edit lines before `index`."""
    return [line for line in edit[max(0, index - ANCHOR_SIZE) : index] if not is_marker(line)]


def _find_block(original: list[str], block: list[str], start: int) -> int:
    """First index >= start where `block` occurs in `original`, or -1."""
    size = len(block)
    for pos in range(start, len(original) - size + 1):
        if original[pos : pos + size] == block:
            return pos
    return -1


class ContextReconciler:
    """Merges one partial edit into the original lines of a file."""

    def __init__(self, original: list[str], edit: list[str]) -> None:
        self.original = original
        self.edit = edit
        self.cursor = 0
        self.output: list[str] = []

    def run(self) -> list[str]:
        for index, line in enumerate(self.edit):
            if is_marker(line):
                self._skip_elided(index)
            else:
                self._emit_edit_line(index, line)
        self.output.extend(self.original[self.cursor :])
        self.cursor = len(self.original)
        return self.output

    def _skip_elided(self, index: int) -> None:
        anchor = _forward_anchor(self.edit, index)
        if anchor:
            pos = _find_block(self.original, anchor, self.cursor)
            if pos != -1:
                self.cursor = pos
                return
            logger.debug("Forward anchor %r not found after line %d", anchor[0], self.cursor + 1)

        anchor = _backward_anchor(self.edit, index)
        if not anchor:
            return
        pos = _find_block(self.original, anchor, self.cursor)
        if pos != -1:
            self.cursor = pos + len(anchor)
        else:
            logger.debug("Backward anchor %r not found after line %d", anchor[-1], self.cursor + 1)

    def _emit_edit_line(self, index: int, line: str) -> None:
        self.output.append(line)
        if self.cursor < len(self.original) and self.original[self.cursor] == line:
            self.cursor += 1
            return

        # Inserted or modified line. Re-synchronise if the next edit line
        # shows up a little further down the original; the original lines up to
        # it, including the one under the cursor, are kept.
        if index + 1 >= len(self.edit) or is_marker(self.edit[index + 1]):
            return
        following = self.edit[index + 1]
        stop = min(self.cursor + LOOKAHEAD, len(self.original))
        for pos in range(self.cursor + 1, stop):
            if self.original[pos] == following:
                self.output.extend(self.original[self.cursor : pos])
                self.cursor = pos
                return


def reconcile(original: str, raw_edit: str) -> str:
    lines = original.split("\n")
    return "\n".join(ContextReconciler(lines, raw_edit.split("\n")).run())
