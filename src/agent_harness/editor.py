# editor.py
# Edit application engine.
#
# Turns a model-authored edit blob into a file mutation. The strategy is
# picked by first match:
#   missing file      → create   (blob written verbatim)
#   leading @@ header → patch    (unified-diff hunks)
#   elision markers   → edit     (context reconciliation)
#   anything else     → replace  (blob written verbatim)
#
# New content is computed fully in memory and written with a single call.
# OSError from reading or writing propagates to the caller.

import logging
from pathlib import Path

from agent_harness import patcher, reconciler
from agent_harness.models import EditAction, EditResult

logger = logging.getLogger(__name__)


def classify(path: Path, raw_edit: str) -> EditAction:
    """Select the strategy for `raw_edit` against `path` without touching disk contents."""
    if not path.exists():
        return EditAction.CREATED
    if patcher.is_unified_diff(raw_edit):
        return EditAction.PATCHED
    if reconciler.has_markers(raw_edit):
        return EditAction.EDITED
    return EditAction.REPLACED


def render(action: EditAction, original: str, raw_edit: str) -> str:
    if action is EditAction.PATCHED:
        return patcher.patch(original, raw_edit)
    if action is EditAction.EDITED:
        return reconciler.reconcile(original, raw_edit)
    return raw_edit


def apply_edit(path: Path, raw_edit: str) -> EditResult:
    action = classify(path, raw_edit)
    logger.info("Applying edit to %s (%s)", path, action.value)

    if action is EditAction.CREATED:
        path.parent.mkdir(parents=True, exist_ok=True)
        content = raw_edit
    elif action is EditAction.REPLACED:
        content = raw_edit
    else:
        original = path.read_text(encoding="utf-8")
        content = render(action, original, raw_edit)

    path.write_text(content, encoding="utf-8")
    return EditResult(action=action)
