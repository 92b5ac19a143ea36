import pytest

from agent_harness.editor import apply_edit, classify
from agent_harness.models import EditAction

MARKER = "// ... existing code ..."


def test_missing_file_is_created_verbatim_even_with_diff_syntax(tmp_path):
    target = tmp_path / "nested" / "dir" / "new.txt"
    raw = "@@ -1,1 +1,1 @@\n-a\n+b\n" + MARKER

    result = apply_edit(target, raw)

    assert result.action is EditAction.CREATED
    assert result.success is True
    assert target.read_text() == raw


def test_replace_writes_exact_content(tmp_path):
    target = tmp_path / "file.txt"
    target.write_text("old content\n")
    new = "brand new\ncontent without markers"

    assert apply_edit(target, new).action is EditAction.REPLACED
    assert target.read_text() == new

    apply_edit(target, new)
    assert target.read_text() == new


def test_diff_is_patched(tmp_path):
    target = tmp_path / "file.txt"
    target.write_text("a\nb\nc")

    assert apply_edit(target, "@@ -1,3 +1,4 @@\n a\n b\n+x\n c").action is EditAction.PATCHED
    assert target.read_text() == "a\nb\nx\nc"


def test_markers_are_reconciled(tmp_path):
    target = tmp_path / "file.txt"
    target.write_text("1\n2\n3\n4\n5")

    assert apply_edit(target, f"1\n{MARKER}\n3\n{MARKER}\n5").action is EditAction.EDITED
    assert target.read_text() == "1\n3\n5"


def test_diff_header_wins_over_markers(tmp_path):
    target = tmp_path / "file.txt"
    target.write_text("a")
    assert classify(target, f"@@ -1 +1 @@\n a\n{MARKER}") is EditAction.PATCHED


def test_marker_must_be_a_whole_line_to_count(tmp_path):
    target = tmp_path / "file.txt"
    target.write_text("a")
    assert classify(target, "x = 1  // ... existing code ...") is EditAction.REPLACED


def test_write_failure_propagates_as_oserror(tmp_path):
    target = tmp_path / "a_directory"
    target.mkdir()
    with pytest.raises(OSError):
        apply_edit(target, "content")
