"""
Tests for core/synthesizer.py.
"""

from git_sequential_stage.core.patch_parser import parse_patch
from git_sequential_stage.core.synthesizer import synthesize, synthesize_edit


class TestSynthesizeModified:
    def test_second_hunk_alone(self, two_hunk_diff):
        hunks = parse_patch(two_hunk_diff)
        assert synthesize(hunks[1]) == (
            b"diff --git a/app.py b/app.py\n"
            b"index 83db48f..bf269f4 100644\n"
            b"--- a/app.py\n"
            b"+++ b/app.py\n"
            b"@@ -10,3 +11,3 @@ def main():\n"
            b"     run()\n"
            b"-    return 0\n"
            b"+    return 1\n"
            b"\n"
        )

    def test_fragment_is_not_touched(self, two_hunk_diff):
        hunks = parse_patch(two_hunk_diff)
        assert synthesize(hunks[0]).endswith(hunks[0].fragment)

    def test_mode_lines_are_kept(self):
        diff = (
            b"diff --git a/run.sh b/run.sh\n"
            b"old mode 100644\n"
            b"new mode 100755\n"
            b"index 1111111..2222222\n"
            b"--- a/run.sh\n"
            b"+++ b/run.sh\n"
            b"@@ -1 +1 @@\n"
            b"-a\n"
            b"+b\n"
        )
        (hunk,) = parse_patch(diff)
        assert synthesize(hunk) == diff

    def test_missing_markers_are_synthesized(self, two_hunk_diff):
        (hunk,) = parse_patch(two_hunk_diff)[:1]
        hunk.header_lines = [hunk.header_lines[0]]
        out = synthesize(hunk)
        assert b"--- a/app.py\n+++ b/app.py\n@@ -1,3 +1,4 @@" in out

    def test_output_is_newline_terminated(self):
        diff = b"diff --git a/x b/x\n--- a/x\n+++ b/x\n@@ -1 +1,2 @@\n a\n+tail"
        (hunk,) = parse_patch(diff)
        assert synthesize(hunk).endswith(b"+tail\n")


class TestSynthesizeFileOperations:
    def test_rename_keeps_rename_headers_in_order(self, rename_diff):
        (hunk,) = parse_patch(rename_diff)
        out = synthesize(hunk)
        assert out == rename_diff

    def test_deleted_file(self, deleted_file_diff):
        (hunk,) = parse_patch(deleted_file_diff)
        assert synthesize(hunk) == deleted_file_diff

    def test_new_file_is_whole_section(self, new_file_diff):
        (hunk,) = parse_patch(new_file_diff)
        assert synthesize(hunk) == new_file_diff

    def test_binary_is_whole_section(self, binary_diff):
        (hunk,) = parse_patch(binary_diff)
        assert synthesize(hunk) == binary_diff

    def test_pure_rename_is_whole_section(self, pure_rename_diff):
        (hunk,) = parse_patch(pure_rename_diff)
        assert synthesize(hunk) == pure_rename_diff

    def test_unrelated_header_lines_are_dropped(self):
        diff = (
            b"diff --git a/x.txt b/x.txt\n"
            b"index 1111111..2222222 100644\n"
            b"--- a/x.txt\n"
            b"+++ b/x.txt\n"
            b"@@ -1 +1 @@\n"
            b"-a\n"
            b"+b\n"
        )
        (hunk,) = parse_patch(diff)
        hunk.header_lines.insert(1, b"similarity index 90%\n")
        assert b"similarity" not in synthesize(hunk)


class TestSynthesizeEdit:
    def test_rename_becomes_edit_of_new_path(self, rename_diff):
        (hunk,) = parse_patch(rename_diff)
        assert synthesize_edit(hunk) == (
            b"diff --git a/new_name.py b/new_name.py\n"
            b"--- a/new_name.py\n"
            b"+++ b/new_name.py\n" + hunk.fragment
        )

    def test_quoted_new_path_stays_quoted(self):
        diff = (
            b'diff --git a/old.py "b/t\\303\\251st.py"\n'
            b"similarity index 90%\n"
            b"rename from old.py\n"
            b'rename to "t\\303\\251st.py"\n'
            b"--- a/old.py\n"
            b'+++ "b/t\\303\\251st.py"\n'
            b"@@ -1 +1 @@\n"
            b"-a\n"
            b"+b\n"
        )
        (hunk,) = parse_patch(diff)
        out = synthesize_edit(hunk)
        assert out.startswith(b'diff --git "a/t\\303\\251st.py" "b/t\\303\\251st.py"\n')
        assert b'--- "a/t\\303\\251st.py"\n' in out
        assert b"rename" not in out

    def test_whole_file_sections_are_unchanged(self, pure_rename_diff):
        (hunk,) = parse_patch(pure_rename_diff)
        assert synthesize_edit(hunk) == pure_rename_diff
