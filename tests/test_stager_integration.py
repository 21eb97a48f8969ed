"""
End-to-end staging against real Git repositories.
"""

import pytest

from git_sequential_stage.core.errors import ErrorKind, SafetyError, StagerError
from git_sequential_stage.core.stager import stage_hunks

NUMBERED = "".join(f"line {n}\n" for n in range(1, 31))


@pytest.fixture
def staged_diff(git):
    return lambda repo: git(repo, "diff", "--cached").decode()


@pytest.fixture
def unstaged_diff(git):
    return lambda repo: git(repo, "diff").decode()


@pytest.fixture
def two_hunk_repo(git_repo, commit_files):
    """numbers.txt with a line inserted near the top and one changed near the bottom."""
    commit_files(git_repo, {"numbers.txt": NUMBERED})
    lines = NUMBERED.splitlines(keepends=True)
    lines.insert(1, "inserted\n")
    lines[25] = "changed\n"
    (git_repo / "numbers.txt").write_text("".join(lines))
    return git_repo


class TestSequentialStaging:
    def test_stage_second_hunk_only(self, two_hunk_repo, write_patch, staged_diff, unstaged_diff):
        patch_file = write_patch(two_hunk_repo)
        applied = stage_hunks(["numbers.txt:2"], patch_file, repo_dir=two_hunk_repo)

        assert len(applied) == 1
        staged = staged_diff(two_hunk_repo)
        assert "+changed" in staged
        assert "+inserted" not in staged
        assert "+inserted" in unstaged_diff(two_hunk_repo)

    def test_stage_both_hunks(self, two_hunk_repo, write_patch, unstaged_diff):
        patch_file = write_patch(two_hunk_repo)
        applied = stage_hunks(["numbers.txt:2,1"], patch_file, repo_dir=two_hunk_repo)

        assert len(applied) == 2
        assert unstaged_diff(two_hunk_repo) == ""

    def test_hunks_across_files(self, git_repo, git, commit_files, write_patch):
        commit_files(git_repo, {"a.txt": NUMBERED, "b.txt": NUMBERED})
        (git_repo / "a.txt").write_text(NUMBERED.replace("line 3\n", "three\n"))
        (git_repo / "b.txt").write_text(NUMBERED.replace("line 28\n", "twenty-eight\n"))
        patch_file = write_patch(git_repo)

        stage_hunks(["a.txt:1", "b.txt:1"], patch_file, repo_dir=git_repo)

        assert git(git_repo, "diff", "--cached", "--name-only").decode().split() == ["a.txt", "b.txt"]

    def test_file_named_head(self, git_repo, commit_files, write_patch, staged_diff):
        commit_files(git_repo, {"HEAD": "ref\n"})
        (git_repo / "HEAD").write_text("ref\nmore\n")
        patch_file = write_patch(git_repo)

        stage_hunks(["HEAD:1"], patch_file, repo_dir=git_repo)

        assert "+more" in staged_diff(git_repo)

    def test_intent_to_add_new_file(self, git_repo, git, write_patch, staged_diff, unstaged_diff):
        (git_repo / "new.py").write_text("def one():\n    return 1\n")
        git(git_repo, "add", "-N", "new.py")
        patch_file = write_patch(git_repo)

        stage_hunks(["new.py:1"], patch_file, repo_dir=git_repo)

        assert "+    return 1" in staged_diff(git_repo)
        assert unstaged_diff(git_repo) == ""

    def test_unrelated_intent_to_add_file_is_tolerated(self, git_repo, git, write_patch, staged_diff):
        (git_repo / "later.txt").write_text("")
        git(git_repo, "add", "-N", "later.txt")
        (git_repo / "README.md").write_text("# Test\nmore\n")
        patch_file = write_patch(git_repo, "changes.patch", "README.md")

        stage_hunks(["README.md:1"], patch_file, repo_dir=git_repo)

        assert "+more" in staged_diff(git_repo)

    def test_deleted_file(self, git_repo, git, commit_files, write_patch):
        commit_files(git_repo, {"gone.txt": "hello\nworld\n"})
        (git_repo / "gone.txt").unlink()
        patch_file = write_patch(git_repo)

        stage_hunks(["gone.txt:1"], patch_file, repo_dir=git_repo)

        assert git(git_repo, "diff", "--cached", "--name-status").decode().split() == ["D", "gone.txt"]

    def test_binary_file(self, git_repo, git, write_patch, unstaged_diff):
        (git_repo / "blob.bin").write_bytes(b"\x00\x01\x02binary\x00")
        git(git_repo, "add", "blob.bin")
        git(git_repo, "commit", "-q", "-m", "Add blob")
        (git_repo / "blob.bin").write_bytes(b"\x00\x03\x04changed\x00")
        patch_file = write_patch(git_repo)
        assert b"Binary files" in patch_file.read_bytes()

        stage_hunks(["blob.bin:1"], patch_file, repo_dir=git_repo)

        assert git(git_repo, "diff", "--cached", "--name-only").decode().split() == ["blob.bin"]
        assert unstaged_diff(git_repo) == ""

    def test_rename_with_edit(self, git_repo, git, commit_files, write_patch):
        body = "".join(f"value = {n}\n" for n in range(20))
        commit_files(git_repo, {"old_name.py": body})
        (git_repo / "old_name.py").unlink()
        (git_repo / "new_name.py").write_text(body.replace("value = 3\n", "value = 300\n"))
        git(git_repo, "add", "-N", "new_name.py")
        patch_file = write_patch(git_repo)
        if b"rename from old_name.py" not in patch_file.read_bytes():
            pytest.skip("git did not detect the rename")

        stage_hunks(["new_name.py:1"], patch_file, repo_dir=git_repo)

        status = git(git_repo, "diff", "--cached", "--name-status", "-M").decode().split()
        assert status[0].startswith("R")
        assert status[1:] == ["old_name.py", "new_name.py"]

    @pytest.fixture
    def renamed_two_hunks(self, git_repo, git, commit_files, write_patch):
        """old_name.py moved to new_name.py with edits near the top and the bottom."""
        body = "".join(f"value = {n}\n" for n in range(40))
        commit_files(git_repo, {"old_name.py": body})
        (git_repo / "old_name.py").unlink()
        edited = body.replace("value = 3\n", "value = 300\n").replace("value = 35\n", "value = 3500\n")
        (git_repo / "new_name.py").write_text(edited)
        git(git_repo, "add", "-N", "new_name.py")
        patch_file = write_patch(git_repo)
        patch = patch_file.read_bytes()
        if b"rename from old_name.py" not in patch:
            pytest.skip("git did not detect the rename")
        assert patch.count(b"\n@@ ") == 2
        return patch_file

    def test_rename_with_two_hunks(self, git_repo, git, renamed_two_hunks):
        applied = stage_hunks(["new_name.py:1,2"], renamed_two_hunks, repo_dir=git_repo)

        assert len(applied) == 2
        status = git(git_repo, "diff", "--cached", "--name-status", "-M").decode().split()
        assert status[0].startswith("R")
        assert status[1:] == ["old_name.py", "new_name.py"]
        assert git(git_repo, "diff").decode() == ""

    def test_rename_with_second_hunk_only(self, git_repo, git, renamed_two_hunks):
        stage_hunks(["new_name.py:2"], renamed_two_hunks, repo_dir=git_repo)

        status = git(git_repo, "diff", "--cached", "--name-status", "-M").decode().split()
        assert status[0].startswith("R")
        staged = git(git_repo, "diff", "--cached", "-M").decode()
        assert "+value = 3500\n" in staged
        assert "+value = 300\n" not in staged
        assert "+value = 300\n" in git(git_repo, "diff").decode()


class TestSafetyGate:
    def test_dirty_index_is_refused(self, git_repo, git, commit_files, write_patch):
        commit_files(git_repo, {"other.txt": "a\n"})
        (git_repo / "other.txt").write_text("b\n")
        git(git_repo, "add", "other.txt")
        (git_repo / "README.md").write_text("# Test\nmore\n")
        patch_file = write_patch(git_repo, "changes.patch", "README.md")

        with pytest.raises(SafetyError) as exc_info:
            stage_hunks(["README.md:1"], patch_file, repo_dir=git_repo)

        error = exc_info.value
        assert error.kind is ErrorKind.STAGING_AREA_NOT_CLEAN
        assert error.context["blocking_files"] == ["other.txt"]
        assert git(git_repo, "diff", "--cached", "--name-only").decode().split() == ["other.txt"]

    def test_already_staged_hunk_fails_to_apply(self, git_repo, write_patch):
        (git_repo / "README.md").write_text("# Test\nmore\n")
        patch_file = write_patch(git_repo)
        stage_hunks(["README.md:1"], patch_file, repo_dir=git_repo)

        with pytest.raises(StagerError) as exc_info:
            stage_hunks(["README.md:1"], patch_file, repo_dir=git_repo)

        assert exc_info.value.kind is ErrorKind.PATCH_APPLICATION
