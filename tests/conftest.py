"""
Pytest fixtures for git-sequential-stage tests.
"""

import hashlib
import os
import shutil
import subprocess
from pathlib import Path

import pytest

from git_sequential_stage.models.command_result import CommandResult

@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Keep GIT_SEQUENTIAL_STAGE_* settings of the developer out of the tests."""
    for name in list(os.environ):
        if name.startswith("GIT_SEQUENTIAL_STAGE_"):
            monkeypatch.delenv(name)


# =========================================================================
# Scripted runner
# =========================================================================


def fake_patch_id(args, stdin):
    """Stand-in for ``git patch-id --stable``: hashes the +/- lines only."""
    body = [
        line
        for line in (stdin or b"").split(b"\n")
        if line[:1] in (b"+", b"-") and not line.startswith((b"+++ ", b"--- "))
    ]
    if not body:
        return CommandResult(args=["git", *args], returncode=0)
    digest = hashlib.sha1(b"\n".join(body)).hexdigest()
    return CommandResult(args=["git", *args], returncode=0, stdout=f"{digest} {'0' * 40}\n".encode())


class ScriptedRunner:
    """
    GitRunner stand-in that replays canned results and records every call.

    Responses are keyed by the argument tuple (without the ``git`` argv[0]).
    A list of responses is consumed in order, the last one repeating.
    Unscripted commands fail with exit status 128.
    """

    git_binary = "git"

    def __init__(self):
        self._responses: dict[tuple[str, ...], list] = {}
        self.calls: list[tuple[tuple[str, ...], bytes | None]] = []

    def on(self, *args, stdout=b"", stderr=b"", returncode=0, handler=None):
        if handler is None:
            response = CommandResult(
                args=["git", *args], returncode=returncode, stdout=stdout, stderr=stderr
            )
        else:
            response = handler
        self._responses.setdefault(tuple(args), []).append(response)
        return self

    def run(self, *args, stdin=None, cancel=None):
        self.calls.append((tuple(args), stdin))
        responses = self._responses.get(tuple(args))
        if not responses:
            return CommandResult(
                args=["git", *args],
                returncode=128,
                stderr=f"unexpected command: git {' '.join(args)}".encode(),
            )
        response = responses.pop(0) if len(responses) > 1 else responses[0]
        if callable(response):
            return response(args, stdin)
        return response

    def commands(self) -> list[tuple[str, ...]]:
        return [args for args, _ in self.calls]

    def count(self, *prefix) -> int:
        return sum(1 for args in self.commands() if args[: len(prefix)] == prefix)


@pytest.fixture
def scripted_runner():
    runner = ScriptedRunner()
    runner.on("patch-id", "--stable", handler=fake_patch_id)
    return runner


# =========================================================================
# Real repositories
# =========================================================================


def _run_git(repo: Path, *args: str, stdin: bytes | None = None) -> bytes:
    """Run git in ``repo`` and return stdout; fails the test on error."""
    result = subprocess.run(
        ["git", *args], cwd=repo, input=stdin, capture_output=True, timeout=30
    )
    assert result.returncode == 0, result.stderr.decode(errors="replace")
    return result.stdout


@pytest.fixture
def require_git():
    """Skip the test when no git executable is on PATH."""
    if shutil.which("git") is None:
        pytest.skip("git is not installed")


@pytest.fixture
def git_repo(require_git, tmp_path, monkeypatch):
    """Create a real Git repository with an initial commit, isolated from user config."""
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", os.devnull)
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")

    repo = tmp_path / "repo"
    repo.mkdir()
    _run_git(repo, "init", "-q")
    _run_git(repo, "config", "user.email", "test@test.com")
    _run_git(repo, "config", "user.name", "Test")
    _run_git(repo, "config", "commit.gpgsign", "false")
    _run_git(repo, "config", "core.autocrlf", "false")
    (repo / "README.md").write_text("# Test\n")
    _run_git(repo, "add", ".")
    _run_git(repo, "commit", "-q", "-m", "Initial commit")
    return repo


def _commit_files(repo: Path, files: dict[str, str], message: str = "Add files") -> None:
    for name, content in files.items():
        path = repo / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    _run_git(repo, "add", *files)
    _run_git(repo, "commit", "-q", "-m", message)


def _write_patch(repo: Path, name: str = "changes.patch", *paths: str) -> Path:
    """Save ``git diff HEAD`` of the working tree next to the repository."""
    patch_file = repo.parent / name
    patch_file.write_bytes(_run_git(repo, "diff", "HEAD", "--", *paths))
    return patch_file


@pytest.fixture
def git(require_git):
    """Run git in a repository: ``git(repo, *args, stdin=None) -> stdout``."""
    return _run_git


@pytest.fixture
def commit_files(require_git):
    """Write files into a repository and commit them."""
    return _commit_files


@pytest.fixture
def write_patch(require_git):
    """Save the working tree diff against HEAD next to a repository."""
    return _write_patch


# =========================================================================
# Sample diffs
# =========================================================================

_TWO_HUNK_DIFF = b"""\
diff --git a/app.py b/app.py
index 83db48f..bf269f4 100644
--- a/app.py
+++ b/app.py
@@ -1,3 +1,4 @@
+import os
 import sys

 def main():
@@ -10,3 +11,3 @@ def main():
     run()
-    return 0
+    return 1

"""

_NEW_FILE_DIFF = b"""\
diff --git a/new.py b/new.py
new file mode 100644
index 0000000..3b18e51
--- /dev/null
+++ b/new.py
@@ -0,0 +1,3 @@
+def one():
+    return 1
+
"""

_RENAME_DIFF = b"""\
diff --git a/old_name.py b/new_name.py
similarity index 90%
rename from old_name.py
rename to new_name.py
index 1111111..2222222 100644
--- a/old_name.py
+++ b/new_name.py
@@ -1,3 +1,3 @@
 def f():
-    return 1
+    return 2

"""

_PURE_RENAME_DIFF = b"""\
diff --git a/a.txt b/b.txt
similarity index 100%
rename from a.txt
rename to b.txt
"""

_BINARY_DIFF = b"""\
diff --git a/logo.png b/logo.png
index 1234567..89abcde 100644
Binary files a/logo.png and b/logo.png differ
"""

_DELETED_FILE_DIFF = b"""\
diff --git a/gone.txt b/gone.txt
deleted file mode 100644
index 3b18e51..0000000
--- a/gone.txt
+++ /dev/null
@@ -1,2 +0,0 @@
-hello
-world
"""

_INTENT_TO_ADD_DIFF = b"""\
diff --git a/empty.txt b/empty.txt
new file mode 100644
index 0000000..e69de29
"""


@pytest.fixture
def two_hunk_diff():
    """Two hunks in one modified file."""
    return _TWO_HUNK_DIFF


@pytest.fixture
def new_file_diff():
    return _NEW_FILE_DIFF


@pytest.fixture
def rename_diff():
    """A rename with one edited hunk."""
    return _RENAME_DIFF


@pytest.fixture
def pure_rename_diff():
    return _PURE_RENAME_DIFF


@pytest.fixture
def binary_diff():
    return _BINARY_DIFF


@pytest.fixture
def deleted_file_diff():
    return _DELETED_FILE_DIFF


@pytest.fixture
def intent_to_add_diff():
    """An empty file added with `git add -N`."""
    return _INTENT_TO_ADD_DIFF


@pytest.fixture
def patch_path(tmp_path):
    """Write diff bytes to a patch file and return its path."""

    def _write(content: bytes, name: str = "changes.patch") -> Path:
        path = tmp_path / name
        path.write_bytes(content)
        return path

    return _write
