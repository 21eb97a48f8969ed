"""Per-file hunk counts of the working tree diff."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from git_sequential_stage.core.errors import wrap_git_error
from git_sequential_stage.core.patch_parser import parse_patch

if TYPE_CHECKING:
    from git_sequential_stage.core.runner import GitRunner

# Printed instead of a count for binary files.
BINARY_MARKER = "*"


def count_hunks_in_diff(diff: bytes) -> dict[str, int | str]:
    """Count hunks per file; binary files map to ``"*"``."""
    counts: dict[str, int | str] = {}
    for hunk in parse_patch(diff, source="git diff HEAD"):
        if hunk.is_binary:
            counts[hunk.path] = BINARY_MARKER
        else:
            counts[hunk.path] = int(counts.get(hunk.path, 0)) + 1
    return counts


def count_hunks(runner: GitRunner, cancel: threading.Event | None = None) -> dict[str, int | str]:
    result = runner.run("diff", "HEAD", cancel=cancel)
    if not result.ok:
        raise wrap_git_error(result, "git diff HEAD")
    return count_hunks_in_diff(result.stdout)


def format_hunk_counts(counts: dict[str, int | str]) -> list[str]:
    """``path: N`` lines sorted by path."""
    return [f"{path}: {counts[path]}" for path in sorted(counts)]
