"""
Live index reader built on ``git status --porcelain``.

Intent-to-add entries (``git add -N``) show up as `` A``: they sit in the
index with empty content and do not count as real staged changes.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from typing import TYPE_CHECKING

from git_sequential_stage.core.errors import ErrorKind, SafetyError
from git_sequential_stage.models.safety import FileStatus, GitStatusInfo
from git_sequential_stage.utils.paths import decode_path, split_rename, unquote_git_path

if TYPE_CHECKING:
    from git_sequential_stage.core.runner import GitRunner

logger = logging.getLogger(__name__)

# Blob ID of empty content, for SHA-1 and SHA-256 repositories.
EMPTY_BLOB_OIDS = frozenset({
    "e69de29bb2d1d6434b8b29ae775ad8c2e48c5391",
    "473a0f4c3be8a93681a267e3b1e9a7dcda1185436fe141f7749120a303721813",
})

_INDEX_STATUS = {
    "M": FileStatus.MODIFIED,
    "T": FileStatus.MODIFIED,
    "U": FileStatus.MODIFIED,
    "A": FileStatus.ADDED,
    "D": FileStatus.DELETED,
    "R": FileStatus.RENAMED,
    "C": FileStatus.COPIED,
}


def parse_porcelain_status(output: bytes) -> GitStatusInfo:
    """Collect staged and intent-to-add entries from ``git status --porcelain`` output."""
    info = GitStatusInfo()
    for raw in output.split(b"\n"):
        raw = raw.rstrip(b"\r")
        if len(raw) < 4:
            continue
        index_col, worktree_col = chr(raw[0]), chr(raw[1])
        entry = raw[3:]

        if index_col == " " and worktree_col == "A":
            path = decode_path(unquote_git_path(entry))
            info.intent_to_add_files.append(path)
            info.staged_files.append(path)
            info.files_by_status.setdefault(FileStatus.ADDED, []).append(path)
            continue
        if index_col in (" ", "?", "!"):
            continue

        status = _INDEX_STATUS.get(index_col, FileStatus.MODIFIED)
        if status in (FileStatus.RENAMED, FileStatus.COPIED):
            old, new = (decode_path(part) for part in split_rename(entry))
            info.staged_files.append(new)
            info.files_by_status.setdefault(status, []).append(f"{old} -> {new}")
            continue
        path = decode_path(unquote_git_path(entry))
        info.staged_files.append(path)
        info.files_by_status.setdefault(status, []).append(path)
    return info


class GitStatusReader:
    """Reads the staged state of the live index."""

    def __init__(self, runner: GitRunner):
        self.runner = runner

    def read_status(self, cancel: threading.Event | None = None) -> GitStatusInfo:
        """
        Read staged entries from the live index.

        Raises:
            SafetyError: GitOperationFailed if git status fails,
                IntentToAddProcessing if intent-to-add entries cannot be verified.
        """
        result = self.runner.run("status", "--porcelain", cancel=cancel)
        if not result.ok:
            raise SafetyError(
                ErrorKind.GIT_OPERATION_FAILED,
                "failed to read git status",
                cause=result.to_called_process_error(),
                advice="Make sure you are inside a valid git repository",
            )
        try:
            info = parse_porcelain_status(result.stdout)
        except ValueError as e:
            raise SafetyError(
                ErrorKind.GIT_OPERATION_FAILED, "failed to parse git status output", cause=e
            )
        if info.intent_to_add_files:
            self._verify_intent_to_add(info, cancel)
        return info

    def _verify_intent_to_add(self, info: GitStatusInfo, cancel: threading.Event | None) -> None:
        """Demote `` A`` entries whose index blob is not empty to real additions."""
        candidates = info.intent_to_add_files
        blobs = self._index_blobs(candidates, cancel)
        confirmed = [path for path in candidates if blobs.get(path) in EMPTY_BLOB_OIDS]
        for path in candidates:
            if path not in confirmed:
                logger.debug("%s is listed as intent-to-add but has content in the index", path)
        info.intent_to_add_files = confirmed

    def _index_blobs(self, paths: Sequence[str], cancel: threading.Event | None) -> dict[str, str]:
        result = self.runner.run("ls-files", "-s", "--", *paths, cancel=cancel)
        if not result.ok:
            raise SafetyError(
                ErrorKind.INTENT_TO_ADD_PROCESSING,
                "failed to inspect intent-to-add files",
                cause=result.to_called_process_error(),
                advice="Check the files added with 'git add -N' and retry",
                context={"paths": list(paths)},
            )
        blobs = {}
        for line in result.stdout.split(b"\n"):
            # <mode> SP <object> SP <stage> TAB <file>
            meta, sep, name = line.partition(b"\t")
            fields = meta.split()
            if not sep or len(fields) < 2:
                continue
            blobs[decode_path(unquote_git_path(name))] = fields[1].decode("ascii", errors="replace")
        return blobs
