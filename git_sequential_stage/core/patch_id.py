"""
Content-based hunk identity.

A hunk's patch ID is the first eight hex digits of
``git patch-id --stable`` run on the hunk's synthesized patch. It ignores
line numbers and index lines, so a hunk keeps its ID when earlier hunks of
the same file have been staged and everything below them shifts.
"""

from __future__ import annotations

import logging
import re
import threading
from collections.abc import Iterable
from typing import TYPE_CHECKING

from git_sequential_stage.core.errors import ErrorKind, StagerError, git_command_error, parsing_error
from git_sequential_stage.core.synthesizer import synthesize
from git_sequential_stage.models.hunk import BINARY_ID_PREFIX, UNKNOWN_ID_PREFIX, Hunk

if TYPE_CHECKING:
    from git_sequential_stage.core.runner import GitRunner

logger = logging.getLogger(__name__)

PATCH_ID_LENGTH = 8
_HEX_RE = re.compile(r"^[0-9a-f]+$")

# Failures that must abort the run instead of degrading to a placeholder ID.
_FATAL_KINDS = frozenset({ErrorKind.DEPENDENCY_MISSING, ErrorKind.IO})


def compute_patch_id(runner: GitRunner, patch: bytes, cancel: threading.Event | None = None) -> str:
    """
    Hash ``patch`` with ``git patch-id --stable``.

    Raises:
        StagerError: GitCommand if git fails, Parsing if it prints no ID.
    """
    result = runner.run("patch-id", "--stable", stdin=patch, cancel=cancel)
    if not result.ok:
        raise git_command_error("git patch-id --stable", result.to_called_process_error())
    tokens = result.stdout.split()
    if not tokens:
        raise parsing_error("git patch-id output", "no patch ID produced")
    token = tokens[0].decode("ascii", errors="replace")
    if not _HEX_RE.match(token):
        raise parsing_error("git patch-id output", f"unexpected token {token!r}")
    return token[:PATCH_ID_LENGTH]


def assign_patch_id(runner: GitRunner, hunk: Hunk, cancel: threading.Event | None = None) -> str:
    """
    Compute and store the patch ID of ``hunk`` unless it already has one.

    Binary hunks get ``binary-<n>``; hunks git cannot hash (pure renames, mode
    changes) get ``unknown-<n>``, where ``n`` is the hunk's global index.
    """
    if hunk.patch_id is not None:
        return hunk.patch_id
    if hunk.is_binary:
        hunk.patch_id = f"{BINARY_ID_PREFIX}{hunk.global_index}"
        return hunk.patch_id
    try:
        hunk.patch_id = compute_patch_id(runner, synthesize(hunk), cancel)
    except StagerError as e:
        if e.kind in _FATAL_KINDS:
            raise
        logger.debug("No patch ID for %s: %s", hunk.selector, e.message)
        hunk.patch_id = f"{UNKNOWN_ID_PREFIX}{hunk.global_index}"
    return hunk.patch_id


def assign_patch_ids(
    runner: GitRunner, hunks: Iterable[Hunk], cancel: threading.Event | None = None
) -> None:
    for hunk in hunks:
        assign_patch_id(runner, hunk, cancel)
