"""
Hunk selector parsing and resolution.

Selectors name hunks by position (``src/app.py:1,3``) within the patch the
user reviewed. Positions shift as soon as one hunk is staged, so they are
resolved once, against the patch, into patch-ID targets.
"""

from __future__ import annotations

import logging
import re
import threading
from collections.abc import Iterable, Iterator, Sequence
from typing import TYPE_CHECKING

from git_sequential_stage.core.errors import hunk_not_found, invalid_argument
from git_sequential_stage.core.patch_id import assign_patch_ids
from git_sequential_stage.models.hunk import Hunk, HunkSelector, Target

if TYPE_CHECKING:
    from git_sequential_stage.core.runner import GitRunner

logger = logging.getLogger(__name__)

_NUMBER_RE = re.compile(r"0|[1-9][0-9]*", re.ASCII)


def parse_selector(spec: str) -> HunkSelector:
    """
    Parse ``PATH:N[,N...]``.

    The path is everything before the last colon, so paths containing
    colons work. Whitespace around numbers is ignored.

    Raises:
        StagerError: (InvalidArgument) for a malformed selector.
    """
    path, sep, numbers = spec.rpartition(":")
    if not sep:
        raise invalid_argument(f"invalid hunk selector {spec!r} (expected PATH:N[,N...])")
    if not path:
        raise invalid_argument(f"hunk selector {spec!r} has an empty path")
    if not numbers.strip():
        raise invalid_argument(f"hunk selector {spec!r} has no hunk numbers")

    parsed = []
    for part in numbers.split(","):
        part = part.strip()
        if not _NUMBER_RE.fullmatch(part):
            raise invalid_argument(f"invalid hunk number {part!r} in {spec!r}")
        number = int(part)
        if number <= 0:
            raise invalid_argument(f"hunk numbers start at 1, got {number} in {spec!r}")
        parsed.append(number)
    return HunkSelector(path=path, numbers=parsed)


def parse_selectors(specs: Iterable[str]) -> list[HunkSelector]:
    return [parse_selector(spec) for spec in specs]


def find_hunk(hunks: Sequence[Hunk], path: str, number: int) -> Hunk | None:
    """
    Find hunk ``number`` of ``path``.

    A path that only appears as the old side of a rename selects the
    renamed file's hunks.
    """
    for hunk in hunks:
        if hunk.path == path and hunk.index_in_file == number:
            return hunk
    for hunk in hunks:
        if hunk.is_rename and hunk.old_path == path and hunk.index_in_file == number:
            logger.info("%s:%d refers to the old name of %s", path, number, hunk.path)
            return hunk
    return None


def resolve_selectors(selectors: Iterable[HunkSelector], hunks: Sequence[Hunk]) -> list[Hunk]:
    """
    Map selectors to hunks of the parsed patch, in selector order.

    Naming the same hunk twice selects it once.

    Raises:
        StagerError: (HunkNotFound) naming the first selector with no hunk.
    """
    resolved: list[Hunk] = []
    seen: set[int] = set()
    for selector in selectors:
        for number in selector.numbers:
            hunk = find_hunk(hunks, selector.path, number)
            if hunk is None:
                raise (
                    hunk_not_found(f"hunk {number} in file {selector.path}")
                    .with_context("path", selector.path)
                    .with_context("hunk", number)
                )
            if hunk.global_index in seen:
                logger.debug("%s:%d selected more than once", selector.path, number)
                continue
            seen.add(hunk.global_index)
            resolved.append(hunk)
    return resolved


def target_paths(hunks: Iterable[Hunk]) -> list[str]:
    """Every path touched by ``hunks``, both sides of renames included, first-seen order."""
    paths: list[str] = []
    for hunk in hunks:
        for path in hunk.paths:
            if path not in paths:
                paths.append(path)
    return paths


class TargetSet:
    """Multiset of targets still waiting to be staged."""

    def __init__(self, targets: Iterable[Target] = ()):
        self._targets = list(targets)

    @classmethod
    def from_hunks(
        cls, runner: GitRunner, hunks: Sequence[Hunk], cancel: threading.Event | None = None
    ) -> TargetSet:
        assign_patch_ids(runner, hunks, cancel)
        return cls(Target.from_hunk(hunk) for hunk in hunks)

    def __len__(self) -> int:
        return len(self._targets)

    def __bool__(self) -> bool:
        return bool(self._targets)

    def __iter__(self) -> Iterator[Target]:
        return iter(list(self._targets))

    def match(self, hunk: Hunk) -> Target | None:
        key = hunk.match_key
        for target in self._targets:
            if target.key == key:
                return target
        return None

    def remove(self, target: Target) -> None:
        self._targets.remove(target)

    @property
    def patch_ids(self) -> list[str]:
        return [target.patch_id for target in self._targets]
