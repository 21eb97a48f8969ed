"""
Sequential hunk staging.

Selected hunks are identified by patch ID, then staged one at a time. Before
each ``git apply --cached`` the diff against HEAD is taken again and
re-parsed, so hunks always come from the working tree as it is now rather
than from a possibly stale patch file. git apply locates each hunk by its
context, so dependent hunks of one file apply in any order.
"""

from __future__ import annotations

import logging
import threading
from collections import Counter
from collections.abc import Sequence
from pathlib import Path

from git_sequential_stage.core.config import StagerSettings
from git_sequential_stage.core.errors import (
    file_not_found,
    hunk_not_found,
    io_error,
    patch_application_error,
    wrap_git_error,
)
from git_sequential_stage.core.patch_id import assign_patch_id, assign_patch_ids
from git_sequential_stage.core.patch_parser import parse_patch
from git_sequential_stage.core.runner import GitRunner, StagingCancelled
from git_sequential_stage.core.safety import SafetyChecker
from git_sequential_stage.core.selectors import (
    TargetSet,
    parse_selectors,
    resolve_selectors,
    target_paths,
)
from git_sequential_stage.core.synthesizer import synthesize, synthesize_edit
from git_sequential_stage.models.hunk import Hunk, Target

logger = logging.getLogger(__name__)


class SequentialStager:
    """
    Stages selected hunks of a patch file into the index.

    Example:
        stager = SequentialStager(GitRunner(repo_dir))
        stager.stage_hunks(["src/app.py:1,3"], "changes.patch")
    """

    def __init__(
        self,
        runner: GitRunner,
        settings: StagerSettings | None = None,
        safety_checker: SafetyChecker | None = None,
    ):
        self.runner = runner
        self.settings = settings or StagerSettings()
        self.safety = safety_checker or SafetyChecker(runner)

    def stage_hunks(
        self,
        hunk_specs: Sequence[str],
        patch_file: str | Path,
        cancel: threading.Event | None = None,
    ) -> list[Hunk]:
        """
        Stage the hunks named by ``hunk_specs``.

        Args:
            hunk_specs: ``PATH:N[,N...]`` selectors, numbered as in ``patch_file``.
            patch_file: A diff of the working tree against HEAD.
            cancel: Set to abort between (or during) git invocations.

        Returns:
            The hunks that were applied, as found in the live diff.

        Raises:
            StagerError: on any failure. Hunks applied before the failure stay
                staged.
        """
        patch = self._read_patch(patch_file)
        hunks = parse_patch(patch, source=f"patch file {patch_file}")
        selected = resolve_selectors(parse_selectors(hunk_specs), hunks)
        paths = target_paths(selected)

        evaluation = self.safety.evaluate_with_fallback(patch, paths, cancel)
        self.safety.enforce(evaluation, selected)

        targets = TargetSet.from_hunks(self.runner, selected, cancel)
        logger.debug("Targets: %s", ", ".join(f"{t.selector}={t.patch_id}" for t in targets))
        return self._apply_targets(targets, paths, cancel)

    def inspect_patch(self, patch_file: str | Path, cancel: threading.Event | None = None) -> list[Hunk]:
        """Parse ``patch_file`` and compute the patch ID of every hunk."""
        hunks = parse_patch(self._read_patch(patch_file), source=f"patch file {patch_file}")
        assign_patch_ids(self.runner, hunks, cancel)
        return hunks

    # ── Loop ─────────────────────────────────────────────────────────

    def _apply_targets(
        self, targets: TargetSet, paths: list[str], cancel: threading.Event | None
    ) -> list[Hunk]:
        applied: list[Hunk] = []
        # Targets applied so far, per identity; an identical hunk that was
        # already staged still shows up in the diff against HEAD.
        applied_counts: Counter = Counter()
        # (old, new) pairs whose rename is already in the index.
        moved: set[tuple[str, str]] = set()
        iteration = 0

        while targets:
            iteration += 1
            if cancel is not None and cancel.is_set():
                raise io_error("sequential staging", StagingCancelled("cancelled by caller"))
            logger.debug("Iteration %d: %d target(s) left: %s", iteration, len(targets), targets.patch_ids)

            candidates = parse_patch(self._current_diff(paths, cancel), source="git diff HEAD")
            hunk = self._apply_first_match(candidates, targets, applied_counts, moved, cancel)
            if hunk is None:
                missing = targets.patch_ids
                raise hunk_not_found(
                    f"unable to find hunks with patch IDs: {', '.join(missing)}"
                ).with_context("patch_ids", missing)
            applied.append(hunk)

        return applied

    def _apply_first_match(
        self,
        candidates: list[Hunk],
        targets: TargetSet,
        applied_counts: Counter,
        moved: set[tuple[str, str]],
        cancel: threading.Event | None,
    ) -> Hunk | None:
        seen: Counter = Counter()
        for candidate in candidates:
            assign_patch_id(self.runner, candidate, cancel)
            key = candidate.match_key
            seen[key] += 1
            if seen[key] <= applied_counts[key]:
                continue
            target = targets.match(candidate)
            if target is None:
                continue
            self._apply(candidate, target, moved, cancel)
            targets.remove(target)
            applied_counts[key] += 1
            return candidate
        logger.debug("None of %d candidate hunk(s) matched a target", len(candidates))
        return None

    def _current_diff(self, paths: list[str], cancel: threading.Event | None) -> bytes:
        result = self.runner.run("diff", "HEAD", "--binary", "--", *paths, cancel=cancel)
        if not result.ok:
            raise wrap_git_error(result, "git diff HEAD")
        return result.stdout

    def _apply(
        self,
        hunk: Hunk,
        target: Target,
        moved: set[tuple[str, str]],
        cancel: threading.Event | None,
    ) -> None:
        rename = (hunk.old_path, hunk.path) if hunk.is_rename and hunk.old_path != hunk.path else None
        if rename is not None and rename in moved:
            payload = synthesize_edit(hunk)
        else:
            payload = synthesize(hunk)
        result = self.runner.run("apply", "--cached", stdin=payload, cancel=cancel)
        if not result.ok:
            error = patch_application_error(target.patch_id, payload, result)
            raise error.with_context("selector", target.selector)
        if rename is not None:
            moved.add(rename)
        logger.debug(
            "Applied %s (patch ID %s) as %s %s",
            target.selector, target.patch_id, hunk.selector, hunk.fragment_header,
        )

    @staticmethod
    def _read_patch(patch_file: str | Path) -> bytes:
        path = Path(patch_file)
        try:
            return path.read_bytes()
        except FileNotFoundError as e:
            raise file_not_found(path, e)
        except OSError as e:
            raise io_error(f"reading {path}", e)


def stage_hunks(
    hunk_specs: Sequence[str],
    patch_file: str | Path,
    repo_dir: str | Path | None = None,
    settings: StagerSettings | None = None,
    cancel: threading.Event | None = None,
) -> list[Hunk]:
    """Convenience wrapper building a runner from ``settings``."""
    settings = settings or StagerSettings()
    runner = GitRunner.from_settings(settings, repo_dir=repo_dir)
    return SequentialStager(runner, settings).stage_hunks(hunk_specs, patch_file, cancel)

