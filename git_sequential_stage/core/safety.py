"""
Safety gate.

Refuses to touch the index when it already holds staged work that
sequential staging could clobber or mix into the next commit. The live
index is read with ``git status``; when that is impossible the decision is
derived from the patch itself, which is stricter.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING

from git_sequential_stage.core.errors import ErrorKind, SafetyError, StagerError
from git_sequential_stage.core.patch_analyzer import PatchAnalyzer
from git_sequential_stage.core.status_reader import GitStatusReader
from git_sequential_stage.models.hunk import FileOperation, Hunk
from git_sequential_stage.models.safety import (
    FileStatus,
    GitStatusInfo,
    RecommendedAction,
    StagingAreaEvaluation,
)

if TYPE_CHECKING:
    from git_sequential_stage.core.runner import GitRunner

logger = logging.getLogger(__name__)

INTENT_TO_ADD_MESSAGE = "Intent-to-add files detected (semantic_commit workflow)"


class SafetyChecker:
    """Evaluates the staging area before any hunk is applied."""

    def __init__(
        self,
        runner: GitRunner | None,
        status_reader: GitStatusReader | None = None,
        analyzer: PatchAnalyzer | None = None,
    ):
        self.runner = runner
        self.status_reader = status_reader or (GitStatusReader(runner) if runner else None)
        self.analyzer = analyzer or PatchAnalyzer()

    # ── Evaluation ───────────────────────────────────────────────────

    def check_actual_staging_area(
        self, target_files: Iterable[str] = (), cancel: threading.Event | None = None
    ) -> StagingAreaEvaluation:
        """
        Evaluate the live index.

        Staged changes to ``target_files`` do not block: the stager writes
        over them anyway.
        """
        if self.status_reader is None:
            raise SafetyError(
                ErrorKind.GIT_OPERATION_FAILED, "no git runner available to read the index"
            )
        info = self.status_reader.read_status(cancel)
        return self._evaluate(info, set(target_files), source="index")

    def evaluate_patch_content(self, patch: bytes) -> StagingAreaEvaluation:
        """
        Evaluate using only the files named by ``patch``.

        Every file of the patch is treated as staged, and only intent-to-add
        candidates are allowed through.
        """
        analysis = self.analyzer.analyze(patch)
        info = GitStatusInfo(
            files_by_status=analysis.files_by_status,
            staged_files=analysis.all_files,
            intent_to_add_files=analysis.intent_to_add_files,
        )
        return self._evaluate(info, set(), source="patch")

    def evaluate_with_fallback(
        self,
        patch: bytes,
        target_files: Iterable[str] = (),
        cancel: threading.Event | None = None,
    ) -> StagingAreaEvaluation:
        """Evaluate the live index, falling back to the patch when git status is unusable."""
        if not patch.strip():
            return StagingAreaEvaluation(source="empty")
        try:
            return self.check_actual_staging_area(target_files, cancel)
        except StagerError as e:
            if e.kind is not ErrorKind.GIT_OPERATION_FAILED:
                raise
            logger.warning("Cannot read the index (%s); judging safety from the patch instead", e.message)
            return self.evaluate_patch_content(patch)

    def _evaluate(
        self, info: GitStatusInfo, target_files: set[str], source: str
    ) -> StagingAreaEvaluation:
        intent_to_add = set(info.intent_to_add_files)
        blocking = [
            path for path in info.staged_files
            if path not in intent_to_add and path not in target_files
        ]
        evaluation = StagingAreaEvaluation(
            is_clean=not info.staged_files,
            staged_files=list(info.staged_files),
            intent_to_add_files=list(info.intent_to_add_files),
            files_by_status={status: list(paths) for status, paths in info.files_by_status.items()},
            blocking_files=blocking,
            allow_continue=not blocking,
            source=source,
        )
        if not evaluation.is_clean:
            if blocking:
                evaluation.error_message = "Staging area contains staged files"
            elif all(path in intent_to_add for path in info.staged_files):
                evaluation.error_message = INTENT_TO_ADD_MESSAGE
            else:
                evaluation.error_message = "Staged changes only touch the files being staged"
        evaluation.recommended_actions = generate_recommended_actions(evaluation)
        return evaluation

    # ── Enforcement ──────────────────────────────────────────────────

    def enforce(self, evaluation: StagingAreaEvaluation, targets: Sequence[Hunk] = ()) -> None:
        """
        Raise if staging may not proceed.

        Raises:
            SafetyError: a file conflict for a target, or StagingAreaNotClean.
        """
        if evaluation.source == "index":
            check_target_conflicts(evaluation, targets)
        if evaluation.allow_continue:
            if evaluation.intent_to_add_files:
                logger.info("%s: %s", INTENT_TO_ADD_MESSAGE, ", ".join(evaluation.intent_to_add_files))
            return
        raise SafetyError(
            ErrorKind.STAGING_AREA_NOT_CLEAN,
            "staging area contains staged changes",
            advice=build_advice(evaluation.blocking_files),
            files_by_status=evaluation.files_by_status,
            recommended_actions=evaluation.recommended_actions,
            context={"blocking_files": evaluation.blocking_files, "source": evaluation.source},
        )


def check_target_conflicts(evaluation: StagingAreaEvaluation, targets: Sequence[Hunk]) -> None:
    """Reject target hunks whose file operation is already staged."""
    intent_to_add = set(evaluation.intent_to_add_files)
    added = set(evaluation.files_with_status(FileStatus.ADDED)) - intent_to_add
    deleted = set(evaluation.files_with_status(FileStatus.DELETED))
    renamed = set(evaluation.files_with_status(FileStatus.RENAMED))

    for hunk in targets:
        if hunk.operation is FileOperation.ADDED and hunk.path in added:
            raise SafetyError(
                ErrorKind.NEW_FILE_CONFLICT,
                f"new file {hunk.path} is already staged",
                advice=f"Unstage it first: git reset HEAD -- {hunk.path}",
                files_by_status=evaluation.files_by_status,
                context={"path": hunk.path},
            )
        if hunk.operation is FileOperation.DELETED and hunk.path in deleted:
            raise SafetyError(
                ErrorKind.DELETED_FILE_CONFLICT,
                f"deletion of {hunk.path} is already staged",
                advice=f"Commit the deletion or restore it: git reset HEAD -- {hunk.path}",
                files_by_status=evaluation.files_by_status,
                context={"path": hunk.path},
            )
        if hunk.operation is FileOperation.RENAMED and f"{hunk.old_path} -> {hunk.path}" in renamed:
            raise SafetyError(
                ErrorKind.RENAMED_FILE_CONFLICT,
                f"rename {hunk.old_path} -> {hunk.path} is already staged",
                advice=f"Commit the rename first: git commit -m \"Rename {hunk.old_path} to {hunk.path}\"",
                files_by_status=evaluation.files_by_status,
                context={"path": hunk.path, "old_path": hunk.old_path},
            )


def build_advice(blocking_files: Sequence[str]) -> str:
    lines = ["Commit or unstage the staged changes before staging hunks:"]
    for path in blocking_files:
        lines.append(
            f"  {path}: commit it (git commit), unstage everything (git reset HEAD), "
            f"or unstage only this file (git reset HEAD -- {path})"
        )
    return "\n".join(lines)


def generate_recommended_actions(evaluation: StagingAreaEvaluation) -> list[RecommendedAction]:
    """Remediation commands for a non-clean staging area, lowest priority first."""
    if evaluation.is_clean:
        return []

    actions: list[RecommendedAction] = []
    intent_to_add = set(evaluation.intent_to_add_files)

    if intent_to_add:
        actions.append(RecommendedAction(
            description=INTENT_TO_ADD_MESSAGE,
            commands=["# These files will be processed normally"],
            priority=1,
            category="info",
        ))
    for path in evaluation.files_with_status(FileStatus.DELETED):
        actions.append(RecommendedAction(
            description=f"Commit deletion of {path}",
            commands=[f'git commit -m "Remove {path}"'],
            priority=1,
            category="commit",
        ))
    for entry in evaluation.files_with_status(FileStatus.RENAMED):
        actions.append(RecommendedAction(
            description=f"Commit rename: {entry}",
            commands=[f'git commit -m "Rename {entry}"'],
            priority=1,
            category="commit",
        ))

    if any(path not in intent_to_add for path in evaluation.staged_files):
        actions.append(RecommendedAction(
            description="Commit all staged changes",
            commands=['git commit -m "Your commit message"'],
            priority=2,
            category="commit",
        ))
        actions.append(RecommendedAction(
            description="Unstage all changes",
            commands=["git reset HEAD"],
            priority=3,
            category="unstage",
        ))
        for status, paths in evaluation.files_by_status.items():
            if status in (FileStatus.DELETED, FileStatus.RENAMED):
                continue
            for path in paths:
                if path in intent_to_add:
                    continue
                actions.append(RecommendedAction(
                    description=f"Unstage {path}",
                    commands=[f"git reset HEAD -- {path}"],
                    priority=4,
                    category="unstage",
                ))

    actions.sort(key=lambda action: action.priority)
    return actions
