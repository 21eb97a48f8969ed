"""Data models for git-sequential-stage."""

from git_sequential_stage.models.command_result import CommandResult, GitProcessError, timed_execution
from git_sequential_stage.models.hunk import (
    FileOperation,
    Hunk,
    HunkSelector,
    Target,
    is_surrogate_id,
    match_key,
)
from git_sequential_stage.models.safety import (
    FileStatus,
    GitStatusInfo,
    PatchAnalysisResult,
    RecommendedAction,
    StagingAreaEvaluation,
)

__all__ = [
    "CommandResult",
    "FileOperation",
    "FileStatus",
    "GitProcessError",
    "GitStatusInfo",
    "Hunk",
    "HunkSelector",
    "PatchAnalysisResult",
    "RecommendedAction",
    "StagingAreaEvaluation",
    "Target",
    "is_surrogate_id",
    "match_key",
    "timed_execution",
]
