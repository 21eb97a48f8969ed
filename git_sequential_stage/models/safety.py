"""Models describing the state of the index as seen by the safety gate."""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field


class FileStatus(str, Enum):
    MODIFIED = "Modified"
    ADDED = "Added"
    DELETED = "Deleted"
    RENAMED = "Renamed"
    COPIED = "Copied"
    BINARY = "Binary"


class RecommendedAction(BaseModel):
    """A remediation the user can run to get the index into a usable state."""

    description: str
    commands: list[str] = Field(default_factory=list)
    priority: int = Field(..., ge=1, description="Lower runs first")
    category: Literal["commit", "unstage", "reset", "info"]


class GitStatusInfo(BaseModel):
    """Staged entries of the live index, parsed from ``git status --porcelain``."""

    files_by_status: dict[FileStatus, list[str]] = Field(default_factory=dict)
    staged_files: list[str] = Field(default_factory=list)
    intent_to_add_files: list[str] = Field(default_factory=list)


class PatchAnalysisResult(BaseModel):
    """Files named by a patch, grouped the same way as GitStatusInfo."""

    all_files: list[str] = Field(default_factory=list)
    files_by_status: dict[FileStatus, list[str]] = Field(default_factory=dict)
    intent_to_add_files: list[str] = Field(default_factory=list)


class StagingAreaEvaluation(BaseModel):
    """Verdict of the safety gate."""

    is_clean: bool = True
    staged_files: list[str] = Field(default_factory=list)
    intent_to_add_files: list[str] = Field(default_factory=list)
    files_by_status: dict[FileStatus, list[str]] = Field(default_factory=dict)
    blocking_files: list[str] = Field(
        default_factory=list, description="Staged files that prevent staging"
    )
    allow_continue: bool = True
    error_message: str | None = None
    recommended_actions: list[RecommendedAction] = Field(default_factory=list)
    source: Literal["index", "patch", "empty"] = Field(
        "index", description="Where the staged-file list came from"
    )

    def files_with_status(self, status: FileStatus) -> list[str]:
        return self.files_by_status.get(status, [])
