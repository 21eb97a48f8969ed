"""
Error taxonomy for sequential staging.

Every failure the engine surfaces is a StagerError tagged with an ErrorKind.
Refusals from the safety gate are SafetyErrors, which also carry the
offending files and a prioritized list of remediation commands.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from git_sequential_stage.models.command_result import CommandResult
    from git_sequential_stage.models.safety import FileStatus, RecommendedAction


class ErrorKind(str, Enum):
    """Failure categories reported by the engine."""

    FILE_NOT_FOUND = "FileNotFound"
    PARSING = "Parsing"
    GIT_COMMAND = "GitCommand"
    HUNK_NOT_FOUND = "HunkNotFound"
    INVALID_ARGUMENT = "InvalidArgument"
    DEPENDENCY_MISSING = "DependencyMissing"
    IO = "IO"
    PATCH_APPLICATION = "PatchApplication"
    # Safety gate
    STAGING_AREA_NOT_CLEAN = "StagingAreaNotClean"
    NEW_FILE_CONFLICT = "NewFileConflict"
    DELETED_FILE_CONFLICT = "DeletedFileConflict"
    RENAMED_FILE_CONFLICT = "RenamedFileConflict"
    GIT_OPERATION_FAILED = "GitOperationFailed"
    INTENT_TO_ADD_PROCESSING = "IntentToAddProcessing"


class StagerError(Exception):
    """
    A categorized failure.

    ``str()`` renders a one-line summary followed by ``Advice:`` and
    ``Underlying error:`` sections when those are present.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        cause: BaseException | None = None,
        advice: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.cause = cause
        self.advice = advice
        self.context: dict[str, Any] = dict(context or {})
        if cause is not None:
            self.__cause__ = cause

    def with_context(self, key: str, value: Any) -> StagerError:
        self.context[key] = value
        return self

    def sections(self) -> list[tuple[str, str]]:
        """Titled detail blocks shown after the summary line."""
        sections = []
        if self.advice:
            sections.append(("Advice", self.advice))
        if self.cause is not None:
            sections.append(("Underlying error", str(self.cause)))
        return sections

    def __str__(self) -> str:
        lines = [self.message]
        for title, body in self.sections():
            lines.append(f"{title}: {body}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.kind.value}, {self.message!r})"


class SafetyError(StagerError):
    """Raised when the safety gate refuses to touch the index."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        cause: BaseException | None = None,
        advice: str | None = None,
        context: dict[str, Any] | None = None,
        files_by_status: dict[FileStatus, list[str]] | None = None,
        recommended_actions: list[RecommendedAction] | None = None,
    ):
        super().__init__(kind, message, cause=cause, advice=advice, context=context)
        self.files_by_status = dict(files_by_status or {})
        self.recommended_actions = sorted(
            recommended_actions or [], key=lambda action: action.priority
        )

    def sections(self) -> list[tuple[str, str]]:
        sections = super().sections()
        staged = [
            f"{status.value}: {', '.join(paths)}"
            for status, paths in self.files_by_status.items()
            if paths
        ]
        if staged:
            sections.append(("Staged files", "\n  " + "\n  ".join(staged)))
        if self.recommended_actions:
            lines = []
            for number, action in enumerate(self.recommended_actions, start=1):
                lines.append(f"{number}. {action.description}")
                lines.extend(f"   $ {command}" for command in action.commands)
            sections.append(("Recommended actions", "\n" + "\n".join(lines)))
        return sections

    def __str__(self) -> str:
        return "Safety Error: " + super().__str__()


# ── Constructors ──────────────────────────────────────────────────────


def file_not_found(path: Any, cause: BaseException | None = None) -> StagerError:
    return StagerError(
        ErrorKind.FILE_NOT_FOUND,
        f"file not found: {path}",
        cause=cause,
        context={"path": str(path)},
    )


def parsing_error(
    what: str, detail: str | None = None, cause: BaseException | None = None
) -> StagerError:
    message = f"failed to parse {what}"
    if detail:
        message = f"{message}: {detail}"
    return StagerError(ErrorKind.PARSING, message, cause=cause)


def git_command_error(
    command: str, cause: BaseException | None = None, advice: str | None = None
) -> StagerError:
    return StagerError(
        ErrorKind.GIT_COMMAND,
        f"git command failed: {command}",
        cause=cause,
        advice=advice,
        context={"command": command},
    )


def hunk_not_found(description: str) -> StagerError:
    return StagerError(ErrorKind.HUNK_NOT_FOUND, f"hunk not found: {description}")


def invalid_argument(description: str, cause: BaseException | None = None) -> StagerError:
    return StagerError(
        ErrorKind.INVALID_ARGUMENT, f"invalid argument: {description}", cause=cause
    )


def dependency_missing(dependency: str, cause: BaseException | None = None) -> StagerError:
    return StagerError(
        ErrorKind.DEPENDENCY_MISSING,
        f"required dependency not found: {dependency}",
        cause=cause,
        advice=f"Install {dependency} and make sure it is on PATH",
        context={"dependency": dependency},
    )


def io_error(operation: str, cause: BaseException | None = None) -> StagerError:
    return StagerError(ErrorKind.IO, f"I/O error during {operation}", cause=cause)


def patch_application_error(patch_id: str, payload: bytes, result: CommandResult) -> StagerError:
    return StagerError(
        ErrorKind.PATCH_APPLICATION,
        f"failed to apply hunk with patch ID {patch_id}",
        cause=result.to_called_process_error(),
        advice="The index may have diverged from the patch; regenerate it with 'git diff HEAD'",
        context={"patch_id": patch_id, "payload": payload, "stderr": result.stderr_text},
    )


# Common git stderr fragments and the friendlier message shown for them.
_GIT_ERROR_HINTS = (
    ("not a git repository", "not a git repository (or any parent directory)",
     "Run the command from inside a git working tree"),
    ("ambiguous argument 'HEAD'", "the repository has no commits yet",
     "Create an initial commit before staging hunks"),
    ("bad revision 'HEAD'", "the repository has no commits yet",
     "Create an initial commit before staging hunks"),
)


def wrap_git_error(result: CommandResult, description: str) -> StagerError:
    """Turn a failed git invocation into a GitCommand error with a readable message."""
    stderr = result.stderr_text
    for needle, message, advice in _GIT_ERROR_HINTS:
        if needle in stderr:
            return StagerError(
                ErrorKind.GIT_COMMAND,
                f"{description} failed: {message}",
                cause=result.to_called_process_error(),
                advice=advice,
                context={"command": result.command_line},
            )
    return git_command_error(description, cause=result.to_called_process_error()).with_context(
        "command", result.command_line
    )

