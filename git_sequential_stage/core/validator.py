"""Pre-flight checks run by the CLI before staging."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from git_sequential_stage.core.errors import (
    ErrorKind,
    SafetyError,
    dependency_missing,
    invalid_argument,
)
from git_sequential_stage.core.selectors import parse_selectors

if TYPE_CHECKING:
    from git_sequential_stage.core.runner import GitRunner


class Validator:
    def __init__(self, runner: GitRunner):
        self.runner = runner

    def check_dependencies(self) -> None:
        """Make sure git can be run at all."""
        result = self.runner.run("--version")
        if not result.ok:
            raise dependency_missing(self.runner.git_binary, result.to_called_process_error())

    def validate_args(self, hunk_specs: Sequence[str], patch_file: str | None) -> None:
        if not hunk_specs:
            raise invalid_argument("at least one hunk specification is required")
        if not patch_file:
            raise invalid_argument("patch file cannot be empty")
        parse_selectors(hunk_specs)

    def validate_git_state(self) -> None:
        result = self.runner.run("rev-parse", "--git-dir")
        if not result.ok:
            raise SafetyError(
                ErrorKind.GIT_OPERATION_FAILED,
                "not in a git repository",
                cause=result.to_called_process_error(),
                advice="Run this command from within a git repository",
            )
