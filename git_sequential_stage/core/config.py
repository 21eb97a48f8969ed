"""
Runtime settings for git-sequential-stage.

Settings come from the environment first and fall back to defaults; the CLI
then overrides individual fields from its own flags.
"""

import os
from collections.abc import Mapping

from pydantic import BaseModel, Field, ValidationError

from git_sequential_stage.core.errors import invalid_argument

VERBOSE_ENV = "GIT_SEQUENTIAL_STAGE_VERBOSE"
GIT_BINARY_ENV = "GIT_SEQUENTIAL_STAGE_GIT"
TIMEOUT_ENV = "GIT_SEQUENTIAL_STAGE_TIMEOUT"


class StagerSettings(BaseModel):
    """Knobs shared by the command runner and the stager."""

    verbose: bool = Field(False, description="Enable DEBUG logging")
    git_binary: str = Field("git", min_length=1, description="git executable to spawn")
    command_timeout: float | None = Field(
        60.0, gt=0, description="Seconds before a git child process is killed"
    )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "StagerSettings":
        """
        Build settings from ``GIT_SEQUENTIAL_STAGE_*`` variables.

        Raises:
            StagerError: (InvalidArgument) when a variable holds an unusable value
        """
        env = os.environ if environ is None else environ
        values: dict = {}

        if env.get(VERBOSE_ENV):
            values["verbose"] = True
        if env.get(GIT_BINARY_ENV):
            values["git_binary"] = env[GIT_BINARY_ENV]
        if env.get(TIMEOUT_ENV):
            raw = env[TIMEOUT_ENV]
            try:
                values["command_timeout"] = float(raw)
            except ValueError as e:
                raise invalid_argument(f"{TIMEOUT_ENV} must be a number of seconds, got {raw!r}", e)

        try:
            return cls(**values)
        except ValidationError as e:
            raise invalid_argument(f"invalid configuration from environment: {e}", e)
