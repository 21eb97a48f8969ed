"""
Structured result model for git invocations.

Replaces raw (returncode, stdout, stderr) tuples with a typed Pydantic model
that includes execution metadata (argv, duration). Output is kept as bytes:
diffs and patch payloads must never be text-decoded on their way through.
"""

import subprocess
import time
from contextlib import contextmanager

from pydantic import BaseModel, Field


class GitProcessError(subprocess.CalledProcessError):
    """CalledProcessError whose message includes what git printed on stderr."""

    def __str__(self) -> str:
        detail = (self.stderr or b"").decode("utf-8", errors="replace").strip()
        command = " ".join(str(part) for part in self.cmd)
        message = f"'{command}' exited with status {self.returncode}"
        return f"{message}: {detail}" if detail else message


class CommandResult(BaseModel):
    """Structured result from one git invocation."""

    args: list[str] = Field(..., description="Full argv, executable first")
    returncode: int = Field(..., description="Process exit status")
    stdout: bytes = Field(b"", description="Captured standard output")
    stderr: bytes = Field(b"", description="Captured standard error")

    # Execution metadata
    duration_ms: int | None = Field(None, description="Execution time in milliseconds")

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def stderr_text(self) -> str:
        return self.stderr.decode("utf-8", errors="replace").strip()

    @property
    def command_line(self) -> str:
        return " ".join(self.args)

    def to_called_process_error(self) -> GitProcessError:
        return GitProcessError(self.returncode, self.args, output=self.stdout, stderr=self.stderr)


@contextmanager
def timed_execution():
    """
    Context manager that tracks execution time.

    Usage:
        with timed_execution() as timing:
            do_work()
        print(timing["duration_ms"])
    """
    timing: dict[str, int] = {}
    start = time.monotonic()
    try:
        yield timing
    finally:
        timing["duration_ms"] = int((time.monotonic() - start) * 1000)
