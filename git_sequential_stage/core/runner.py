"""
Byte-exact git process runner.

Every git invocation of the engine goes through GitRunner.run(): argv in,
CommandResult out, stdin and stdout passed through as raw bytes. A child is
killed when the optional cancellation event is set or the timeout expires.
"""

from __future__ import annotations

import logging
import subprocess
import threading
import time
from pathlib import Path
from typing import TYPE_CHECKING

from git_sequential_stage.core.errors import dependency_missing, io_error
from git_sequential_stage.models.command_result import CommandResult, timed_execution

if TYPE_CHECKING:
    from git_sequential_stage.core.config import StagerSettings

logger = logging.getLogger(__name__)


class GitRunner:
    """
    Runs git sub-commands inside one repository.

    Args:
        repo_dir: Working directory for git; ``None`` uses the process cwd.
        git_binary: Executable name or path.
        timeout: Seconds to wait for a child before killing it; ``None`` waits forever.
    """

    # Seconds between cancellation checks while a child is running.
    POLL_INTERVAL = 0.05

    def __init__(
        self,
        repo_dir: Path | str | None = None,
        git_binary: str = "git",
        timeout: float | None = 60.0,
    ):
        self.repo_dir = Path(repo_dir) if repo_dir is not None else None
        self.git_binary = git_binary
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: StagerSettings, repo_dir: Path | str | None = None) -> GitRunner:
        return cls(
            repo_dir=repo_dir,
            git_binary=settings.git_binary,
            timeout=settings.command_timeout,
        )

    def run(
        self,
        *args: str,
        stdin: bytes | None = None,
        cancel: threading.Event | None = None,
    ) -> CommandResult:
        """
        Run ``git <args>`` and capture its output.

        A non-zero exit is not an error here; inspect ``result.ok``.

        Raises:
            StagerError: DependencyMissing when git cannot be spawned, IO when
                the run is cancelled, times out or fails at the OS level.
        """
        argv = [self.git_binary, *args]
        command_line = " ".join(argv)
        if cancel is not None and cancel.is_set():
            raise io_error(command_line, StagingCancelled("cancelled before start"))

        logger.debug("Running: %s", command_line)
        try:
            proc = subprocess.Popen(
                argv,
                cwd=self.repo_dir,
                stdin=subprocess.PIPE if stdin is not None else subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise dependency_missing(self.git_binary, e)
        except OSError as e:
            raise io_error(command_line, e)

        with timed_execution() as timing:
            stdout, stderr = self._communicate(proc, stdin, cancel, command_line)

        result = CommandResult(
            args=argv,
            returncode=proc.returncode,
            stdout=stdout,
            stderr=stderr,
            duration_ms=timing["duration_ms"],
        )
        if not result.ok:
            logger.debug(
                "Command exited with %d: %s\n%s", result.returncode, command_line, result.stderr_text
            )
        return result

    def _communicate(
        self,
        proc: subprocess.Popen,
        stdin: bytes | None,
        cancel: threading.Event | None,
        command_line: str,
    ) -> tuple[bytes, bytes]:
        deadline = None if self.timeout is None else time.monotonic() + self.timeout
        pending = stdin
        try:
            while True:
                try:
                    return proc.communicate(input=pending, timeout=self.POLL_INTERVAL)
                except subprocess.TimeoutExpired:
                    # Input is only handed over on the first call.
                    pending = None
                if cancel is not None and cancel.is_set():
                    raise io_error(command_line, StagingCancelled("cancelled while waiting for git"))
                if deadline is not None and time.monotonic() >= deadline:
                    raise io_error(
                        command_line,
                        subprocess.TimeoutExpired(proc.args, self.timeout),
                    )
        except BaseException:
            self._kill(proc)
            raise

    @staticmethod
    def _kill(proc: subprocess.Popen) -> None:
        if proc.poll() is not None:
            return
        proc.kill()
        try:
            proc.communicate(timeout=5)
        except subprocess.TimeoutExpired:
            logger.warning("git process %d did not exit after kill", proc.pid)


class StagingCancelled(Exception):
    """Cause of the IO error raised when a cancellation event is set."""
