"""Subprocess wrapper for the git commands pygit2 does not cover."""

from __future__ import annotations

import subprocess
from pathlib import Path

import structlog

from jarpatch.core.logging import get_logger
from jarpatch.git.errors import GitCommandError


class GitRunner:
    """Runs ``git`` in a working directory. Exit code 0 is success."""

    def __init__(
        self,
        executable: str = "git",
        timeout: float | None = 600.0,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self.executable = executable
        self.timeout = timeout
        self._log = logger or get_logger(__name__)

    def run(
        self, args: list[str], cwd: Path | None = None, *, check: bool = True
    ) -> subprocess.CompletedProcess[str]:
        """Run ``git <args>``.

        Raises:
            GitCommandError: If git cannot be started, times out, or (with
                ``check``) exits non-zero. stderr is carried verbatim.
        """
        self._log.debug("git", args=args, cwd=str(cwd) if cwd else None)
        try:
            result = subprocess.run(
                [self.executable, *args],
                cwd=str(cwd) if cwd else None,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            raise GitCommandError.timed_out(args, self.timeout or 0.0) from e
        except FileNotFoundError as e:
            raise GitCommandError.not_installed(self.executable, str(e)) from e
        except OSError as e:
            raise GitCommandError.failed(args, -1, str(e)) from e

        if check and result.returncode != 0:
            raise GitCommandError.failed(args, result.returncode, result.stderr)
        return result

    def version(self) -> str:
        """``git --version`` output; raises when git is unusable."""
        try:
            return self.run(["--version"]).stdout.strip()
        except GitCommandError as e:
            raise GitCommandError.not_installed(self.executable, e.message) from e
