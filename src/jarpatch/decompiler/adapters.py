"""Subprocess adapters for Fernflower and google-java-format."""

from __future__ import annotations

import subprocess
from collections.abc import Mapping
from pathlib import Path

import structlog

from jarpatch.config.models import DecompilerConfig
from jarpatch.core.logging import get_logger
from jarpatch.decompiler.base import DecompilerError, Formatter, IdentityFormatter

FERNFLOWER = "fernflower"
GOOGLE_JAVA_FORMAT = "google-java-format"


def _run(
    tool: str, cmd: list[str], timeout: float | None, stdin: str | None = None
) -> subprocess.CompletedProcess[str]:
    try:
        result = subprocess.run(
            cmd,
            input=stdin,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        raise DecompilerError.unavailable(tool, f"timed out after {timeout}s") from e
    except OSError as e:
        raise DecompilerError.unavailable(tool, str(e)) from e
    if result.returncode != 0:
        raise DecompilerError.tool_failed(tool, result.returncode, result.stderr)
    return result


class FernflowerDecompiler:
    """Runs a Fernflower jar with ``java -jar``.

    Fernflower writes ``<output_dir>/<archive name>``; its absence after a
    zero exit is still a failure.
    """

    def __init__(
        self,
        jar: Path,
        options: Mapping[str, int] | None = None,
        java: str = "java",
        timeout: float | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self.jar = jar
        self.options = dict(options or {})
        self.java = java
        self.timeout = timeout
        self._log = logger or get_logger(__name__)

    @classmethod
    def from_config(
        cls, config: DecompilerConfig, logger: structlog.stdlib.BoundLogger | None = None
    ) -> FernflowerDecompiler:
        if config.fernflower_jar is None:
            raise DecompilerError.not_configured(FERNFLOWER, "decompiler.fernflower_jar")
        return cls(config.fernflower_jar, config.options, config.java, config.timeout_sec, logger)

    def command(self, archive: Path, output_dir: Path) -> list[str]:
        cmd = [self.java, "-jar", str(self.jar)]
        cmd.extend(f"-{key}={value}" for key, value in self.options.items())
        cmd.append("-log=ERROR")
        cmd.extend([str(archive.absolute()), str(output_dir.absolute())])
        return cmd

    def decompile(self, archive: Path, output_dir: Path) -> Path:
        self._log.info("decompiling", archive=str(archive))
        _run(FERNFLOWER, self.command(archive, output_dir), self.timeout)
        result = output_dir / archive.name
        if not result.exists():
            raise DecompilerError.missing_output(FERNFLOWER, str(result))
        return result


class GoogleJavaFormatter:
    """Pipes each compilation unit through ``google-java-format -``."""

    def __init__(self, jar: Path, java: str = "java", timeout: float | None = None) -> None:
        self.jar = jar
        self.java = java
        self.timeout = timeout

    def format_source(self, source: str) -> str:
        cmd = [self.java, "-jar", str(self.jar), "-"]
        return _run(GOOGLE_JAVA_FORMAT, cmd, self.timeout, stdin=source).stdout


def formatter_from_config(config: DecompilerConfig) -> Formatter:
    if config.formatter_jar is None:
        return IdentityFormatter()
    return GoogleJavaFormatter(config.formatter_jar, config.java, config.timeout_sec)
