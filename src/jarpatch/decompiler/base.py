"""Decompiler and formatter boundaries."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from jarpatch.core.errors import ErrorCode, JarPatchError


class Decompiler(Protocol):
    def decompile(self, archive: Path, output_dir: Path) -> Path:
        """Decompile a bytecode archive; return the source archive written to ``output_dir``."""
        ...


class Formatter(Protocol):
    def format_source(self, source: str) -> str: ...


class IdentityFormatter:
    """Leaves sources as the decompiler wrote them."""

    def format_source(self, source: str) -> str:
        return source


class DecompilerError(JarPatchError):
    """An external decompiler or formatter failed."""

    @classmethod
    def tool_failed(cls, tool: str, exit_code: int, stderr: str) -> DecompilerError:
        return cls(
            code=ErrorCode.DECOMPILER_FAILED,
            message=f"{tool} exited with {exit_code}: {stderr.strip()}",
            details={"tool": tool, "exit_code": exit_code, "stderr": stderr},
        )

    @classmethod
    def missing_output(cls, tool: str, expected: str) -> DecompilerError:
        return cls(
            code=ErrorCode.DECOMPILER_FAILED,
            message=f"{tool} produced no output at {expected}",
            details={"tool": tool, "expected": expected},
        )

    @classmethod
    def not_configured(cls, tool: str, setting: str) -> DecompilerError:
        return cls(
            code=ErrorCode.DECOMPILER_FAILED,
            message=f"{tool} is not configured; set {setting}",
            details={"tool": tool, "setting": setting},
        )

    @classmethod
    def unavailable(cls, tool: str, reason: str) -> DecompilerError:
        return cls(
            code=ErrorCode.DECOMPILER_FAILED,
            message=f"Could not run {tool}: {reason}",
            details={"tool": tool, "reason": reason},
        )
