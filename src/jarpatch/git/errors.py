"""Patch workflow error types."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

import pygit2

from jarpatch.core.errors import ErrorCode, JarPatchError


class GitCommandError(JarPatchError):
    """A git subprocess exited non-zero or could not be started."""

    @classmethod
    def failed(cls, args: list[str], exit_code: int, stderr: str) -> GitCommandError:
        return cls(
            code=ErrorCode.GIT_COMMAND_FAILED,
            message=f"git {' '.join(args)} exited with {exit_code}: {stderr.strip()}",
            details={"args": args, "exit_code": exit_code, "stderr": stderr},
        )

    @classmethod
    def timed_out(cls, args: list[str], timeout: float) -> GitCommandError:
        return cls(
            code=ErrorCode.GIT_COMMAND_FAILED,
            message=f"git {' '.join(args)} timed out after {timeout}s",
            details={"args": args, "timeout": timeout},
        )

    @classmethod
    def not_installed(cls, executable: str, reason: str) -> GitCommandError:
        return cls(
            code=ErrorCode.GIT_NOT_INSTALLED,
            message=f"Could not locate git installation ({executable}): {reason}",
            details={"executable": executable, "reason": reason},
        )


class PatchConflictError(JarPatchError):
    """A patch did not apply; the working tree is left mid-application."""

    @classmethod
    def for_patch(cls, patch: str, stderr: str) -> PatchConflictError:
        return cls(
            code=ErrorCode.GIT_PATCH_CONFLICT,
            message=f"Failed to apply patch {patch}",
            details={"patch": patch, "stderr": stderr},
        )


class DirtyWorkingTreeError(JarPatchError):
    """A destructive operation was refused because of uncommitted changes."""

    @classmethod
    def for_operation(cls, operation: str, path: str) -> DirtyWorkingTreeError:
        return cls(
            code=ErrorCode.GIT_DIRTY_WORKING_TREE,
            message=(
                f"Cannot {operation}: the repository at {path} is not in a clean state. "
                "Commit the changes you wish to retain and turn them into patch files, "
                "or pass force to override"
            ),
            details={"operation": operation, "path": path},
        )


class RepositoryError(JarPatchError):
    """A repository operation through pygit2 failed."""

    @classmethod
    def operation_failed(cls, operation: str, reason: str) -> RepositoryError:
        return cls(
            code=ErrorCode.GIT_REPOSITORY_ERROR,
            message=f"{operation} failed: {reason}",
            details={"operation": operation, "reason": reason},
        )


@contextmanager
def guard(operation: str) -> Iterator[None]:
    """Translate pygit2 failures into :class:`RepositoryError`."""
    try:
        yield
    except (pygit2.GitError, KeyError) as e:
        raise RepositoryError.operation_failed(operation, str(e)) from e
