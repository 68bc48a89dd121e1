"""Git-backed patch workflow over the decompiled source tree."""

from jarpatch.git.errors import (
    DirtyWorkingTreeError,
    GitCommandError,
    PatchConflictError,
    RepositoryError,
)
from jarpatch.git.runner import GitRunner
from jarpatch.git.workflow import (
    PatchSet,
    PatchWorkflow,
    Resolution,
    WorkTreeState,
)

__all__ = [
    "DirtyWorkingTreeError",
    "GitCommandError",
    "PatchConflictError",
    "RepositoryError",
    "GitRunner",
    "PatchSet",
    "PatchWorkflow",
    "Resolution",
    "WorkTreeState",
]
