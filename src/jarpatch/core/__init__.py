"""Core module exports."""

from jarpatch.core.errors import (
    ConfigError,
    ErrorCode,
    InternalError,
    JarPatchError,
)
from jarpatch.core.logging import (
    clear_run_id,
    configure_logging,
    get_log_file_path,
    get_logger,
    get_run_id,
    set_run_id,
    stage_context,
)
from jarpatch.core.progress import pluralize, progress, status

__all__ = [
    # Errors
    "ConfigError",
    "ErrorCode",
    "InternalError",
    "JarPatchError",
    # Logging
    "clear_run_id",
    "configure_logging",
    "get_log_file_path",
    "get_logger",
    "get_run_id",
    "set_run_id",
    "stage_context",
    # Progress
    "pluralize",
    "progress",
    "status",
]
