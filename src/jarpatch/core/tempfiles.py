"""Scoped temporary paths.

Paths handed out here are owned by the caller for the duration of the
``with`` block and removed on every exit path. A failed removal never masks
the body's outcome; it is logged with the leaked path instead.
"""

from __future__ import annotations

import os
import shutil
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import structlog

from jarpatch.core.logging import get_logger

_PREFIX = "jarpatch-"


def remove_path(path: Path, logger: structlog.stdlib.BoundLogger | None = None) -> bool:
    """Delete a file or directory tree, demoting failures to a warning.

    Returns True when nothing is left behind.
    """
    log = logger or get_logger(__name__)
    try:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        else:
            path.unlink(missing_ok=True)
    except OSError as e:
        log.warning(
            "temporary path could not be removed",
            path=str(path),
            error=str(e),
            hint=f"You may want to delete {path} manually",
        )
        return False
    return True


@contextmanager
def temporary_paths(
    count: int = 1,
    *,
    suffix: str = "",
    directory: Path | None = None,
    logger: structlog.stdlib.BoundLogger | None = None,
) -> Iterator[list[Path]]:
    """Acquire ``count`` empty temporary files, removed when the block exits."""
    paths: list[Path] = []
    try:
        for _ in range(count):
            fd, name = tempfile.mkstemp(prefix=_PREFIX, suffix=suffix, dir=directory)
            os.close(fd)
            paths.append(Path(name))
        yield paths
    finally:
        for path in paths:
            remove_path(path, logger)


@contextmanager
def temporary_path(
    *,
    suffix: str = "",
    directory: Path | None = None,
    logger: structlog.stdlib.BoundLogger | None = None,
) -> Iterator[Path]:
    """Single-path shorthand for :func:`temporary_paths`."""
    with temporary_paths(1, suffix=suffix, directory=directory, logger=logger) as paths:
        yield paths[0]


@contextmanager
def temporary_directory(
    *,
    directory: Path | None = None,
    logger: structlog.stdlib.BoundLogger | None = None,
) -> Iterator[Path]:
    """Acquire a temporary directory, removed recursively when the block exits."""
    path = Path(tempfile.mkdtemp(prefix=_PREFIX, dir=directory))
    try:
        yield path
    finally:
        remove_path(path, logger)
