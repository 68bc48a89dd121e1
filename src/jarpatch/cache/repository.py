"""Content-addressed artifact cache in Maven local-repository layout."""

from __future__ import annotations

import os
import shutil
import time
from pathlib import Path

import structlog

from jarpatch.cache.coordinates import ArtifactCoordinate
from jarpatch.config.models import CacheConfig
from jarpatch.core.errors import ArtifactNotFoundError, CacheError
from jarpatch.core.logging import get_logger
from jarpatch.core.tempfiles import temporary_path


class ArtifactCache:
    """Artifacts addressed by coordinate under ``root``.

    An artifact is either absent or fully present: content is copied to a
    temporary file beside its final location and renamed into place.
    Snapshot versions older than ``snapshot_ttl_sec`` count as absent.
    """

    def __init__(
        self,
        root: Path,
        snapshot_ttl_sec: float | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self.root = root
        self.snapshot_ttl_sec = snapshot_ttl_sec
        self._log = logger or get_logger(__name__)

    @classmethod
    def from_config(
        cls, config: CacheConfig, logger: structlog.stdlib.BoundLogger | None = None
    ) -> ArtifactCache:
        return cls(config.root, config.snapshot_ttl_sec, logger)

    def path_for(self, coordinate: ArtifactCoordinate) -> Path:
        return self.root.joinpath(*coordinate.directory, coordinate.file_name)

    def descriptor_path(self, coordinate: ArtifactCoordinate) -> Path:
        return self.root.joinpath(*coordinate.directory, coordinate.descriptor_name)

    def is_stale(self, coordinate: ArtifactCoordinate, path: Path) -> bool:
        if not coordinate.is_snapshot or self.snapshot_ttl_sec is None:
            return False
        return time.time() - path.stat().st_mtime > self.snapshot_ttl_sec

    def find(self, coordinate: ArtifactCoordinate) -> Path | None:
        path = self.path_for(coordinate)
        if not path.is_file():
            return None
        if self.is_stale(coordinate, path):
            self._log.info("snapshot artifact expired", coordinate=str(coordinate))
            return None
        return path

    def exists(self, coordinate: ArtifactCoordinate) -> bool:
        return self.find(coordinate) is not None

    def fetch(self, coordinate: ArtifactCoordinate) -> Path:
        """Path of a cached artifact.

        Raises:
            ArtifactNotFoundError: If the artifact is absent or expired.
        """
        path = self.find(coordinate)
        if path is None:
            raise ArtifactNotFoundError.for_coordinate(str(coordinate))
        return path

    def _install(self, source: Path, target: Path) -> None:
        with temporary_path(suffix=".part", directory=target.parent, logger=self._log) as tmp:
            shutil.copyfile(source, tmp)
            os.replace(tmp, target)

    def store(
        self,
        coordinate: ArtifactCoordinate,
        content: Path,
        descriptor: Path | None = None,
    ) -> Path:
        """Install ``content`` (and its descriptor) under ``coordinate``.

        Raises:
            CacheError: If the files cannot be written.
        """
        target = self.path_for(coordinate)
        self._log.debug("installing artifact", coordinate=str(coordinate), path=str(target))
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            if descriptor is not None:
                self._install(descriptor, self.descriptor_path(coordinate))
            self._install(content, target)
        except OSError as e:
            raise CacheError.store_failed(str(coordinate), str(e)) from e
        return target
