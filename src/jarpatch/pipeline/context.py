"""Shared state handed to every pipeline stage."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import structlog

from jarpatch.access import AccessTransformationMap, AccessTransformer
from jarpatch.cache import (
    ArtifactCache,
    ArtifactCoordinate,
    mapped_coordinate,
    mcp_coordinate,
    source_coordinate,
    srg_coordinate,
    vanilla_coordinate,
)
from jarpatch.config.loader import require_directories
from jarpatch.config.models import JarPatchConfig
from jarpatch.core.logging import get_logger
from jarpatch.decompiler import (
    Decompiler,
    FernflowerDecompiler,
    Formatter,
    formatter_from_config,
)
from jarpatch.git import PatchWorkflow
from jarpatch.git.workflow import ConflictHandler
from jarpatch.launcher import Downloader


class PipelineContext:
    """Configuration, cache and lazily built collaborators for one invocation.

    Collaborators that talk to the outside world (downloader, decompiler,
    formatter) can be injected; otherwise they are built from the
    configuration on first use. Use as a context manager so the downloader
    is closed.
    """

    def __init__(
        self,
        config: JarPatchConfig,
        cache: ArtifactCache | None = None,
        *,
        downloader_factory: Callable[[], Downloader] | None = None,
        decompiler: Decompiler | None = None,
        formatter: Formatter | None = None,
        on_conflict: ConflictHandler | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self.config = config
        self.logger = logger or get_logger("jarpatch.pipeline")
        self.cache = cache or ArtifactCache.from_config(config.cache, self.logger)
        self.on_conflict = on_conflict
        self._downloader_factory = downloader_factory
        self._downloader: Downloader | None = None
        self._decompiler = decompiler
        self._formatter = formatter

    def __enter__(self) -> PipelineContext:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def close(self) -> None:
        if self._downloader is not None:
            self._downloader.close()
            self._downloader = None

    # =========================================================================
    # Collaborators
    # =========================================================================

    @property
    def downloader(self) -> Downloader:
        if self._downloader is None:
            if self._downloader_factory is not None:
                self._downloader = self._downloader_factory()
            else:
                self._downloader = Downloader(self.config.network, logger=self.logger)
        return self._downloader

    @property
    def decompiler(self) -> Decompiler:
        if self._decompiler is None:
            self._decompiler = FernflowerDecompiler.from_config(self.config.decompiler, self.logger)
        return self._decompiler

    @property
    def formatter(self) -> Formatter:
        if self._formatter is None:
            self._formatter = formatter_from_config(self.config.decompiler)
        return self._formatter

    def access_transformer(self) -> AccessTransformer | None:
        path = self.config.project.access_transformations
        if path is None:
            return None
        return AccessTransformer(AccessTransformationMap.load(Path(path)), self.logger)

    def workflow(self, *, patches: bool = False) -> PatchWorkflow:
        """Patch workflow over the configured source tree.

        The source directory is always required, the patch directory only with
        ``patches``. Both are checked before anything touches the file system.
        """
        names = ("source_dir", "patch_dir") if patches else ("source_dir",)
        dirs = require_directories(self.config.project, *names)
        patch_dir = self.config.project.patch_dir
        return PatchWorkflow(
            dirs["source_dir"],
            Path(patch_dir) if patch_dir is not None else None,
            self.config.git,
            logger=self.logger,
        )

    # =========================================================================
    # Coordinates
    # =========================================================================

    @property
    def vanilla(self) -> ArtifactCoordinate:
        project = self.config.project
        return vanilla_coordinate(project.module, project.game_version)

    @property
    def srg(self) -> ArtifactCoordinate:
        return srg_coordinate(self.config.project.effective_srg_version)

    @property
    def mcp(self) -> ArtifactCoordinate:
        return mcp_coordinate(self.config.project.mapping_version)

    @property
    def mapped(self) -> ArtifactCoordinate:
        project = self.config.project
        return mapped_coordinate(project.module, project.game_version, project.mapping_version)

    @property
    def source(self) -> ArtifactCoordinate:
        project = self.config.project
        return source_coordinate(project.module, project.game_version, project.mapping_version)
