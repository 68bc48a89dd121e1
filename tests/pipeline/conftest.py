"""Fixtures for pipeline tests: a configured context over a temporary cache."""

from __future__ import annotations

import zipfile
from collections.abc import Callable
from pathlib import Path

import pytest

from jarpatch.cache import ArtifactCache, ArtifactCoordinate
from jarpatch.config.models import CacheConfig, JarPatchConfig, ProjectConfig
from jarpatch.pipeline import PipelineContext


@pytest.fixture
def config(tmp_path: Path) -> JarPatchConfig:
    return JarPatchConfig(
        project=ProjectConfig(
            module="server",
            game_version="1.9.4",
            mapping_version="snapshot-20160601",
            source_dir=tmp_path / "src",
            patch_dir=tmp_path / "patches",
            resource_dir=tmp_path / "resources",
        ),
        cache=CacheConfig(root=tmp_path / "repository"),
    )


@pytest.fixture
def context(config: JarPatchConfig) -> PipelineContext:
    return PipelineContext(config)


@pytest.fixture
def store_archive(
    context: PipelineContext, tmp_path: Path
) -> Callable[[ArtifactCoordinate, dict[str, bytes | str]], Path]:
    """Write a zip holding ``entries`` and install it in the context's cache."""
    cache: ArtifactCache = context.cache

    def store(coordinate: ArtifactCoordinate, entries: dict[str, bytes | str]) -> Path:
        path = tmp_path / f"staged-{coordinate.file_name}"
        with zipfile.ZipFile(path, "w") as archive:
            for name, data in entries.items():
                archive.writestr(name, data)
        return cache.store(coordinate, path)

    return store
