"""Fixtures for CLI tests: an isolated project directory and artifact cache."""

from __future__ import annotations

import logging
import os
import zipfile
from collections.abc import Generator
from pathlib import Path

import pytest
import structlog

from jarpatch.cache import ArtifactCache, source_coordinate


@pytest.fixture(autouse=True)
def isolated_environment(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> Generator[None, None, None]:
    """No global config, no JARPATCH__* env vars, logging reset afterwards."""
    monkeypatch.setattr("jarpatch.config.loader.GLOBAL_CONFIG_PATH", tmp_path / "global.yaml")
    for key in [k for k in os.environ if k.startswith("JARPATCH__")]:
        monkeypatch.delenv(key)
    for key, value in {
        "GIT_AUTHOR_NAME": "Test User",
        "GIT_AUTHOR_EMAIL": "test@example.com",
        "GIT_COMMITTER_NAME": "Test User",
        "GIT_COMMITTER_EMAIL": "test@example.com",
    }.items():
        monkeypatch.setenv(key, value)
    yield
    structlog.reset_defaults()
    logging.getLogger().handlers.clear()


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A project directory whose jarpatch.yaml points at a private cache."""
    root = tmp_path / "project"
    root.mkdir()
    (root / "jarpatch.yaml").write_text(
        "project:\n"
        "  module: server\n"
        "  game_version: '1.9.4'\n"
        "  mapping_version: snapshot-20160601\n"
        "  source_dir: src\n"
        "  patch_dir: patches\n"
        "cache:\n"
        f"  root: {tmp_path / 'repository'}\n"
    )
    return root


@pytest.fixture
def cached_sources(project: Path, tmp_path: Path) -> Path:
    """Install a decompiled source archive for the project's coordinates."""
    staged = tmp_path / "source.jar"
    with zipfile.ZipFile(staged, "w") as archive:
        archive.writestr("net/minecraft/Server.java", "class Server {}\n")
    cache = ArtifactCache(tmp_path / "repository")
    return cache.store(source_coordinate("server", "1.9.4", "snapshot-20160601"), staged)
