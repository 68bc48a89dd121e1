"""Fixtures isolating config tests from the user's environment."""

from __future__ import annotations

import os
from collections.abc import Generator
from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def clean_env() -> Generator[None, None, None]:
    """Remove JARPATCH__* env vars for clean tests."""
    orig = {k: v for k, v in os.environ.items() if k.startswith("JARPATCH__")}
    for k in orig:
        del os.environ[k]
    yield
    for k in [k for k in os.environ if k.startswith("JARPATCH__")]:
        del os.environ[k]
    os.environ.update(orig)


@pytest.fixture(autouse=True)
def no_global_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    path = tmp_path / "global" / "config.yaml"
    monkeypatch.setattr("jarpatch.config.loader.GLOBAL_CONFIG_PATH", path)
    return path
