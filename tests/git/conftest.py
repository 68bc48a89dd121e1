"""Test fixtures for the patch workflow."""

from __future__ import annotations

import zipfile
from collections.abc import Callable
from pathlib import Path

import pygit2
import pytest

from jarpatch.config.models import GitConfig
from jarpatch.git import PatchWorkflow

SERVER_SOURCE = "package net.minecraft;\n\nclass Server {\n    int port = 25565;\n}\n"


@pytest.fixture(autouse=True)
def git_identity(monkeypatch: pytest.MonkeyPatch) -> None:
    """Give git subprocesses an identity without touching global config."""
    for key, value in {
        "GIT_AUTHOR_NAME": "Test User",
        "GIT_AUTHOR_EMAIL": "test@example.com",
        "GIT_COMMITTER_NAME": "Test User",
        "GIT_COMMITTER_EMAIL": "test@example.com",
    }.items():
        monkeypatch.setenv(key, value)
    monkeypatch.delenv("GIT_DIR", raising=False)
    monkeypatch.delenv("GIT_WORK_TREE", raising=False)


@pytest.fixture
def make_source_archive(tmp_path: Path) -> Callable[..., Path]:
    """Write a source archive holding ``files`` (name -> text)."""

    def make(files: dict[str, str] | None = None, name: str = "source.jar") -> Path:
        path = tmp_path / name
        with zipfile.ZipFile(path, "w") as archive:
            archive.writestr("net/", b"")
            archive.writestr("net/minecraft/", b"")
            for entry, text in (files or {"net/minecraft/Server.java": SERVER_SOURCE}).items():
                archive.writestr(entry, text)
            archive.writestr("log4j2.xml", "<Configuration/>")
        return path

    return make


@pytest.fixture
def source_archive(make_source_archive: Callable[..., Path]) -> Path:
    return make_source_archive()


@pytest.fixture
def workflow(tmp_path: Path) -> PatchWorkflow:
    return PatchWorkflow(tmp_path / "src", tmp_path / "patches", GitConfig())


@pytest.fixture
def commit_change() -> Callable[[PatchWorkflow, str, str, str], pygit2.Oid]:
    """Write ``text`` to ``name`` in the working tree and commit it on HEAD."""

    def commit(workflow: PatchWorkflow, name: str, text: str, message: str) -> pygit2.Oid:
        repo = pygit2.Repository(str(workflow.source_dir))
        path = workflow.source_dir / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text)
        repo.index.add(name)
        repo.index.write()
        signature = pygit2.Signature("Test User", "test@example.com")
        return repo.create_commit(
            "HEAD", signature, signature, message, repo.index.write_tree(), [repo.head.target]
        )

    return commit
