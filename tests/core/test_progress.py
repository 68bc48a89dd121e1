"""Tests for core/progress.py."""

import pytest

from jarpatch.core.progress import pluralize, progress, status


@pytest.mark.parametrize(
    ("count", "expected"),
    [(0, "0 patches"), (1, "1 patch"), (2, "2 patches")],
)
def test_pluralize(count: int, expected: str) -> None:
    assert pluralize(count, "patch", "patches") == expected


def test_pluralize_default_suffix() -> None:
    assert pluralize(3, "stage") == "3 stages"


def test_progress_passes_items_through() -> None:
    items = list(range(500))

    assert list(progress(items, desc="Remapping")) == items


def test_progress_accepts_generators() -> None:
    assert list(progress(x * 2 for x in range(3))) == [0, 2, 4]


def test_status_prints_marker(capsys: pytest.CaptureFixture[str]) -> None:
    status("Build complete", style="success")

    assert "✓ Build complete" in capsys.readouterr().err
