"""Session-wide test setup.

Tests run against the checkout under ``src/`` rather than an installed copy.
Each test starts with a fresh run ID so log assertions never see a value
left behind by an earlier CLI invocation.
"""

from __future__ import annotations

import sys
from collections.abc import Generator
from pathlib import Path

import pytest

_SRC = Path(__file__).resolve().parent.parent / "src"
if str(_SRC) not in sys.path:
    sys.path.insert(0, str(_SRC))

from jarpatch.core.logging import clear_run_id  # noqa: E402


@pytest.fixture(autouse=True)
def fresh_run_id() -> Generator[None, None, None]:
    clear_run_id()
    yield
    clear_run_id()
