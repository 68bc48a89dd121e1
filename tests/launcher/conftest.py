"""Fixtures for launcher tests: an httpx client served from a dict of routes."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import httpx
import pytest

from jarpatch.config.models import NetworkConfig
from jarpatch.launcher import Downloader

Routes = dict[str, Any]


def _handler(routes: Routes, requested: list[str]) -> Callable[[httpx.Request], httpx.Response]:
    def handle(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        requested.append(url)
        body = routes.get(url)
        if body is None:
            return httpx.Response(404)
        if isinstance(body, httpx.Response):
            return body
        if isinstance(body, bytes):
            return httpx.Response(200, content=body)
        return httpx.Response(200, json=body)

    return handle


@pytest.fixture
def requested() -> list[str]:
    return []


@pytest.fixture
def make_downloader(requested: list[str]) -> Callable[..., Downloader]:
    """Build a Downloader whose transport answers from ``routes``."""

    def make(routes: Routes, config: NetworkConfig | None = None) -> Downloader:
        client = httpx.Client(transport=httpx.MockTransport(_handler(routes, requested)))
        return Downloader(config, client=client)

    return make
