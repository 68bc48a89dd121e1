"""Tests for launcher/download.py."""

from __future__ import annotations

import hashlib
import io
from collections.abc import Callable
from pathlib import Path

import httpx
import pytest

from jarpatch.config.models import NetworkConfig
from jarpatch.core.errors import ErrorCode, TransportError
from jarpatch.launcher import Downloader

URL = "https://example.test/artifact.jar"
BODY = b"artifact bytes" * 1000
DIGEST = hashlib.sha1(BODY).hexdigest()


class TestDownloader:
    """Status, digest and streaming tests."""

    def test_download_writes_body(
        self, make_downloader: Callable[..., Downloader], tmp_path: Path
    ) -> None:
        with make_downloader({URL: BODY}) as downloader:
            target = downloader.download(URL, tmp_path / "a.jar", sha1=DIGEST.upper())

        assert target.read_bytes() == BODY

    def test_stream_returns_digest(self, make_downloader: Callable[..., Downloader]) -> None:
        sink = io.BytesIO()

        with make_downloader({URL: BODY}) as downloader:
            digest = downloader.stream_to(URL, sink)

        assert digest == DIGEST
        assert sink.getvalue() == BODY

    def test_bad_status(self, make_downloader: Callable[..., Downloader], tmp_path: Path) -> None:
        with make_downloader({}) as downloader, pytest.raises(TransportError) as exc_info:
            downloader.download(URL, tmp_path / "a.jar")

        assert exc_info.value.code == ErrorCode.TRANSPORT_BAD_STATUS
        assert exc_info.value.details["status"] == 404
        assert not exc_info.value.retryable

    def test_other_success_status_rejected(
        self, make_downloader: Callable[..., Downloader]
    ) -> None:
        routes = {URL: httpx.Response(204)}

        with make_downloader(routes) as downloader, pytest.raises(TransportError) as exc_info:
            downloader.get_json(URL)

        assert exc_info.value.details["status"] == 204

    def test_digest_mismatch(
        self, make_downloader: Callable[..., Downloader], tmp_path: Path
    ) -> None:
        with make_downloader({URL: BODY}) as downloader, pytest.raises(TransportError) as exc_info:
            downloader.download(URL, tmp_path / "a.jar", sha1="0" * 40)

        assert exc_info.value.code == ErrorCode.TRANSPORT_DIGEST_MISMATCH
        assert exc_info.value.details["actual"] == DIGEST

    def test_digest_check_can_be_disabled(
        self, make_downloader: Callable[..., Downloader], tmp_path: Path
    ) -> None:
        config = NetworkConfig(verify_digests=False)

        with make_downloader({URL: BODY}, config) as downloader:
            target = downloader.download(URL, tmp_path / "a.jar", sha1="0" * 40)

        assert target.read_bytes() == BODY

    def test_get_json(self, make_downloader: Callable[..., Downloader]) -> None:
        with make_downloader({URL: {"key": [1, 2]}}) as downloader:
            assert downloader.get_json(URL) == {"key": [1, 2]}

    def test_invalid_json(self, make_downloader: Callable[..., Downloader]) -> None:
        with make_downloader({URL: b"{"}) as downloader, pytest.raises(TransportError) as exc_info:
            downloader.get_json(URL)

        assert exc_info.value.code == ErrorCode.TRANSPORT_REQUEST_FAILED

    def test_transport_failure_is_retryable(self, tmp_path: Path) -> None:
        def fail(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        client = httpx.Client(transport=httpx.MockTransport(fail))
        with Downloader(client=client) as downloader, pytest.raises(TransportError) as exc_info:
            downloader.download(URL, tmp_path / "a.jar")

        assert exc_info.value.code == ErrorCode.TRANSPORT_REQUEST_FAILED
        assert exc_info.value.retryable
