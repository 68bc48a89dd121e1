"""HTTP transport for metadata and artifact downloads."""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import IO, Any

import httpx
import structlog

from jarpatch.config.models import NetworkConfig
from jarpatch.core.errors import TransportError
from jarpatch.core.logging import get_logger

_CHUNK_SIZE = 64 * 1024


class Downloader:
    """Thin wrapper over :class:`httpx.Client`.

    Any status other than 200 is an error; nothing is retried.
    """

    def __init__(
        self,
        config: NetworkConfig | None = None,
        client: httpx.Client | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self.config = config or NetworkConfig()
        self._client = client or httpx.Client(
            timeout=self.config.timeout_sec, follow_redirects=True
        )
        self._log = logger or get_logger(__name__)

    def __enter__(self) -> Downloader:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def get_json(self, url: str) -> Any:
        try:
            response = self._client.get(url)
        except httpx.HTTPError as e:
            raise TransportError.request_failed(url, str(e)) from e
        if response.status_code != 200:
            raise TransportError.bad_status(url, response.status_code, response.reason_phrase)
        try:
            return response.json()
        except ValueError as e:
            raise TransportError.request_failed(url, f"invalid JSON: {e}") from e

    def stream_to(self, url: str, sink: IO[bytes]) -> str:
        """Copy the body at ``url`` into ``sink``; return its SHA-1 hex digest."""
        digest = hashlib.sha1()
        self._log.debug("downloading", url=url)
        try:
            with self._client.stream("GET", url) as response:
                if response.status_code != 200:
                    raise TransportError.bad_status(
                        url, response.status_code, response.reason_phrase
                    )
                for chunk in response.iter_bytes(_CHUNK_SIZE):
                    digest.update(chunk)
                    sink.write(chunk)
        except httpx.HTTPError as e:
            raise TransportError.request_failed(url, str(e)) from e
        return digest.hexdigest()

    def download(self, url: str, target: Path, sha1: str | None = None) -> Path:
        """Download ``url`` to ``target``, checking ``sha1`` when given.

        Raises:
            TransportError: On network failure, a non-200 status or a digest
                mismatch.
        """
        with target.open("wb") as sink:
            actual = self.stream_to(url, sink)
        if sha1 and self.config.verify_digests and actual.lower() != sha1.lower():
            raise TransportError.digest_mismatch(url, sha1, actual)
        return target
