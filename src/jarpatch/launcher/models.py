"""Launcher version manifest and per-version metadata."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, PrivateAttr, ValidationError

from jarpatch.core.errors import TransportError
from jarpatch.launcher.download import Downloader


class VersionType(str, Enum):
    OLD_ALPHA = "old_alpha"
    OLD_BETA = "old_beta"
    SNAPSHOT = "snapshot"
    RELEASE = "release"
    UNKNOWN = "unknown"

    @classmethod
    def from_string(cls, value: str) -> VersionType:
        try:
            return cls(value.lower())
        except ValueError:
            return cls.UNKNOWN


def _lenient_version_type(value: Any) -> Any:
    return VersionType.from_string(value) if isinstance(value, str) else value


LenientVersionType = Annotated[VersionType, BeforeValidator(_lenient_version_type)]


class DownloadDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True)

    sha1: str
    url: str
    size: int | None = None

    def fetch(self, downloader: Downloader, target: Path) -> Path:
        return downloader.download(self.url, target, sha1=self.sha1)


class VersionDownloads(BaseModel):
    model_config = ConfigDict(frozen=True)

    client: DownloadDescriptor
    server: DownloadDescriptor


class VersionMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    type: LenientVersionType
    downloads: VersionDownloads

    def download_for(self, module: str) -> DownloadDescriptor:
        return self.downloads.server if module == "server" else self.downloads.client


class VersionDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    type: LenientVersionType
    url: str


class VersionIndex(BaseModel):
    """The launcher's list of known game versions."""

    versions: list[VersionDescriptor] = Field(default_factory=list)
    _by_id: dict[str, VersionDescriptor] = PrivateAttr(default_factory=dict)

    def model_post_init(self, __context: Any) -> None:
        self._by_id = {version.id: version for version in self.versions}

    @classmethod
    def fetch(cls, downloader: Downloader, url: str | None = None) -> VersionIndex:
        url = url or downloader.config.version_manifest_url
        return _validate(cls, downloader.get_json(url), url)

    def get_descriptor(self, version_id: str) -> VersionDescriptor | None:
        return self._by_id.get(version_id)

    def fetch_metadata(self, version_id: str, downloader: Downloader) -> VersionMetadata:
        """Fetch the metadata document of one version.

        Raises:
            TransportError: If the version is unknown or the fetch fails.
        """
        descriptor = self.get_descriptor(version_id)
        if descriptor is None:
            raise TransportError.unknown_version(version_id)
        return _validate(VersionMetadata, downloader.get_json(descriptor.url), descriptor.url)


def _validate(model: type[Any], document: Any, url: str) -> Any:
    try:
        return model.model_validate(document)
    except ValidationError as e:
        err = e.errors()[0]
        where = ".".join(str(loc) for loc in err["loc"])
        reason = f"unexpected document: {where}: {err['msg']}"
        raise TransportError.request_failed(url, reason) from e
