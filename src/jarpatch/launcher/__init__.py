"""Launcher metadata and remote downloads."""

from jarpatch.launcher.download import Downloader
from jarpatch.launcher.mappings import (
    fetch_mcp_mappings,
    fetch_srg_mappings,
    mcp_url,
    split_mapping_version,
    srg_url,
)
from jarpatch.launcher.models import (
    DownloadDescriptor,
    VersionDescriptor,
    VersionIndex,
    VersionMetadata,
    VersionType,
)

__all__ = [
    "Downloader",
    "DownloadDescriptor",
    "VersionDescriptor",
    "VersionIndex",
    "VersionMetadata",
    "VersionType",
    "fetch_mcp_mappings",
    "fetch_srg_mappings",
    "mcp_url",
    "split_mapping_version",
    "srg_url",
]
