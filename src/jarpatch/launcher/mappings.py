"""Mapping archive downloads."""

from __future__ import annotations

import zipfile
from pathlib import Path

import structlog

from jarpatch.config.models import LIVE_MAPPING_VERSION, NetworkConfig
from jarpatch.core.errors import ConfigError
from jarpatch.core.logging import get_logger
from jarpatch.launcher.download import Downloader
from jarpatch.mapping.parsers import FIELDS_ENTRY, METHODS_ENTRY, PARAMS_ENTRY

LIVE_WARNING = (
    "    MCP Live Mappings    ",
    " ----------------------- ",
    "  This will most likely  ",
    "  break your build       ",
    " ----------------------- ",
    "  USE AT YOUR OWN RISK   ",
)


def split_mapping_version(mapping_version: str) -> tuple[str, str]:
    """``snapshot-20160601`` -> ``("snapshot", "20160601")``."""
    channel, sep, date = mapping_version.partition("-")
    if not sep or not channel or not date:
        raise ConfigError.invalid_value(
            "project.mapping_version", mapping_version, "expected <channel>-<date>"
        )
    return channel, date


def srg_url(config: NetworkConfig, srg_version: str) -> str:
    return config.srg_url.format(version=srg_version)


def mcp_url(config: NetworkConfig, mapping_version: str, game_version: str) -> str:
    channel, date = split_mapping_version(mapping_version)
    return config.mcp_url.format(channel=channel, date=date, game_version=game_version)


def fetch_srg_mappings(downloader: Downloader, srg_version: str, target: Path) -> Path:
    return downloader.download(srg_url(downloader.config, srg_version), target)


def fetch_mcp_mappings(
    downloader: Downloader,
    mapping_version: str,
    game_version: str,
    target: Path,
    logger: structlog.stdlib.BoundLogger | None = None,
) -> Path:
    """Download the MCP archive, or assemble one from the live CSV exports."""
    if mapping_version != LIVE_MAPPING_VERSION:
        url = mcp_url(downloader.config, mapping_version, game_version)
        return downloader.download(url, target)

    log = logger or get_logger(__name__)
    for line in LIVE_WARNING:
        log.warning(line)

    with zipfile.ZipFile(target, "w", zipfile.ZIP_DEFLATED) as archive:
        for entry in (FIELDS_ENTRY, METHODS_ENTRY, PARAMS_ENTRY):
            url = downloader.config.mcp_live_url.format(name=entry.removesuffix(".csv"))
            with archive.open(entry, "w") as sink:
                downloader.stream_to(url, sink)
    return target
