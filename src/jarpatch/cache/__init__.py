"""Artifact cache: coordinates, repository layout and the stage protocol."""

from jarpatch.cache.coordinates import (
    GROUP_ID,
    MCP_LIVE_VERSION,
    ArtifactCoordinate,
    mapped_coordinate,
    mcp_coordinate,
    source_coordinate,
    srg_coordinate,
    vanilla_coordinate,
)
from jarpatch.cache.descriptor import (
    MCP_LICENSE,
    MCP_TEAM,
    MOJANG,
    MOJANG_EULA,
    License,
    Organization,
    render_descriptor,
    write_descriptor,
)
from jarpatch.cache.repository import ArtifactCache
from jarpatch.cache.stage import StageResult, cached_stage

__all__ = [
    "GROUP_ID",
    "MCP_LIVE_VERSION",
    "ArtifactCoordinate",
    "mapped_coordinate",
    "mcp_coordinate",
    "source_coordinate",
    "srg_coordinate",
    "vanilla_coordinate",
    "MCP_LICENSE",
    "MCP_TEAM",
    "MOJANG",
    "MOJANG_EULA",
    "License",
    "Organization",
    "render_descriptor",
    "write_descriptor",
    "ArtifactCache",
    "StageResult",
    "cached_stage",
]
