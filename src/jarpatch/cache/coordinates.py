"""Artifact coordinates and the fixed derivation rules for each stage."""

from __future__ import annotations

from dataclasses import dataclass

from jarpatch.config.models import LIVE_MAPPING_VERSION

GROUP_ID = "org.basinmc.minecraft"
SRG_ARTIFACT_ID = "mappings-srg"
MCP_ARTIFACT_ID = "mappings-mcp"
MCP_LIVE_VERSION = "0.0.0-SNAPSHOT"

VANILLA_CLASSIFIER = "vanilla"
MAPPED_CLASSIFIER = "mapped"
SOURCE_CLASSIFIER = "source"

SNAPSHOT_SUFFIX = "-SNAPSHOT"


@dataclass(frozen=True, slots=True)
class ArtifactCoordinate:
    """``group:artifactId:version:type[:classifier]``."""

    group: str
    artifact_id: str
    version: str
    type: str = "jar"
    classifier: str | None = None

    def __str__(self) -> str:
        base = f"{self.group}:{self.artifact_id}:{self.version}:{self.type}"
        return f"{base}:{self.classifier}" if self.classifier else base

    @classmethod
    def parse(cls, text: str) -> ArtifactCoordinate:
        parts = text.split(":")
        if len(parts) not in (3, 4, 5) or not all(parts):
            raise ValueError(f"Invalid artifact coordinate {text!r}")
        return cls(*parts)

    @property
    def is_snapshot(self) -> bool:
        return self.version.endswith(SNAPSHOT_SUFFIX)

    @property
    def file_name(self) -> str:
        suffix = f"-{self.classifier}" if self.classifier else ""
        return f"{self.artifact_id}-{self.version}{suffix}.{self.type}"

    @property
    def descriptor_name(self) -> str:
        return f"{self.artifact_id}-{self.version}.pom"

    @property
    def directory(self) -> tuple[str, ...]:
        return (*self.group.split("."), self.artifact_id, self.version)


def mcp_version(mapping_version: str) -> str:
    return MCP_LIVE_VERSION if mapping_version == LIVE_MAPPING_VERSION else mapping_version


def vanilla_coordinate(module: str, game_version: str) -> ArtifactCoordinate:
    return ArtifactCoordinate(GROUP_ID, module, game_version, "jar", VANILLA_CLASSIFIER)


def srg_coordinate(srg_version: str) -> ArtifactCoordinate:
    return ArtifactCoordinate(GROUP_ID, SRG_ARTIFACT_ID, srg_version, "zip")


def mcp_coordinate(mapping_version: str) -> ArtifactCoordinate:
    return ArtifactCoordinate(GROUP_ID, MCP_ARTIFACT_ID, mcp_version(mapping_version), "zip")


def mapped_coordinate(module: str, game_version: str, mapping_version: str) -> ArtifactCoordinate:
    version = f"{game_version}-{mcp_version(mapping_version)}"
    return ArtifactCoordinate(GROUP_ID, module, version, "jar", MAPPED_CLASSIFIER)


def source_coordinate(module: str, game_version: str, mapping_version: str) -> ArtifactCoordinate:
    version = f"{game_version}-{mcp_version(mapping_version)}"
    return ArtifactCoordinate(GROUP_ID, module, version, "jar", SOURCE_CLASSIFIER)
