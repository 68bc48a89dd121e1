"""POM metadata written next to every cached artifact."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path

from jarpatch.cache.coordinates import ArtifactCoordinate

POM_NAMESPACE = "http://maven.apache.org/POM/4.0.0"
MODEL_VERSION = "4.0.0"


@dataclass(frozen=True, slots=True)
class Organization:
    name: str
    url: str


@dataclass(frozen=True, slots=True)
class License:
    name: str
    url: str
    distribution: str = "manual"


MOJANG = Organization("Mojang", "http://mojang.com")
MOJANG_EULA = License("Mojang EULA", "https://account.mojang.com/terms")
MCP_TEAM = Organization("MCP Team", "http://www.modcoderpack.com/website/")
MCP_LICENSE = License("MCP License", "http://www.modcoderpack.com/website/releases")


def render_descriptor(
    coordinate: ArtifactCoordinate,
    organization: Organization | None = None,
    license: License | None = None,
) -> bytes:
    project = ET.Element("project", xmlns=POM_NAMESPACE)
    for tag, text in (
        ("modelVersion", MODEL_VERSION),
        ("groupId", coordinate.group),
        ("artifactId", coordinate.artifact_id),
        ("version", coordinate.version),
        ("packaging", coordinate.type),
    ):
        ET.SubElement(project, tag).text = text

    if organization is not None:
        element = ET.SubElement(project, "organization")
        ET.SubElement(element, "name").text = organization.name
        ET.SubElement(element, "url").text = organization.url

    if license is not None:
        licenses = ET.SubElement(project, "licenses")
        element = ET.SubElement(licenses, "license")
        ET.SubElement(element, "name").text = license.name
        ET.SubElement(element, "url").text = license.url
        ET.SubElement(element, "distribution").text = license.distribution

    ET.indent(project)
    return ET.tostring(project, encoding="utf-8", xml_declaration=True)


def write_descriptor(
    path: Path,
    coordinate: ArtifactCoordinate,
    organization: Organization | None = None,
    license: License | None = None,
) -> Path:
    path.write_bytes(render_descriptor(coordinate, organization, license))
    return path
