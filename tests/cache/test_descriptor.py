"""Tests for cache/descriptor.py."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from pathlib import Path

from jarpatch.cache.coordinates import ArtifactCoordinate
from jarpatch.cache.descriptor import (
    MOJANG,
    MOJANG_EULA,
    POM_NAMESPACE,
    render_descriptor,
    write_descriptor,
)

NS = {"pom": POM_NAMESPACE}
COORDINATE = ArtifactCoordinate("org.example", "server", "1.9.4", "jar", "vanilla")


def test_render_coordinates() -> None:
    root = ET.fromstring(render_descriptor(COORDINATE))

    assert root.findtext("pom:modelVersion", namespaces=NS) == "4.0.0"
    assert root.findtext("pom:groupId", namespaces=NS) == "org.example"
    assert root.findtext("pom:artifactId", namespaces=NS) == "server"
    assert root.findtext("pom:version", namespaces=NS) == "1.9.4"
    assert root.findtext("pom:packaging", namespaces=NS) == "jar"
    assert root.find("pom:organization", NS) is None
    assert root.find("pom:licenses", NS) is None


def test_render_organization_and_license() -> None:
    root = ET.fromstring(render_descriptor(COORDINATE, MOJANG, MOJANG_EULA))

    assert root.findtext("pom:organization/pom:name", namespaces=NS) == "Mojang"
    license = root.find("pom:licenses/pom:license", NS)
    assert license is not None
    assert license.findtext("pom:name", namespaces=NS) == "Mojang EULA"
    assert license.findtext("pom:distribution", namespaces=NS) == "manual"


def test_write_descriptor(tmp_path: Path) -> None:
    path = write_descriptor(tmp_path / "server.pom", COORDINATE)

    assert path.read_bytes().startswith(b"<?xml")
