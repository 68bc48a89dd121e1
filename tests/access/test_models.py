"""Tests for access/models.py."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from jarpatch.access.models import (
    AccessTransformationMap,
    TransformationEntry,
    Visibility,
    normalize_type_name,
)
from jarpatch.core.errors import AccessFormatError, ErrorCode


class TestVisibility:
    """Visibility parsing tests."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("public", Visibility.PUBLIC),
            ("PROTECTED", Visibility.PROTECTED),
            ("Private", Visibility.PRIVATE),
            ("package-private", Visibility.PACKAGE_PRIVATE),
            ("package_private", Visibility.PACKAGE_PRIVATE),
            ("default", Visibility.PACKAGE_PRIVATE),
        ],
    )
    def test_parse(self, value: str, expected: Visibility) -> None:
        assert Visibility.parse(value) is expected

    def test_parse_rejects_unknown(self) -> None:
        with pytest.raises(ValueError):
            Visibility.parse("internal")

    def test_keyword(self) -> None:
        assert Visibility.PUBLIC.keyword == "public"
        assert Visibility.PACKAGE_PRIVATE.keyword is None


@pytest.mark.parametrize(
    "name",
    ["net/minecraft/Server", "net.minecraft.Server", "net/minecraft/Server.java"],
)
def test_normalize_type_name(name: str) -> None:
    assert normalize_type_name(name) == "net.minecraft.Server"


class TestAccessTransformationMap:
    """Loading and lookup tests."""

    DOCUMENT = {
        "net.minecraft.Server": {
            "visibility": "public",
            "fields": {"running": "Protected"},
            "methods": {"tick": "default"},
        }
    }

    def test_load_json(self, tmp_path: Path) -> None:
        path = tmp_path / "access.json"
        path.write_text(json.dumps(self.DOCUMENT), encoding="utf-8")

        access_map = AccessTransformationMap.load(path)

        entry = access_map.get("net/minecraft/Server")
        assert entry is not None
        assert entry.visibility is Visibility.PUBLIC
        assert entry.field_visibility("running") is Visibility.PROTECTED
        assert entry.method_visibility("tick") is Visibility.PACKAGE_PRIVATE
        assert entry.method_visibility("other") is None

    def test_load_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "access.yaml"
        path.write_text(
            "net.minecraft.Server:\n  methods:\n    tick: public\n",
            encoding="utf-8",
        )

        access_map = AccessTransformationMap.load(path)

        assert len(access_map) == 1
        assert "net.minecraft.Server" in access_map
        assert access_map.get("net.minecraft.Server") == TransformationEntry(
            methods={"tick": Visibility.PUBLIC}
        )

    def test_empty_yaml_is_empty_map(self, tmp_path: Path) -> None:
        path = tmp_path / "access.yml"
        path.write_text("", encoding="utf-8")

        assert len(AccessTransformationMap.load(path)) == 0

    @pytest.mark.parametrize(
        "key", ["net/minecraft/Server", "net/minecraft/Server.java", "net.minecraft.Server"]
    )
    def test_given_any_key_form_then_every_lookup_form_matches(self, key: str) -> None:
        """Document keys are normalized just like lookup names."""
        # Given
        access_map = AccessTransformationMap.from_document({key: {"visibility": "public"}})

        # When / Then
        for name in ("net/minecraft/Server", "net/minecraft/Server.java", "net.minecraft.Server"):
            entry = access_map.get(name)
            assert entry is not None
            assert entry.visibility is Visibility.PUBLIC
        assert list(access_map.root) == ["net.minecraft.Server"]

    @pytest.mark.parametrize(
        "document",
        [
            {"a.B": {"visibility": "internal"}},
            {"a.B": {"unknown": {}}},
            {"a.B": {"fields": ["x"]}},
            ["not", "a", "mapping"],
        ],
    )
    def test_invalid_documents(self, document: object) -> None:
        with pytest.raises(AccessFormatError) as exc_info:
            AccessTransformationMap.from_document(document, "map.json")

        assert exc_info.value.code == ErrorCode.ACCESS_FORMAT_ERROR

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "access.json"
        path.write_text("{", encoding="utf-8")

        with pytest.raises(AccessFormatError):
            AccessTransformationMap.load(path)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(AccessFormatError):
            AccessTransformationMap.load(tmp_path / "missing.json")
