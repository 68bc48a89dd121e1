"""Access transformation map models.

A map is a JSON or YAML document keyed by qualified type name:

    {
      "net.minecraft.server.MinecraftServer": {
        "visibility": "public",
        "fields": {"serverRunning": "protected"},
        "methods": {"tick": "public"}
      }
    }

Member overrides are keyed by simple name, so a method override applies to
every overload of that name.
"""

from __future__ import annotations

import json
from enum import Enum
from pathlib import Path
from typing import Annotated, Any

import yaml
from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    RootModel,
    ValidationError,
    model_validator,
)

from jarpatch.core.errors import AccessFormatError


class Visibility(str, Enum):
    PUBLIC = "public"
    PROTECTED = "protected"
    PACKAGE_PRIVATE = "package-private"
    PRIVATE = "private"

    @property
    def keyword(self) -> str | None:
        """Java modifier keyword, None for package-private."""
        return None if self is Visibility.PACKAGE_PRIVATE else self.value

    @classmethod
    def parse(cls, value: str | Visibility) -> Visibility:
        if isinstance(value, Visibility):
            return value
        name = value.strip().upper().replace("-", "_").replace(" ", "_")
        if name == "DEFAULT":
            return cls.PACKAGE_PRIVATE
        try:
            return cls[name]
        except KeyError:
            raise ValueError(f"Unknown visibility {value!r}") from None


def _coerce_visibility(value: Any) -> Any:
    if isinstance(value, str):
        return Visibility.parse(value)
    return value


VisibilityValue = Annotated[Visibility, BeforeValidator(_coerce_visibility)]


class TransformationEntry(BaseModel):
    """Overrides for one type and its members."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    visibility: VisibilityValue | None = None
    fields: dict[str, VisibilityValue] = Field(default_factory=dict)
    methods: dict[str, VisibilityValue] = Field(default_factory=dict)

    def field_visibility(self, name: str) -> Visibility | None:
        return self.fields.get(name)

    def method_visibility(self, name: str) -> Visibility | None:
        return self.methods.get(name)


def normalize_type_name(name: str) -> str:
    """``a/b/C.java``, ``a/b/C`` and ``a.b.C`` all become ``a.b.C``."""
    if name.endswith(".java"):
        name = name[: -len(".java")]
    return name.replace("/", ".")


class AccessTransformationMap(RootModel[dict[str, TransformationEntry]]):
    """Overrides keyed by dotted type name, whatever form the document used."""

    root: dict[str, TransformationEntry] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _normalize_keys(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {
                normalize_type_name(key) if isinstance(key, str) else key: value
                for key, value in data.items()
            }
        return data

    @classmethod
    def load(cls, path: Path) -> AccessTransformationMap:
        """Read a map from JSON, or from YAML when the suffix says so.

        Raises:
            AccessFormatError: On unreadable documents or invalid entries.
        """
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise AccessFormatError.invalid_map(str(path), str(e)) from e

        try:
            if path.suffix.lower() in (".yaml", ".yml"):
                document = yaml.safe_load(text) or {}
            else:
                document = json.loads(text)
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise AccessFormatError.invalid_map(str(path), str(e)) from e

        return cls.from_document(document, source=str(path))

    @classmethod
    def from_document(cls, document: Any, source: str = "<map>") -> AccessTransformationMap:
        try:
            return cls.model_validate(document)
        except ValidationError as e:
            err = e.errors()[0]
            where = ".".join(str(loc) for loc in err["loc"])
            raise AccessFormatError.invalid_map(source, f"{where}: {err['msg']}") from e

    def get(self, type_name: str) -> TransformationEntry | None:
        return self.root.get(normalize_type_name(type_name))

    def __len__(self) -> int:
        return len(self.root)

    def __contains__(self, type_name: object) -> bool:
        return isinstance(type_name, str) and self.get(type_name) is not None
