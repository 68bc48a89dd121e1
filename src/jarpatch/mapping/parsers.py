"""Parsers for the two on-disk mapping formats.

Compact (CSRG) mappings are whitespace-delimited lines:

    a net/minecraft/server/MinecraftServer          type
    a b field_1234_b                                field
    a c (I)V func_5678_c                            method

CSV (MCP) mappings are ``searge,name,side,...`` rows with a header. The side
column selects the module a row applies to.
"""

from __future__ import annotations

import csv
import io
import zipfile
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType

from jarpatch.core.errors import MappingFormatError

SIDE_BOTH = 2

COMPACT_ENTRY = "joined.csrg"
FIELDS_ENTRY = "fields.csv"
METHODS_ENTRY = "methods.csv"
PARAMS_ENTRY = "params.csv"


class Side(Enum):
    """Build variant a cosmetic mapping row may be restricted to."""

    CLIENT = "client"
    SERVER = "server"

    @property
    def code(self) -> int:
        return 0 if self is Side.CLIENT else 1

    @classmethod
    def parse(cls, value: str | Side) -> Side:
        if isinstance(value, Side):
            return value
        return cls(value.lower())


def _freeze(data: dict[str, str]) -> Mapping[str, str]:
    return MappingProxyType(dict(data))


@dataclass(frozen=True)
class SymbolTable:
    """Obfuscated binary type name -> renamed type name."""

    types: Mapping[str, str] = field(default_factory=lambda: _freeze({}))

    def get(self, name: str) -> str | None:
        return self.types.get(name)

    def __len__(self) -> int:
        return len(self.types)


@dataclass(frozen=True)
class MemberMapping:
    """Owner-qualified member renames from the compact format.

    Field keys are ``(owner, name)``; method keys are
    ``(owner, "name descriptor")`` so overloads stay distinct.
    """

    fields: Mapping[tuple[str, str], str] = field(default_factory=lambda: MappingProxyType({}))
    methods: Mapping[tuple[str, str], str] = field(default_factory=lambda: MappingProxyType({}))

    def field_name(self, owner: str, name: str) -> str | None:
        return self.fields.get((owner, name))

    def method_name(self, owner: str, name: str, descriptor: str) -> str | None:
        return self.methods.get((owner, f"{name} {descriptor}"))


@dataclass(frozen=True)
class CosmeticMapping:
    """Name-only member renames from the CSV format, filtered to one side."""

    side: Side
    fields: Mapping[str, str] = field(default_factory=lambda: _freeze({}))
    methods: Mapping[str, str] = field(default_factory=lambda: _freeze({}))


def parse_compact_mapping(text: str) -> tuple[SymbolTable, MemberMapping]:
    """Parse compact mapping text into a type table and member table.

    Lines with an unexpected token count are ignored. Later lines win.
    """
    types: dict[str, str] = {}
    fields: dict[tuple[str, str], str] = {}
    methods: dict[tuple[str, str], str] = {}

    for line in text.splitlines():
        if line.lstrip().startswith("#"):
            continue
        tokens = line.split()
        if len(tokens) == 2:
            types[tokens[0]] = tokens[1]
        elif len(tokens) == 3:
            fields[(tokens[0], tokens[1])] = tokens[2]
        elif len(tokens) == 4:
            methods[(tokens[0], f"{tokens[1]} {tokens[2]}")] = tokens[3]

    return (
        SymbolTable(_freeze(types)),
        MemberMapping(MappingProxyType(fields), MappingProxyType(methods)),
    )


def load_compact_mapping(path: Path) -> tuple[SymbolTable, MemberMapping]:
    return parse_compact_mapping(path.read_text(encoding="utf-8"))


def parse_csv_text(text: str, side: Side | str, source: str = "<csv>") -> dict[str, str]:
    """Parse CSV mapping rows, keeping rows for ``side`` or both sides."""
    wanted = Side.parse(side).code
    mapping: dict[str, str] = {}
    reader = csv.reader(io.StringIO(text))
    next(reader, None)  # header

    for row in reader:
        if not row:
            continue
        if len(row) < 3:
            raise MappingFormatError.malformed(
                source, reader.line_num, "expected at least 3 columns"
            )
        try:
            side_code = int(row[2])
        except ValueError as e:
            raise MappingFormatError.malformed(
                source, reader.line_num, f"side code {row[2]!r} is not an integer"
            ) from e
        if side_code < 0:
            raise MappingFormatError.malformed(source, reader.line_num, "negative side code")
        if side_code == SIDE_BOTH or side_code == wanted:
            mapping[row[0]] = row[1]

    return mapping


def parse_csv_mapping(path: Path, side: Side | str) -> dict[str, str]:
    return parse_csv_text(path.read_text(encoding="utf-8"), side, source=str(path))


def load_cosmetic_mapping(fields_csv: Path, methods_csv: Path, side: Side | str) -> CosmeticMapping:
    resolved = Side.parse(side)
    return CosmeticMapping(
        side=resolved,
        fields=_freeze(parse_csv_mapping(fields_csv, resolved)),
        methods=_freeze(parse_csv_mapping(methods_csv, resolved)),
    )


def _read_entry(archive: zipfile.ZipFile, path: Path, entry: str) -> str:
    try:
        return archive.read(entry).decode("utf-8")
    except KeyError as e:
        raise MappingFormatError.missing_entry(str(path), entry) from e


@dataclass(frozen=True)
class MappingBundle:
    """Everything the remapping pass needs, read from the two mapping archives."""

    types: SymbolTable
    members: MemberMapping
    cosmetic: CosmeticMapping


def read_mapping_bundle(srg_archive: Path, mcp_archive: Path, side: Side | str) -> MappingBundle:
    """Read ``joined.csrg`` and the MCP ``fields.csv``/``methods.csv`` pair."""
    resolved = Side.parse(side)

    with zipfile.ZipFile(srg_archive) as archive:
        types, members = parse_compact_mapping(_read_entry(archive, srg_archive, COMPACT_ENTRY))

    with zipfile.ZipFile(mcp_archive) as archive:
        fields = parse_csv_text(
            _read_entry(archive, mcp_archive, FIELDS_ENTRY),
            resolved,
            f"{mcp_archive}!{FIELDS_ENTRY}",
        )
        methods = parse_csv_text(
            _read_entry(archive, mcp_archive, METHODS_ENTRY),
            resolved,
            f"{mcp_archive}!{METHODS_ENTRY}",
        )

    return MappingBundle(
        types=types,
        members=members,
        cosmetic=CosmeticMapping(side=resolved, fields=_freeze(fields), methods=_freeze(methods)),
    )
