"""Fixtures for mapping tests: hand-assembled class files and archives."""

from __future__ import annotations

import struct
import zipfile
from pathlib import Path

import pytest

from jarpatch.mapping.parsers import COMPACT_ENTRY, FIELDS_ENTRY, METHODS_ENTRY

CSV_HEADER = "searge,name,side,desc\n"


def utf8(text: str) -> bytes:
    data = text.encode("utf-8")
    return struct.pack(">BH", 1, len(data)) + data


def build_class(
    name: str,
    super_name: str = "java/lang/Object",
    *,
    interfaces: tuple[str, ...] = (),
    field: tuple[str, str] | None = None,
    method: tuple[str, str] | None = None,
    field_ref: tuple[str, str, str] | None = None,
    source_file: str | None = None,
) -> bytes:
    """Assemble a minimal class file.

    ``field`` and ``method`` declare one member each as ``(name, descriptor)``;
    ``field_ref`` adds a Fieldref ``(owner, name, descriptor)`` to the pool.
    """
    entries: list[bytes] = []

    def add(entry: bytes) -> int:
        entries.append(entry)
        return len(entries)

    def add_class(internal: str) -> int:
        return add(struct.pack(">BH", 7, add(utf8(internal))))

    this_index = add_class(name)
    super_index = add_class(super_name)
    interface_indices = [add_class(i) for i in interfaces]

    fields = b""
    if field is not None:
        fields = struct.pack(">HHHH", 0x0002, add(utf8(field[0])), add(utf8(field[1])), 0)
    methods = b""
    if method is not None:
        methods = struct.pack(">HHHH", 0x0001, add(utf8(method[0])), add(utf8(method[1])), 0)
    if field_ref is not None:
        owner = add_class(field_ref[0])
        nat = add(struct.pack(">BHH", 12, add(utf8(field_ref[1])), add(utf8(field_ref[2]))))
        add(struct.pack(">BHH", 9, owner, nat))

    attributes = b""
    attribute_count = 0
    if source_file is not None:
        attribute_name = add(utf8("SourceFile"))
        attributes = struct.pack(">HIH", attribute_name, 2, add(utf8(source_file)))
        attribute_count = 1

    return b"".join(
        (
            struct.pack(">IHHH", 0xCAFEBABE, 0, 52, len(entries) + 1),
            *entries,
            struct.pack(">HHH", 0x0021, this_index, super_index),
            struct.pack(f">H{len(interface_indices)}H", len(interface_indices), *interface_indices),
            struct.pack(">H", 1 if field else 0),
            fields,
            struct.pack(">H", 1 if method else 0),
            methods,
            struct.pack(">H", attribute_count),
            attributes,
        )
    )


@pytest.fixture
def sample_class() -> bytes:
    return build_class(
        "a",
        field=("b", "La;"),
        method=("c", "(La;)V"),
        field_ref=("a", "b", "La;"),
        source_file="a.java",
    )


@pytest.fixture
def mapping_archives(tmp_path: Path) -> tuple[Path, Path]:
    """SRG and MCP archives renaming ``a`` to ``net/Foo`` and its members."""
    srg = tmp_path / "srg.zip"
    mcp = tmp_path / "mcp.zip"
    with zipfile.ZipFile(srg, "w") as archive:
        archive.writestr(
            COMPACT_ENTRY,
            "a net/Foo\nd net/Sub\na b field_1_b\na c (La;)V func_1_c\n",
        )
    with zipfile.ZipFile(mcp, "w") as archive:
        archive.writestr(FIELDS_ENTRY, CSV_HEADER + "field_1_b,owner,2\n")
        archive.writestr(METHODS_ENTRY, CSV_HEADER + "func_1_c,setOwner,2\n")
    return srg, mcp


@pytest.fixture
def class_builder():
    return build_class
