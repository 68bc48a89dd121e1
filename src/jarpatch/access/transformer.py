"""Visibility rewriting on Java source with tree-sitter.

Edits are collected as byte ranges against the parsed source and applied
back to front, so every other byte of the file is preserved.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import structlog
import tree_sitter
import tree_sitter_java

from jarpatch.access.models import AccessTransformationMap, TransformationEntry, Visibility
from jarpatch.core.errors import AccessFormatError
from jarpatch.core.logging import get_logger

JAVA_LANGUAGE = tree_sitter.Language(tree_sitter_java.language())

TYPE_DECLARATIONS = frozenset(
    {
        "class_declaration",
        "interface_declaration",
        "enum_declaration",
        "record_declaration",
        "annotation_type_declaration",
    }
)
FIELD_DECLARATIONS = frozenset({"field_declaration", "constant_declaration"})
VISIBILITY_KEYWORDS = frozenset({"public", "protected", "private"})
ANNOTATIONS = frozenset({"marker_annotation", "annotation"})


@dataclass(frozen=True, slots=True)
class _Edit:
    start: int
    end: int
    text: bytes


def _name(node: Any) -> str | None:
    name = node.child_by_field_name("name")
    return name.text.decode("utf-8") if name is not None else None


def _modifiers(node: Any) -> Any | None:
    for child in node.children:
        if child.type == "modifiers":
            return child
    return None


def _members(body: Any) -> list[Any]:
    members = []
    for child in body.named_children:
        if child.type == "enum_body_declarations":
            members.extend(child.named_children)
        else:
            members.append(child)
    return members


def _package_name(root: Any) -> str:
    for child in root.named_children:
        if child.type != "package_declaration":
            continue
        for part in child.named_children:
            if part.type in ("scoped_identifier", "identifier"):
                return part.text.decode("utf-8")
    return ""


def _skip_blanks(data: bytes, pos: int) -> int:
    while pos < len(data) and data[pos : pos + 1] in (b" ", b"\t"):
        pos += 1
    return pos


def visibility_edits(declaration: Any, data: bytes, visibility: Visibility) -> list[_Edit]:
    """Edits that give ``declaration`` exactly ``visibility``."""
    keyword = visibility.keyword
    modifiers = _modifiers(declaration)
    present = (
        [child for child in modifiers.children if child.type in VISIBILITY_KEYWORDS]
        if modifiers is not None
        else []
    )

    if present:
        first, *rest = present
        edits = [_Edit(node.start_byte, _skip_blanks(data, node.end_byte), b"") for node in rest]
        if keyword is None:
            edits.append(_Edit(first.start_byte, _skip_blanks(data, first.end_byte), b""))
        elif first.text.decode("utf-8") != keyword:
            edits.append(_Edit(first.start_byte, first.end_byte, keyword.encode()))
        return edits

    if keyword is None:
        return []
    if modifiers is None:
        return [_Edit(declaration.start_byte, declaration.start_byte, f"{keyword} ".encode())]
    for child in modifiers.children:
        if child.type not in ANNOTATIONS:
            return [_Edit(child.start_byte, child.start_byte, f"{keyword} ".encode())]
    return [_Edit(modifiers.end_byte, modifiers.end_byte, f" {keyword}".encode())]


class AccessTransformer:
    """Applies an :class:`AccessTransformationMap` to Java compilation units.

    Nested types are looked up as ``Outer.Inner`` first and ``Outer$Inner``
    second; types without an entry are left untouched, as are their members.
    """

    def __init__(
        self,
        access_map: AccessTransformationMap,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._map = access_map
        self._parser = tree_sitter.Parser(JAVA_LANGUAGE)
        self._log = logger or get_logger(__name__)

    def apply(self, source: str, path: str | Path | None = None) -> str:
        """Return ``source`` with the mapped visibility overrides applied.

        Raises:
            AccessFormatError: If the source does not parse as Java.
        """
        if not self._map:
            return source
        data = source.encode("utf-8")
        tree = self._parser.parse(data)
        if tree.root_node.has_error:
            raise AccessFormatError.unparseable_source(str(path or "<source>"))

        package = _package_name(tree.root_node)
        edits: list[_Edit] = []
        for node in tree.root_node.named_children:
            if node.type in TYPE_DECLARATIONS:
                name = _name(node)
                if name is None:
                    continue
                qualified = f"{package}.{name}" if package else name
                self._visit_type(node, data, qualified, qualified, edits)

        if not edits:
            return source
        for edit in sorted(edits, key=lambda e: (e.start, e.end), reverse=True):
            data = data[: edit.start] + edit.text + data[edit.end :]
        self._log.debug("access transformed", path=str(path) if path else None, edits=len(edits))
        return data.decode("utf-8")

    def _lookup(self, dotted: str, binary: str) -> TransformationEntry | None:
        entry = self._map.get(dotted)
        if entry is None and binary != dotted:
            entry = self._map.get(binary)
        return entry

    def _visit_type(
        self, node: Any, data: bytes, dotted: str, binary: str, edits: list[_Edit]
    ) -> None:
        entry = self._lookup(dotted, binary)
        if entry is not None and entry.visibility is not None:
            edits.extend(visibility_edits(node, data, entry.visibility))

        body = node.child_by_field_name("body")
        if body is None:
            return
        for member in _members(body):
            if member.type in TYPE_DECLARATIONS:
                name = _name(member)
                if name is not None:
                    self._visit_type(member, data, f"{dotted}.{name}", f"{binary}${name}", edits)
            elif entry is None:
                continue
            elif member.type in FIELD_DECLARATIONS:
                self._field(member, data, entry, edits)
            elif member.type == "method_declaration":
                name = _name(member)
                visibility = entry.method_visibility(name) if name else None
                if visibility is not None:
                    edits.extend(visibility_edits(member, data, visibility))

    def _field(
        self, member: Any, data: bytes, entry: TransformationEntry, edits: list[_Edit]
    ) -> None:
        for declarator in member.children_by_field_name("declarator"):
            name = _name(declarator)
            visibility = entry.field_visibility(name) if name else None
            if visibility is not None:
                # one declaration statement shares one set of modifiers
                edits.extend(visibility_edits(member, data, visibility))
                return
