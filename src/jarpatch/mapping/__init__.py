"""Mapping parsers, name resolvers and the class archive transform."""

from jarpatch.mapping.archive import (
    TransformReport,
    build_inheritance_index,
    is_signature_entry,
    resolver_for,
    transform_archive,
)
from jarpatch.mapping.classfile import ClassFile, read_hierarchy, remap_class
from jarpatch.mapping.parsers import (
    CosmeticMapping,
    MappingBundle,
    MemberMapping,
    Side,
    SymbolTable,
    load_compact_mapping,
    load_cosmetic_mapping,
    parse_compact_mapping,
    parse_csv_mapping,
    parse_csv_text,
    read_mapping_bundle,
)
from jarpatch.mapping.resolver import (
    ClassHierarchy,
    ComposedResolver,
    CosmeticResolver,
    InheritanceIndex,
    NameResolver,
    StructuralResolver,
)

__all__ = [
    # Parsers
    "CosmeticMapping",
    "MappingBundle",
    "MemberMapping",
    "Side",
    "SymbolTable",
    "load_compact_mapping",
    "load_cosmetic_mapping",
    "parse_compact_mapping",
    "parse_csv_mapping",
    "parse_csv_text",
    "read_mapping_bundle",
    # Resolvers
    "ClassHierarchy",
    "ComposedResolver",
    "CosmeticResolver",
    "InheritanceIndex",
    "NameResolver",
    "StructuralResolver",
    # Class files and archives
    "ClassFile",
    "TransformReport",
    "build_inheritance_index",
    "is_signature_entry",
    "read_hierarchy",
    "remap_class",
    "resolver_for",
    "transform_archive",
]
