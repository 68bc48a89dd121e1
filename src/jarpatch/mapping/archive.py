"""Two-pass archive transform.

Pass 1 reads every class header into an :class:`InheritanceIndex`; pass 2
streams the entries in their original order, remapping class files against a
resolver built from that frozen index.
"""

from __future__ import annotations

import zipfile
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from jarpatch.core.logging import get_logger
from jarpatch.core.progress import progress
from jarpatch.mapping.classfile import read_hierarchy, remap_class
from jarpatch.mapping.parsers import MappingBundle
from jarpatch.mapping.resolver import (
    ComposedResolver,
    CosmeticResolver,
    InheritanceIndex,
    NameResolver,
    StructuralResolver,
)

CLASS_SUFFIX = ".class"
SIGNATURE_SUFFIXES = (".SF", ".RSA", ".DSA", ".EC")

ResolverFactory = Callable[[InheritanceIndex], NameResolver]


def is_signature_entry(name: str) -> bool:
    """Whether ``name`` is a jar signing artifact, invalid after any rewrite."""
    upper = name.upper()
    if not upper.startswith("META-INF/"):
        return False
    base = upper[len("META-INF/") :]
    if "/" in base:
        return False
    return base.endswith(SIGNATURE_SUFFIXES) or base.startswith("SIG-")


def is_class_entry(info: zipfile.ZipInfo) -> bool:
    return not info.is_dir() and info.filename.endswith(CLASS_SUFFIX)


@dataclass
class TransformReport:
    classes: int = 0
    renamed: int = 0
    resources: int = 0
    directories: int = 0
    dropped: list[str] = field(default_factory=list)


def build_inheritance_index(archive: zipfile.ZipFile) -> InheritanceIndex:
    """Pass 1: collect the declared supertypes of every class in ``archive``."""
    hierarchies = [
        read_hierarchy(archive.read(info), info.filename)
        for info in archive.infolist()
        if is_class_entry(info)
    ]
    return InheritanceIndex.from_hierarchies(hierarchies)


def resolver_for(bundle: MappingBundle) -> ResolverFactory:
    """Factory composing the structural and cosmetic passes for one bundle."""
    cosmetic = CosmeticResolver(bundle.cosmetic)

    def build(index: InheritanceIndex) -> NameResolver:
        return ComposedResolver(StructuralResolver(bundle.types, bundle.members, index), cosmetic)

    return build


def _copy_info(info: zipfile.ZipInfo, filename: str | None = None) -> zipfile.ZipInfo:
    copied = zipfile.ZipInfo(filename or info.filename, date_time=info.date_time)
    copied.compress_type = info.compress_type
    copied.external_attr = info.external_attr
    copied.comment = info.comment
    return copied


def transform_archive(
    source: Path,
    target: Path,
    resolver_factory: ResolverFactory,
    logger: structlog.stdlib.BoundLogger | None = None,
) -> TransformReport:
    """Remap every class in ``source`` and write the result to ``target``.

    Directories and resources are copied with their bytes untouched, signing
    files are dropped, and class entries are written under their renamed
    path. An entry that would collide with one already written is dropped
    with a warning.

    Raises:
        ClassFormatError: If any class entry cannot be parsed or rewritten.
    """
    log = logger or get_logger(__name__)
    report = TransformReport()

    with zipfile.ZipFile(source) as zin:
        index = build_inheritance_index(zin)
        resolver = resolver_factory(index)
        log.debug("inheritance index built", archive=str(source), classes=len(index))

        written: set[str] = set()
        with zipfile.ZipFile(target, "w", zipfile.ZIP_DEFLATED) as zout:
            for info in progress(zin.infolist(), desc="Remapping"):
                name = info.filename
                if is_signature_entry(name):
                    report.dropped.append(name)
                    continue

                if info.is_dir():
                    out_name, data = name, b""
                    report.directories += 1
                elif is_class_entry(info):
                    new_name, data = remap_class(zin.read(info), resolver, name)
                    out_name = new_name + CLASS_SUFFIX
                    report.classes += 1
                    if out_name != name:
                        report.renamed += 1
                else:
                    out_name, data = name, zin.read(info)
                    report.resources += 1

                if out_name in written:
                    log.warning("duplicate archive entry dropped", entry=name, target=out_name)
                    report.dropped.append(name)
                    continue
                written.add(out_name)
                zout.writestr(_copy_info(info, out_name), data)

    log.info(
        "archive remapped",
        source=str(source),
        target=str(target),
        classes=report.classes,
        renamed=report.renamed,
        resources=report.resources,
        dropped=len(report.dropped),
    )
    return report
