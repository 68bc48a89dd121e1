"""Minimal JVM class-file codec and the symbol rewriting pass.

Only the structures that carry symbolic names are decoded. Everything else
(bytecode, stack maps, type annotations, unknown attributes) travels as raw
bytes. The constant pool keeps every existing index so bytecode operands stay
valid; renamed names and name-and-type pairs are appended as new entries and
the referring entries are repointed.
"""

from __future__ import annotations

import struct
from collections.abc import Callable
from dataclasses import dataclass, field

from jarpatch.core.errors import ClassFormatError
from jarpatch.mapping.resolver import ClassHierarchy, NameResolver

MAGIC = 0xCAFEBABE
MAX_POOL_SIZE = 0xFFFF

UTF8 = 1
INTEGER = 3
FLOAT = 4
LONG = 5
DOUBLE = 6
CLASS = 7
STRING = 8
FIELDREF = 9
METHODREF = 10
INTERFACE_METHODREF = 11
NAME_AND_TYPE = 12
METHOD_HANDLE = 15
METHOD_TYPE = 16
DYNAMIC = 17
INVOKE_DYNAMIC = 18
MODULE = 19
PACKAGE = 20

_RAW_SIZES = {INTEGER: 4, FLOAT: 4, LONG: 8, DOUBLE: 8}
_ONE_REF = frozenset({CLASS, STRING, METHOD_TYPE, MODULE, PACKAGE})
_TWO_REFS = frozenset(
    {FIELDREF, METHODREF, INTERFACE_METHODREF, NAME_AND_TYPE, DYNAMIC, INVOKE_DYNAMIC}
)

STRIPPED_ATTRIBUTES = frozenset(
    {
        "SourceFile",
        "SourceDebugExtension",
        "LineNumberTable",
        "LocalVariableTable",
        "LocalVariableTypeTable",
    }
)
ANNOTATION_ATTRIBUTES = frozenset({"RuntimeVisibleAnnotations", "RuntimeInvisibleAnnotations"})
PARAMETER_ANNOTATION_ATTRIBUTES = frozenset(
    {"RuntimeVisibleParameterAnnotations", "RuntimeInvisibleParameterAnnotations"}
)

LAMBDA_METAFACTORY = "java/lang/invoke/LambdaMetafactory"
LAMBDA_FACTORIES = frozenset({"metafactory", "altMetafactory"})


# =============================================================================
# Modified UTF-8
# =============================================================================


def decode_modified_utf8(raw: bytes) -> str:
    """Decode the JVM's modified UTF-8 (``C0 80`` nulls, CESU-8 surrogates)."""
    text = raw.replace(b"\xc0\x80", b"\x00").decode("utf-8", "surrogatepass")
    # join surrogate pairs into supplementary characters
    return text.encode("utf-16-be", "surrogatepass").decode("utf-16-be", "surrogatepass")


def encode_modified_utf8(text: str) -> bytes:
    if max(text, default="\0") <= "\uffff":
        return text.encode("utf-8", "surrogatepass").replace(b"\x00", b"\xc0\x80")
    units = text.encode("utf-16-be", "surrogatepass")
    split = "".join(
        chr(int.from_bytes(units[i : i + 2], "big")) for i in range(0, len(units), 2)
    )
    return split.encode("utf-8", "surrogatepass").replace(b"\x00", b"\xc0\x80")


# =============================================================================
# Structures
# =============================================================================


@dataclass(frozen=True, slots=True)
class Constant:
    """One constant pool entry.

    ``data`` holds the payload of Utf8 and numeric entries; ``refs`` holds
    the indices (and, for method handles, the reference kind) of the others.
    """

    tag: int
    data: bytes = b""
    refs: tuple[int, ...] = ()

    def to_bytes(self) -> bytes:
        if self.tag == UTF8:
            return struct.pack(">BH", UTF8, len(self.data)) + self.data
        if self.tag in _RAW_SIZES:
            return bytes((self.tag,)) + self.data
        if self.tag in _ONE_REF:
            return struct.pack(">BH", self.tag, self.refs[0])
        if self.tag in _TWO_REFS:
            return struct.pack(">BHH", self.tag, *self.refs)
        if self.tag == METHOD_HANDLE:
            return struct.pack(">BBH", self.tag, *self.refs)
        raise ClassFormatError.malformed(f"unknown constant pool tag {self.tag}")


@dataclass(slots=True)
class Attribute:
    name_index: int
    info: bytes


@dataclass(slots=True)
class MemberInfo:
    access_flags: int
    name_index: int
    descriptor_index: int
    attributes: list[Attribute] = field(default_factory=list)


class _Reader:
    __slots__ = ("data", "pos")

    def __init__(self, data: bytes, pos: int = 0) -> None:
        self.data = data
        self.pos = pos

    def u1(self) -> int:
        (value,) = struct.unpack_from(">B", self.data, self.pos)
        self.pos += 1
        return value

    def u2(self) -> int:
        (value,) = struct.unpack_from(">H", self.data, self.pos)
        self.pos += 2
        return value

    def u4(self) -> int:
        (value,) = struct.unpack_from(">I", self.data, self.pos)
        self.pos += 4
        return value

    def take(self, length: int) -> bytes:
        end = self.pos + length
        if end > len(self.data):
            raise struct.error("unexpected end of data")
        chunk = bytes(self.data[self.pos : end])
        self.pos = end
        return chunk


class ConstantPool:
    """Constant pool with 1-based indices; long and double take two slots."""

    def __init__(self, entries: list[Constant | None] | None = None) -> None:
        self.entries: list[Constant | None] = entries if entries is not None else [None]
        self._lookup: dict[Constant, int] | None = None

    @classmethod
    def read(cls, reader: _Reader) -> ConstantPool:
        count = reader.u2()
        entries: list[Constant | None] = [None]
        while len(entries) < count:
            tag = reader.u1()
            if tag == UTF8:
                entries.append(Constant(UTF8, data=reader.take(reader.u2())))
            elif tag in _RAW_SIZES:
                entries.append(Constant(tag, data=reader.take(_RAW_SIZES[tag])))
                if tag in (LONG, DOUBLE):
                    entries.append(None)
            elif tag in _ONE_REF:
                entries.append(Constant(tag, refs=(reader.u2(),)))
            elif tag in _TWO_REFS:
                entries.append(Constant(tag, refs=(reader.u2(), reader.u2())))
            elif tag == METHOD_HANDLE:
                entries.append(Constant(tag, refs=(reader.u1(), reader.u2())))
            else:
                raise ClassFormatError.malformed(
                    f"unknown constant pool tag {tag} at offset {reader.pos - 1}"
                )
        return cls(entries)

    def copy(self) -> ConstantPool:
        return ConstantPool(list(self.entries))

    def __len__(self) -> int:
        return len(self.entries)

    def items(self) -> list[tuple[int, Constant | None]]:
        return list(enumerate(self.entries))

    def __getitem__(self, index: int) -> Constant:
        if not 0 < index < len(self.entries):
            raise ClassFormatError.malformed(f"constant pool index {index} out of range")
        entry = self.entries[index]
        if entry is None:
            raise ClassFormatError.malformed(f"constant pool index {index} is unusable")
        return entry

    def __setitem__(self, index: int, constant: Constant) -> None:
        previous = self.entries[index]
        self.entries[index] = constant
        if self._lookup is not None:
            if previous is not None and self._lookup.get(previous) == index:
                del self._lookup[previous]
            self._lookup.setdefault(constant, index)

    def _expect(self, index: int, tag: int) -> Constant:
        entry = self[index]
        if entry.tag != tag:
            raise ClassFormatError.malformed(
                f"constant pool index {index} has tag {entry.tag}, expected {tag}"
            )
        return entry

    def utf8(self, index: int) -> str:
        return decode_modified_utf8(self._expect(index, UTF8).data)

    def class_name(self, index: int) -> str:
        return self.utf8(self._expect(index, CLASS).refs[0])

    def name_and_type(self, index: int) -> tuple[str, str]:
        name_index, descriptor_index = self._expect(index, NAME_AND_TYPE).refs
        return self.utf8(name_index), self.utf8(descriptor_index)

    def add(self, constant: Constant) -> int:
        """Index of an equal entry, appending one if none exists."""
        if self._lookup is None:
            self._lookup = {}
            for index, entry in enumerate(self.entries):
                if entry is not None:
                    self._lookup.setdefault(entry, index)
        index = self._lookup.get(constant)
        if index is None:
            index = len(self.entries)
            self.entries.append(constant)
            self._lookup[constant] = index
        return index

    def add_utf8(self, text: str) -> int:
        raw = encode_modified_utf8(text)
        if len(raw) > 0xFFFF:
            raise ClassFormatError.malformed(f"constant of {len(raw)} bytes is too long")
        return self.add(Constant(UTF8, data=raw))

    def add_name_and_type(self, name: str, descriptor: str) -> int:
        return self.add(
            Constant(NAME_AND_TYPE, refs=(self.add_utf8(name), self.add_utf8(descriptor)))
        )

    def to_bytes(self) -> bytes:
        if len(self.entries) > MAX_POOL_SIZE:
            raise ClassFormatError.malformed(
                f"constant pool needs {len(self.entries)} slots, limit is {MAX_POOL_SIZE}"
            )
        parts = [struct.pack(">H", len(self.entries))]
        parts.extend(entry.to_bytes() for entry in self.entries if entry is not None)
        return b"".join(parts)


def _read_attributes(reader: _Reader) -> list[Attribute]:
    return [Attribute(reader.u2(), reader.take(reader.u4())) for _ in range(reader.u2())]


def _write_attributes(attributes: list[Attribute]) -> bytes:
    parts = [struct.pack(">H", len(attributes))]
    for attribute in attributes:
        parts.append(struct.pack(">HI", attribute.name_index, len(attribute.info)))
        parts.append(attribute.info)
    return b"".join(parts)


def _read_members(reader: _Reader) -> list[MemberInfo]:
    return [
        MemberInfo(reader.u2(), reader.u2(), reader.u2(), _read_attributes(reader))
        for _ in range(reader.u2())
    ]


def _write_members(members: list[MemberInfo]) -> bytes:
    parts = [struct.pack(">H", len(members))]
    for member in members:
        parts.append(
            struct.pack(">HHH", member.access_flags, member.name_index, member.descriptor_index)
        )
        parts.append(_write_attributes(member.attributes))
    return b"".join(parts)


@dataclass
class ClassFile:
    minor_version: int
    major_version: int
    pool: ConstantPool
    access_flags: int
    this_class: int
    super_class: int
    interfaces: list[int]
    fields: list[MemberInfo]
    methods: list[MemberInfo]
    attributes: list[Attribute]

    @classmethod
    def parse(cls, data: bytes, entry: str | None = None) -> ClassFile:
        reader = _Reader(data)
        try:
            minor, major, pool = _read_preamble(reader)
            access_flags, this_class, super_class = reader.u2(), reader.u2(), reader.u2()
            interfaces = [reader.u2() for _ in range(reader.u2())]
            fields = _read_members(reader)
            methods = _read_members(reader)
            attributes = _read_attributes(reader)
        except struct.error as e:
            raise ClassFormatError.malformed("unexpected end of data", entry) from e
        return cls(
            minor_version=minor,
            major_version=major,
            pool=pool,
            access_flags=access_flags,
            this_class=this_class,
            super_class=super_class,
            interfaces=interfaces,
            fields=fields,
            methods=methods,
            attributes=attributes,
        )

    @property
    def name(self) -> str:
        return self.pool.class_name(self.this_class)

    @property
    def super_name(self) -> str | None:
        return self.pool.class_name(self.super_class) if self.super_class else None

    def attribute_name(self, attribute: Attribute) -> str:
        return self.pool.utf8(attribute.name_index)

    def to_bytes(self) -> bytes:
        header = struct.pack(
            ">HHH", self.access_flags, self.this_class, self.super_class
        ) + struct.pack(f">H{len(self.interfaces)}H", len(self.interfaces), *self.interfaces)
        return b"".join(
            (
                struct.pack(">IHH", MAGIC, self.minor_version, self.major_version),
                self.pool.to_bytes(),
                header,
                _write_members(self.fields),
                _write_members(self.methods),
                _write_attributes(self.attributes),
            )
        )


def _read_preamble(reader: _Reader) -> tuple[int, int, ConstantPool]:
    if reader.u4() != MAGIC:
        raise ClassFormatError.malformed("bad magic number")
    minor, major = reader.u2(), reader.u2()
    return minor, major, ConstantPool.read(reader)


def read_hierarchy(data: bytes, entry: str | None = None) -> ClassHierarchy:
    """Read only the header: this class, its superclass and interfaces."""
    reader = _Reader(data)
    try:
        _, _, pool = _read_preamble(reader)
        reader.u2()  # access flags
        this_class, super_class = reader.u2(), reader.u2()
        interfaces = tuple(pool.class_name(reader.u2()) for _ in range(reader.u2()))
    except struct.error as e:
        raise ClassFormatError.malformed("unexpected end of data", entry) from e
    return ClassHierarchy(
        name=pool.class_name(this_class),
        super_name=pool.class_name(super_class) if super_class else None,
        interfaces=interfaces,
    )


# =============================================================================
# Remapping
# =============================================================================


def _u2(buf: bytes | bytearray, pos: int) -> int:
    return struct.unpack_from(">H", buf, pos)[0]


def _return_type(method_descriptor: str) -> str:
    returned = method_descriptor[method_descriptor.index(")") + 1 :]
    if returned.startswith("L") and returned.endswith(";"):
        return returned[1:-1]
    return returned


class _ClassRemapper:
    """Rewrites one parsed class in place.

    All lookups go through ``original``, a snapshot of the pool taken before
    any entry is repointed, so every name is resolved from its obfuscated form.
    """

    def __init__(self, cf: ClassFile, resolver: NameResolver) -> None:
        self.cf = cf
        self.pool = cf.pool
        self.original = cf.pool.copy()
        self.resolver = resolver
        self.owner = self.original.class_name(cf.this_class)
        self._handlers: dict[str, Callable[[bytes], bytes]] = {
            "Signature": self._signature,
            "Code": self._code,
            "InnerClasses": self._inner_classes,
            "EnclosingMethod": self._enclosing_method,
            "AnnotationDefault": self._annotation_default,
            "Record": self._record,
        }

    def run(self) -> str:
        bootstrap = self._bootstrap_methods()
        for index, entry in self.original.items():
            if entry is None:
                continue
            if entry.tag == CLASS:
                self._class_entry(index, entry)
            elif entry.tag in (FIELDREF, METHODREF, INTERFACE_METHODREF):
                self._member_ref(index, entry)
            elif entry.tag == METHOD_TYPE:
                self._method_type(index, entry)
            elif entry.tag in (DYNAMIC, INVOKE_DYNAMIC):
                self._dynamic(index, entry, bootstrap)

        for member in self.cf.fields:
            self._member(member, is_method=False)
        for member in self.cf.methods:
            self._member(member, is_method=True)
        self.cf.attributes = self._attributes(self.cf.attributes)
        return self.resolver.map_type(self.owner)

    # -- constant pool ---------------------------------------------------------

    def _repoint_utf8(self, old: str, new: str, index: int) -> int:
        return index if new == old else self.pool.add_utf8(new)

    def _class_entry(self, index: int, entry: Constant) -> None:
        old = self.original.utf8(entry.refs[0])
        new = self.resolver.map_internal_name(old)
        if new != old:
            self.pool[index] = Constant(CLASS, refs=(self.pool.add_utf8(new),))

    def _member_ref(self, index: int, entry: Constant) -> None:
        class_index, nat_index = entry.refs
        owner = self.original.class_name(class_index)
        name, descriptor = self.original.name_and_type(nat_index)
        if entry.tag == FIELDREF:
            new_name = self.resolver.map_field_name(owner, name, descriptor)
            new_descriptor = self.resolver.map_descriptor(descriptor)
        else:
            new_name = self.resolver.map_method_name(owner, name, descriptor)
            new_descriptor = self.resolver.map_method_descriptor(descriptor)
        if (new_name, new_descriptor) != (name, descriptor):
            # name-and-type entries may be shared between owners, never rewrite them
            new_nat = self.pool.add_name_and_type(new_name, new_descriptor)
            self.pool[index] = Constant(entry.tag, refs=(class_index, new_nat))

    def _method_type(self, index: int, entry: Constant) -> None:
        old = self.original.utf8(entry.refs[0])
        new = self.resolver.map_method_descriptor(old)
        if new != old:
            self.pool[index] = Constant(METHOD_TYPE, refs=(self.pool.add_utf8(new),))

    def _bootstrap_methods(self) -> list[tuple[int, tuple[int, ...]]]:
        for attribute in self.cf.attributes:
            if self.original.utf8(attribute.name_index) != "BootstrapMethods":
                continue
            reader = _Reader(attribute.info)
            methods = []
            for _ in range(reader.u2()):
                ref = reader.u2()
                methods.append((ref, tuple(reader.u2() for _ in range(reader.u2()))))
            return methods
        return []

    def _lambda_sam_descriptor(self, method: tuple[int, tuple[int, ...]]) -> str | None:
        handle_index, arguments = method
        handle = self.original[handle_index]
        if handle.tag != METHOD_HANDLE:
            return None
        target = self.original[handle.refs[1]]
        if target.tag not in (METHODREF, INTERFACE_METHODREF):
            return None
        factory_owner = self.original.class_name(target.refs[0])
        factory_name, _ = self.original.name_and_type(target.refs[1])
        if factory_owner != LAMBDA_METAFACTORY or factory_name not in LAMBDA_FACTORIES:
            return None
        if not arguments or self.original[arguments[0]].tag != METHOD_TYPE:
            return None
        return self.original.utf8(self.original[arguments[0]].refs[0])

    def _dynamic(
        self, index: int, entry: Constant, bootstrap: list[tuple[int, tuple[int, ...]]]
    ) -> None:
        bsm_index, nat_index = entry.refs
        name, descriptor = self.original.name_and_type(nat_index)
        if entry.tag == INVOKE_DYNAMIC:
            new_descriptor = self.resolver.map_method_descriptor(descriptor)
        else:
            new_descriptor = self.resolver.map_descriptor(descriptor)

        new_name = name
        if entry.tag == INVOKE_DYNAMIC and bsm_index < len(bootstrap):
            sam_descriptor = self._lambda_sam_descriptor(bootstrap[bsm_index])
            if sam_descriptor is not None:
                new_name = self.resolver.map_method_name(
                    _return_type(descriptor), name, sam_descriptor
                )

        if (new_name, new_descriptor) != (name, descriptor):
            new_nat = self.pool.add_name_and_type(new_name, new_descriptor)
            self.pool[index] = Constant(entry.tag, refs=(bsm_index, new_nat))

    # -- members ---------------------------------------------------------------

    def _member(self, member: MemberInfo, is_method: bool) -> None:
        name = self.original.utf8(member.name_index)
        descriptor = self.original.utf8(member.descriptor_index)
        if is_method:
            new_name = self.resolver.map_method_name(self.owner, name, descriptor)
            new_descriptor = self.resolver.map_method_descriptor(descriptor)
        else:
            new_name = self.resolver.map_field_name(self.owner, name, descriptor)
            new_descriptor = self.resolver.map_descriptor(descriptor)
        member.name_index = self._repoint_utf8(name, new_name, member.name_index)
        member.descriptor_index = self._repoint_utf8(
            descriptor, new_descriptor, member.descriptor_index
        )
        member.attributes = self._attributes(member.attributes)

    # -- attributes ------------------------------------------------------------

    def _attributes(self, attributes: list[Attribute]) -> list[Attribute]:
        result = []
        for attribute in attributes:
            name = self.original.utf8(attribute.name_index)
            if name in STRIPPED_ATTRIBUTES:
                continue
            if name in ANNOTATION_ATTRIBUTES:
                info = self._annotations(attribute.info)
            elif name in PARAMETER_ANNOTATION_ATTRIBUTES:
                info = self._parameter_annotations(attribute.info)
            elif name in self._handlers:
                info = self._handlers[name](attribute.info)
            else:
                info = attribute.info
            result.append(Attribute(attribute.name_index, info))
        return result

    def _signature(self, info: bytes) -> bytes:
        index = _u2(info, 0)
        old = self.original.utf8(index)
        new = self.resolver.map_signature(old)
        return struct.pack(">H", self._repoint_utf8(old, new, index))

    def _code(self, info: bytes) -> bytes:
        reader = _Reader(info, 4)  # max_stack, max_locals
        reader.take(reader.u4())  # bytecode
        reader.take(reader.u2() * 8)  # exception table
        head = info[: reader.pos]
        return head + _write_attributes(self._attributes(_read_attributes(reader)))

    def _inner_classes(self, info: bytes) -> bytes:
        buf = bytearray(info)
        for i in range(_u2(buf, 0)):
            pos = 2 + i * 8
            inner_index, outer_index = _u2(buf, pos), _u2(buf, pos + 2)
            name_index = _u2(buf, pos + 4)
            if not name_index:
                continue
            simple = self.original.utf8(name_index)
            inner = self.original.class_name(inner_index)
            outer = self.original.class_name(outer_index) if outer_index else None
            new = self.resolver.map_inner_name(inner, outer, simple)
            struct.pack_into(">H", buf, pos + 4, self._repoint_utf8(simple, new, name_index))
        return bytes(buf)

    def _enclosing_method(self, info: bytes) -> bytes:
        class_index, method_index = _u2(info, 0), _u2(info, 2)
        if not method_index:
            return info
        owner = self.original.class_name(class_index)
        name, descriptor = self.original.name_and_type(method_index)
        new_nat = self.pool.add_name_and_type(
            self.resolver.map_method_name(owner, name, descriptor),
            self.resolver.map_method_descriptor(descriptor),
        )
        return struct.pack(">HH", class_index, new_nat)

    def _record(self, info: bytes) -> bytes:
        reader = _Reader(info)
        parts = [info[:2]]
        for _ in range(reader.u2()):
            component = MemberInfo(0, reader.u2(), reader.u2(), _read_attributes(reader))
            self._member(component, is_method=False)
            parts.append(struct.pack(">HH", component.name_index, component.descriptor_index))
            parts.append(_write_attributes(component.attributes))
        return b"".join(parts)

    def _annotations(self, info: bytes) -> bytes:
        buf = bytearray(info)
        pos = 2
        for _ in range(_u2(buf, 0)):
            pos = self._annotation(buf, pos)
        return bytes(buf)

    def _parameter_annotations(self, info: bytes) -> bytes:
        buf = bytearray(info)
        pos = 1
        for _ in range(buf[0]):
            count = _u2(buf, pos)
            pos += 2
            for _ in range(count):
                pos = self._annotation(buf, pos)
        return bytes(buf)

    def _annotation_default(self, info: bytes) -> bytes:
        buf = bytearray(info)
        self._element_value(buf, 0)
        return bytes(buf)

    def _patch_descriptor(self, buf: bytearray, pos: int) -> None:
        index = _u2(buf, pos)
        old = self.original.utf8(index)
        struct.pack_into(
            ">H", buf, pos, self._repoint_utf8(old, self.resolver.map_descriptor(old), index)
        )

    def _annotation(self, buf: bytearray, pos: int) -> int:
        self._patch_descriptor(buf, pos)
        pairs = _u2(buf, pos + 2)
        pos += 4
        for _ in range(pairs):
            pos = self._element_value(buf, pos + 2)  # element_name_index
        return pos

    def _element_value(self, buf: bytearray, pos: int) -> int:
        tag = chr(buf[pos])
        pos += 1
        if tag == "e":
            self._patch_descriptor(buf, pos)
            return pos + 4
        if tag == "c":
            self._patch_descriptor(buf, pos)
            return pos + 2
        if tag == "@":
            return self._annotation(buf, pos)
        if tag == "[":
            count = _u2(buf, pos)
            pos += 2
            for _ in range(count):
                pos = self._element_value(buf, pos)
            return pos
        return pos + 2


def remap_class(
    data: bytes, resolver: NameResolver, entry: str | None = None
) -> tuple[str, bytes]:
    """Rename every symbolic reference in a class file.

    Returns the new internal name of the class and its rewritten bytes.
    Debug metadata (source file, line numbers, local variable tables) is
    stripped.

    Raises:
        ClassFormatError: If the class file is malformed or the rewritten
            constant pool would exceed its size limit.
    """
    cf = ClassFile.parse(data, entry)
    try:
        new_name = _ClassRemapper(cf, resolver).run()
        return new_name, cf.to_bytes()
    except (struct.error, IndexError, ValueError) as e:
        raise ClassFormatError.malformed(str(e) or type(e).__name__, entry) from e
