"""Tests for mapping/classfile.py."""

from __future__ import annotations

import struct

import pytest

from jarpatch.core.errors import ClassFormatError
from jarpatch.mapping.classfile import (
    CLASS,
    FIELDREF,
    INVOKE_DYNAMIC,
    METHOD_HANDLE,
    METHOD_TYPE,
    METHODREF,
    Attribute,
    ClassFile,
    Constant,
    ConstantPool,
    MemberInfo,
    decode_modified_utf8,
    encode_modified_utf8,
    read_hierarchy,
    remap_class,
)
from jarpatch.mapping.parsers import parse_compact_mapping
from jarpatch.mapping.resolver import NameResolver, StructuralResolver


@pytest.fixture
def resolver() -> StructuralResolver:
    types, members = parse_compact_mapping(
        "a net/Foo\na b field_1_b\na c (La;)V func_1_c\n"
    )
    return StructuralResolver(types, members)


class TestModifiedUtf8:
    """JVM string encoding tests."""

    @pytest.mark.parametrize("text", ["net/Foo", "café", "中文"])
    def test_plain_text_matches_utf8(self, text: str) -> None:
        assert encode_modified_utf8(text) == text.encode("utf-8")
        assert decode_modified_utf8(text.encode("utf-8")) == text

    def test_nul_is_two_bytes(self) -> None:
        assert encode_modified_utf8("a\x00b") == b"a\xc0\x80b"
        assert decode_modified_utf8(b"a\xc0\x80b") == "a\x00b"

    def test_supplementary_characters_use_surrogate_pairs(self) -> None:
        encoded = encode_modified_utf8("\U0001f600")

        assert len(encoded) == 6
        assert decode_modified_utf8(encoded) == "\U0001f600"


class TestClassFile:
    """Parse and serialize tests."""

    def test_parse_reads_header(self, sample_class: bytes) -> None:
        cf = ClassFile.parse(sample_class)

        assert cf.name == "a"
        assert cf.super_name == "java/lang/Object"
        assert cf.major_version == 52
        assert len(cf.fields) == 1
        assert len(cf.methods) == 1

    def test_round_trip_is_byte_identical(self, sample_class: bytes) -> None:
        assert ClassFile.parse(sample_class).to_bytes() == sample_class

    def test_bad_magic(self) -> None:
        with pytest.raises(ClassFormatError):
            ClassFile.parse(b"\x00\x00\x00\x00\x00\x00\x00\x34\x00\x01")

    def test_truncated(self, sample_class: bytes) -> None:
        with pytest.raises(ClassFormatError) as exc_info:
            ClassFile.parse(sample_class[:20], "a.class")

        assert exc_info.value.details["entry"] == "a.class"


class TestReadHierarchy:
    """Header-only parse tests."""

    def test_reads_supertypes(self, class_builder) -> None:
        data = class_builder("c", "b", interfaces=("i", "j"))

        hierarchy = read_hierarchy(data)

        assert hierarchy.name == "c"
        assert hierarchy.super_name == "b"
        assert hierarchy.interfaces == ("i", "j")


class TestRemapClass:
    """Symbol rewriting tests."""

    def test_given_mapped_class_when_remapped_then_name_and_members_renamed(
        self, sample_class: bytes, resolver: StructuralResolver
    ) -> None:
        """The class, its members and their descriptors all follow the mapping."""
        # Given
        data = sample_class

        # When
        new_name, out = remap_class(data, resolver)
        cf = ClassFile.parse(out)

        # Then
        assert new_name == "net/Foo"
        assert cf.name == "net/Foo"
        assert cf.super_name == "java/lang/Object"
        field = cf.fields[0]
        assert cf.pool.utf8(field.name_index) == "field_1_b"
        assert cf.pool.utf8(field.descriptor_index) == "Lnet/Foo;"
        method = cf.methods[0]
        assert cf.pool.utf8(method.name_index) == "func_1_c"
        assert cf.pool.utf8(method.descriptor_index) == "(Lnet/Foo;)V"

    def test_member_references_are_rewritten(
        self, sample_class: bytes, resolver: StructuralResolver
    ) -> None:
        _, out = remap_class(sample_class, resolver)
        pool = ClassFile.parse(out).pool

        refs = [entry for _, entry in pool.items() if entry is not None and entry.tag == FIELDREF]
        assert len(refs) == 1
        class_index, nat_index = refs[0].refs
        assert pool.class_name(class_index) == "net/Foo"
        assert pool.name_and_type(nat_index) == ("field_1_b", "Lnet/Foo;")

    def test_existing_pool_indices_are_preserved(
        self, sample_class: bytes, resolver: StructuralResolver
    ) -> None:
        before = ClassFile.parse(sample_class).pool
        _, out = remap_class(sample_class, resolver)
        after = ClassFile.parse(out).pool

        assert len(after) > len(before)
        assert after.utf8(1) == before.utf8(1) == "a"

    def test_debug_attributes_are_stripped(
        self, sample_class: bytes, resolver: StructuralResolver
    ) -> None:
        assert ClassFile.parse(sample_class).attributes

        _, out = remap_class(sample_class, resolver)

        assert ClassFile.parse(out).attributes == []

    def test_identity_resolver_keeps_name(self, class_builder) -> None:
        data = class_builder("x", method=("run", "()V"))

        new_name, out = remap_class(data, NameResolver())

        assert new_name == "x"
        assert out == data


class _Assembler:
    """Builds class files through the codec's own constant pool."""

    def __init__(
        self, name: str, super_name: str = "java/lang/Object", interfaces: tuple[str, ...] = ()
    ) -> None:
        self.pool = ConstantPool()
        self.this_class = self.class_ref(name)
        self.super_class = self.class_ref(super_name)
        self.interfaces = [self.class_ref(i) for i in interfaces]
        self.fields: list[MemberInfo] = []
        self.methods: list[MemberInfo] = []
        self.attributes: list[Attribute] = []

    def utf8(self, text: str) -> int:
        return self.pool.add_utf8(text)

    def class_ref(self, name: str) -> int:
        return self.pool.add(Constant(CLASS, refs=(self.utf8(name),)))

    def member_ref(self, tag: int, owner: str, name: str, descriptor: str) -> int:
        nat = self.pool.add_name_and_type(name, descriptor)
        return self.pool.add(Constant(tag, refs=(self.class_ref(owner), nat)))

    def attribute(self, name: str, info: bytes) -> Attribute:
        return Attribute(self.utf8(name), info)

    def field(self, name: str, descriptor: str, *attributes: Attribute) -> None:
        self.fields.append(
            MemberInfo(0x0002, self.utf8(name), self.utf8(descriptor), list(attributes))
        )

    def method(self, name: str, descriptor: str, *attributes: Attribute) -> None:
        self.methods.append(
            MemberInfo(0x0001, self.utf8(name), self.utf8(descriptor), list(attributes))
        )

    def build(self) -> bytes:
        return ClassFile(
            minor_version=0,
            major_version=61,
            pool=self.pool,
            access_flags=0x0021,
            this_class=self.this_class,
            super_class=self.super_class,
            interfaces=self.interfaces,
            fields=self.fields,
            methods=self.methods,
            attributes=self.attributes,
        ).to_bytes()


def _named(cf: ClassFile, attributes: list[Attribute], name: str) -> Attribute:
    matches = [a for a in attributes if cf.attribute_name(a) == name]
    assert len(matches) == 1, f"expected one {name} attribute"
    return matches[0]


def _u2_at(info: bytes, pos: int) -> int:
    return int(struct.unpack_from(">H", info, pos)[0])


@pytest.fixture
def rich_resolver() -> StructuralResolver:
    types, members = parse_compact_mapping(
        "a net/Foo\n"
        "a$b net/Foo$Bar\n"
        "i net/Task\n"
        "x net/Anno\n"
        "e net/Kind\n"
        "a f count\n"
        "a m ()V tick\n"
        "i r ()V run\n"
    )
    return StructuralResolver(types, members)


class TestRemapAttributes:
    """One test per rewritten attribute or constant kind."""

    def test_signature_attributes_follow_type_renames(
        self, rich_resolver: StructuralResolver
    ) -> None:
        asm = _Assembler("a")
        class_signature = struct.pack(">H", asm.utf8("<T:La;>Ljava/lang/Object;"))
        field_signature = struct.pack(">H", asm.utf8("Ljava/util/List<La$b;>;"))
        asm.attributes.append(asm.attribute("Signature", class_signature))
        asm.field("f", "Ljava/util/List;", asm.attribute("Signature", field_signature))

        _, out = remap_class(asm.build(), rich_resolver)
        cf = ClassFile.parse(out)

        signature = _named(cf, cf.attributes, "Signature")
        assert cf.pool.utf8(_u2_at(signature.info, 0)) == "<T:Lnet/Foo;>Ljava/lang/Object;"
        signature = _named(cf, cf.fields[0].attributes, "Signature")
        assert cf.pool.utf8(_u2_at(signature.info, 0)) == "Ljava/util/List<Lnet/Foo$Bar;>;"

    def test_inner_class_simple_names_follow_renamed_types(
        self, rich_resolver: StructuralResolver
    ) -> None:
        """Named entries get the new simple name; anonymous entries keep index 0."""
        # Given
        asm = _Assembler("a")
        named = struct.pack(
            ">HHHH", asm.class_ref("a$b"), asm.class_ref("a"), asm.utf8("b"), 0x0009
        )
        anonymous = struct.pack(">HHHH", asm.class_ref("a$1"), 0, 0, 0x0000)
        asm.attributes.append(
            asm.attribute("InnerClasses", struct.pack(">H", 2) + named + anonymous)
        )

        # When
        _, out = remap_class(asm.build(), rich_resolver)
        cf = ClassFile.parse(out)

        # Then
        info = _named(cf, cf.attributes, "InnerClasses").info
        assert cf.pool.class_name(_u2_at(info, 2)) == "net/Foo$Bar"
        assert cf.pool.class_name(_u2_at(info, 4)) == "net/Foo"
        assert cf.pool.utf8(_u2_at(info, 6)) == "Bar"
        assert _u2_at(info, 14) == 0

    def test_enclosing_method_is_renamed_through_its_owner(
        self, rich_resolver: StructuralResolver
    ) -> None:
        asm = _Assembler("a$1")
        owner = asm.class_ref("a")
        method = asm.pool.add_name_and_type("m", "()V")
        asm.attributes.append(asm.attribute("EnclosingMethod", struct.pack(">HH", owner, method)))

        _, out = remap_class(asm.build(), rich_resolver)
        cf = ClassFile.parse(out)

        info = _named(cf, cf.attributes, "EnclosingMethod").info
        assert cf.pool.class_name(_u2_at(info, 0)) == "net/Foo"
        assert cf.pool.name_and_type(_u2_at(info, 2)) == ("tick", "()V")

    def test_debug_tables_inside_code_are_stripped(
        self, rich_resolver: StructuralResolver
    ) -> None:
        """Line numbers and local variables go; the bytecode stays as it was."""
        # Given
        asm = _Assembler("a")
        line_numbers = asm.attribute("LineNumberTable", struct.pack(">HHH", 1, 0, 3))
        local_variables = asm.attribute(
            "LocalVariableTable",
            struct.pack(">HHHHHH", 1, 0, 1, asm.utf8("this"), asm.utf8("La;"), 0),
        )
        nested = b"".join(
            struct.pack(">HI", a.name_index, len(a.info)) + a.info
            for a in (line_numbers, local_variables)
        )
        bytecode = b"\xb1"  # return
        code = (
            struct.pack(">HHI", 1, 1, len(bytecode))
            + bytecode
            + struct.pack(">H", 0)
            + struct.pack(">H", 2)
            + nested
        )
        asm.method("m", "()V", asm.attribute("Code", code))

        # When
        _, out = remap_class(asm.build(), rich_resolver)
        cf = ClassFile.parse(out)

        # Then
        info = _named(cf, cf.methods[0].attributes, "Code").info
        assert info == struct.pack(">HHI", 1, 1, 1) + bytecode + struct.pack(">HH", 0, 0)
        assert cf.pool.utf8(cf.methods[0].name_index) == "tick"

    def test_given_lambda_invokedynamic_then_sam_name_renamed_through_interface(
        self, rich_resolver: StructuralResolver
    ) -> None:
        """The call site name is the interface method implemented by the lambda."""
        # Given
        asm = _Assembler("a")
        factory = asm.member_ref(
            METHODREF,
            "java/lang/invoke/LambdaMetafactory",
            "metafactory",
            "(Ljava/lang/invoke/MethodHandles$Lookup;Ljava/lang/String;"
            "Ljava/lang/invoke/MethodType;Ljava/lang/invoke/MethodType;"
            "Ljava/lang/invoke/MethodHandle;Ljava/lang/invoke/MethodType;)"
            "Ljava/lang/invoke/CallSite;",
        )
        bootstrap_handle = asm.pool.add(Constant(METHOD_HANDLE, refs=(6, factory)))
        sam_type = asm.pool.add(Constant(METHOD_TYPE, refs=(asm.utf8("()V"),)))
        body = asm.member_ref(METHODREF, "a", "lambda$0", "()V")
        body_handle = asm.pool.add(Constant(METHOD_HANDLE, refs=(6, body)))
        asm.attributes.append(
            asm.attribute(
                "BootstrapMethods",
                struct.pack(">HHHHHH", 1, bootstrap_handle, 3, sam_type, body_handle, sam_type),
            )
        )
        call_site = asm.pool.add(
            Constant(INVOKE_DYNAMIC, refs=(0, asm.pool.add_name_and_type("r", "()Li;")))
        )

        # When
        _, out = remap_class(asm.build(), rich_resolver)
        pool = ClassFile.parse(out).pool

        # Then
        bootstrap_index, nat = pool[call_site].refs
        assert bootstrap_index == 0
        assert pool.name_and_type(nat) == ("run", "()Lnet/Task;")

    def test_non_lambda_invokedynamic_keeps_its_name(
        self, rich_resolver: StructuralResolver
    ) -> None:
        asm = _Assembler("a")
        factory = asm.member_ref(
            METHODREF,
            "java/lang/invoke/StringConcatFactory",
            "makeConcatWithConstants",
            "()Ljava/lang/invoke/CallSite;",
        )
        handle = asm.pool.add(Constant(METHOD_HANDLE, refs=(6, factory)))
        asm.attributes.append(
            asm.attribute("BootstrapMethods", struct.pack(">HHH", 1, handle, 0))
        )
        call_site = asm.pool.add(
            Constant(INVOKE_DYNAMIC, refs=(0, asm.pool.add_name_and_type("r", "(La;)Li;")))
        )

        _, out = remap_class(asm.build(), rich_resolver)
        pool = ClassFile.parse(out).pool

        assert pool.name_and_type(pool[call_site].refs[1]) == ("r", "(Lnet/Foo;)Lnet/Task;")

    def test_annotation_descriptors_are_rewritten(
        self, rich_resolver: StructuralResolver
    ) -> None:
        """Annotation types, enum constants, class values and parameter annotations."""
        # Given
        asm = _Assembler("a")
        annotation = struct.pack(
            ">HHHH",
            1,
            asm.utf8("Lx;"),
            2,
            asm.utf8("kind"),
        ) + b"e" + struct.pack(">HH", asm.utf8("Le;"), asm.utf8("FAST")) + struct.pack(
            ">H", asm.utf8("type")
        ) + b"c" + struct.pack(">H", asm.utf8("La;"))
        asm.field("f", "I", asm.attribute("RuntimeVisibleAnnotations", annotation))
        parameters = struct.pack(">BHHH", 1, 1, asm.utf8("Lx;"), 0)
        asm.method(
            "m",
            "(I)V",
            asm.attribute("RuntimeInvisibleParameterAnnotations", parameters),
            asm.attribute("AnnotationDefault", b"c" + struct.pack(">H", asm.utf8("La;"))),
        )

        # When
        _, out = remap_class(asm.build(), rich_resolver)
        cf = ClassFile.parse(out)

        # Then
        info = _named(cf, cf.fields[0].attributes, "RuntimeVisibleAnnotations").info
        assert cf.pool.utf8(_u2_at(info, 2)) == "Lnet/Anno;"
        assert info[8:9] == b"e"
        assert cf.pool.utf8(_u2_at(info, 9)) == "Lnet/Kind;"
        assert cf.pool.utf8(_u2_at(info, 11)) == "FAST"
        assert info[15:16] == b"c"
        assert cf.pool.utf8(_u2_at(info, 16)) == "Lnet/Foo;"
        method_attributes = cf.methods[0].attributes
        parameter_info = _named(cf, method_attributes, "RuntimeInvisibleParameterAnnotations").info
        assert cf.pool.utf8(_u2_at(parameter_info, 3)) == "Lnet/Anno;"
        default_info = _named(cf, method_attributes, "AnnotationDefault").info
        assert cf.pool.utf8(_u2_at(default_info, 1)) == "Lnet/Foo;"

    def test_record_components_are_renamed_like_fields(
        self, rich_resolver: StructuralResolver
    ) -> None:
        asm = _Assembler("a", "java/lang/Record")
        component = struct.pack(">HHHH", 1, asm.utf8("f"), asm.utf8("La;"), 0)
        asm.attributes.append(asm.attribute("Record", component))

        _, out = remap_class(asm.build(), rich_resolver)
        cf = ClassFile.parse(out)

        info = _named(cf, cf.attributes, "Record").info
        assert _u2_at(info, 0) == 1
        assert cf.pool.utf8(_u2_at(info, 2)) == "count"
        assert cf.pool.utf8(_u2_at(info, 4)) == "Lnet/Foo;"
        assert _u2_at(info, 6) == 0

    def test_array_class_constants_map_their_element_type(
        self, rich_resolver: StructuralResolver
    ) -> None:
        asm = _Assembler("a")
        objects = asm.class_ref("[[La;")
        primitives = asm.class_ref("[I")

        _, out = remap_class(asm.build(), rich_resolver)
        pool = ClassFile.parse(out).pool

        assert pool.class_name(objects) == "[[Lnet/Foo;"
        assert pool.class_name(primitives) == "[I"
