"""Name resolution for the remapping pass.

Two resolvers are chained in a fixed order: the structural resolver (type
table plus owner-qualified compact members, with inheritance fallback)
sees the original names; the cosmetic resolver (name-only CSV members)
sees the structural resolver's output.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterator, Mapping
from dataclasses import dataclass

from jarpatch.mapping.parsers import CosmeticMapping, MemberMapping, SymbolTable

SPECIAL_METHODS = frozenset({"<init>", "<clinit>"})


@dataclass(frozen=True, slots=True)
class ClassHierarchy:
    """Direct supertypes of one class as declared in its class file."""

    name: str
    super_name: str | None
    interfaces: tuple[str, ...] = ()


class InheritanceIndex:
    """Read-only ``type -> supertypes`` index built from the archive being remapped."""

    def __init__(self, hierarchies: Mapping[str, ClassHierarchy] | None = None) -> None:
        self._hierarchies: dict[str, ClassHierarchy] = dict(hierarchies or {})
        self._lineage_cache: dict[str, tuple[str, ...]] = {}

    @classmethod
    def from_hierarchies(cls, hierarchies: list[ClassHierarchy]) -> InheritanceIndex:
        return cls({h.name: h for h in hierarchies})

    def __contains__(self, name: object) -> bool:
        return name in self._hierarchies

    def __len__(self) -> int:
        return len(self._hierarchies)

    def get(self, name: str) -> ClassHierarchy | None:
        return self._hierarchies.get(name)

    def lineage(self, owner: str) -> tuple[str, ...]:
        """The owner followed by every known ancestor, breadth first, each once."""
        cached = self._lineage_cache.get(owner)
        if cached is not None:
            return cached

        seen: dict[str, None] = {}
        queue = deque([owner])
        while queue:
            current = queue.popleft()
            if current in seen:
                continue
            seen[current] = None
            hierarchy = self._hierarchies.get(current)
            if hierarchy is None:
                continue
            if hierarchy.super_name:
                queue.append(hierarchy.super_name)
            queue.extend(hierarchy.interfaces)

        result = tuple(seen)
        self._lineage_cache[owner] = result
        return result


class NameResolver:
    """Identity resolver; subclasses override the three lookups.

    Descriptor and generic signature rewriting is derived from ``map_type``.
    """

    def map_type(self, name: str) -> str:
        return name

    def map_field_name(self, owner: str, name: str, descriptor: str) -> str:  # noqa: ARG002
        return name

    def map_method_name(self, owner: str, name: str, descriptor: str) -> str:  # noqa: ARG002
        return name

    # -------------------------------------------------------------------------
    # Derived helpers
    # -------------------------------------------------------------------------

    def map_internal_name(self, name: str) -> str:
        """Map a CONSTANT_Class name, which is a descriptor for array types."""
        if name.startswith("["):
            return self.map_descriptor(name)
        return self.map_type(name)

    def map_descriptor(self, descriptor: str) -> str:
        """Rewrite every ``L<type>;`` in a field or method descriptor."""
        if "L" not in descriptor:
            return descriptor
        out: list[str] = []
        i = 0
        length = len(descriptor)
        while i < length:
            ch = descriptor[i]
            if ch == "L":
                end = descriptor.index(";", i)
                out.append("L")
                out.append(self.map_type(descriptor[i + 1 : end]))
                out.append(";")
                i = end + 1
            else:
                out.append(ch)
                i += 1
        return "".join(out)

    def map_method_descriptor(self, descriptor: str) -> str:
        return self.map_descriptor(descriptor)

    def map_signature(self, signature: str) -> str:
        """Rewrite class names inside a generic class, method or field signature."""
        return _SignatureRewriter(signature, self).rewrite()

    def map_inner_name(self, inner: str, outer: str | None, simple_name: str) -> str:
        """Simple name an inner class carries after renaming."""
        mapped = self.map_type(inner)
        if outer is not None:
            mapped_outer = self.map_type(outer) + "$"
            if mapped.startswith(mapped_outer):
                return mapped[len(mapped_outer) :]
        if "$" in mapped:
            return mapped[mapped.rindex("$") + 1 :]
        if mapped == inner:
            return simple_name
        return mapped[mapped.rfind("/") + 1 :]


class StructuralResolver(NameResolver):
    """Type table plus owner-qualified member table with inheritance fallback."""

    def __init__(
        self,
        types: SymbolTable,
        members: MemberMapping,
        index: InheritanceIndex | None = None,
    ) -> None:
        self._types = types
        self._members = members
        self._index = index or InheritanceIndex()

    def map_type(self, name: str) -> str:
        mapped = self._types.get(name)
        return name if mapped is None else mapped

    def _owners(self, owner: str) -> Iterator[str]:
        yield from self._index.lineage(owner)

    def map_field_name(self, owner: str, name: str, descriptor: str) -> str:  # noqa: ARG002
        for candidate in self._owners(owner):
            mapped = self._members.field_name(candidate, name)
            if mapped is not None:
                return mapped
        return name

    def map_method_name(self, owner: str, name: str, descriptor: str) -> str:
        if name in SPECIAL_METHODS:
            return name
        for candidate in self._owners(owner):
            mapped = self._members.method_name(candidate, name, descriptor)
            if mapped is not None:
                return mapped
        return name


class CosmeticResolver(NameResolver):
    """Name-only member renames; types pass through.

    Lookups ignore owner and descriptor, so overloads sharing a name share
    a rename. That is a property of the CSV format and is kept as is.
    """

    def __init__(self, mapping: CosmeticMapping) -> None:
        self._fields = mapping.fields
        self._methods = mapping.methods

    def map_field_name(self, owner: str, name: str, descriptor: str) -> str:  # noqa: ARG002
        return self._fields.get(name, name)

    def map_method_name(self, owner: str, name: str, descriptor: str) -> str:  # noqa: ARG002
        if name in SPECIAL_METHODS:
            return name
        return self._methods.get(name, name)


class ComposedResolver(NameResolver):
    """Structural pass first, cosmetic pass on its output.

    Renaming is not commutative: the structural pass must see original owner
    names and descriptors, so the cosmetic pass only ever receives names.
    """

    def __init__(self, structural: NameResolver, cosmetic: NameResolver) -> None:
        self.structural = structural
        self.cosmetic = cosmetic

    def map_type(self, name: str) -> str:
        return self.cosmetic.map_type(self.structural.map_type(name))

    def map_field_name(self, owner: str, name: str, descriptor: str) -> str:
        renamed = self.structural.map_field_name(owner, name, descriptor)
        return self.cosmetic.map_field_name(
            self.structural.map_type(owner),
            renamed,
            self.structural.map_descriptor(descriptor),
        )

    def map_method_name(self, owner: str, name: str, descriptor: str) -> str:
        renamed = self.structural.map_method_name(owner, name, descriptor)
        return self.cosmetic.map_method_name(
            self.structural.map_type(owner),
            renamed,
            self.structural.map_method_descriptor(descriptor),
        )


class _SignatureRewriter:
    """Single-pass rewriter for JVM generic signatures (JVMS 4.7.9.1)."""

    _PASSTHROUGH = frozenset("()V^BCDFIJSZ[")

    def __init__(self, signature: str, resolver: NameResolver) -> None:
        self._sig = signature
        self._pos = 0
        self._out: list[str] = []
        self._resolver = resolver

    def rewrite(self) -> str:
        if self._peek() == "<":
            self._formal_type_parameters()
        while self._pos < len(self._sig):
            ch = self._sig[self._pos]
            if ch in self._PASSTHROUGH:
                self._emit(ch)
                self._pos += 1
            else:
                self._reference_type()
        return "".join(self._out)

    def _peek(self) -> str:
        return self._sig[self._pos] if self._pos < len(self._sig) else ""

    def _emit(self, text: str) -> None:
        self._out.append(text)

    def _formal_type_parameters(self) -> None:
        self._emit("<")
        self._pos += 1
        while self._peek() != ">":
            colon = self._sig.index(":", self._pos)
            self._emit(self._sig[self._pos : colon])
            self._pos = colon
            # class bound may be empty, interface bounds each start with ':'
            while self._peek() == ":":
                self._emit(":")
                self._pos += 1
                if self._peek() in ("L", "T", "["):
                    self._reference_type()
        self._emit(">")
        self._pos += 1

    def _reference_type(self) -> None:
        ch = self._peek()
        if ch == "L":
            self._class_type()
        elif ch == "T":
            end = self._sig.index(";", self._pos)
            self._emit(self._sig[self._pos : end + 1])
            self._pos = end + 1
        elif ch == "[":
            self._emit("[")
            self._pos += 1
            if self._peek() in ("L", "T", "["):
                self._reference_type()
            else:
                self._emit(self._peek())
                self._pos += 1
        else:
            raise ValueError(f"Unexpected {ch!r} at {self._pos} in signature {self._sig!r}")

    def _identifier(self) -> str:
        start = self._pos
        while self._peek() not in ("<", ".", ";", ""):
            self._pos += 1
        return self._sig[start : self._pos]

    def _class_type(self) -> None:
        self._pos += 1  # 'L'
        name = self._identifier()
        self._emit("L" + self._resolver.map_type(name))
        self._type_arguments()
        while self._peek() == ".":
            self._pos += 1
            simple = self._identifier()
            inner = f"{name}${simple}"
            self._emit("." + self._resolver.map_inner_name(inner, name, simple))
            name = inner
            self._type_arguments()
        self._emit(";")
        self._pos += 1

    def _type_arguments(self) -> None:
        if self._peek() != "<":
            return
        self._emit("<")
        self._pos += 1
        while self._peek() != ">":
            ch = self._peek()
            if ch == "*":
                self._emit("*")
                self._pos += 1
                continue
            if ch in ("+", "-"):
                self._emit(ch)
                self._pos += 1
            self._reference_type()
        self._emit(">")
        self._pos += 1
