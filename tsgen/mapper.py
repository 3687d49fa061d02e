"""Maps type references to TypeScript type names."""

from __future__ import annotations

from enum import Enum
from typing import Iterable, List, Mapping, Optional, Sequence

from .annotations import TS_TYPE, TS_TYPE_UNIONS
from .config import GeneratorOptions
from .converters import ConverterChain
from .models import MemberDescriptor, TypeDescriptor, TypeKey, TypeKind, TypeRef


class TypeClass(str, Enum):
    """Name-mapping classification of a type reference."""

    SIMPLE = "simple"
    COLLECTION = "collection"
    DICTIONARY = "dictionary"
    COMPLEX = "complex"


class TypeNameMapper:
    """Pure mapping from type references to TypeScript names.

    The mapper never consults the metadata provider: everything it needs is
    carried by the reference itself plus the configured lookup tables, so it is
    safe to call from any worker once the closure is resolved.
    """

    def __init__(
        self,
        options: GeneratorOptions | None = None,
        *,
        type_name_converter: ConverterChain | None = None,
    ) -> None:
        self.options = options or GeneratorOptions()
        self._primitives: Mapping[str, str] = dict(self.options.primitive_types)
        self._collections = frozenset(self.options.collection_types)
        self._dictionaries = frozenset(self.options.dictionary_types)
        self._std_namespaces = tuple(self.options.standard_library_namespaces)
        self._convert = type_name_converter or ConverterChain.from_names(
            self.options.type_name_converters
        )

    def classify(self, ref: TypeRef | TypeDescriptor) -> TypeClass:
        key, kind = _key_and_kind(ref)
        if kind in (TypeKind.PRIMITIVE, TypeKind.GENERIC_PARAMETER):
            return TypeClass.SIMPLE
        if isinstance(ref, TypeRef) and ref.is_parameter:
            return TypeClass.SIMPLE
        if key.name in self._primitives:
            return TypeClass.SIMPLE
        if kind is TypeKind.COLLECTION or key.name in self._collections:
            return TypeClass.COLLECTION
        if kind is TypeKind.DICTIONARY or key.name in self._dictionaries:
            return TypeClass.DICTIONARY
        return TypeClass.COMPLEX

    def is_standard_library(self, key: TypeKey) -> bool:
        if "." not in key.name:
            return key.name in self._primitives
        namespace = key.namespace
        return any(
            namespace == prefix or namespace.startswith(prefix + ".")
            for prefix in self._std_namespaces
        )

    def is_materializable(self, ref: TypeRef | TypeDescriptor) -> bool:
        """Return True when the type results in an output file of its own."""
        key, _ = _key_and_kind(ref)
        return self.classify(ref) is TypeClass.COMPLEX and not self.is_standard_library(key)

    def type_name(self, key: TypeKey) -> str:
        """Return the converted, arity-free name used for declarations and imports."""
        return self._convert(key.short_name)

    def map_name(self, ref: TypeRef) -> str:
        """Return the TypeScript name for a type usage (no union members)."""
        classification = self.classify(ref)
        if ref.is_parameter:
            return ref.key.name
        if classification is TypeClass.SIMPLE:
            return self._primitives.get(ref.key.name, ref.key.short_name)
        if classification is TypeClass.COLLECTION:
            element = self.map_name(ref.args[0]) if ref.args else "any"
            return f"{element}[]"
        if classification is TypeClass.DICTIONARY:
            key_name = self.map_name(ref.args[0]) if ref.args else "string"
            value_name = self.map_name(ref.args[1]) if len(ref.args) > 1 else "any"
            return f"{{ [key: {key_name}]: {value_name} }}"
        name = self.type_name(ref.key)
        if ref.args:
            name += "<" + ", ".join(self.map_name(arg) for arg in ref.args) + ">"
        return name

    def map_declaration_name(self, descriptor: TypeDescriptor) -> str:
        """Return the name used where the type itself is declared."""
        name = self.type_name(descriptor.key)
        if descriptor.type_parameters:
            name += "<" + ", ".join(descriptor.type_parameters) + ">"
        return name

    def map_union(self, ref: TypeRef, extra: Iterable[str] = ()) -> List[str]:
        """Return every union member for a usage; the first entry is the primary name."""
        names = [self.map_name(ref)]
        for name in extra:
            if name not in names:
                names.append(name)
        if ref.nullable:
            for name in self._nullable_members():
                if name not in names:
                    names.append(name)
        return names

    def map_member(self, member: MemberDescriptor, annotations: Mapping[str, object]) -> List[str]:
        """Return the union for a member, honouring type-name and union annotations."""
        override = annotations.get(TS_TYPE)
        extra = _as_names(annotations.get(TS_TYPE_UNIONS))
        if override:
            names = [_override_name(override)]
            names.extend(name for name in extra if name not in names)
            return names
        return self.map_union(member.type, extra)

    def first_union_member(self, names: Sequence[str]) -> Optional[str]:
        return names[0] if names else None

    def _nullable_members(self) -> List[str]:
        translation = self.options.nullable_translation
        if translation == "none":
            return []
        return [part.strip() for part in translation.split("|") if part.strip()]


def _key_and_kind(ref: TypeRef | TypeDescriptor) -> tuple[TypeKey, Optional[TypeKind]]:
    return ref.key, ref.kind


def _override_name(payload: object) -> str:
    if isinstance(payload, Mapping):
        return str(payload.get("type_name") or payload.get("name") or "any")
    return str(payload)


def _as_names(value: object) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Iterable):
        return [str(item) for item in value]
    return [str(value)]


__all__ = [
    "TypeClass",
    "TypeNameMapper",
]
