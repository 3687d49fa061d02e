"""Programmatic metadata provider backed by a dictionary of descriptors."""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from ..errors import MetadataLookupError
from ..models import (
    EnumValue,
    MemberDescriptor,
    TypeDescriptor,
    TypeKey,
    TypeKind,
    TypeRef,
)
from .base import MetadataProvider

RefLike = Union[TypeRef, TypeKey, str]


def as_ref(value: RefLike) -> TypeRef:
    if isinstance(value, TypeRef):
        return value
    if isinstance(value, TypeKey):
        return TypeRef(value)
    return TypeRef(TypeKey(value))


class InMemoryMetadataProvider(MetadataProvider):
    """Serves descriptors registered ahead of time."""

    def __init__(self, descriptors: Iterable[TypeDescriptor] = ()) -> None:
        self._descriptors: Dict[TypeKey, TypeDescriptor] = {}
        for descriptor in descriptors:
            self.register(descriptor)

    def register(self, descriptor: TypeDescriptor) -> TypeDescriptor:
        self._descriptors[descriptor.key] = descriptor
        return descriptor

    def describe(self, key: TypeKey) -> TypeDescriptor:
        try:
            return self._descriptors[key]
        except KeyError:
            raise MetadataLookupError(key, "type is not registered") from None

    def keys(self) -> List[TypeKey]:
        return sorted(self._descriptors)

    def __contains__(self, key: object) -> bool:
        return key in self._descriptors

    def __len__(self) -> int:
        return len(self._descriptors)


class TypeBuilder:
    """Fluent helper for declaring one type on an InMemoryMetadataProvider."""

    def __init__(
        self,
        provider: InMemoryMetadataProvider,
        name: str,
        kind: TypeKind,
        type_parameters: Sequence[str] = (),
    ) -> None:
        self._provider = provider
        self._descriptor = TypeDescriptor(
            key=TypeKey(name, len(type_parameters)),
            kind=kind,
            type_parameters=tuple(type_parameters),
        )
        provider.register(self._descriptor)

    @property
    def key(self) -> TypeKey:
        return self._descriptor.key

    @property
    def ref(self) -> TypeRef:
        return TypeRef(self._descriptor.key, kind=self._descriptor.kind)

    def member(
        self,
        name: str,
        type_ref: RefLike,
        *,
        static: bool = False,
        readonly: bool = False,
        optional: bool = False,
        default: Any = None,
        annotations: Optional[Mapping[str, Any]] = None,
        doc: Optional[str] = None,
        deprecated: Optional[str] = None,
    ) -> "TypeBuilder":
        member = MemberDescriptor(
            name=name,
            type=as_ref(type_ref),
            static=static,
            readonly=readonly,
            optional=optional,
            default=default,
            annotations=dict(annotations or {}),
            doc=doc,
            deprecated=deprecated,
        )
        return self._update(members=self._descriptor.members + (member,))

    def value(self, name: str, value: Any, *, doc: Optional[str] = None) -> "TypeBuilder":
        return self._update(values=self._descriptor.values + (EnumValue(name, value, doc),))

    def extends(self, base: RefLike) -> "TypeBuilder":
        return self._update(base=as_ref(base))

    def implements(self, *interfaces: RefLike) -> "TypeBuilder":
        refs = tuple(as_ref(item) for item in interfaces)
        return self._update(interfaces=self._descriptor.interfaces + refs)

    def annotate(self, kind: str, payload: Any = True) -> "TypeBuilder":
        annotations = dict(self._descriptor.annotations)
        annotations[kind] = payload
        return self._update(annotations=annotations)

    def document(self, doc: Optional[str] = None, *, deprecated: Optional[str] = None) -> "TypeBuilder":
        return self._update(doc=doc, deprecated=deprecated)

    def build(self) -> TypeDescriptor:
        return self._descriptor

    def _update(self, **changes: Any) -> "TypeBuilder":
        self._descriptor = replace(self._descriptor, **changes)
        self._provider.register(self._descriptor)
        return self


class TypeGraphBuilder:
    """Builds an InMemoryMetadataProvider type by type.

    >>> graph = TypeGraphBuilder()
    >>> line = graph.add_class("shop.OrderLine")
    >>> order = graph.add_class("shop.Order").member("items", graph.list_of(line.ref))
    """

    def __init__(self, provider: InMemoryMetadataProvider | None = None) -> None:
        self.provider = provider or InMemoryMetadataProvider()

    def add_class(self, name: str, *type_parameters: str) -> TypeBuilder:
        return TypeBuilder(self.provider, name, TypeKind.CLASS, type_parameters)

    def add_interface(self, name: str, *type_parameters: str) -> TypeBuilder:
        return TypeBuilder(self.provider, name, TypeKind.INTERFACE, type_parameters)

    def add_enum(self, name: str) -> TypeBuilder:
        return TypeBuilder(self.provider, name, TypeKind.ENUM)

    @staticmethod
    def primitive(name: str, *, nullable: bool = False) -> TypeRef:
        return TypeRef(TypeKey(name), nullable=nullable, kind=TypeKind.PRIMITIVE)

    @staticmethod
    def list_of(element: RefLike, *, nullable: bool = False) -> TypeRef:
        return TypeRef(
            TypeKey("list", 1), (as_ref(element),), nullable=nullable, kind=TypeKind.COLLECTION
        )

    @staticmethod
    def dict_of(key: RefLike, value: RefLike, *, nullable: bool = False) -> TypeRef:
        return TypeRef(
            TypeKey("dict", 2),
            (as_ref(key), as_ref(value)),
            nullable=nullable,
            kind=TypeKind.DICTIONARY,
        )

    @staticmethod
    def generic(definition: RefLike, *args: RefLike, nullable: bool = False) -> TypeRef:
        base = as_ref(definition)
        return TypeRef(
            TypeKey(base.key.name, len(args)),
            tuple(as_ref(arg) for arg in args),
            nullable=nullable,
            kind=base.kind,
        )

    @staticmethod
    def parameter(name: str) -> TypeRef:
        return TypeRef.parameter(name)


__all__ = ["InMemoryMetadataProvider", "TypeBuilder", "TypeGraphBuilder", "as_ref"]
