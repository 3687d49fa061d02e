"""Metadata provider that reflects over live Python classes.

Supports dataclasses, ``enum.Enum`` subclasses, ``typing.Protocol`` classes
(exported as interfaces), pydantic models and plain annotated classes.
Annotations are attached with a ``__tsgen__`` mapping on the class and a
``"tsgen"`` entry in dataclass field metadata or pydantic ``json_schema_extra``.
"""

from __future__ import annotations

import collections
import collections.abc
import dataclasses
import inspect
import threading
import types
import typing
from enum import Enum
from typing import Any, ClassVar, Dict, Iterable, List, Optional, Tuple, TypeVar, Union, get_args, get_origin

from pydantic import BaseModel

from ..annotations import TS_MEMBER_NAME
from ..errors import MetadataLookupError
from ..logging import get_logger
from ..models import EnumValue, MemberDescriptor, TypeDescriptor, TypeKey, TypeKind, TypeRef
from .base import MetadataProvider

ANNOTATIONS_ATTRIBUTE = "__tsgen__"
FIELD_METADATA_KEY = "tsgen"

_COLLECTION_ORIGINS = frozenset(
    {
        list,
        tuple,
        set,
        frozenset,
        collections.deque,
        collections.abc.Sequence,
        collections.abc.MutableSequence,
        collections.abc.Iterable,
        collections.abc.Collection,
        collections.abc.Set,
        collections.abc.MutableSet,
    }
)
_DICTIONARY_ORIGINS = frozenset(
    {
        dict,
        collections.OrderedDict,
        collections.defaultdict,
        collections.abc.Mapping,
        collections.abc.MutableMapping,
    }
)
_SKIPPED_BASES = frozenset({object, typing.Generic, typing.Protocol, BaseModel, Enum})

logger = get_logger("metadata.reflection")


def type_name_of(cls: Any) -> str:
    """Return the fully-qualified name used as a type key."""
    if cls is Any:
        return "typing.Any"
    if cls is type(None):
        return "None"
    module = getattr(cls, "__module__", "builtins")
    qualname = getattr(cls, "__qualname__", None) or getattr(cls, "__name__", repr(cls))
    if module == "builtins":
        return qualname
    return f"{module}.{qualname}"


def _is_protocol(cls: type) -> bool:
    return bool(getattr(cls, "_is_protocol", False)) and cls is not typing.Protocol


def _is_pydantic(cls: type) -> bool:
    return isinstance(cls, type) and issubclass(cls, BaseModel) and cls is not BaseModel


class ReflectionMetadataProvider(MetadataProvider):
    """Describes classes registered up front or discovered through their type hints."""

    def __init__(self, classes: Iterable[type] = ()) -> None:
        self._classes: Dict[TypeKey, type] = {}
        self._descriptors: Dict[TypeKey, TypeDescriptor] = {}
        self._lock = threading.Lock()
        for cls in classes:
            self.register(cls)

    def register(self, cls: type) -> TypeKey:
        key = self.key_of(cls)
        with self._lock:
            self._classes.setdefault(key, cls)
        return key

    @staticmethod
    def key_of(cls: type) -> TypeKey:
        return TypeKey(type_name_of(cls), len(_type_parameters(cls)))

    def describe(self, key: TypeKey) -> TypeDescriptor:
        cached = self._descriptors.get(key)
        if cached is not None:
            return cached
        cls = self._classes.get(key)
        if cls is None:
            raise MetadataLookupError(key, "class was never registered or referenced")
        try:
            descriptor = self._build(key, cls)
        except (NameError, TypeError, AttributeError) as exc:
            raise MetadataLookupError(key, f"cannot read type hints: {exc}") from exc
        with self._lock:
            return self._descriptors.setdefault(key, descriptor)

    def keys(self) -> List[TypeKey]:
        return sorted(self._classes)

    # ------------------------------------------------------------------
    # Descriptor construction
    # ------------------------------------------------------------------
    def _build(self, key: TypeKey, cls: type) -> TypeDescriptor:
        doc = _own_doc(cls)
        deprecated = cls.__dict__.get("__deprecated__")
        annotations = dict(cls.__dict__.get(ANNOTATIONS_ATTRIBUTE) or {})
        if isinstance(cls, type) and issubclass(cls, Enum):
            return TypeDescriptor(
                key=key,
                kind=TypeKind.ENUM,
                values=tuple(EnumValue(item.name, item.value) for item in cls),
                annotations=annotations,
                doc=doc,
                deprecated=deprecated,
            )

        base, interfaces = self._heritage(cls)
        return TypeDescriptor(
            key=key,
            kind=TypeKind.INTERFACE if _is_protocol(cls) else TypeKind.CLASS,
            members=tuple(self._members(cls)),
            base=base,
            interfaces=interfaces,
            type_parameters=tuple(param.__name__ for param in _type_parameters(cls)),
            annotations=annotations,
            doc=doc,
            deprecated=deprecated,
        )

    def _members(self, cls: type) -> List[MemberDescriptor]:
        own = inspect.get_annotations(cls)
        if _is_pydantic(cls):
            hints = {name: info.annotation for name, info in cls.model_fields.items()}
        else:
            hints = typing.get_type_hints(cls)
        if dataclasses.is_dataclass(cls):
            frozen = cls.__dataclass_params__.frozen  # type: ignore[attr-defined]
        else:
            frozen = _is_pydantic(cls) and bool(cls.model_config.get("frozen"))
        dataclass_fields = {item.name: item for item in dataclasses.fields(cls)} if dataclasses.is_dataclass(cls) else {}
        model_fields = cls.model_fields if _is_pydantic(cls) else {}

        members = []
        for name in own:
            if name.startswith("_") or name == ANNOTATIONS_ATTRIBUTE:
                continue
            hint = hints.get(name, Any)
            static = get_origin(hint) is ClassVar or name in getattr(cls, "__class_vars__", ())
            if static:
                args = get_args(hint)
                hint = args[0] if args else Any
            default: Any = None
            member_annotations: Dict[str, Any] = {}
            if name in dataclass_fields:
                item = dataclass_fields[name]
                if item.default is not dataclasses.MISSING:
                    default = item.default
                member_annotations.update(item.metadata.get(FIELD_METADATA_KEY) or {})
            elif name in model_fields:
                info = model_fields[name]
                if not info.is_required() and info.default_factory is None:
                    default = info.default
                if info.alias and info.alias != name:
                    member_annotations[TS_MEMBER_NAME] = info.alias
                extra = info.json_schema_extra
                if isinstance(extra, dict):
                    member_annotations.update(extra.get(FIELD_METADATA_KEY) or {})
            elif static or not _is_protocol(cls):
                default = cls.__dict__.get(name)
            members.append(
                MemberDescriptor(
                    name=name,
                    type=self.ref_for(hint, cls),
                    static=static,
                    readonly=bool(frozen),
                    default=default,
                    annotations=member_annotations,
                )
            )
        return members

    def _heritage(self, cls: type) -> Tuple[Optional[TypeRef], Tuple[TypeRef, ...]]:
        base: Optional[TypeRef] = None
        interfaces: List[TypeRef] = []
        for candidate in cls.__dict__.get("__orig_bases__", cls.__bases__):
            origin = get_origin(candidate) or candidate
            if not isinstance(origin, type) or origin in _SKIPPED_BASES:
                continue
            if _is_protocol(origin):
                interfaces.append(self.ref_for(candidate, cls))
            elif base is None and not _is_protocol(cls):
                base = self.ref_for(candidate, cls)
        return base, tuple(interfaces)

    # ------------------------------------------------------------------
    # Type hint conversion
    # ------------------------------------------------------------------
    def ref_for(self, hint: Any, owner: Optional[type] = None) -> TypeRef:
        """Convert a type hint into a TypeRef, registering referenced classes."""
        if hint is Any or hint is object:
            return TypeRef(TypeKey(type_name_of(hint)), kind=TypeKind.PRIMITIVE)
        if hint is None or hint is type(None):
            return TypeRef(TypeKey("None"), kind=TypeKind.PRIMITIVE)
        if isinstance(hint, TypeVar):
            return TypeRef.parameter(hint.__name__)

        origin = get_origin(hint)
        args = get_args(hint)
        if origin is Union or origin is types.UnionType:
            concrete = [arg for arg in args if arg is not type(None)]
            if len(concrete) != 1:
                logger.debug("Mapping union %s on %s to any", hint, owner)
                return TypeRef(TypeKey("typing.Any"), nullable=len(concrete) != len(args), kind=TypeKind.PRIMITIVE)
            ref = self.ref_for(concrete[0], owner)
            nullable = len(concrete) != len(args)
            return TypeRef(ref.key, ref.args, nullable=nullable or ref.nullable, is_parameter=ref.is_parameter, kind=ref.kind)
        if origin is typing.Literal:
            return self.ref_for(type(args[0]) if args else Any, owner)
        if origin in _COLLECTION_ORIGINS:
            element = args[0] if args else Any
            return TypeRef(
                TypeKey(type_name_of(origin), 1), (self.ref_for(element, owner),), kind=TypeKind.COLLECTION
            )
        if origin in _DICTIONARY_ORIGINS:
            key_hint, value_hint = (args + (Any, Any))[:2] if args else (str, Any)
            return TypeRef(
                TypeKey(type_name_of(origin), 2),
                (self.ref_for(key_hint, owner), self.ref_for(value_hint, owner)),
                kind=TypeKind.DICTIONARY,
            )
        if isinstance(origin, type):
            key = self.register(origin)
            refs = tuple(self.ref_for(arg, owner) for arg in args)
            return TypeRef(TypeKey(key.name, len(refs)), refs, kind=_kind_of(origin))
        if _is_pydantic(hint) and getattr(hint, "__pydantic_generic_metadata__", {}).get("origin"):
            metadata = hint.__pydantic_generic_metadata__
            key = self.register(metadata["origin"])
            refs = tuple(self.ref_for(arg, owner) for arg in metadata["args"])
            return TypeRef(TypeKey(key.name, len(refs)), refs, kind=TypeKind.CLASS)
        if isinstance(hint, type):
            if hint in _COLLECTION_ORIGINS:
                return TypeRef(TypeKey(type_name_of(hint), 1), (), kind=TypeKind.COLLECTION)
            if hint in _DICTIONARY_ORIGINS:
                return TypeRef(TypeKey(type_name_of(hint), 2), (), kind=TypeKind.DICTIONARY)
            if hint.__module__ == "builtins":
                return TypeRef(TypeKey(type_name_of(hint)), kind=TypeKind.PRIMITIVE)
            key = self.register(hint)
            return TypeRef(key, kind=_kind_of(hint))
        logger.debug("Mapping unsupported hint %r on %s to any", hint, owner)
        return TypeRef(TypeKey("typing.Any"), kind=TypeKind.PRIMITIVE)


def _type_parameters(cls: type) -> Tuple[TypeVar, ...]:
    if _is_pydantic(cls):
        metadata = getattr(cls, "__pydantic_generic_metadata__", None) or {}
        return tuple(metadata.get("parameters") or ())
    return tuple(getattr(cls, "__parameters__", ()) or ())


def _kind_of(cls: type) -> TypeKind:
    if issubclass(cls, Enum):
        return TypeKind.ENUM
    if _is_protocol(cls):
        return TypeKind.INTERFACE
    return TypeKind.CLASS


def _own_doc(cls: type) -> Optional[str]:
    doc = cls.__dict__.get("__doc__")
    if not doc:
        return None
    # dataclasses synthesise a signature docstring when none is written
    if dataclasses.is_dataclass(cls) and doc.startswith(f"{cls.__name__}("):
        return None
    if issubclass(cls, Enum) and doc == Enum.__doc__:
        return None
    return inspect.cleandoc(doc)


__all__ = [
    "ANNOTATIONS_ATTRIBUTE",
    "FIELD_METADATA_KEY",
    "ReflectionMetadataProvider",
    "type_name_of",
]
