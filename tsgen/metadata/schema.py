"""Metadata provider backed by a YAML model document.

Example document::

    namespace: shop
    types:
      - name: Order
        kind: class
        members:
          - name: items
            type: list[OrderLine]
      - name: OrderLine
        kind: class
    exports:
      - type: Order
        output_dir: models
    barrels:
      - directory: models
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..annotations import MEMBER_ANNOTATIONS, TYPE_ANNOTATIONS
from ..errors import ConfigError, MetadataLookupError
from ..logging import get_logger
from ..models import (
    BarrelScope,
    EnumValue,
    MemberDescriptor,
    MethodSpec,
    ParameterDescriptor,
    TypeDescriptor,
    TypeKey,
    TypeKind,
    TypeRef,
)
from ..spec import GenerationSpec
from .base import MetadataProvider
from .typeexpr import TypeExpressionError, parse_type_expression

logger = get_logger("metadata.schema")


class _Model(BaseModel):
    model_config = ConfigDict(extra="forbid")


def _check_annotations(value: Dict[str, Any], allowed: frozenset) -> Dict[str, Any]:
    unknown = sorted(set(value) - allowed)
    if unknown:
        raise ValueError(f"unknown annotation kind(s): {', '.join(unknown)}")
    return value


class SchemaMember(_Model):
    name: str
    type: str
    static: bool = False
    readonly: bool = False
    optional: bool = False
    default: Any = None
    doc: Optional[str] = None
    deprecated: Optional[str] = None
    annotations: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("annotations")
    @classmethod
    def _known_member_annotations(cls, value: Dict[str, Any]) -> Dict[str, Any]:
        return _check_annotations(value, MEMBER_ANNOTATIONS)


class SchemaEnumValue(_Model):
    name: str
    value: Union[int, float, str, bool, None] = None
    doc: Optional[str] = None


class SchemaType(_Model):
    name: str
    kind: Literal["class", "interface", "enum"] = "class"
    type_parameters: List[str] = Field(default_factory=list)
    base: Optional[str] = None
    interfaces: List[str] = Field(default_factory=list)
    members: List[SchemaMember] = Field(default_factory=list)
    values: List[Union[SchemaEnumValue, str]] = Field(default_factory=list)
    doc: Optional[str] = None
    deprecated: Optional[str] = None
    annotations: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("annotations")
    @classmethod
    def _known_type_annotations(cls, value: Dict[str, Any]) -> Dict[str, Any]:
        return _check_annotations(value, TYPE_ANNOTATIONS)


class SchemaExport(_Model):
    type: str
    shape: Optional[Literal["class", "interface", "enum"]] = None
    output_dir: Optional[str] = None
    const: bool = False
    annotations: Dict[str, Any] = Field(default_factory=dict)
    member_annotations: Dict[str, Dict[str, Any]] = Field(default_factory=dict)


class SchemaBarrel(_Model):
    directory: str
    scope: Union[Literal["files", "directories", "all"], List[Literal["files", "directories"]]] = "all"

    @property
    def barrel_scope(self) -> BarrelScope:
        names = [self.scope] if isinstance(self.scope, str) else self.scope
        scope = BarrelScope(0)
        for name in names:
            scope |= {
                "files": BarrelScope.FILES,
                "directories": BarrelScope.DIRECTORIES,
                "all": BarrelScope.ALL,
            }[name]
        return scope


class SchemaParameter(_Model):
    name: str
    type: str
    default: Any = None


class SchemaMethod(_Model):
    name: str
    http_method: Literal["get", "post", "put", "delete", "patch"] = "get"
    path: str
    returns: Optional[str] = None
    form_data: bool = False
    parameters: List[SchemaParameter] = Field(default_factory=list)
    doc: Optional[str] = None

    @field_validator("http_method", mode="before")
    @classmethod
    def _lower_http_method(cls, value: Any) -> Any:
        return value.lower() if isinstance(value, str) else value


class SchemaController(_Model):
    name: str
    output_dir: Optional[str] = None
    doc: Optional[str] = None
    methods: List[SchemaMethod] = Field(default_factory=list)


class SchemaDocument(_Model):
    namespace: Optional[str] = None
    types: List[SchemaType] = Field(default_factory=list)
    exports: List[SchemaExport] = Field(default_factory=list)
    barrels: List[SchemaBarrel] = Field(default_factory=list)
    controllers: List[SchemaController] = Field(default_factory=list)


class SchemaMetadataProvider(MetadataProvider):
    """Describes the types declared in a schema document."""

    def __init__(self, document: SchemaDocument, *, source: str = "<model>") -> None:
        self.document = document
        self.source = source
        self._names: Dict[str, TypeKey] = {}
        for item in document.types:
            key = TypeKey(self._qualified(item.name), len(item.type_parameters))
            if key.name in self._names:
                raise ConfigError(f"{source}: type '{key.name}' is declared more than once")
            self._names[key.name] = key
        self._descriptors: Dict[TypeKey, TypeDescriptor] = {}
        for item in document.types:
            descriptor = self._build(item)
            self._descriptors[descriptor.key] = descriptor
        logger.debug("Loaded %d type(s) from %s", len(self._descriptors), source)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], *, source: str = "<model>") -> "SchemaMetadataProvider":
        try:
            document = SchemaDocument.model_validate(data or {})
        except ValidationError as exc:
            raise ConfigError(f"Invalid model document {source}: {exc}") from exc
        return cls(document, source=source)

    @classmethod
    def from_file(cls, path: Path) -> "SchemaMetadataProvider":
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise ConfigError(f"Model document not found: {path}") from None
        try:
            data = yaml.safe_load(text) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigError(f"{path.name} must contain a mapping at the root")
        return cls.from_dict(data, source=str(path))

    def describe(self, key: TypeKey) -> TypeDescriptor:
        try:
            return self._descriptors[key]
        except KeyError:
            raise MetadataLookupError(key, f"type is not declared in {self.source}") from None

    def keys(self) -> List[TypeKey]:
        return sorted(self._descriptors)

    def key_for(self, name: str) -> TypeKey:
        """Return the key of a declared type, qualifying bare names by namespace."""
        qualified = self._resolve_name(name)
        return self._names.get(qualified, TypeKey(qualified))

    def generation_spec(self) -> GenerationSpec:
        """Build the export requests listed in the document."""
        spec = GenerationSpec()
        for export in self.document.exports:
            key = self.key_for(export.type)
            if export.shape == "class":
                type_spec = spec.add_class(key, export.output_dir)
            elif export.shape == "interface":
                type_spec = spec.add_interface(key, export.output_dir)
            elif export.shape == "enum":
                type_spec = spec.add_enum(key, export.output_dir, is_const=export.const)
            else:
                type_spec = spec.add_type(key, export.output_dir)
                type_spec.is_const = export.const
            for kind, payload in export.annotations.items():
                type_spec.annotate(kind, payload)
            for member, annotations in export.member_annotations.items():
                for kind, payload in annotations.items():
                    type_spec.annotate_member(member, kind, payload)

        for barrel in self.document.barrels:
            spec.add_barrel(barrel.directory, barrel.barrel_scope)

        for item in self.document.controllers:
            controller = spec.add_controller(self.key_for(item.name), item.output_dir, doc=item.doc)
            for method in item.methods:
                controller.methods.append(self._method(item.name, method))
        return spec

    def _build(self, item: SchemaType) -> TypeDescriptor:
        key = self._names[self._qualified(item.name)]
        parameters = tuple(item.type_parameters)
        context = f"{self.source}: type '{key.name}'"
        if item.kind == "enum":
            return TypeDescriptor(
                key=key,
                kind=TypeKind.ENUM,
                values=self._values(item),
                annotations=dict(item.annotations),
                doc=item.doc,
                deprecated=item.deprecated,
            )
        members = tuple(
            MemberDescriptor(
                name=member.name,
                type=self._parse(member.type, parameters, f"{context} member '{member.name}'"),
                static=member.static,
                readonly=member.readonly,
                optional=member.optional,
                default=member.default,
                annotations=dict(member.annotations),
                doc=member.doc,
                deprecated=member.deprecated,
            )
            for member in item.members
        )
        return TypeDescriptor(
            key=key,
            kind=TypeKind.CLASS if item.kind == "class" else TypeKind.INTERFACE,
            members=members,
            base=self._parse(item.base, parameters, f"{context} base") if item.base else None,
            interfaces=tuple(self._parse(name, parameters, f"{context} interface") for name in item.interfaces),
            type_parameters=parameters,
            annotations=dict(item.annotations),
            doc=item.doc,
            deprecated=item.deprecated,
        )

    @staticmethod
    def _values(item: SchemaType) -> tuple:
        values = []
        next_value = 0
        for entry in item.values:
            if isinstance(entry, str):
                entry = SchemaEnumValue(name=entry)
            value = entry.value
            if value is None:
                value = next_value
            if isinstance(value, int) and not isinstance(value, bool):
                next_value = value + 1
            values.append(EnumValue(entry.name, value, entry.doc))
        return tuple(values)

    def _method(self, controller: str, method: SchemaMethod) -> MethodSpec:
        context = f"{self.source}: method '{controller}.{method.name}'"
        return MethodSpec(
            name=method.name,
            http_method=method.http_method,
            path=method.path,
            returns=self._parse(method.returns, (), context) if method.returns else None,
            parameters=[
                ParameterDescriptor(
                    name=parameter.name,
                    type=self._parse(parameter.type, (), context),
                    default=parameter.default,
                    has_default="default" in parameter.model_fields_set,
                )
                for parameter in method.parameters
            ],
            is_form_data=method.form_data,
            doc=method.doc,
        )

    def _parse(self, text: str, parameters: tuple, context: str) -> TypeRef:
        try:
            ref = parse_type_expression(text, type_parameters=parameters, resolve_name=self._resolve_name)
        except TypeExpressionError as exc:
            raise ConfigError(f"{context}: {exc}") from exc
        return self._with_kinds(ref)

    def _with_kinds(self, ref: TypeRef) -> TypeRef:
        args = tuple(self._with_kinds(arg) for arg in ref.args)
        key = ref.key
        declared = self._names.get(key.name)
        kind = ref.kind
        if declared is not None and not ref.is_parameter:
            kind = self._descriptor_kind(declared)
        return TypeRef(key, args, nullable=ref.nullable, is_parameter=ref.is_parameter, kind=kind)

    def _descriptor_kind(self, key: TypeKey) -> TypeKind:
        for item in self.document.types:
            if self._qualified(item.name) == key.name:
                return {
                    "class": TypeKind.CLASS,
                    "interface": TypeKind.INTERFACE,
                    "enum": TypeKind.ENUM,
                }[item.kind]
        return TypeKind.CLASS

    def _qualified(self, name: str) -> str:
        if self.document.namespace and "." not in name:
            return f"{self.document.namespace}.{name}"
        return name

    def _resolve_name(self, name: str) -> str:
        if name in self._names:
            return name
        qualified = self._qualified(name)
        return qualified if qualified in self._names else name


__all__ = [
    "SchemaDocument",
    "SchemaMetadataProvider",
]
