"""Core data models shared across tsgen components."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, Flag
from typing import (
    TYPE_CHECKING,
    Any,
    Dict,
    Iterator,
    List,
    Mapping,
    Optional,
    Tuple,
)

if TYPE_CHECKING:  # pragma: no cover - typing aid
    from .mapper import TypeNameMapper


class TypeKind(str, Enum):
    """Classification of a type as reported by the metadata provider."""

    CLASS = "class"
    INTERFACE = "interface"
    ENUM = "enum"
    PRIMITIVE = "primitive"
    COLLECTION = "collection"
    DICTIONARY = "dictionary"
    GENERIC_PARAMETER = "generic_parameter"


class ExportShape(str, Enum):
    """TypeScript construct a type is emitted as."""

    CLASS = "class"
    INTERFACE = "interface"
    ENUM = "enum"


class BarrelScope(Flag):
    """Which directory entries a barrel file re-exports."""

    FILES = 1
    DIRECTORIES = 2
    ALL = FILES | DIRECTORIES


@dataclass(frozen=True, order=True)
class TypeKey:
    """Stable identity of a type: fully-qualified name plus generic arity."""

    name: str
    arity: int = 0

    @property
    def short_name(self) -> str:
        return self.name.rsplit(".", 1)[-1]

    @property
    def namespace(self) -> str:
        if "." not in self.name:
            return ""
        return self.name.rsplit(".", 1)[0]

    def __str__(self) -> str:
        return self.name if not self.arity else f"{self.name}`{self.arity}"


@dataclass(frozen=True)
class TypeRef:
    """Weak reference to a type usage, resolved lazily through the provider."""

    key: TypeKey
    args: Tuple["TypeRef", ...] = ()
    nullable: bool = False
    is_parameter: bool = False
    kind: Optional[TypeKind] = None

    @classmethod
    def of(cls, name: str, *args: "TypeRef", nullable: bool = False) -> "TypeRef":
        return cls(TypeKey(name, len(args)), tuple(args), nullable=nullable)

    @classmethod
    def parameter(cls, name: str) -> "TypeRef":
        return cls(TypeKey(name), is_parameter=True, kind=TypeKind.GENERIC_PARAMETER)

    def __str__(self) -> str:
        text = self.key.name
        if self.args:
            text += "[" + ", ".join(str(arg) for arg in self.args) + "]"
        return text + ("?" if self.nullable else "")


@dataclass(frozen=True)
class MemberDescriptor:
    """A property or field declared on a class or interface."""

    name: str
    type: TypeRef
    static: bool = False
    readonly: bool = False
    optional: bool = False
    default: Any = None
    annotations: Mapping[str, Any] = field(default_factory=dict)
    doc: Optional[str] = None
    deprecated: Optional[str] = None


@dataclass(frozen=True)
class EnumValue:
    """A single enum member."""

    name: str
    value: Any
    doc: Optional[str] = None


@dataclass(frozen=True)
class TypeDescriptor:
    """Everything the generator knows about one type definition."""

    key: TypeKey
    kind: TypeKind
    members: Tuple[MemberDescriptor, ...] = ()
    base: Optional[TypeRef] = None
    interfaces: Tuple[TypeRef, ...] = ()
    type_parameters: Tuple[str, ...] = ()
    values: Tuple[EnumValue, ...] = ()
    annotations: Mapping[str, Any] = field(default_factory=dict)
    doc: Optional[str] = None
    deprecated: Optional[str] = None

    def member(self, name: str) -> Optional[MemberDescriptor]:
        for member in self.members:
            if member.name == name:
                return member
        return None


@dataclass
class TypeSpec:
    """Export directive for a type: shape, output directory and annotation overrides."""

    shape: Optional[ExportShape] = None
    output_dir: Optional[str] = None
    is_const: bool = False
    annotations: Dict[str, Any] = field(default_factory=dict)
    member_annotations: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    @classmethod
    def for_kind(
        cls, kind: TypeKind, output_dir: Optional[str] = None, *, is_const: bool = False
    ) -> "TypeSpec":
        """Infer the export shape from a type's own classification."""
        shape = {
            TypeKind.CLASS: ExportShape.CLASS,
            TypeKind.INTERFACE: ExportShape.INTERFACE,
            TypeKind.ENUM: ExportShape.ENUM,
        }.get(kind)
        return cls(shape=shape, output_dir=output_dir, is_const=is_const)

    def annotate(self, kind: str, payload: Any = True) -> "TypeSpec":
        self.annotations[kind] = payload
        return self

    def annotate_member(self, member: str, kind: str, payload: Any = True) -> "TypeSpec":
        self.member_annotations.setdefault(member, {})[kind] = payload
        return self


@dataclass(frozen=True)
class ResolvedType:
    """A closure entry: the descriptor plus the export directive it is rendered with."""

    descriptor: TypeDescriptor
    spec: TypeSpec

    @property
    def key(self) -> TypeKey:
        return self.descriptor.key


class ResolvedClosure(Mapping[TypeKey, ResolvedType]):
    """Read-only view of every type reachable from the seeds."""

    def __init__(self, entries: Mapping[TypeKey, ResolvedType]) -> None:
        self._entries: Dict[TypeKey, ResolvedType] = dict(entries)

    def __getitem__(self, key: TypeKey) -> ResolvedType:
        return self._entries[key]

    def __iter__(self) -> Iterator[TypeKey]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def materializable(self, mapper: "TypeNameMapper") -> List[ResolvedType]:
        """Return entries that produce output files, sorted by type key."""
        return [
            self._entries[key]
            for key in sorted(self._entries)
            if mapper.is_materializable(self._entries[key].descriptor)
        ]


@dataclass(frozen=True)
class PreservedZone:
    """User-authored text captured between begin/end markers of an existing file."""

    tag: str
    content: str
    indent: str = ""

    @property
    def lines(self) -> List[str]:
        return self.content.split("\n") if self.content else []


@dataclass(frozen=True)
class ParameterDescriptor:
    """A service method parameter."""

    name: str
    type: TypeRef
    default: Any = None
    has_default: bool = False


@dataclass
class MethodSpec:
    """A service endpoint exposed by a controller."""

    name: str
    http_method: str
    path: str
    returns: Optional[TypeRef] = None
    parameters: List[ParameterDescriptor] = field(default_factory=list)
    is_form_data: bool = False
    doc: Optional[str] = None


@dataclass
class ControllerSpec:
    """A service class whose parameter and return types are exported alongside it."""

    key: TypeKey
    output_dir: Optional[str] = None
    methods: List[MethodSpec] = field(default_factory=list)
    doc: Optional[str] = None


@dataclass(frozen=True)
class BarrelSpec:
    """Request for an index file re-exporting a directory's modules."""

    directory: str
    scope: BarrelScope = BarrelScope.ALL


@dataclass
class GenerationResult:
    """Structured summary of a generation run."""

    types: List[str] = field(default_factory=list)
    services: List[str] = field(default_factory=list)
    barrels: List[str] = field(default_factory=list)
    method_count: int = 0
    index: Optional[str] = None
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def all_files(self) -> List[str]:
        files = [*self.types, *self.services, *self.barrels]
        if self.index:
            files.append(self.index)
        return [path for path in files if path]

    @property
    def succeeded(self) -> bool:
        return not self.errors


__all__ = [
    "BarrelScope",
    "BarrelSpec",
    "ControllerSpec",
    "EnumValue",
    "ExportShape",
    "GenerationResult",
    "MemberDescriptor",
    "MethodSpec",
    "ParameterDescriptor",
    "PreservedZone",
    "ResolvedClosure",
    "ResolvedType",
    "TypeDescriptor",
    "TypeKey",
    "TypeKind",
    "TypeRef",
    "TypeSpec",
]
