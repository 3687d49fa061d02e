"""Contract for metadata providers and the per-run annotation view."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Union

from ..models import MemberDescriptor, TypeDescriptor, TypeKey, TypeRef, TypeSpec

MemberTarget = Tuple[TypeKey, str]
Target = Union[TypeKey, MemberTarget]


class MetadataProvider(ABC):
    """Answers questions about the type graph being exported.

    Implementations must be deterministic for a fixed input graph and are
    treated as read-only by the generator, so one instance may be queried
    from several worker threads at once.
    """

    @abstractmethod
    def describe(self, key: TypeKey) -> TypeDescriptor:
        """Return the descriptor for a type or raise MetadataLookupError."""

    def get_members(self, key: TypeKey) -> Sequence[MemberDescriptor]:
        return self.describe(key).members

    def get_base_type(self, key: TypeKey) -> Optional[TypeRef]:
        return self.describe(key).base

    def get_interfaces(self, key: TypeKey) -> Sequence[TypeRef]:
        return self.describe(key).interfaces

    def get_annotations(self, target: Target) -> Mapping[str, Any]:
        if isinstance(target, TypeKey):
            return self.describe(target).annotations
        key, member_name = target
        member = self.describe(key).member(member_name)
        return member.annotations if member is not None else {}

    def get_annotation(self, target: Target, kind: str) -> Any:
        return self.get_annotations(target).get(kind)


class AnnotationView:
    """Merges programmatic TypeSpec overrides over provider annotations.

    Built once per generation run from the merged specs, replacing any
    process-wide notion of a "current" metadata source.
    """

    def __init__(self, provider: MetadataProvider, specs: Mapping[TypeKey, TypeSpec]) -> None:
        self._provider = provider
        self._specs = specs

    def type_annotations(self, descriptor: TypeDescriptor) -> Dict[str, Any]:
        merged: Dict[str, Any] = dict(self._provider.get_annotations(descriptor.key))
        spec = self._specs.get(descriptor.key)
        if spec is not None:
            merged.update(spec.annotations)
        return merged

    def member_annotations(self, descriptor: TypeDescriptor, member: MemberDescriptor) -> Dict[str, Any]:
        merged: Dict[str, Any] = dict(self._provider.get_annotations((descriptor.key, member.name)))
        spec = self._specs.get(descriptor.key)
        if spec is not None:
            merged.update(spec.member_annotations.get(member.name, {}))
        return merged

    def type_annotation(self, descriptor: TypeDescriptor, kind: str) -> Any:
        return self.type_annotations(descriptor).get(kind)

    def member_annotation(self, descriptor: TypeDescriptor, member: MemberDescriptor, kind: str) -> Any:
        return self.member_annotations(descriptor, member).get(kind)


__all__ = ["AnnotationView", "MemberTarget", "MetadataProvider", "Target"]
