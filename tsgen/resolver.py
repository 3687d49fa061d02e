"""Computes the transitive closure of types that must be generated."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Dict, Iterator, List, Mapping, Optional

from .annotations import TS_DEFAULT_TYPE_OUTPUT, TS_IGNORE, TS_TYPE
from .errors import ConfigError, MetadataLookupError
from .logging import get_logger
from .mapper import TypeClass, TypeNameMapper
from .metadata.base import AnnotationView, MetadataProvider
from .models import (
    ResolvedClosure,
    ResolvedType,
    TypeDescriptor,
    TypeKey,
    TypeRef,
    TypeSpec,
)


@dataclass(frozen=True)
class TypeDependency:
    """A type a descriptor refers to, and how it refers to it."""

    ref: TypeRef
    is_base: bool = False
    member: Optional[str] = None
    output_dir: Optional[str] = None

    @property
    def key(self) -> TypeKey:
        return self.ref.key


class ClaimMap:
    """Insert-if-absent map shared by resolver workers.

    The lock only guards the individual claim so that exactly one worker wins
    each key; it is never held while a worker resolves a dependency.
    """

    _PENDING = object()

    def __init__(self, initial: Mapping[TypeKey, ResolvedType] | None = None) -> None:
        self._entries: Dict[TypeKey, object] = dict(initial or {})
        self._lock = threading.Lock()

    def try_claim(self, key: TypeKey) -> bool:
        with self._lock:
            if key in self._entries:
                return False
            self._entries[key] = self._PENDING
            return True

    def install(self, key: TypeKey, entry: ResolvedType) -> None:
        self._entries[key] = entry

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def snapshot(self) -> Dict[TypeKey, ResolvedType]:
        pending = [key for key, value in self._entries.items() if value is self._PENDING]
        if pending:
            raise RuntimeError(f"Closure finalised with unresolved claims: {pending}")
        return {key: value for key, value in self._entries.items()}  # type: ignore[misc]


class DependencyResolver:
    """Resolves seed types into the full set of types that must be emitted."""

    def __init__(
        self,
        provider: MetadataProvider,
        mapper: TypeNameMapper,
        *,
        max_workers: Optional[int] = None,
    ) -> None:
        if provider is None:
            raise ConfigError("A metadata provider is required")
        if mapper is None:
            raise ConfigError("A type name mapper is required")
        self.provider = provider
        self.mapper = mapper
        self.max_workers = max_workers
        self.logger = get_logger("resolver")

    def resolve(self, seeds: Mapping[TypeKey, TypeSpec]) -> ResolvedClosure:
        """Return the closure of every type reachable from `seeds`.

        Seeds are expanded independently; each newly discovered type is claimed
        by exactly one worker, which then expands it in turn. The resulting key
        set does not depend on the order in which seeds are processed.
        """
        seed_entries: Dict[TypeKey, ResolvedType] = {}
        for key, spec in seeds.items():
            descriptor = self._describe(key)
            if spec.shape is None:
                inferred = TypeSpec.for_kind(descriptor.kind, spec.output_dir, is_const=spec.is_const)
                inferred.annotations.update(spec.annotations)
                inferred.member_annotations.update(spec.member_annotations)
                spec = inferred
            seed_entries[key] = ResolvedType(descriptor, spec)

        claims = ClaimMap(seed_entries)
        view = AnnotationView(self.provider, {key: entry.spec for key, entry in seed_entries.items()})
        failed = threading.Event()
        workers = self.max_workers or 1
        self.logger.debug("Resolving %d seed type(s) with %d worker(s)", len(seed_entries), workers)
        if workers == 1:
            for entry in seed_entries.values():
                self._expand(entry, claims, view, failed)
        else:
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="tsgen-resolve") as pool:
                futures = [
                    pool.submit(self._expand, entry, claims, view, failed)
                    for entry in seed_entries.values()
                ]
                for future in futures:
                    future.result()

        closure = ResolvedClosure(claims.snapshot())
        self.logger.debug(
            "Resolved closure of %d type(s) from %d seed(s)", len(closure), len(seed_entries)
        )
        return closure

    def _expand(
        self,
        seed: ResolvedType,
        claims: ClaimMap,
        view: AnnotationView,
        failed: threading.Event,
    ) -> None:
        pending = [seed]
        while pending:
            if failed.is_set():
                return
            entry = pending.pop()
            for dependency in self.dependencies(entry.descriptor, view):
                key = dependency.key
                if key in claims or not claims.try_claim(key):
                    continue
                try:
                    descriptor = self._describe(key)
                except MetadataLookupError:
                    failed.set()
                    raise
                output_dir = dependency.output_dir or entry.spec.output_dir
                resolved = ResolvedType(descriptor, TypeSpec.for_kind(descriptor.kind, output_dir))
                claims.install(key, resolved)
                self.logger.debug("Discovered %s via %s", key, entry.key)
                pending.append(resolved)

    def dependencies(
        self,
        descriptor: TypeDescriptor,
        view: AnnotationView | None = None,
        *,
        include_base: bool = True,
    ) -> List[TypeDependency]:
        """Return the distinct materializable types `descriptor` refers to directly.

        Collections and dictionaries are looked through to their generic
        arguments; primitives, generic parameters and standard-library types
        are skipped. The type itself is never reported as its own dependency.
        """
        found: Dict[TypeKey, TypeDependency] = {}

        def _add(dependency: TypeDependency) -> None:
            if dependency.key != descriptor.key:
                found.setdefault(dependency.key, dependency)

        if include_base and descriptor.base is not None:
            for ref in self.complex_refs(descriptor.base):
                _add(TypeDependency(ref, is_base=ref is descriptor.base))

        for interface in descriptor.interfaces:
            for ref in self.complex_refs(interface):
                _add(TypeDependency(ref))

        for member in descriptor.members:
            annotations = (
                view.member_annotations(descriptor, member) if view is not None else member.annotations
            )
            if annotations.get(TS_IGNORE) or annotations.get(TS_TYPE):
                continue
            output_dir = annotations.get(TS_DEFAULT_TYPE_OUTPUT)
            for ref in self.complex_refs(member.type):
                _add(TypeDependency(ref, member=member.name, output_dir=output_dir))

        return list(found.values())

    def complex_refs(self, ref: TypeRef) -> Iterator[TypeRef]:
        """Yield the reference and its generic arguments that name real types."""
        classification = self.mapper.classify(ref)
        if classification is TypeClass.COMPLEX and not self.mapper.is_standard_library(ref.key):
            yield ref
        if classification is not TypeClass.SIMPLE:
            for arg in ref.args:
                yield from self.complex_refs(arg)

    def _describe(self, key: TypeKey) -> TypeDescriptor:
        try:
            return self.provider.describe(key)
        except MetadataLookupError:
            raise
        except Exception as exc:
            raise MetadataLookupError(key, str(exc)) from exc


__all__ = [
    "ClaimMap",
    "DependencyResolver",
    "TypeDependency",
]
