"""Programmatic export requests: which types, barrels and services to generate."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Union

from .config import GeneratorOptions
from .logging import get_logger
from .models import (
    BarrelScope,
    BarrelSpec,
    ControllerSpec,
    ExportShape,
    MethodSpec,
    TypeKey,
    TypeSpec,
)

KeyLike = Union[TypeKey, str]

logger = get_logger("spec")


def as_key(value: KeyLike) -> TypeKey:
    return value if isinstance(value, TypeKey) else TypeKey(value)


@dataclass
class GenerationContext:
    """Passed to GenerationSpec hooks; `generated_files` is filled before barrels."""

    options: GeneratorOptions
    generated_files: List[str] = field(default_factory=list)


class GenerationSpec:
    """Collects export requests.

    Subclass and override the hooks to register barrels once the generated
    file list is known, or to adjust requests from the run's options.
    """

    def __init__(self) -> None:
        self.type_specs: Dict[TypeKey, TypeSpec] = {}
        self.barrel_specs: List[BarrelSpec] = []
        self.controller_specs: Dict[TypeKey, ControllerSpec] = {}

    def add_class(self, key: KeyLike, output_dir: Optional[str] = None) -> TypeSpec:
        return self._register(as_key(key), TypeSpec(ExportShape.CLASS, output_dir))

    def add_interface(self, key: KeyLike, output_dir: Optional[str] = None) -> TypeSpec:
        return self._register(as_key(key), TypeSpec(ExportShape.INTERFACE, output_dir))

    def add_enum(self, key: KeyLike, output_dir: Optional[str] = None, *, is_const: bool = False) -> TypeSpec:
        return self._register(as_key(key), TypeSpec(ExportShape.ENUM, output_dir, is_const=is_const))

    def add_type(self, key: KeyLike, output_dir: Optional[str] = None) -> TypeSpec:
        """Request a type whose shape is inferred from its own kind."""
        return self._register(as_key(key), TypeSpec(None, output_dir))

    def add_barrel(self, directory: str, scope: BarrelScope = BarrelScope.ALL) -> BarrelSpec:
        barrel = BarrelSpec(directory, scope)
        self.barrel_specs.append(barrel)
        return barrel

    def add_controller(
        self, key: KeyLike, output_dir: Optional[str] = None, *, doc: Optional[str] = None
    ) -> ControllerSpec:
        key = as_key(key)
        existing = self.controller_specs.get(key)
        if existing is not None:
            return existing
        controller = ControllerSpec(key, output_dir, doc=doc)
        self.controller_specs[key] = controller
        return controller

    def add_method(self, controller: KeyLike, method: MethodSpec) -> MethodSpec:
        self.add_controller(controller).methods.append(method)
        return method

    def on_before_generation(self, context: GenerationContext) -> None:
        """Called once before seeds are gathered."""

    def on_before_barrel_generation(self, context: GenerationContext) -> None:
        """Called after all type and service files are rendered."""

    def _register(self, key: TypeKey, spec: TypeSpec) -> TypeSpec:
        existing = self.type_specs.get(key)
        if existing is not None:
            logger.debug("%s is already registered; keeping the first registration", key)
            return existing
        self.type_specs[key] = spec
        return spec


@dataclass
class MergedSpecs:
    type_specs: Dict[TypeKey, TypeSpec] = field(default_factory=dict)
    controllers: Dict[TypeKey, ControllerSpec] = field(default_factory=dict)
    barrels: List[BarrelSpec] = field(default_factory=list)


def merge_generation_specs(specs: Iterable[GenerationSpec]) -> MergedSpecs:
    """Merge specs in order; the first registration of a key wins."""
    merged = MergedSpecs()
    for spec in specs:
        for key, type_spec in spec.type_specs.items():
            if key in merged.type_specs:
                logger.debug("Ignoring later registration of %s", key)
                continue
            merged.type_specs[key] = type_spec
        for key, controller in spec.controller_specs.items():
            merged.controllers.setdefault(key, controller)
        merged.barrels = merge_barrels([merged.barrels, spec.barrel_specs])
    return merged


def merge_barrels(groups: Iterable[Iterable[BarrelSpec]]) -> List[BarrelSpec]:
    """Keep the first barrel requested for each directory."""
    seen: Dict[str, BarrelSpec] = {}
    for group in groups:
        for barrel in group:
            seen.setdefault(barrel.directory.replace("\\", "/").strip("/"), barrel)
    return list(seen.values())


__all__ = [
    "GenerationContext",
    "GenerationSpec",
    "MergedSpecs",
    "as_key",
    "merge_barrels",
    "merge_generation_specs",
]
