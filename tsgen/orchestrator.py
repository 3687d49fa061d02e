"""Generation pipeline: gather seeds, resolve the closure, render and emit files."""

from __future__ import annotations

import posixpath
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from .config import GeneratorOptions
from .errors import (
    ConfigError,
    DuplicateOutputPathError,
    GenerationAborted,
    GenerationFailed,
    MetadataLookupError,
    TsGenError,
)
from .logging import get_logger
from .mapper import TypeNameMapper
from .metadata.base import AnnotationView, MetadataProvider
from .models import (
    BarrelScope,
    BarrelSpec,
    ControllerSpec,
    GenerationResult,
    PreservedZone,
    ResolvedClosure,
    ResolvedType,
    TypeKey,
    TypeSpec,
)
from .rendering import ContentGenerator, OutputPaths, TemplateRenderer
from .rendering.content import normalise_dir
from .resolver import DependencyResolver
from .sinks import FileContentGenerated, FileSink, FileSystemSink
from .spec import GenerationContext, GenerationSpec, merge_barrels, merge_generation_specs
from .storage import FileSystem, LocalFileSystem
from .zones import CUSTOM_BODY_TAG, CUSTOM_HEAD_TAG, KEEP_TS_TAG, ZoneParser, first_zone

ResolvedCallback = Callable[[ResolvedClosure], None]


class RunState(str, Enum):
    """Lifecycle of a single generation run."""

    IDLE = "idle"
    SEEDS_GATHERED = "seeds_gathered"
    CLOSURE_RESOLVED = "closure_resolved"
    RENDERING = "rendering"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class _RenderJob:
    """One output file: a type or a service, with its claimed path."""

    key: TypeKey
    relative_path: str
    entry: Optional[ResolvedType] = None
    controller: Optional[ControllerSpec] = None


class Generator:
    """Drives a generation run from export requests to emitted files."""

    def __init__(
        self,
        provider: MetadataProvider,
        options: GeneratorOptions | None = None,
        *,
        file_system: FileSystem | None = None,
        renderer: TemplateRenderer | None = None,
    ) -> None:
        if provider is None:
            raise ConfigError("A metadata provider is required")
        self.provider = provider
        self.options = options or GeneratorOptions()
        self.file_system = file_system or LocalFileSystem()
        self.mapper = TypeNameMapper(self.options)
        self.resolver = DependencyResolver(provider, self.mapper, max_workers=self.options.max_workers)
        self.zone_parser = ZoneParser(self.file_system.read_text)
        self.renderer = renderer or TemplateRenderer(self.options, zone_parser=self.zone_parser)
        self.paths = OutputPaths(self.options)
        self.default_sink = FileSystemSink(self.file_system)
        self._sinks: List[FileSink] = [self.default_sink]
        self._after_resolved: List[ResolvedCallback] = []
        self._abort = threading.Event()
        self.state = RunState.IDLE
        self.logger = get_logger("generator")

    # ------------------------------------------------------------------
    # Sinks and callbacks
    # ------------------------------------------------------------------
    @property
    def sinks(self) -> Tuple[FileSink, ...]:
        return tuple(self._sinks)

    def subscribe(self, sink: FileSink) -> None:
        if sink not in self._sinks:
            self._sinks.append(sink)

    def unsubscribe(self, sink: FileSink) -> None:
        if sink in self._sinks:
            self._sinks.remove(sink)

    def subscribe_default_sink(self) -> None:
        if self.default_sink not in self._sinks:
            self._sinks.insert(0, self.default_sink)

    def unsubscribe_default_sink(self) -> None:
        self.unsubscribe(self.default_sink)

    def after_dependency_resolved(self, callback: ResolvedCallback) -> ResolvedCallback:
        """Register a callback invoked with the closure; usable as a decorator."""
        self._after_resolved.append(callback)
        return callback

    def abort(self) -> None:
        """Stop scheduling renders; the current run ends as failed."""
        self._abort.set()

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------
    def generate(self, specs: Union[GenerationSpec, Iterable[GenerationSpec]]) -> GenerationResult:
        """Run one generation and return the files it produced."""
        spec_list = [specs] if isinstance(specs, GenerationSpec) else list(specs)
        self._abort.clear()
        self.state = RunState.IDLE
        try:
            return self._run(spec_list)
        except TsGenError:
            self.state = RunState.FAILED
            raise

    def _run(self, specs: List[GenerationSpec]) -> GenerationResult:
        if not specs:
            raise ConfigError("No generation specs were supplied")

        context = GenerationContext(self.options)
        for spec in specs:
            spec.on_before_generation(context)
        merged = merge_generation_specs(specs)
        seeds = self._gather_seeds(merged.type_specs, merged.controllers.values())
        if not seeds and not merged.controllers and not merged.barrels:
            raise ConfigError("Nothing to generate: no types, controllers or barrels were requested")
        self._transition(RunState.SEEDS_GATHERED, "%d seed type(s)", len(seeds))

        closure = self.resolver.resolve(seeds)
        self._transition(RunState.CLOSURE_RESOLVED, "%d type(s) in closure", len(closure))
        for callback in self._after_resolved:
            callback(closure)

        view = AnnotationView(self.provider, {key: entry.spec for key, entry in closure.items()})
        content = ContentGenerator(self.options, self.mapper, self.resolver, view, closure, self.paths)
        controllers = [merged.controllers[key] for key in sorted(merged.controllers)]
        claimed: Dict[str, object] = {}
        jobs = self._plan(closure.materializable(self.mapper), controllers, merged.barrels, claimed)

        self._transition(RunState.RENDERING, "%d file(s) to render", len(jobs))
        result = GenerationResult()
        outcomes = self._render_all(jobs, content)
        for job, error in outcomes:
            if error is not None:
                result.errors[str(job.key)] = error
            elif job.controller is not None:
                result.services.append(job.relative_path)
                result.method_count += len(job.controller.methods)
            else:
                result.types.append(job.relative_path)
        if self._abort.is_set():
            raise GenerationAborted("Generation was aborted before all files were rendered")
        if result.errors and self.options.strict:
            raise GenerationFailed(result.errors)

        result.types.sort()
        result.services.sort()
        if self.options.create_index_file:
            result.index = self._generate_index([*result.types, *result.services], content)

        context.generated_files = list(result.all_files)
        for spec in specs:
            spec.on_before_barrel_generation(context)
        barrels = merge_barrels([merged.barrels, *(spec.barrel_specs for spec in specs)])
        self._claim_indexes(barrels, claimed, with_root=False)
        result.barrels = sorted(self._generate_barrel(barrel, content) for barrel in barrels)

        self._transition(
            RunState.COMPLETED,
            "%d type file(s), %d service file(s), %d barrel(s), %d error(s)",
            len(result.types),
            len(result.services),
            len(result.barrels),
            len(result.errors),
        )
        return result

    def _gather_seeds(
        self, type_specs: Dict[TypeKey, TypeSpec], controllers: Iterable[ControllerSpec]
    ) -> Dict[TypeKey, TypeSpec]:
        """Merge type requests with the types used by service methods."""
        seeds = dict(type_specs)
        for controller in controllers:
            for method in controller.methods:
                refs = [method.returns] if method.returns is not None else []
                refs.extend(parameter.type for parameter in method.parameters)
                for ref in refs:
                    for dependency in self.resolver.complex_refs(ref):
                        seeds.setdefault(dependency.key, TypeSpec())
        return seeds

    def _plan(
        self,
        entries: Sequence[ResolvedType],
        controllers: Sequence[ControllerSpec],
        barrels: Sequence[BarrelSpec],
        claimed: Dict[str, object],
    ) -> List[_RenderJob]:
        """Assign every output file a path; two sources for one path is fatal.

        Index and barrel files are claimed too, so a type named `Index` cannot
        be silently replaced by a generated index.
        """
        jobs: List[_RenderJob] = []

        def _claim(path: str, key: TypeKey) -> None:
            _claim_path(claimed, path, key)

        for entry in entries:
            path = self.paths.relative_path(entry.key, entry.spec.output_dir)
            _claim(path, entry.key)
            jobs.append(_RenderJob(entry.key, path, entry=entry))
        for controller in controllers:
            path = self.paths.relative_path(controller.key, controller.output_dir)
            _claim(path, controller.key)
            if self.options.service_spec_files:
                _claim(self.paths.relative_path(controller.key, controller.output_dir, ".spec"), controller.key)
            jobs.append(_RenderJob(controller.key, path, controller=controller))
        self._claim_indexes(barrels, claimed, with_root=self.options.create_index_file)
        return jobs

    def _claim_indexes(self, barrels: Sequence[BarrelSpec], claimed: Dict[str, object], *, with_root: bool) -> None:
        if with_root:
            _claim_path(claimed, self._index_name(""), "index file")
        for barrel in barrels:
            directory = normalise_dir(barrel.directory)
            _claim_path(claimed, self._index_name(directory), f"barrel '{directory or '.'}'")

    def _index_name(self, directory: str) -> str:
        suffix = f".{self.options.file_extension}" if self.options.file_extension else ""
        return posixpath.join(directory, f"index{suffix}") if directory else f"index{suffix}"

    def _render_all(
        self, jobs: Sequence[_RenderJob], content: ContentGenerator
    ) -> List[Tuple[_RenderJob, Optional[str]]]:
        workers = self.options.max_workers or 1
        if workers == 1:
            return [self._render_safely(job, content) for job in jobs]
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="tsgen-render") as pool:
            futures = [pool.submit(self._render_safely, job, content) for job in jobs]
            return [future.result() for future in futures]

    def _render_safely(self, job: _RenderJob, content: ContentGenerator) -> Tuple[_RenderJob, Optional[str]]:
        """Render one job; per-file failures are returned instead of raised."""
        if self._abort.is_set():
            return job, "generation aborted"
        try:
            if job.controller is not None:
                self._render_service(job, job.controller, content)
            elif job.entry is not None:
                self._render_type(job, job.entry, content)
        except (GenerationAborted, MetadataLookupError, DuplicateOutputPathError):
            raise
        except Exception as exc:  # noqa: BLE001 - recorded per type
            self.logger.error("Failed to generate %s: %s", job.key, exc)
            return job, str(exc)
        return job, None

    def _render_type(self, job: _RenderJob, entry: ResolvedType, content: ContentGenerator) -> None:
        path = self.paths.absolute_path(job.relative_path)
        zones = self._zones_for(path)
        shape, fields = content.type_fields(entry)
        text = self.renderer.render(shape, fields, zones)
        self._emit(job.key, path, text)

    def _render_service(self, job: _RenderJob, controller: ControllerSpec, content: ContentGenerator) -> None:
        path = self.paths.absolute_path(job.relative_path)
        zones = self._zones_for(path)
        text = self.renderer.render("service", content.service_fields(controller), zones)
        spec_text = None
        if self.options.service_spec_files:
            spec_text = self.renderer.render("service-spec", content.service_spec_fields(controller))
        self._emit(job.key, path, text)
        if spec_text is not None:
            spec_path = self.paths.relative_path(controller.key, controller.output_dir, ".spec")
            self._emit(job.key, self.paths.absolute_path(spec_path), spec_text)

    def _zones_for(self, path: Path) -> Dict[str, PreservedZone]:
        found = self.zone_parser.parse_zones(path, (CUSTOM_HEAD_TAG, CUSTOM_BODY_TAG, KEEP_TS_TAG))
        zones: Dict[str, PreservedZone] = {}
        head = found.get(CUSTOM_HEAD_TAG)
        if head is not None:
            zones[CUSTOM_HEAD_TAG] = head
        body = first_zone(found, (KEEP_TS_TAG, CUSTOM_BODY_TAG))
        if body is not None:
            zones[CUSTOM_BODY_TAG] = body
        return zones

    def _generate_index(self, files: Sequence[str], content: ContentGenerator) -> str:
        suffix = f".{self.options.file_extension}" if self.options.file_extension else ""
        entries = [path[: len(path) - len(suffix)] if suffix and path.endswith(suffix) else path for path in files]
        name = self._index_name("")
        text = self.renderer.render("index", content.index_fields(entries))
        self._emit(None, self.paths.absolute_path(name), text)
        return name

    def _generate_barrel(self, barrel: BarrelSpec, content: ContentGenerator) -> str:
        suffix = f".{self.options.file_extension}" if self.options.file_extension else ""
        file_name = f"index{suffix}"
        directory = normalise_dir(barrel.directory)
        absolute = self.paths.absolute_path(directory) if directory else Path(self.options.output_dir)

        entries: List[str] = []
        if barrel.scope & BarrelScope.FILES:
            for path in self.file_system.list_files(absolute):
                if path.name == file_name or (suffix and not path.name.endswith(suffix)):
                    continue
                entries.append(path.name[: len(path.name) - len(suffix)] if suffix else path.name)
        if barrel.scope & BarrelScope.DIRECTORIES:
            entries.extend(path.name for path in self.file_system.list_directories(absolute))

        relative = self._index_name(directory)
        text = self.renderer.render("index", content.index_fields(entries))
        self._emit(None, absolute / file_name, text)
        return relative

    def _emit(self, key: Optional[TypeKey], path: Path, text: str) -> None:
        if self._abort.is_set():
            raise GenerationAborted(f"Generation aborted before writing {path}")
        event = FileContentGenerated(key, path, text)
        for sink in list(self._sinks):
            sink.handle(event)
        self.logger.debug("Wrote %s", path)

    def _transition(self, state: RunState, message: str, *args: object) -> None:
        self.state = state
        self.logger.debug("%s: " + message, state.value, *args)


def _claim_path(claimed: Dict[str, object], path: str, owner: object) -> None:
    current = claimed.setdefault(path, owner)
    if current != owner:
        raise DuplicateOutputPathError(path, current, owner)


__all__ = ["Generator", "RunState"]
