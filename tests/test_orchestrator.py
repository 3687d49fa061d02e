"""Tests for tsgen.orchestrator."""

from __future__ import annotations

from pathlib import Path
from typing import Any, List, Mapping, Optional

import pytest

from tsgen.config import GeneratorOptions
from tsgen.errors import (
    ConfigError,
    DuplicateOutputPathError,
    GenerationAborted,
    GenerationFailed,
    MetadataLookupError,
)
from tsgen.metadata.memory import TypeGraphBuilder
from tsgen.models import (
    BarrelScope,
    MethodSpec,
    ParameterDescriptor,
    PreservedZone,
    ResolvedClosure,
    TypeKey,
    TypeKind,
    TypeRef,
)
from tsgen.orchestrator import Generator, RunState
from tsgen.rendering import TemplateRenderer
from tsgen.sinks import RecordingSink
from tsgen.spec import GenerationContext, GenerationSpec
from tsgen.storage import MemoryFileSystem
from tsgen.zones import ZoneParser

ORDER_TS = (
    'import { OrderLine } from "./order-line";\n'
    "\n"
    "export class Order {\n"
    "    items: OrderLine[];\n"
    "}\n"
)
ORDER_LINE_TS = "export class OrderLine {\n    sku: string;\n}\n"


def _order_spec(output_dir: Optional[str] = None) -> GenerationSpec:
    spec = GenerationSpec()
    spec.add_class("shop.Order", output_dir)
    return spec


class FailingRenderer(TemplateRenderer):
    """Raises for one named type."""

    def __init__(self, options: GeneratorOptions, zone_parser: ZoneParser, failing: str) -> None:
        super().__init__(options, zone_parser=zone_parser)
        self.failing = failing

    def render(
        self,
        shape: str,
        fields: Mapping[str, Any],
        zones: Optional[Mapping[str, PreservedZone]] = None,
    ) -> str:
        if fields.get("name") == self.failing:
            raise ValueError("template exploded")
        return super().render(shape, fields, zones)


def test_generates_order_and_its_dependency(
    order_graph: TypeGraphBuilder, options: GeneratorOptions, memory_fs: MemoryFileSystem
) -> None:
    generator = Generator(order_graph.provider, options, file_system=memory_fs)
    assert generator.state is RunState.IDLE

    result = generator.generate(_order_spec())

    assert result.types == ["order-line.ts", "order.ts"]
    assert result.succeeded
    assert memory_fs.files == {"out/order.ts": ORDER_TS, "out/order-line.ts": ORDER_LINE_TS}
    assert generator.state is RunState.COMPLETED


def test_default_heading_is_prepended(order_graph: TypeGraphBuilder, memory_fs: MemoryFileSystem) -> None:
    generator = Generator(order_graph.provider, GeneratorOptions(output_dir=Path("out")), file_system=memory_fs)

    generator.generate(_order_spec())

    text = memory_fs.files["out/order-line.ts"]
    assert text.startswith("/**\n * This is a tsgen auto-generated file.\n")
    assert text.endswith(" */\n\n" + ORDER_LINE_TS)


def test_writes_to_local_disk(order_graph: TypeGraphBuilder, tmp_path: Path) -> None:
    options = GeneratorOptions(output_dir=tmp_path / "out", file_heading=None)

    Generator(order_graph.provider, options).generate(_order_spec("models"))

    assert (tmp_path / "out" / "models" / "order.ts").read_text(encoding="utf-8") == ORDER_TS
    assert (tmp_path / "out" / "models" / "order-line.ts").exists()


def test_recording_sink_receives_every_file(
    order_graph: TypeGraphBuilder, options: GeneratorOptions, memory_fs: MemoryFileSystem
) -> None:
    generator = Generator(order_graph.provider, options, file_system=memory_fs)
    recorder = RecordingSink()
    generator.subscribe(recorder)

    generator.generate(_order_spec())

    assert {event.key for event in recorder.events} == {TypeKey("shop.Order"), TypeKey("shop.OrderLine")}
    assert recorder.content_for(Path("out/order.ts")) == ORDER_TS


def test_unsubscribing_default_sink_writes_nothing(
    order_graph: TypeGraphBuilder, options: GeneratorOptions, memory_fs: MemoryFileSystem
) -> None:
    generator = Generator(order_graph.provider, options, file_system=memory_fs)
    recorder = RecordingSink()
    generator.unsubscribe_default_sink()
    generator.subscribe(recorder)

    result = generator.generate(_order_spec())

    assert memory_fs.files == {}
    assert recorder.paths == [Path("out/order-line.ts"), Path("out/order.ts")]
    assert result.types == ["order-line.ts", "order.ts"]

    generator.subscribe_default_sink()
    assert generator.sinks[0] is generator.default_sink


def test_duplicate_output_path_fails_before_writing(
    options: GeneratorOptions, memory_fs: MemoryFileSystem
) -> None:
    graph = TypeGraphBuilder()
    graph.add_class("billing.Order")
    graph.add_class("shop.Order")
    spec = GenerationSpec()
    spec.add_class("billing.Order")
    spec.add_class("shop.Order")
    generator = Generator(graph.provider, options, file_system=memory_fs)

    with pytest.raises(DuplicateOutputPathError) as excinfo:
        generator.generate(spec)

    assert excinfo.value.path == "order.ts"
    assert {excinfo.value.first, excinfo.value.second} == {TypeKey("billing.Order"), TypeKey("shop.Order")}
    assert memory_fs.files == {}
    assert generator.state is RunState.FAILED


def test_same_name_in_distinct_directories_is_allowed(
    options: GeneratorOptions, memory_fs: MemoryFileSystem
) -> None:
    graph = TypeGraphBuilder()
    graph.add_class("billing.Order")
    graph.add_class("shop.Order")
    spec = GenerationSpec()
    spec.add_class("billing.Order", "billing")
    spec.add_class("shop.Order", "shop")

    result = Generator(graph.provider, options, file_system=memory_fs).generate(spec)

    assert result.types == ["billing/order.ts", "shop/order.ts"]


def test_type_named_index_collides_with_index_file(
    options: GeneratorOptions, memory_fs: MemoryFileSystem
) -> None:
    options.create_index_file = True
    graph = TypeGraphBuilder()
    graph.add_class("shop.Index").member("name", graph.primitive("str"))
    spec = GenerationSpec()
    spec.add_class("shop.Index")
    generator = Generator(graph.provider, options, file_system=memory_fs)

    with pytest.raises(DuplicateOutputPathError) as excinfo:
        generator.generate(spec)

    assert excinfo.value.path == "index.ts"
    assert {excinfo.value.first, excinfo.value.second} == {TypeKey("shop.Index"), "index file"}
    assert memory_fs.files == {}


def test_type_named_index_collides_with_barrel(options: GeneratorOptions, memory_fs: MemoryFileSystem) -> None:
    graph = TypeGraphBuilder()
    graph.add_class("shop.Index").member("name", graph.primitive("str"))
    spec = GenerationSpec()
    spec.add_class("shop.Index", "models")
    spec.add_barrel("models")

    with pytest.raises(DuplicateOutputPathError) as excinfo:
        Generator(graph.provider, options, file_system=memory_fs).generate(spec)

    assert excinfo.value.path == "models/index.ts"
    assert memory_fs.files == {}


def test_missing_metadata_aborts_the_run(options: GeneratorOptions, memory_fs: MemoryFileSystem) -> None:
    graph = TypeGraphBuilder()
    graph.add_class("shop.Order").member("ghost", TypeRef(TypeKey("shop.Ghost"), kind=TypeKind.CLASS))
    generator = Generator(graph.provider, options, file_system=memory_fs)

    with pytest.raises(MetadataLookupError) as excinfo:
        generator.generate(_order_spec())

    assert excinfo.value.key == TypeKey("shop.Ghost")
    assert memory_fs.files == {}
    assert generator.state is RunState.FAILED


def test_regeneration_preserves_zones_and_is_idempotent(
    order_graph: TypeGraphBuilder, options: GeneratorOptions
) -> None:
    previous = (
        "//<custom-head>\n"
        "import { Money } from './money';\n"
        "//</custom-head>\n"
        "\n"
        "export class Order {\n"
        "    stale: string;\n"
        "\n"
        "    //<custom-body>\n"
        "    get total(): Money {\n"
        "        return new Money(0);\n"
        "    }\n"
        "    //</custom-body>\n"
        "}\n"
    )
    memory_fs = MemoryFileSystem({"out/order.ts": previous})
    generator = Generator(order_graph.provider, options, file_system=memory_fs)

    generator.generate(_order_spec())
    first = memory_fs.files["out/order.ts"]
    generator.generate(_order_spec())

    assert first == (
        'import { OrderLine } from "./order-line";\n'
        "\n"
        "//<custom-head>\n"
        "import { Money } from './money';\n"
        "//</custom-head>\n"
        "\n"
        "export class Order {\n"
        "    items: OrderLine[];\n"
        "\n"
        "    //<custom-body>\n"
        "    get total(): Money {\n"
        "        return new Money(0);\n"
        "    }\n"
        "    //</custom-body>\n"
        "}\n"
    )
    assert memory_fs.files["out/order.ts"] == first


def test_keep_ts_zone_moves_into_custom_body(order_graph: TypeGraphBuilder, options: GeneratorOptions) -> None:
    previous = "export class OrderLine {\n    //<keep-ts>\n    price = 0;\n    //</keep-ts>\n}\n"
    memory_fs = MemoryFileSystem({"out/order-line.ts": previous})

    Generator(order_graph.provider, options, file_system=memory_fs).generate(_order_spec())

    assert memory_fs.files["out/order-line.ts"] == (
        "export class OrderLine {\n"
        "    sku: string;\n"
        "\n"
        "    //<custom-body>\n"
        "    price = 0;\n"
        "    //</custom-body>\n"
        "}\n"
    )


def test_zone_lines_at_column_zero_survive_regeneration(
    order_graph: TypeGraphBuilder, options: GeneratorOptions
) -> None:
    previous = (
        'import { OrderLine } from "./order-line";\n'
        "\n"
        "export class Order {\n"
        "    items: OrderLine[];\n"
        "\n"
        "    //<custom-body>\n"
        "    sql = `\n"
        "SELECT 1`;\n"
        "    //</custom-body>\n"
        "}\n"
    )
    memory_fs = MemoryFileSystem({"out/order.ts": previous})
    generator = Generator(order_graph.provider, options, file_system=memory_fs)

    generator.generate(_order_spec())
    assert memory_fs.files["out/order.ts"] == previous
    generator.generate(_order_spec())
    assert memory_fs.files["out/order.ts"] == previous


def test_render_failures_are_collected(
    order_graph: TypeGraphBuilder, options: GeneratorOptions, memory_fs: MemoryFileSystem
) -> None:
    renderer = FailingRenderer(options, ZoneParser(memory_fs.read_text), "OrderLine")
    generator = Generator(order_graph.provider, options, file_system=memory_fs, renderer=renderer)

    result = generator.generate(_order_spec())

    assert result.types == ["order.ts"]
    assert result.errors == {"shop.OrderLine": "template exploded"}
    assert not result.succeeded
    assert list(memory_fs.files) == ["out/order.ts"]


def test_strict_mode_raises_on_render_failures(
    order_graph: TypeGraphBuilder, options: GeneratorOptions, memory_fs: MemoryFileSystem
) -> None:
    options.strict = True
    renderer = FailingRenderer(options, ZoneParser(memory_fs.read_text), "OrderLine")
    generator = Generator(order_graph.provider, options, file_system=memory_fs, renderer=renderer)

    with pytest.raises(GenerationFailed) as excinfo:
        generator.generate(_order_spec())

    assert excinfo.value.errors == {"shop.OrderLine": "template exploded"}
    assert generator.state is RunState.FAILED


def test_abort_from_resolved_callback(
    order_graph: TypeGraphBuilder, options: GeneratorOptions, memory_fs: MemoryFileSystem
) -> None:
    generator = Generator(order_graph.provider, options, file_system=memory_fs)
    seen: List[TypeKey] = []

    @generator.after_dependency_resolved
    def _stop(closure: ResolvedClosure) -> None:
        seen.extend(sorted(closure))
        generator.abort()

    with pytest.raises(GenerationAborted):
        generator.generate(_order_spec())

    assert seen == [TypeKey("shop.Order"), TypeKey("shop.OrderLine")]
    assert memory_fs.files == {}
    assert generator.state is RunState.FAILED


def test_threaded_rendering_matches_sequential(order_graph: TypeGraphBuilder, options: GeneratorOptions) -> None:
    sequential = MemoryFileSystem()
    threaded = MemoryFileSystem()
    Generator(order_graph.provider, options, file_system=sequential).generate(_order_spec())

    options.max_workers = 4
    Generator(order_graph.provider, options, file_system=threaded).generate(_order_spec())

    assert threaded.files == sequential.files


def test_first_registration_wins_across_specs(
    order_graph: TypeGraphBuilder, options: GeneratorOptions, memory_fs: MemoryFileSystem
) -> None:
    result = Generator(order_graph.provider, options, file_system=memory_fs).generate(
        [_order_spec("first"), _order_spec("second")]
    )

    assert result.types == ["first/order-line.ts", "first/order.ts"]


def test_services_are_generated_with_their_types(
    order_graph: TypeGraphBuilder, options: GeneratorOptions, memory_fs: MemoryFileSystem
) -> None:
    spec = GenerationSpec()
    spec.add_controller("api.OrderService", "services", doc="Order endpoints.")
    spec.add_method(
        "api.OrderService",
        MethodSpec(
            "get_order",
            "get",
            "/api/orders",
            returns=TypeRef(TypeKey("shop.Order"), kind=TypeKind.CLASS),
            parameters=[ParameterDescriptor("id", TypeGraphBuilder.primitive("int"))],
        ),
    )

    result = Generator(order_graph.provider, options, file_system=memory_fs).generate(spec)

    assert result.services == ["services/order-service.ts"]
    assert result.method_count == 1
    assert result.types == ["order-line.ts", "order.ts"]
    service = memory_fs.files["out/services/order-service.ts"]
    assert 'import { Order } from "../order";' in service
    assert "    public getOrder(id: number): Observable<Order> {" in service
    assert '        return super.get<Order>("/api/orders", {id: id});' in service
    assert "describe(\"OrderService\"" in memory_fs.files["out/services/order-service.spec.ts"]


def test_service_spec_files_can_be_disabled(options: GeneratorOptions, memory_fs: MemoryFileSystem) -> None:
    options.service_spec_files = False
    spec = GenerationSpec()
    spec.add_method("api.HealthService", MethodSpec("ping", "get", "/api/ping"))

    result = Generator(TypeGraphBuilder().provider, options, file_system=memory_fs).generate(spec)

    assert result.services == ["health-service.ts"]
    assert list(memory_fs.files) == ["out/health-service.ts"]


def test_index_file_lists_generated_modules(
    order_graph: TypeGraphBuilder, options: GeneratorOptions, memory_fs: MemoryFileSystem
) -> None:
    options.create_index_file = True

    result = Generator(order_graph.provider, options, file_system=memory_fs).generate(_order_spec())

    assert result.index == "index.ts"
    assert memory_fs.files["out/index.ts"] == 'export * from "./order-line";\nexport * from "./order";\n'
    assert result.all_files == ["order-line.ts", "order.ts", "index.ts"]


def test_barrels_list_files_and_directories(
    order_graph: TypeGraphBuilder, options: GeneratorOptions, memory_fs: MemoryFileSystem
) -> None:
    spec = _order_spec("models")
    spec.add_barrel("models", BarrelScope.FILES)
    spec.add_barrel("", BarrelScope.DIRECTORIES)

    result = Generator(order_graph.provider, options, file_system=memory_fs).generate(spec)

    assert result.barrels == ["index.ts", "models/index.ts"]
    assert memory_fs.files["out/models/index.ts"] == (
        'export * from "./order-line";\nexport * from "./order";\n'
    )
    assert memory_fs.files["out/index.ts"] == 'export * from "./models";\n'


def test_generation_hooks(order_graph: TypeGraphBuilder, options: GeneratorOptions, memory_fs: MemoryFileSystem) -> None:
    class HookedSpec(GenerationSpec):
        def __init__(self) -> None:
            super().__init__()
            self.generated: List[str] = []

        def on_before_generation(self, context: GenerationContext) -> None:
            self.add_class("shop.Order", "models")

        def on_before_barrel_generation(self, context: GenerationContext) -> None:
            self.generated = list(context.generated_files)
            self.add_barrel("models")

    spec = HookedSpec()

    result = Generator(order_graph.provider, options, file_system=memory_fs).generate(spec)

    assert spec.generated == ["models/order-line.ts", "models/order.ts"]
    assert result.barrels == ["models/index.ts"]


def test_barrels_alone_are_enough_to_run(options: GeneratorOptions) -> None:
    memory_fs = MemoryFileSystem({"out/api/client.ts": "export const client = 1;\n"})
    spec = GenerationSpec()
    spec.add_barrel("api")

    result = Generator(TypeGraphBuilder().provider, options, file_system=memory_fs).generate(spec)

    assert result.barrels == ["api/index.ts"]
    assert memory_fs.files["out/api/index.ts"] == 'export * from "./client";\n'


def test_nothing_to_generate_is_a_config_error(options: GeneratorOptions, memory_fs: MemoryFileSystem) -> None:
    generator = Generator(TypeGraphBuilder().provider, options, file_system=memory_fs)

    with pytest.raises(ConfigError):
        generator.generate([])
    with pytest.raises(ConfigError, match="Nothing to generate"):
        generator.generate(GenerationSpec())
    assert generator.state is RunState.FAILED
