"""Tests for tsgen.rendering.renderer."""

from __future__ import annotations

from pathlib import Path

import pytest

from tsgen.config import GeneratorOptions
from tsgen.errors import RenderError
from tsgen.models import PreservedZone
from tsgen.rendering import TemplateRenderer
from tsgen.zones import CUSTOM_BODY_TAG, CUSTOM_HEAD_TAG


def _renderer(**overrides: object) -> TemplateRenderer:
    return TemplateRenderer(GeneratorOptions(file_heading=None, **overrides))


def _class_fields(**overrides: object) -> dict:
    fields = {
        "name": "Order",
        "imports": 'import { OrderLine } from "./order-line";',
        "properties": "    items: OrderLine[];",
        "extends": "",
        "implements": "",
    }
    fields.update(overrides)
    return fields


def test_class_renders_imports_and_properties() -> None:
    text = _renderer().render("class", _class_fields())

    assert text == (
        'import { OrderLine } from "./order-line";\n'
        "\n"
        "export class Order {\n"
        "    items: OrderLine[];\n"
        "}\n"
    )


def test_empty_class_has_no_blank_lines() -> None:
    text = _renderer().render("class", _class_fields(imports="", properties=""))

    assert text == "export class Order {\n}\n"


def test_heading_and_comment_precede_declaration() -> None:
    fields = _class_fields(
        heading="/**\n * generated\n */",
        comment="/**\n * An order.\n */",
        imports="",
        extends=" extends Entity",
        implements=" implements Audited",
    )

    text = _renderer().render("class", fields)

    assert text.startswith("/**\n * generated\n */\n\n/**\n * An order.\n */\nexport class Order extends Entity")
    assert "class Order extends Entity implements Audited {" in text


def test_zones_are_rewrapped_in_their_slots() -> None:
    zones = {
        CUSTOM_HEAD_TAG: PreservedZone(CUSTOM_HEAD_TAG, "import { Money } from './money';"),
        CUSTOM_BODY_TAG: PreservedZone(CUSTOM_BODY_TAG, "get total(): number {\n    return 0;\n}", "    "),
    }

    text = _renderer().render("class", _class_fields(), zones)

    assert text == (
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
        "    get total(): number {\n"
        "        return 0;\n"
        "    }\n"
        "    //</custom-body>\n"
        "}\n"
    )


def test_interface_with_default_export() -> None:
    fields = {
        "name": "Audited",
        "export_name": "Audited",
        "extends": "",
        "properties": "    createdBy?: string;",
        "default_export": True,
    }

    text = _renderer().render("interface", fields)

    assert text == "interface Audited {\n    createdBy?: string;\n}\nexport default Audited;\n"


def test_const_enum() -> None:
    fields = {"name": "Status", "values": "    Open = 0,\n    Closed = 1,", "is_const": True}

    text = _renderer().render("enum", fields)

    assert text == "export const enum Status {\n    Open = 0,\n    Closed = 1,\n}\n"


def test_index_uses_configured_quotes() -> None:
    entries = {"entries": ["order", "models/order-line"]}

    assert _renderer().render("index", entries) == (
        'export * from "./order";\nexport * from "./models/order-line";\n'
    )
    assert _renderer(single_quotes=True).render("index", entries).startswith("export * from './order';")
    assert _renderer().render("index", {"entries": []}) == ""


def test_service_renders_methods() -> None:
    fields = {
        "name": "OrderService",
        "base_import": "../api-service-base",
        "imports": 'import { Order } from "../order";',
        "methods": [
            {
                "name": "getOrder",
                "parameters": "id: number",
                "return_type": "Observable<Order>",
                "body": ['return super.get<Order>("/orders", {id: id});'],
                "comment": "",
            }
        ],
    }

    text = _renderer(tab_length=2).render("service", fields)

    assert 'import { ApiServiceBase } from "../api-service-base";' in text
    assert 'import { Order } from "../order";\n\n@Injectable' in text
    assert "export class OrderService extends ApiServiceBase {" in text
    assert (
        "  public getOrder(id: number): Observable<Order> {\n"
        '    return super.get<Order>("/orders", {id: id});\n'
        "  }\n"
        "}\n"
    ) in text


def test_custom_templates_directory_takes_precedence(tmp_path: Path) -> None:
    (tmp_path / "enum.ts.j2").write_text("enum {{ name }} {}\n", encoding="utf-8")
    renderer = TemplateRenderer(GeneratorOptions(file_heading=None), templates_dir=tmp_path)

    assert renderer.render("enum", {"name": "Status"}) == "enum Status {}\n"
    assert renderer.render("index", {"entries": ["a"]}) == 'export * from "./a";\n'


def test_unknown_shape_is_a_render_error() -> None:
    with pytest.raises(RenderError, match="unknown template shape 'struct'"):
        _renderer().render("struct", {"name": "Order"})
