"""CLI behaviour tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from tsgen.cli import _build_parser, main

MODEL = """
namespace: shop
types:
  - name: Order
    members:
      - name: items
        type: list[OrderLine]
  - name: OrderLine
    members:
      - name: sku
        type: str
exports:
  - type: Order
"""


def _project(tmp_path: Path, model: str = MODEL) -> Path:
    (tmp_path / "model.yml").write_text(model, encoding="utf-8")
    (tmp_path / ".tsgen.yml").write_text(
        "model: model.yml\noutput:\n  output_dir: out\n  file_heading: ''\n", encoding="utf-8"
    )
    return tmp_path


def test_cli_accepts_verbose_before_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["--verbose", "generate"])
    assert args.verbose is True
    assert args.command == "generate"


def test_cli_accepts_verbose_after_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["generate", "--verbose"])
    assert args.verbose is True


def test_cli_generate_defaults() -> None:
    parser = _build_parser()
    args = parser.parse_args(["generate"])
    assert args.model is None
    assert args.config == "."
    assert args.output is None
    assert args.dry_run is False
    assert args.log_file is None


def test_cli_accepts_model_and_dry_run() -> None:
    parser = _build_parser()
    args = parser.parse_args(["generate", "types.yml", "--dry-run", "--output", "dist"])
    assert args.model == "types.yml"
    assert args.dry_run is True
    assert args.output == "dist"


def test_generate_writes_files(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    root = _project(tmp_path)

    main(["generate", "--config", str(root)])

    assert (root / "out" / "order.ts").read_text(encoding="utf-8").startswith(
        'import { OrderLine } from "./order-line";'
    )
    assert "Generated order-line.ts\nGenerated order.ts\n" in capsys.readouterr().out


def test_dry_run_writes_nothing(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    root = _project(tmp_path)

    main(["generate", "--config", str(root), "--dry-run"])

    assert not (root / "out").exists()
    assert "Would generate order.ts" in capsys.readouterr().out


def test_output_override(tmp_path: Path) -> None:
    root = _project(tmp_path)

    main(["generate", str(root / "model.yml"), "--config", str(root), "--output", str(tmp_path / "dist")])

    assert (tmp_path / "dist" / "order-line.ts").exists()


def test_missing_model_exits_with_error(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["generate", "--config", str(tmp_path)])

    assert excinfo.value.code == 1
    assert "No model document given" in capsys.readouterr().err


def test_invalid_model_exits_with_error(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    root = _project(tmp_path, "types:\n  - name: Order\n    kind: struct\n")

    with pytest.raises(SystemExit) as excinfo:
        main(["generate", "--config", str(root)])

    assert excinfo.value.code == 1
    assert "tsgen generate failed" in capsys.readouterr().err
