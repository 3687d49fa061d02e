"""Tests for tsgen.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from tsgen.config import CONFIG_FILE_NAME, DEFAULT_FILE_HEADING, load_config
from tsgen.errors import ConfigError


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / CONFIG_FILE_NAME
    path.write_text(text, encoding="utf-8")
    return path


def test_missing_config_uses_defaults(tmp_path: Path) -> None:
    config = load_config(tmp_path)

    assert config.root == tmp_path.resolve()
    assert config.model is None
    options = config.options
    assert options.output_dir == tmp_path.resolve()
    assert options.tab_length == 4
    assert options.quote == '"'
    assert options.file_heading == DEFAULT_FILE_HEADING
    assert options.nullable_translation == "null"
    assert options.file_name_converters == ["pascal-case-to-kebab-case"]
    assert options.primitive_types["str"] == "string"


def test_empty_config_file_uses_defaults(tmp_path: Path) -> None:
    config = load_config(_write(tmp_path, ""))

    assert config.options.output_dir == tmp_path.resolve()


def test_output_settings_are_parsed(tmp_path: Path) -> None:
    _write(
        tmp_path,
        """
model: model.yml
output:
  output_dir: web/src/app
  tab_length: 2
  single_quotes: true
  explicit_public_accessor: "yes"
  create_index_file: true
  max_workers: 4
  nullable_translation: "null|undefined"
  file_heading: ""
  property_name_converters: []
  primitive_types:
    money.Money: number
  default_values_for_types:
    number: "0"
""",
    )

    config = load_config(tmp_path)

    assert config.model == tmp_path.resolve() / "model.yml"
    options = config.options
    assert options.output_dir == (tmp_path / "web/src/app").resolve()
    assert options.indent == "  "
    assert options.quote == "'"
    assert options.explicit_public_accessor
    assert options.create_index_file
    assert options.max_workers == 4
    assert options.nullable_translation == "null|undefined"
    assert options.file_heading is None
    assert options.property_name_converters == []
    assert options.primitive_types["money.Money"] == "number"
    assert options.primitive_types["int"] == "number"
    assert options.default_values_for_types == {"number": "0"}


def test_config_path_may_name_the_file(tmp_path: Path) -> None:
    path = tmp_path / "custom.yml"
    path.write_text("output:\n  file_extension: tsx\n", encoding="utf-8")

    assert load_config(path).options.file_extension == "tsx"


@pytest.mark.parametrize(
    "text, message",
    [
        ("output:\n  colour: red\n", "Unknown output settings: colour"),
        ("output:\n  nullable_translation: maybe\n", "nullable_translation"),
        ("output:\n  tab_length: 0\n", "tab_length"),
        ("output:\n  strict: perhaps\n", "strict must be a boolean"),
        ("output:\n  primitive_types: [a, b]\n", "Expected a mapping"),
        ("- just\n- a list\n", "mapping at the root"),
        ("output: [unclosed\n", "Failed to parse"),
    ],
)
def test_invalid_config_is_rejected(tmp_path: Path, text: str, message: str) -> None:
    _write(tmp_path, text)

    with pytest.raises(ConfigError, match=message):
        load_config(tmp_path)
