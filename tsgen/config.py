"""Configuration loading for tsgen (.tsgen.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .errors import ConfigError

CONFIG_FILE_NAME = ".tsgen.yml"

DEFAULT_FILE_HEADING = (
    "This is a tsgen auto-generated file.\n"
    "Any changes made to this file can be lost when this file is regenerated."
)

DEFAULT_PRIMITIVE_TYPES: Dict[str, str] = {
    "str": "string",
    "bytes": "string",
    "int": "number",
    "float": "number",
    "complex": "number",
    "decimal.Decimal": "number",
    "bool": "boolean",
    "datetime.datetime": "Date",
    "datetime.date": "Date",
    "datetime.time": "string",
    "datetime.timedelta": "string",
    "uuid.UUID": "string",
    "object": "Object",
    "typing.Any": "any",
    "None": "void",
    "NoneType": "void",
}

DEFAULT_COLLECTION_TYPES: List[str] = [
    "list",
    "tuple",
    "set",
    "frozenset",
    "typing.List",
    "typing.Tuple",
    "typing.Set",
    "typing.FrozenSet",
    "typing.Sequence",
    "typing.Iterable",
    "collections.abc.Sequence",
    "collections.abc.Iterable",
    "collections.abc.Set",
    "collections.deque",
]

DEFAULT_DICTIONARY_TYPES: List[str] = [
    "dict",
    "typing.Dict",
    "typing.Mapping",
    "collections.abc.Mapping",
    "collections.OrderedDict",
    "collections.defaultdict",
]

DEFAULT_STANDARD_LIBRARY_NAMESPACES: List[str] = [
    "builtins",
    "typing",
    "collections",
    "datetime",
    "decimal",
    "uuid",
    "enum",
    "pathlib",
]


@dataclass
class GeneratorOptions:
    """Settings that shape every generated file of a run."""

    output_dir: Path = field(default_factory=lambda: Path("."))
    file_extension: str = "ts"
    tab_length: int = 4
    single_quotes: bool = False
    explicit_public_accessor: bool = False
    class_as_interface: bool = False
    use_default_export: bool = False
    enum_string_initializers: bool = False
    create_index_file: bool = False
    service_spec_files: bool = True
    strict: bool = False
    max_workers: Optional[int] = None
    file_heading: Optional[str] = DEFAULT_FILE_HEADING
    nullable_translation: str = "null"
    file_name_converters: List[str] = field(default_factory=lambda: ["pascal-case-to-kebab-case"])
    type_name_converters: List[str] = field(default_factory=list)
    property_name_converters: List[str] = field(default_factory=lambda: ["snake-case-to-camel-case"])
    enum_value_name_converters: List[str] = field(default_factory=list)
    enum_string_initializer_converters: List[str] = field(default_factory=list)
    primitive_types: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_PRIMITIVE_TYPES))
    collection_types: List[str] = field(default_factory=lambda: list(DEFAULT_COLLECTION_TYPES))
    dictionary_types: List[str] = field(default_factory=lambda: list(DEFAULT_DICTIONARY_TYPES))
    standard_library_namespaces: List[str] = field(
        default_factory=lambda: list(DEFAULT_STANDARD_LIBRARY_NAMESPACES)
    )
    default_values_for_types: Dict[str, str] = field(default_factory=dict)

    @property
    def indent(self) -> str:
        return " " * self.tab_length

    @property
    def quote(self) -> str:
        return "'" if self.single_quotes else '"'


@dataclass
class TsGenConfig:
    """Represents the settings defined in .tsgen.yml."""

    root: Path
    options: GeneratorOptions = field(default_factory=GeneratorOptions)
    model: Optional[Path] = None


_NULLABLE_TRANSLATIONS = {"null", "undefined", "null|undefined", "none"}


def load_config(config_path: Path) -> TsGenConfig:
    """Load configuration from disk, returning defaults when the file is absent."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return TsGenConfig(root=root, options=GeneratorOptions(output_dir=root))

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILE_NAME} must contain a mapping at the root")

    options = build_options(_as_dict(data.get("output")), root=root)
    model_str = _as_str(data.get("model"))
    model = root / model_str if model_str else None
    return TsGenConfig(root=root, options=options, model=model)


def build_options(data: Dict[str, Any], *, root: Path) -> GeneratorOptions:
    """Build generator options from the `output` section of the config file."""
    known = {item.name for item in fields(GeneratorOptions)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown output settings: {', '.join(unknown)}")

    options = GeneratorOptions(output_dir=root)
    if "output_dir" in data:
        directory = _as_str(data["output_dir"])
        if directory is None:
            raise ConfigError("output_dir must be a string")
        options.output_dir = (root / directory).resolve()

    for name in ("file_extension", "nullable_translation"):
        if name in data:
            value = _as_str(data[name])
            if value is None:
                raise ConfigError(f"{name} must be a string")
            setattr(options, name, value)
    if "file_heading" in data:
        options.file_heading = _as_str(data["file_heading"]) or None

    for name in (
        "single_quotes",
        "explicit_public_accessor",
        "class_as_interface",
        "use_default_export",
        "enum_string_initializers",
        "create_index_file",
        "service_spec_files",
        "strict",
    ):
        if name in data:
            value = _as_bool(data[name])
            if value is None:
                raise ConfigError(f"{name} must be a boolean")
            setattr(options, name, value)

    for name in ("tab_length", "max_workers"):
        if name in data:
            value = _as_int(data[name])
            if value is None or value < 1:
                raise ConfigError(f"{name} must be a positive integer")
            setattr(options, name, value)

    for name in (
        "file_name_converters",
        "type_name_converters",
        "property_name_converters",
        "enum_value_name_converters",
        "enum_string_initializer_converters",
        "collection_types",
        "dictionary_types",
        "standard_library_namespaces",
    ):
        if name in data:
            setattr(options, name, _as_str_list(data[name]))

    if "primitive_types" in data:
        options.primitive_types.update(_as_str_dict(data["primitive_types"]))
    if "default_values_for_types" in data:
        options.default_values_for_types = _as_str_dict(data["default_values_for_types"])

    if options.nullable_translation not in _NULLABLE_TRANSLATIONS:
        allowed = ", ".join(sorted(_NULLABLE_TRANSLATIONS))
        raise ConfigError(f"nullable_translation must be one of: {allowed}")
    return options


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILE_NAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []


def _as_str_dict(value: Any) -> Dict[str, str]:
    if not isinstance(value, dict):
        raise ConfigError("Expected a mapping of type names to strings")
    return {str(key): str(item) for key, item in value.items()}


__all__ = [
    "CONFIG_FILE_NAME",
    "DEFAULT_FILE_HEADING",
    "GeneratorOptions",
    "TsGenConfig",
    "build_options",
    "load_config",
]
