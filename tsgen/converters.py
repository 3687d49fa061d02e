"""Name converter chains for file, type, property and enum names."""

from __future__ import annotations

import re
from typing import Callable, Dict, Iterable, List, Sequence

from .errors import ConfigError

Converter = Callable[[str], str]

_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def _words(name: str) -> List[str]:
    spaced = _BOUNDARY.sub(" ", name)
    return [word for word in re.split(r"[\s_\-]+", spaced) if word]


def pascal_case_to_kebab_case(name: str) -> str:
    return "-".join(word.lower() for word in _words(name))


def pascal_case_to_camel_case(name: str) -> str:
    if not name:
        return name
    return name[0].lower() + name[1:]


def camel_case_to_pascal_case(name: str) -> str:
    if not name:
        return name
    return name[0].upper() + name[1:]


def snake_case_to_camel_case(name: str) -> str:
    if "_" not in name.strip("_"):
        return name
    head, *rest = [part for part in name.split("_") if part]
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def snake_case_to_pascal_case(name: str) -> str:
    return "".join(part[:1].upper() + part[1:] for part in name.split("_") if part)


def upper_case(name: str) -> str:
    return name.upper()


def identity(name: str) -> str:
    return name


_BUILTIN_CONVERTERS: Dict[str, Converter] = {
    "pascal-case-to-kebab-case": pascal_case_to_kebab_case,
    "pascal-case-to-camel-case": pascal_case_to_camel_case,
    "camel-case-to-pascal-case": camel_case_to_pascal_case,
    "snake-case-to-camel-case": snake_case_to_camel_case,
    "snake-case-to-pascal-case": snake_case_to_pascal_case,
    "upper-case": upper_case,
    "identity": identity,
}


class ConverterChain:
    """Applies converters left to right."""

    def __init__(self, converters: Iterable[Converter] = ()) -> None:
        self._converters = list(converters)

    @classmethod
    def from_names(cls, names: Sequence[str]) -> "ConverterChain":
        converters: List[Converter] = []
        for name in names:
            try:
                converters.append(_BUILTIN_CONVERTERS[name.lower()])
            except KeyError:
                known = ", ".join(sorted(_BUILTIN_CONVERTERS))
                raise ConfigError(f"Unknown name converter '{name}' (known: {known})") from None
        return cls(converters)

    def __call__(self, name: str) -> str:
        for converter in self._converters:
            name = converter(name)
        return name

    def __len__(self) -> int:
        return len(self._converters)


__all__ = [
    "ConverterChain",
    "camel_case_to_pascal_case",
    "identity",
    "pascal_case_to_camel_case",
    "pascal_case_to_kebab_case",
    "snake_case_to_camel_case",
    "snake_case_to_pascal_case",
    "upper_case",
]
