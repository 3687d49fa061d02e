"""Exception hierarchy for generation runs."""

from __future__ import annotations

from typing import TYPE_CHECKING, Mapping

if TYPE_CHECKING:  # pragma: no cover - typing aid
    from .models import TypeKey


class TsGenError(RuntimeError):
    """Base class for every failure raised by tsgen."""


class ConfigError(TsGenError):
    """Raised when configuration or generation input is unusable."""


class MetadataLookupError(TsGenError):
    """Raised when the metadata provider cannot describe a type."""

    def __init__(self, key: "TypeKey", reason: str | None = None) -> None:
        self.key = key
        self.reason = reason
        message = f"Cannot resolve metadata for type '{key}'"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class DuplicateOutputPathError(TsGenError):
    """Raised when two distinct types resolve to the same output file."""

    def __init__(self, path: str, first: object, second: object) -> None:
        self.path = path
        self.first = first
        self.second = second
        super().__init__(f"Types '{first}' and '{second}' both resolve to output path '{path}'")


class RenderError(TsGenError):
    """Raised when a single type cannot be rendered."""

    def __init__(self, key: object, message: str) -> None:
        self.key = key
        super().__init__(f"Cannot generate '{key}': {message}")


class GenerationAborted(TsGenError):
    """Raised inside workers once the run has been marked as failed."""


class GenerationFailed(TsGenError):
    """Raised in strict mode when one or more types failed to render."""

    def __init__(self, errors: Mapping[str, str]) -> None:
        self.errors = dict(errors)
        details = "; ".join(f"{key}: {message}" for key, message in sorted(self.errors.items()))
        super().__init__(f"{len(self.errors)} type(s) failed to render: {details}")


__all__ = [
    "ConfigError",
    "DuplicateOutputPathError",
    "GenerationAborted",
    "GenerationFailed",
    "MetadataLookupError",
    "RenderError",
    "TsGenError",
]
