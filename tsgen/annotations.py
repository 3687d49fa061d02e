"""Annotation kinds recognised on types and members."""

from __future__ import annotations

# Member annotations
TS_TYPE = "ts-type"
TS_IGNORE = "ts-ignore"
TS_MEMBER_NAME = "ts-member-name"
TS_DEFAULT_VALUE = "ts-default-value"
TS_OPTIONAL = "ts-optional"
TS_STATIC = "ts-static"
TS_NOT_STATIC = "ts-not-static"
TS_READONLY = "ts-readonly"
TS_NOT_READONLY = "ts-not-readonly"
TS_TYPE_UNIONS = "ts-type-unions"
TS_DEFAULT_TYPE_OUTPUT = "ts-default-type-output"

# Type annotations
TS_CUSTOM_BASE = "ts-custom-base"
TS_IGNORE_BASE = "ts-ignore-base"
TS_STRING_INITIALIZERS = "ts-string-initializers"
TS_DEFAULT_EXPORT = "ts-default-export"

MEMBER_ANNOTATIONS = frozenset(
    {
        TS_TYPE,
        TS_IGNORE,
        TS_MEMBER_NAME,
        TS_DEFAULT_VALUE,
        TS_OPTIONAL,
        TS_STATIC,
        TS_NOT_STATIC,
        TS_READONLY,
        TS_NOT_READONLY,
        TS_TYPE_UNIONS,
        TS_DEFAULT_TYPE_OUTPUT,
    }
)
TYPE_ANNOTATIONS = frozenset({TS_CUSTOM_BASE, TS_IGNORE_BASE, TS_STRING_INITIALIZERS, TS_DEFAULT_EXPORT})

__all__ = [
    "MEMBER_ANNOTATIONS",
    "TS_CUSTOM_BASE",
    "TS_DEFAULT_EXPORT",
    "TS_DEFAULT_TYPE_OUTPUT",
    "TS_DEFAULT_VALUE",
    "TS_IGNORE",
    "TS_IGNORE_BASE",
    "TS_MEMBER_NAME",
    "TS_NOT_READONLY",
    "TS_NOT_STATIC",
    "TS_OPTIONAL",
    "TS_READONLY",
    "TS_STATIC",
    "TS_STRING_INITIALIZERS",
    "TS_TYPE",
    "TS_TYPE_UNIONS",
    "TYPE_ANNOTATIONS",
]
