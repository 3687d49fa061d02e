"""Computes the text fragments (imports, heritage, members) fed into templates."""

from __future__ import annotations

import datetime as _dt
import json
import posixpath
import re
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from ..annotations import (
    TS_CUSTOM_BASE,
    TS_DEFAULT_EXPORT,
    TS_DEFAULT_VALUE,
    TS_IGNORE,
    TS_IGNORE_BASE,
    TS_MEMBER_NAME,
    TS_NOT_READONLY,
    TS_NOT_STATIC,
    TS_OPTIONAL,
    TS_READONLY,
    TS_STATIC,
    TS_STRING_INITIALIZERS,
    TS_TYPE,
)
from ..config import GeneratorOptions
from ..converters import ConverterChain
from ..errors import RenderError
from ..logging import get_logger
from ..mapper import TypeNameMapper
from ..metadata.base import AnnotationView
from ..models import (
    ControllerSpec,
    EnumValue,
    ExportShape,
    MemberDescriptor,
    MethodSpec,
    ResolvedClosure,
    ResolvedType,
    TypeDescriptor,
    TypeKey,
    TypeRef,
)
from ..resolver import DependencyResolver

API_SERVICE_BASE_IMPORT = "../api-service-base"

_FLAT_NAME = re.compile(r"[<\[\s|{]")


def normalise_dir(directory: Optional[str]) -> str:
    """Return a posix-style relative directory, '' for the output root."""
    if not directory:
        return ""
    cleaned = posixpath.normpath(str(directory).replace("\\", "/"))
    return "" if cleaned == "." else cleaned.strip("/")


class OutputPaths:
    """Derives file names, output paths and relative import paths."""

    def __init__(
        self, options: GeneratorOptions, *, file_name_converter: ConverterChain | None = None
    ) -> None:
        self.options = options
        self._convert = file_name_converter or ConverterChain.from_names(options.file_name_converters)

    def file_name(self, key: TypeKey) -> str:
        return self._convert(key.short_name)

    def relative_path(self, key: TypeKey, output_dir: Optional[str], postfix: str = "") -> str:
        """Return the path of the type's file relative to the output root."""
        name = self.file_name(key) + postfix
        if self.options.file_extension:
            name = f"{name}.{self.options.file_extension}"
        directory = normalise_dir(output_dir)
        return posixpath.join(directory, name) if directory else name

    def absolute_path(self, relative: str) -> Path:
        return Path(self.options.output_dir) / relative

    def import_path(self, from_dir: Optional[str], to_dir: Optional[str], file_name: str) -> str:
        relative = posixpath.relpath(normalise_dir(to_dir) or ".", normalise_dir(from_dir) or ".")
        if relative == ".":
            return f"./{file_name}"
        if relative.startswith(".."):
            return f"{relative}/{file_name}"
        return f"./{relative}/{file_name}"


class ContentGenerator:
    """Builds template fields for one generation run.

    Holds the resolved closure so that imports point at the directory each
    dependency is actually emitted to.
    """

    def __init__(
        self,
        options: GeneratorOptions,
        mapper: TypeNameMapper,
        resolver: DependencyResolver,
        view: AnnotationView,
        closure: ResolvedClosure,
        paths: OutputPaths | None = None,
    ) -> None:
        self.options = options
        self.mapper = mapper
        self.resolver = resolver
        self.view = view
        self.closure = closure
        self.paths = paths or OutputPaths(options)
        self.logger = get_logger("content")
        self._property_name = ConverterChain.from_names(options.property_name_converters)
        self._enum_value_name = ConverterChain.from_names(options.enum_value_name_converters)
        self._enum_initializer = ConverterChain.from_names(options.enum_string_initializer_converters)

    # ------------------------------------------------------------------
    # Types
    # ------------------------------------------------------------------
    def shape_for(self, entry: ResolvedType) -> str:
        shape = entry.spec.shape
        if shape is None:
            raise RenderError(
                entry.key, "type has neither a recognized export shape nor an inferable default"
            )
        if shape is ExportShape.CLASS and self.options.class_as_interface:
            return ExportShape.INTERFACE.value
        return shape.value

    def type_fields(self, entry: ResolvedType) -> Tuple[str, Dict[str, Any]]:
        """Return the template shape and fields for a closure entry."""
        shape = self.shape_for(entry)
        descriptor = entry.descriptor
        annotations = self.view.type_annotations(descriptor)
        fields: Dict[str, Any] = {
            "heading": self.heading(),
            "comment": self.comment(descriptor.doc, descriptor.deprecated),
            "default_export": self.uses_default_export(descriptor),
            "export_name": self.mapper.type_name(descriptor.key),
        }
        if shape == "enum":
            fields["name"] = self.mapper.type_name(descriptor.key)
            fields["is_const"] = entry.spec.is_const
            fields["values"] = "\n".join(self.enum_values(descriptor, annotations))
            return shape, fields

        fields["name"] = self.mapper.map_declaration_name(descriptor)
        fields["imports"] = "\n".join(self.imports(entry))
        if shape == "class":
            fields["extends"], fields["implements"] = self.class_heritage(descriptor, annotations)
            lines = [self.class_property(descriptor, member) for member in self._members(descriptor)]
        else:
            fields["extends"] = self.interface_heritage(descriptor, annotations)
            fields["implements"] = ""
            lines = [
                self.interface_property(descriptor, member)
                for member in self._members(descriptor)
                if not member.static
            ]
        fields["properties"] = "\n".join(lines)
        return shape, fields

    def imports(self, entry: ResolvedType) -> List[str]:
        """Return import lines for the entry's dependencies plus any custom imports."""
        descriptor = entry.descriptor
        annotations = self.view.type_annotations(descriptor)
        from_dir = entry.spec.output_dir
        include_base = TS_CUSTOM_BASE not in annotations and not annotations.get(TS_IGNORE_BASE)

        lines: List[str] = []
        for dependency in self.resolver.dependencies(descriptor, self.view, include_base=include_base):
            target_dir = self._output_dir_of(dependency.key, dependency.output_dir or from_dir)
            lines.append(self._import_line(dependency.key, from_dir, target_dir))

        for member in descriptor.members:
            payload = self.view.member_annotation(descriptor, member, TS_TYPE)
            if isinstance(payload, Mapping) and payload.get("import_path"):
                lines.append(self._custom_import(payload, "type_name"))
        custom_base = annotations.get(TS_CUSTOM_BASE)
        if isinstance(custom_base, Mapping) and custom_base.get("import_path") and custom_base.get("base"):
            lines.append(self._custom_import(custom_base, "base"))
        return _unique(lines)

    def class_heritage(self, descriptor: TypeDescriptor, annotations: Mapping[str, Any]) -> Tuple[str, str]:
        extends = ""
        if TS_CUSTOM_BASE in annotations:
            base = _payload_field(annotations[TS_CUSTOM_BASE], "base")
            extends = f" extends {base}" if base else ""
        elif not annotations.get(TS_IGNORE_BASE) and descriptor.base is not None:
            if self.mapper.is_materializable(descriptor.base):
                extends = f" extends {self.mapper.map_name(descriptor.base)}"

        interfaces = [
            self.mapper.map_name(ref) for ref in descriptor.interfaces if self.mapper.is_materializable(ref)
        ]
        implements = f" implements {', '.join(interfaces)}" if interfaces else ""
        return extends, implements

    def interface_heritage(self, descriptor: TypeDescriptor, annotations: Mapping[str, Any]) -> str:
        names = [
            self.mapper.map_name(ref) for ref in descriptor.interfaces if self.mapper.is_materializable(ref)
        ]
        if TS_CUSTOM_BASE in annotations:
            base = _payload_field(annotations[TS_CUSTOM_BASE], "base")
            if base:
                names.append(base)
        elif not annotations.get(TS_IGNORE_BASE) and descriptor.base is not None:
            if self.mapper.is_materializable(descriptor.base):
                names.append(self.mapper.map_name(descriptor.base))
        return f" extends {', '.join(_unique(names))}" if names else ""

    def class_property(self, descriptor: TypeDescriptor, member: MemberDescriptor) -> str:
        annotations = self.view.member_annotations(descriptor, member)
        if annotations.get(TS_OPTIONAL):
            self.logger.warning(
                "Ignoring %s on %s.%s: optional markers apply to interfaces only",
                TS_OPTIONAL,
                descriptor.key,
                member.name,
            )
        modifiers = "public " if self.options.explicit_public_accessor else ""
        if _flag(annotations, TS_STATIC, TS_NOT_STATIC, member.static):
            modifiers += "static "
        if _flag(annotations, TS_READONLY, TS_NOT_READONLY, member.readonly):
            modifiers += "readonly "

        union = self.mapper.map_member(member, annotations)
        default = self.default_value(member, annotations, union)
        line = f"{self.options.indent}{modifiers}{self.member_name(member, annotations)}: {' | '.join(union)}"
        if default is not None:
            line += f" = {default}"
        return self._with_comment(member, line + ";")

    def interface_property(self, descriptor: TypeDescriptor, member: MemberDescriptor) -> str:
        annotations = self.view.member_annotations(descriptor, member)
        for kind in (TS_STATIC, TS_NOT_STATIC, TS_DEFAULT_VALUE):
            if kind in annotations:
                self.logger.warning(
                    "Ignoring %s on interface member %s.%s", kind, descriptor.key, member.name
                )
        modifiers = "readonly " if _flag(annotations, TS_READONLY, TS_NOT_READONLY, member.readonly) else ""
        optional = "?" if annotations.get(TS_OPTIONAL) or member.optional else ""
        union = self.mapper.map_member(member, annotations)
        line = (
            f"{self.options.indent}{modifiers}{self.member_name(member, annotations)}{optional}: "
            f"{' | '.join(union)};"
        )
        return self._with_comment(member, line)

    def enum_values(self, descriptor: TypeDescriptor, annotations: Mapping[str, Any]) -> List[str]:
        string_initializers = annotations.get(TS_STRING_INITIALIZERS)
        if string_initializers is None:
            string_initializers = self.options.enum_string_initializers
        lines = []
        for value in descriptor.values:
            lines.append(self._enum_value(value, bool(string_initializers)))
        return lines

    def member_name(self, member: MemberDescriptor, annotations: Mapping[str, Any]) -> str:
        explicit = annotations.get(TS_MEMBER_NAME)
        return str(explicit) if explicit else self._property_name(member.name)

    def default_value(
        self, member: MemberDescriptor, annotations: Mapping[str, Any], union: List[str]
    ) -> Optional[str]:
        """Pick a class property initializer.

        Order: explicit annotation, then the member's default hint, then the
        configured per-type table keyed by the first union member.
        """
        explicit = annotations.get(TS_DEFAULT_VALUE)
        if explicit is not None:
            return str(explicit)
        type_name = self.mapper.first_union_member(union)
        if member.default is not None:
            text = self.literal(member.default, type_name)
            if text is not None:
                return text
        if type_name is None:
            return None
        return self.options.default_values_for_types.get(type_name)

    def literal(self, value: Any, type_name: Optional[str]) -> Optional[str]:
        """Render a host default as a TypeScript literal; zero values yield None."""
        if isinstance(value, Enum):
            return f"{type_name}.{self._enum_value_name(value.name)}" if type_name else None
        if isinstance(value, bool):
            return "true" if value else None
        if isinstance(value, (int, float)):
            return repr(value) if value else None
        if isinstance(value, (_dt.datetime, _dt.date)):
            return f"new Date({self._quoted(value.isoformat())})"
        if isinstance(value, str):
            if type_name == "Date":
                return f"new Date({self._quoted(value)})"
            return self._quoted(value)
        if isinstance(value, (list, tuple, dict)):
            try:
                return json.dumps(value if not isinstance(value, tuple) else list(value))
            except TypeError:
                return None
        return None

    # ------------------------------------------------------------------
    # Services and index files
    # ------------------------------------------------------------------
    def service_fields(self, controller: ControllerSpec) -> Dict[str, Any]:
        """Return template fields for an Angular-style service class."""
        refs: List[TypeRef] = []
        for method in controller.methods:
            if method.returns is not None:
                refs.append(method.returns)
            refs.extend(parameter.type for parameter in method.parameters)

        lines = []
        for ref in refs:
            for dependency in self.resolver.complex_refs(ref):
                target_dir = self._output_dir_of(dependency.key, controller.output_dir)
                lines.append(self._import_line(dependency.key, controller.output_dir, target_dir))

        return {
            "heading": self.heading(),
            "name": self.mapper.type_name(controller.key),
            "base_import": API_SERVICE_BASE_IMPORT,
            "imports": "\n".join(_unique(lines)),
            "comment": self.comment(controller.doc, None),
            "methods": [self._service_method(method) for method in controller.methods],
        }

    def service_spec_fields(self, controller: ControllerSpec) -> Dict[str, Any]:
        name = self.mapper.type_name(controller.key)
        path = self.paths.import_path(
            controller.output_dir, controller.output_dir, self.paths.file_name(controller.key)
        )
        quote = self.options.quote
        return {"name": name, "service_import": f"import {{ {name} }} from {quote}{path}{quote};"}

    def index_fields(self, entries: Iterable[str]) -> Dict[str, Any]:
        return {"entries": list(entries)}

    # ------------------------------------------------------------------
    # Shared fragments
    # ------------------------------------------------------------------
    def heading(self) -> str:
        if not self.options.file_heading:
            return ""
        return self.comment(self.options.file_heading, None)

    def comment(self, doc: Optional[str], deprecated: Optional[str], indent: str = "") -> str:
        """Return a JSDoc block, or '' when there is nothing to document."""
        lines = [line.strip() for line in (doc or "").strip().splitlines()]
        if deprecated is not None:
            lines.append(f"@deprecated {deprecated}".rstrip())
        if not lines:
            return ""
        body = [f"{indent} * {line}".rstrip() for line in lines]
        return "\n".join([f"{indent}/**", *body, f"{indent} */"])

    def uses_default_export(self, descriptor: TypeDescriptor) -> bool:
        explicit = self.view.type_annotation(descriptor, TS_DEFAULT_EXPORT)
        if explicit is not None:
            return bool(explicit)
        return self.options.use_default_export

    def _members(self, descriptor: TypeDescriptor) -> List[MemberDescriptor]:
        return [
            member
            for member in descriptor.members
            if not self.view.member_annotation(descriptor, member, TS_IGNORE)
        ]

    def _with_comment(self, member: MemberDescriptor, line: str) -> str:
        comment = self.comment(member.doc, member.deprecated, self.options.indent)
        return f"{comment}\n{line}" if comment else line

    def _enum_value(self, value: EnumValue, string_initializers: bool) -> str:
        name = self._enum_value_name(value.name)
        if string_initializers:
            initializer = self._quoted(self._enum_initializer(value.name))
        elif isinstance(value.value, bool):
            initializer = "true" if value.value else "false"
        elif isinstance(value.value, (int, float)):
            initializer = repr(value.value)
        elif isinstance(value.value, str):
            initializer = self._quoted(value.value)
        else:
            initializer = json.dumps(value.value, default=str)
        line = f"{self.options.indent}{name} = {initializer},"
        comment = self.comment(value.doc, None, self.options.indent)
        return f"{comment}\n{line}" if comment else line

    def _service_method(self, method: MethodSpec) -> Dict[str, Any]:
        quote = self.options.quote
        verb = method.http_method.lower()
        return_type = self.mapper.map_name(method.returns) if method.returns is not None else "void"
        parameters = [
            (parameter, self._property_name("args" if parameter.name == "arguments" else parameter.name))
            for parameter in method.parameters
        ]

        argument = "{}"
        body: List[str] = []
        if verb == "post":
            if parameters:
                argument = parameters[0][1]
            if method.is_form_data:
                form = f"{argument}Form"
                body.append(f"let {form} = this.createFormData({argument});")
                argument = f"{form}, {quote}events{quote}, true"
        elif verb == "get" and parameters:
            argument = "{" + ", ".join(f"{parameter.name}: {name}" for parameter, name in parameters) + "}"
        body.append(f"return super.{verb}<{return_type}>({quote}{method.path}{quote}, {argument});")

        signature = []
        for parameter, name in parameters:
            text = f"{name}: {self.mapper.map_name(parameter.type)}"
            if parameter.has_default:
                text += f" = {json.dumps(parameter.default, default=str)}"
            signature.append(text)

        wrapped = f"HttpEvent<{return_type}>" if method.is_form_data else return_type
        return {
            "name": self._property_name(method.name),
            "parameters": ", ".join(signature),
            "return_type": f"Observable<{wrapped}>",
            "body": body,
            "comment": self.comment(method.doc, None, self.options.indent),
        }

    def _output_dir_of(self, key: TypeKey, fallback: Optional[str]) -> Optional[str]:
        entry = self.closure.get(key)
        if entry is not None:
            return entry.spec.output_dir
        return fallback

    def _import_line(self, key: TypeKey, from_dir: Optional[str], to_dir: Optional[str]) -> str:
        name = self.mapper.type_name(key)
        path = self.paths.import_path(from_dir, to_dir, self.paths.file_name(key))
        quote = self.options.quote
        entry = self.closure.get(key)
        if entry is not None and self.uses_default_export(entry.descriptor):
            return f"import {name} from {quote}{path}{quote};"
        return f"import {{ {name} }} from {quote}{path}{quote};"

    def _custom_import(self, payload: Mapping[str, Any], name_field: str) -> str:
        name = _FLAT_NAME.split(str(payload.get(name_field) or ""), 1)[0]
        path = payload["import_path"]
        quote = self.options.quote
        if payload.get("default_export"):
            return f"import {name} from {quote}{path}{quote};"
        original = payload.get("original_type_name")
        if original and original != name:
            return f"import {{ {original} as {name} }} from {quote}{path}{quote};"
        return f"import {{ {name} }} from {quote}{path}{quote};"

    def _quoted(self, text: str) -> str:
        quote = self.options.quote
        escaped = text.replace("\\", "\\\\").replace(quote, f"\\{quote}")
        return f"{quote}{escaped}{quote}"


def _flag(annotations: Mapping[str, Any], on: str, off: str, fallback: bool) -> bool:
    if annotations.get(off):
        return False
    if annotations.get(on):
        return True
    return fallback


def _payload_field(payload: Any, name: str) -> Optional[str]:
    if isinstance(payload, Mapping):
        value = payload.get(name)
        return str(value) if value else None
    return str(payload) if payload else None


def _unique(items: Iterable[str]) -> List[str]:
    seen: Dict[str, None] = {}
    for item in items:
        seen.setdefault(item, None)
    return list(seen)


__all__ = ["API_SERVICE_BASE_IMPORT", "ContentGenerator", "OutputPaths", "normalise_dir"]
