"""Parser for the type expressions used in schema documents.

Supported forms::

    str                      shop.Order
    list[shop.OrderLine]     dict[str, int]
    shop.Page[T]             int | None
    str?                     Optional[shop.Order]
"""

from __future__ import annotations

import re
from typing import Callable, List, Optional, Sequence, Tuple

from ..models import TypeKey, TypeRef

_TOKEN = re.compile(r"\s*(?:(?P<name>[A-Za-z_][\w.]*)|(?P<punct>[\[\],|?]))")
_NULL_NAMES = frozenset({"None", "NoneType", "null"})
_ALIASES = {
    "List": "list",
    "Dict": "dict",
    "Set": "set",
    "Tuple": "tuple",
    "FrozenSet": "frozenset",
    "typing.List": "list",
    "typing.Dict": "dict",
    "typing.Set": "set",
    "typing.Tuple": "tuple",
}
_OPTIONAL_NAMES = frozenset({"Optional", "typing.Optional"})
_UNION_NAMES = frozenset({"Union", "typing.Union"})

NameResolver = Callable[[str], str]


class TypeExpressionError(ValueError):
    """Raised for malformed type expressions."""


def parse_type_expression(
    text: str,
    *,
    type_parameters: Sequence[str] = (),
    resolve_name: Optional[NameResolver] = None,
) -> TypeRef:
    """Parse `text` into a TypeRef.

    Names listed in `type_parameters` become generic parameter references;
    every other name is passed through `resolve_name` so callers can qualify
    bare names against their own namespace.
    """
    parser = _Parser(_tokenize(text), text, tuple(type_parameters), resolve_name or (lambda name: name))
    ref = parser.union()
    if ref is None:
        raise TypeExpressionError(f"Type expression '{text}' names no concrete type")
    if not parser.at_end():
        raise TypeExpressionError(f"Unexpected '{parser.peek()}' in type expression '{text}'")
    return ref


def _tokenize(text: str) -> List[str]:
    tokens: List[str] = []
    position = 0
    stripped = text.rstrip()
    while position < len(stripped):
        match = _TOKEN.match(stripped, position)
        if match is None:
            raise TypeExpressionError(f"Cannot parse type expression '{text}' at offset {position}")
        tokens.append(match.group("name") or match.group("punct"))
        position = match.end()
    if not tokens:
        raise TypeExpressionError("Type expression is empty")
    return tokens


class _Parser:
    def __init__(
        self,
        tokens: List[str],
        text: str,
        type_parameters: Tuple[str, ...],
        resolve_name: NameResolver,
    ) -> None:
        self.tokens = tokens
        self.text = text
        self.position = 0
        self.type_parameters = type_parameters
        self.resolve_name = resolve_name

    def at_end(self) -> bool:
        return self.position >= len(self.tokens)

    def peek(self) -> Optional[str]:
        return None if self.at_end() else self.tokens[self.position]

    def take(self, expected: Optional[str] = None) -> str:
        token = self.peek()
        if token is None:
            raise TypeExpressionError(f"Unexpected end of type expression '{self.text}'")
        if expected is not None and token != expected:
            raise TypeExpressionError(f"Expected '{expected}' but found '{token}' in '{self.text}'")
        self.position += 1
        return token

    def union(self) -> Optional[TypeRef]:
        members = [self.postfix()]
        while self.peek() == "|":
            self.take("|")
            members.append(self.postfix())
        if len(members) == 1:
            return members[0]
        return self._combine(members)

    def postfix(self) -> Optional[TypeRef]:
        ref = self.atom()
        while self.peek() == "?":
            self.take("?")
            if ref is not None:
                ref = _with_nullable(ref)
        return ref

    def atom(self) -> Optional[TypeRef]:
        name = self.take()
        if not re.match(r"[A-Za-z_]", name):
            raise TypeExpressionError(f"Expected a type name but found '{name}' in '{self.text}'")
        if name in _NULL_NAMES:
            return None

        args: List[Optional[TypeRef]] = []
        if self.peek() == "[":
            self.take("[")
            args.append(self.union())
            while self.peek() == ",":
                self.take(",")
                args.append(self.union())
            self.take("]")

        if name in _OPTIONAL_NAMES:
            if len(args) != 1 or args[0] is None:
                raise TypeExpressionError(f"Optional takes exactly one type in '{self.text}'")
            return _with_nullable(args[0])
        if name in _UNION_NAMES:
            return self._combine(args)
        if name in self.type_parameters and not args:
            return TypeRef.parameter(name)

        concrete = []
        for arg in args:
            if arg is None:
                raise TypeExpressionError(f"None is not a valid generic argument in '{self.text}'")
            concrete.append(arg)
        resolved = _ALIASES.get(name) or self.resolve_name(name)
        return TypeRef(TypeKey(resolved, len(concrete)), tuple(concrete))

    def _combine(self, members: Sequence[Optional[TypeRef]]) -> TypeRef:
        concrete = [member for member in members if member is not None]
        if not concrete:
            raise TypeExpressionError(f"Type expression '{self.text}' names no concrete type")
        if len(concrete) > 1:
            raise TypeExpressionError(
                f"Unions of several types are not supported in '{self.text}'; use ts-type-unions"
            )
        ref = concrete[0]
        return _with_nullable(ref) if len(concrete) != len(members) else ref


def _with_nullable(ref: TypeRef) -> TypeRef:
    return TypeRef(ref.key, ref.args, nullable=True, is_parameter=ref.is_parameter, kind=ref.kind)


__all__ = ["TypeExpressionError", "parse_type_expression"]
