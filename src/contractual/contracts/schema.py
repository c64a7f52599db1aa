"""Declarative schema specifications.

A declarative schema is a plain data structure that compiles to a pydantic
validator (see contractual.schema.factory). It lets contracts be declared
without writing model classes:

    {
        "id": "str",
        "name": "str",
        "tags": "str[]?",          # optional list of strings
        "score": "int|float",      # either type
        "address?": {"city": "str"},  # optional nested object
        "history": [{"at": "str"}],   # list of objects
    }

Type expressions: ``str``, ``int``, ``float``, ``bool``, ``any``; a ``[]``
suffix makes a list; alternatives are joined with ``|``; a trailing ``?``
(or a ``?`` at the end of the field name) makes the field optional.

Field names must be valid Python identifiers; they map to model attributes.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Literal, TypeAlias

SUPPORTED_TYPES = frozenset({"str", "int", "float", "bool", "any"})

# Pattern for one alternative: "type" or "type[]"
ALTERNATIVE_PATTERN = re.compile(r"^(str|int|float|bool|any)(\[\])?$")

ScalarType: TypeAlias = Literal["str", "int", "float", "bool", "any"]


@dataclass(frozen=True)
class TypeAlternative:
    """One alternative in a type expression, e.g. ``str`` or ``int[]``."""

    base: ScalarType
    is_list: bool = False


@dataclass(frozen=True)
class TypeExpression:
    """Parsed type expression such as ``"str|str[]?"``.

    Attributes:
        alternatives: Accepted shapes, in declaration order
        required: False when the expression ends with ``?``
    """

    alternatives: tuple[TypeAlternative, ...]
    required: bool = True

    @classmethod
    def parse(cls, spec: str) -> TypeExpression:
        """Parse a type expression string.

        Raises:
            ValueError: If the expression is empty or names an unknown type
        """
        text = spec.strip()
        required = not text.endswith("?")
        text = text.rstrip("?").strip()
        if not text:
            raise ValueError(f"Empty type expression '{spec}'")

        alternatives: list[TypeAlternative] = []
        for part in text.split("|"):
            part = part.strip()
            match = ALTERNATIVE_PATTERN.match(part)
            if match is None:
                base = part.removesuffix("[]")
                if base not in SUPPORTED_TYPES:
                    raise ValueError(
                        f"Unknown type '{base}' in type expression '{spec}'. Supported types: {', '.join(sorted(SUPPORTED_TYPES))}"
                    )
                raise ValueError(f"Invalid type expression '{spec}'. Expected 'type', 'type[]', alternatives joined by '|'")
            base_name, list_marker = match.groups()
            typed_base: ScalarType = base_name  # type: ignore[assignment]
            alternatives.append(TypeAlternative(base=typed_base, is_list=list_marker is not None))
        return cls(alternatives=tuple(alternatives), required=required)


@dataclass(frozen=True)
class AnyOf:
    """Union of declarative specs, e.g. one record or a list of records."""

    options: tuple[Any, ...]

    def __init__(self, *options: Any) -> None:
        if len(options) < 2:
            raise ValueError("AnyOf needs at least two options")
        object.__setattr__(self, "options", options)


# Parsed schema tree


@dataclass(frozen=True)
class ScalarNode:
    expression: TypeExpression


@dataclass(frozen=True)
class ListNode:
    item: SchemaNode


@dataclass(frozen=True)
class UnionNode:
    options: tuple[SchemaNode, ...]


@dataclass(frozen=True)
class FieldNode:
    name: str
    node: SchemaNode
    required: bool


@dataclass(frozen=True)
class ObjectNode:
    fields: tuple[FieldNode, ...]

    @property
    def field_names(self) -> tuple[str, ...]:
        return tuple(f.name for f in self.fields)


SchemaNode: TypeAlias = ScalarNode | ListNode | UnionNode | ObjectNode


def is_declarative(spec: Any) -> bool:
    """True when the spec is declarative data rather than a pydantic type."""
    return isinstance(spec, Mapping | list | str | AnyOf)


def parse_schema(spec: Any, *, path: str = "$") -> SchemaNode:
    """Parse a declarative spec into a schema tree.

    Args:
        spec: Mapping, single-item list, type expression string or AnyOf
        path: Location used in error messages

    Raises:
        ValueError: If the spec is malformed
    """
    if isinstance(spec, str):
        return ScalarNode(TypeExpression.parse(spec))
    if isinstance(spec, AnyOf):
        return UnionNode(tuple(parse_schema(option, path=f"{path}|{i}") for i, option in enumerate(spec.options)))
    if isinstance(spec, list):
        if len(spec) != 1:
            raise ValueError(f"List spec at {path} must contain exactly one item spec, got {len(spec)}")
        return ListNode(parse_schema(spec[0], path=f"{path}[]"))
    if isinstance(spec, Mapping):
        return _parse_object(spec, path=path)
    raise ValueError(f"Unsupported schema spec at {path}: {type(spec).__name__}")


def _parse_object(spec: Mapping[Any, Any], *, path: str) -> ObjectNode:
    fields: list[FieldNode] = []
    seen: set[str] = set()
    for raw_name, field_spec in spec.items():
        if not isinstance(raw_name, str):
            raise ValueError(f"Field names at {path} must be strings, got {type(raw_name).__name__}")
        name = raw_name.rstrip("?").strip()
        optional_name = raw_name.endswith("?")
        if not name.isidentifier() or name.startswith("_"):
            raise ValueError(
                f"Invalid field name '{name}' at {path}. "
                f"Field names must be valid Python identifiers (letters, digits, underscores only) "
                f"and cannot start with an underscore."
            )
        if name in seen:
            raise ValueError(f"Duplicate field name '{name}' at {path}")
        seen.add(name)

        node = parse_schema(field_spec, path=f"{path}.{name}")
        required = not optional_name
        if isinstance(node, ScalarNode) and not node.expression.required:
            required = False
        fields.append(FieldNode(name=name, node=node, required=required))
    return ObjectNode(fields=tuple(fields))
