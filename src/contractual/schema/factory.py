"""Factory for compiling schema specs into pydantic validators.

Schemas arrive either as pydantic types (model classes, ``list[Model]``,
``Model | list[Model]``) or as declarative specs (see
contractual.contracts.schema). Both compile once, at registration, into a
CompiledSchema wrapping a pydantic TypeAdapter.

Declarative objects are built with ``create_model`` using:
- extra="forbid": unknown keys are errors, never silently dropped
- strict scalar types: "42" is not an int, 1 is not a bool
- finite floats: NaN/Infinity cannot be stored as canonical JSON
"""

from __future__ import annotations

import itertools
import types
from dataclasses import dataclass, field
from typing import Annotated, Any, Union, get_args, get_origin

from pydantic import AllowInfNan, BaseModel, ConfigDict, StrictBool, StrictInt, StrictStr, Strict, TypeAdapter, create_model

from contractual.contracts.schema import (
    ListNode,
    ObjectNode,
    ScalarNode,
    SchemaNode,
    TypeAlternative,
    UnionNode,
    is_declarative,
    parse_schema,
)

FiniteFloat = Annotated[float, Strict(), AllowInfNan(False)]

TYPE_MAP: dict[str, Any] = {
    "str": StrictStr,
    "int": StrictInt,
    "float": FiniteFloat,
    "bool": StrictBool,
    "any": Any,
}

_model_counter = itertools.count()


class DeclaredRecord(BaseModel):
    """Base class for models generated from declarative specs."""

    model_config = ConfigDict(extra="forbid")


@dataclass(frozen=True)
class CompiledSchema:
    """A schema ready for validation.

    Attributes:
        name: Name used for generated models and error messages
        adapter: pydantic TypeAdapter doing the actual validation
        members: For top-level unions, one compiled schema per member
        shape: "object", "list", "scalar" or "union"; used to pick the union member
            whose errors are reported
    """

    name: str
    adapter: TypeAdapter[Any] = field(repr=False)
    members: tuple[CompiledSchema, ...] = ()
    shape: str = "scalar"


def compile_schema(spec: Any, name: str = "Schema") -> CompiledSchema:
    """Compile a schema spec.

    Args:
        spec: Declarative spec, pydantic type, or an already compiled schema
        name: Base name for generated models

    Returns:
        CompiledSchema

    Raises:
        ValueError: If a declarative spec is malformed
    """
    if isinstance(spec, CompiledSchema):
        return spec
    if is_declarative(spec):
        return _compile_node(parse_schema(spec), name)
    return _compile_type(spec, name)


def _compile_node(node: SchemaNode, name: str) -> CompiledSchema:
    if isinstance(node, UnionNode):
        members = tuple(_compile_node(option, f"{name}Option{i}") for i, option in enumerate(node.options))
        python_type = _union([_node_type(option, f"{name}Option{i}") for i, option in enumerate(node.options)])
        return CompiledSchema(name=name, adapter=TypeAdapter(python_type), members=members, shape="union")
    return CompiledSchema(name=name, adapter=TypeAdapter(_node_type(node, name)), shape=_node_shape(node))


def _compile_type(python_type: Any, name: str) -> CompiledSchema:
    origin = get_origin(python_type)
    if origin is Union or origin is types.UnionType:
        members = tuple(_compile_type(arg, f"{name}Option{i}") for i, arg in enumerate(get_args(python_type)))
        return CompiledSchema(name=name, adapter=TypeAdapter(python_type), members=members, shape="union")
    return CompiledSchema(name=name, adapter=TypeAdapter(python_type), shape=_type_shape(python_type))


def _node_shape(node: SchemaNode) -> str:
    if isinstance(node, ObjectNode):
        return "object"
    if isinstance(node, ListNode):
        return "list"
    return "scalar"


def _type_shape(python_type: Any) -> str:
    origin = get_origin(python_type) or python_type
    if isinstance(origin, type):
        if issubclass(origin, BaseModel) or issubclass(origin, dict):
            return "object"
        if issubclass(origin, list | tuple | set | frozenset):
            return "list"
    return "scalar"


def _node_type(node: SchemaNode, name: str) -> Any:
    """Convert a schema tree node to a pydantic-compatible type."""
    if isinstance(node, ScalarNode):
        return _union([_alternative_type(alt) for alt in node.expression.alternatives])
    if isinstance(node, ListNode):
        return list[_node_type(node.item, f"{name}Item")]  # type: ignore[misc]
    if isinstance(node, UnionNode):
        return _union([_node_type(option, f"{name}Option{i}") for i, option in enumerate(node.options)])
    return _create_object_model(node, name)


def _alternative_type(alternative: TypeAlternative) -> Any:
    base = TYPE_MAP[alternative.base]
    if alternative.is_list:
        return list[base]  # type: ignore[valid-type]
    return base


def _union(options: list[Any]) -> Any:
    if len(options) == 1:
        return options[0]
    return Union[tuple(options)]  # noqa: UP007


def _create_object_model(node: ObjectNode, name: str) -> type[BaseModel]:
    """Create a model for an object node; nested objects get their own models."""
    field_definitions: dict[str, Any] = {}
    for field_node in node.fields:
        python_type = _node_type(field_node.node, f"{name}_{field_node.name}")
        if field_node.required:
            field_definitions[field_node.name] = (python_type, ...)
        else:
            field_definitions[field_node.name] = (_union([python_type, type(None)]), None)

    # Suffix keeps generated class names unique across contracts.
    model_name = f"{name}_{next(_model_counter)}"
    return create_model(
        model_name,
        __base__=DeclaredRecord,
        __module__=__name__,
        **field_definitions,
    )
