"""validate(schema, value) -> ValidationOutcome.

Wraps pydantic validation and reshapes its errors into a field-keyed map:
each offending top-level field appears once, with the first message pydantic
reported for it and the value the caller supplied (None when missing).
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import structlog
from pydantic import ValidationError

from contractual.contracts.validation import ROOT_FIELD, FieldError, ValidationOutcome
from contractual.schema.factory import CompiledSchema, compile_schema

logger = structlog.get_logger(__name__)


def validate(schema: Any, value: Any) -> ValidationOutcome:
    """Validate a value against a schema.

    Args:
        schema: CompiledSchema, or any spec accepted by compile_schema()
        value: Value to check; it is never modified

    Returns:
        ValidationOutcome naming every offending field on failure
    """
    compiled = compile_schema(schema)
    try:
        compiled.adapter.validate_python(value)
    except ValidationError as exc:
        return ValidationOutcome.failure(_field_errors(compiled, value, exc))
    return ValidationOutcome.success()


def _field_errors(compiled: CompiledSchema, value: Any, exc: ValidationError) -> dict[str, FieldError]:
    if compiled.members:
        # Top-level union: report the member that matches the value's shape,
        # otherwise pydantic's per-member error locations leak into field keys.
        member = _member_for(compiled, value)
        if member is None:
            return {ROOT_FIELD: FieldError(error=_union_message(compiled), value=value, kind="union_mismatch")}
        try:
            member.adapter.validate_python(value)
        except ValidationError as member_exc:
            return _field_errors(member, value, member_exc)
        # Member accepted on its own; fall back to the union's raw errors.
        logger.debug("union_member_accepted_alone", schema=compiled.name, member=member.name)

    errors: dict[str, FieldError] = {}
    for error in exc.errors():
        loc = error["loc"]
        key = str(loc[0]) if loc else ROOT_FIELD
        if key in errors:
            continue
        errors[key] = FieldError(
            error=error["msg"],
            value=_offending_value(value, loc, error),
            kind=error["type"],
            path=".".join(str(part) for part in loc),
        )
    if not errors:
        errors[ROOT_FIELD] = FieldError(error=str(exc), value=value)
    return errors


def _member_for(compiled: CompiledSchema, value: Any) -> CompiledSchema | None:
    if isinstance(value, Mapping):
        wanted = "object"
    elif isinstance(value, list | tuple):
        wanted = "list"
    else:
        wanted = "scalar"
    for member in compiled.members:
        if member.shape == wanted:
            return member
    return None


def _union_message(compiled: CompiledSchema) -> str:
    shapes = sorted({member.shape for member in compiled.members})
    return f"Value does not match any of: {', '.join(shapes)}"


def _offending_value(value: Any, loc: tuple[Any, ...], error: Any) -> Any:
    if error["type"] == "missing":
        return None
    if not loc:
        return value
    head = loc[0]
    if isinstance(value, Mapping) and head in value:
        return value[head]
    if isinstance(value, list | tuple) and isinstance(head, int) and 0 <= head < len(value):
        return value[head]
    return error.get("input")
