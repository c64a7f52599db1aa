"""Schema validation backed by pydantic.

    from contractual.schema import compile_schema, validate

    schema = compile_schema({"id": "str", "name": "str?"}, "Record")
    outcome = validate(schema, {"id": "a"})
"""

from contractual.schema.factory import CompiledSchema, compile_schema
from contractual.schema.validator import validate

__all__ = ["CompiledSchema", "compile_schema", "validate"]
