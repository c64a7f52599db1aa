"""Schema validation outcomes.

These types answer: "Did a value match its schema, and if not, where?"
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from contractual.contracts.enums import ValidationStatus

# Error key used when the value itself (not one of its fields) is wrong.
ROOT_FIELD = "$"


@dataclass(frozen=True)
class FieldError:
    """Why one field failed validation.

    Attributes:
        error: Human-readable message from the schema engine
        value: The offending value, None when the field is missing
        kind: Machine-readable error type (e.g. "missing", "extra_forbidden")
        path: Dotted path of the first error inside the field
    """

    error: str
    value: Any = None
    kind: str = "value_error"
    path: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.error, "value": self.value}


@dataclass(frozen=True)
class ValidationOutcome:
    """Result of ``validate(schema, value)``.

    A failure names every offending top-level field exactly once.
    """

    result: ValidationStatus
    errors: Mapping[str, FieldError] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.result == ValidationStatus.PASS and self.errors:
            raise ValueError("A passing ValidationOutcome cannot carry errors")
        if self.result == ValidationStatus.FAIL and not self.errors:
            raise ValueError("A failing ValidationOutcome must name at least one field")
        object.__setattr__(self, "errors", MappingProxyType(dict(self.errors)))

    @classmethod
    def success(cls) -> ValidationOutcome:
        return cls(result=ValidationStatus.PASS)

    @classmethod
    def failure(cls, errors: Mapping[str, FieldError]) -> ValidationOutcome:
        return cls(result=ValidationStatus.FAIL, errors=errors)

    @property
    def passed(self) -> bool:
        return self.result == ValidationStatus.PASS

    @property
    def fields(self) -> frozenset[str]:
        """Names of the fields that failed."""
        return frozenset(self.errors)

    def to_dict(self) -> dict[str, Any]:
        return {
            "result": self.result.value,
            "errors": {name: err.to_dict() for name, err in self.errors.items()},
        }
