"""Operation outcomes.

Every processed operation returns exactly one of:
- ContractSuccess: the handler ran and its result passed output validation
- ContractError: the pipeline rejected the call (400/401/403/500/501)

Handler and driver failures (404, conflicts, backend errors) are raised,
not returned; see contractual.contracts.errors.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, TypeAlias, TypeGuard

from contractual.contracts.validation import ValidationOutcome

INPUT_VALIDATION_FAILED = "Input validation failed"
UNEXPECTED_RESULT = "Unexpected result from function"
NOT_IMPLEMENTED = "Not implemented"
UNAUTHORIZED = "unauthorized"


@dataclass(frozen=True)
class ContractSuccess:
    """Handler result that passed (or skipped) output validation."""

    result: Any

    def to_dict(self) -> dict[str, Any]:
        return {"result": self.result}


@dataclass(frozen=True)
class ContractError:
    """Structured pipeline failure.

    Attributes:
        error_type: Short description ("Input validation failed", ...)
        code: HTTP-style status code
        data: The value that triggered the failure
        errors: ValidationOutcome for schema failures, messages otherwise
    """

    error_type: str
    code: int
    data: Any
    errors: ValidationOutcome | tuple[str, ...]

    def __post_init__(self) -> None:
        if isinstance(self.errors, Sequence) and not isinstance(self.errors, tuple | str):
            object.__setattr__(self, "errors", tuple(self.errors))

    @property
    def messages(self) -> tuple[str, ...]:
        """Message list for structural errors, empty for validation errors."""
        if isinstance(self.errors, ValidationOutcome):
            return ()
        return self.errors

    def to_dict(self) -> dict[str, Any]:
        errors: Any = self.errors.to_dict() if isinstance(self.errors, ValidationOutcome) else list(self.errors)
        return {
            "code": self.code,
            "errorType": self.error_type,
            "data": self.data,
            "errors": errors,
        }


ContractResult: TypeAlias = ContractSuccess | ContractError


def is_contract_in_error(result: ContractResult) -> TypeGuard[ContractError]:
    """True when the result is a ContractError."""
    return isinstance(result, ContractError)
