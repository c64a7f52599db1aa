"""Exceptions raised across subsystem boundaries.

Two families:

- ContractFailure and subclasses: domain failures raised by handlers and
  drivers at call time (404, conflicts, invalid ids). They propagate through
  the processor untouched; ``to_result()`` converts one into a
  ContractError for callers that want a value instead.
- Registration errors (ContractDefinitionError, DriverRegistrationError):
  raised once, while contracts and drivers are assembled at startup.
"""

from typing import Any

from contractual.contracts.results import ContractError


class ContractFailure(Exception):
    """Base class for handler/driver failures with an HTTP-style code.

    Attributes:
        code: HTTP-style status code
        error_type: Short description of the failure family
        data: The value that triggered the failure
        errors: Human-readable messages
    """

    code: int = 500
    error_type: str = "Contract failure"

    def __init__(self, message: str, *, data: Any = None) -> None:
        self.data = data
        self.errors: tuple[str, ...] = (message,)
        super().__init__(message)

    def to_result(self) -> ContractError:
        return ContractError(error_type=self.error_type, code=self.code, data=self.data, errors=self.errors)


class NotFoundError(ContractFailure):
    """The addressed record does not exist (or is not visible to the caller)."""

    code = 404
    error_type = "Not found"

    def __init__(self, collection: str, record_id: Any) -> None:
        self.collection = collection
        self.record_id = record_id
        super().__init__(f"Record '{record_id}' not found in '{collection}'", data=record_id)


class ConflictError(ContractFailure):
    """A create collided with existing state."""

    code = 409
    error_type = "Conflict"


class DuplicateIdError(ConflictError):
    """Create used an id that already exists with different content."""

    def __init__(self, collection: str, record_id: Any) -> None:
        self.collection = collection
        self.record_id = record_id
        super().__init__(f"A record with id '{record_id}' already exists in '{collection}'", data=record_id)


class DuplicateContentError(ConflictError):
    """Create repeated the content of a prior create (re-post)."""

    def __init__(self, collection: str, record_id: Any, existing_id: Any) -> None:
        self.collection = collection
        self.record_id = record_id
        self.existing_id = existing_id
        super().__init__(
            f"Re-post rejected: record '{record_id}' duplicates the content of '{existing_id}' in '{collection}'",
            data=record_id,
        )


class ForbiddenWriteError(ContractFailure):
    """A replace or merge would leave the record outside the caller's scope."""

    code = 403
    error_type = "unauthorized"

    def __init__(self, collection: str, record_id: Any) -> None:
        self.collection = collection
        self.record_id = record_id
        super().__init__(f"Record '{record_id}' in '{collection}' would no longer belong to the caller", data=record_id)


class InvalidIdError(ContractFailure):
    """Record id missing, or a replace/merge tried to change it."""

    code = 400
    error_type = "Invalid id"


class ContractDefinitionError(Exception):
    """Raised when a contract definition cannot be registered.

    Attributes:
        contract_name: Name of the offending contract (may be "<unknown>")
        message: Human-readable description
    """

    def __init__(self, contract_name: str, message: str) -> None:
        self.contract_name = contract_name
        self.message = message
        super().__init__(f"Contract '{contract_name}': {message}")


class DriverRegistrationError(Exception):
    """Raised when driver discovery or instantiation fails.

    Attributes:
        store_kind: Store kind (or plugin group) that failed
        message: Human-readable description
    """

    def __init__(self, store_kind: str, message: str) -> None:
        self.store_kind = store_kind
        self.message = message
        super().__init__(f"Driver '{store_kind}' failed: {message}")


class ContractCallError(Exception):
    """Raised by RegisteredMethod.call_or_raise for error results.

    Attributes:
        code: HTTP-style status code of the error result
        response: Wire-shaped error body (ContractError.to_dict())
    """

    def __init__(self, error: ContractError) -> None:
        self.error = error
        self.code = error.code
        self.response = error.to_dict()
        super().__init__(f"{error.code} {error.error_type}")
