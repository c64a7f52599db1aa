"""Shared contracts for cross-boundary data types.

This package is a LEAF MODULE: it depends on nothing else in contractual
(pydantic-backed schema compilation lives in contractual.schema, settings in
contractual.core.config).

Import patterns:
    from contractual.contracts import CallerIdentity, ContractError, HttpMethod
"""

from contractual.contracts.auth import (
    AccessScope,
    AuthorizationRule,
    OwnershipRule,
    parse_authentication,
)
from contractual.contracts.contract import Contract, DriverBinding, Handler, TargetResolver
from contractual.contracts.enums import (
    AuthDecision,
    DuplicateContentMode,
    HttpMethod,
    MissingTargetPolicy,
    SearchMode,
    ValidationStatus,
)
from contractual.contracts.errors import (
    ConflictError,
    ContractCallError,
    ContractDefinitionError,
    ContractFailure,
    DriverRegistrationError,
    DuplicateContentError,
    DuplicateIdError,
    ForbiddenWriteError,
    InvalidIdError,
    NotFoundError,
)
from contractual.contracts.identity import CallerIdentity
from contractual.contracts.results import (
    ContractError,
    ContractResult,
    ContractSuccess,
    is_contract_in_error,
)
from contractual.contracts.schema import AnyOf
from contractual.contracts.validation import FieldError, ValidationOutcome

__all__ = [
    "AccessScope",
    "AnyOf",
    "AuthDecision",
    "AuthorizationRule",
    "CallerIdentity",
    "ConflictError",
    "Contract",
    "ContractCallError",
    "ContractDefinitionError",
    "ContractError",
    "ContractFailure",
    "ContractResult",
    "ContractSuccess",
    "DriverBinding",
    "DriverRegistrationError",
    "DuplicateContentError",
    "DuplicateContentMode",
    "DuplicateIdError",
    "FieldError",
    "ForbiddenWriteError",
    "Handler",
    "HttpMethod",
    "InvalidIdError",
    "MissingTargetPolicy",
    "NotFoundError",
    "OwnershipRule",
    "SearchMode",
    "TargetResolver",
    "ValidationOutcome",
    "ValidationStatus",
    "is_contract_in_error",
    "parse_authentication",
]
