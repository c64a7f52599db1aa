# src/contractual/engine/processor.py
"""Contract processor: turns a Contract into an invocable operation.

Every call runs the same fixed pipeline:

    1. validate input      -> 400 Input validation failed
    2. authorize           -> 401 / 403 unauthorized
    3. handler present?    -> 501 Not implemented
    4. await handler once  (exceptions propagate unchanged)
    5. validate output     -> 500 Unexpected result from function
    6. ContractSuccess(result)

Pipeline rejections are returned as ContractError values. Failures raised by
handlers and drivers (NotFoundError, ConflictError, backend errors) are not
caught here; transports convert them with ContractFailure.to_result().
"""

from __future__ import annotations

import functools
import inspect
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import structlog

from contractual.contracts.contract import Contract
from contractual.contracts.enums import AuthDecision, MissingTargetPolicy
from contractual.contracts.identity import CallerIdentity
from contractual.contracts.results import (
    INPUT_VALIDATION_FAILED,
    NOT_IMPLEMENTED,
    UNAUTHORIZED,
    UNEXPECTED_RESULT,
    ContractError,
    ContractResult,
    ContractSuccess,
)
from contractual.core.logging import operation_context
from contractual.engine.authorization import ResolveTarget, evaluate
from contractual.schema import validate

logger = structlog.get_logger(__name__)

UNAUTHENTICATED_MESSAGE = "Only logged in users can do this"
FORBIDDEN_MESSAGE = "You don't have permission to do this"


@dataclass(frozen=True)
class ProcessedOperation:
    """A contract wrapped with validation and authorization.

    Stateless between calls: concurrent invocations share nothing but the
    immutable contract and whatever the handler itself touches.

    Attributes:
        contract: The registered contract
        validate_output: Check handler results against the output schema
        missing_target_policy: What an ownership check on a missing record yields
    """

    contract: Contract
    validate_output: bool = True
    missing_target_policy: MissingTargetPolicy = MissingTargetPolicy.NOT_FOUND

    @property
    def name(self) -> str:
        return self.contract.name

    async def __call__(self, payload: Any, identity: CallerIdentity | None = None) -> ContractResult:
        with operation_context(self.contract.name, self.contract.method):
            return await self._run(payload, identity)

    async def _run(self, payload: Any, identity: CallerIdentity | None) -> ContractResult:
        contract = self.contract

        input_outcome = validate(contract.input_schema, payload)
        if not input_outcome.passed:
            logger.debug("contract_input_rejected", fields=sorted(input_outcome.errors))
            return ContractError(error_type=INPUT_VALIDATION_FAILED, code=400, data=payload, errors=input_outcome)

        denial = await self._authorize(payload, identity)
        if denial is not None:
            return denial

        if contract.handler is None:
            logger.debug("contract_not_implemented")
            return ContractError(
                error_type=NOT_IMPLEMENTED,
                code=501,
                data=contract.name,
                errors=(f"Handler for {contract.name} was not defined",),
            )

        if contract.handler_takes_identity:
            result = contract.handler(payload, identity)
        else:
            result = contract.handler(payload)
        if inspect.isawaitable(result):
            result = await result

        if self.validate_output:
            output_outcome = validate(contract.output_schema, result)
            if not output_outcome.passed:
                logger.warning("contract_output_rejected", fields=sorted(output_outcome.errors))
                return ContractError(error_type=UNEXPECTED_RESULT, code=500, data=result, errors=output_outcome)

        return ContractSuccess(result)

    async def _authorize(self, payload: Any, identity: CallerIdentity | None) -> ContractError | None:
        contract = self.contract
        if contract.authentication is False:
            return None

        resolve_target: ResolveTarget | None = None
        if contract.target_resolver is not None:
            resolve_target = functools.partial(contract.target_resolver, payload)

        decision = await evaluate(contract.authentication, identity, resolve_target)
        match decision:
            case AuthDecision.ALLOW:
                return None
            case AuthDecision.DENY_UNAUTHENTICATED:
                logger.debug("contract_unauthenticated")
                return ContractError(error_type=UNAUTHORIZED, code=401, data=payload, errors=(UNAUTHENTICATED_MESSAGE,))
            case AuthDecision.TARGET_MISSING if self.missing_target_policy == MissingTargetPolicy.NOT_FOUND:
                # Proceed; the handler or driver reports the missing record.
                return None
        logger.debug("contract_forbidden", decision=str(decision))
        return ContractError(error_type=UNAUTHORIZED, code=403, data=payload, errors=(FORBIDDEN_MESSAGE,))


def wrap(
    contract: Contract,
    validate_output: bool = True,
    *,
    missing_target_policy: MissingTargetPolicy = MissingTargetPolicy.NOT_FOUND,
) -> ProcessedOperation:
    """Wrap a contract into a ProcessedOperation."""
    return ProcessedOperation(
        contract=contract,
        validate_output=validate_output,
        missing_target_policy=MissingTargetPolicy(missing_target_policy),
    )


def add_validation_to_contracts(
    contracts: Mapping[str, Contract],
    validate_output: bool = True,
    *,
    missing_target_policy: MissingTargetPolicy = MissingTargetPolicy.NOT_FOUND,
) -> dict[str, ProcessedOperation]:
    """Wrap every contract of a name-keyed mapping, preserving its keys."""
    return {
        key: wrap(contract, validate_output, missing_target_policy=missing_target_policy)
        for key, contract in contracts.items()
    }
