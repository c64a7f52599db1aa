# src/contractual/engine/registry.py
"""Method registry: processed operations grouped by verb.

Built once at startup and read-only afterwards. Transports look operations
up by verb and name; the registry holds no business logic of its own.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from contractual.contracts.enums import HttpMethod
from contractual.contracts.errors import ContractCallError, ContractDefinitionError
from contractual.contracts.identity import CallerIdentity
from contractual.contracts.results import ContractResult, is_contract_in_error
from contractual.engine.processor import ProcessedOperation


@dataclass(frozen=True)
class RegisteredMethod:
    """One operation as exposed to a transport."""

    name: str
    method: HttpMethod
    operation: ProcessedOperation

    async def handle(self, payload: Any, identity: CallerIdentity | None = None) -> ContractResult:
        return await self.operation(payload, identity)

    async def call_or_raise(self, payload: Any, identity: CallerIdentity | None = None) -> Any:
        """Return the result value, raising ContractCallError for error results.

        For transports that signal failures with exceptions; ``code`` and
        ``response`` on the exception map onto a status code and a body.
        """
        result = await self.operation(payload, identity)
        if is_contract_in_error(result):
            raise ContractCallError(result)
        return result.result


class MethodRegistry:
    """Read-only lookup of registered methods by verb and name."""

    def __init__(self, operations: Iterable[ProcessedOperation] = ()) -> None:
        grouped: dict[HttpMethod, dict[str, RegisteredMethod]] = {method: {} for method in HttpMethod}
        for operation in operations:
            contract = operation.contract
            by_name = grouped[contract.method]
            if contract.name in by_name:
                raise ContractDefinitionError(contract.name, f"Duplicate registration for method '{contract.method}'")
            by_name[contract.name] = RegisteredMethod(name=contract.name, method=contract.method, operation=operation)
        self._methods: Mapping[HttpMethod, Mapping[str, RegisteredMethod]] = MappingProxyType(
            {method: MappingProxyType(by_name) for method, by_name in grouped.items()}
        )

    def for_method(self, method: HttpMethod | str) -> Mapping[str, RegisteredMethod]:
        """Name-keyed methods registered under a verb (read-only)."""
        return self._methods[HttpMethod(method)]

    def lookup(self, method: HttpMethod | str, name: str) -> RegisteredMethod | None:
        return self.for_method(method).get(name)

    def __iter__(self) -> Iterator[RegisteredMethod]:
        for by_name in self._methods.values():
            yield from by_name.values()

    def __len__(self) -> int:
        return sum(len(by_name) for by_name in self._methods.values())

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, tuple) or len(key) != 2:
            return False
        method, name = key
        try:
            return name in self.for_method(method)
        except ValueError:
            return False


def register_rest_methods(processed: Mapping[str, ProcessedOperation]) -> MethodRegistry:
    """Build a registry from a name-keyed mapping of processed operations."""
    return MethodRegistry(processed.values())
