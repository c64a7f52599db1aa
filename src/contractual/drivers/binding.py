# src/contractual/drivers/binding.py
"""Resolve driver bindings into dispatch strategies.

A DriverBinding is interpreted exactly once, at registration, by
``resolve_binding``. The result is a strategy object per verb that serves as
the contract's handler (``strategy(payload, identity)``) and as its target
resolver (``strategy.resolve_target(payload)``) for ownership checks.

Read dispatch on the payload:

    payload[id_field] is a str          -> get_by_id
    payload[id_field] is a list of str  -> get_by_ids
    payload[search_field] is a str      -> get_by_text   (free_text mode only)
    anything else                       -> get_all

A bare string or list payload is treated as the id value itself.
"""

from __future__ import annotations

from collections.abc import Awaitable, Mapping
from dataclasses import dataclass
from typing import Any

from contractual.contracts.auth import AccessScope, AuthorizationRule
from contractual.contracts.contract import DriverBinding
from contractual.contracts.enums import HttpMethod, SearchMode
from contractual.contracts.errors import NotFoundError
from contractual.contracts.identity import CallerIdentity
from contractual.drivers.base import DataDriver, DeleteTarget, Record


def _id_value(payload: Any, id_field: str) -> Any:
    if isinstance(payload, str | list | tuple):
        return payload
    if isinstance(payload, Mapping):
        return payload.get(id_field)
    return None


def _is_id_list(value: Any) -> bool:
    return isinstance(value, list | tuple) and all(isinstance(item, str) for item in value)


@dataclass(frozen=True)
class _Strategy:
    driver: DataDriver
    collection: str
    rule: AuthorizationRule
    id_field: str

    def scope(self, identity: CallerIdentity | None) -> AccessScope:
        return AccessScope.for_rule(self.rule, identity)

    async def _lookup(self, record_id: str) -> Record | None:
        # Unrestricted: the evaluator decides what the caller may do with it.
        try:
            return await self.driver.get_by_id(self.collection, AccessScope.unrestricted(), record_id)
        except NotFoundError:
            return None

    def resolve_target(self, payload: Any) -> Awaitable[Record | None] | None:
        """Record addressed by the payload, or None for multi-record calls."""
        record_id = _id_value(payload, self.id_field)
        if isinstance(record_id, str) and record_id:
            return self._lookup(record_id)
        return None


@dataclass(frozen=True)
class ReadStrategy(_Strategy):
    search_mode: SearchMode = SearchMode.ID_ONLY
    search_field: str = "search"

    async def __call__(self, payload: Any, identity: CallerIdentity | None = None) -> Record | list[Record]:
        access = self.scope(identity)
        if self.search_mode != SearchMode.NONE:
            record_id = _id_value(payload, self.id_field)
            if isinstance(record_id, str):
                return await self.driver.get_by_id(self.collection, access, record_id)
            if _is_id_list(record_id):
                return await self.driver.get_by_ids(self.collection, access, list(record_id))
        if self.search_mode == SearchMode.FREE_TEXT and isinstance(payload, Mapping):
            query = payload.get(self.search_field)
            if isinstance(query, str):
                return await self.driver.get_by_text(self.collection, access, query)
        return await self.driver.get_all(self.collection, access)

    def resolve_target(self, payload: Any) -> Awaitable[Record | None] | None:
        if self.search_mode == SearchMode.NONE:
            return None
        return super().resolve_target(payload)


@dataclass(frozen=True)
class CreateStrategy(_Strategy):
    async def __call__(self, payload: Mapping[str, Any], identity: CallerIdentity | None = None) -> Record:
        return await self.driver.create(self.collection, self.scope(identity), payload, self.id_field)

    async def _as_target(self, payload: Mapping[str, Any]) -> Record:
        return dict(payload)

    def resolve_target(self, payload: Any) -> Awaitable[Record | None] | None:
        # Ownership of a new record is judged on the record being created.
        if isinstance(payload, Mapping):
            return self._as_target(payload)
        return None


@dataclass(frozen=True)
class ReplaceStrategy(_Strategy):
    async def __call__(self, payload: Mapping[str, Any], identity: CallerIdentity | None = None) -> Record:
        record_id = self.driver.require_id(self.collection, payload, self.id_field)
        return await self.driver.replace(self.collection, self.scope(identity), record_id, payload, id_field=self.id_field)


@dataclass(frozen=True)
class MergeStrategy(_Strategy):
    async def __call__(self, payload: Mapping[str, Any], identity: CallerIdentity | None = None) -> Record:
        record_id = self.driver.require_id(self.collection, payload, self.id_field)
        partial = {key: value for key, value in payload.items() if key != self.id_field}
        return await self.driver.merge(self.collection, self.scope(identity), record_id, partial, id_field=self.id_field)


@dataclass(frozen=True)
class DeleteStrategy(_Strategy):
    def _target(self, payload: Any) -> DeleteTarget:
        record_id = _id_value(payload, self.id_field)
        if isinstance(record_id, str):
            return record_id
        if _is_id_list(record_id):
            return list(record_id)
        if isinstance(payload, Mapping) and payload:
            return dict(payload)
        return None

    async def __call__(self, payload: Any, identity: CallerIdentity | None = None) -> list[Record]:
        return await self.driver.delete(self.collection, self.scope(identity), self._target(payload))


Strategy = ReadStrategy | CreateStrategy | ReplaceStrategy | MergeStrategy | DeleteStrategy


def resolve_binding(
    binding: DriverBinding,
    method: HttpMethod,
    driver: DataDriver,
    rule: AuthorizationRule,
    id_field: str,
) -> Strategy:
    """Build the dispatch strategy for a bound contract.

    Args:
        binding: Declarative binding from the contract definition
        method: Verb the contract is exposed under
        driver: Driver instance for ``binding.store_kind``
        rule: The contract's authorization rule (scopes multi-record calls)
        id_field: The contract's id field, used unless the binding names one
    """
    common: dict[str, Any] = {
        "driver": driver,
        "collection": binding.collection,
        "rule": rule,
        "id_field": binding.id_field or id_field,
    }
    match HttpMethod(method):
        case HttpMethod.GET:
            return ReadStrategy(**common, search_mode=binding.search_mode, search_field=binding.search_field)
        case HttpMethod.POST:
            return CreateStrategy(**common)
        case HttpMethod.PUT:
            return ReplaceStrategy(**common)
        case HttpMethod.PATCH:
            return MergeStrategy(**common)
        case HttpMethod.DELETE:
            return DeleteStrategy(**common)
