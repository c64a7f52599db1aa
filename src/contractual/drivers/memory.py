# src/contractual/drivers/memory.py
"""In-memory driver.

Reference adapter for the driver verb contract: records live in ordered
dicts per collection, so insertion order is creation order and replace/merge
keep a record's position. Stored and returned records are deep copies;
callers can never mutate stored state through a returned record.

Create-if-absent is atomic because no verb awaits between its check and its
write: the event loop cannot interleave another call in between.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

import structlog

from contractual.contracts.auth import AccessScope
from contractual.contracts.errors import DuplicateContentError, DuplicateIdError, NotFoundError
from contractual.drivers.base import DataDriver, DeleteTarget, Record
from contractual.drivers.search import rank

logger = structlog.get_logger(__name__)


@dataclass
class _Collection:
    records: dict[str, Record] = field(default_factory=dict)
    # fingerprint -> id of the record created with that content
    fingerprints: dict[str, str] = field(default_factory=dict)
    # id -> fingerprint taken at create time
    created_with: dict[str, str] = field(default_factory=dict)

    def forget(self, record_id: str) -> Record:
        record = self.records.pop(record_id)
        fingerprint = self.created_with.pop(record_id, None)
        if fingerprint is not None:
            del self.fingerprints[fingerprint]
        return record


class MemoryDriver(DataDriver):
    """Process-local driver; state is lost when the process exits.

    Config options: none.
    """

    name = "memory"

    def __init__(self, options: Mapping[str, Any] | None = None, **kwargs: Any) -> None:
        super().__init__(options, **kwargs)
        self._collections: dict[str, _Collection] = {}

    def _collection(self, name: str) -> _Collection:
        if name not in self._collections:
            self._collections[name] = _Collection()
        return self._collections[name]

    def _visible(self, collection: str, access: AccessScope) -> list[Record]:
        return [record for record in self._collection(collection).records.values() if access.permits(record)]

    def _existing(self, collection: str, access: AccessScope, record_id: str) -> Record:
        record = self._collection(collection).records.get(record_id)
        if record is None or not access.permits(record):
            raise NotFoundError(collection, record_id)
        return record

    async def get_by_id(self, collection: str, access: AccessScope, record_id: str) -> Record:
        return copy.deepcopy(self._existing(collection, access, record_id))

    async def get_by_ids(self, collection: str, access: AccessScope, record_ids: Sequence[str]) -> list[Record]:
        stored = self._collection(collection).records
        found: list[Record] = []
        for record_id in dict.fromkeys(record_ids):
            record = stored.get(record_id)
            if record is not None and access.permits(record):
                found.append(copy.deepcopy(record))
        return found

    async def get_by_text(self, collection: str, access: AccessScope, query: str) -> list[Record]:
        return copy.deepcopy(rank(self._visible(collection, access), query))

    async def get_all(self, collection: str, access: AccessScope) -> list[Record]:
        return copy.deepcopy(self._visible(collection, access))

    async def create(self, collection: str, access: AccessScope, record: Mapping[str, Any], id_field: str) -> Record:
        record_id = self.require_id(collection, record, id_field)
        state = self._collection(collection)
        fingerprint = self.fingerprint(record)

        # Content first: repeating a create verbatim is a re-post even though
        # the id collides as well.
        if fingerprint is not None and fingerprint in state.fingerprints:
            raise DuplicateContentError(collection, record_id, state.fingerprints[fingerprint])
        if record_id in state.records:
            raise DuplicateIdError(collection, record_id)

        stored = copy.deepcopy(dict(record))
        state.records[record_id] = stored
        if fingerprint is not None:
            state.fingerprints[fingerprint] = record_id
            state.created_with[record_id] = fingerprint
        logger.debug("record_created", driver=self.name, collection=collection, record_id=record_id)
        return copy.deepcopy(stored)

    async def replace(
        self,
        collection: str,
        access: AccessScope,
        record_id: str,
        record: Mapping[str, Any],
        *,
        id_field: str = "id",
    ) -> Record:
        self._existing(collection, access, record_id)
        self.check_id_unchanged(collection, record_id, record, id_field)
        stored = copy.deepcopy(dict(record))
        stored[id_field] = record_id
        self.check_still_permitted(collection, access, record_id, stored)
        self._collection(collection).records[record_id] = stored
        logger.debug("record_replaced", driver=self.name, collection=collection, record_id=record_id)
        return copy.deepcopy(stored)

    async def merge(
        self,
        collection: str,
        access: AccessScope,
        record_id: str,
        partial: Mapping[str, Any],
        *,
        id_field: str = "id",
    ) -> Record:
        existing = self._existing(collection, access, record_id)
        self.check_id_unchanged(collection, record_id, partial, id_field)
        merged = {**existing, **copy.deepcopy(dict(partial))}
        merged[id_field] = record_id
        self.check_still_permitted(collection, access, record_id, merged)
        self._collection(collection).records[record_id] = merged
        logger.debug("record_merged", driver=self.name, collection=collection, record_id=record_id, fields=sorted(partial))
        return copy.deepcopy(merged)

    async def delete(self, collection: str, access: AccessScope, target: DeleteTarget = None) -> list[Record]:
        state = self._collection(collection)
        if isinstance(target, str):
            self._existing(collection, access, target)
            doomed = [target]
        elif isinstance(target, Mapping):
            doomed = [
                record_id
                for record_id, record in state.records.items()
                if access.permits(record) and all(record.get(k) == v for k, v in target.items())
            ]
        elif target is None:
            doomed = [record_id for record_id, record in state.records.items() if access.permits(record)]
        else:
            doomed = [
                record_id
                for record_id in dict.fromkeys(target)
                if record_id in state.records and access.permits(state.records[record_id])
            ]

        removed = [state.forget(record_id) for record_id in doomed]
        logger.debug("records_deleted", driver=self.name, collection=collection, count=len(removed))
        return removed
