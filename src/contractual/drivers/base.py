"""Base class for storage drivers.

A driver implements the fixed verb set every bound contract dispatches to.
Drivers are system code discovered through pluggy (see
contractual.drivers.discovery); subclasses declare their store kind in
``name``.

Verb contract (all coroutines):

    get_by_id(collection, access, id)            -> record, or NotFoundError
    get_by_ids(collection, access, ids)          -> present records, request order
    get_by_text(collection, access, query)       -> ranked records
    get_all(collection, access)                  -> records, insertion order
    create(collection, access, record, id_field) -> created record
    replace(collection, access, id, record)      -> stored record
    merge(collection, access, id, partial)       -> stored record
    delete(collection, access, target)           -> removed records

``access`` is an AccessScope: records it does not permit are invisible to
the call (reads omit them, single-id verbs report NotFoundError).

Create-if-absent MUST be atomic in the backend; a concurrent duplicate
surfaces as a ConflictError, never as a crash.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from typing import Any, ClassVar, TypeAlias

from contractual.contracts.auth import AccessScope
from contractual.contracts.errors import ForbiddenWriteError, InvalidIdError
from contractual.core.config import DuplicateContentPolicy
from contractual.drivers.duplicates import ContentFingerprinter

Record: TypeAlias = dict[str, Any]

# One id, several ids, a field-equality filter, or None for everything visible.
DeleteTarget: TypeAlias = str | Sequence[str] | Mapping[str, Any] | None


class DataDriver(ABC):
    """Abstract storage driver.

    Subclasses set ``name`` (the store kind bindings refer to) and implement
    every verb. Constructor signature is fixed so the DriverFactory can
    instantiate any discovered driver from settings.
    """

    name: ClassVar[str]

    def __init__(
        self,
        options: Mapping[str, Any] | None = None,
        *,
        duplicate_policy: DuplicateContentPolicy | None = None,
    ) -> None:
        self.options: dict[str, Any] = dict(options or {})
        self.duplicate_policy = duplicate_policy or DuplicateContentPolicy()
        self._fingerprinter = ContentFingerprinter(self.duplicate_policy)

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if ABC not in cls.__bases__ and not isinstance(cls.__dict__.get("name", None), str):
            raise TypeError(f"{cls.__name__} must declare a string 'name' (its store kind)")

    @abstractmethod
    async def get_by_id(self, collection: str, access: AccessScope, record_id: str) -> Record:
        """Return one record; raise NotFoundError if absent or not visible."""
        ...

    @abstractmethod
    async def get_by_ids(self, collection: str, access: AccessScope, record_ids: Sequence[str]) -> list[Record]:
        """Return the visible records among ``record_ids``; unknown ids are omitted."""
        ...

    @abstractmethod
    async def get_by_text(self, collection: str, access: AccessScope, query: str) -> list[Record]:
        """Return matching records, most relevant first, ties by insertion order."""
        ...

    @abstractmethod
    async def get_all(self, collection: str, access: AccessScope) -> list[Record]:
        """Return every visible record in insertion order."""
        ...

    @abstractmethod
    async def create(self, collection: str, access: AccessScope, record: Mapping[str, Any], id_field: str) -> Record:
        """Store a new record.

        Raises:
            DuplicateContentError: Content repeats a prior create
            DuplicateIdError: Id already taken
            InvalidIdError: Record carries no usable id
        """
        ...

    @abstractmethod
    async def replace(
        self,
        collection: str,
        access: AccessScope,
        record_id: str,
        record: Mapping[str, Any],
        *,
        id_field: str = "id",
    ) -> Record:
        """Replace a record entirely; omitted fields are dropped."""
        ...

    @abstractmethod
    async def merge(
        self,
        collection: str,
        access: AccessScope,
        record_id: str,
        partial: Mapping[str, Any],
        *,
        id_field: str = "id",
    ) -> Record:
        """Update only the supplied fields; omitted fields are kept."""
        ...

    @abstractmethod
    async def delete(self, collection: str, access: AccessScope, target: DeleteTarget = None) -> list[Record]:
        """Remove records and return them."""
        ...

    async def close(self) -> None:  # noqa: B027 - optional hook, default no-op
        """Release backend resources."""

    # Shared helpers

    def fingerprint(self, record: Mapping[str, Any]) -> str | None:
        """Content fingerprint for re-post detection, None when disabled."""
        return self._fingerprinter.fingerprint(record)

    @staticmethod
    def require_id(collection: str, record: Mapping[str, Any], id_field: str) -> str:
        record_id = record.get(id_field)
        if type(record_id) is not str or not record_id:
            raise InvalidIdError(
                f"Record for '{collection}' must carry a non-empty string id in '{id_field}', got {record_id!r}",
                data=dict(record),
            )
        return record_id

    @staticmethod
    def check_id_unchanged(collection: str, record_id: str, payload: Mapping[str, Any], id_field: str) -> None:
        if id_field in payload and payload[id_field] != record_id:
            raise InvalidIdError(
                f"Id of '{record_id}' in '{collection}' cannot be changed to {payload[id_field]!r}",
                data=dict(payload),
            )

    @staticmethod
    def check_still_permitted(collection: str, access: AccessScope, record_id: str, result: Mapping[str, Any]) -> None:
        """Reject a write that would move a record out of the caller's scope."""
        if not access.permits(result):
            raise ForbiddenWriteError(collection, record_id)
