# src/contractual/drivers/sql.py
"""SQL driver using SQLAlchemy Core.

All collections share one table; each row holds a record as JSON:

    seq          INTEGER PK   insertion order (ties in text search)
    collection   TEXT         collection name from the binding
    record_id    TEXT         record id, unique per collection
    body         TEXT         JSON of the record, as given
    search_text  TEXT         lowercased word tokens of the record's string values
    fingerprint  TEXT NULL    content fingerprint taken at create time

Unique constraints on (collection, record_id) and (collection, fingerprint)
make create-if-absent atomic in the database itself: concurrent duplicate
creates fail with IntegrityError, which is translated into the matching
ConflictError. NULL fingerprints (policy disabled) never collide.

SQLAlchemy Core calls are blocking; every verb runs its unit of work in a
worker thread via asyncio.to_thread so the event loop is never blocked.
"""

from __future__ import annotations

import asyncio
import json
import threading
from collections.abc import Mapping, Sequence
from typing import Any

import structlog
from sqlalchemy import Column, Integer, MetaData, String, Table, Text, UniqueConstraint, create_engine, delete, or_, select, update
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.pool import StaticPool

from contractual.contracts.auth import AccessScope
from contractual.contracts.errors import DuplicateContentError, DuplicateIdError, NotFoundError
from contractual.drivers.base import DataDriver, DeleteTarget, Record
from contractual.drivers.search import rank, search_terms, tokenize

logger = structlog.get_logger(__name__)

DEFAULT_URL = "sqlite://"
DEFAULT_TABLE = "contractual_records"
_MEMORY_URLS = frozenset({"sqlite://", "sqlite:///:memory:"})


def _encode(record: Record) -> str:
    return json.dumps(record, ensure_ascii=False, separators=(",", ":"), allow_nan=False)


def _search_text(record: Record) -> str:
    # Space-delimited so a prefilter can match whole tokens.
    return f" {' '.join(search_terms(record))} "


def _build_table(name: str, metadata: MetaData) -> Table:
    return Table(
        name,
        metadata,
        Column("seq", Integer, primary_key=True, autoincrement=True),
        Column("collection", String(255), nullable=False),
        Column("record_id", String(255), nullable=False),
        Column("body", Text, nullable=False),
        Column("search_text", Text, nullable=False),
        Column("fingerprint", String(64), nullable=True),
        UniqueConstraint("collection", "record_id", name=f"uq_{name}_collection_record_id"),
        UniqueConstraint("collection", "fingerprint", name=f"uq_{name}_collection_fingerprint"),
    )


class SqlDriver(DataDriver):
    """Store records in any SQLAlchemy-supported database.

    Config options:
        url: Database URL (default: in-memory SQLite)
        table: Table name (default: "contractual_records")
        echo: Log SQL statements (default: False)

    The table is created on first use if it does not exist.
    """

    name = "sql"

    def __init__(self, options: Mapping[str, Any] | None = None, **kwargs: Any) -> None:
        super().__init__(options, **kwargs)
        self._url: str = self.options.get("url", DEFAULT_URL)
        self._echo: bool = bool(self.options.get("echo", False))
        self._metadata = MetaData()
        self._table = _build_table(self.options.get("table", DEFAULT_TABLE), self._metadata)
        self._engine: Engine | None = None
        self._init_lock = threading.Lock()
        # An in-memory database lives on one shared connection; units of work
        # must not interleave on it.
        self._work_lock: threading.Lock | None = threading.Lock() if self._url in _MEMORY_URLS else None

    def _ensure_engine(self) -> Engine:
        """Create the engine and table once; safe across worker threads."""
        with self._init_lock:
            if self._engine is None:
                if self._url in _MEMORY_URLS:
                    # One shared connection, otherwise every worker thread
                    # would see its own empty in-memory database.
                    engine = create_engine(
                        self._url,
                        echo=self._echo,
                        poolclass=StaticPool,
                        connect_args={"check_same_thread": False},
                    )
                else:
                    engine = create_engine(self._url, echo=self._echo)
                self._metadata.create_all(engine)
                self._engine = engine
                logger.debug("sql_driver_initialized", table=self._table.name)
            return self._engine

    async def _run(self, fn: Any, *args: Any) -> Any:
        work_lock = self._work_lock
        if work_lock is None:
            return await asyncio.to_thread(fn, *args)

        def serialized() -> Any:
            with work_lock:
                return fn(*args)

        return await asyncio.to_thread(serialized)

    # Row helpers (worker thread)

    def _load(self, conn: Connection, collection: str, record_id: str) -> Record | None:
        body = conn.execute(
            select(self._table.c.body).where(
                self._table.c.collection == collection,
                self._table.c.record_id == record_id,
            )
        ).scalar_one_or_none()
        return None if body is None else json.loads(body)

    def _load_visible(self, conn: Connection, collection: str, access: AccessScope, record_id: str) -> Record:
        record = self._load(conn, collection, record_id)
        if record is None or not access.permits(record):
            raise NotFoundError(collection, record_id)
        return record

    def _rows(self, conn: Connection, collection: str, *criteria: Any) -> list[tuple[str, Record]]:
        statement = (
            select(self._table.c.record_id, self._table.c.body)
            .where(self._table.c.collection == collection, *criteria)
            .order_by(self._table.c.seq)
        )
        return [(row.record_id, json.loads(row.body)) for row in conn.execute(statement)]

    def _write_body(self, conn: Connection, collection: str, record_id: str, record: Record) -> None:
        conn.execute(
            update(self._table)
            .where(self._table.c.collection == collection, self._table.c.record_id == record_id)
            .values(body=_encode(record), search_text=_search_text(record))
        )

    # Verbs

    async def get_by_id(self, collection: str, access: AccessScope, record_id: str) -> Record:
        def work() -> Record:
            with self._ensure_engine().connect() as conn:
                return self._load_visible(conn, collection, access, record_id)

        result: Record = await self._run(work)
        return result

    async def get_by_ids(self, collection: str, access: AccessScope, record_ids: Sequence[str]) -> list[Record]:
        wanted = list(dict.fromkeys(record_ids))

        def work() -> list[Record]:
            if not wanted:
                return []
            with self._ensure_engine().connect() as conn:
                by_id = dict(self._rows(conn, collection, self._table.c.record_id.in_(wanted)))
            return [by_id[record_id] for record_id in wanted if record_id in by_id and access.permits(by_id[record_id])]

        result: list[Record] = await self._run(work)
        return result

    async def get_by_text(self, collection: str, access: AccessScope, query: str) -> list[Record]:
        terms = tokenize(query)

        def work() -> list[Record]:
            if not terms:
                return []
            prefilter = or_(*[self._table.c.search_text.contains(f" {term} ", autoescape=True) for term in terms])
            with self._ensure_engine().connect() as conn:
                candidates = [record for _, record in self._rows(conn, collection, prefilter) if access.permits(record)]
            return rank(candidates, query)

        result: list[Record] = await self._run(work)
        return result

    async def get_all(self, collection: str, access: AccessScope) -> list[Record]:
        def work() -> list[Record]:
            with self._ensure_engine().connect() as conn:
                return [record for _, record in self._rows(conn, collection) if access.permits(record)]

        result: list[Record] = await self._run(work)
        return result

    async def create(self, collection: str, access: AccessScope, record: Mapping[str, Any], id_field: str) -> Record:
        record_id = self.require_id(collection, record, id_field)
        stored = dict(record)
        body = _encode(stored)
        fingerprint = self.fingerprint(stored)

        def work() -> Record:
            engine = self._ensure_engine()
            try:
                with engine.begin() as conn:
                    conn.execute(
                        self._table.insert().values(
                            collection=collection,
                            record_id=record_id,
                            body=body,
                            search_text=_search_text(stored),
                            fingerprint=fingerprint,
                        )
                    )
            except IntegrityError as exc:
                conflict = self._classify_conflict(engine, collection, record_id, fingerprint)
                if conflict is None:
                    raise
                raise conflict from exc
            return json.loads(body)

        result: Record = await self._run(work)
        logger.debug("record_created", driver=self.name, collection=collection, record_id=record_id)
        return result

    def _classify_conflict(
        self, engine: Engine, collection: str, record_id: str, fingerprint: str | None
    ) -> DuplicateContentError | DuplicateIdError | None:
        """Turn a failed insert into the matching ConflictError.

        Content is checked first, so a verbatim re-post is reported as such
        even though its id collides too. None means neither uniqueness
        constraint explains the failure.
        """
        with engine.connect() as conn:
            if fingerprint is not None:
                existing = conn.execute(
                    select(self._table.c.record_id).where(
                        self._table.c.collection == collection,
                        self._table.c.fingerprint == fingerprint,
                    )
                ).scalar_one_or_none()
                if existing is not None:
                    return DuplicateContentError(collection, record_id, existing)
            if self._load(conn, collection, record_id) is not None:
                return DuplicateIdError(collection, record_id)
        return None

    async def replace(
        self,
        collection: str,
        access: AccessScope,
        record_id: str,
        record: Mapping[str, Any],
        *,
        id_field: str = "id",
    ) -> Record:
        def work() -> Record:
            with self._ensure_engine().begin() as conn:
                self._load_visible(conn, collection, access, record_id)
                self.check_id_unchanged(collection, record_id, record, id_field)
                stored = dict(record)
                stored[id_field] = record_id
                self.check_still_permitted(collection, access, record_id, stored)
                self._write_body(conn, collection, record_id, stored)
            return json.loads(_encode(stored))

        result: Record = await self._run(work)
        logger.debug("record_replaced", driver=self.name, collection=collection, record_id=record_id)
        return result

    async def merge(
        self,
        collection: str,
        access: AccessScope,
        record_id: str,
        partial: Mapping[str, Any],
        *,
        id_field: str = "id",
    ) -> Record:
        def work() -> Record:
            with self._ensure_engine().begin() as conn:
                existing = self._load_visible(conn, collection, access, record_id)
                self.check_id_unchanged(collection, record_id, partial, id_field)
                merged = {**existing, **partial}
                merged[id_field] = record_id
                self.check_still_permitted(collection, access, record_id, merged)
                self._write_body(conn, collection, record_id, merged)
            return json.loads(_encode(merged))

        result: Record = await self._run(work)
        logger.debug("record_merged", driver=self.name, collection=collection, record_id=record_id, fields=sorted(partial))
        return result

    async def delete(self, collection: str, access: AccessScope, target: DeleteTarget = None) -> list[Record]:
        def work() -> list[Record]:
            with self._ensure_engine().begin() as conn:
                if isinstance(target, str):
                    doomed = [(target, self._load_visible(conn, collection, access, target))]
                elif isinstance(target, Mapping):
                    doomed = [
                        (record_id, record)
                        for record_id, record in self._rows(conn, collection)
                        if access.permits(record) and all(record.get(k) == v for k, v in target.items())
                    ]
                elif target is None:
                    doomed = [(record_id, record) for record_id, record in self._rows(conn, collection) if access.permits(record)]
                else:
                    wanted = list(dict.fromkeys(target))
                    rows = self._rows(conn, collection, self._table.c.record_id.in_(wanted)) if wanted else []
                    doomed = [(record_id, record) for record_id, record in rows if access.permits(record)]

                if doomed:
                    conn.execute(
                        delete(self._table).where(
                            self._table.c.collection == collection,
                            self._table.c.record_id.in_([record_id for record_id, _ in doomed]),
                        )
                    )
            return [record for _, record in doomed]

        removed: list[Record] = await self._run(work)
        logger.debug("records_deleted", driver=self.name, collection=collection, count=len(removed))
        return removed

    async def close(self) -> None:
        if self._engine is not None:
            await self._run(self._engine.dispose)
            self._engine = None
