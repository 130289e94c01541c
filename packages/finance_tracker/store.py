"""Record persistence: the ``RecordStore`` interface and its SQL implementation.

``SqlRecordStore`` keeps records in the ``ft_records`` table owned by
``libs/db``, scoped to a namespace (the configurable "box" name). It is
constructed explicitly and injected into ``RecordService``; nothing here is a
process-wide singleton.

Blocking SQLAlchemy work runs in a worker thread via ``asyncio.to_thread`` so
callers on the event loop only suspend at store boundaries. Exceptions are
raised raw (``SQLAlchemyError``, ``LookupError``, ``RuntimeError``); turning
them into the tracker's error taxonomy is the service's job. The one
exception is :meth:`SqlRecordStore.initialize`, which reports a medium that
cannot be opened (including a URL whose DBAPI driver is not installed) as
``StorageError``.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from typing import Protocol, TypeVar

from db.client import make_engine, make_session_factory, session_scope
from db.models.finance import Base, FinanceRecordRow
from sqlalchemy import delete, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from . import messages
from .errors import StorageError
from .logging_setup import get_logger
from .models import FinanceRecord

_logger = get_logger("finance_tracker.store")

T = TypeVar("T")

DEFAULT_NAMESPACE = "trades"


class RecordStore(Protocol):
    """Persistent, keyed collection of finance records."""

    async def initialize(self) -> None: ...

    async def list_all(self) -> list[FinanceRecord]: ...

    async def add(self, record: FinanceRecord) -> FinanceRecord: ...

    async def add_many(self, records: Sequence[FinanceRecord]) -> list[FinanceRecord]: ...

    async def update(self, record_id: int, record: FinanceRecord) -> None: ...

    async def delete(self, record_id: int) -> None: ...

    async def clear(self) -> None: ...

    async def close(self) -> None: ...


def _to_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC)


def _row_to_record(row: FinanceRecordRow) -> FinanceRecord:
    return FinanceRecord(
        id=row.id,
        title=row.title,
        amount=row.amount,
        # SQLite hands back naive datetimes; values are always written in UTC
        occurred_at=_to_utc(row.occurred_at),
        is_expense=bool(row.is_expense),
    )


class SqlRecordStore:
    """SQLAlchemy-backed :class:`RecordStore`."""

    def __init__(self, database_url: str, *, namespace: str = DEFAULT_NAMESPACE) -> None:
        self._database_url = database_url
        self._namespace = namespace
        self._engine: Engine | None = None
        self._sessions: sessionmaker[Session] | None = None

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def is_initialized(self) -> bool:
        return self._sessions is not None

    # ---- lifecycle ---------------------------------------------------------

    async def initialize(self) -> None:
        """Open the database and create the records table when missing (idempotent)."""

        if self.is_initialized:
            return
        try:
            engine = await asyncio.to_thread(self._open)
        except (SQLAlchemyError, OSError, ImportError) as exc:
            _logger.error("Could not open record store %s: %s", self._namespace, exc)
            raise StorageError(messages.STORAGE_FAILED, details=str(exc)) from exc
        self._engine = engine
        self._sessions = make_session_factory(engine)
        _logger.info("Record store initialized (namespace=%s)", self._namespace)

    def _open(self) -> Engine:
        engine = make_engine(self._database_url)
        try:
            Base.metadata.create_all(bind=engine, tables=[FinanceRecordRow.__table__])
        except Exception:
            engine.dispose()
            raise
        return engine

    async def close(self) -> None:
        if self._engine is not None:
            engine = self._engine
            self._engine = None
            self._sessions = None
            await asyncio.to_thread(engine.dispose)

    # ---- helpers -----------------------------------------------------------

    async def _run(self, fn: Callable[[Session], T]) -> T:
        sessions = self._sessions
        if sessions is None:
            raise RuntimeError("Record store not initialized; call initialize() first")

        def _work() -> T:
            with session_scope(sessions) as session:
                return fn(session)

        return await asyncio.to_thread(_work)

    def _get_row(self, session: Session, record_id: int) -> FinanceRecordRow:
        row = session.get(FinanceRecordRow, record_id)
        if row is None or row.namespace != self._namespace:
            raise LookupError(f"record {record_id} not found in store box {self._namespace!r}")
        return row

    # ---- operations --------------------------------------------------------

    async def list_all(self) -> list[FinanceRecord]:
        def _list(session: Session) -> list[FinanceRecord]:
            rows = (
                session.execute(
                    select(FinanceRecordRow)
                    .where(FinanceRecordRow.namespace == self._namespace)
                    .order_by(FinanceRecordRow.id)
                )
                .scalars()
                .all()
            )
            return [_row_to_record(r) for r in rows]

        return await self._run(_list)

    def _new_row(self, record: FinanceRecord) -> FinanceRecordRow:
        return FinanceRecordRow(
            namespace=self._namespace,
            title=record.title,
            amount=record.amount,
            occurred_at=_to_utc(record.occurred_at),
            is_expense=record.is_expense,
        )

    async def add(self, record: FinanceRecord) -> FinanceRecord:
        def _add(session: Session) -> int:
            row = self._new_row(record)
            session.add(row)
            session.flush()  # assigns the autoincrement id
            return row.id

        new_id = await self._run(_add)
        return record.with_id(new_id)

    async def add_many(self, records: Sequence[FinanceRecord]) -> list[FinanceRecord]:
        """Insert ``records`` in one transaction; on any failure none are kept."""

        def _add_all(session: Session) -> list[int]:
            ids: list[int] = []
            for record in records:
                row = self._new_row(record)
                session.add(row)
                session.flush()
                ids.append(row.id)
            return ids

        new_ids = await self._run(_add_all)
        return [record.with_id(new_id) for record, new_id in zip(records, new_ids, strict=True)]

    async def update(self, record_id: int, record: FinanceRecord) -> None:
        def _update(session: Session) -> None:
            row = self._get_row(session, record_id)
            row.title = record.title
            row.amount = record.amount
            row.occurred_at = _to_utc(record.occurred_at)
            row.is_expense = record.is_expense
            row.updated_at = func.current_timestamp()

        await self._run(_update)

    async def delete(self, record_id: int) -> None:
        def _delete(session: Session) -> None:
            session.delete(self._get_row(session, record_id))

        await self._run(_delete)

    async def clear(self) -> None:
        def _clear(session: Session) -> None:
            session.execute(
                delete(FinanceRecordRow).where(FinanceRecordRow.namespace == self._namespace)
            )

        await self._run(_clear)


__all__ = ["DEFAULT_NAMESPACE", "RecordStore", "SqlRecordStore"]
