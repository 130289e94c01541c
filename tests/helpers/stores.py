"""In-memory ``RecordStore`` fakes for service and container tests."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Sequence

from finance_tracker.models import FinanceRecord


class MemoryRecordStore:
    """Dict-backed store that rejects unknown ids like the SQL store does.

    ``fail_on`` names operations (``"list_all"``, ``"add"``, ...) that raise
    ``error`` instead of running; tests may change both between calls.
    ``fail_at_row`` makes ``add_many`` raise ``error`` when it reaches that
    (0-based) row, after the earlier rows were staged; nothing is kept.
    """

    def __init__(
        self,
        records: Iterable[FinanceRecord] = (),
        *,
        fail_on: Iterable[str] = (),
        error: BaseException | None = None,
        fail_at_row: int | None = None,
    ) -> None:
        self._rows: dict[int, FinanceRecord] = {}
        self._next_id = 0
        for r in records:
            self._put(r)
        self.fail_on: set[str] = set(fail_on)
        self.error: BaseException = error or RuntimeError("database is locked")
        self.fail_at_row = fail_at_row
        self.initialized = False
        self.calls: list[str] = []

    def _put(self, record: FinanceRecord) -> FinanceRecord:
        if record.id is None:
            record = record.with_id(self._next_id)
        self._rows[record.id] = record
        self._next_id = max(self._next_id, record.id + 1)
        return record

    async def _enter(self, op: str) -> None:
        self.calls.append(op)
        # Yield once so callers really suspend at the store boundary
        await asyncio.sleep(0)
        if op in self.fail_on:
            raise self.error

    async def initialize(self) -> None:
        await self._enter("initialize")
        self.initialized = True

    async def list_all(self) -> list[FinanceRecord]:
        await self._enter("list_all")
        return [self._rows[k] for k in sorted(self._rows)]

    async def add(self, record: FinanceRecord) -> FinanceRecord:
        await self._enter("add")
        return self._put(record)

    async def add_many(self, records: Sequence[FinanceRecord]) -> list[FinanceRecord]:
        await self._enter("add_many")
        rows, next_id = dict(self._rows), self._next_id
        saved: list[FinanceRecord] = []
        for index, record in enumerate(records):
            if index == self.fail_at_row:
                self._rows, self._next_id = rows, next_id
                raise self.error
            saved.append(self._put(record))
            await asyncio.sleep(0)
        return saved

    async def update(self, record_id: int, record: FinanceRecord) -> None:
        await self._enter("update")
        if record_id not in self._rows:
            raise LookupError(f"record {record_id} not found in store box 'trades'")
        self._rows[record_id] = record.with_id(record_id)

    async def delete(self, record_id: int) -> None:
        await self._enter("delete")
        if record_id not in self._rows:
            raise LookupError(f"record {record_id} not found in store box 'trades'")
        del self._rows[record_id]

    async def clear(self) -> None:
        await self._enter("clear")
        self._rows.clear()

    async def close(self) -> None:
        self.calls.append("close")
