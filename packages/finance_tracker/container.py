"""Event-driven state container for finance records.

``RecordStateContainer`` turns intent events into an ordered sequence of
immutable state snapshots. Events are queued and handled one at a time by a
single worker task; each handler runs to completion, awaited store I/O
included, before the next event starts, so the emissions of two events never
interleave.

Transitions
-----------
- ``Load``: ``Loading`` then ``Loaded`` or ``Failed`` (no records).
- ``Refresh``: like ``Load`` but without ``Loading`` when already ``Loaded``;
  a failure keeps the last known records.
- ``Add`` / ``AddInstallments`` / ``Update`` / ``Delete``: ``Loaded`` with the
  matching in-flight flag set, then ``OperationSucceeded`` + ``Loaded`` over
  the reloaded list; on failure ``Loaded`` with the flag cleared, then
  ``Failed`` carrying the records from before the operation.
- ``ClearAll``: ``OperationSucceeded`` + empty ``Loaded``, or ``Failed``.
- ``Search`` / ``FilterByDateRange`` / ``FilterByType`` / ``ClearFilters``: one
  ``Loaded`` with ``filtered_records`` recomputed from the full list.

Every event except ``Load`` and ``Refresh`` is ignored unless the current
state is ``Loaded``. Active filters survive mutations and refreshes and are
re-applied to the new record list.
"""

from __future__ import annotations

import asyncio
import contextlib
import dataclasses
from collections.abc import Awaitable, Callable
from typing import assert_never

from . import messages
from .errors import FinanceError, translate_exception
from .events import (
    Add,
    AddInstallments,
    ClearAll,
    ClearFilters,
    Delete,
    FilterByDateRange,
    FilterByType,
    Load,
    RecordEvent,
    Refresh,
    Search,
    Update,
)
from .filters import NO_FILTERS, DateRange, FilterCriteria
from .logging_setup import get_logger
from .models import OperationKind, Records
from .service import RecordService
from .states import (
    ContainerState,
    Failed,
    InFlight,
    Initial,
    Loaded,
    Loading,
    OperationSucceeded,
)

_logger = get_logger("finance_tracker.container")

type Listener = Callable[[ContainerState], None]

_END = object()


class StateStream:
    """Async iterator over a container's emissions.

    Subscribes on construction, so no emission after ``stream()`` returns is
    missed; iteration ends when the container is closed.
    """

    def __init__(self, container: RecordStateContainer) -> None:
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._unsubscribe = container.subscribe(self._queue.put_nowait)

    def __aiter__(self) -> StateStream:
        return self

    async def __anext__(self) -> ContainerState:
        item = await self._queue.get()
        if item is _END:
            self._unsubscribe()
            raise StopAsyncIteration
        return item  # type: ignore[return-value]

    def end(self) -> None:
        self._queue.put_nowait(_END)


def _known_records(state: ContainerState) -> Records:
    match state:
        case Loaded() | OperationSucceeded() | Failed():
            return state.records
        case Initial() | Loading():
            return ()
        case _:
            assert_never(state)


class RecordStateContainer:
    def __init__(self, service: RecordService) -> None:
        self._service = service
        self._state: ContainerState = Initial()
        self._listeners: list[Listener] = []
        self._streams: list[StateStream] = []
        self._queue: asyncio.Queue[RecordEvent] | None = None
        self._worker: asyncio.Task[None] | None = None
        self._closed = False

    @property
    def state(self) -> ContainerState:
        return self._state

    @property
    def service(self) -> RecordService:
        return self._service

    # ---- consumer surface ----------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` with every future emission; returns an unsubscribe callable."""

        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def stream(self) -> StateStream:
        s = StateStream(self)
        self._streams.append(s)
        return s

    def dispatch(self, event: RecordEvent) -> None:
        """Queue ``event`` for handling; results only show up as emissions.

        Must be called with a running event loop; the worker task starts on
        first use.
        """

        if self._closed:
            raise RuntimeError("RecordStateContainer is closed")
        if self._queue is None:
            self._queue = asyncio.Queue()
        if self._worker is None or self._worker.done():
            self._worker = asyncio.get_running_loop().create_task(
                self._drain(self._queue), name="record-state-container"
            )
        self._queue.put_nowait(event)

    async def settle(self) -> None:
        """Wait until every dispatched event has been handled."""

        if self._queue is not None:
            await self._queue.join()

    async def close(self) -> None:
        """Finish queued events, stop the worker and end all streams."""

        await self.settle()
        self._closed = True
        if self._worker is not None:
            self._worker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._worker
            self._worker = None
        for s in self._streams:
            s.end()
        self._streams.clear()

    async def _drain(self, queue: asyncio.Queue[RecordEvent]) -> None:
        while True:
            event = await queue.get()
            try:
                await self.handle(event)
            except Exception:
                _logger.exception("Unhandled error while handling %s", type(event).__name__)
            finally:
                queue.task_done()

    # ---- reducer -------------------------------------------------------------

    async def handle(self, event: RecordEvent) -> None:
        """Handle one event inline, emitting its whole state sequence."""

        _logger.debug("Handling %s", type(event).__name__)
        match event:
            case Load():
                await self._on_load()
            case Refresh():
                await self._on_refresh()
            case _:
                current = self._state
                if not isinstance(current, Loaded):
                    _logger.debug(
                        "Ignoring %s while %s", type(event).__name__, type(current).__name__
                    )
                    return
                await self._on_loaded_event(current, event)

    async def _on_loaded_event(self, current: Loaded, event: RecordEvent) -> None:
        service = self._service
        match event:
            case Add(title=title, amount=amount, is_expense=is_expense):
                success = messages.EXPENSE_ADDED if is_expense else messages.INCOME_ADDED
                await self._mutate(
                    current,
                    InFlight(adding=True),
                    OperationKind.ADD,
                    success,
                    lambda: service.add(title, amount, is_expense),
                )
            case AddInstallments():
                await self._mutate(
                    current,
                    InFlight(adding=True),
                    OperationKind.ADD,
                    messages.installments_added(event.installments),
                    lambda: service.add_installments(
                        event.title,
                        event.amount,
                        event.is_expense,
                        installments=event.installments,
                        payment_day=event.payment_day,
                        start=event.start,
                    ),
                )
            case Update(record=record):
                await self._mutate(
                    current,
                    InFlight(updating=True),
                    OperationKind.UPDATE,
                    messages.RECORD_UPDATED,
                    lambda: service.update(record),
                )
            case Delete(record_id=record_id):
                await self._mutate(
                    current,
                    InFlight(deleting=True),
                    OperationKind.DELETE,
                    messages.RECORD_REMOVED,
                    lambda: service.delete(record_id),
                )
            case ClearAll():
                await self._on_clear_all(current)
            case Search(query=query):
                text = query if query.strip() else None
                self._refilter(current, dataclasses.replace(current.criteria, search_query=text))
            case FilterByDateRange(start=start, end=end):
                self._refilter(
                    current,
                    dataclasses.replace(current.criteria, date_range=DateRange.of(start, end)),
                )
            case FilterByType(is_expense=is_expense):
                self._refilter(
                    current, dataclasses.replace(current.criteria, type_filter=is_expense)
                )
            case ClearFilters():
                self._refilter(current, NO_FILTERS)
            case Load() | Refresh():
                raise AssertionError("Load/Refresh are handled before the Loaded gate")
            case _:
                assert_never(event)

    async def _on_load(self) -> None:
        self._emit(Loading())
        try:
            records = await self._service.list_all()
        except Exception as exc:
            self._emit(Failed(self._translate(exc, "load")))
            return
        self._emit(Loaded.of(records))

    async def _on_refresh(self) -> None:
        previous = self._state
        # No Loading while data is already shown
        if not isinstance(previous, Loaded):
            self._emit(Loading())
        criteria = previous.criteria if isinstance(previous, Loaded) else NO_FILTERS
        try:
            records = await self._service.list_all()
        except Exception as exc:
            self._emit(Failed(self._translate(exc, "refresh"), records=_known_records(previous)))
            return
        self._emit(Loaded.of(records, criteria))

    async def _mutate(
        self,
        current: Loaded,
        busy: InFlight,
        kind: OperationKind,
        success_message: str,
        operation: Callable[[], Awaitable[object]],
    ) -> None:
        self._emit(current.with_in_flight(busy))
        try:
            await operation()
            records = tuple(await self._service.list_all())
        except Exception as exc:
            error = self._translate(exc, kind.value)
            # Flag is cleared before Failed is emitted
            self._emit(current.with_in_flight(InFlight()))
            self._emit(Failed(error, records=current.records))
            return
        self._emit(OperationSucceeded(message=success_message, operation=kind, records=records))
        self._emit(current.with_records(records))

    async def _on_clear_all(self, current: Loaded) -> None:
        try:
            await self._service.clear_all()
        except Exception as exc:
            self._emit(Failed(self._translate(exc, "clear"), records=current.records))
            return
        self._emit(
            OperationSucceeded(message=messages.ALL_CLEARED, operation=OperationKind.CLEAR)
        )
        self._emit(current.with_records(()))

    def _refilter(self, current: Loaded, criteria: FilterCriteria) -> None:
        self._emit(current.with_criteria(criteria))

    # ---- plumbing ------------------------------------------------------------

    def _translate(self, exc: Exception, operation: str) -> FinanceError:
        error = translate_exception(exc)
        _logger.warning("%s failed: %s (%s)", operation, error.message, error.kind)
        return error

    def _emit(self, state: ContainerState) -> None:
        self._state = state
        _logger.debug("Emit %s", type(state).__name__)
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                _logger.exception("State listener raised; continuing")


__all__ = ["RecordStateContainer", "StateStream", "Listener"]
