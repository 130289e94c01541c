"""Assembly helpers for hosts embedding the tracker.

The store, service and container are built explicitly and handed to each
other; nothing is cached at module level, so every call gets its own
database engine.
"""

from __future__ import annotations

from collections.abc import Iterable

from .config import TrackerSettings, load_settings
from .container import RecordStateContainer
from .errors import StorageError
from .events import Load, RecordEvent
from .logging_setup import get_logger
from .service import RecordService
from .states import ContainerState, Failed
from .store import SqlRecordStore

_logger = get_logger("finance_tracker.api")


async def open_container(settings: TrackerSettings | None = None) -> RecordStateContainer:
    """Initialize the SQL store and wire it into a fresh container.

    No event is dispatched; the container starts in ``Initial``. Close the
    store with :func:`close_container` when done.
    """

    settings = settings or load_settings()
    store = SqlRecordStore(settings.database_url, namespace=settings.namespace)
    await store.initialize()
    return RecordStateContainer(RecordService(store))


async def close_container(container: RecordStateContainer) -> None:
    await container.close()
    await container.service.store.close()


async def run_events(
    events: Iterable[RecordEvent], settings: TrackerSettings | None = None
) -> list[ContainerState]:
    """Dispatch ``Load`` followed by ``events`` and return every emitted state.

    A store that cannot be opened shows up as a single ``Failed`` state rather
    than an exception, matching how the container reports failures.
    """

    try:
        container = await open_container(settings)
    except StorageError as exc:
        _logger.warning("Could not open record store: %s", exc.details or exc)
        return [Failed(exc)]

    emitted: list[ContainerState] = []
    unsubscribe = container.subscribe(emitted.append)
    try:
        container.dispatch(Load())
        for event in events:
            container.dispatch(event)
        await container.settle()
    finally:
        unsubscribe()
        await close_container(container)
    return emitted


__all__ = ["open_container", "close_container", "run_events"]
