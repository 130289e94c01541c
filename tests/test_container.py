from __future__ import annotations

import asyncio
from datetime import UTC, date, datetime
from decimal import Decimal
from pathlib import Path

import pytest
from finance_tracker import messages
from finance_tracker.container import RecordStateContainer
from finance_tracker.errors import ErrorKind
from finance_tracker.events import (
    Add,
    AddInstallments,
    ClearAll,
    ClearFilters,
    Delete,
    FilterByDateRange,
    FilterByType,
    Load,
    Refresh,
    Search,
    Update,
)
from finance_tracker.models import OperationKind
from finance_tracker.service import RecordService
from finance_tracker.states import (
    Failed,
    Initial,
    Loaded,
    Loading,
    OperationSucceeded,
)
from finance_tracker.store import SqlRecordStore

from tests.helpers.db import bootstrap_sqlite_db
from tests.helpers.records import FIXED_NOW, make_record
from tests.helpers.stores import MemoryRecordStore


# ---- Helpers -----------------------------------------------------------------


def _container(store) -> RecordStateContainer:
    return RecordStateContainer(RecordService(store, clock=lambda: FIXED_NOW))


def _drive(store, *events, load: bool = True):
    """Optionally load, then dispatch ``events``; return (final state, emissions).

    Emissions produced by the initial load are not included.
    """

    async def go():
        container = _container(store)
        if load:
            await container.handle(Load())
        seen = []
        container.subscribe(seen.append)
        for event in events:
            container.dispatch(event)
        await container.settle()
        await container.close()
        return container.state, seen

    return asyncio.run(go())


def _kinds(states) -> list[str]:
    return [type(s).__name__ for s in states]


def _titles(records) -> list[str]:
    return [r.title for r in records]


# ---- End-to-end scenarios -------------------------------------------------------


def test_add_on_empty_loaded_container() -> None:
    final, seen = _drive(MemoryRecordStore(), Add("Coffee", 5.50, True))

    assert _kinds(seen) == ["Loaded", "OperationSucceeded", "Loaded"]
    busy, done, after = seen
    assert busy.adding and busy.records == ()
    assert "success" in done.message
    assert done.operation is OperationKind.ADD
    assert [(r.title, r.amount, r.is_expense) for r in done.records] == [
        ("Coffee", Decimal("5.50"), True)
    ]
    assert not after.adding
    assert after.records == done.records
    assert final is after
    assert final.balance == Decimal("-5.50")


def test_balance_of_loaded_records() -> None:
    store = MemoryRecordStore(
        [
            make_record("Salary", "1000", is_expense=False),
            make_record("Rent", "300"),
            make_record("Food", "50"),
        ]
    )

    final, _ = _drive(store)

    assert final.balance == Decimal("650")
    assert final.summary.balance == Decimal("650")
    assert final.total_income == Decimal("1000")
    assert final.total_expenses == Decimal("350")


def test_search_filters_by_title() -> None:
    store = MemoryRecordStore([make_record("Coffee Shop"), make_record("Salary", is_expense=False)])

    final, seen = _drive(store, Search("coffee"))

    assert _kinds(seen) == ["Loaded"]
    assert _titles(final.filtered_records) == ["Coffee Shop"]
    assert final.search_query == "coffee"
    assert _titles(final.records) == ["Coffee Shop", "Salary"]


def test_delete_of_unknown_id_fails_with_prior_records() -> None:
    store = MemoryRecordStore([make_record("a"), make_record("b")])

    final, seen = _drive(store, Delete(999))

    assert _kinds(seen) == ["Loaded", "Loaded", "Failed"]
    assert seen[0].deleting and not seen[1].deleting
    assert isinstance(final, Failed)
    assert final.kind in (ErrorKind.STORAGE, ErrorKind.VALIDATION)
    assert _titles(final.records) == ["a", "b"]


def test_delete_of_unknown_id_against_sql_store(tmp_path: Path) -> None:
    url = bootstrap_sqlite_db(tmp_path / "c.db")

    async def go():
        store = SqlRecordStore(url)
        await store.initialize()
        container = _container(store)
        seen = []
        container.subscribe(seen.append)
        try:
            container.dispatch(Load())
            container.dispatch(Add("Coffee", "5.50", True))
            container.dispatch(Delete(999))
            await container.settle()
        finally:
            await container.close()
            await store.close()
        return seen

    seen = asyncio.run(go())

    final = seen[-1]
    assert isinstance(final, Failed)
    assert final.kind is ErrorKind.STORAGE
    assert final.message == messages.STORAGE_FAILED
    assert _titles(final.records) == ["Coffee"]


def test_clear_filters_resets_every_criterion() -> None:
    store = MemoryRecordStore([make_record("xylophone"), make_record("x-ray", is_expense=False)])

    final, seen = _drive(store, Search("x"), FilterByType(True), ClearFilters())

    assert _kinds(seen) == ["Loaded", "Loaded", "Loaded"]
    assert _titles(seen[1].filtered_records) == ["xylophone"]
    assert final.search_query is None
    assert final.type_filter is None
    assert final.date_range is None
    assert final.filtered_records == ()
    assert not final.has_filters
    assert _titles(final.display_records) == ["xylophone", "x-ray"]


# ---- Loading and refreshing ---------------------------------------------------


def test_load_emits_loading_then_loaded() -> None:
    final, seen = _drive(MemoryRecordStore([make_record()]), Load(), load=False)

    assert _kinds(seen) == ["Loading", "Loaded"]
    assert len(final.records) == 1


def test_load_failure_carries_no_records() -> None:
    store = MemoryRecordStore([make_record()], fail_on={"list_all"})

    final, seen = _drive(store, Load(), load=False)

    assert _kinds(seen) == ["Loading", "Failed"]
    assert final.records == ()
    assert final.kind is ErrorKind.STORAGE


def test_refresh_from_loaded_skips_loading_and_keeps_filters() -> None:
    store = MemoryRecordStore([make_record("Coffee"), make_record("Tea")])

    async def go():
        container = _container(store)
        await container.handle(Load())
        await container.handle(Search("coffee"))
        await store.add(make_record("Coffee beans"))
        seen = []
        container.subscribe(seen.append)
        await container.handle(Refresh())
        return seen

    seen = asyncio.run(go())

    assert _kinds(seen) == ["Loaded"]
    assert seen[0].search_query == "coffee"
    assert _titles(seen[0].filtered_records) == ["Coffee", "Coffee beans"]


def test_refresh_from_initial_shows_loading() -> None:
    _, seen = _drive(MemoryRecordStore(), Refresh(), load=False)

    assert _kinds(seen) == ["Loading", "Loaded"]


def test_refresh_failure_keeps_last_known_records() -> None:
    store = MemoryRecordStore([make_record("kept")])

    async def go():
        container = _container(store)
        await container.handle(Load())
        store.fail_on.add("list_all")
        await container.handle(Refresh())
        return container.state

    final = asyncio.run(go())

    assert isinstance(final, Failed)
    assert _titles(final.records) == ["kept"]


# ---- Mutations -----------------------------------------------------------------


def test_failed_add_clears_flag_before_reporting() -> None:
    store = MemoryRecordStore([make_record("old")], fail_on={"add"})

    final, seen = _drive(store, Add("new", "1", False))

    assert _kinds(seen) == ["Loaded", "Loaded", "Failed"]
    assert seen[0].adding
    assert not seen[1].in_flight.any
    assert _titles(final.records) == ["old"]


def test_invalid_add_is_a_validation_failure() -> None:
    final, seen = _drive(MemoryRecordStore(), Add("", -3, True))

    assert isinstance(final, Failed)
    assert final.kind is ErrorKind.VALIDATION
    assert messages.TITLE_EMPTY in final.message
    assert messages.AMOUNT_NOT_POSITIVE in final.message


@pytest.mark.parametrize("amount", ["1e30", 1e30])
def test_huge_add_is_a_too_large_failure(amount) -> None:
    store = MemoryRecordStore()

    final, _ = _drive(store, Add("x", amount, True))

    assert isinstance(final, Failed)
    assert final.kind is ErrorKind.VALIDATION
    assert final.message == messages.AMOUNT_TOO_LARGE
    assert "add" not in store.calls


def test_income_and_expense_success_messages() -> None:
    _, seen = _drive(MemoryRecordStore(), Add("Salary", 10, False), Add("Rent", 5, True))

    succeeded = [s for s in seen if isinstance(s, OperationSucceeded)]
    assert [s.message for s in succeeded] == [messages.INCOME_ADDED, messages.EXPENSE_ADDED]


def test_update_round_trip() -> None:
    store = MemoryRecordStore([make_record("Cofee", "5", id=0)])

    async def go():
        container = _container(store)
        await container.handle(Load())
        original = container.state.records[0]
        seen = []
        container.subscribe(seen.append)
        await container.handle(Update(original.revise(title="Coffee")))
        return original, seen

    original, seen = asyncio.run(go())

    assert _kinds(seen) == ["Loaded", "OperationSucceeded", "Loaded"]
    assert seen[0].updating
    assert seen[1].message == messages.RECORD_UPDATED
    assert [(r.id, r.title) for r in seen[2].records] == [(0, "Coffee")]
    assert original.title == "Cofee"


def test_update_without_id_fails_validation() -> None:
    final, _ = _drive(MemoryRecordStore(), Update(make_record()))

    assert isinstance(final, Failed)
    assert final.message == messages.RECORD_NOT_PERSISTED


def test_delete_removes_the_record() -> None:
    store = MemoryRecordStore([make_record("a", id=0), make_record("b", id=1)])

    final, seen = _drive(store, Delete(0))

    assert seen[1].operation is OperationKind.DELETE
    assert _titles(final.records) == ["b"]


def test_clear_all() -> None:
    store = MemoryRecordStore([make_record("a"), make_record("b")])

    final, seen = _drive(store, ClearAll())

    assert _kinds(seen) == ["OperationSucceeded", "Loaded"]
    assert seen[0].message == messages.ALL_CLEARED
    assert seen[0].operation is OperationKind.CLEAR
    assert final.records == ()


def test_clear_all_failure_keeps_records() -> None:
    store = MemoryRecordStore([make_record("a")], fail_on={"clear"})

    final, seen = _drive(store, ClearAll())

    assert _kinds(seen) == ["Failed"]
    assert _titles(final.records) == ["a"]


def test_add_installments_event() -> None:
    start = datetime(2025, 5, 10, tzinfo=UTC)

    final, seen = _drive(
        MemoryRecordStore(),
        AddInstallments("Phone", "40", True, installments=2, payment_day=15, start=start),
    )

    assert seen[1].message == messages.installments_added(2)
    assert _titles(final.records) == ["Phone (1/2)", "Phone (2/2)"]


def test_add_installments_failing_midway_leaves_the_store_untouched() -> None:
    store = MemoryRecordStore([make_record("Rent")], fail_at_row=2)

    final, seen = _drive(
        store,
        AddInstallments("Phone", "40", True, installments=4, payment_day=15, start=FIXED_NOW),
    )

    assert _kinds(seen) == ["Loaded", "Loaded", "Failed"]
    assert final.kind is ErrorKind.STORAGE
    assert _titles(final.records) == ["Rent"]
    assert _titles(asyncio.run(store.list_all())) == ["Rent"]


def test_filters_survive_mutations() -> None:
    store = MemoryRecordStore([make_record("Coffee"), make_record("Rent")])

    final, _ = _drive(store, Search("coffee"), Add("Coffee beans", "9", True))

    assert final.search_query == "coffee"
    assert _titles(final.filtered_records) == ["Coffee", "Coffee beans"]
    assert len(final.records) == 3


# ---- Filters ---------------------------------------------------------------------


def test_empty_search_clears_only_the_text_filter() -> None:
    store = MemoryRecordStore([make_record("Coffee"), make_record("Salary", is_expense=False)])

    final, _ = _drive(store, Search("coffee"), FilterByType(False), Search(""))

    assert final.search_query is None
    assert final.type_filter is False
    assert _titles(final.filtered_records) == ["Salary"]


def test_date_range_filter() -> None:
    store = MemoryRecordStore(
        [
            make_record("march", occurred_at=datetime(2025, 3, 31, 23, tzinfo=UTC)),
            make_record("april", occurred_at=datetime(2025, 4, 1, tzinfo=UTC)),
        ]
    )

    final, _ = _drive(store, FilterByDateRange(date(2025, 3, 1), date(2025, 3, 31)))

    assert final.date_range is not None
    assert _titles(final.filtered_records) == ["march"]
    assert _titles(final.display_records) == ["march"]


# ---- Container mechanics -----------------------------------------------------------


@pytest.mark.parametrize(
    "event",
    [Add("x", 1, True), Delete(0), ClearAll(), Search("x"), ClearFilters(), FilterByType(True)],
)
def test_events_before_load_are_ignored(event) -> None:
    store = MemoryRecordStore([make_record(id=0)])

    final, seen = _drive(store, event, load=False)

    assert seen == []
    assert isinstance(final, Initial)
    assert store.calls == []


def test_events_are_handled_one_at_a_time() -> None:
    _, seen = _drive(MemoryRecordStore(), Add("one", 1, True), Add("two", 2, True))

    assert _kinds(seen) == ["Loaded", "OperationSucceeded", "Loaded"] * 2
    assert _titles(seen[2].records) == ["one"]
    assert _titles(seen[5].records) == ["one", "two"]


def test_stream_yields_emissions_until_close() -> None:
    async def go():
        container = _container(MemoryRecordStore())
        stream = container.stream()
        container.dispatch(Load())
        container.dispatch(Add("Coffee", 5, True))
        await container.settle()
        await container.close()
        return [s async for s in stream]

    states = asyncio.run(go())

    assert _kinds(states) == ["Loading", "Loaded", "Loaded", "OperationSucceeded", "Loaded"]
    assert isinstance(states[0], Loading)


def test_failing_listener_does_not_block_others() -> None:
    async def go():
        container = _container(MemoryRecordStore())
        seen = []

        def boom(_state) -> None:
            raise RuntimeError("listener bug")

        container.subscribe(boom)
        container.subscribe(seen.append)
        await container.handle(Load())
        return seen

    assert _kinds(asyncio.run(go())) == ["Loading", "Loaded"]


def test_unsubscribe_stops_delivery() -> None:
    async def go():
        container = _container(MemoryRecordStore())
        seen = []
        unsubscribe = container.subscribe(seen.append)
        await container.handle(Load())
        unsubscribe()
        await container.handle(Refresh())
        return seen

    assert _kinds(asyncio.run(go())) == ["Loading", "Loaded"]


def test_dispatch_after_close_is_rejected() -> None:
    async def go():
        container = _container(MemoryRecordStore())
        await container.close()
        container.dispatch(Load())

    with pytest.raises(RuntimeError, match="closed"):
        asyncio.run(go())


def test_loaded_snapshots_are_immutable() -> None:
    final, _ = _drive(MemoryRecordStore([make_record()]))

    assert isinstance(final, Loaded)
    with pytest.raises(AttributeError):
        final.adding = True  # type: ignore[misc]
