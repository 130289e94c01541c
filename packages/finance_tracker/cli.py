"""Typer console interface for ``finance_tracker``.

Each command opens the configured store, dispatches events to a fresh
container and renders the states it emits with ``rich``. Environment
variables are loaded from a local ``.env`` (without overriding the process
environment) before any command runs.

Exit codes: ``0`` on success, ``1`` when the container reports ``Failed`` or
a requested record does not exist, ``2`` for invalid settings.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import UTC, date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from typer.models import OptionInfo

from . import messages
from .api import close_container, open_container, run_events
from .calculations import balance_indicator, recent_within_days, summarize
from .config import TrackerSettings, load_settings
from .errors import FinanceError, ValidationError
from .events import (
    Add,
    AddInstallments,
    ClearAll,
    Delete,
    FilterByDateRange,
    FilterByType,
    Load,
    RecordEvent,
    Search,
    Update,
)
from .logging_setup import configure_logging
from .models import RECENT_DAYS_DEFAULT, BalanceIndicator, FinanceRecord, to_decimal_2
from .states import ContainerState, Failed, Loaded, OperationSucceeded

console = Console()
err_console = Console(stderr=True)

_INDICATOR_STYLE = {
    BalanceIndicator.POSITIVE: "green",
    BalanceIndicator.NEUTRAL: "yellow",
    BalanceIndicator.NEGATIVE: "red",
}


@dataclass
class _Options:
    settings: TrackerSettings | None = None
    verbose: bool = False


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Track income and expenses in a local database. "
        "Loads FINANCE_TRACKER_* settings from a local .env before running."
    ),
)


# ---- Small module-level helpers used by commands ------------------------------


def _options(ctx: typer.Context) -> _Options:
    obj = ctx.find_root().obj
    return obj if isinstance(obj, _Options) else _Options()


def _load_settings(**overrides: str | None) -> TrackerSettings:
    try:
        return load_settings(**overrides)
    except ValidationError as exc:
        err_console.print(f"[red]Error:[/red] {escape(exc.message)}")
        raise typer.Exit(2) from exc


def _settings(ctx: typer.Context) -> TrackerSettings:
    settings = _options(ctx).settings
    return settings if settings is not None else _load_settings()


def _fail(ctx: typer.Context, error: FinanceError) -> typer.Exit:
    err_console.print(f"[red]Error:[/red] {escape(error.message)}")
    if _options(ctx).verbose and error.details:
        err_console.print(f"[dim]{escape(error.details)}[/dim]")
    return typer.Exit(1)


def _settle(ctx: typer.Context, states: list[ContainerState]) -> ContainerState:
    """Report the first failure (exit 1) or success message; return the final state."""

    for state in states:
        if isinstance(state, Failed):
            raise _fail(ctx, state.error)
    for state in states:
        if isinstance(state, OperationSucceeded):
            console.print(f"[green]{escape(state.message)}[/green]")
    return states[-1]


def _dispatch(ctx: typer.Context, events: Iterable[RecordEvent]) -> ContainerState:
    states = asyncio.run(run_events(list(events), _settings(ctx)))
    return _settle(ctx, states)


def _money(amount: Decimal) -> str:
    return f"{amount:,.2f}"


def _render_records(records: Iterable[FinanceRecord], *, title: str) -> None:
    table = Table(title=title)
    table.add_column("ID", justify="right")
    table.add_column("Date")
    table.add_column("Title")
    table.add_column("Amount", justify="right")
    for r in records:
        style = "red" if r.is_expense else "green"
        table.add_row(
            str(r.id),
            r.occurred_at.strftime("%Y-%m-%d"),
            escape(r.title),
            f"[{style}]{_money(r.signed_amount)}[/{style}]",
        )
    console.print(table)


def _render_summary(records: Iterable[FinanceRecord], *, title: str) -> None:
    summary = summarize(records)
    indicator = balance_indicator(summary.balance)
    style = _INDICATOR_STYLE[indicator]
    body = (
        f"Income:   [green]{_money(summary.income)}[/green]\n"
        f"Expenses: [red]{_money(summary.expenses)}[/red]\n"
        f"Balance:  [{style}]{_money(summary.balance)}[/{style}] ({indicator.value})"
    )
    console.print(Panel(body, title=title, expand=False))


def _kind_filter(expenses: bool, income: bool) -> bool | None:
    if expenses and income:
        raise typer.BadParameter("use at most one of --expenses/--income")
    if expenses:
        return True
    if income:
        return False
    return None


def _with_loaded(
    ctx: typer.Context, build: Callable[[Loaded], list[RecordEvent]]
) -> ContainerState:
    """Load first, then dispatch the events ``build`` derives from the loaded list."""

    async def _go() -> list[ContainerState]:
        container = await open_container(_settings(ctx))
        emitted: list[ContainerState] = []
        container.subscribe(emitted.append)
        try:
            await container.handle(Load())
            state = container.state
            if isinstance(state, Loaded):
                for event in build(state):
                    container.dispatch(event)
                await container.settle()
        finally:
            await close_container(container)
        return emitted

    try:
        states = asyncio.run(_go())
    except FinanceError as exc:
        raise _fail(ctx, exc) from exc
    return _settle(ctx, states)


# Module-level option objects keep calls out of parameter defaults (ruff B008).
SINCE_OPTION: OptionInfo = typer.Option(
    ..., "--since", formats=["%Y-%m-%d"], help="Only records on or after this day."
)
UNTIL_OPTION: OptionInfo = typer.Option(
    ..., "--until", formats=["%Y-%m-%d"], help="Only records on or before this day."
)
START_OPTION: OptionInfo = typer.Option(
    ..., "--start", formats=["%Y-%m-%d"], help="First installment month (default: today)."
)


# ---- Commands -----------------------------------------------------------------


@app.command("list")
def list_cmd(
    ctx: typer.Context,
    *,
    search: str | None = typer.Option(None, "--search", "-s", help="Case-insensitive title text."),
    expenses: bool = typer.Option(False, "--expenses", help="Only expenses."),
    income: bool = typer.Option(False, "--income", help="Only income."),
    since: Annotated[datetime | None, SINCE_OPTION] = None,
    until: Annotated[datetime | None, UNTIL_OPTION] = None,
) -> None:
    """List records, optionally filtered, followed by their totals."""

    events: list[RecordEvent] = []
    if search:
        events.append(Search(search))
    kind = _kind_filter(expenses, income)
    if kind is not None:
        events.append(FilterByType(kind))
    if since is not None or until is not None:
        events.append(
            FilterByDateRange(
                start=since.date() if since else date.min,
                end=until.date() if until else date.max,
            )
        )
    final = _dispatch(ctx, events)
    if not isinstance(final, Loaded):
        return
    shown = final.display_records
    if not shown:
        console.print("No matching records." if final.has_filters else "No records yet.")
        return
    _render_records(shown, title="Records")
    _render_summary(shown, title="Totals")


@app.command("add")
def add_cmd(
    ctx: typer.Context,
    title: str = typer.Argument(..., help="Short description."),
    amount: str = typer.Argument(..., help="Positive amount, e.g. 12.50."),
    *,
    expense: bool = typer.Option(True, "--expense/--income", help="Record kind."),
) -> None:
    """Add one income or expense record."""

    _dispatch(ctx, [Add(title=title, amount=amount, is_expense=expense)])


@app.command("installments")
def installments_cmd(
    ctx: typer.Context,
    title: str = typer.Argument(..., help="Plan description."),
    amount: str = typer.Argument(..., help="Amount of each installment."),
    *,
    count: int = typer.Option(..., "--count", "-n", help="Number of monthly installments."),
    payment_day: int = typer.Option(..., "--payment-day", help="Day of month (1-31)."),
    start: Annotated[datetime | None, START_OPTION] = None,
    expense: bool = typer.Option(True, "--expense/--income", help="Record kind."),
) -> None:
    """Add a monthly installment plan as one record per installment."""

    _dispatch(
        ctx,
        [
            AddInstallments(
                title=title,
                amount=amount,
                is_expense=expense,
                installments=count,
                payment_day=payment_day,
                start=start.replace(tzinfo=UTC) if start else None,
            )
        ],
    )


@app.command("edit")
def edit_cmd(
    ctx: typer.Context,
    record_id: int = typer.Argument(..., metavar="ID", help="Record id."),
    *,
    title: str | None = typer.Option(None, "--title", help="New title."),
    amount: str | None = typer.Option(None, "--amount", help="New amount."),
    expense: bool | None = typer.Option(None, "--expense/--income", help="New kind."),
) -> None:
    """Change the title, amount or kind of an existing record."""

    new_amount = None
    if amount is not None:
        new_amount = to_decimal_2(amount)
        if new_amount is None:
            raise _fail(ctx, ValidationError(messages.AMOUNT_NOT_A_NUMBER))

    def _build(loaded: Loaded) -> list[RecordEvent]:
        current = next((r for r in loaded.records if r.id == record_id), None)
        if current is None:
            raise ValidationError(f"No record with id {record_id}")
        revised = current.revise(title=title, amount=new_amount, is_expense=expense)
        return [Update(revised)]

    _with_loaded(ctx, _build)


@app.command("delete")
def delete_cmd(
    ctx: typer.Context,
    record_id: int = typer.Argument(..., metavar="ID", help="Record id."),
) -> None:
    """Delete one record by id."""

    _dispatch(ctx, [Delete(record_id)])


@app.command("clear")
def clear_cmd(
    ctx: typer.Context,
    *,
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
) -> None:
    """Delete every record in the configured namespace."""

    if not yes:
        typer.confirm("Delete ALL records? This cannot be undone", abort=True)
    _dispatch(ctx, [ClearAll()])


@app.command("summary")
def summary_cmd(
    ctx: typer.Context,
    *,
    days: int | None = typer.Option(
        None, "--days", "-d", help=f"Only the last N days (e.g. {RECENT_DAYS_DEFAULT})."
    ),
) -> None:
    """Show income, expenses and balance, overall or for the last N days."""

    final = _dispatch(ctx, [])
    if not isinstance(final, Loaded):
        return
    records = list(final.records)
    title = "All time"
    if days is not None:
        try:
            records = recent_within_days(records, days, now=datetime.now(UTC))
        except FinanceError as exc:
            raise _fail(ctx, exc) from exc
        title = f"Last {days} day(s)"
    _render_summary(records, title=title)


@app.callback(invoke_without_command=True)
def _root(
    ctx: typer.Context,
    *,
    database_url: str | None = typer.Option(
        None, help="Override FINANCE_TRACKER_DATABASE_URL / DATABASE_URL."
    ),
    namespace: str | None = typer.Option(
        None, help="Record box name (default: trades)."
    ),
    log_level: str | None = typer.Option(
        None, help="Override FINANCE_TRACKER_LOG_LEVEL (default: INFO)."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show technical error details."),
) -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables), resolves the settings every command
    shares and configures logging once from them.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    settings = _load_settings(database_url=database_url, namespace=namespace, log_level=log_level)
    configure_logging(settings.log_level)
    ctx.obj = _Options(settings=settings, verbose=verbose)

    if ctx.invoked_subcommand is None:
        typer.echo("No subcommand provided. Use --help to see available commands.")
        raise typer.Exit(1)


if __name__ == "__main__":  # pragma: no cover
    app()
