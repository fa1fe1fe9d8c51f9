"""P&L calendar command for Tradelytics CLI."""

import asyncio
from datetime import date
from typing import Optional

import click
from rich.panel import Panel
from rich.table import Table

from tradelytics.analytics.calendar import (
    aggregate,
    calendar_weeks,
    days_in_month,
    month_stats,
)
from tradelytics.cli.common import (
    console,
    fail,
    get_config,
    get_converter,
    get_data_store,
    pnl_markup,
    require_account,
)
from tradelytics.exceptions import NoteStoreError
from tradelytics.journal import NoteSyncController
from tradelytics.models import date_key
from tradelytics.stores.local import LocalNoteStore

WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")

EMOTION_STYLE = {
    "positive": "[green]▲ positive[/green]",
    "negative": "[red]▼ negative[/red]",
    "neutral": "[dim]● neutral[/dim]",
}


def parse_month(
    ctx: Optional[click.Context], param: Optional[click.Parameter], value: Optional[str]
) -> date:
    """Parse a YYYY-MM option into the first day of that month."""
    if not value:
        return date.today().replace(day=1)
    try:
        year, month = value.split("-")
        return date(int(year), int(month), 1)
    except ValueError:
        raise click.BadParameter(f"expected YYYY-MM, got {value!r}")


def _truncate(text: Optional[str], width: int = 30) -> str:
    if not text:
        return "-"
    text = " ".join(text.split())
    return text[: width - 3] + "..." if len(text) > width else text


@click.command()
@click.option(
    "--month",
    callback=parse_month,
    default=None,
    help="Month to show as YYYY-MM (default: current month).",
)
@click.option("--account", default=None, help="Account id (default: from config).")
@click.option("--currency", default=None, help="Display currency (default: from config).")
@click.pass_context
def calendar(
    ctx: click.Context, month: date, account: Optional[str], currency: Optional[str]
) -> None:
    """Show the P&L calendar for a month.

    Every trading day shows its P&L, trade count and win rate, followed by
    a detail table with the day's emotion, best strategy and journal note.

    \b
    Examples:
      tradelytics calendar
      tradelytics calendar --month 2024-01 --currency EUR
    """
    config = get_config(ctx)
    account_id = require_account(config, account)
    store = get_data_store(config)

    trades = store.list_trades(account_id)
    notes_controller = NoteSyncController(LocalNoteStore(store), account_id)
    try:
        notes = asyncio.run(notes_controller.load(month))
    except NoteStoreError as e:
        fail(f"[red]Failed to load notes:[/red] {e}")

    days = days_in_month(aggregate(trades, notes), month.year, month.month)
    stats = month_stats(days)
    converter = get_converter(config, store, currency)

    grid = Table(
        title=f"{month.strftime('%B %Y')} ({converter.currency})",
        show_header=True,
        header_style="bold cyan",
        show_lines=True,
    )
    for weekday in WEEKDAYS:
        grid.add_column(weekday, justify="center", min_width=9)

    for week in calendar_weeks(month.year, month.month):
        cells = []
        for day in week:
            if day is None:
                cells.append("")
                continue
            agg = days.get(date_key(day))
            if agg is None:
                cells.append(f"[dim]{day.day}[/dim]")
                continue
            cells.append(
                f"[bold]{day.day}[/bold]\n"
                f"{pnl_markup(converter, agg.total_pnl)}\n"
                f"[dim]{agg.trade_count}t {agg.win_rate}%[/dim]"
            )
        grid.add_row(*cells)

    console.print(grid)

    if days:
        detail = Table(
            title="Trading Days",
            show_header=True,
            header_style="bold cyan",
        )
        detail.add_column("Date", style="bold")
        detail.add_column("P&L", justify="right")
        detail.add_column("Trades", justify="right")
        detail.add_column("Win Rate", justify="right")
        detail.add_column("Emotion")
        detail.add_column("Best Strategy")
        detail.add_column("Note", max_width=30)

        for key, agg in days.items():
            detail.add_row(
                key,
                pnl_markup(converter, agg.total_pnl),
                str(agg.trade_count),
                f"{agg.win_rate}%",
                EMOTION_STYLE[agg.emotion],
                agg.best_strategy,
                _truncate(agg.note),
            )
        console.print(detail)

    console.print(Panel(
        f"Monthly P&L:  {pnl_markup(converter, stats.monthly_pnl)}\n"
        f"Win Rate:     {stats.win_rate}%\n"
        f"Trades:       {stats.total_trades}\n"
        f"Trading Days: {stats.trading_days}",
        title="[bold cyan]Month Summary[/bold cyan]",
        border_style="cyan",
    ))
