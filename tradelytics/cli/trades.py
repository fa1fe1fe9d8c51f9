"""Trade recording commands for Tradelytics CLI.

Handles config initialization, single trade entry and CSV import.
"""

import csv
import uuid
from datetime import datetime
from pathlib import Path
from typing import Optional

import click
from pydantic import ValidationError
from rich.panel import Panel
from rich.table import Table

from tradelytics.cli.common import (
    console,
    fail,
    get_config,
    get_data_store,
    pnl_markup,
    require_account,
)
from tradelytics.config import DEFAULT_CONFIG_PATH, create_template_config
from tradelytics.currency import CurrencyConverter
from tradelytics.models import ASSET_CLASSES, Trade

DATETIME_FORMATS = ["%Y-%m-%d", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%d %H:%M:%S", "%Y-%m-%d %H:%M"]

CSV_COLUMNS = (
    "id",
    "symbol",
    "direction",
    "pnl",
    "entry_time",
    "exit_time",
    "strategy",
    "asset_class",
    "tags",
)


def _parse_row(row: dict, line: int) -> Trade:
    """Build a trade from one CSV row.

    Blank cells are treated as missing; a missing id is derived from the
    line number so re-importing the same file replaces rather than duplicates.
    """
    values = {key.strip().lower(): (value or "").strip() for key, value in row.items() if key}
    data = {key: values[key] for key in CSV_COLUMNS if values.get(key)}
    data.setdefault("id", f"csv-{line}")
    return Trade.model_validate(data)


@click.command()
@click.option("--force", is_flag=True, default=False, help="Overwrite an existing config file.")
@click.pass_context
def init(ctx: click.Context, force: bool) -> None:
    """Create a template configuration file.

    \b
    Examples:
      tradelytics init
      tradelytics init --force
    """
    config_path = (ctx.find_root().obj or {}).get("config_path") or DEFAULT_CONFIG_PATH

    if config_path.exists() and not force:
        console.print(Panel(
            f"[yellow]Configuration already exists at:[/yellow]\n"
            f"[cyan]{config_path}[/cyan]\n\n"
            "[dim]Use --force to overwrite it.[/dim]",
            title="[bold]Configuration[/bold]",
            border_style="yellow",
        ))
        return

    path = create_template_config(config_path)
    console.print(Panel(
        f"[green]✓[/green] Configuration file created at:\n"
        f"[cyan]{path}[/cyan]\n\n"
        "[dim]Set your account id and display currency, then run\n"
        "[cyan]tradelytics import-trades[/cyan] to load trades.[/dim]",
        title="[bold green]Initialized[/bold green]",
        border_style="green",
    ))


@click.command("add-trade")
@click.option("--symbol", required=True, help="Instrument symbol.")
@click.option("--pnl", type=float, required=True, help="Realized P&L in base currency.")
@click.option(
    "--direction",
    type=click.Choice(["long", "short"], case_sensitive=False),
    default="long",
    show_default=True,
    help="Trade direction.",
)
@click.option(
    "--entry-time",
    type=click.DateTime(formats=DATETIME_FORMATS),
    default=None,
    help="Entry time (default: now).",
)
@click.option(
    "--exit-time",
    type=click.DateTime(formats=DATETIME_FORMATS),
    default=None,
    help="Exit time.",
)
@click.option("--strategy", default="", help="Strategy identifier.")
@click.option(
    "--asset-class",
    type=click.Choice(ASSET_CLASSES, case_sensitive=False),
    default="STOCK",
    show_default=True,
    help="Asset class.",
)
@click.option("--tag", "tags", multiple=True, help="Tag; repeat for several.")
@click.option("--id", "trade_id", default=None, help="Trade id (default: random).")
@click.option("--account", default=None, help="Account id (default: from config).")
@click.pass_context
def add_trade(
    ctx: click.Context,
    symbol: str,
    pnl: float,
    direction: str,
    entry_time: Optional[datetime],
    exit_time: Optional[datetime],
    strategy: str,
    asset_class: str,
    tags: tuple[str, ...],
    trade_id: Optional[str],
    account: Optional[str],
) -> None:
    """Record one closed trade.

    \b
    Examples:
      tradelytics add-trade --symbol AAPL --pnl 120.5 --strategy breakout
      tradelytics add-trade --symbol BTCUSD --pnl -40 --direction short \\
          --asset-class crypto --tag scalp --entry-time 2024-01-01
    """
    config = get_config(ctx)
    account_id = require_account(config, account)

    try:
        trade = Trade(
            id=trade_id or uuid.uuid4().hex[:12],
            symbol=symbol,
            direction=direction,
            pnl=pnl,
            entry_time=entry_time or datetime.now(),
            exit_time=exit_time,
            strategy=strategy,
            asset_class=asset_class,
            tags=tags,
        )
    except ValidationError as e:
        fail(f"[red]Invalid trade:[/red]\n\n{e}")

    store = get_data_store(config)
    store.save_trade(account_id, trade)

    converter = CurrencyConverter()
    console.print(Panel(
        f"[green]✓[/green] Recorded [bold]{trade.symbol}[/bold] {trade.direction} "
        f"on {trade.occurred_at.isoformat()}\n\n"
        f"P&L: {pnl_markup(converter, trade.pnl)}\n"
        f"[dim]ID: {trade.id} | Account: {account_id}[/dim]",
        title="[bold green]Trade Saved[/bold green]",
        border_style="green",
    ))


@click.command("import-trades")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--account", default=None, help="Account id (default: from config).")
@click.pass_context
def import_trades(ctx: click.Context, file: Path, account: Optional[str]) -> None:
    """Import trades from a CSV file.

    The header row names the columns: symbol, pnl and entry_time are
    required; id, direction, exit_time, strategy, asset_class and tags
    (comma separated) are optional. Rows with the same id replace the
    stored trade.

    \b
    Examples:
      tradelytics import-trades trades.csv
    """
    config = get_config(ctx)
    account_id = require_account(config, account)

    trades: list[Trade] = []
    errors: list[tuple[int, str]] = []

    with open(file, newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        if not reader.fieldnames:
            fail(f"[red]{file} has no header row.[/red]")
        # Line 1 is the header
        for line, row in enumerate(reader, start=2):
            try:
                trades.append(_parse_row(row, line))
            except ValidationError as e:
                errors.append((line, e.errors()[0]["msg"]))

    store = get_data_store(config)
    saved = store.save_trades(account_id, trades)

    console.print(Panel(
        f"[green]✓[/green] Imported [bold]{saved}[/bold] trades into account "
        f"[cyan]{account_id}[/cyan]",
        title="[bold cyan]Import[/bold cyan]",
        border_style="cyan",
    ))

    if errors:
        table = Table(
            title="Skipped Rows",
            show_header=True,
            header_style="bold yellow",
        )
        table.add_column("Line", justify="right")
        table.add_column("Reason")
        for line, reason in errors:
            table.add_row(str(line), reason)
        console.print(table)
