"""Performance metrics command for Tradelytics CLI."""

from typing import Optional

import click
from rich.panel import Panel
from rich.table import Table

from tradelytics.analytics.metrics import compute_metrics
from tradelytics.cli.common import (
    console,
    get_config,
    get_converter,
    get_data_store,
    pnl_markup,
    require_account,
)
from tradelytics.currency import CurrencyConverter
from tradelytics.models import DateRange, MetricsFilters, MetricsSnapshot


def _delta(value: float, suffix: str = "") -> str:
    color = "green" if value >= 0 else "red"
    sign = "+" if value >= 0 else ""
    return f"[{color}]{sign}{value:,.2f}{suffix}[/{color}]"


def _ratio_text(value: Optional[float]) -> str:
    return "∞ (no losses)" if value is None else f"{value:.2f}"


def _describe_filters(filters: MetricsFilters) -> str:
    if filters.is_empty:
        return "all trades"
    parts = []
    if filters.strategy_id:
        parts.append(f"strategy={filters.strategy_id}")
    if filters.asset_class:
        parts.append(f"asset={filters.asset_class}")
    if filters.tags:
        parts.append(f"tags={','.join(sorted(filters.tags))}")
    return " ".join(parts)


def render_snapshot(snapshot: MetricsSnapshot, converter: CurrencyConverter) -> None:
    """Print a metrics snapshot with its period comparison."""
    window = "all time"
    if snapshot.current_start is not None:
        window = f"{snapshot.current_start.isoformat()} to {snapshot.current_end.isoformat()}"

    summary = (
        f"[bold]{snapshot.date_range.value}[/bold] ({window}) | "
        f"[dim]{_describe_filters(snapshot.filters)}[/dim]\n\n"
        f"Net P&L:        {pnl_markup(converter, snapshot.net_pnl)}\n"
        f"Gross Profit:   [green]{converter.symbol}{converter.format(snapshot.gross_profit)}[/green]\n"
        f"Gross Loss:     [red]{converter.symbol}{converter.format(snapshot.gross_loss)}[/red]\n"
        f"{'─' * 30}\n"
        f"Win Rate:       {snapshot.win_rate:.2f}%\n"
        f"Profit Factor:  {_ratio_text(snapshot.profit_factor)}\n"
        f"Avg Win/Loss:   {_ratio_text(snapshot.avg_win_loss_ratio)}\n"
        f"Expectancy:     {pnl_markup(converter, snapshot.expectancy)}\n\n"
        f"[dim]Trades: {snapshot.total_trades} | "
        f"Wins: {snapshot.winning_trades} | "
        f"Losses: {snapshot.losing_trades} | "
        f"Break-even: {snapshot.break_even_trades}[/dim]\n"
        f"[dim]Avg Win: {converter.symbol}{converter.format(snapshot.avg_win)} | "
        f"Avg Loss: {converter.symbol}{converter.format(snapshot.avg_loss)}[/dim]"
    )

    console.print(Panel(
        summary,
        title="[bold cyan]Metrics[/bold cyan]",
        border_style="cyan",
    ))

    if not snapshot.has_comparison:
        return

    table = Table(
        title="vs Previous Period",
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("Metric", style="bold")
    table.add_column("Previous", justify="right")
    table.add_column("Current", justify="right")
    table.add_column("Change", justify="right")

    table.add_row(
        "Net P&L",
        pnl_markup(converter, snapshot.prev_period_pnl),
        pnl_markup(converter, snapshot.net_pnl),
        f"{pnl_markup(converter, snapshot.pnl_delta)} ({_delta(snapshot.period_change_percent, '%')})",
    )
    table.add_row(
        "Win Rate",
        f"{snapshot.prev_win_rate:.2f}%",
        f"{snapshot.win_rate:.2f}%",
        _delta(snapshot.win_rate_delta, " pts"),
    )
    table.add_row(
        "Trades",
        str(snapshot.prev_total_trades),
        str(snapshot.total_trades),
        f"{snapshot.trade_count_delta:+d}",
    )
    table.add_row(
        "Expectancy",
        "",
        pnl_markup(converter, snapshot.expectancy),
        _delta(snapshot.expectancy_change, "%"),
    )
    console.print(table)


@click.command()
@click.option(
    "--range",
    "date_range",
    type=click.Choice([r.value for r in DateRange], case_sensitive=False),
    default=DateRange.ALL.value,
    show_default=True,
    help="Reporting window.",
)
@click.option("--strategy", default=None, help="Only trades of this strategy.")
@click.option("--asset-class", default=None, help="Only trades of this asset class.")
@click.option("--tag", "tags", multiple=True, help="Trades carrying any of these tags.")
@click.option("--account", default=None, help="Account id (default: from config).")
@click.option("--currency", default=None, help="Display currency (default: from config).")
@click.pass_context
def metrics(
    ctx: click.Context,
    date_range: str,
    strategy: Optional[str],
    asset_class: Optional[str],
    tags: tuple[str, ...],
    account: Optional[str],
    currency: Optional[str],
) -> None:
    """Show performance metrics with a previous-period comparison.

    \b
    Examples:
      tradelytics metrics
      tradelytics metrics --range 1M --strategy breakout
      tradelytics metrics --range YTD --asset-class crypto --tag scalp
    """
    config = get_config(ctx)
    account_id = require_account(config, account)
    store = get_data_store(config)

    filters = MetricsFilters(
        strategy_id=strategy,
        asset_class=asset_class,
        tags=list(tags),
    )
    snapshot = compute_metrics(store.list_trades(account_id), filters, date_range)
    render_snapshot(snapshot, get_converter(config, store, currency))
