"""Exchange rate commands for Tradelytics CLI."""

import asyncio
from datetime import datetime

import click
from rich.table import Table

from tradelytics.cli.common import (
    console,
    fail,
    get_config,
    get_data_store,
    get_rate_cache,
)
from tradelytics.currency import CurrencyConverter, RateCache, symbol_for
from tradelytics.exceptions import RateUnavailable
from tradelytics.models import BASE_CURRENCY, ExchangeRateSet


async def _load_rates(cache: RateCache, refresh: bool) -> ExchangeRateSet:
    if refresh:
        cache.invalidate()
    return await cache.get_rates()


def _source(rates: ExchangeRateSet) -> str:
    if rates.fallback:
        return "[yellow]built-in fallback table[/yellow]"
    fetched = datetime.fromtimestamp(rates.timestamp / 1000).strftime("%Y-%m-%d %H:%M")
    return f"[green]live rates[/green] fetched {fetched}"


@click.command()
@click.option("--refresh", is_flag=True, default=False, help="Ignore the cache and refetch.")
@click.option(
    "--currency",
    "currencies",
    multiple=True,
    help="Only show these currencies; repeat for several.",
)
@click.pass_context
def rates(ctx: click.Context, refresh: bool, currencies: tuple[str, ...]) -> None:
    """Show exchange rates against the base currency.

    Rates are cached locally; a failed refresh keeps serving the last
    known rates, or the built-in table when none were ever fetched.

    \b
    Examples:
      tradelytics rates
      tradelytics rates --refresh --currency EUR --currency GBP
    """
    config = get_config(ctx)
    store = get_data_store(config)
    rate_set = asyncio.run(_load_rates(get_rate_cache(config, store), refresh))

    wanted = [code.strip().upper() for code in currencies] or sorted(rate_set.rates)

    table = Table(
        title=f"Exchange Rates (1 {rate_set.base})",
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("Currency", style="bold")
    table.add_column("Symbol")
    table.add_column("Rate", justify="right")

    for code in wanted:
        rate = rate_set.rate_for(code)
        table.add_row(
            code,
            symbol_for(code),
            f"{rate:,.4f}" if rate is not None else "[dim]n/a[/dim]",
        )

    console.print(table)
    console.print(f"[dim]Source: {_source(rate_set)}[/dim]")


@click.command()
@click.argument("amount", type=float)
@click.option("--to", "target", required=True, help="Target currency code.")
@click.option(
    "--from-local",
    is_flag=True,
    default=False,
    help=f"Treat AMOUNT as target currency and convert back to {BASE_CURRENCY}.",
)
@click.pass_context
def convert(ctx: click.Context, amount: float, target: str, from_local: bool) -> None:
    """Convert an amount between the base currency and another currency.

    \b
    Examples:
      tradelytics convert 100 --to EUR
      tradelytics convert 92 --to EUR --from-local
    """
    config = get_config(ctx)
    store = get_data_store(config)
    code = target.strip().upper()

    try:
        rate = asyncio.run(get_rate_cache(config, store).get_rate(code))
    except RateUnavailable as e:
        fail(f"[red]{e}[/red]", title="Currency Error")

    converter = CurrencyConverter(currency=code, rate=rate)
    base = CurrencyConverter()

    if from_local:
        result = converter.to_base(amount)
        console.print(
            f"{converter.symbol}{amount:,.2f} {code} = "
            f"[bold]{base.symbol}{result:,.2f} {BASE_CURRENCY}[/bold]"
        )
    else:
        console.print(
            f"{base.symbol}{amount:,.2f} {BASE_CURRENCY} = "
            f"[bold]{converter.symbol}{converter.format(amount)} {code}[/bold]"
        )
    console.print(f"[dim]Rate: 1 {BASE_CURRENCY} = {rate:,.4f} {code}[/dim]")
