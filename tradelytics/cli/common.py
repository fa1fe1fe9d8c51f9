"""Shared helpers for Tradelytics commands."""

import asyncio
from datetime import timedelta
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel

from tradelytics.config import AppConfig, load_config
from tradelytics.currency import CurrencyConverter, ExchangeRateApiProvider, RateCache
from tradelytics.db.store import DataStore
from tradelytics.exceptions import ConfigError, RateUnavailable
from tradelytics.models import BASE_CURRENCY

console = Console()


def fail(message: str, title: str = "Error") -> None:
    """Print an error panel and exit with status 1."""
    console.print(Panel(
        message,
        title=f"[bold red]{title}[/bold red]",
        border_style="red",
    ))
    raise SystemExit(1)


def get_config(ctx: click.Context) -> AppConfig:
    """Load configuration for the running command.

    Applies the configured log level unless ``--log-level`` was given.
    """
    from tradelytics.cli.main import setup_logging

    obj = ctx.find_root().obj or {}
    try:
        config = load_config(obj.get("config_path"))
    except ConfigError as e:
        fail(f"[red]{e}[/red]", title="Configuration Error")

    if not obj.get("log_level"):
        setup_logging(config.logging.level)
    return config


def get_data_store(config: AppConfig) -> DataStore:
    """Get the data store instance."""
    return DataStore(config.storage.db_path)


def require_account(config: AppConfig, account: Optional[str]) -> str:
    """Resolve the account id from the option or the config file."""
    account_id = (account or config.account.id).strip()
    if not account_id:
        fail(
            "[red]No account selected.[/red]\n\n"
            "Pass [cyan]--account[/cyan] or set [cyan]\\[account] id[/cyan] in config.toml.",
        )
    return account_id


def get_rate_cache(config: AppConfig, store: DataStore) -> RateCache:
    """Build the exchange rate cache backed by the local store."""
    provider = ExchangeRateApiProvider(
        url=config.currency.provider_url,
        timeout=config.currency.timeout,
    )
    return RateCache(
        provider.fetch_latest,
        store=store,
        freshness=timedelta(hours=config.currency.cache_hours),
    )


def get_converter(
    config: AppConfig, store: DataStore, currency: Optional[str] = None
) -> CurrencyConverter:
    """Get a converter for the display currency.

    The base currency never needs rates, so no request is made for it.
    """
    code = (currency or config.currency.display).strip().upper()
    if code == BASE_CURRENCY:
        return CurrencyConverter(currency=code, rate=1.0)

    cache = get_rate_cache(config, store)
    try:
        rate = asyncio.run(cache.get_rate(code))
    except RateUnavailable as e:
        fail(f"[red]{e}[/red]", title="Currency Error")
    return CurrencyConverter(currency=code, rate=rate)


def pnl_markup(converter: CurrencyConverter, amount_base: float) -> str:
    """Render a base-currency P&L value with color and sign."""
    color = "green" if amount_base >= 0 else "red"
    return f"[{color}]{converter.format_signed(amount_base)}[/{color}]"
