"""Exchange rates and currency conversion."""

from tradelytics.currency.cache import DEFAULT_FRESHNESS, FALLBACK_RATES, RateCache
from tradelytics.currency.converter import (
    CurrencyConverter,
    convert,
    format_amount,
    symbol_for,
    to_base,
)
from tradelytics.currency.providers import ExchangeRateApiProvider, RateProvider

__all__ = [
    "DEFAULT_FRESHNESS",
    "FALLBACK_RATES",
    "RateCache",
    "CurrencyConverter",
    "convert",
    "format_amount",
    "symbol_for",
    "to_base",
    "ExchangeRateApiProvider",
    "RateProvider",
]
