"""Data models for Tradelytics."""

from tradelytics.models.trade import ASSET_CLASSES, Trade, local_day
from tradelytics.models.journal import (
    NO_STRATEGY,
    DayAggregate,
    JournalNote,
    date_key,
    parse_date_key,
)
from tradelytics.models.metrics import (
    DateRange,
    MetricsFilters,
    MetricsSnapshot,
    MonthStats,
)
from tradelytics.models.rates import (
    BASE_CURRENCY,
    ExchangeRateSet,
    RateCacheEntry,
)

__all__ = [
    "ASSET_CLASSES",
    "Trade",
    "local_day",
    "NO_STRATEGY",
    "DayAggregate",
    "JournalNote",
    "date_key",
    "parse_date_key",
    "DateRange",
    "MetricsFilters",
    "MetricsSnapshot",
    "MonthStats",
    "BASE_CURRENCY",
    "ExchangeRateSet",
    "RateCacheEntry",
]
