"""Analytics over trade collections: calendar days and performance metrics."""

from tradelytics.analytics.calendar import aggregate, month_stats
from tradelytics.analytics.metrics import compute_metrics, period_windows, zero_metrics

__all__ = [
    "aggregate",
    "month_stats",
    "compute_metrics",
    "period_windows",
    "zero_metrics",
]
