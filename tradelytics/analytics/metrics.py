"""Filtered performance metrics with period-over-period comparison.

Both the requested window and its comparison window are resolved here and
filtered with the same predicate, so the two can never disagree on what a
matching trade is.
"""

import calendar
import logging
import math
from collections.abc import Iterable, Mapping
from datetime import date, timedelta
from typing import Any, NamedTuple, Optional

from tradelytics.models import DateRange, MetricsFilters, MetricsSnapshot, Trade
from tradelytics.numeric import round2

logger = logging.getLogger(__name__)

# Float tolerance for break-even trades and zero denominators
EPSILON = 0.000001


class PeriodWindows(NamedTuple):
    """Resolved window bounds.

    The current window is [current_start, current_end] and the comparison
    window is [previous_start, current_start). A None bound is open.
    """

    current_start: Optional[date]
    current_end: Optional[date]
    previous_start: Optional[date]

    def in_current(self, day: date) -> bool:
        if self.current_start is not None and day < self.current_start:
            return False
        if self.current_end is not None and day > self.current_end:
            return False
        return True

    def in_previous(self, day: date) -> bool:
        if self.previous_start is None or self.current_start is None:
            return False
        return self.previous_start <= day < self.current_start


class _Totals(NamedTuple):
    count: int
    wins: int
    losses: int
    break_even: int
    net: float
    gross_profit: float
    gross_loss: float

    @property
    def win_rate(self) -> float:
        return self.wins / self.count * 100 if self.count > 0 else 0.0

    @property
    def expectancy(self) -> float:
        return self.net / self.count if self.count > 0 else 0.0


def _shift_months(day: date, months: int) -> date:
    """Move a date back by whole months, clamping to the month's last day."""
    index = day.year * 12 + (day.month - 1) - months
    year, month = divmod(index, 12)
    month += 1
    last = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last))


def period_windows(date_range: Any, as_of: Optional[date] = None) -> PeriodWindows:
    """Resolve a named range into current and comparison windows.

    Args:
        date_range: DateRange or its string value; unknown values mean ALL.
        as_of: Last day of the current window. Defaults to today.

    Returns:
        PeriodWindows for the range.
    """
    date_range = DateRange.parse(date_range)
    as_of = as_of or date.today()

    if date_range is DateRange.ONE_WEEK:
        current = as_of - timedelta(days=7)
        previous = as_of - timedelta(days=14)
    elif date_range is DateRange.ONE_MONTH:
        current = as_of.replace(day=1)
        previous = _shift_months(current, 1)
    elif date_range is DateRange.THREE_MONTHS:
        current = _shift_months(as_of, 3)
        previous = _shift_months(as_of, 6)
    elif date_range is DateRange.SIX_MONTHS:
        current = _shift_months(as_of, 6)
        previous = _shift_months(as_of, 12)
    elif date_range is DateRange.YEAR_TO_DATE:
        current = date(as_of.year, 1, 1)
        previous = date(as_of.year - 1, 1, 1)
    elif date_range is DateRange.ONE_YEAR:
        current = _shift_months(as_of, 12)
        previous = _shift_months(as_of, 24)
    else:
        return PeriodWindows(None, None, None)

    return PeriodWindows(current, as_of, previous)


def matches(trade: Trade, filters: MetricsFilters) -> bool:
    """Check a trade against every set filter."""
    if filters.strategy_id is not None and trade.strategy != filters.strategy_id:
        return False
    if (
        filters.asset_class is not None
        and trade.asset_class.upper() != filters.asset_class.upper()
    ):
        return False
    if filters.tags is not None and not (trade.tags & filters.tags):
        return False
    return True


def _coerce_filters(filters: Any) -> MetricsFilters:
    if isinstance(filters, MetricsFilters):
        return filters
    if isinstance(filters, Mapping):
        return MetricsFilters.model_validate(dict(filters))
    if filters is not None:
        logger.debug("Ignoring unsupported filters value %r", filters)
    return MetricsFilters()


def _totals(trades: Iterable[Trade]) -> _Totals:
    count = wins = losses = break_even = 0
    net = gross_profit = gross_loss = 0.0
    for trade in trades:
        count += 1
        net += trade.pnl
        if trade.pnl > EPSILON:
            wins += 1
            gross_profit += trade.pnl
        elif trade.pnl < -EPSILON:
            losses += 1
            gross_loss += abs(trade.pnl)
        else:
            break_even += 1
    return _Totals(count, wins, losses, break_even, net, gross_profit, gross_loss)


def _ratio(numerator: float, denominator: float) -> Optional[float]:
    if denominator < EPSILON:
        return None
    return round2(numerator / denominator)


def _percent_change(current: float, previous: float) -> float:
    if abs(previous) > EPSILON:
        return (current - previous) / abs(previous) * 100
    if abs(current) > EPSILON:
        return math.copysign(100.0, current)
    return 0.0


def zero_metrics(
    date_range: Any = DateRange.ALL,
    filters: Optional[MetricsFilters] = None,
    windows: Optional[PeriodWindows] = None,
) -> MetricsSnapshot:
    """Return a snapshot with every metric zeroed."""
    windows = windows or PeriodWindows(None, None, None)
    return MetricsSnapshot(
        date_range=DateRange.parse(date_range),
        filters=filters or MetricsFilters(),
        current_start=windows.current_start,
        current_end=windows.current_end,
        previous_start=windows.previous_start,
    )


def compute_metrics(
    trades: Iterable[Trade],
    filters: Any = None,
    date_range: Any = DateRange.ALL,
    *,
    as_of: Optional[date] = None,
) -> MetricsSnapshot:
    """Compute performance metrics over a filtered window.

    Args:
        trades: All candidate trades, in any order.
        filters: MetricsFilters or a mapping of filter values. Missing or
            malformed values mean "no filter".
        date_range: DateRange or its string value.
        as_of: Last day of the current window. Defaults to today.

    Returns:
        A new MetricsSnapshot.
    """
    date_range = DateRange.parse(date_range)
    filters = _coerce_filters(filters)
    windows = period_windows(date_range, as_of)

    current_trades = []
    previous_trades = []
    for trade in trades:
        if not matches(trade, filters):
            continue
        if windows.in_current(trade.occurred_at):
            current_trades.append(trade)
        elif windows.in_previous(trade.occurred_at):
            previous_trades.append(trade)

    if not current_trades and not previous_trades:
        return zero_metrics(date_range, filters, windows)

    current = _totals(current_trades)
    previous = _totals(previous_trades)
    compare = windows.previous_start is not None

    avg_win = current.gross_profit / current.wins if current.wins > 0 else 0.0
    avg_loss = current.gross_loss / current.losses if current.losses > 0 else 0.0
    profit_factor = _ratio(current.gross_profit, current.gross_loss)

    return MetricsSnapshot(
        date_range=date_range,
        filters=filters,
        current_start=windows.current_start,
        current_end=windows.current_end,
        previous_start=windows.previous_start,
        net_pnl=round2(current.net),
        gross_profit=round2(current.gross_profit),
        gross_loss=round2(current.gross_loss),
        win_rate=round2(current.win_rate),
        total_trades=current.count,
        winning_trades=current.wins,
        losing_trades=current.losses,
        break_even_trades=current.break_even,
        avg_win=round2(avg_win),
        avg_loss=round2(avg_loss),
        expectancy=round2(current.expectancy),
        profit_factor=profit_factor,
        profit_factor_state="no_losses" if profit_factor is None else "defined",
        avg_win_loss_ratio=_ratio(avg_win, avg_loss),
        prev_period_pnl=round2(previous.net) if compare else 0.0,
        prev_total_trades=previous.count if compare else 0,
        prev_win_rate=round2(previous.win_rate) if compare else 0.0,
        pnl_delta=round2(current.net - previous.net) if compare else 0.0,
        period_change_percent=(
            round2(_percent_change(current.net, previous.net)) if compare else 0.0
        ),
        win_rate_delta=(
            round2(current.win_rate - previous.win_rate) if compare else 0.0
        ),
        trade_count_delta=current.count - previous.count if compare else 0,
        expectancy_change=(
            round2(_percent_change(current.expectancy, previous.expectancy))
            if compare and abs(previous.expectancy) > EPSILON
            else 0.0
        ),
    )
