"""Trade to calendar aggregation.

Groups trades by the local calendar day they occurred on and derives the
per-day statistics shown in the calendar view. Aggregates are rebuilt from
scratch on every call; nothing is cached between calls.
"""

import calendar
from collections.abc import Iterable, Mapping
from datetime import date
from typing import Optional

from tradelytics.models import (
    NO_STRATEGY,
    DayAggregate,
    MonthStats,
    Trade,
    date_key,
)
from tradelytics.numeric import round2, round_to


def _emotion(total_pnl: float) -> str:
    if total_pnl > 0:
        return "positive"
    if total_pnl < 0:
        return "negative"
    return "neutral"


def _best_strategy(trades: Iterable[Trade]) -> str:
    """Most frequent strategy among winning trades.

    Ties go to the strategy that was seen first. A blank winner reads as N/A.
    """
    counts: dict[str, int] = {}
    for trade in trades:
        if trade.pnl > 0:
            counts[trade.strategy] = counts.get(trade.strategy, 0) + 1

    best: Optional[str] = None
    for strategy, count in counts.items():
        if best is None or count > counts[best]:
            best = strategy
    return best or NO_STRATEGY


def _extremes(trades: list[Trade]) -> tuple[Trade, Trade]:
    best = worst = trades[0]
    for trade in trades[1:]:
        if trade.pnl > best.pnl:
            best = trade
        if trade.pnl < worst.pnl:
            worst = trade
    return best, worst


def build_day(day: date, trades: list[Trade], note: Optional[str] = None) -> DayAggregate:
    """Compute the aggregate for one day from its trades.

    Args:
        day: Calendar day.
        trades: Non-empty list of trades in input order.
        note: Optional journal note for the day.

    Returns:
        DayAggregate for the day.
    """
    total_pnl = round2(sum(trade.pnl for trade in trades))
    wins = sum(1 for trade in trades if trade.pnl > 0)
    best_trade, worst_trade = _extremes(trades)

    return DayAggregate(
        date=day,
        trades=tuple(trades),
        total_pnl=total_pnl,
        trade_count=len(trades),
        win_rate=int(round_to(wins / len(trades) * 100, 0)),
        emotion=_emotion(total_pnl),
        best_strategy=_best_strategy(trades),
        best_trade=best_trade,
        worst_trade=worst_trade,
        note=note,
    )


def aggregate(
    trades: Iterable[Trade],
    notes: Optional[Mapping[str, str]] = None,
) -> dict[str, DayAggregate]:
    """Group trades by calendar day and attach journal notes.

    A note whose day has no trades is dropped; no empty day is created
    for it.

    Args:
        trades: Trades in any order.
        notes: Note content keyed by YYYY-MM-DD.

    Returns:
        Day aggregates keyed by YYYY-MM-DD, in first-seen day order.
    """
    grouped: dict[str, tuple[date, list[Trade]]] = {}
    for trade in trades:
        key = date_key(trade.occurred_at)
        if key not in grouped:
            grouped[key] = (trade.occurred_at, [])
        grouped[key][1].append(trade)

    notes = notes or {}
    days = {}
    for key, (day, day_trades) in grouped.items():
        note = notes.get(key) or None
        days[key] = build_day(day, day_trades, note)
    return days


def month_window(year: int, month: int) -> tuple[date, date]:
    """Return the first and last day of a calendar month."""
    last = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last)


def days_in_month(
    days: Mapping[str, DayAggregate], year: int, month: int
) -> dict[str, DayAggregate]:
    """Select the aggregates that fall inside one calendar month, sorted by day."""
    first, last = month_window(year, month)
    selected = {key: day for key, day in days.items() if first <= day.date <= last}
    return dict(sorted(selected.items()))


def month_stats(days: Mapping[str, DayAggregate]) -> MonthStats:
    """Roll day aggregates up into month-level totals.

    Args:
        days: Day aggregates, typically one month's worth.

    Returns:
        MonthStats; zeroed when there are no days.
    """
    if not days:
        return MonthStats()

    monthly_pnl = sum(day.total_pnl for day in days.values())
    total_trades = sum(day.trade_count for day in days.values())
    total_wins = sum(
        1 for day in days.values() for trade in day.trades if trade.pnl > 0
    )
    win_rate = int(round_to(total_wins / total_trades * 100, 0)) if total_trades > 0 else 0

    return MonthStats(
        monthly_pnl=round2(monthly_pnl),
        win_rate=win_rate,
        total_trades=total_trades,
        trading_days=len(days),
    )


def calendar_weeks(year: int, month: int) -> list[list[Optional[date]]]:
    """Return the month as Monday-first weeks, padding with None."""
    weeks = []
    for week in calendar.Calendar(firstweekday=0).monthdatescalendar(year, month):
        weeks.append([day if day.month == month else None for day in week])
    return weeks

