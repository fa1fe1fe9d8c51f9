"""Metrics filter and snapshot data models."""

from collections.abc import Iterable
from datetime import date
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_validator

_NO_FILTER = "all"


class DateRange(str, Enum):
    """Named reporting windows, each with an implied comparison window."""

    ALL = "ALL"
    ONE_WEEK = "1W"
    ONE_MONTH = "1M"
    THREE_MONTHS = "3M"
    SIX_MONTHS = "6M"
    YEAR_TO_DATE = "YTD"
    ONE_YEAR = "1Y"

    @classmethod
    def parse(cls, value: Any) -> "DateRange":
        """Coerce user input to a DateRange, defaulting to ALL."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return cls.ALL


class MetricsFilters(BaseModel):
    """Filter set applied as a conjunction; unset fields match everything."""

    strategy_id: Optional[str] = Field(default=None, description="Strategy equality")
    asset_class: Optional[str] = Field(default=None, description="Asset class equality")
    tags: Optional[frozenset[str]] = Field(default=None, description="Any-of tag match")

    model_config = {"frozen": True}

    @field_validator("strategy_id", "asset_class", mode="before")
    @classmethod
    def _clean_scalar(cls, value: Any) -> Optional[str]:
        if not isinstance(value, str):
            return None
        value = value.strip()
        if not value or value.lower() == _NO_FILTER:
            return None
        return value

    @field_validator("tags", mode="before")
    @classmethod
    def _clean_tags(cls, value: Any) -> Optional[frozenset[str]]:
        if isinstance(value, str):
            value = value.split(",")
        if not isinstance(value, Iterable):
            return None
        tags = frozenset(
            tag.strip()
            for tag in value
            if isinstance(tag, str) and tag.strip() and tag.strip().lower() != _NO_FILTER
        )
        return tags or None

    @property
    def is_empty(self) -> bool:
        return self.strategy_id is None and self.asset_class is None and self.tags is None


class MetricsSnapshot(BaseModel):
    """Aggregate performance metrics for one filtered window."""

    date_range: DateRange = Field(..., description="Requested window")
    filters: MetricsFilters = Field(default_factory=MetricsFilters)
    current_start: Optional[date] = Field(default=None, description="Window start")
    current_end: Optional[date] = Field(default=None, description="Window end")
    previous_start: Optional[date] = Field(
        default=None, description="Comparison window start"
    )

    net_pnl: float = 0.0
    gross_profit: float = 0.0
    gross_loss: float = 0.0
    win_rate: float = Field(default=0.0, ge=0, le=100)
    total_trades: int = Field(default=0, ge=0)
    winning_trades: int = Field(default=0, ge=0)
    losing_trades: int = Field(default=0, ge=0)
    break_even_trades: int = Field(default=0, ge=0)
    avg_win: float = 0.0
    avg_loss: float = 0.0
    expectancy: float = 0.0

    profit_factor: Optional[float] = Field(
        default=None, description="None when there are no losing trades"
    )
    profit_factor_state: Literal["defined", "no_losses"] = "no_losses"
    avg_win_loss_ratio: Optional[float] = Field(
        default=None, description="None when there are no losing trades"
    )

    prev_period_pnl: float = 0.0
    prev_total_trades: int = Field(default=0, ge=0)
    prev_win_rate: float = Field(default=0.0, ge=0, le=100)
    pnl_delta: float = 0.0
    period_change_percent: float = 0.0
    win_rate_delta: float = 0.0
    trade_count_delta: int = 0
    expectancy_change: float = 0.0

    model_config = {"frozen": True}

    @property
    def has_comparison(self) -> bool:
        return self.previous_start is not None


class MonthStats(BaseModel):
    """Roll-up of the day aggregates of one calendar month."""

    monthly_pnl: float = 0.0
    win_rate: int = Field(default=0, ge=0, le=100)
    total_trades: int = Field(default=0, ge=0)
    trading_days: int = Field(default=0, ge=0)

    model_config = {"frozen": True}
