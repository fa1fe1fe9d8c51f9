"""Journal note and day aggregate data models."""

from datetime import date as date_type
from typing import Literal, Optional

from pydantic import BaseModel, Field

from tradelytics.models.trade import Trade

NO_STRATEGY = "N/A"


def date_key(day: date_type) -> str:
    """Return the canonical YYYY-MM-DD key for a calendar day."""
    return day.isoformat()


def parse_date_key(key: str) -> date_type:
    """Parse a canonical YYYY-MM-DD key back into a date."""
    return date_type.fromisoformat(key)


class JournalNote(BaseModel):
    """Represents a free-text journal note for one account and day."""

    account_id: str = Field(..., min_length=1, description="Owning account")
    date: date_type = Field(..., description="Local calendar day of the note")
    content: str = Field(default="", description="Note text")
    updated_at: int = Field(..., ge=0, description="Last update, epoch millis")

    model_config = {"frozen": True}

    @property
    def key(self) -> str:
        return date_key(self.date)


class DayAggregate(BaseModel):
    """Derived statistics for every trade that occurred on one day."""

    date: date_type = Field(..., description="Calendar day")
    trades: tuple[Trade, ...] = Field(..., description="Trades in input order")
    total_pnl: float = Field(..., description="Day P&L rounded to 2 decimals")
    trade_count: int = Field(..., ge=1, description="Number of trades")
    win_rate: int = Field(..., ge=0, le=100, description="Win rate percentage")
    emotion: Literal["positive", "neutral", "negative"] = Field(
        ..., description="Sign of the day P&L"
    )
    best_strategy: str = Field(
        default=NO_STRATEGY, description="Most frequent strategy among wins"
    )
    best_trade: Optional[Trade] = Field(default=None, description="Highest P&L trade")
    worst_trade: Optional[Trade] = Field(default=None, description="Lowest P&L trade")
    note: Optional[str] = Field(default=None, description="User journal note")

    model_config = {"frozen": True}

    @property
    def key(self) -> str:
        return date_key(self.date)
