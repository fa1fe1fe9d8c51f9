"""Trade data model."""

import math
from datetime import date as date_type
from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

ASSET_CLASSES = ("STOCK", "CRYPTO", "FOREX", "FUTURES", "OPTIONS", "INDEX")

_DIRECTION_ALIASES = {
    "long": "long",
    "buy": "long",
    "short": "short",
    "sell": "short",
}


def local_day(moment: datetime) -> date_type:
    """Return the calendar day of a timestamp in the local time zone.

    Naive timestamps are taken as already local.
    """
    if moment.tzinfo is not None:
        moment = moment.astimezone()
    return moment.date()


class Trade(BaseModel):
    """Represents a closed or open trade as seen by the analytics core."""

    id: str = Field(..., min_length=1, description="Unique trade identifier")
    symbol: str = Field(..., min_length=1, description="Trading symbol")
    direction: Literal["long", "short"] = Field(
        default="long", description="Trade direction"
    )
    pnl: float = Field(default=0.0, description="Net P&L in base currency")
    entry_time: datetime = Field(..., description="Entry timestamp")
    exit_time: Optional[datetime] = Field(default=None, description="Exit timestamp")
    strategy: str = Field(default="", description="Strategy id or label")
    asset_class: str = Field(default="STOCK", description="Asset class")
    tags: frozenset[str] = Field(default_factory=frozenset, description="Trade tags")
    occurred_at: date_type = Field(
        ..., description="Local calendar day the trade is aggregated under"
    )

    model_config = {"frozen": True}

    @model_validator(mode="before")
    @classmethod
    def _derive_occurred_at(cls, data: Any) -> Any:
        # Resolved once here; aggregation only ever reads occurred_at.
        if isinstance(data, dict) and data.get("occurred_at") is None:
            entry = data.get("entry_time")
            if isinstance(entry, str):
                entry = datetime.fromisoformat(entry)
            if isinstance(entry, datetime):
                data = {**data, "entry_time": entry, "occurred_at": local_day(entry)}
        return data

    @field_validator("direction", mode="before")
    @classmethod
    def _normalize_direction(cls, value: Any) -> str:
        if value is None:
            return "long"
        normalized = _DIRECTION_ALIASES.get(str(value).strip().lower())
        if normalized is None:
            raise ValueError(f"Invalid direction: {value!r}")
        return normalized

    @field_validator("pnl", mode="before")
    @classmethod
    def _normalize_pnl(cls, value: Any) -> float:
        if value is None or value == "":
            return 0.0
        pnl = float(value)
        if not math.isfinite(pnl):
            raise ValueError("P&L must be a finite number")
        return pnl

    @field_validator("strategy", mode="before")
    @classmethod
    def _normalize_strategy(cls, value: Any) -> str:
        return "" if value is None else str(value).strip()

    @field_validator("asset_class", mode="before")
    @classmethod
    def _normalize_asset_class(cls, value: Any) -> str:
        if value is None or str(value).strip() == "":
            return "STOCK"
        return str(value).strip().upper()

    @field_validator("tags", mode="before")
    @classmethod
    def _normalize_tags(cls, value: Any) -> frozenset[str]:
        if value is None:
            return frozenset()
        if isinstance(value, str):
            value = value.split(",")
        return frozenset(str(tag).strip() for tag in value if str(tag).strip())

    @property
    def is_win(self) -> bool:
        return self.pnl > 0
