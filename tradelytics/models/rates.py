"""Exchange rate data models."""

import math
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

BASE_CURRENCY = "USD"


def _clean_rates(value: Any) -> dict[str, float]:
    rates = {}
    for code, rate in dict(value or {}).items():
        try:
            rate = float(rate)
        except (TypeError, ValueError):
            continue
        if math.isfinite(rate) and rate > 0:
            rates[str(code).strip().upper()] = rate
    return rates


class RateCacheEntry(BaseModel):
    """The single persisted cache entry, overwritten on every refresh."""

    rates: dict[str, float] = Field(..., description="Currency code to rate")
    timestamp: int = Field(..., ge=0, description="Fetch time, epoch millis")

    model_config = {"frozen": True}

    @field_validator("rates", mode="before")
    @classmethod
    def _normalize_rates(cls, value: Any) -> dict[str, float]:
        return _clean_rates(value)


class ExchangeRateSet(BaseModel):
    """Rates of every known currency relative to the base currency."""

    base: str = Field(default=BASE_CURRENCY, description="Base currency code")
    rates: dict[str, float] = Field(..., description="Currency code to rate")
    timestamp: int = Field(..., ge=0, description="Fetch time, epoch millis")
    fallback: bool = Field(
        default=False, description="True for the static fallback table"
    )

    model_config = {"frozen": True}

    @field_validator("rates", mode="before")
    @classmethod
    def _normalize_rates(cls, value: Any) -> dict[str, float]:
        return _clean_rates(value)

    @field_validator("base", mode="before")
    @classmethod
    def _normalize_base(cls, value: Any) -> str:
        return str(value or BASE_CURRENCY).strip().upper()

    def rate_for(self, code: str) -> Optional[float]:
        """Return the rate for a currency, or None if it is not in the set."""
        code = code.strip().upper()
        if code == self.base:
            return self.rates.get(code, 1.0)
        return self.rates.get(code)

    def age_ms(self, now_ms: int) -> int:
        return now_ms - self.timestamp

    def to_entry(self) -> RateCacheEntry:
        return RateCacheEntry(rates=self.rates, timestamp=self.timestamp)

    @classmethod
    def from_entry(
        cls, entry: RateCacheEntry, base: str = BASE_CURRENCY
    ) -> "ExchangeRateSet":
        return cls(base=base, rates=entry.rates, timestamp=entry.timestamp)
