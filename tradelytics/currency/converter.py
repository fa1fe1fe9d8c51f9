"""Currency conversion and display formatting.

Every function here is pure. Arithmetic results are rounded to 4 decimal
places; display strings carry exactly 2. A missing, zero or NaN rate
converts to 0 instead of raising.
"""

import math
import re
from typing import Any, Optional

from babel.core import UnknownLocaleError
from babel.numbers import UnknownCurrencyError, format_currency
from pydantic import BaseModel, Field

from tradelytics.models import BASE_CURRENCY, ExchangeRateSet
from tradelytics.numeric import round2, round4

DISPLAY_LOCALE = "en_US"

_DIGITS = re.compile(r"\d")


def _usable(value: Any) -> Optional[float]:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def convert(amount_base: Any, rate: Any) -> float:
    """Convert a base-currency amount into a local currency.

    Args:
        amount_base: Amount in the base currency.
        rate: Units of local currency per unit of base currency.

    Returns:
        Converted amount rounded to 4 decimals, or 0 if either input is unusable.
    """
    amount = _usable(amount_base)
    rate = _usable(rate)
    if amount is None or not rate:
        return 0.0
    return round4(amount * rate)


def to_base(amount_local: Any, rate: Any) -> float:
    """Convert a local-currency amount back into the base currency."""
    amount = _usable(amount_local)
    rate = _usable(rate)
    if amount is None or not rate:
        return 0.0
    return round4(amount / rate)


def symbol_for(code: str) -> str:
    """Derive the display symbol of a currency.

    Formats a zero amount in the currency and strips the digits. Unknown or
    malformed codes come back unchanged.
    """
    try:
        formatted = format_currency(
            0,
            code,
            format="¤#,##0",
            locale=DISPLAY_LOCALE,
            currency_digits=False,
        )
    except (UnknownCurrencyError, UnknownLocaleError, ValueError, TypeError):
        return code
    symbol = _DIGITS.sub("", formatted).strip()
    return symbol or code


def format_amount(amount_base: Any, rate: Any) -> str:
    """Convert a base-currency amount and render it with 2 decimals."""
    return f"{round2(convert(amount_base, rate)):,.2f}"


class CurrencyConverter(BaseModel):
    """Conversion bound to one display currency and rate."""

    currency: str = Field(default=BASE_CURRENCY, description="Display currency code")
    rate: float = Field(default=1.0, description="Display units per base unit")

    model_config = {"frozen": True}

    @classmethod
    def from_rates(cls, rates: ExchangeRateSet, currency: str) -> "CurrencyConverter":
        """Bind to a currency from a rate set.

        A currency missing from the set gets rate 0, so every converted
        value reads as 0 rather than a wrong number.
        """
        currency = currency.strip().upper()
        return cls(currency=currency, rate=rates.rate_for(currency) or 0.0)

    @property
    def symbol(self) -> str:
        return symbol_for(self.currency)

    def convert(self, amount_base: Any) -> float:
        return convert(amount_base, self.rate)

    def to_base(self, amount_local: Any) -> float:
        return to_base(amount_local, self.rate)

    def format(self, amount_base: Any) -> str:
        return format_amount(amount_base, self.rate)

    def format_signed(self, amount_base: Any) -> str:
        """Render with sign and symbol, e.g. ``+$1,250.00`` or ``-€20.50``."""
        value = self.convert(amount_base)
        sign = "-" if value < 0 else "+"
        return f"{sign}{self.symbol}{abs(round2(value)):,.2f}"
