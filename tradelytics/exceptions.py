"""Exception types for Tradelytics."""


class TradelyticsError(Exception):
    """Base class for all Tradelytics errors."""


class RateUnavailable(TradelyticsError):
    """No exchange rate exists for a currency in the cache or fallback table."""

    def __init__(self, currency: str):
        self.currency = currency
        super().__init__(f"No exchange rate available for {currency}")


class RateProviderError(TradelyticsError):
    """The live rate provider returned a non-success response."""


class NoteStoreError(TradelyticsError):
    """A journal note could not be read or written."""


class ConfigError(TradelyticsError):
    """The configuration file is unreadable or invalid."""
