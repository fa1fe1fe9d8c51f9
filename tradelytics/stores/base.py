"""Base store interfaces for Tradelytics.

The analytics core never talks to a database directly. It reads trades
through a TradeStore, reads and writes notes through a NoteStore and keeps
its exchange rate cache entry in a RateCacheStore. Records coming out of a
store are taken as already scoped to the caller's account.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Optional

from tradelytics.models import JournalNote, RateCacheEntry, Trade


class TradeStore(ABC):
    """Read access to trade records."""

    @abstractmethod
    def list_trades(self, account_id: str) -> list[Trade]:
        """Get every trade of an account.

        Args:
            account_id: Account identifier.

        Returns:
            List of trades in storage order.
        """
        pass


class NoteStore(ABC):
    """Remote-style access to per-day journal notes."""

    @abstractmethod
    async def list_notes(
        self, account_id: str, start: date, end: date
    ) -> list[JournalNote]:
        """Get notes for an inclusive date range.

        Args:
            account_id: Account identifier.
            start: First day of the range.
            end: Last day of the range.

        Returns:
            List of notes, at most one per day.
        """
        pass

    @abstractmethod
    async def upsert_note(
        self, account_id: str, day: date, content: str
    ) -> JournalNote:
        """Create or replace the note of one day.

        Args:
            account_id: Account identifier.
            day: Local calendar day.
            content: Note text.

        Returns:
            The committed note.

        Raises:
            NoteStoreError: If the note could not be written.
        """
        pass


class RateCacheStore(ABC):
    """Persistence for the single exchange rate cache entry."""

    @abstractmethod
    def load_rate_entry(self) -> Optional[RateCacheEntry]:
        """Get the persisted entry, or None if nothing was ever saved."""
        pass

    @abstractmethod
    def save_rate_entry(self, entry: RateCacheEntry) -> None:
        """Overwrite the persisted entry."""
        pass
