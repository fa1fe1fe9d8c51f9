"""Local SQLite persistence."""

from tradelytics.db.store import DataStore

__all__ = ["DataStore"]
