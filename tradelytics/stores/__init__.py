"""Store interfaces and local adapters."""

from tradelytics.stores.base import NoteStore, RateCacheStore, TradeStore

__all__ = ["NoteStore", "RateCacheStore", "TradeStore"]
