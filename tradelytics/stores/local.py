"""NoteStore backed by the local SQLite DataStore."""

import asyncio
import time
from datetime import date
from typing import Callable

from tradelytics.db.store import DataStore
from tradelytics.exceptions import NoteStoreError
from tradelytics.models import JournalNote
from tradelytics.stores.base import NoteStore


class LocalNoteStore(NoteStore):
    """Runs DataStore note queries off the event loop."""

    def __init__(self, data_store: DataStore, clock: Callable[[], float] = time.time):
        """Initialize the note store.

        Args:
            data_store: DataStore instance for persistence.
            clock: Returns the current time in epoch seconds; stamps updated_at.
        """
        self._data_store = data_store
        self._clock = clock

    async def list_notes(
        self, account_id: str, start: date, end: date
    ) -> list[JournalNote]:
        if not account_id:
            return []
        return await asyncio.to_thread(self._data_store.get_notes, account_id, start, end)

    async def upsert_note(self, account_id: str, day: date, content: str) -> JournalNote:
        if not account_id:
            raise NoteStoreError("Account ID required")
        note = JournalNote(
            account_id=account_id,
            date=day,
            content=content,
            updated_at=int(self._clock() * 1000),
        )
        return await asyncio.to_thread(self._data_store.put_note, note)
