"""Optimistic, rollback-capable journal note synchronization.

Notes are cached per query key, one key per account and month window. The
local view of a key is its last fetched server state with every in-flight
save laid over it in the order the saves were issued:

* a save cancels any fetch running for the key, then shows its value
  immediately (``SAVING``);
* a successful save folds the committed note into the server state
  (``COMMITTED``);
* a failed save is dropped from the overlay, which restores the view that
  existed before it, reports the failure and marks the key stale so the
  next read refetches (``ROLLED_BACK``).

The newest write for a day always sits on top, so a slow older save can
never hide a newer one.
"""

import asyncio
import calendar
import itertools
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Callable, NamedTuple, Optional

from tradelytics.exceptions import NoteStoreError
from tradelytics.models import JournalNote, date_key
from tradelytics.stores.base import NoteStore

logger = logging.getLogger(__name__)

# Days fetched on either side of a month, so weeks spanning a boundary show notes
WINDOW_PADDING = timedelta(days=7)

Notifier = Callable[[str, str], None]


class SaveState(str, Enum):
    """Save lifecycle of one query key."""

    IDLE = "idle"
    SAVING = "saving"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class NoteQueryKey(NamedTuple):
    account_id: str
    window_start: str


def note_window(month: date) -> tuple[date, date]:
    """Return the padded date window fetched for a month."""
    first = month.replace(day=1)
    last = first.replace(day=calendar.monthrange(first.year, first.month)[1])
    return first - WINDOW_PADDING, last + WINDOW_PADDING


@dataclass
class _PendingSave:
    token: int
    note: JournalNote


@dataclass
class _QueryState:
    start: date
    end: date
    base: dict[str, JournalNote] = field(default_factory=dict)
    saves: dict[int, _PendingSave] = field(default_factory=dict)
    status: SaveState = SaveState.IDLE
    stale: bool = True
    fetch: Optional[asyncio.Task] = None
    last_token: int = 0
    # Token of the newest committed save per day
    settled: dict[str, int] = field(default_factory=dict)
    # Folds so far; compared across a fetch
    commits: int = 0

    def covers(self, day: date) -> bool:
        return self.start <= day <= self.end


def compose_view(
    base: Mapping[str, JournalNote], overlays: list[JournalNote]
) -> dict[str, JournalNote]:
    """Lay optimistic notes over a server view, later notes winning."""
    view = dict(base)
    for note in overlays:
        view[note.key] = note
    return view


def _log_notification(level: str, message: str) -> None:
    logger.log(logging.ERROR if level == "error" else logging.INFO, message)


class NoteSyncController:
    """Local view of one account's journal notes with optimistic saves."""

    def __init__(
        self,
        store: NoteStore,
        account_id: str,
        *,
        notify: Optional[Notifier] = None,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the controller.

        Args:
            store: Note persistence.
            account_id: Account whose notes are managed.
            notify: Called with ("info" | "error", message) when a save settles.
            clock: Returns the current time in epoch seconds.
        """
        self._store = store
        self._account_id = account_id
        self._notify = notify or _log_notification
        self._clock = clock
        self._states: dict[NoteQueryKey, _QueryState] = {}
        self._tokens = itertools.count(1)
        self._tasks: set[asyncio.Task] = set()

    @property
    def account_id(self) -> str:
        return self._account_id

    def query_key(self, month: Optional[date] = None) -> NoteQueryKey:
        start, _ = note_window(month or date.today())
        return NoteQueryKey(self._account_id, date_key(start))

    def _state(self, month: Optional[date]) -> _QueryState:
        month = month or date.today()
        key = self.query_key(month)
        state = self._states.get(key)
        if state is None:
            start, end = note_window(month)
            state = _QueryState(start=start, end=end)
            self._states[key] = state
        return state

    @staticmethod
    def _view(state: _QueryState) -> dict[str, JournalNote]:
        overlays = [
            save.note
            for save in state.saves.values()
            if save.token > state.settled.get(save.note.key, 0)
        ]
        return compose_view(state.base, overlays)

    def view(self, month: Optional[date] = None) -> dict[str, JournalNote]:
        """Current local notes of a month window, keyed by YYYY-MM-DD."""
        return self._view(self._state(month))

    def notes_map(self, month: Optional[date] = None) -> dict[str, str]:
        """Current local note contents, ready for calendar aggregation."""
        return {key: note.content for key, note in self.view(month).items()}

    def state(self, month: Optional[date] = None) -> SaveState:
        return self._state(month).status

    def is_stale(self, month: Optional[date] = None) -> bool:
        return self._state(month).stale

    # ==================== Reads ====================

    async def load(self, month: Optional[date] = None) -> dict[str, str]:
        """Return the notes of a month window, fetching when stale.

        Concurrent loads of one key share a single fetch. A fetch cancelled
        by a save resolves to the local view instead of raising.

        Raises:
            Exception: Whatever the note store raised while fetching.
        """
        state = self._state(month)
        if not state.stale:
            return self.notes_map(month)

        if state.fetch is None:
            state.fetch = asyncio.ensure_future(self._fetch(state))
            state.fetch.add_done_callback(lambda task: self._clear_fetch(state, task))
        task = state.fetch

        try:
            await asyncio.shield(task)
        except asyncio.CancelledError:
            if not task.cancelled():
                raise
            logger.debug("Note fetch for %s superseded by a save", date_key(state.start))
        return self.notes_map(month)

    @staticmethod
    def _clear_fetch(state: _QueryState, task: asyncio.Task) -> None:
        if state.fetch is task:
            state.fetch = None

    async def _fetch(self, state: _QueryState) -> None:
        seen = state.commits
        notes = await self._store.list_notes(self._account_id, state.start, state.end)
        fetched: dict[str, JournalNote] = {}
        for note in notes:
            existing = fetched.get(note.key)
            if existing is None or note.updated_at >= existing.updated_at:
                fetched[note.key] = note
        if state.commits != seen:
            # The snapshot may predate those commits; keep the newer note per day
            for key, note in state.base.items():
                existing = fetched.get(key)
                if existing is None or note.updated_at > existing.updated_at:
                    fetched[key] = note
        state.base = fetched
        state.stale = False

    # ==================== Writes ====================

    async def save(
        self, day: date, content: str, *, month: Optional[date] = None
    ) -> SaveState:
        """Save a note optimistically.

        The new value is visible in the local view before this coroutine
        first yields. Cancelling the caller does not stop the save from
        committing or rolling back.

        Args:
            day: Local calendar day of the note.
            content: Note text.
            month: Month window the caller is viewing; defaults to the day's month.

        Returns:
            COMMITTED or ROLLED_BACK for this save.

        Raises:
            NoteStoreError: If the controller has no account.
        """
        if not self._account_id:
            raise NoteStoreError("Missing account context")

        state = self._state(month or day)
        if state.fetch is not None and not state.fetch.done():
            state.fetch.cancel()

        token = next(self._tokens)
        note = JournalNote(
            account_id=self._account_id,
            date=day,
            content=content,
            updated_at=int(self._clock() * 1000),
        )
        state.saves[token] = _PendingSave(token=token, note=note)
        state.status = SaveState.SAVING
        state.last_token = token

        task = asyncio.ensure_future(self._persist(state, token))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return await asyncio.shield(task)

    async def _persist(self, state: _QueryState, token: int) -> SaveState:
        pending = state.saves[token]
        day = pending.note.date
        try:
            committed = await self._store.upsert_note(
                self._account_id, day, pending.note.content
            )
        except asyncio.CancelledError:
            self._roll_back(state, token)
            raise
        except Exception:
            logger.error("Failed to save note for %s", pending.note.key, exc_info=True)
            self._roll_back(state, token)
            self._notify("error", f"Failed to save note for {pending.note.key}")
            return SaveState.ROLLED_BACK

        state.saves.pop(token, None)
        for other in self._states.values():
            if other is state or other.covers(day):
                self._fold(other, committed, token)
        if state.last_token == token:
            state.status = SaveState.COMMITTED
        self._notify("info", f"Note saved for {committed.key}")
        return SaveState.COMMITTED

    @staticmethod
    def _fold(state: _QueryState, committed: JournalNote, token: int) -> None:
        state.commits += 1
        state.settled[committed.key] = max(state.settled.get(committed.key, 0), token)
        existing = state.base.get(committed.key)
        if existing is None or committed.updated_at >= existing.updated_at:
            state.base[committed.key] = committed

    @staticmethod
    def _roll_back(state: _QueryState, token: int) -> None:
        state.saves.pop(token, None)
        state.stale = True
        if state.last_token == token:
            state.status = SaveState.ROLLED_BACK

    async def wait_idle(self) -> None:
        """Wait until every save issued so far has settled."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
