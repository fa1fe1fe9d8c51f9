"""Journal note synchronization."""

from tradelytics.journal.sync import (
    NoteQueryKey,
    NoteSyncController,
    SaveState,
    compose_view,
    note_window,
)

__all__ = [
    "NoteQueryKey",
    "NoteSyncController",
    "SaveState",
    "compose_view",
    "note_window",
]
