"""Property-based tests for the database store.

**Feature: local-storage**
"""

import asyncio
import tempfile
from datetime import date, datetime
from pathlib import Path

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from tradelytics.db.store import DataStore
from tradelytics.exceptions import NoteStoreError
from tradelytics.models import JournalNote, RateCacheEntry, Trade
from tradelytics.stores.local import LocalNoteStore


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        yield DataStore(db_path)


def make_trade(trade_id: str, pnl: float = 10.0, **kwargs) -> Trade:
    data = {
        "id": trade_id,
        "symbol": "AAPL",
        "pnl": pnl,
        "entry_time": datetime(2024, 1, 5, 9, 30),
    }
    data.update(kwargs)
    return Trade(**data)


class TestDatabaseSchemaCompleteness:
    """
    **Property 8: Database Schema Completeness**

    *For any* fresh database, all required tables should exist.
    """

    def test_schema_completeness(self, temp_db: DataStore):
        tables = temp_db.get_tables()
        for table in DataStore.REQUIRED_TABLES:
            assert table in tables, f"Required table '{table}' is missing"

    def test_reopen_keeps_data(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            db_path = Path(tmpdir) / "nested" / "test.db"
            DataStore(db_path).save_trade("acc", make_trade("1"))
            assert len(DataStore(db_path).list_trades("acc")) == 1


class TestTradeStorage:
    """
    **Property 9: Trade Round Trip**

    *For any* trades saved for an account, listing returns equal trades in
    insertion order.
    """

    @given(
        pnls=st.lists(
            st.floats(min_value=-1e6, max_value=1e6, allow_nan=False),
            min_size=1,
            max_size=20,
        ),
        strategy=st.sampled_from(["", "breakout", "mean reversion"]),
        tags=st.frozensets(st.sampled_from(["scalp", "swing", "news"])),
    )
    @settings(max_examples=25, deadline=None)
    def test_trades_round_trip(self, pnls, strategy, tags):
        with tempfile.TemporaryDirectory() as tmpdir:
            store = DataStore(Path(tmpdir) / "test.db")
            trades = [
                make_trade(f"t{i}", pnl, strategy=strategy, tags=tags, asset_class="crypto")
                for i, pnl in enumerate(pnls)
            ]

            assert store.save_trades("acc", trades) == len(trades)
            assert store.list_trades("acc") == trades

    def test_accounts_are_isolated(self, temp_db: DataStore):
        temp_db.save_trade("a", make_trade("1"))
        temp_db.save_trade("b", make_trade("2"))
        assert [t.id for t in temp_db.list_trades("a")] == ["1"]
        assert temp_db.list_trades("missing") == []

    def test_same_id_replaces(self, temp_db: DataStore):
        temp_db.save_trade("acc", make_trade("1", 10))
        temp_db.save_trade("acc", make_trade("2", 20))
        temp_db.save_trade("acc", make_trade("1", -5))

        trades = temp_db.list_trades("acc")
        assert [(t.id, t.pnl) for t in trades] == [("1", -5), ("2", 20)]

    def test_exit_time_and_day_preserved(self, temp_db: DataStore):
        trade = make_trade(
            "1",
            entry_time=datetime(2024, 1, 5, 23, 0),
            exit_time=datetime(2024, 1, 6, 1, 0),
            direction="sell",
        )
        temp_db.save_trade("acc", trade)

        stored = temp_db.list_trades("acc")[0]
        assert stored.exit_time == datetime(2024, 1, 6, 1, 0)
        assert stored.occurred_at == date(2024, 1, 5)
        assert stored.direction == "short"


class TestNoteStorage:
    """Notes are one row per account and day, newest write kept."""

    def test_put_and_get(self, temp_db: DataStore):
        note = JournalNote(account_id="acc", date=date(2024, 1, 5), content="hi", updated_at=5)
        assert temp_db.put_note(note) == note
        assert temp_db.get_notes("acc", date(2024, 1, 1), date(2024, 1, 31)) == [note]
        assert temp_db.get_notes("acc", date(2024, 2, 1), date(2024, 2, 29)) == []

    def test_older_write_is_ignored(self, temp_db: DataStore):
        day = date(2024, 1, 5)
        newer = JournalNote(account_id="acc", date=day, content="newer", updated_at=10)
        older = JournalNote(account_id="acc", date=day, content="older", updated_at=3)

        temp_db.put_note(newer)
        assert temp_db.put_note(older) == newer

    def test_notes_ordered_by_date(self, temp_db: DataStore):
        for day in (date(2024, 1, 9), date(2024, 1, 2)):
            temp_db.put_note(JournalNote(account_id="acc", date=day, content="x", updated_at=1))
        notes = temp_db.get_notes("acc", date(2024, 1, 1), date(2024, 1, 31))
        assert [n.date.day for n in notes] == [2, 9]


class TestRateCacheEntry:
    """The rate cache is a single overwritten row."""

    def test_empty(self, temp_db: DataStore):
        assert temp_db.load_rate_entry() is None

    def test_overwrite(self, temp_db: DataStore):
        temp_db.save_rate_entry(RateCacheEntry(rates={"EUR": 0.9}, timestamp=1))
        temp_db.save_rate_entry(RateCacheEntry(rates={"EUR": 0.95, "GBP": 0.8}, timestamp=2))

        entry = temp_db.load_rate_entry()
        assert entry.rates == {"EUR": 0.95, "GBP": 0.8}
        assert entry.timestamp == 2
        assert temp_db.get_stats()["fx_rate_cache"] == 1


class TestLocalNoteStore:
    """The async note store wraps DataStore."""

    def test_upsert_and_list(self, temp_db: DataStore):
        store = LocalNoteStore(temp_db, clock=lambda: 1_700_000_000.0)

        async def scenario():
            committed = await store.upsert_note("acc", date(2024, 1, 5), "note")
            listed = await store.list_notes("acc", date(2024, 1, 1), date(2024, 1, 31))
            return committed, listed

        committed, listed = asyncio.run(scenario())
        assert committed.updated_at == 1_700_000_000_000
        assert listed == [committed]

    def test_requires_account(self, temp_db: DataStore):
        store = LocalNoteStore(temp_db)
        assert asyncio.run(store.list_notes("", date(2024, 1, 1), date(2024, 1, 31))) == []
        with pytest.raises(NoteStoreError):
            asyncio.run(store.upsert_note("", date(2024, 1, 5), "note"))
