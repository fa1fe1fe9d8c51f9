"""SQLite data store for Tradelytics."""

import json
import sqlite3
from datetime import date, datetime
from pathlib import Path
from typing import Iterable, Optional

from tradelytics.exceptions import NoteStoreError
from tradelytics.models import JournalNote, RateCacheEntry, Trade, date_key
from tradelytics.stores.base import RateCacheStore, TradeStore


class DataStore(TradeStore, RateCacheStore):
    """SQLite-based local store for trades, journal notes and cached rates."""

    REQUIRED_TABLES = [
        "trades",
        "journal_notes",
        "fx_rate_cache",
    ]

    def __init__(self, db_path: Path):
        """Initialize the data store.

        Args:
            db_path: Path to the SQLite database file.
        """
        self.db_path = db_path
        self._ensure_db_dir()
        self._init_schema()

    def _ensure_db_dir(self) -> None:
        """Ensure the database directory exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def _get_connection(self) -> sqlite3.Connection:
        """Get a database connection."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_schema(self) -> None:
        """Initialize database schema on first run."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()

            # Trades table
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS trades (
                    id TEXT NOT NULL,
                    account_id TEXT NOT NULL,
                    symbol TEXT NOT NULL,
                    direction TEXT NOT NULL,
                    pnl REAL NOT NULL,
                    entry_time TEXT NOT NULL,
                    exit_time TEXT,
                    strategy TEXT NOT NULL DEFAULT '',
                    asset_class TEXT NOT NULL DEFAULT 'STOCK',
                    tags TEXT NOT NULL DEFAULT '[]',
                    occurred_at TEXT NOT NULL,
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    UNIQUE(account_id, id)
                )
            """)

            # Journal notes table, one row per account and day
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS journal_notes (
                    account_id TEXT NOT NULL,
                    date TEXT NOT NULL,
                    content TEXT NOT NULL,
                    updated_at INTEGER NOT NULL,
                    PRIMARY KEY(account_id, date)
                )
            """)

            # Exchange rate cache, a single row overwritten on refresh
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS fx_rate_cache (
                    id INTEGER PRIMARY KEY CHECK (id = 1),
                    rates TEXT NOT NULL,
                    timestamp INTEGER NOT NULL
                )
            """)

            conn.commit()
        finally:
            conn.close()

    def get_tables(self) -> list[str]:
        """Get list of all tables in the database."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%'"
            )
            return [row["name"] for row in cursor.fetchall()]
        finally:
            conn.close()

    # ==================== Trades ====================

    def save_trades(self, account_id: str, trades: Iterable[Trade]) -> int:
        """Save trades for an account, replacing trades with the same ID.

        Args:
            account_id: Account identifier.
            trades: Trades to save.

        Returns:
            Number of trades written.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            count = 0
            for trade in trades:
                cursor.execute(
                    """
                    INSERT INTO trades
                    (id, account_id, symbol, direction, pnl, entry_time, exit_time,
                     strategy, asset_class, tags, occurred_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(account_id, id) DO UPDATE SET
                        symbol = excluded.symbol,
                        direction = excluded.direction,
                        pnl = excluded.pnl,
                        entry_time = excluded.entry_time,
                        exit_time = excluded.exit_time,
                        strategy = excluded.strategy,
                        asset_class = excluded.asset_class,
                        tags = excluded.tags,
                        occurred_at = excluded.occurred_at
                    """,
                    (
                        trade.id,
                        account_id,
                        trade.symbol,
                        trade.direction,
                        trade.pnl,
                        trade.entry_time.isoformat(),
                        trade.exit_time.isoformat() if trade.exit_time else None,
                        trade.strategy,
                        trade.asset_class,
                        json.dumps(sorted(trade.tags)),
                        date_key(trade.occurred_at),
                    ),
                )
                count += 1
            conn.commit()
            return count
        finally:
            conn.close()

    def save_trade(self, account_id: str, trade: Trade) -> None:
        """Save a single trade.

        Args:
            account_id: Account identifier.
            trade: Trade to save.
        """
        self.save_trades(account_id, [trade])

    def list_trades(self, account_id: str) -> list[Trade]:
        """Get every trade of an account in insertion order.

        Args:
            account_id: Account identifier.

        Returns:
            List of trades.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT id, symbol, direction, pnl, entry_time, exit_time,
                       strategy, asset_class, tags, occurred_at
                FROM trades
                WHERE account_id = ?
                ORDER BY seq
                """,
                (account_id,),
            )
            return [
                Trade(
                    id=row["id"],
                    symbol=row["symbol"],
                    direction=row["direction"],
                    pnl=row["pnl"],
                    entry_time=datetime.fromisoformat(row["entry_time"]),
                    exit_time=(
                        datetime.fromisoformat(row["exit_time"]) if row["exit_time"] else None
                    ),
                    strategy=row["strategy"],
                    asset_class=row["asset_class"],
                    tags=json.loads(row["tags"]),
                    occurred_at=date.fromisoformat(row["occurred_at"]),
                )
                for row in cursor.fetchall()
            ]
        finally:
            conn.close()

    # ==================== Journal Notes ====================

    def get_notes(self, account_id: str, start: date, end: date) -> list[JournalNote]:
        """Get notes of an account for an inclusive date range.

        Args:
            account_id: Account identifier.
            start: First day.
            end: Last day.

        Returns:
            List of notes ordered by date.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT account_id, date, content, updated_at
                FROM journal_notes
                WHERE account_id = ? AND date >= ? AND date <= ?
                ORDER BY date
                """,
                (account_id, date_key(start), date_key(end)),
            )
            return [
                JournalNote(
                    account_id=row["account_id"],
                    date=date.fromisoformat(row["date"]),
                    content=row["content"],
                    updated_at=row["updated_at"],
                )
                for row in cursor.fetchall()
            ]
        finally:
            conn.close()

    def put_note(self, note: JournalNote) -> JournalNote:
        """Write a note unless a newer one for the same day is stored.

        Args:
            note: Note to write.

        Returns:
            The note stored for the day after the write.
        """
        if not note.account_id:
            raise NoteStoreError("Account ID required")

        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO journal_notes (account_id, date, content, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(account_id, date) DO UPDATE SET
                    content = excluded.content,
                    updated_at = excluded.updated_at
                WHERE excluded.updated_at >= journal_notes.updated_at
                """,
                (note.account_id, note.key, note.content, note.updated_at),
            )
            conn.commit()
            cursor.execute(
                """
                SELECT account_id, date, content, updated_at
                FROM journal_notes
                WHERE account_id = ? AND date = ?
                """,
                (note.account_id, note.key),
            )
            row = cursor.fetchone()
            return JournalNote(
                account_id=row["account_id"],
                date=date.fromisoformat(row["date"]),
                content=row["content"],
                updated_at=row["updated_at"],
            )
        finally:
            conn.close()

    # ==================== Rate Cache ====================

    def load_rate_entry(self) -> Optional[RateCacheEntry]:
        """Get the persisted exchange rate cache entry.

        Returns:
            RateCacheEntry if one was saved, None otherwise.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("SELECT rates, timestamp FROM fx_rate_cache WHERE id = 1")
            row = cursor.fetchone()
            if row:
                return RateCacheEntry(
                    rates=json.loads(row["rates"]),
                    timestamp=row["timestamp"],
                )
            return None
        finally:
            conn.close()

    def save_rate_entry(self, entry: RateCacheEntry) -> None:
        """Overwrite the exchange rate cache entry.

        Args:
            entry: Entry to persist.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT OR REPLACE INTO fx_rate_cache (id, rates, timestamp)
                VALUES (1, ?, ?)
                """,
                (json.dumps(entry.rates), entry.timestamp),
            )
            conn.commit()
        finally:
            conn.close()

    # ==================== Stats ====================

    def get_stats(self) -> dict:
        """Get database statistics.

        Returns:
            Dictionary with table record counts.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            stats = {}
            for table in self.REQUIRED_TABLES:
                cursor.execute(f"SELECT COUNT(*) as count FROM {table}")
                stats[table] = cursor.fetchone()["count"]
            return stats
        finally:
            conn.close()
