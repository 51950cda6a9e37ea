"""SQLite data store for TradeJournal."""

import logging
import sqlite3
from datetime import date
from pathlib import Path
from typing import Iterable, Optional

from tradejournal.models import Trade

logger = logging.getLogger(__name__)

TRADE_COLUMNS = [
    "id",
    "pair",
    "direction",
    "entry",
    "exit",
    "lots",
    "pnl",
    "date",
    "ts",
    "setup",
    "mood",
    "session_type",
    "violation_reason",
    "setup_quality",
    "sl",
    "tp",
    "notes",
    "source",
]


class DataStore:
    """SQLite-based trade store.

    The analytics core never reads from or writes to the store; callers load
    a snapshot with ``get_trades`` and pass it on.
    """

    REQUIRED_TABLES = [
        "trades",
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

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS trades (
                    id TEXT PRIMARY KEY,
                    pair TEXT NOT NULL,
                    direction TEXT NOT NULL,
                    entry REAL NOT NULL,
                    exit REAL NOT NULL,
                    lots REAL NOT NULL,
                    pnl REAL NOT NULL,
                    date TEXT NOT NULL,
                    ts INTEGER NOT NULL,
                    setup TEXT,
                    mood TEXT NOT NULL,
                    session_type TEXT NOT NULL,
                    violation_reason TEXT,
                    setup_quality TEXT,
                    sl REAL,
                    tp REAL,
                    notes TEXT,
                    source TEXT NOT NULL DEFAULT 'manual'
                )
            """)
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_trades_date ON trades (date)")

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

    @staticmethod
    def _to_row(trade: Trade) -> tuple:
        return (
            trade.id,
            trade.pair,
            trade.direction.value,
            trade.entry,
            trade.exit,
            trade.lots,
            trade.pnl,
            trade.date.isoformat(),
            trade.ts,
            trade.setup,
            trade.mood.value,
            trade.session_type.value,
            trade.violation_reason,
            trade.setup_quality,
            trade.sl,
            trade.tp,
            trade.notes,
            trade.source,
        )

    @staticmethod
    def _from_row(row: sqlite3.Row) -> Trade:
        return Trade(**{column: row[column] for column in TRADE_COLUMNS})

    def log_trade(self, trade: Trade) -> bool:
        """Log a trade to the database.

        Args:
            trade: Trade to log.

        Returns:
            True if stored, False if a trade with the same id already exists.
        """
        return self.log_trades([trade]) == 1

    def log_trades(self, trades: Iterable[Trade]) -> int:
        """Log several trades in one transaction, skipping known ids.

        Args:
            trades: Trades to log.

        Returns:
            Number of trades inserted.
        """
        placeholders = ", ".join("?" for _ in TRADE_COLUMNS)
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            inserted = 0
            for trade in trades:
                cursor.execute(
                    f"INSERT OR IGNORE INTO trades ({', '.join(TRADE_COLUMNS)}) "
                    f"VALUES ({placeholders})",
                    self._to_row(trade),
                )
                inserted += cursor.rowcount
            conn.commit()
        finally:
            conn.close()

        logger.debug("Stored %d trade(s) in %s", inserted, self.db_path)
        return inserted

    def get_trades(
        self,
        trade_date: Optional[date] = None,
        from_date: Optional[date] = None,
    ) -> list[Trade]:
        """Get trades from the database.

        Args:
            trade_date: Only trades on this date.
            from_date: Only trades on or after this date.

        Returns:
            List of trades ordered by timestamp.
        """
        clauses = []
        params: list[str] = []
        if trade_date:
            clauses.append("date = ?")
            params.append(trade_date.isoformat())
        if from_date:
            clauses.append("date >= ?")
            params.append(from_date.isoformat())
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT {', '.join(TRADE_COLUMNS)} FROM trades {where} ORDER BY ts, id",
                params,
            )
            return [self._from_row(row) for row in cursor.fetchall()]
        finally:
            conn.close()

    def get_trade(self, trade_id: str) -> Optional[Trade]:
        """Get a trade by ID.

        Args:
            trade_id: Trade ID.

        Returns:
            Trade or None if not found.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT {', '.join(TRADE_COLUMNS)} FROM trades WHERE id = ?",
                (trade_id,),
            )
            row = cursor.fetchone()
            return self._from_row(row) if row else None
        finally:
            conn.close()

    def delete_trade(self, trade_id: str) -> bool:
        """Delete a trade.

        Args:
            trade_id: Trade ID to delete.

        Returns:
            True if a trade was deleted.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM trades WHERE id = ?", (trade_id,))
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()
