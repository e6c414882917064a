"""SQLite trade-history store for live sessions."""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from loguru import logger

from digitlab.utils.exceptions import StoreError


class SQLiteTradeStore:
    """Append-only record of settled live trades."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        self._conn: sqlite3.Connection | None = None

    def connect(self) -> None:
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(self.db_path))
            self._conn.row_factory = sqlite3.Row
        except (OSError, sqlite3.Error) as exc:
            raise StoreError(f"Unable to open trade store at '{self.db_path}': {exc}") from exc
        logger.info(f"Connected to trade store at {self.db_path}")

    def initialize_schema(self) -> None:
        conn = self._require_conn()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS trades (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    timestamp TEXT NOT NULL,
                    is_win INTEGER NOT NULL,
                    stake REAL NOT NULL,
                    profit REAL NOT NULL,
                    balance_after REAL NOT NULL
                )
                """
            )
            conn.commit()
        except sqlite3.Error as exc:
            raise StoreError(f"Unable to initialize schema at '{self.db_path}': {exc}") from exc

    def save_trade(self, is_win: bool, stake: float, profit: float, balance_after: float) -> int:
        conn = self._require_conn()
        cursor = conn.execute(
            """
            INSERT INTO trades (timestamp, is_win, stake, profit, balance_after)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                datetime.now(timezone.utc).isoformat(),
                int(is_win),
                stake,
                profit,
                balance_after,
            ),
        )
        conn.commit()
        trade_id = int(cursor.lastrowid)
        logger.debug(f"Saved trade {trade_id} ({'win' if is_win else 'loss'}, {profit:+.2f})")
        return trade_id

    def get_recent_trades(self, limit: int = 20) -> list[dict[str, Any]]:
        conn = self._require_conn()
        rows = conn.execute(
            "SELECT * FROM trades ORDER BY id DESC LIMIT ?",
            (limit,),
        ).fetchall()
        return [dict(row) for row in rows]

    def get_summary(self) -> dict[str, Any]:
        conn = self._require_conn()
        row = conn.execute(
            """
            SELECT
                COUNT(*) AS total,
                COALESCE(SUM(is_win), 0) AS wins,
                COALESCE(SUM(profit), 0.0) AS net_profit
            FROM trades
            """
        ).fetchone()
        total = int(row["total"])
        wins = int(row["wins"])
        return {
            "total": total,
            "wins": wins,
            "losses": total - wins,
            "win_rate": (wins / total) * 100 if total > 0 else 0.0,
            "net_profit": float(row["net_profit"]),
        }

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            logger.info("Closed trade store")

    def __enter__(self) -> "SQLiteTradeStore":
        self.connect()
        self.initialize_schema()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def _require_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StoreError("Trade store used before connect() was called.")
        return self._conn
