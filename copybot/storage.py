"""
SQLite storage schema and operations.

Tables:
- trade_events: Observed and synthesized trades, the executor's work queue
- positions: Latest snapshot of the target's positions

Fail-loud: DB errors raise exceptions, never silent.
"""

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from copybot.models import Position, TradeEvent

logger = logging.getLogger(__name__)

# Schema version for migration tracking
SCHEMA_VERSION = 1

_EVENT_COLUMNS = (
    "id, type, proxy_wallet, timestamp, condition_id, asset, side, size, "
    "usdc_size, price, transaction_hash, title, slug, event_slug, outcome, "
    "outcome_index, processed, retry_count"
)


class CopyBotDB:
    """SQLite database for copybot persistence."""

    def __init__(self, db_path: str):
        """
        Initialize database connection.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    @contextmanager
    def get_connection(self):
        """Context manager for database connections."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_schema(self):
        """Initialize database schema. Idempotent."""
        with self.get_connection() as conn:
            cursor = conn.cursor()

            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS metadata (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                """
            )

            cursor.execute("SELECT value FROM metadata WHERE key = 'schema_version'")
            row = cursor.fetchone()
            if row:
                existing_version = int(row[0])
                if existing_version != SCHEMA_VERSION:
                    raise RuntimeError(
                        f"Schema version mismatch: expected {SCHEMA_VERSION}, got {existing_version}"
                    )
            else:
                cursor.execute(
                    "INSERT INTO metadata (key, value) VALUES ('schema_version', ?)",
                    (str(SCHEMA_VERSION),),
                )

            # Trade events - insertion order (id) is execution order
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS trade_events (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    type TEXT NOT NULL,
                    proxy_wallet TEXT,
                    timestamp INTEGER NOT NULL,
                    condition_id TEXT NOT NULL,
                    asset TEXT NOT NULL,
                    side TEXT NOT NULL,
                    size REAL NOT NULL,
                    usdc_size REAL NOT NULL,
                    price REAL NOT NULL,
                    transaction_hash TEXT NOT NULL UNIQUE,
                    title TEXT,
                    slug TEXT,
                    event_slug TEXT,
                    outcome TEXT,
                    outcome_index INTEGER,
                    processed INTEGER NOT NULL DEFAULT 0,
                    retry_count INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL
                )
                """
            )
            cursor.execute(
                "CREATE INDEX IF NOT EXISTS idx_trade_events_pending "
                "ON trade_events (processed, retry_count)"
            )
            cursor.execute(
                "CREATE INDEX IF NOT EXISTS idx_trade_events_timestamp "
                "ON trade_events (timestamp)"
            )

            # Positions - one row per market outcome
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS positions (
                    condition_id TEXT NOT NULL,
                    asset TEXT NOT NULL,
                    proxy_wallet TEXT,
                    size REAL NOT NULL,
                    current_value REAL NOT NULL,
                    percent_pnl REAL,
                    title TEXT,
                    data TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    PRIMARY KEY (condition_id, asset)
                )
                """
            )

            conn.commit()

    # ------------------------------------------------------------------
    # Trade events
    # ------------------------------------------------------------------

    def insert_event(self, event: TradeEvent) -> Optional[int]:
        """
        Persist a trade event.

        Returns:
            Row id, or None if an event with the same transaction hash exists
        """
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT OR IGNORE INTO trade_events (
                    type, proxy_wallet, timestamp, condition_id, asset, side,
                    size, usdc_size, price, transaction_hash, title, slug,
                    event_slug, outcome, outcome_index, processed, retry_count,
                    created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    event.type,
                    event.proxy_wallet,
                    event.timestamp,
                    event.condition_id,
                    event.asset,
                    event.side.value,
                    event.size,
                    event.usdc_size,
                    event.price,
                    event.transaction_hash,
                    event.title,
                    event.slug,
                    event.event_slug,
                    event.outcome,
                    event.outcome_index,
                    int(event.processed),
                    event.retry_count,
                    datetime.now(timezone.utc).isoformat(),
                ),
            )
            if cursor.rowcount == 0:
                logger.debug(f"Duplicate trade event ignored: {event.transaction_hash}")
                return None
            return cursor.lastrowid

    def find_by_hash(self, transaction_hash: str) -> Optional[TradeEvent]:
        with self.get_connection() as conn:
            row = conn.execute(
                f"SELECT {_EVENT_COLUMNS} FROM trade_events WHERE transaction_hash = ?",
                (transaction_hash,),
            ).fetchone()
        return _row_to_event(row) if row else None

    def get_event(self, event_id: int) -> Optional[TradeEvent]:
        with self.get_connection() as conn:
            row = conn.execute(
                f"SELECT {_EVENT_COLUMNS} FROM trade_events WHERE id = ?",
                (event_id,),
            ).fetchone()
        return _row_to_event(row) if row else None

    def find_latest(self, proxy_wallet: Optional[str] = None) -> Optional[TradeEvent]:
        """Most recent event by timestamp, optionally for one wallet."""
        query = f"SELECT {_EVENT_COLUMNS} FROM trade_events"
        params: tuple = ()
        if proxy_wallet:
            query += " WHERE proxy_wallet = ?"
            params = (proxy_wallet.lower(),)
        query += " ORDER BY timestamp DESC, id DESC LIMIT 1"

        with self.get_connection() as conn:
            row = conn.execute(query, params).fetchone()
        return _row_to_event(row) if row else None

    def find_pending(self, retry_limit: int) -> List[TradeEvent]:
        """Unprocessed TRADE events below the retry ceiling, in insertion order."""
        with self.get_connection() as conn:
            rows = conn.execute(
                f"""
                SELECT {_EVENT_COLUMNS} FROM trade_events
                WHERE type = 'TRADE' AND processed = 0 AND retry_count < ?
                ORDER BY id ASC
                """,
                (retry_limit,),
            ).fetchall()
        return [_row_to_event(row) for row in rows]

    def has_pending_exit(self, condition_id: str) -> bool:
        """Whether an unprocessed stop-loss / take-profit SELL exists for a market."""
        with self.get_connection() as conn:
            row = conn.execute(
                """
                SELECT 1 FROM trade_events
                WHERE condition_id = ? AND processed = 0
                  AND (transaction_hash GLOB 'STOP_LOSS_*'
                       OR transaction_hash GLOB 'TAKE_PROFIT_*')
                LIMIT 1
                """,
                (condition_id,),
            ).fetchone()
        return row is not None

    def count_events(self, processed: Optional[bool] = None) -> int:
        query = "SELECT COUNT(*) FROM trade_events"
        params: tuple = ()
        if processed is not None:
            query += " WHERE processed = ?"
            params = (int(processed),)
        with self.get_connection() as conn:
            return conn.execute(query, params).fetchone()[0]

    def update_event_state(self, event_id: int, retry_count: int, processed: bool) -> None:
        """Persist the executor's state transition for one event."""
        with self.get_connection() as conn:
            conn.execute(
                "UPDATE trade_events SET retry_count = ?, processed = ? WHERE id = ?",
                (retry_count, int(processed), event_id),
            )

    # ------------------------------------------------------------------
    # Positions
    # ------------------------------------------------------------------

    def upsert_position(self, position: Position) -> None:
        with self.get_connection() as conn:
            conn.execute(
                """
                INSERT INTO positions (
                    condition_id, asset, proxy_wallet, size, current_value,
                    percent_pnl, title, data, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT (condition_id, asset) DO UPDATE SET
                    proxy_wallet = excluded.proxy_wallet,
                    size = excluded.size,
                    current_value = excluded.current_value,
                    percent_pnl = excluded.percent_pnl,
                    title = excluded.title,
                    data = excluded.data,
                    updated_at = excluded.updated_at
                """,
                (
                    position.condition_id,
                    position.asset,
                    position.proxy_wallet,
                    position.size,
                    position.current_value,
                    position.percent_pnl,
                    position.title,
                    position.model_dump_json(by_alias=True),
                    datetime.now(timezone.utc).isoformat(),
                ),
            )

    def get_positions(self) -> List[Position]:
        with self.get_connection() as conn:
            rows = conn.execute(
                "SELECT data FROM positions ORDER BY condition_id, asset"
            ).fetchall()
        return [Position.model_validate_json(row["data"]) for row in rows]


def _row_to_event(row: sqlite3.Row) -> TradeEvent:
    data = dict(row)
    data["processed"] = bool(data["processed"])
    return TradeEvent.model_validate(data)
