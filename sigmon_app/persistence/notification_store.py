"""SQLite persistence for notification history and preferences."""

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Optional

import orjson
import structlog

from ..errors import PersistenceError
from ..notifications.models import NotificationRecord


class NotificationStore:
    """SQLite-backed history and preferences so both survive restarts."""

    def __init__(self, db_path: str = "notifications.db"):
        self.db_path = Path(db_path)
        self.logger = structlog.get_logger("sigmon.store")
        self._lock = threading.Lock()

        self._init_database()

    def _init_database(self) -> None:
        """Initialize database schema."""
        with self._get_connection() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS notifications (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    id TEXT NOT NULL UNIQUE,
                    symbol TEXT NOT NULL,
                    direction TEXT NOT NULL,
                    score REAL NOT NULL,
                    urgency TEXT NOT NULL,
                    kind TEXT NOT NULL,
                    timestamp_ms INTEGER NOT NULL,
                    dismissed INTEGER NOT NULL DEFAULT 0,
                    status TEXT NOT NULL,
                    signal_id TEXT,
                    payload BLOB NOT NULL
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS preferences (
                    key TEXT PRIMARY KEY,
                    payload BLOB NOT NULL
                )
            """)

            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_notifications_timestamp ON notifications(timestamp_ms)
            """)

            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_notifications_symbol ON notifications(symbol)
            """)

            conn.commit()

    @contextmanager
    def _get_connection(self):
        """Get database connection, translating sqlite errors."""
        conn = None
        try:
            conn = sqlite3.connect(self.db_path, timeout=30.0)
            conn.row_factory = sqlite3.Row
            yield conn
        except sqlite3.Error as e:
            if conn:
                conn.rollback()
            self.logger.error("Database error", db_path=str(self.db_path), error=str(e))
            raise PersistenceError(str(e), target=str(self.db_path)) from e
        finally:
            if conn:
                conn.close()

    def save_record(self, record: NotificationRecord) -> None:
        """Insert or overwrite a notification row."""
        with self._lock, self._get_connection() as conn:
            conn.execute("""
                INSERT INTO notifications (
                    id, symbol, direction, score, urgency, kind,
                    timestamp_ms, dismissed, status, signal_id, payload
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    dismissed = excluded.dismissed,
                    status = excluded.status,
                    payload = excluded.payload
            """, (
                record.id,
                record.symbol,
                record.direction.value,
                record.score,
                record.urgency_tier.value,
                record.kind.value,
                record.timestamp_ms,
                int(record.dismissed),
                record.status.value,
                record.signal_id,
                orjson.dumps(record.to_dict()),
            ))
            conn.commit()

    def update_record(self, record: NotificationRecord) -> bool:
        """Rewrite the mutable fields of an existing row. False when the id is unknown."""
        with self._lock, self._get_connection() as conn:
            cursor = conn.execute("""
                UPDATE notifications
                SET dismissed = ?, status = ?, payload = ?
                WHERE id = ?
            """, (
                int(record.dismissed),
                record.status.value,
                orjson.dumps(record.to_dict()),
                record.id,
            ))
            conn.commit()
            return cursor.rowcount > 0

    def load_history(
        self,
        start_ms: Optional[int] = None,
        end_ms: Optional[int] = None
    ) -> list[NotificationRecord]:
        """Records with ``start_ms <= timestamp_ms < end_ms`` in insertion order."""
        query = "SELECT payload FROM notifications WHERE 1 = 1"
        params: list[Any] = []

        if start_ms is not None:
            query += " AND timestamp_ms >= ?"
            params.append(start_ms)
        if end_ms is not None:
            query += " AND timestamp_ms < ?"
            params.append(end_ms)

        query += " ORDER BY seq"

        with self._get_connection() as conn:
            rows = conn.execute(query, params).fetchall()

        return [NotificationRecord.from_dict(orjson.loads(row["payload"])) for row in rows]

    def load_record(self, notification_id: str) -> Optional[NotificationRecord]:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT payload FROM notifications WHERE id = ?", (notification_id,)
            ).fetchone()
        return NotificationRecord.from_dict(orjson.loads(row["payload"])) if row else None

    def count(self) -> int:
        with self._get_connection() as conn:
            return conn.execute("SELECT COUNT(*) FROM notifications").fetchone()[0]

    def save_preferences(self, preferences: dict[str, Any]) -> None:
        with self._lock, self._get_connection() as conn:
            conn.execute("""
                INSERT INTO preferences (key, payload) VALUES ('current', ?)
                ON CONFLICT(key) DO UPDATE SET payload = excluded.payload
            """, (orjson.dumps(preferences),))
            conn.commit()

    def load_preferences(self) -> Optional[dict[str, Any]]:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT payload FROM preferences WHERE key = 'current'"
            ).fetchone()
        return orjson.loads(row["payload"]) if row else None
