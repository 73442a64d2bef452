"""
SQLite storage. One file, one connection, no ORM.

Tables (names come from config):
- reports: one row per Detik contribution, keyed by contribution_id
- users: one row per author, keyed by a hash of the upstream user id

The connection is shared by the poller's worker threads, so every statement
goes through execute(), which holds a lock for the duration of the call.
"""

import sqlite3
import threading
from pathlib import Path

from models import Record, author_hash


class Storage:
    def __init__(
        self,
        db_path: Path,
        table_reports: str = "detik_reports",
        table_users: str = "detik_users",
    ):
        db_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(str(db_path), check_same_thread=False)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.row_factory = sqlite3.Row
        self._reports = table_reports
        self._users = table_users
        self._migrate()

    def _migrate(self):
        """Create tables if they don't exist. No migration framework needed."""
        self._conn.executescript(f"""
            CREATE TABLE IF NOT EXISTS {self._reports} (
                pkey INTEGER PRIMARY KEY AUTOINCREMENT,
                contribution_id INTEGER NOT NULL UNIQUE,
                created_at TEXT NOT NULL,
                text TEXT NOT NULL DEFAULT '',
                title TEXT NOT NULL DEFAULT '',
                url TEXT NOT NULL DEFAULT '',
                image_url TEXT,
                lang TEXT NOT NULL,
                user_hash TEXT NOT NULL,
                longitude REAL NOT NULL,
                latitude REAL NOT NULL,
                inserted_at TEXT NOT NULL DEFAULT (datetime('now'))
            );

            CREATE INDEX IF NOT EXISTS idx_{self._reports}_created
                ON {self._reports}(created_at);
            CREATE INDEX IF NOT EXISTS idx_{self._reports}_geo
                ON {self._reports}(longitude, latitude);

            CREATE TABLE IF NOT EXISTS {self._users} (
                user_hash TEXT PRIMARY KEY,
                contributions INTEGER NOT NULL DEFAULT 1,
                last_contribution_at TEXT NOT NULL
            );
        """)
        self._conn.commit()

    def execute(self, sql: str, params: tuple | list = ()) -> list[sqlite3.Row]:
        """
        Run one parameterized statement and commit.
        Returns the fetched rows (empty for writes). Raises sqlite3.Error.
        """
        with self._lock:
            try:
                rows = self._conn.execute(sql, params).fetchall()
                self._conn.commit()
            except sqlite3.Error:
                self._conn.rollback()
                raise
        return rows

    def max_contribution_id(self) -> int | None:
        """Highest contribution id ever stored, or None if the table is empty."""
        rows = self.execute(f"SELECT MAX(contribution_id) FROM {self._reports}")
        if not rows or rows[0][0] is None:
            return None
        return int(rows[0][0])

    def insert_report(self, record: Record, url: str, image_url: str | None, lang: str):
        """
        Insert a report. A second insert of the same contribution_id raises
        sqlite3.IntegrityError; callers rely on that for idempotence.
        """
        self.execute(
            f"""INSERT INTO {self._reports}
                (contribution_id, created_at, text, title, url, image_url,
                 lang, user_hash, longitude, latitude)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                record.contribution_id,
                record.created_at.isoformat(),
                record.text,
                record.title,
                url,
                image_url,
                lang,
                author_hash(record.author_id),
                record.longitude,
                record.latitude,
            ),
        )

    def upsert_author(self, record: Record):
        """Count one more contribution for the record's author."""
        self.execute(
            f"""INSERT INTO {self._users} (user_hash, contributions, last_contribution_at)
                VALUES (?, 1, ?)
                ON CONFLICT(user_hash)
                DO UPDATE SET contributions = contributions + 1,
                              last_contribution_at = excluded.last_contribution_at""",
            (author_hash(record.author_id), record.created_at.isoformat()),
        )

    def get_stats(self) -> dict:
        """Basic stats for debugging."""
        reports = self.execute(f"SELECT COUNT(*) FROM {self._reports}")[0][0]
        users = self.execute(f"SELECT COUNT(*) FROM {self._users}")[0][0]
        return {
            "total_reports": reports,
            "total_users": users,
            "max_contribution_id": self.max_contribution_id(),
        }

    def close(self):
        self._conn.close()
