"""SQLite storage adapter.

Implements the core TagStorePort and PendingStatePort using a simple SQLite
database, so tags and the tag-entry flow survive restarts and can be shared
between webhook invocations on the same host.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime, timedelta, timezone
from typing import Optional


class SQLiteStorage:
    """Thin SQLite wrapper that satisfies the storage ports."""

    def __init__(self, db_path: str, pending_ttl_minutes: Optional[int] = None) -> None:
        self._db_path = db_path
        # Pending markers older than this are ignored by is_pending.
        self._pending_ttl_minutes = pending_ttl_minutes

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, timeout=10)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        """Create tables if they do not exist.

        Tables:
        - user_tags: one affiliate tag per user, overwritten on every set
        - pending_tags: users whose next message is a tag candidate
        """

        with self._connect() as conn:
            # Fields:
            # - user_id: Telegram user id as text (PRIMARY KEY)
            # - tag: validated Amazon Associate tag
            # - updated_at: timestamp of the last write
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS user_tags (
                    user_id TEXT PRIMARY KEY,
                    tag TEXT NOT NULL,
                    updated_at TIMESTAMP NOT NULL
                )
                """
            )
            # Fields:
            # - user_id: Telegram user id as text (PRIMARY KEY)
            # - since: when /settag was sent, for TTL cleanup
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS pending_tags (
                    user_id TEXT PRIMARY KEY,
                    since TIMESTAMP NOT NULL
                )
                """
            )

    def get_tag(self, user_id: int) -> Optional[str]:
        """Return the registered tag for a user, if any."""

        with self._connect() as conn:
            row = conn.execute(
                "SELECT tag FROM user_tags WHERE user_id = ?",
                (str(user_id),),
            ).fetchone()
        return str(row["tag"]) if row else None

    def set_tag(self, user_id: int, tag: str) -> None:
        """Upsert the tag for a user (last write wins)."""

        now = datetime.now(timezone.utc)
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO user_tags (user_id, tag, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(user_id) DO UPDATE SET
                    tag = excluded.tag,
                    updated_at = excluded.updated_at
                """,
                (str(user_id), tag, now.isoformat()),
            )

    def count_tags(self) -> int:
        with self._connect() as conn:
            row = conn.execute("SELECT COUNT(*) AS total FROM user_tags").fetchone()
        return int(row["total"])

    def is_pending(self, user_id: int) -> bool:
        """Return True when the user has an unexpired /settag marker."""

        query = "SELECT 1 FROM pending_tags WHERE user_id = ?"
        params: tuple = (str(user_id),)
        if self._pending_ttl_minutes is not None:
            cutoff = datetime.now(timezone.utc) - timedelta(minutes=self._pending_ttl_minutes)
            query += " AND since >= ?"
            params += (cutoff.isoformat(),)
        with self._connect() as conn:
            row = conn.execute(query, params).fetchone()
        return row is not None

    def set_pending(self, user_id: int) -> None:
        """Mark the user as awaiting a tag, refreshing the timestamp."""

        now = datetime.now(timezone.utc)
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO pending_tags (user_id, since)
                VALUES (?, ?)
                ON CONFLICT(user_id) DO UPDATE SET since = excluded.since
                """,
                (str(user_id), now.isoformat()),
            )

    def clear_pending(self, user_id: int) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM pending_tags WHERE user_id = ?", (str(user_id),))

    def cleanup_pending(self, ttl_minutes: int) -> int:
        """Delete stale pending markers and return the number removed."""

        cutoff = datetime.now(timezone.utc) - timedelta(minutes=ttl_minutes)
        with self._connect() as conn:
            cur = conn.execute(
                "DELETE FROM pending_tags WHERE since < ?",
                (cutoff.isoformat(),),
            )
            return cur.rowcount
