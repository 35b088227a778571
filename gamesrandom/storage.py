"""Saved games, stored in SQLite and keyed by owner.

Opens a short-lived connection per operation so it can be called from
FastAPI's threadpool without sharing connections across threads.
"""

from __future__ import annotations

import logging
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone

from gamesrandom.schemas import GameRecord

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS games (
    id          TEXT PRIMARY KEY,
    user_id     TEXT NOT NULL,
    title       TEXT NOT NULL,
    description TEXT NOT NULL,
    code        TEXT NOT NULL,
    library     TEXT NOT NULL,
    created_at  TEXT NOT NULL,
    updated_at  TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_games_user_created ON games (user_id, created_at DESC);
"""


def _dict_factory(cursor, row):
    return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}


def _to_record(row: dict) -> GameRecord:
    return GameRecord(
        id=row["id"],
        title=row["title"],
        description=row["description"],
        code=row["code"],
        library=row["library"],
        createdAt=datetime.fromisoformat(row["created_at"]),
        updatedAt=datetime.fromisoformat(row["updated_at"]),
    )


class GameStore:
    def __init__(self, path: str):
        self.path = path

    @contextmanager
    def _connect(self):
        conn = sqlite3.connect(self.path, timeout=10)
        conn.row_factory = _dict_factory
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def init(self) -> None:
        """Create the games table if needed."""
        with self._connect() as conn:
            conn.executescript(_SCHEMA)
        logger.info(f"Game store ready at {self.path}")

    def create(
        self, user_id: str, title: str, description: str, code: str, library: str
    ) -> GameRecord:
        now = datetime.now(timezone.utc).isoformat()
        game_id = uuid.uuid4().hex
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO games (id, user_id, title, description, code, library, "
                "created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (game_id, user_id, title, description, code, library, now, now),
            )
            row = conn.execute("SELECT * FROM games WHERE id = ?", (game_id,)).fetchone()
        logger.info(f"Game saved: '{title}' for user {user_id}")
        return _to_record(row)

    def list_for_owner(self, user_id: str) -> list[GameRecord]:
        """All games owned by user_id, newest first."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM games WHERE user_id = ? ORDER BY created_at DESC, rowid DESC",
                (user_id,),
            ).fetchall()
        logger.info(f"Fetched {len(rows)} games for user {user_id}")
        return [_to_record(row) for row in rows]

    def delete_for_owner(self, user_id: str, game_id: str) -> GameRecord | None:
        """Delete a game only if user_id owns it. Returns the deleted game or None."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM games WHERE id = ? AND user_id = ?", (game_id, user_id)
            ).fetchone()
            if row is None:
                return None
            conn.execute("DELETE FROM games WHERE id = ?", (game_id,))
        logger.info(f"Game deleted: '{row['title']}' by user {user_id}")
        return _to_record(row)
