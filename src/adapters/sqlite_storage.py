"""SQLite storage adapter.

Implements the core ChatIdStoragePort using a simple SQLite database.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Mapping

LOGGER = logging.getLogger(__name__)


class SQLiteStorage:
    """Thin SQLite wrapper that satisfies the ChatIdStoragePort contract."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        """Create tables if they do not exist.

        Tables:
        - chat_ids: Telegram group title -> chat id, learned at runtime
        """

        with self._connect() as conn:
            # chat_ids is the discovery table. Titles come from the groups
            # themselves, ids are Telethon's marked chat ids (negative).
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS chat_ids (
                    group_title TEXT PRIMARY KEY,
                    chat_id INTEGER NOT NULL
                )
                """
            )

    def load_chat_ids(self) -> dict[str, int]:
        """Return every known group title and its chat id."""

        with self._connect() as conn:
            rows = conn.execute("SELECT group_title, chat_id FROM chat_ids").fetchall()
        chat_ids = {row["group_title"]: int(row["chat_id"]) for row in rows}
        for title, chat_id in sorted(chat_ids.items()):
            LOGGER.info("Loaded Telegram group %r with id %s", title, chat_id)
        return chat_ids

    def save_chat_ids(self, chat_ids: Mapping[str, int]) -> None:
        """Rewrite the whole table in one transaction."""

        with self._connect() as conn:
            conn.execute("DELETE FROM chat_ids")
            conn.executemany(
                "INSERT INTO chat_ids (group_title, chat_id) VALUES (?, ?)",
                sorted(chat_ids.items()),
            )
