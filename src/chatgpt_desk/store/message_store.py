from __future__ import annotations

import contextlib
import sqlite3
import threading
from datetime import UTC, datetime, timedelta
from pathlib import Path

from loguru import logger

from chatgpt_desk.store.models import Message, Role

_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S.%f"


class MessageStoreError(Exception):
    pass


def _parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _format_timestamp(value: datetime) -> str:
    return value.astimezone(UTC).strftime(_TIMESTAMP_FORMAT)


class MessageStore:
    """Append-only chat log kept in a single SQLite table.

    Timestamps are assigned here, in UTC with microsecond precision, and are
    strictly increasing across appends so that ordering by timestamp replays
    the conversation in insertion order. The connection is shared between the
    shell and background tasks; every statement runs under one lock.
    """

    def __init__(self, db_path: str):
        self._db_path = Path(db_path)
        self._lock = threading.Lock()
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(self._db_path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._initialize_schema()
            self._last_timestamp = self._load_last_timestamp()
        except (OSError, sqlite3.Error) as ex:
            raise MessageStoreError(f"Cannot open message store at {self._db_path}: {ex}") from ex

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def append(self, role: Role | str, content: str) -> Message:
        role = Role(role)
        with self._lock:
            timestamp = self._next_timestamp()
            try:
                cursor = self._conn.execute(
                    "INSERT INTO messages (role, content, timestamp) VALUES (?, ?, ?)",
                    (role.value, content, _format_timestamp(timestamp)),
                )
                self._conn.commit()
            except sqlite3.Error as ex:
                with contextlib.suppress(sqlite3.Error):
                    self._conn.rollback()
                raise MessageStoreError(f"Failed to append {role.value} message: {ex}") from ex
            self._last_timestamp = timestamp
            message_id = int(cursor.lastrowid)

        logger.debug(f"Message appended: id={message_id}, role={role.value}, chars={len(content)}")
        return Message(id=message_id, role=role, content=content, timestamp=timestamp)

    def list_all(self) -> list[Message]:
        with self._lock:
            try:
                rows = self._conn.execute(
                    "SELECT id, role, content, timestamp FROM messages ORDER BY timestamp ASC, id ASC"
                ).fetchall()
            except sqlite3.Error as ex:
                raise MessageStoreError(f"Failed to read messages: {ex}") from ex

        messages: list[Message] = []
        for row in rows:
            try:
                role = Role(row["role"])
                timestamp = _parse_timestamp(str(row["timestamp"]))
            except ValueError:
                logger.warning(f"Skipping unreadable message row id={row['id']}")
                continue
            messages.append(
                Message(id=int(row["id"]), role=role, content=str(row["content"]), timestamp=timestamp)
            )
        return messages

    def count(self) -> int:
        with self._lock:
            row = self._conn.execute("SELECT COUNT(*) AS c FROM messages").fetchone()
        return int(row["c"])

    def _next_timestamp(self) -> datetime:
        now = datetime.now(UTC)
        if self._last_timestamp is not None and now <= self._last_timestamp:
            now = self._last_timestamp + timedelta(microseconds=1)
        return now

    def _load_last_timestamp(self) -> datetime | None:
        row = self._conn.execute("SELECT MAX(timestamp) AS last FROM messages").fetchone()
        if row is None or row["last"] is None:
            return None
        try:
            return _parse_timestamp(str(row["last"]))
        except ValueError:
            logger.warning(f"Ignoring unparseable timestamp in message store: {row['last']!r}")
            return None

    def _initialize_schema(self) -> None:
        self._conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS messages (
                id INTEGER PRIMARY KEY,
                role TEXT NOT NULL,
                content TEXT NOT NULL,
                timestamp DATETIME DEFAULT CURRENT_TIMESTAMP
            );

            CREATE INDEX IF NOT EXISTS idx_messages_timestamp
                ON messages(timestamp, id);
            """
        )
        self._conn.commit()
