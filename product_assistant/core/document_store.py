"""
Lightweight SQLite document store for custom key/value records and conversations.

Creates data/store.db (STORE_DB_PATH). Tables:
  custom_data (key, loader_id, value, updated_at)        -- response cache + memory summaries
  conversations (conversation_id, created_at)
  conversation_entries (id, conversation_id, role, content, timestamp)
"""

import json
import logging
import sqlite3
from datetime import datetime, timezone
from typing import Any

from product_assistant.core.config import STORE_DB_PATH

logger = logging.getLogger(__name__)

_DB_PATH = STORE_DB_PATH


def _get_conn() -> sqlite3.Connection:
    _DB_PATH.parent.mkdir(parents=True, exist_ok=True)
    return sqlite3.connect(str(_DB_PATH))


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def init_db() -> None:
    """Create the store tables if they do not exist."""
    conn = _get_conn()
    try:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS custom_data (
                key TEXT PRIMARY KEY,
                loader_id TEXT NOT NULL,
                value TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );
            CREATE INDEX IF NOT EXISTS idx_custom_data_loader ON custom_data (loader_id);
            CREATE TABLE IF NOT EXISTS conversations (
                conversation_id TEXT PRIMARY KEY,
                created_at TEXT NOT NULL
            );
            CREATE TABLE IF NOT EXISTS conversation_entries (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                conversation_id TEXT NOT NULL,
                role TEXT NOT NULL,
                content TEXT NOT NULL,
                timestamp TEXT NOT NULL
            );
            CREATE INDEX IF NOT EXISTS idx_entries_conversation ON conversation_entries (conversation_id);
            """
        )
        conn.commit()
    finally:
        conn.close()


# --- Custom key/value data ---

def custom_get(key: str) -> dict[str, Any] | None:
    """Return the record stored under key, or None."""
    init_db()
    conn = _get_conn()
    try:
        row = conn.execute("SELECT value FROM custom_data WHERE key = ?", (key,)).fetchone()
    finally:
        conn.close()
    if row is None:
        return None
    return json.loads(row[0])


def custom_set(loader_id: str, key: str, value: dict[str, Any]) -> None:
    """Insert or replace the record under key, tagged with loader_id (the owning user)."""
    init_db()
    conn = _get_conn()
    try:
        conn.execute(
            """
            INSERT INTO custom_data (key, loader_id, value, updated_at) VALUES (?, ?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET
                loader_id = excluded.loader_id,
                value = excluded.value,
                updated_at = excluded.updated_at
            """,
            (key, loader_id, json.dumps(value, default=str), _now()),
        )
        conn.commit()
    finally:
        conn.close()
    logger.debug("[document_store:custom_set] loader_id=%s key=%s", loader_id, key[:80])


def custom_delete_by_loader(loader_id: str) -> int:
    """Delete every custom record owned by loader_id. Returns rows removed."""
    init_db()
    conn = _get_conn()
    try:
        cur = conn.execute("DELETE FROM custom_data WHERE loader_id = ?", (loader_id,))
        conn.commit()
        removed = cur.rowcount
    finally:
        conn.close()
    logger.info("[document_store] removed %d custom records for loader_id=%s", removed, loader_id)
    return removed


# --- Conversations ---

def has_conversation(conversation_id: str) -> bool:
    init_db()
    conn = _get_conn()
    try:
        row = conn.execute(
            "SELECT 1 FROM conversations WHERE conversation_id = ?", (conversation_id,)
        ).fetchone()
    finally:
        conn.close()
    return row is not None


def add_conversation(conversation_id: str) -> None:
    """Create an empty conversation. No-op if it already exists."""
    init_db()
    conn = _get_conn()
    try:
        conn.execute(
            "INSERT OR IGNORE INTO conversations (conversation_id, created_at) VALUES (?, ?)",
            (conversation_id, _now()),
        )
        conn.commit()
    finally:
        conn.close()


def get_conversation(conversation_id: str) -> dict[str, Any] | None:
    """Return {"conversationId", "entries"} with entries oldest first, or None if unknown."""
    if not has_conversation(conversation_id):
        return None
    conn = _get_conn()
    try:
        rows = conn.execute(
            "SELECT role, content, timestamp FROM conversation_entries "
            "WHERE conversation_id = ? ORDER BY id ASC",
            (conversation_id,),
        ).fetchall()
    finally:
        conn.close()
    return {
        "conversationId": conversation_id,
        "entries": [{"role": r[0], "content": r[1], "timestamp": r[2]} for r in rows],
    }


def add_entry_to_conversation(conversation_id: str, entry: dict[str, Any]) -> None:
    """Append one entry ({role, content, timestamp?}). Creates the conversation if needed."""
    add_conversation(conversation_id)
    timestamp = entry.get("timestamp") or _now()
    if isinstance(timestamp, datetime):
        timestamp = timestamp.isoformat()
    conn = _get_conn()
    try:
        conn.execute(
            "INSERT INTO conversation_entries (conversation_id, role, content, timestamp) VALUES (?, ?, ?, ?)",
            (conversation_id, entry.get("role") or "", entry.get("content") or "", str(timestamp)),
        )
        conn.commit()
    finally:
        conn.close()
