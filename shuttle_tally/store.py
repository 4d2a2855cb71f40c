"""
Local key-value store on SQLite.

Three independent JSON records live here: the roster, the session history
and the court colours. Reads fall back to defaults and writes are
best-effort: failures are logged and reported as False, never raised, so
the in-memory session carries on when the disk misbehaves.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

import aiosqlite

from .constants import COURT_COLORS_KEY, COURT_COUNT, HISTORY_KEY, ROSTER_KEY
from .history import sessions_from_json
from .logging_config import get_logger
from .models import Session

log = get_logger(__name__)

# Global database path (set by init_db)
DB_PATH = "shuttle_tally.sqlite"

# Keeps a shared in-memory database alive between short-lived connections
_anchor: Optional[aiosqlite.Connection] = None

_STORE_ERRORS = (aiosqlite.Error, OSError)


def _connect() -> aiosqlite.Connection:
    return aiosqlite.connect(DB_PATH, uri=DB_PATH.startswith("file:"))


def is_ephemeral(path: Optional[str] = None) -> bool:
    path = path or DB_PATH
    return path == ":memory:" or (path.startswith("file:") and "memory" in path)


async def init_db(db_path: str = "shuttle_tally.sqlite") -> None:
    """Create the key-value table if needed and remember the path."""
    global DB_PATH, _anchor
    if db_path == ":memory:":
        # Every plain :memory: connection is a separate database
        db_path = "file::memory:?cache=shared"
    DB_PATH = db_path

    if is_ephemeral(db_path) and _anchor is None:
        _anchor = await _connect()

    async with _connect() as db:
        await db.execute(
            """
            CREATE TABLE IF NOT EXISTS kv_store (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
            """
        )
        await db.commit()
    log.debug("Store ready at %s", DB_PATH)


async def close_db() -> None:
    global _anchor
    if _anchor is not None:
        await _anchor.close()
        _anchor = None


async def _read_raw(key: str) -> Optional[str]:
    async with _connect() as db:
        async with db.execute("SELECT value FROM kv_store WHERE key = ?", (key,)) as cursor:
            row = await cursor.fetchone()
            return row[0] if row else None


async def _write_raw(key: str, raw: str) -> None:
    now = datetime.now(timezone.utc).isoformat()
    async with _connect() as db:
        await db.execute(
            """
            INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
            """,
            (key, raw, now),
        )
        await db.commit()


async def _with_schema_retry(op, *args):
    try:
        return await op(*args)
    except aiosqlite.OperationalError as e:
        if "no such table" not in str(e):
            raise
        # Ensure schema then retry once
        await init_db(DB_PATH)
        return await op(*args)


async def get_json(key: str, default: Any = None) -> Any:
    """Read and decode a record; `default` when absent or unreadable."""
    try:
        raw = await _with_schema_retry(_read_raw, key)
    except _STORE_ERRORS:
        log.error("Failed to read %r from store", key, exc_info=True)
        return default
    if raw is None:
        return default
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        log.warning("Stored %r is not valid JSON; using default", key)
        return default


async def set_json(key: str, value: Any) -> bool:
    """Encode and write a record. Returns False (after logging) on failure."""
    try:
        raw = json.dumps(value, ensure_ascii=False)
        await _with_schema_retry(_write_raw, key, raw)
    except (TypeError, ValueError, *_STORE_ERRORS):
        log.error("Failed to save %r to store", key, exc_info=True)
        return False
    log.debug("Saved %r (%s bytes)", key, len(raw))
    return True


async def delete(key: str) -> bool:
    async def _delete(k: str) -> None:
        async with _connect() as db:
            await db.execute("DELETE FROM kv_store WHERE key = ?", (k,))
            await db.commit()

    try:
        await _with_schema_retry(_delete, key)
    except _STORE_ERRORS:
        log.error("Failed to delete %r from store", key, exc_info=True)
        return False
    return True


# --- Roster ---

async def load_roster() -> Optional[list[dict]]:
    """Stored roster stubs, or None when nothing usable is stored."""
    data = await get_json(ROSTER_KEY)
    if not isinstance(data, list):
        if data is not None:
            log.warning("Stored roster is not a list; falling back to defaults")
        return None
    return [d for d in data if isinstance(d, dict) and d.get("id")]


async def save_roster(stubs: Iterable[dict]) -> bool:
    return await set_json(ROSTER_KEY, list(stubs))


# --- History ---

async def load_history() -> list[Session]:
    return sessions_from_json(await get_json(HISTORY_KEY))


async def save_history(sessions: Iterable[Session]) -> bool:
    return await set_json(HISTORY_KEY, [s.to_dict() for s in sessions])


async def clear_history() -> bool:
    return await delete(HISTORY_KEY)


# --- Court colours ---

async def load_court_colors() -> dict[int, str]:
    data = await get_json(COURT_COLORS_KEY, {})
    if not isinstance(data, dict):
        return {}
    colors = {}
    for k, v in data.items():
        try:
            idx = int(k)
        except (TypeError, ValueError):
            continue
        if 0 <= idx < COURT_COUNT and isinstance(v, str):
            colors[idx] = v
    return colors


async def save_court_colors(colors: dict[int, str]) -> bool:
    return await set_json(COURT_COLORS_KEY, {str(k): v for k, v in colors.items()})
