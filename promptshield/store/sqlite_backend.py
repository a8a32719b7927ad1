"""LocalSQLiteSettingsStore — aiosqlite-based async settings store.

Uses aiosqlite EXCLUSIVELY. The stdlib sqlite3 synchronous module is
PROHIBITED in promptshield/store/ — the guard runs on the event loop and must
never block it on disk I/O.

Features:
  - WAL mode: PRAGMA journal_mode=WAL (readers in other contexts never block the writer)
  - Schema version guard: PRAGMA user_version=1 — RuntimeError on mismatch, refuse startup
  - Long-lived connection: opened in initialize(), closed in close()
  - Exactly two rows in ``settings``: ``enabled`` and ``sessionCounts`` (JSON values)
  - add_session_counts(): re-read + merge + write inside one BEGIN IMMEDIATE
    transaction, so concurrent writers serialize instead of losing updates
  - Public methods NEVER raise — failures are logged and degrade to defaults
"""

from __future__ import annotations

import asyncio
import json
import os
from typing import Any, Callable, Mapping, Optional

import aiosqlite

from promptshield.constants import STORE_KEY_ENABLED, STORE_KEY_SESSION_COUNTS
from promptshield.models.scan import Category, sanitize_counts
from promptshield.store.protocol import (
    ListenerRegistry,
    StoreChange,
    StoreClosedError,
    StoreListener,
)
from promptshield.utils.logger import get_logger

logger = get_logger(__name__)

# ─── Schema DDL ───────────────────────────────────────────────────────────────

_CREATE_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS settings (
    key     TEXT PRIMARY KEY CHECK(key IN ('enabled', 'sessionCounts')),
    value   TEXT NOT NULL
);
"""

_SCHEMA_VERSION = 1

_UPSERT_SQL = (
    "INSERT INTO settings (key, value) VALUES (?, ?) "
    "ON CONFLICT(key) DO UPDATE SET value = excluded.value"
)


def _decode(raw: Optional[str]) -> Any:
    """JSON-decode a stored value; malformed rows read as missing."""
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("store_value_malformed")
        return None


class LocalSQLiteSettingsStore:
    """Async SQLite SettingsStore using aiosqlite exclusively.

    Usage:
        store = LocalSQLiteSettingsStore("~/.promptshield/settings.db")
        await store.initialize()   # raises RuntimeError on schema version mismatch
        await store.add_session_counts(result)
        counts = await store.get_session_counts()
        await store.close()
    """

    def __init__(self, db_path: str = "~/.promptshield/settings.db") -> None:
        self._db_path: str = os.path.expanduser(db_path)
        self._db: Optional[aiosqlite.Connection] = None
        self._listeners = ListenerRegistry()
        # One connection is shared by every coroutine; BEGIN IMMEDIATE must not nest
        self._txn_lock = asyncio.Lock()

    @property
    def db_path(self) -> str:
        return self._db_path

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    async def initialize(self) -> None:
        """Open the connection, enable WAL mode, and create/verify the schema.

        PRAGMA user_version:
          - 0: fresh DB → create schema, set user_version=1
          - 1: compatible schema → no-op (idempotent)
          - other: RuntimeError

        Raises:
            RuntimeError: If PRAGMA user_version is neither 0 nor 1.
        """
        parent_dir = os.path.dirname(self._db_path)
        if parent_dir:
            os.makedirs(parent_dir, exist_ok=True)

        # isolation_level=None: transactions are managed explicitly below
        self._db = await aiosqlite.connect(self._db_path, isolation_level=None)
        self._db.row_factory = aiosqlite.Row

        await self._db.execute("PRAGMA journal_mode=WAL;")

        cursor = await self._db.execute("PRAGMA user_version;")
        row = await cursor.fetchone()
        current_version: int = row[0] if row else 0

        if current_version == 0:
            await self._db.executescript(_CREATE_SCHEMA_SQL)
            await self._db.execute(f"PRAGMA user_version = {_SCHEMA_VERSION};")
            logger.info(
                "settings_db_schema_created",
                db_path=self._db_path,
                schema_version=_SCHEMA_VERSION,
            )
        elif current_version == _SCHEMA_VERSION:
            logger.info(
                "settings_db_schema_ok",
                db_path=self._db_path,
                schema_version=current_version,
            )
        else:
            await self._db.close()
            self._db = None
            raise RuntimeError(
                f"Unsupported settings database schema version: {current_version}. "
                f"Delete {self._db_path} to reset."
            )

    async def close(self) -> None:
        """Close the connection. Subsequent calls degrade to defaults."""
        self._listeners.clear()
        if self._db is None:
            return
        try:
            await self._db.close()
        except Exception as exc:  # noqa: BLE001
            logger.warning("settings_db_close_failed", error=str(exc))
        finally:
            self._db = None

    def _conn(self) -> aiosqlite.Connection:
        if self._db is None:
            raise StoreClosedError("settings store is not initialized or already closed")
        return self._db

    async def _read(self, db: aiosqlite.Connection, key: str) -> Any:
        cursor = await db.execute("SELECT value FROM settings WHERE key = ?", (key,))
        row = await cursor.fetchone()
        return _decode(row["value"] if row else None)

    # ── Enabled flag ──────────────────────────────────────────────────────────

    async def get_enabled(self) -> bool:
        try:
            value = await self._read(self._conn(), STORE_KEY_ENABLED)
        except Exception as exc:  # noqa: BLE001
            logger.warning("store_get_enabled_failed", error=f"{type(exc).__name__}: {exc}")
            return True
        return value is not False

    async def set_enabled(self, enabled: bool) -> None:
        enabled = bool(enabled)
        try:
            await self._conn().execute(_UPSERT_SQL, (STORE_KEY_ENABLED, json.dumps(enabled)))
        except Exception as exc:  # noqa: BLE001
            logger.warning("store_set_enabled_failed", error=f"{type(exc).__name__}: {exc}")
            return
        self._listeners.notify(StoreChange(STORE_KEY_ENABLED, enabled))

    # ── Session counts ────────────────────────────────────────────────────────

    async def add_session_counts(self, counts: Mapping[Category, int]) -> None:
        delta = sanitize_counts(counts)
        if not delta:
            return
        try:
            db = self._conn()
            async with self._txn_lock:
                await db.execute("BEGIN IMMEDIATE")
                try:
                    current = sanitize_counts(await self._read(db, STORE_KEY_SESSION_COUNTS))
                    for category, n in delta.items():
                        current[category] = current.get(category, 0) + n
                    payload = json.dumps({c.value: n for c, n in current.items()})
                    await db.execute(_UPSERT_SQL, (STORE_KEY_SESSION_COUNTS, payload))
                    await db.execute("COMMIT")
                except BaseException:
                    await db.execute("ROLLBACK")
                    raise
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "store_add_session_counts_failed",
                error=f"{type(exc).__name__}: {exc}",
                categories=[c.value for c in delta],
            )
            return
        self._listeners.notify(StoreChange(STORE_KEY_SESSION_COUNTS, current))

    async def get_session_counts(self) -> dict[Category, int]:
        try:
            raw = await self._read(self._conn(), STORE_KEY_SESSION_COUNTS)
        except Exception as exc:  # noqa: BLE001
            logger.warning("store_get_session_counts_failed", error=f"{type(exc).__name__}: {exc}")
            return {}
        return sanitize_counts(raw)

    # ── Notifications ─────────────────────────────────────────────────────────

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        return self._listeners.subscribe(listener)
