"""Settings store package — the enabled flag and cumulative session counts.

  - protocol.py       — SettingsStore Protocol, StoreChange, StoreClosedError
  - memory.py         — InMemorySettingsStore (default; per-process session)
  - sqlite_backend.py — LocalSQLiteSettingsStore (aiosqlite, survives restarts)
  - factory.py        — create_settings_store(config)
"""

from promptshield.store.protocol import SettingsStore, StoreChange, StoreClosedError

__all__ = ["SettingsStore", "StoreChange", "StoreClosedError"]
