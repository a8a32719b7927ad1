"""Settings store factory — backend selection and initialization.

Backend selection:
  1. config.store.backend == "sqlite" (or PROMPTSHIELD_STORE_PATH set, which
     load_config() folds into the config): LocalSQLiteSettingsStore
  2. Otherwise: InMemorySettingsStore (default)

LocalSQLiteSettingsStore.initialize() raises RuntimeError on an incompatible
schema version; that propagates so the caller refuses to start rather than
silently rewriting someone else's database.
"""

from __future__ import annotations

from promptshield.config import Config
from promptshield.store.protocol import SettingsStore
from promptshield.utils.logger import get_logger

logger = get_logger(__name__)


async def create_settings_store(config: Config) -> SettingsStore:
    """Create and initialize the configured settings store.

    Raises:
        RuntimeError: If the sqlite schema version is incompatible.
    """
    if config.store.backend == "sqlite":
        return await _create_local_sqlite_store(config.store.path)
    return _create_memory_store()


def _create_memory_store() -> SettingsStore:
    from promptshield.store.memory import InMemorySettingsStore

    logger.info("settings_store_selected", backend="InMemorySettingsStore")
    return InMemorySettingsStore()


async def _create_local_sqlite_store(db_path: str) -> SettingsStore:
    from promptshield.store.sqlite_backend import LocalSQLiteSettingsStore

    store = LocalSQLiteSettingsStore(db_path=db_path)
    await store.initialize()
    logger.info(
        "settings_store_selected",
        backend="LocalSQLiteSettingsStore",
        db_path=store.db_path,
    )
    return store
