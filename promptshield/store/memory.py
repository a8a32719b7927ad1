"""InMemorySettingsStore — per-process settings, the default backend.

Counts live only as long as the process, which matches "session" semantics.
After close() every call degrades to defaults, mirroring a torn-down host
context.
"""

from __future__ import annotations

from typing import Callable, Mapping

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


class InMemorySettingsStore:
    """Dict-backed SettingsStore.

    ``seed_counts`` accepts untrusted label-keyed data (as if re-read from
    storage) and is sanitized on every read, never trusted.
    """

    def __init__(self, enabled: bool = True, seed_counts: Mapping | None = None) -> None:
        self._enabled: bool = enabled
        self._counts: dict = dict(seed_counts or {})
        self._listeners = ListenerRegistry()
        self._closed = False

    def _check_open(self) -> None:
        if self._closed:
            raise StoreClosedError("settings store is closed")

    async def get_enabled(self) -> bool:
        try:
            self._check_open()
            return self._enabled is not False
        except Exception as exc:  # noqa: BLE001
            logger.debug("store_get_enabled_failed", error=str(exc))
            return True

    async def set_enabled(self, enabled: bool) -> None:
        try:
            self._check_open()
            self._enabled = bool(enabled)
        except Exception as exc:  # noqa: BLE001
            logger.debug("store_set_enabled_failed", error=str(exc))
            return
        self._listeners.notify(StoreChange(STORE_KEY_ENABLED, self._enabled))

    async def add_session_counts(self, counts: Mapping[Category, int]) -> None:
        try:
            self._check_open()
            current = sanitize_counts(self._counts)
            for category, n in sanitize_counts(counts).items():
                current[category] = current.get(category, 0) + n
            self._counts = {c.value: n for c, n in current.items()}
        except Exception as exc:  # noqa: BLE001
            logger.debug("store_add_session_counts_failed", error=str(exc))
            return
        self._listeners.notify(StoreChange(STORE_KEY_SESSION_COUNTS, current))

    async def get_session_counts(self) -> dict[Category, int]:
        try:
            self._check_open()
            return sanitize_counts(self._counts)
        except Exception as exc:  # noqa: BLE001
            logger.debug("store_get_session_counts_failed", error=str(exc))
            return {}

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        return self._listeners.subscribe(listener)

    async def close(self) -> None:
        self._closed = True
        self._listeners.clear()
