"""SessionSummaryView — read side of the settings store.

Session counts cross a trust boundary here: whatever the store hands back is
treated as untrusted and filtered through ``render_counts`` before display.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

from promptshield.constants import STORE_KEY_ENABLED, STORE_KEY_SESSION_COUNTS
from promptshield.models.scan import Category, sanitize_counts
from promptshield.store.protocol import SettingsStore, StoreChange
from promptshield.utils.logger import get_logger

logger = get_logger(__name__)

EMPTY_MESSAGE = "No warnings yet"

_CATEGORY_ORDER = {category: index for index, category in enumerate(Category)}


def render_counts(raw: Any) -> list[tuple[Category, int]]:
    """Display rows from an untrusted counts mapping.

    Unknown labels, booleans, non-numbers and non-positive values are dropped;
    floats are floored. Sorted by descending count, ties in category order.
    """
    counts = sanitize_counts(raw)
    return sorted(counts.items(), key=lambda item: (-item[1], _CATEGORY_ORDER[item[0]]))


class SessionSummaryView:
    """Enabled toggle plus per-category session counts.

    Usage:
        view = SessionSummaryView(store)
        await view.open()
        view.rows            # [(Category.PASSWORD, 3), ...]
        await view.toggle(False)
        await view.close()
    """

    def __init__(self, store: SettingsStore) -> None:
        self._store = store
        self._enabled = True
        self._rows: list[tuple[Category, int]] = []
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def rows(self) -> list[tuple[Category, int]]:
        return list(self._rows)

    @property
    def empty_message(self) -> Optional[str]:
        return None if self._rows else EMPTY_MESSAGE

    async def open(self) -> None:
        self._enabled = await self._store.get_enabled()
        self._rows = render_counts(await self._store.get_session_counts())
        if self._unsubscribe is None:
            self._unsubscribe = self._store.subscribe(self._on_change)
        logger.debug("summary_opened", enabled=self._enabled, rows=len(self._rows))

    async def toggle(self, enabled: bool) -> None:
        await self._store.set_enabled(enabled)
        self._enabled = await self._store.get_enabled()

    async def refresh(self) -> None:
        self._rows = render_counts(await self._store.get_session_counts())

    async def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_change(self, change: StoreChange) -> None:
        if change.key == STORE_KEY_ENABLED:
            self._enabled = change.new_value is not False
        elif change.key == STORE_KEY_SESSION_COUNTS:
            self._rows = render_counts(change.new_value)
