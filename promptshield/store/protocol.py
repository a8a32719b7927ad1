"""SettingsStore Protocol + change notification types.

The store owns exactly two values:

  enabled        — bool, default True
  sessionCounts  — Category label → cumulative count

Every method is fallible in the underlying environment (the host context may
be torn down mid-call) but NEVER raises to the caller: implementations catch
everything, log it, and fall back to safe defaults (enabled=True, empty
counts, dropped writes). Callers on the guard path therefore never wrap store
calls in try/except.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Protocol, runtime_checkable

from promptshield.models.scan import Category
from promptshield.utils.logger import get_logger

logger = get_logger(__name__)


class StoreClosedError(RuntimeError):
    """Raised inside a backend used after close() — the teardown case.

    Never escapes a public SettingsStore method.
    """


@dataclass(frozen=True)
class StoreChange:
    """One change notification.

    key is ``"enabled"`` or ``"sessionCounts"``; new_value is the value after
    the write (bool, or a sanitized ``dict[Category, int]``).
    """

    key: str
    new_value: Any


StoreListener = Callable[[StoreChange], None]


@runtime_checkable
class SettingsStore(Protocol):
    """Persistence collaborator for the guard and the popup view."""

    async def get_enabled(self) -> bool:
        """Current enabled flag. True on any failure."""
        ...

    async def set_enabled(self, enabled: bool) -> None:
        """Persist the enabled flag and notify listeners. No-op on failure."""
        ...

    async def add_session_counts(self, counts: Mapping[Category, int]) -> None:
        """Additively merge ``counts`` into the session counts.

        Re-reads the current counts immediately before combining; never a
        read-modify-write across an awaited boundary.
        """
        ...

    async def get_session_counts(self) -> dict[Category, int]:
        """Sanitized session counts. Empty on any failure."""
        ...

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        """Register a change listener. Returns an unsubscribe callable."""
        ...

    async def close(self) -> None:
        ...


class ListenerRegistry:
    """Shared change-notification fan-out for store implementations."""

    def __init__(self) -> None:
        self._listeners: list[StoreListener] = []

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def notify(self, change: StoreChange) -> None:
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception as exc:  # noqa: BLE001
                logger.warning(
                    "store_listener_failed",
                    key=change.key,
                    error=f"{type(exc).__name__}: {exc}",
                )

    def clear(self) -> None:
        self._listeners.clear()

    def __len__(self) -> int:
        return len(self._listeners)
