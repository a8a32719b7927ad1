"""Capability interfaces between the guard and an uncontrolled host page.

Both are best-effort heuristics over a third-party DOM. A miss (``None`` /
``False``) means "nothing to do", never an error.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol, runtime_checkable

from promptshield.models.events import TriggerEvent


@runtime_checkable
class FieldLocator(Protocol):
    def find_active_text_field(self) -> Optional[Any]:
        """The prompt input currently in use, or None."""
        ...

    def read_text(self, field: Any) -> str:
        """Current text of ``field`` ("" when unreadable)."""
        ...

    def is_send_like_control(self, element: Any) -> bool:
        """Whether activating ``element`` looks like submitting the prompt."""
        ...

    def has_focus(self, field: Any) -> bool:
        """Whether keyboard focus is inside ``field``."""
        ...

    def find_send_control(self) -> Optional[Any]:
        """The page's send button, for the keyboard replay fallback."""
        ...


@runtime_checkable
class HostPage(Protocol):
    def dispatch(self, event: TriggerEvent) -> None:
        """Synchronously deliver ``event`` through the page's listeners.

        Capture listeners (the guard) run first; the page's own handlers run
        afterwards unless propagation was stopped.
        """
        ...

    def focus(self, field: Any) -> None:
        ...
