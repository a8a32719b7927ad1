"""Host-neutral event shapes observed by the submission guard.

A ``TriggerEvent`` stands for one native user action as the host page
delivers it to capture-phase listeners: a pointer activation on some element,
or a keydown carrying a ``KeyChord``. Listeners cancel the native effect via
``prevent_default()`` / ``stop_propagation()`` exactly as a DOM listener would.

Events re-dispatched by the guard carry ``replay_token`` so the guard can
recognise its own replay and let it through exactly once.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class TriggerKind(str, Enum):
    POINTER = "pointer"
    KEYBOARD = "keyboard"


@dataclass(frozen=True)
class KeyChord:
    """A key plus its modifier state."""

    key: str = "Enter"
    shift: bool = False
    ctrl: bool = False
    meta: bool = False

    def is_confirmation(self) -> bool:
        """Enter without Shift, or Enter with Ctrl/Cmd (Shift+Enter is a newline)."""
        if self.key != "Enter":
            return False
        return self.ctrl or self.meta or not self.shift


@dataclass
class TriggerEvent:
    kind: TriggerKind
    target: Any
    chord: Optional[KeyChord] = None
    replay_token: Optional[str] = None
    default_prevented: bool = False
    propagation_stopped: bool = False

    @classmethod
    def click(cls, target: Any, replay_token: Optional[str] = None) -> "TriggerEvent":
        return cls(kind=TriggerKind.POINTER, target=target, replay_token=replay_token)

    @classmethod
    def keydown(
        cls,
        target: Any,
        chord: KeyChord,
        replay_token: Optional[str] = None,
    ) -> "TriggerEvent":
        return cls(
            kind=TriggerKind.KEYBOARD,
            target=target,
            chord=chord,
            replay_token=replay_token,
        )

    def prevent_default(self) -> None:
        self.default_prevented = True

    def stop_propagation(self) -> None:
        self.propagation_stopped = True

    @property
    def cancelled(self) -> bool:
        return self.default_prevented or self.propagation_stopped
