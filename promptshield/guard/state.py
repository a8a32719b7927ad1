"""Guard state types.

Lifecycle (initial ``IDLE``):

    IDLE ──trigger + non-empty scan──▶ AWAITING_DECISION
    AWAITING_DECISION ──confirm-send──▶ REPLAY_ARMED ──replay observed──▶ IDLE
    AWAITING_DECISION ──edit-first / dismiss──▶ IDLE
    IDLE ──proactive confirm-send──▶ REPLAY_ARMED (text-bound) ──next trigger──▶ IDLE

A ``ReplayToken`` is single-use and bound to what it was armed for: either
one action id (a replay the guard itself dispatches) or a digest of the field
text the user confirmed from a proactive warning. An unrelated trigger can
never spend it.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from promptshield.models.events import KeyChord, TriggerEvent, TriggerKind


class GuardState(str, Enum):
    IDLE = "idle"
    AWAITING_DECISION = "awaiting_decision"
    REPLAY_ARMED = "replay_armed"


def text_digest(text: str) -> str:
    """SHA-256 of the field text; the text itself is never retained."""
    return hashlib.sha256(text.encode("utf-8", "surrogatepass")).hexdigest()


@dataclass(frozen=True)
class PendingAction:
    """A suspended native action awaiting the user's decision.

    ``chord`` is set for keyboard actions; ``target`` is the clicked control
    for pointer actions and the field for keyboard ones.
    """

    action_id: str
    kind: TriggerKind
    target: Any
    field: Any
    chord: Optional[KeyChord] = None

    def replay_event(self) -> TriggerEvent:
        """The equivalent event to re-dispatch, tagged with this action's id."""
        if self.kind is TriggerKind.POINTER:
            return TriggerEvent.click(self.target, replay_token=self.action_id)
        return TriggerEvent.keydown(
            self.field,
            self.chord or KeyChord(),
            replay_token=self.action_id,
        )


@dataclass(frozen=True)
class ReplayToken:
    action_id: Optional[str] = None
    digest: Optional[str] = None

    @classmethod
    def for_action(cls, action_id: str) -> "ReplayToken":
        return cls(action_id=action_id)

    @classmethod
    def for_text(cls, text: str) -> "ReplayToken":
        return cls(digest=text_digest(text))

    @property
    def text_bound(self) -> bool:
        return self.digest is not None

    def matches_event(self, event: TriggerEvent) -> bool:
        return self.action_id is not None and event.replay_token == self.action_id

    def matches_text(self, text: str) -> bool:
        return self.digest is not None and text_digest(text) == self.digest
