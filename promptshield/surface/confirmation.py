"""ConfirmationSurface contract and the in-process DeferredSurface.

Contract (every implementation):
  - ``present(result, on_confirm_send, on_edit_first, on_dismiss)`` renders
    synchronously and returns; the decision arrives later.
  - Exactly one of the three callbacks fires, exactly once.
  - Presenting while another prompt is live tears the old one down WITHOUT
    firing any of its callbacks (latest trigger wins; no stacking).
  - ``teardown()`` removes the live prompt, again without firing callbacks.

Rendering is the host's business. ``DeferredSurface`` keeps the live prompt
in memory and resolves it when the host (or a test) calls ``decide()``.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional, Protocol, runtime_checkable

from promptshield.models.scan import ScanResult
from promptshield.utils.logger import get_logger

logger = get_logger(__name__)

Callback = Callable[[], None]


class Decision(str, Enum):
    CONFIRM_SEND = "confirm_send"
    EDIT_FIRST = "edit_first"
    DISMISS = "dismiss"


@runtime_checkable
class ConfirmationSurface(Protocol):
    def present(
        self,
        result: ScanResult,
        on_confirm_send: Callback,
        on_edit_first: Callback,
        on_dismiss: Callback,
    ) -> None:
        ...

    def teardown(self) -> None:
        ...


def format_summary(result: ScanResult) -> str:
    """Banner text, e.g. ``Sensitive data detected: 1 Passwords. Please confirm before sending.``"""
    summary = ", ".join(f"{n} {category.value}" for category, n in result.items())
    return f"Sensitive data detected: {summary}. Please confirm before sending."


@dataclass
class Prompt:
    """One presented prompt. ``resolve()`` fires its callback at most once."""

    result: ScanResult
    message: str
    on_confirm_send: Callback
    on_edit_first: Callback
    on_dismiss: Callback
    decision: Optional[Decision] = None
    torn_down: bool = False
    _fired: bool = field(default=False, repr=False)

    @property
    def live(self) -> bool:
        return not self._fired and not self.torn_down

    def resolve(self, decision: Decision) -> bool:
        """Fire the callback for ``decision``. False if already resolved or torn down."""
        if not self.live:
            return False
        self._fired = True
        self.decision = decision
        callback = {
            Decision.CONFIRM_SEND: self.on_confirm_send,
            Decision.EDIT_FIRST: self.on_edit_first,
            Decision.DISMISS: self.on_dismiss,
        }[decision]
        try:
            callback()
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "surface_callback_failed",
                decision=decision.value,
                error=f"{type(exc).__name__}: {exc}",
                exc_info=True,
            )
        return True


class DeferredSurface:
    """In-memory ConfirmationSurface.

    The live prompt is exposed as ``current``; ``decide()`` resolves it.
    ``wait_for_prompt()`` lets async callers block until something is shown.
    """

    def __init__(self) -> None:
        self._current: Optional[Prompt] = None
        self._shown = asyncio.Event()
        self.presented: list[Prompt] = []

    @property
    def current(self) -> Optional[Prompt]:
        return self._current

    def present(
        self,
        result: ScanResult,
        on_confirm_send: Callback,
        on_edit_first: Callback,
        on_dismiss: Callback,
    ) -> None:
        self.teardown()
        prompt = Prompt(
            result=result,
            message=format_summary(result),
            on_confirm_send=on_confirm_send,
            on_edit_first=on_edit_first,
            on_dismiss=on_dismiss,
        )
        self._current = prompt
        self.presented.append(prompt)
        self._shown.set()
        logger.info(
            "confirmation_presented",
            categories={c.value: n for c, n in result.items()},
        )

    def teardown(self) -> None:
        if self._current is not None:
            self._current.torn_down = True
            self._current = None
        self._shown.clear()

    def decide(self, decision: Decision) -> bool:
        """Resolve the live prompt. False when nothing is live."""
        prompt = self._current
        if prompt is None:
            return False
        # Cleared before firing: a callback may legitimately present a new prompt
        self._current = None
        self._shown.clear()
        logger.info("confirmation_decided", decision=decision.value)
        return prompt.resolve(decision)

    async def wait_for_prompt(self, timeout: Optional[float] = None) -> Prompt:
        await asyncio.wait_for(self._shown.wait(), timeout)
        assert self._current is not None
        return self._current
