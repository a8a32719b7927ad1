"""Trailing-edge debouncer on the asyncio loop.

Each ``trigger()`` cancels the pending timer and starts a new one; the
callback runs once the calls stop for ``delay_s``.
"""

from __future__ import annotations

import asyncio
from typing import Callable, Optional


class Debouncer:
    def __init__(self, delay_s: float, callback: Callable[[], None]) -> None:
        self._delay_s = delay_s
        self._callback = callback
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def trigger(self) -> None:
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self._delay_s, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        self._callback()
