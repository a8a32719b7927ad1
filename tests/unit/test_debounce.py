"""Unit tests for promptshield/guard/debounce.py."""

from __future__ import annotations

import asyncio

from promptshield.guard.debounce import Debouncer


class TestDebouncer:
    async def test_burst_fires_once(self) -> None:
        calls: list[int] = []
        debouncer = Debouncer(0.05, lambda: calls.append(1))
        for _ in range(5):
            debouncer.trigger()
            await asyncio.sleep(0.005)
        assert calls == []
        await asyncio.sleep(0.15)
        assert calls == [1]
        assert not debouncer.pending

    async def test_cancel(self) -> None:
        calls: list[int] = []
        debouncer = Debouncer(0.01, lambda: calls.append(1))
        debouncer.trigger()
        assert debouncer.pending
        debouncer.cancel()
        await asyncio.sleep(0.03)
        assert calls == []

    async def test_separate_bursts_fire_separately(self) -> None:
        calls: list[int] = []
        debouncer = Debouncer(0.01, lambda: calls.append(1))
        debouncer.trigger()
        await asyncio.sleep(0.04)
        debouncer.trigger()
        await asyncio.sleep(0.04)
        assert calls == [1, 1]
