"""Integration tests for promptshield/runtime.py — config → store → guard wiring."""

from __future__ import annotations

from pathlib import Path

from promptshield.config import Config
from promptshield.models.scan import Category
from promptshield.runtime import create_guard, shutdown_guard
from promptshield.store.memory import InMemorySettingsStore
from promptshield.store.sqlite_backend import LocalSQLiteSettingsStore
from promptshield.surface.confirmation import Decision


class TestCreateGuard:
    async def test_default_config_uses_memory_store(self, chat, locator, surface) -> None:
        guard = await create_guard(Config.defaults(), locator, chat.page, surface)
        try:
            assert isinstance(guard.store, InMemorySettingsStore)
            chat.type("my password: hunter23456")
            event = chat.page.click(chat.send_button)
            assert event.cancelled
        finally:
            await shutdown_guard(guard)

    async def test_scanner_limits_come_from_config(self, chat, locator, surface) -> None:
        config = Config.defaults()
        config.scanner.max_scan_length = 10
        guard = await create_guard(config, locator, chat.page, surface)
        try:
            chat.type("my password: hunter23456")
            chat.page.click(chat.send_button)
            assert chat.submissions == ["my password: hunter23456"]
        finally:
            await shutdown_guard(guard)

    async def test_sqlite_counts_survive_restart(self, chat, locator, surface, tmp_path: Path) -> None:
        config = Config.defaults()
        config.store.backend = "sqlite"
        config.store.path = str(tmp_path / "settings.db")
        config.logging.json = False

        guard = await create_guard(config, locator, chat.page, surface)
        assert isinstance(guard.store, LocalSQLiteSettingsStore)
        chat.type("my password: hunter23456")
        chat.page.click(chat.send_button)
        surface.decide(Decision.CONFIRM_SEND)
        await guard.drain()
        await shutdown_guard(guard)

        store = LocalSQLiteSettingsStore(config.store.path)
        await store.initialize()
        try:
            assert await store.get_session_counts() == {Category.PASSWORD: 1}
        finally:
            await store.close()

    async def test_foreign_host_wires_its_own_listeners(self, chat, locator, surface) -> None:
        class BridgeHost:
            def dispatch(self, event) -> None:  # type: ignore[no-untyped-def]
                chat.page.dispatch(event)

            def focus(self, field) -> None:  # type: ignore[no-untyped-def]
                chat.page.focus(field)

        guard = await create_guard(Config.defaults(), locator, BridgeHost(), surface)
        try:
            chat.type("my password: hunter23456")
            chat.page.click(chat.send_button)
            assert chat.submissions == ["my password: hunter23456"]
            assert surface.presented == []
        finally:
            await shutdown_guard(guard)
