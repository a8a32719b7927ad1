"""Unit tests for promptshield/utils/logger.py."""

from __future__ import annotations

import asyncio
import json

import pytest
import structlog

from promptshield.utils import logger as logger_module
from promptshield.utils.logger import (
    PerformanceLogger,
    action_id_var,
    clear_action_id,
    configure_logging,
    get_logger,
    set_action_id,
)


@pytest.fixture(autouse=True)
def restore_logging():
    yield
    clear_action_id()
    configure_logging()


class TestActionId:
    def test_processor_adds_action_id(self) -> None:
        set_action_id("01HZX")
        event = logger_module.add_action_id(None, "info", {"event": "x"})  # type: ignore[arg-type]
        assert event["action_id"] == "01HZX"

    def test_processor_skips_when_unset(self) -> None:
        clear_action_id()
        event = logger_module.add_action_id(None, "info", {"event": "x"})  # type: ignore[arg-type]
        assert "action_id" not in event

    async def test_context_is_per_task(self) -> None:
        async def other() -> None:
            set_action_id("inner")

        set_action_id("outer")
        await asyncio.create_task(other())
        assert action_id_var.get() == "outer"


class TestConfigureLogging:
    def test_json_lines_on_stderr(self, capsys: pytest.CaptureFixture[str]) -> None:
        structlog.reset_defaults()
        configure_logging("INFO", json_output=True)
        set_action_id("01HZY")
        get_logger("test").info("guard_started", enabled=True)
        line = capsys.readouterr().err.strip().splitlines()[-1]
        payload = json.loads(line)
        assert payload["event"] == "guard_started"
        assert payload["enabled"] is True
        assert payload["action_id"] == "01HZY"
        assert payload["level"] == "info"

    def test_level_filters(self, capsys: pytest.CaptureFixture[str]) -> None:
        structlog.reset_defaults()
        configure_logging("WARNING", json_output=True)
        log = get_logger("test")
        log.info("quiet")
        log.warning("loud")
        err = capsys.readouterr().err
        assert "quiet" not in err
        assert "loud" in err


class TestPerformanceLogger:
    def test_measures_duration(self) -> None:
        with PerformanceLogger("scan") as perf:
            pass
        assert perf.elapsed_ms >= 0

    def test_exception_propagates(self) -> None:
        with pytest.raises(ValueError):
            with PerformanceLogger("scan"):
                raise ValueError("boom")
