"""Per-page wiring: config → logging → store → scanner → SubmissionGuard.

Lifecycle:
    config = load_config()
    guard = await create_guard(config, locator, page, surface)
    ...
    await shutdown_guard(guard)

The store is owned by the guard created here and closed by ``shutdown_guard``.
"""

from __future__ import annotations

import functools

from promptshield.config import Config
from promptshield.guard.machine import SubmissionGuard
from promptshield.locator.dom import InMemoryPage
from promptshield.locator.protocol import FieldLocator, HostPage
from promptshield.models.events import TriggerKind
from promptshield.scanner.engine import scan
from promptshield.store.factory import create_settings_store
from promptshield.surface.confirmation import ConfirmationSurface
from promptshield.utils.logger import configure_logging, get_logger

logger = get_logger(__name__)


async def create_guard(
    config: Config,
    locator: FieldLocator,
    host: HostPage,
    surface: ConfirmationSurface,
) -> SubmissionGuard:
    """Build and start a guard for one page context.

    When ``host`` is an ``InMemoryPage`` the guard's handlers are registered
    as its capture listeners; other hosts wire their own event source.

    Raises:
        RuntimeError: If the sqlite store has an incompatible schema version.
    """
    configure_logging(config.logging.level, json_output=config.logging.json)

    store = await create_settings_store(config)
    scanner = functools.partial(
        scan,
        max_length=config.scanner.max_scan_length,
        bulk_email_threshold=config.scanner.bulk_email_threshold,
    )
    guard = SubmissionGuard(
        locator,
        host,
        surface,
        store,
        scanner=scanner,
        config=config.guard,
    )
    await guard.start()

    if isinstance(host, InMemoryPage):
        host.add_capture_listener(TriggerKind.POINTER, guard.handle_pointer)
        host.add_capture_listener(TriggerKind.KEYBOARD, guard.handle_key)

    logger.info(
        "guard_ready",
        config_path=config.path,
        store_backend=config.store.backend,
        proactive=config.guard.proactive,
    )
    return guard


async def shutdown_guard(guard: SubmissionGuard) -> None:
    """Stop the guard, then close its store."""
    await guard.stop()
    await guard.store.close()
    logger.info("guard_shutdown")
