"""SubmissionGuard — intercepts send actions that would submit sensitive text.

Event flows (all on one asyncio loop; handlers are synchronous capture
listeners, exactly like DOM listeners):

  Pointer (``handle_pointer``):
    replay of an armed action → release it, native proceeds.
    send-like control + non-blank field + non-empty scan → cancel the native
    click, AWAITING_DECISION, present the confirmation surface.
    anything else → untouched.

  Keyboard (``handle_key``):
    confirmation chord in the focused field with non-blank text → the native
    keydown is cancelled SYNCHRONOUSLY, in the same turn, before any await.
    The host page must never see the Enter before the scan has run. Then the
    enabled flag is read (async); disabled or clean text → the equivalent key
    event is replayed; otherwise AWAITING_DECISION.

  Decision (surface callbacks):
    confirm-send → add counts (fire-and-forget) → REPLAY_ARMED → replay the
    original action under its own single-use token → IDLE once observed.
    edit-first   → refocus the field → IDLE.
    dismiss      → IDLE.

  Proactive (``handle_paste`` / ``handle_text_change``):
    non-blocking scan; a hit shows the surface without cancelling anything.
    confirm-send records counts and arms a token bound to the confirmed text,
    so the next submission of that same text is not blocked again.

INVARIANTS:
  - one native action → at most one replay
  - a new interception supersedes the previous prompt; stale callbacks are no-ops
  - handlers never raise into the host page
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Coroutine, Optional

from promptshield.config import GuardConfig
from promptshield.constants import STORE_KEY_ENABLED
from promptshield.guard.debounce import Debouncer
from promptshield.guard.state import GuardState, PendingAction, ReplayToken
from promptshield.locator.protocol import FieldLocator, HostPage
from promptshield.models.events import TriggerEvent, TriggerKind
from promptshield.models.scan import ScanResult
from promptshield.scanner.engine import scan
from promptshield.store.protocol import SettingsStore, StoreChange
from promptshield.surface.confirmation import ConfirmationSurface
from promptshield.utils.logger import (
    PerformanceLogger,
    clear_action_id,
    get_logger,
    set_action_id,
)
from promptshield.utils.ulid import generate_ulid

logger = get_logger(__name__)

Scanner = Callable[[str], ScanResult]


class SubmissionGuard:
    """Per-page submission guard.

    Usage:
        guard = SubmissionGuard(locator, page, surface, store)
        await guard.start()
        page.add_capture_listener(TriggerKind.POINTER, guard.handle_pointer)
        page.add_capture_listener(TriggerKind.KEYBOARD, guard.handle_key)
        guard.attach_field(field)
        ...
        await guard.stop()
    """

    def __init__(
        self,
        locator: FieldLocator,
        host: HostPage,
        surface: ConfirmationSurface,
        store: SettingsStore,
        *,
        scanner: Scanner = scan,
        config: Optional[GuardConfig] = None,
    ) -> None:
        self._locator = locator
        self._host = host
        self._surface = surface
        self._store = store
        self._scanner = scanner
        self._config = config or GuardConfig()

        self._state = GuardState.IDLE
        self._pending: Optional[PendingAction] = None
        self._pending_result: Optional[ScanResult] = None
        self._armed: Optional[ReplayToken] = None

        # Bumped by every qualifying submission trigger; an in-flight keyboard
        # resolution that finds it changed has been superseded.
        self._action_seq = 0
        # Bumped by every present(); callbacks carrying an older value are stale.
        self._surface_seq = 0
        self._resolving: Optional[str] = None

        self._enabled = True
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._attached: dict[int, Any] = {}
        self._debouncers: dict[int, Debouncer] = {}
        self._tasks: set[asyncio.Task] = set()  # type: ignore[type-arg]
        self._timers: set[asyncio.TimerHandle] = set()

    # ── Introspection ─────────────────────────────────────────────────────────

    @property
    def state(self) -> GuardState:
        return self._state

    @property
    def pending(self) -> Optional[PendingAction]:
        return self._pending

    @property
    def armed(self) -> Optional[ReplayToken]:
        return self._armed

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def store(self) -> SettingsStore:
        return self._store

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    async def start(self) -> None:
        """Load the enabled flag and follow its changes."""
        self._enabled = await self._store.get_enabled()
        self._unsubscribe = self._store.subscribe(self._on_store_change)
        logger.info("guard_started", enabled=self._enabled, proactive=self._config.proactive)

    async def stop(self) -> None:
        """Detach from the store and every field, cancel background work, drop any prompt."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        for debouncer in self._debouncers.values():
            debouncer.cancel()
        self._debouncers.clear()
        self._attached.clear()
        for timer in self._timers:
            timer.cancel()
        self._timers.clear()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._surface.teardown()
        self._reset()
        self._armed = None
        self._state = GuardState.IDLE
        logger.info("guard_stopped")

    def _on_store_change(self, change: StoreChange) -> None:
        if change.key == STORE_KEY_ENABLED:
            self._enabled = change.new_value is not False
            logger.info("guard_enabled_changed", enabled=self._enabled)

    # ── Pointer path ──────────────────────────────────────────────────────────

    def handle_pointer(self, event: TriggerEvent) -> None:
        """Capture-phase listener for pointer activations."""
        try:
            self._handle_pointer(event)
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "guard_pointer_handler_failed",
                error=f"{type(exc).__name__}: {exc}",
                exc_info=True,
            )

    def _handle_pointer(self, event: TriggerEvent) -> None:
        if self._consume_replay(event):
            return
        if not self._locator.is_send_like_control(event.target):
            return
        if not self._enabled:
            return
        field = self._locator.find_active_text_field()
        if field is None:
            return
        text = self._locator.read_text(field)
        if not text.strip():
            return

        self._action_seq += 1
        if self._spend_text_bypass(text):
            self._drop_stale_prompt()
            return
        result = self._scan(text)
        if not result:
            self._drop_stale_prompt()
            return

        event.prevent_default()
        event.stop_propagation()
        pending = PendingAction(
            action_id=generate_ulid(),
            kind=TriggerKind.POINTER,
            target=event.target,
            field=field,
        )
        self._await_decision(pending, result)

    # ── Keyboard path ─────────────────────────────────────────────────────────

    def handle_key(self, event: TriggerEvent) -> None:
        """Capture-phase listener for keydown events."""
        try:
            self._handle_key(event)
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "guard_key_handler_failed",
                error=f"{type(exc).__name__}: {exc}",
                exc_info=True,
            )

    def _handle_key(self, event: TriggerEvent) -> None:
        if self._consume_replay(event):
            return
        chord = event.chord
        if chord is None or not chord.is_confirmation():
            return
        field = self._locator.find_active_text_field()
        if field is None or not self._locator.has_focus(field):
            return
        text = self._locator.read_text(field)
        if not text.strip():
            return

        self._action_seq += 1
        if self._spend_text_bypass(text):
            self._drop_stale_prompt()
            return

        # Same turn as the keydown, before any await
        event.prevent_default()
        event.stop_propagation()

        pending = PendingAction(
            action_id=generate_ulid(),
            kind=TriggerKind.KEYBOARD,
            target=event.target,
            field=field,
            chord=chord,
        )
        self._resolving = pending.action_id
        self._spawn(self._resolve_keyboard(pending, text, self._action_seq))

    async def _resolve_keyboard(self, pending: PendingAction, text: str, seq: int) -> None:
        try:
            enabled = await self._store.get_enabled()
            if seq != self._action_seq:
                logger.info("keyboard_action_superseded", action_id=pending.action_id)
                return
            # Pass-throughs never get the fallback click: the page may
            # submit on Enter and clear the field long after the replay.
            if not enabled:
                logger.debug("guard_disabled_passthrough", action_id=pending.action_id)
                self._drop_stale_prompt()
                self._replay(pending, allow_fallback=False)
                return
            result = self._scan(text)
            if not result:
                self._drop_stale_prompt()
                self._replay(pending, allow_fallback=False)
                return
            self._await_decision(pending, result)
        finally:
            if self._resolving == pending.action_id:
                self._resolving = None

    # ── Decision handling ─────────────────────────────────────────────────────

    def _await_decision(self, pending: PendingAction, result: ScanResult) -> None:
        self._surface_seq += 1
        seq = self._surface_seq
        self._state = GuardState.AWAITING_DECISION
        self._pending = pending
        self._pending_result = result
        if self._armed is not None and not self._armed.text_bound:
            self._armed = None
        set_action_id(pending.action_id)
        logger.info(
            "submission_intercepted",
            kind=pending.kind.value,
            categories=result.to_labels(),
        )
        try:
            self._surface.present(
                result,
                lambda: self._on_confirm_send(seq),
                lambda: self._on_edit_first(seq),
                lambda: self._on_dismiss(seq),
            )
        except Exception as exc:  # noqa: BLE001
            # Interception degrades to doing nothing: the user's action still happens
            logger.error(
                "surface_present_failed",
                error=f"{type(exc).__name__}: {exc}",
                exc_info=True,
            )
            self._reset()
            self._replay(pending, allow_fallback=False)

    def _is_current(self, seq: int) -> bool:
        if seq != self._surface_seq or self._state is not GuardState.AWAITING_DECISION:
            logger.debug("stale_decision_ignored", seq=seq, current=self._surface_seq)
            return False
        return True

    def _on_confirm_send(self, seq: int) -> None:
        if not self._is_current(seq):
            return
        pending, result = self._pending, self._pending_result
        self._pending = None
        self._pending_result = None
        assert pending is not None and result is not None
        logger.info("decision_confirm_send", action_id=pending.action_id)
        self._record_counts(result)
        self._replay(pending)

    def _on_edit_first(self, seq: int) -> None:
        if not self._is_current(seq):
            return
        pending = self._pending
        logger.info("decision_edit_first", action_id=pending.action_id if pending else None)
        self._reset()
        if pending is not None:
            try:
                self._host.focus(pending.field)
            except Exception as exc:  # noqa: BLE001
                logger.warning("refocus_failed", error=f"{type(exc).__name__}: {exc}")

    def _on_dismiss(self, seq: int) -> None:
        if not self._is_current(seq):
            return
        logger.info("decision_dismiss", action_id=self._pending.action_id if self._pending else None)
        self._reset()

    def _reset(self) -> None:
        self._pending = None
        self._pending_result = None
        if self._state is GuardState.AWAITING_DECISION:
            self._state = GuardState.IDLE
        clear_action_id()

    def _drop_stale_prompt(self) -> None:
        """A newer trigger is going through; the prompt for the older one goes away."""
        if self._state is not GuardState.AWAITING_DECISION:
            return
        logger.info(
            "pending_decision_superseded",
            action_id=self._pending.action_id if self._pending else None,
        )
        self._surface_seq += 1
        try:
            self._surface.teardown()
        except Exception as exc:  # noqa: BLE001
            logger.warning("surface_teardown_failed", error=f"{type(exc).__name__}: {exc}")
        self._reset()

    # ── Replay ────────────────────────────────────────────────────────────────

    def _replay(self, pending: PendingAction, *, allow_fallback: bool = True) -> None:
        """Re-dispatch ``pending`` under its own single-use token.

        Dispatch is synchronous, so the token is either spent by the time it
        returns or never will be; an unspent token is dropped right away.
        """
        token = ReplayToken.for_action(pending.action_id)
        self._armed = token
        self._state = GuardState.REPLAY_ARMED
        event = pending.replay_event()
        try:
            self._host.dispatch(event)
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "replay_dispatch_failed",
                action_id=pending.action_id,
                error=f"{type(exc).__name__}: {exc}",
            )
        finally:
            if self._armed is token:
                logger.warning("replay_not_observed", action_id=pending.action_id)
                self._armed = None
                self._state = GuardState.IDLE
        clear_action_id()

        if (
            not allow_fallback
            or pending.kind is not TriggerKind.KEYBOARD
            or self._config.keyboard_fallback_ms <= 0
        ):
            return
        # A page that acts on Enter cancels its default (the newline)
        if event.default_prevented:
            logger.debug("replayed_key_handled", action_id=pending.action_id)
            return
        self._schedule(self._config.keyboard_fallback_s, lambda: self._keyboard_fallback(pending))

    def _keyboard_fallback(self, pending: PendingAction) -> None:
        """Click the send control when a replayed key was ignored.

        Only runs after confirm-send, and only when the page left the replayed
        key unhandled; text still in the field means nothing was sent.
        """
        if self._state is GuardState.AWAITING_DECISION:
            return
        if not self._locator.read_text(pending.field).strip():
            return
        button = self._locator.find_send_control()
        if button is None:
            logger.info("keyboard_fallback_no_send_control", action_id=pending.action_id)
            return
        logger.info("keyboard_fallback_click", action_id=pending.action_id)
        self._replay(
            PendingAction(
                action_id=generate_ulid(),
                kind=TriggerKind.POINTER,
                target=button,
                field=pending.field,
            ),
            allow_fallback=False,
        )

    def _consume_replay(self, event: TriggerEvent) -> bool:
        armed = self._armed
        if armed is None or not armed.matches_event(event):
            return False
        self._armed = None
        self._state = GuardState.IDLE
        logger.info("replay_released", action_id=armed.action_id, kind=event.kind.value)
        return True

    def _spend_text_bypass(self, text: str) -> bool:
        """Spend a text-bound token. True when it matches ``text``.

        Any submission trigger spends it; a mismatch just discards it.
        """
        armed = self._armed
        if armed is None or not armed.text_bound:
            return False
        self._armed = None
        if self._state is GuardState.REPLAY_ARMED:
            self._state = GuardState.IDLE
        if armed.matches_text(text):
            logger.info("proactive_bypass_spent")
            return True
        logger.info("proactive_bypass_discarded")
        return False

    # ── Proactive flow ────────────────────────────────────────────────────────

    def attach_field(self, field: Any) -> bool:
        """Start proactive scanning for ``field``. False if already attached."""
        key = id(field)
        if key in self._attached:
            return False
        self._attached[key] = field
        self._debouncers[key] = Debouncer(
            self._config.debounce_s,
            lambda: self._spawn(self._proactive_scan(field)),
        )
        logger.debug("field_attached", attached=len(self._attached))
        return True

    def detach_field(self, field: Any) -> None:
        key = id(field)
        self._attached.pop(key, None)
        debouncer = self._debouncers.pop(key, None)
        if debouncer is not None:
            debouncer.cancel()

    def is_attached(self, field: Any) -> bool:
        return id(field) in self._attached

    def handle_text_change(self, field: Any) -> None:
        """Input listener: debounced proactive scan."""
        if not self._config.proactive:
            return
        debouncer = self._debouncers.get(id(field))
        if debouncer is not None:
            debouncer.trigger()

    def handle_paste(self, field: Any) -> None:
        """Paste listener: proactive scan once the pasted text has landed."""
        if not self._config.proactive or id(field) not in self._attached:
            return
        self._spawn(self._proactive_scan(field))

    def _proactive_blocked(self) -> bool:
        return self._state is GuardState.AWAITING_DECISION or self._resolving is not None

    async def _proactive_scan(self, field: Any) -> None:
        if self._proactive_blocked():
            return
        enabled = await self._store.get_enabled()
        if not enabled or self._proactive_blocked():
            return
        text = self._locator.read_text(field)
        if not text.strip():
            return
        result = self._scan(text)
        if not result:
            return

        self._surface_seq += 1
        seq = self._surface_seq
        logger.info("proactive_warning", categories=result.to_labels())
        try:
            self._surface.present(
                result,
                lambda: self._on_proactive_confirm(seq, text, result),
                lambda: self._on_proactive_close(seq),
                lambda: self._on_proactive_close(seq),
            )
        except Exception as exc:  # noqa: BLE001
            logger.error("surface_present_failed", error=f"{type(exc).__name__}: {exc}")

    def _on_proactive_confirm(self, seq: int, text: str, result: ScanResult) -> None:
        if seq != self._surface_seq or self._state is GuardState.AWAITING_DECISION:
            return
        self._record_counts(result)
        self._armed = ReplayToken.for_text(text)
        self._state = GuardState.REPLAY_ARMED
        logger.info("proactive_bypass_armed")

    def _on_proactive_close(self, seq: int) -> None:
        if seq == self._surface_seq:
            logger.debug("proactive_warning_closed")

    # ── Helpers ───────────────────────────────────────────────────────────────

    def _scan(self, text: str) -> ScanResult:
        try:
            with PerformanceLogger("scan", logger):
                return self._scanner(text)
        except Exception as exc:  # noqa: BLE001
            logger.error("scanner_failed", error=f"{type(exc).__name__}: {exc}")
            return ScanResult.empty()

    def _record_counts(self, result: ScanResult) -> None:
        self._spawn(self._store.add_session_counts(result))

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:  # type: ignore[type-arg]
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("guard_task_failed", error=f"{type(exc).__name__}: {exc}")

    def _schedule(self, delay_s: float, callback: Callable[[], None]) -> None:
        loop = asyncio.get_running_loop()
        handle: Optional[asyncio.TimerHandle] = None

        def run() -> None:
            self._timers.discard(handle)  # type: ignore[arg-type]
            callback()

        handle = loop.call_later(delay_s, run)
        self._timers.add(handle)

    async def drain(self) -> None:
        """Wait for background work (store writes, keyboard resolutions) to settle."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
