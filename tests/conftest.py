"""Root test configuration for PromptShield.

Clears PROMPTSHIELD_* environment variables so a developer's shell cannot
leak a config path or store path into the suite, and provides the in-memory
page / locator / surface / store fixtures that the guard tests are built on.
"""

from __future__ import annotations

import asyncio

import pytest

from promptshield.config import GuardConfig
from promptshield.guard.machine import SubmissionGuard
from promptshield.locator.dom import Document, Element, InMemoryPage
from promptshield.locator.heuristics import HeuristicLocator
from promptshield.models.events import TriggerKind
from promptshield.store.memory import InMemorySettingsStore
from promptshield.surface.confirmation import DeferredSurface


@pytest.fixture(autouse=True)
def clean_promptshield_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("PROMPTSHIELD_CONFIG", "PROMPTSHIELD_STORE_PATH", "PROMPTSHIELD_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


class ChatPage:
    """A chat-like page: one prompt textarea and one send button.

    The page's own handlers "submit" the textarea contents (recording them in
    ``submissions`` and clearing the field), like a real chat UI would.
    """

    def __init__(self) -> None:
        self.document = Document()
        form = self.document.body.append(Element("form"))
        self.textarea = form.append(Element("textarea", value=""))
        self.send_button = form.append(
            Element("button", attrs={"data-testid": "send-button", "aria-label": "Send message"})
        )
        self.send_label = self.send_button.append(Element("span", text="Send"))
        self.page = InMemoryPage(self.document)
        self.submissions: list[str] = []
        # Pages that ignore synthetic key events (isTrusted checks)
        self.trusted_keys_only = False
        # Pages that clear the field only after a server round-trip
        self.clear_delay_s = 0.0
        self.page.add_page_handler(TriggerKind.POINTER, self._on_click)
        self.page.add_page_handler(TriggerKind.KEYBOARD, self._on_key)

    def _submit(self) -> None:
        self.submissions.append(self.textarea.value or "")
        if self.clear_delay_s > 0:
            asyncio.get_running_loop().call_later(self.clear_delay_s, self._clear)
        else:
            self._clear()

    def _clear(self) -> None:
        self.textarea.value = ""

    def _on_click(self, event) -> None:  # type: ignore[no-untyped-def]
        if self.send_button.contains(event.target) and (self.textarea.value or "").strip():
            self._submit()

    def _on_key(self, event) -> None:  # type: ignore[no-untyped-def]
        if self.trusted_keys_only and event.replay_token is not None:
            return
        if event.target is self.textarea and event.chord.is_confirmation():
            if (self.textarea.value or "").strip():
                event.prevent_default()
                self._submit()

    def type(self, text: str) -> None:
        self.textarea.value = text
        self.page.focus(self.textarea)


@pytest.fixture
def chat() -> ChatPage:
    return ChatPage()


@pytest.fixture
def locator(chat: ChatPage) -> HeuristicLocator:
    return HeuristicLocator(chat.document)


@pytest.fixture
def surface() -> DeferredSurface:
    return DeferredSurface()


@pytest.fixture
def store() -> InMemorySettingsStore:
    return InMemorySettingsStore()


@pytest.fixture
def guard_config() -> GuardConfig:
    # Keyboard fallback off by default; tests that cover it opt in
    return GuardConfig(debounce_ms=20, keyboard_fallback_ms=0, proactive=True)


@pytest.fixture
async def guard(
    chat: ChatPage,
    locator: HeuristicLocator,
    surface: DeferredSurface,
    store: InMemorySettingsStore,
    guard_config: GuardConfig,
):
    g = SubmissionGuard(locator, chat.page, surface, store, config=guard_config)
    await g.start()
    chat.page.add_capture_listener(TriggerKind.POINTER, g.handle_pointer)
    chat.page.add_capture_listener(TriggerKind.KEYBOARD, g.handle_key)
    yield g
    await g.stop()
