"""Minimal element tree and an in-memory HostPage.

Just enough of a DOM for the heuristics and the guard: tags, attributes,
text, textarea values, visibility, focus, and two-phase event delivery
(capture listeners first, then the page's own handlers). Used by embedders
that mirror a real page into Python and by the test-suite.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, Optional

from promptshield.models.events import TriggerEvent, TriggerKind
from promptshield.utils.logger import get_logger

logger = get_logger(__name__)

Listener = Callable[[TriggerEvent], None]


@dataclass(eq=False)
class Element:
    tag: str
    attrs: dict[str, str] = field(default_factory=dict)
    text: str = ""
    value: Optional[str] = None
    visible: bool = True
    width: int = 100
    children: list["Element"] = field(default_factory=list)
    parent: Optional["Element"] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        self.tag = self.tag.upper()

    def append(self, child: "Element") -> "Element":
        child.parent = self
        self.children.append(child)
        return child

    def remove(self) -> None:
        if self.parent is not None:
            self.parent.children.remove(self)
            self.parent = None

    def get_attribute(self, name: str) -> Optional[str]:
        return self.attrs.get(name)

    @property
    def text_content(self) -> str:
        return self.text + "".join(child.text_content for child in self.children)

    @property
    def rendered(self) -> bool:
        """Visible with a visible ancestor chain (offsetParent !== null)."""
        node: Optional[Element] = self
        while node is not None:
            if not node.visible:
                return False
            node = node.parent
        return True

    @property
    def inner_text(self) -> str:
        return self.text_content if self.rendered else ""

    def contains(self, other: Optional["Element"]) -> bool:
        node = other
        while node is not None:
            if node is self:
                return True
            node = node.parent
        return False

    def iter(self) -> Iterator["Element"]:
        yield self
        for child in self.children:
            yield from child.iter()


class Document:
    def __init__(self, body: Optional[Element] = None) -> None:
        self.body = body or Element("body")
        self.active_element: Optional[Element] = None

    def query_all(self, predicate: Callable[[Element], bool]) -> list[Element]:
        return [el for el in self.body.iter() if predicate(el)]

    def by_tag(self, tag: str) -> list[Element]:
        tag = tag.upper()
        return self.query_all(lambda el: el.tag == tag)


class InMemoryPage:
    """HostPage over a Document with two-phase event delivery.

    ``add_capture_listener`` is what the guard's event source registers;
    ``add_page_handler`` stands for the host application's own handlers,
    which only run when no capture listener stopped propagation.
    """

    def __init__(self, document: Optional[Document] = None) -> None:
        self.document = document or Document()
        self._capture: dict[TriggerKind, list[Listener]] = {k: [] for k in TriggerKind}
        self._handlers: dict[TriggerKind, list[Listener]] = {k: [] for k in TriggerKind}
        self.dispatched: list[TriggerEvent] = []

    def add_capture_listener(self, kind: TriggerKind, listener: Listener) -> None:
        self._capture[kind].append(listener)

    def add_page_handler(self, kind: TriggerKind, handler: Listener) -> None:
        self._handlers[kind].append(handler)

    def dispatch(self, event: TriggerEvent) -> None:
        self.dispatched.append(event)
        for listener in list(self._capture[event.kind]):
            listener(event)
            if event.propagation_stopped:
                return
        for handler in list(self._handlers[event.kind]):
            handler(event)
            if event.propagation_stopped:
                return

    def click(self, element: Any) -> TriggerEvent:
        """A user click on ``element``."""
        event = TriggerEvent.click(element)
        self.dispatch(event)
        return event

    def press(self, element: Any, chord: Any) -> TriggerEvent:
        """A user keydown on ``element``."""
        event = TriggerEvent.keydown(element, chord)
        self.dispatch(event)
        return event

    def focus(self, field: Any) -> None:
        self.document.active_element = field
