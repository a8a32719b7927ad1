"""HeuristicLocator — generic prompt-field and send-button heuristics.

Works on any chat page without site-specific selectors:

  Prompt field:  first rendered ``<textarea>`` with non-zero width; otherwise
                 the first rendered ``contenteditable="true"`` element with
                 non-zero width that already holds text.
  Send control:  the clicked element or one of its nearest ancestors (up to
                 SEND_BUTTON_ANCESTOR_LIMIT) is a ``<button>``, has
                 ``role="button"``, or mentions send/submit in its short
                 label, aria-label or data-testid.

IMPORT RULES:
  - ``import re2`` ONLY — ``import re`` is PROHIBITED in promptshield/.
"""

from __future__ import annotations

from typing import Any, Optional

import re2

from promptshield.constants import SEND_BUTTON_ANCESTOR_LIMIT
from promptshield.locator.dom import Document, Element

_SEND_TEXT = re2.compile(r'\b(?:send|submit|post|go)\b')
_SEND_ATTR = re2.compile(r'send|submit')

#: Longer text than this is a container, not a button label
_MAX_LABEL_LEN = 40


class HeuristicLocator:
    """FieldLocator over a ``Document``."""

    def __init__(self, document: Document) -> None:
        self.document = document

    def find_active_text_field(self) -> Optional[Element]:
        for textarea in self.document.by_tag("textarea"):
            if textarea.rendered and textarea.width > 0:
                return textarea
        editables = self.document.query_all(
            lambda el: el.get_attribute("contenteditable") == "true"
        )
        for editable in editables:
            if editable.rendered and editable.width > 0 and editable.inner_text:
                return editable
        return None

    def read_text(self, field: Any) -> str:
        if field is None:
            return ""
        if getattr(field, "tag", None) == "TEXTAREA":
            return field.value or ""
        return field.inner_text or field.text_content or ""

    def is_send_like_control(self, element: Any) -> bool:
        node = element
        for _ in range(SEND_BUTTON_ANCESTOR_LIMIT):
            if node is None or not isinstance(node, Element):
                return False
            if node.tag == "BUTTON":
                return True
            if (node.get_attribute("role") or "").lower() == "button":
                return True
            label = node.text_content.strip().lower()
            if label and len(label) <= _MAX_LABEL_LEN and _SEND_TEXT.search(label):
                return True
            aria = (node.get_attribute("aria-label") or "").lower()
            test_id = (node.get_attribute("data-testid") or "").lower()
            if _SEND_ATTR.search(aria) or _SEND_ATTR.search(test_id):
                return True
            node = node.parent
        return False

    def has_focus(self, field: Any) -> bool:
        active = self.document.active_element
        return isinstance(field, Element) and field.contains(active)

    def find_send_control(self) -> Optional[Element]:
        for button in self.document.by_tag("button"):
            test_id = button.get_attribute("data-testid") or ""
            aria = button.get_attribute("aria-label") or ""
            if "send" in test_id or "Send" in aria:
                return button
        return None
