"""Locator package — finding the prompt field and send control in a host page.

  - protocol.py   — FieldLocator and HostPage capability Protocols (what the guard needs)
  - dom.py        — minimal element tree + InMemoryPage host implementation
  - heuristics.py — HeuristicLocator: textarea/contenteditable and send-button heuristics

The guard depends only on the Protocols; site-specific quirks live in
alternative FieldLocator implementations.
"""

from promptshield.locator.protocol import FieldLocator, HostPage

__all__ = ["FieldLocator", "HostPage"]
