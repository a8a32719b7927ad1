"""ULID generation for guard action tokens.

Every intercepted submission gets an ``action_id`` ULID. It is:
  - the replay token attached to the re-dispatched event, so the guard lets
    exactly that one replay through
  - the correlation key bound into structured log lines for the action

Uses the `python-ulid` library (see pyproject.toml) — do NOT hand-roll ULID generation.
"""

from __future__ import annotations

from ulid import ULID


def generate_ulid() -> str:
    """Generate a new ULID as a 26-character uppercase string.

    Returns:
        str: Crockford Base32, exactly 26 chars, monotonically increasing.
    """
    return str(ULID())
