"""PromptShield — local sensitive-data detection for chat inputs.

Two halves:

  - ``promptshield.scanner`` — synchronous, stateless classification of free
    text into sensitivity categories (``scan()``).
  - ``promptshield.guard``   — the submission guard state machine that
    intercepts send actions, asks the user, and replays or drops them.

All scanning happens locally. Scanned text is never persisted or logged; only
aggregate per-category counts are retained.
"""

__version__ = "1.0.0"
