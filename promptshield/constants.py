"""Shared constants for PromptShield.

All size limits, thresholds and timings used across modules are defined here.
No magic numbers in other modules — import from here.
"""

# ─── Scanner ─────────────────────────────────────────────────────────────────

# Inputs longer than this are not scanned at all; scan() returns an empty result.
# Safety valve against pathological input cost, not a truncation.
MAX_SCAN_LENGTH: int = 500_000  # characters

# Distinct email addresses needed before "Bulk email addresses" is reported.
BULK_EMAIL_THRESHOLD: int = 3

# Credit-card digit count bounds (after stripping separators).
CARD_MIN_DIGITS: int = 13
CARD_MAX_DIGITS: int = 19

# ─── Guard timings ───────────────────────────────────────────────────────────

# Debounce window for proactive scans on text-change events.
PROACTIVE_DEBOUNCE_MS: int = 300

# Delay before the keyboard replay falls back to clicking the send control.
# 0 disables the fallback.
KEYBOARD_FALLBACK_MS: int = 50

# Scans slower than this are logged at WARNING by PerformanceLogger.
SLOW_SCAN_WARN_MS: float = 50.0

# ─── Locator ─────────────────────────────────────────────────────────────────

# How many ancestors of a clicked element are inspected for send-button hints.
SEND_BUTTON_ANCESTOR_LIMIT: int = 8

# ─── Persistence keys ────────────────────────────────────────────────────────

STORE_KEY_ENABLED: str = "enabled"
STORE_KEY_SESSION_COUNTS: str = "sessionCounts"
