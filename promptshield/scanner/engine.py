"""Scan engine — applies the pattern catalog to one text snapshot.

Provides ``scan()``: the only classification entry point used by the guard.

IMPORT RULES:
  - ``import re2`` ONLY — ``import re`` is PROHIBITED in this file.
  - CI lint gate: grep -r "^import re$|^from re import|^import re " promptshield/scanner/

INVARIANTS:
  - Synchronous — no async, no I/O, no shared mutable state besides the
    static catalog. Safe to call from any turn.
  - NEVER raises. An unexpected failure is logged and yields an empty result.
  - Deterministic: the same text always produces the same ScanResult, and
    the catalog order never changes it.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

import re2  # noqa: F401  google-re2. NEVER: import re

from promptshield.constants import BULK_EMAIL_THRESHOLD, MAX_SCAN_LENGTH
from promptshield.models.scan import Category, ScanResult
from promptshield.scanner.definitions import PATTERN_RULES, PatternRule

logger = logging.getLogger(__name__)


def _accepted_hits(rule: PatternRule, text: str) -> set[str]:
    """Dedup keys of the hits of one rule that pass its validator.

    A validator that raises rejects that hit only; the rest of the rule and
    the rest of the scan continue.
    """
    hits = rule.matches(text)
    accepted: set[str] = set()
    for hit in hits:
        if rule.validator is not None:
            try:
                if not rule.validator(hit, hits, text):
                    continue
            except Exception as exc:  # noqa: BLE001
                logger.debug(
                    "Validator for %s rejected a hit after %s",
                    rule.slug,
                    type(exc).__name__,
                )
                continue
        accepted.add(rule.dedup_key(hit))
    return accepted


def scan(
    text: Any,
    *,
    max_length: int = MAX_SCAN_LENGTH,
    bulk_email_threshold: int = BULK_EMAIL_THRESHOLD,
    rules: Optional[Iterable[PatternRule]] = None,
) -> ScanResult:
    """Classify ``text`` into sensitivity categories.

    Steps:
      1. Non-string, empty, or longer than ``max_length`` → empty result.
      2. Every rule is applied; accepted hits are deduplicated per rule and
         summed per category.
      3. Bulk email: hits of every email rule are pooled; reported only when
         the number of DISTINCT addresses reaches ``bulk_email_threshold``,
         with that distinct count as the value.

    Args:
        text:                 Field contents. Anything that is not a ``str``
                              is treated as "nothing to scan".
        max_length:           Inputs above this length are not scanned.
        bulk_email_threshold: Distinct addresses needed to report bulk email.
        rules:                Override catalog (tests only). Defaults to
                              ``PATTERN_RULES``.

    Returns:
        ScanResult — empty when nothing sensitive was found.
    """
    if not isinstance(text, str) or not text:
        return ScanResult.empty()
    if len(text) > max_length:
        logger.info("Scan skipped: input length %d exceeds %d", len(text), max_length)
        return ScanResult.empty()

    try:
        counts: dict[Category, int] = {}
        emails: set[str] = set()

        for rule in PATTERN_RULES if rules is None else rules:
            if rule.category is Category.BULK_EMAIL:
                # Pooled across rules; threshold applied below
                emails.update(_accepted_hits(rule, text))
                continue
            accepted = _accepted_hits(rule, text)
            if accepted:
                counts[rule.category] = counts.get(rule.category, 0) + len(accepted)

        if len(emails) >= bulk_email_threshold:
            counts[Category.BULK_EMAIL] = len(emails)

        return ScanResult(counts)

    except Exception as exc:  # noqa: BLE001
        logger.error(
            "Unexpected error in scan(): %s: %s — returning empty result",
            type(exc).__name__,
            exc,
            exc_info=True,
        )
        return ScanResult.empty()
