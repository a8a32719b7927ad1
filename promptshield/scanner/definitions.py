"""Pattern catalog for the local sensitive-data scanner.

All patterns are pre-compiled at module load time using google-re2.
NO pattern compilation happens per-scan, per-call, or lazily.

IMPORT RULES:
  - ``import re2`` ONLY — ``import re`` is PROHIBITED in this file and any
    promptshield/scanner/ file. re2 runs in linear time, which is what keeps
    the scanner safe on pasted multi-hundred-kilobyte inputs.
  - CI lint gate: tests/unit/test_definitions.py greps promptshield/scanner/
    for a bare ``import re``.

Several rules may share a Category (the engine sums them). Rule order never
affects the result.
"""

from __future__ import annotations

# google-re2, NOT stdlib re.
# PROHIBITED: import re   ← NEVER. Not here, not in any promptshield/scanner/ file.
import re2

from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence

from promptshield.constants import CARD_MAX_DIGITS, CARD_MIN_DIGITS
from promptshield.models.scan import Category

#: validator(match, all_matches_of_this_rule, full_text) -> bool
Validator = Callable[[str, Sequence[str], str], bool]


# ---------------------------------------------------------------------------
# PatternRule dataclass
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PatternRule:
    """A single compiled detection rule.

    Fields:
        category:  Category credited for each accepted hit.
        pattern:   Pre-compiled re2 pattern object. Compiled at module load time.
        slug:      Kebab-case identifier, used in logs and test ids.
        validator: Optional false-positive filter. A rule without one accepts
                   every matcher hit.
        normalize: Optional dedup key function. Hits with equal keys count once
                   within this rule. Defaults to the raw hit text.
    """

    category: Category
    pattern: Any               # re2._Regexp, pre-compiled at module load
    slug: str
    validator: Optional[Validator] = None
    normalize: Optional[Callable[[str], str]] = None

    def matches(self, text: str) -> list[str]:
        """All raw hits of this rule in ``text``, in order of appearance."""
        return [m.group(0) for m in self.pattern.finditer(text)]

    def dedup_key(self, hit: str) -> str:
        return self.normalize(hit) if self.normalize is not None else hit


# ===========================================================================
# VALIDATORS
# ===========================================================================


def digits_only(value: str) -> str:
    return "".join(ch for ch in value if ch.isdigit())


def luhn_check(value: str) -> bool:
    """Luhn checksum over the digit-only form of ``value``.

    Returns False when the digit count falls outside 13–19.
    """
    digits = digits_only(value)
    if not CARD_MIN_DIGITS <= len(digits) <= CARD_MAX_DIGITS:
        return False
    total = 0
    for index, ch in enumerate(reversed(digits)):
        digit = int(ch)
        if index % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return total % 10 == 0


def _validate_card(match: str, _all: Sequence[str], _text: str) -> bool:
    return luhn_check(match)


# Variable-name fragments that make KEY=value lines worth flagging.
_ENV_SENSITIVE_NAME = re2.compile(r'(?i)(?:API_KEY|SECRET|PASSWORD|TOKEN|PRIVATE)')


def _validate_env_line(_match: str, _all: Sequence[str], text: str) -> bool:
    # Judged on the whole paste: a block of NAME=value lines is only an .env
    # dump when some variable name looks like a credential.
    return "=" in text and _ENV_SENSITIVE_NAME.search(text) is not None


# ===========================================================================
# PATTERN RULES
# COMPILED AT MODULE LOAD, never per-scan
# ===========================================================================

PATTERN_RULES: list[PatternRule] = [
    # ─── API / service keys ───────────────────────────────────────────────
    # Prefix rules carry their key bodies; a bare "\bAKIA\b" never fires on a
    # real key because the body characters are word characters.
    PatternRule(
        category=Category.API_KEY,
        pattern=re2.compile(r'\bAKIA[0-9A-Z]{16}\b'),
        slug="aws-access-key-id",
    ),
    PatternRule(
        category=Category.API_KEY,
        pattern=re2.compile(r'\bgh[pousr]_[A-Za-z0-9]{20,}\b'),
        slug="github-token",
    ),
    PatternRule(
        category=Category.API_KEY,
        pattern=re2.compile(r'\b(?:sk|pk)_(?:live|test)_[A-Za-z0-9]{10,}\b'),
        slug="stripe-key",
    ),
    PatternRule(
        category=Category.API_KEY,
        pattern=re2.compile(r'\bsk-[A-Za-z0-9]{20,}\b'),
        slug="openai-style-secret-key",
    ),
    PatternRule(
        category=Category.API_KEY,
        pattern=re2.compile(r'\bAIza[0-9A-Za-z_-]{35}\b'),
        slug="google-api-key",
    ),
    PatternRule(
        category=Category.API_KEY,
        pattern=re2.compile(r'\bopenai-[a-zA-Z0-9]{48}\b'),
        slug="openai-prefixed-key",
    ),
    # ─── PEM private keys ─────────────────────────────────────────────────
    PatternRule(
        category=Category.PRIVATE_KEY,
        pattern=re2.compile(
            r'-----BEGIN\s+(?:RSA\s+)?(?:DSA\s+)?(?:EC\s+)?(?:OPENSSH\s+)?(?:PGP\s+)?PRIVATE KEY-----'
        ),
        slug="pem-private-key",
    ),
    # ─── Passwords ────────────────────────────────────────────────────────
    PatternRule(
        category=Category.PASSWORD,
        pattern=re2.compile(
            r'(?i)\b(?:password|pwd|passwd|secret)\s*[:=]\s*["\']?[^\s"\']{6,}["\']?'
        ),
        slug="password-assignment",
    ),
    # ─── Credit cards (Luhn validated) ────────────────────────────────────
    # Greedy: digits right after a card (expiry, CVV) join the run and the
    # whole run is Luhn-checked.
    PatternRule(
        category=Category.CREDIT_CARD,
        pattern=re2.compile(r'\b(?:\d[-\s]*){13,19}\b'),
        slug="card-number",
        validator=_validate_card,
        normalize=digits_only,
    ),
    # ─── US Social Security Numbers ───────────────────────────────────────
    PatternRule(
        category=Category.SSN,
        pattern=re2.compile(r'\b\d{3}[-\s]?\d{2}[-\s]?\d{4}\b'),
        slug="us-ssn",
    ),
    # ─── Email addresses (bulk threshold applied by the engine) ───────────
    PatternRule(
        category=Category.BULK_EMAIL,
        pattern=re2.compile(r'[a-zA-Z0-9._%+\-]+@[a-zA-Z0-9.\-]+\.[a-zA-Z]{2,}'),
        slug="email-address",
    ),
    # ─── Internal (RFC 1918) IP addresses ─────────────────────────────────
    PatternRule(
        category=Category.INTERNAL_IP,
        pattern=re2.compile(
            r'\b(?:10\.\d{1,3}\.\d{1,3}\.\d{1,3}'
            r'|192\.168\.\d{1,3}\.\d{1,3}'
            r'|172\.(?:1[6-9]|2\d|3[01])\.\d{1,3}\.\d{1,3})\b'
        ),
        slug="rfc1918-ip",
    ),
    # ─── JWT ──────────────────────────────────────────────────────────────
    PatternRule(
        category=Category.JWT,
        pattern=re2.compile(r'\beyJ[A-Za-z0-9_-]*\.eyJ[A-Za-z0-9_-]*\.[A-Za-z0-9_-]+\b'),
        slug="jwt",
    ),
    # ─── .env file contents ───────────────────────────────────────────────
    PatternRule(
        category=Category.ENV_FILE,
        pattern=re2.compile(r'(?m)^[A-Z_][A-Z0-9_]*\s*=\s*.+$'),
        slug="env-assignment",
        validator=_validate_env_line,
    ),
    # ─── Connection strings ───────────────────────────────────────────────
    PatternRule(
        category=Category.CONNECTION_STRING,
        pattern=re2.compile(r'(?i)\b(?:mongodb|postgres|mysql|redis)://[^\s\'"]+'),
        slug="database-url",
    ),
]


def rules_for(category: Category) -> list[PatternRule]:
    """All rules crediting ``category`` (used by tests and diagnostics)."""
    return [rule for rule in PATTERN_RULES if rule.category is category]
