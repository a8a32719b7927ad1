"""Scan result contracts shared by the scanner, guard, store and popup.

``Category`` values are the display labels, which are also the keys under
which session counts are persisted. Anything that reads counts back from
storage must go through ``sanitize_counts()`` — persisted state is untrusted.
"""

from __future__ import annotations

import math
from collections.abc import Iterator, Mapping
from enum import Enum
from typing import Any, Optional


class Category(str, Enum):
    """Fixed set of sensitivity classes. Value is the user-facing label."""

    API_KEY = "API keys"
    PRIVATE_KEY = "Private keys"
    PASSWORD = "Passwords"
    CREDIT_CARD = "Credit cards"
    SSN = "Social Security Numbers"
    BULK_EMAIL = "Bulk email addresses"
    INTERNAL_IP = "Internal IP addresses"
    JWT = "JWT tokens"
    ENV_FILE = ".env file contents"
    CONNECTION_STRING = "Connection strings"

    @classmethod
    def from_label(cls, label: Any) -> Optional["Category"]:
        """Return the Category for a persisted label, or None if unknown."""
        if isinstance(label, Category):
            return label
        if not isinstance(label, str):
            return None
        return _LABEL_INDEX.get(label)


_LABEL_INDEX: dict[str, Category] = {c.value: c for c in Category}
_CATEGORY_ORDER: dict[Category, int] = {c: i for i, c in enumerate(Category)}


def _coerce_count(value: Any) -> Optional[int]:
    # bool is an int subclass; True must not become a count of 1
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    count = int(math.floor(value))
    return count if count > 0 else None


def sanitize_counts(raw: Any) -> dict[Category, int]:
    """Filter an untrusted category→count mapping.

    Drops unknown categories, non-numeric values, booleans and non-positive
    counts; floors fractional counts. Never raises — a non-mapping yields {}.
    """
    if not isinstance(raw, Mapping):
        return {}
    clean: dict[Category, int] = {}
    for key, value in raw.items():
        category = Category.from_label(key)
        if category is None:
            continue
        count = _coerce_count(value)
        if count is None:
            continue
        clean[category] = clean.get(category, 0) + count
    return clean


class ScanResult(Mapping[Category, int]):
    """Immutable Category → positive count mapping for one text snapshot.

    INVARIANTS:
      - never holds zero or negative counts (absent means "not detected")
      - never holds keys outside ``Category``

    Construction filters through ``sanitize_counts()``, so a ScanResult built
    from persisted or otherwise untrusted data is safe by construction.
    Falsy when empty.
    """

    __slots__ = ("_counts",)

    def __init__(self, counts: Optional[Mapping[Any, Any]] = None) -> None:
        clean = sanitize_counts(counts or {})
        self._counts: dict[Category, int] = dict(
            sorted(clean.items(), key=lambda item: _CATEGORY_ORDER[item[0]])
        )

    @classmethod
    def empty(cls) -> "ScanResult":
        return cls()

    def __getitem__(self, key: Category) -> int:
        return self._counts[key]

    def __iter__(self) -> Iterator[Category]:
        return iter(self._counts)

    def __len__(self) -> int:
        return len(self._counts)

    def __hash__(self) -> int:
        return hash(frozenset(self._counts.items()))

    def __repr__(self) -> str:
        inner = ", ".join(f"{c.name}={n}" for c, n in self._counts.items())
        return f"ScanResult({inner})"

    @property
    def total(self) -> int:
        """Sum of all category counts."""
        return sum(self._counts.values())

    def to_labels(self) -> dict[str, int]:
        """Serializable form keyed by display label (the persisted shape)."""
        return {c.value: n for c, n in self._counts.items()}
