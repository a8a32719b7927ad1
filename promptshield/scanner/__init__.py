"""PromptShield scanner package.

  - definitions.py — the pattern catalog (PatternRule table + validators)
  - engine.py      — scan(): text → ScanResult, pure and synchronous
"""

from promptshield.scanner.engine import scan

__all__ = ["scan"]
