"""PromptShield models package.

Defines the shared data contracts used by the scanner, the guard and the
persistence layer:

  - scan.py   — Category, ScanResult, sanitize_counts()
  - events.py — TriggerKind, KeyChord, TriggerEvent (host-neutral event shapes)
"""
