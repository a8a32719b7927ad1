"""Submission guard package.

  - state.py    — GuardState, PendingAction, ReplayToken
  - debounce.py — Debouncer for proactive scans on typing
  - machine.py  — SubmissionGuard, the interception state machine
"""

from promptshield.guard.machine import SubmissionGuard
from promptshield.guard.state import GuardState, PendingAction, ReplayToken

__all__ = ["GuardState", "PendingAction", "ReplayToken", "SubmissionGuard"]
