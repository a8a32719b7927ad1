"""Session summary surface: the enabled toggle and cumulative warning counts."""

from promptshield.popup.view import EMPTY_MESSAGE, SessionSummaryView, render_counts

__all__ = ["EMPTY_MESSAGE", "SessionSummaryView", "render_counts"]
