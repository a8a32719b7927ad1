"""Confirmation surface — shows a scan result and collects the user's decision."""

from promptshield.surface.confirmation import (
    ConfirmationSurface,
    Decision,
    DeferredSurface,
    format_summary,
)

__all__ = ["ConfirmationSurface", "Decision", "DeferredSurface", "format_summary"]
