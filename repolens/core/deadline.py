"""Cooperative cancellation for long-running scans.

A Deadline is handed down through the scanners and extractors. They call
``check()`` while recursing; once the budget is spent (or the timeout guard
has cancelled the run) the check raises AnalysisTimeoutError and the
abandoned pipeline unwinds instead of finishing work nobody will read.
"""
from __future__ import annotations

import threading
import time

from repolens.errors import AnalysisTimeoutError


class Deadline:
    """A wall-clock budget that can also be cancelled explicitly."""

    def __init__(self, budget_ms: int | None = None):
        self.budget_ms = budget_ms
        self._started = time.monotonic()
        self._expires_at = (
            self._started + budget_ms / 1000.0 if budget_ms is not None else None
        )
        self._cancelled = threading.Event()

    @classmethod
    def unbounded(cls) -> Deadline:
        return cls(None)

    def cancel(self) -> None:
        """Mark the deadline as spent regardless of the clock."""
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def expired(self) -> bool:
        if self._cancelled.is_set():
            return True
        return self._expires_at is not None and time.monotonic() >= self._expires_at

    def remaining(self) -> float | None:
        """Seconds left, or None for an unbounded deadline."""
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - time.monotonic())

    def elapsed_ms(self) -> int:
        return int((time.monotonic() - self._started) * 1000)

    def check(self, stage: str = "") -> None:
        """Raise AnalysisTimeoutError if the budget is spent."""
        if self.expired():
            raise AnalysisTimeoutError(self.budget_ms or 0, stage)


def ensure_deadline(deadline: Deadline | None) -> Deadline:
    return deadline if deadline is not None else Deadline.unbounded()
