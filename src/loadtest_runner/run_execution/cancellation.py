"""Cooperative cancellation for the polling loops."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .run_contracts import LoadTestRun


class RunCancelled(Exception):
    """Raised by the runner once a cancellation was observed; ``run`` is the final state."""

    def __init__(self, run: LoadTestRun) -> None:
        if run.run_id is None:
            message = f"Load test {run.test_id} was cancelled before a run was started."
        else:
            message = f"Run {run.run_id} was cancelled."
        super().__init__(message)
        self.run = run


class CancellationToken:
    """Set once by the host; observed by the runner at its suspension points."""

    def __init__(self) -> None:
        self._event = threading.Event()

    @property
    def event(self) -> threading.Event:
        return self._event

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; return True as soon as cancellation is requested."""
        return self._event.wait(max(0.0, seconds))
