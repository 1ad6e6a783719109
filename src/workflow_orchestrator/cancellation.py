# cancellation.py
# Cooperative cancellation shared by runs and conversation turns.

import threading

from workflow_orchestrator.errors import CancelledError


class CancelToken:
    """
    A one-shot flag a caller sets to ask a run or turn to stop.

    Work checks the token at safe points (between steps, between rounds)
    and waits on it instead of sleeping, so a cancel interrupts any
    simulated latency immediately.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float) -> bool:
        """Block up to `timeout` seconds. Returns True if cancelled meanwhile."""
        return self._event.wait(timeout)

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise CancelledError("Operation cancelled by the caller.")
