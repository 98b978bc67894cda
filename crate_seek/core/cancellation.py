"""
One-shot cancellation signal for background search and hydration tasks.
"""

import logging

from crate_seek.core.exceptions import TaskCancelled


logger = logging.getLogger(__name__)


class CancellationHandle:
    """
    A one-shot signal owned by whoever starts a background task.

    The owner replaces the handle wholesale for every new task and fires the
    old one; the task polls ``cancelled`` at each suspension point.
    """

    def __init__(self, label: str = "task"):
        self.label = label
        self._cancelled = False

    def cancel(self) -> None:
        if not self._cancelled:
            logger.debug(f"Cancelling {self.label}")
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def raise_if_cancelled(self) -> None:
        """
        Raise TaskCancelled if the handle has fired.

        Raises:
            TaskCancelled: If ``cancel`` has been called.
        """
        if self._cancelled:
            raise TaskCancelled(f"{self.label} was cancelled")

    def __repr__(self) -> str:
        return f"CancellationHandle(label={self.label!r}, cancelled={self._cancelled})"
