"""Cooperative cancellation for in-flight model loads."""

from __future__ import annotations

__all__ = ["CancellationToken", "LoadCancelled"]


class LoadCancelled(Exception):
    """Raised at a checkpoint after the owning request has been cancelled.

    Cancellation is not a failure: the queue swallows this exception without
    notifying the requester.
    """


class CancellationToken:
    """Flag shared between the queue and one load operation."""

    __slots__ = ("_cancelled", "_reason")

    def __init__(self) -> None:
        self._cancelled = False
        self._reason = ""

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def reason(self) -> str:
        return self._reason

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._cancelled:
            self._cancelled = True
            self._reason = reason

    def raise_if_cancelled(self) -> None:
        """Checkpoint used before every side-effecting step of a load."""

        if self._cancelled:
            raise LoadCancelled(self._reason)
