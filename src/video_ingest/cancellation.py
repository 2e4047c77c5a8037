"""Cooperative cancellation for pipeline invocations."""

import threading

from .exceptions import PipelineCancelled


class CancellationToken:
    """Flag shared between a caller and one pipeline invocation.

    The pipeline checks it between stages, between download chunks and
    while waiting on subprocesses.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise PipelineCancelled()


def check(cancel: CancellationToken | None) -> None:
    """Raise PipelineCancelled if the optional token was triggered."""
    if cancel is not None:
        cancel.raise_if_cancelled()
