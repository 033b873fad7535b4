"""Cooperative cancellation."""

import threading

from paper_daily.pipeline.errors import PipelineAbortedError


class CancellationToken:
    """Flag polled by the pipeline at stage boundaries.

    Safe to cancel from another thread (a signal handler or a UI).
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request cancellation."""
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, stage: str) -> None:
        """Raise if cancellation was requested.

        Raises:
            PipelineAbortedError: If :meth:`cancel` has been called.
        """
        if self._event.is_set():
            raise PipelineAbortedError(stage)
