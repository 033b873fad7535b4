"""Reentrancy guard and cancellation ownership for pipeline runs."""

import threading
from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager
from enum import Enum

import structlog

from paper_daily.pipeline.cancellation import CancellationToken
from paper_daily.pipeline.errors import PipelineBusyError


logger = structlog.get_logger()


class RunKind(str, Enum):
    """Kinds of runs guarded independently."""

    LIVE = "live"
    BACKFILL = "backfill"


class RunCoordinator:
    """Admits at most one live run and one backfill at a time.

    A second trigger of a kind that is already running is rejected with
    :class:`PipelineBusyError` rather than queued. Each admitted run gets
    a fresh :class:`CancellationToken` that :meth:`cancel` can trip.
    """

    def __init__(self) -> None:
        self._locks = {kind: threading.Lock() for kind in RunKind}
        self._tokens: dict[RunKind, CancellationToken] = {}
        self._guard = threading.Lock()
        self._log = logger.bind(component="pipeline", subcomponent="coordinator")

    def is_busy(self, kind: RunKind) -> bool:
        """Whether a run of ``kind`` is in progress."""
        return self._locks[kind].locked()

    @contextmanager
    def run(self, kind: RunKind) -> Iterator[CancellationToken]:
        """Hold the slot for ``kind`` for the duration of the block.

        Yields:
            Cancellation token for the admitted run.

        Raises:
            PipelineBusyError: If a run of the same kind is in progress.
        """
        lock = self._locks[kind]
        if not lock.acquire(blocking=False):
            self._log.warning("run_rejected_busy", kind=kind.value)
            raise PipelineBusyError(kind.value)
        token = CancellationToken()
        with self._guard:
            self._tokens[kind] = token
        try:
            yield token
        finally:
            with self._guard:
                self._tokens.pop(kind, None)
            lock.release()

    def live_run(self) -> AbstractContextManager[CancellationToken]:
        """Shorthand for ``run(RunKind.LIVE)``."""
        return self.run(RunKind.LIVE)

    def backfill_run(self) -> AbstractContextManager[CancellationToken]:
        """Shorthand for ``run(RunKind.BACKFILL)``."""
        return self.run(RunKind.BACKFILL)

    def cancel(self, kind: RunKind) -> bool:
        """Cancel the run of ``kind`` if one is active.

        Returns:
            True if a run was signalled.
        """
        with self._guard:
            token = self._tokens.get(kind)
        if token is None:
            return False
        token.cancel()
        self._log.info("run_cancel_requested", kind=kind.value)
        return True
