"""Progress event channel for pipeline runs."""

import structlog


logger = structlog.get_logger()


class PipelineEvents:
    """Observer notified as runs progress.

    The base class ignores every event; subclass and override what you
    need. Observers must not raise: a failing observer is logged and the
    run carries on.
    """

    def stage_started(self, stage: str) -> None:
        """A stage began."""

    def stage_completed(self, stage: str, detail: str) -> None:
        """A stage finished; ``detail`` is a short human summary."""

    def stage_failed(self, stage: str, message: str) -> None:
        """A non-fatal stage failure was recorded."""

    def backfill_progress(self, day: str, index: int, total: int) -> None:
        """Backfill is about to process ``day`` (``index`` is one-based)."""


class EventDispatcher:
    """Forwards events to an observer, isolating observer failures."""

    def __init__(self, observer: PipelineEvents | None = None, run_id: str = "") -> None:
        self._observer = observer or PipelineEvents()
        self._log = logger.bind(component="pipeline", subcomponent="events", run_id=run_id)

    def _dispatch(self, name: str, *args: object) -> None:
        try:
            getattr(self._observer, name)(*args)
        except Exception as e:  # noqa: BLE001
            self._log.warning("event_observer_failed", event=name, error=str(e))

    def stage_started(self, stage: str) -> None:
        self._dispatch("stage_started", stage)

    def stage_completed(self, stage: str, detail: str) -> None:
        self._dispatch("stage_completed", stage, detail)

    def stage_failed(self, stage: str, message: str) -> None:
        self._dispatch("stage_failed", stage, message)

    def backfill_progress(self, day: str, index: int, total: int) -> None:
        self._dispatch("backfill_progress", day, index, total)
