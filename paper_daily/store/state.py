"""Run state: last successful daily run and last recorded error."""

import json
from collections.abc import Callable
from datetime import UTC, datetime

import structlog
from pydantic import ValidationError

from paper_daily.data_model import CamelModel
from paper_daily.store.document_store import DocumentStore


logger = structlog.get_logger()


class LastError(CamelModel):
    """Most recent stage failure."""

    time: str
    stage: str
    message: str


class RunState(CamelModel):
    """Persisted run state (``lastDailyRun`` is ``""`` before the first run)."""

    last_daily_run: str = ""
    last_error: LastError | None = None


class StateStore:
    """Loads and persists :class:`RunState`; every setter saves immediately."""

    def __init__(
        self,
        store: DocumentStore,
        path: str,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._path = path
        self._clock = clock or (lambda: datetime.now(UTC))
        self._state = RunState()
        self._log = logger.bind(component="store", subcomponent="state")

    def load(self) -> None:
        """Load persisted state; corrupt data keeps the defaults."""
        content = self._store.read_note(self._path)
        if not content:
            return
        try:
            self._state = RunState.model_validate(json.loads(content))
        except (json.JSONDecodeError, ValidationError) as e:
            self._log.warning("run_state_corrupt", path=self._path, error=str(e))
            self._state = RunState()

    def save(self) -> None:
        """Write state back."""
        self._store.write_note(
            self._path,
            json.dumps(self._state.model_dump(mode="json", by_alias=True), indent=2),
        )

    def get(self) -> RunState:
        """Copy of the current state."""
        return self._state.model_copy(deep=True)

    def set_last_daily_run(self, timestamp: str) -> None:
        """Record the completion time of a live daily run."""
        self._state.last_daily_run = timestamp
        self.save()

    def set_last_error(self, stage: str, message: str) -> None:
        """Record a stage failure, timestamped now."""
        self._state.last_error = LastError(
            time=self._clock().isoformat(), stage=stage, message=message
        )
        self.save()
        self._log.info("run_error_recorded", stage=stage)

    def clear_last_error(self) -> None:
        """Forget the recorded error."""
        self._state.last_error = None
        self.save()
