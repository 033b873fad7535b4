"""Replays the daily pipeline over a bounded range of past days."""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, time, timedelta

import structlog

from paper_daily.pipeline.cancellation import CancellationToken
from paper_daily.pipeline.daily import DailyPipeline, RunOptions
from paper_daily.pipeline.errors import BackfillValidationError, PipelineAbortedError
from paper_daily.pipeline.events import EventDispatcher, PipelineEvents


logger = structlog.get_logger()

ProgressCallback = Callable[[str, int, int], None]


@dataclass
class BackfillResult:
    """Outcome of a backfill.

    Attributes:
        processed: Days that completed, in order.
        errors: Error message per failed day, keyed by date.
    """

    processed: list[str] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)


def _parse_day(value: str, name: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        msg = f"{name} must be YYYY-MM-DD, got {value!r}"
        raise BackfillValidationError(msg) from e


def day_window(day: date) -> tuple[datetime, datetime]:
    """Full UTC day: 00:00:00 to 23:59:59."""
    start = datetime.combine(day, time(0, 0, 0), tzinfo=UTC)
    end = datetime.combine(day, time(23, 59, 59), tzinfo=UTC)
    return start, end


class BackfillDriver:
    """Runs the daily pipeline once per day with per-day failure isolation.

    Each day is pinned with ``target_date``, uses the full UTC day as the
    fetch window and bypasses the dedup map, so backfills never hide papers
    from, or add papers to, live runs. Run state is left untouched.
    """

    def __init__(
        self,
        pipeline: DailyPipeline,
        max_days: int,
        events: PipelineEvents | None = None,
    ) -> None:
        """Initialize the driver.

        Args:
            pipeline: Pipeline used for every day.
            max_days: Largest accepted inclusive range.
            events: Progress observer.
        """
        self._pipeline = pipeline
        self._max_days = max_days
        self._events = EventDispatcher(events)
        self._log = logger.bind(component="pipeline", subcomponent="backfill")

    def validate(self, start: str, end: str) -> list[date]:
        """Days of the inclusive range ``[start, end]``.

        Raises:
            BackfillValidationError: If a date is malformed, ``start`` is
                after ``end`` or the range exceeds ``max_days``.
        """
        first = _parse_day(start, "start")
        last = _parse_day(end, "end")
        if first > last:
            msg = f"start {start} is after end {end}"
            raise BackfillValidationError(msg)
        total = (last - first).days + 1
        if total > self._max_days:
            msg = f"range of {total} days exceeds the maximum of {self._max_days}"
            raise BackfillValidationError(msg)
        return [first + timedelta(days=offset) for offset in range(total)]

    def run_backfill(
        self,
        start: str,
        end: str,
        on_progress: ProgressCallback | None = None,
        cancel: CancellationToken | None = None,
    ) -> BackfillResult:
        """Process every day of ``[start, end]``.

        Args:
            start: First day, ``YYYY-MM-DD``.
            end: Last day, ``YYYY-MM-DD``.
            on_progress: Called with ``(date, index_one_based, total)``
                before each day.
            cancel: Checked before each day.

        Returns:
            Processed days and per-day errors.

        Raises:
            BackfillValidationError: Before any side effect, on a bad range.
            PipelineAbortedError: If cancelled.
        """
        days = self.validate(start, end)
        cancel = cancel or CancellationToken()
        result = BackfillResult()
        total = len(days)
        self._log.info("backfill_started", start=start, end=end, total_days=total)

        for index, day in enumerate(days, start=1):
            day_label = day.isoformat()
            cancel.raise_if_cancelled(f"backfill {day_label}")
            self._events.backfill_progress(day_label, index, total)
            if on_progress is not None:
                on_progress(day_label, index, total)

            window_start, window_end = day_window(day)
            options = RunOptions(
                target_date=day_label,
                window_start=window_start,
                window_end=window_end,
                skip_dedup=True,
            )
            try:
                self._pipeline.run(options, cancel)
            except PipelineAbortedError:
                raise
            except Exception as e:  # noqa: BLE001
                result.errors[day_label] = str(e)
                self._log.warning("backfill_day_failed", date=day_label, error=str(e))
                continue
            result.processed.append(day_label)

        self._log.info(
            "backfill_complete",
            processed=len(result.processed),
            failed=len(result.errors),
        )
        return result
