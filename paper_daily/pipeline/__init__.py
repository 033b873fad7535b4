"""Pipeline orchestration: daily runs, backfills and rollups."""

from paper_daily.pipeline.backfill import (
    BackfillDriver,
    BackfillResult,
    day_window,
)
from paper_daily.pipeline.cancellation import CancellationToken
from paper_daily.pipeline.coordinator import RunCoordinator, RunKind
from paper_daily.pipeline.daily import DailyPipeline, DailyRunResult, RunOptions
from paper_daily.pipeline.errors import (
    BackfillValidationError,
    PipelineAbortedError,
    PipelineBusyError,
)
from paper_daily.pipeline.events import EventDispatcher, PipelineEvents
from paper_daily.pipeline.rollup import (
    RollupPeriod,
    RollupPipeline,
    RollupResult,
    iso_week_period,
    month_period,
)
from paper_daily.pipeline.run_log import MAX_RUN_LOG_BYTES, RunLog
from paper_daily.pipeline.schedule import is_daily_run_due
from paper_daily.pipeline.state_machine import (
    STAGE_ORDER,
    PipelineStage,
    PipelineStateError,
    PipelineStateMachine,
)


__all__ = [
    "MAX_RUN_LOG_BYTES",
    "STAGE_ORDER",
    "BackfillDriver",
    "BackfillResult",
    "BackfillValidationError",
    "CancellationToken",
    "DailyPipeline",
    "DailyRunResult",
    "EventDispatcher",
    "PipelineAbortedError",
    "PipelineBusyError",
    "PipelineEvents",
    "PipelineStage",
    "PipelineStateError",
    "PipelineStateMachine",
    "RollupPeriod",
    "RollupPipeline",
    "RollupResult",
    "RunCoordinator",
    "RunKind",
    "RunLog",
    "RunOptions",
    "day_window",
    "is_daily_run_due",
    "iso_week_period",
    "month_period",
]
