"""Pipeline error types."""


class PipelineAbortedError(Exception):
    """A run was cancelled cooperatively.

    Distinct from a failure: nothing went wrong, someone asked to stop.

    Attributes:
        stage: Stage boundary at which the cancellation was observed.
    """

    def __init__(self, stage: str) -> None:
        self.stage = stage
        super().__init__(f"Run aborted at {stage}")


class PipelineBusyError(Exception):
    """A run of the same kind is already in progress."""

    def __init__(self, kind: str) -> None:
        self.kind = kind
        super().__init__(f"A {kind} run is already in progress")


class BackfillValidationError(ValueError):
    """Backfill range rejected before any side effect."""
