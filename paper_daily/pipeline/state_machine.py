"""Stage ordering for the daily pipeline."""

from enum import Enum

import structlog


logger = structlog.get_logger()


class PipelineStage(str, Enum):
    """Stages of one daily run, in execution order.

    Every run walks the stages in order; a stage with nothing to do
    still runs and logs that it skipped. Any stage may end the run in
    FAILED (fatal error) or ABORTED (cancellation).
    """

    PENDING = "PENDING"
    FETCH_PRIMARY = "FETCH_PRIMARY"
    FETCH_SECONDARY = "FETCH_SECONDARY"
    MERGE_ENRICH = "MERGE_ENRICH"
    DEDUP = "DEDUP"
    RANK = "RANK"
    LLM_SCORE = "LLM_SCORE"
    TRENDING = "TRENDING"
    FULLTEXT_ENRICH = "FULLTEXT_ENRICH"
    DEEP_READ = "DEEP_READ"
    LLM_DIGEST = "LLM_DIGEST"
    RENDER = "RENDER"
    PERSIST_SNAPSHOT = "PERSIST_SNAPSHOT"
    UPDATE_DEDUP = "UPDATE_DEDUP"
    UPDATE_STATE = "UPDATE_STATE"
    DONE = "DONE"
    FAILED = "FAILED"
    ABORTED = "ABORTED"


STAGE_ORDER: tuple[PipelineStage, ...] = (
    PipelineStage.PENDING,
    PipelineStage.FETCH_PRIMARY,
    PipelineStage.FETCH_SECONDARY,
    PipelineStage.MERGE_ENRICH,
    PipelineStage.DEDUP,
    PipelineStage.RANK,
    PipelineStage.LLM_SCORE,
    PipelineStage.TRENDING,
    PipelineStage.FULLTEXT_ENRICH,
    PipelineStage.DEEP_READ,
    PipelineStage.LLM_DIGEST,
    PipelineStage.RENDER,
    PipelineStage.PERSIST_SNAPSHOT,
    PipelineStage.UPDATE_DEDUP,
    PipelineStage.UPDATE_STATE,
    PipelineStage.DONE,
)

_TERMINAL = frozenset({PipelineStage.DONE, PipelineStage.FAILED, PipelineStage.ABORTED})


def _build_transitions() -> dict[PipelineStage, set[PipelineStage]]:
    transitions: dict[PipelineStage, set[PipelineStage]] = {
        stage: set() for stage in PipelineStage
    }
    for current, following in zip(STAGE_ORDER, STAGE_ORDER[1:], strict=False):
        transitions[current] = {following, PipelineStage.FAILED, PipelineStage.ABORTED}
    return transitions


_VALID_TRANSITIONS = _build_transitions()


class PipelineStateError(Exception):
    """Raised when an illegal stage transition is attempted."""

    def __init__(self, from_state: PipelineStage, to_state: PipelineStage) -> None:
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"Illegal pipeline transition: {from_state.value} -> {to_state.value}"
        )


class PipelineStateMachine:
    """Tracks the current stage and rejects out-of-order transitions."""

    def __init__(self, run_id: str) -> None:
        self._state = PipelineStage.PENDING
        self._log = logger.bind(component="pipeline", run_id=run_id)

    @property
    def state(self) -> PipelineStage:
        return self._state

    @property
    def is_terminal(self) -> bool:
        return self._state in _TERMINAL

    def can_transition_to(self, target: PipelineStage) -> bool:
        return target in _VALID_TRANSITIONS[self._state]

    def transition_to(self, target: PipelineStage) -> None:
        """Move to ``target``.

        Raises:
            PipelineStateError: If the transition is illegal.
        """
        if not self.can_transition_to(target):
            self._log.error(
                "invariant_violation",
                from_state=self._state.value,
                to_state=target.value,
            )
            raise PipelineStateError(self._state, target)
        previous = self._state
        self._state = target
        self._log.debug(
            "pipeline_state_transition", from_state=previous.value, to_state=target.value
        )
