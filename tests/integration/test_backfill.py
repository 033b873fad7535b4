"""Integration tests for the backfill driver."""

import json

import pytest

from paper_daily.config.schemas import DigestConfig
from paper_daily.pipeline import (
    BackfillDriver,
    BackfillValidationError,
    CancellationToken,
    DailyPipeline,
    PipelineAbortedError,
)
from paper_daily.store import ArtifactPaths, InMemoryDocumentStore
from tests.helpers.fakes import FakeSource, RecordingSleep, make_paper
from tests.helpers.time import fixed_clock


PATHS = ArtifactPaths("PaperDaily")


class FailingSnapshotStore(InMemoryDocumentStore):
    """In-memory store whose snapshot write fails for chosen days."""

    def __init__(self, failing_days: set[str]) -> None:
        super().__init__(fixed_clock)
        self._failing = {PATHS.snapshot(day) for day in failing_days}

    def write_note(self, path: str, content: str) -> None:
        if path in self._failing:
            msg = f"disk full writing {path}"
            raise OSError(msg)
        super().write_note(path, content)


def _driver(
    store: InMemoryDocumentStore,
    max_days: int = 30,
    primary: FakeSource | None = None,
) -> BackfillDriver:
    pipeline = DailyPipeline(
        config=DigestConfig(backfill_max_days=max_days),
        store=store,
        primary=primary or FakeSource([make_paper("arxiv:2501.00001v1")]),
        clock=fixed_clock,
        sleep=RecordingSleep(),
    )
    return BackfillDriver(pipeline, max_days=max_days)


class TestBackfillValidation:
    """Tests for range validation before any work."""

    def test_range_over_limit_has_no_side_effects(self) -> None:
        """Test an oversized range fails before any day is processed."""
        store = InMemoryDocumentStore(fixed_clock)
        primary = FakeSource([make_paper()])

        with pytest.raises(BackfillValidationError, match="exceeds the maximum of 3"):
            _driver(store, max_days=3, primary=primary).run_backfill("2025-01-01", "2025-01-04")

        assert store.documents == {}
        assert primary.queries == []

    def test_range_at_limit_is_accepted(self) -> None:
        """Test the limit itself is inclusive."""
        days = _driver(InMemoryDocumentStore(fixed_clock), max_days=3).validate(
            "2025-01-01", "2025-01-03"
        )

        assert [d.isoformat() for d in days] == ["2025-01-01", "2025-01-02", "2025-01-03"]

    def test_reversed_range_is_rejected(self) -> None:
        """Test start after end is rejected."""
        with pytest.raises(BackfillValidationError, match="is after end"):
            _driver(InMemoryDocumentStore(fixed_clock)).validate("2025-01-05", "2025-01-01")

    def test_malformed_date_is_rejected(self) -> None:
        """Test non-ISO dates are rejected."""
        with pytest.raises(BackfillValidationError, match="start must be YYYY-MM-DD"):
            _driver(InMemoryDocumentStore(fixed_clock)).validate("01/05/2025", "2025-01-06")


class TestBackfillRun:
    """Tests for processing a range of days."""

    def test_processes_each_day_with_full_day_window(self) -> None:
        """Test one pinned run per day over the full UTC day."""
        store = InMemoryDocumentStore(fixed_clock)
        primary = FakeSource([make_paper("arxiv:2501.00001v1")])
        progress: list[tuple[str, int, int]] = []

        result = _driver(store, primary=primary).run_backfill(
            "2025-01-01",
            "2025-01-03",
            on_progress=lambda day, index, total: progress.append((day, index, total)),
        )

        assert result.processed == ["2025-01-01", "2025-01-02", "2025-01-03"]
        assert result.errors == {}
        assert progress == [
            ("2025-01-01", 1, 3),
            ("2025-01-02", 2, 3),
            ("2025-01-03", 3, 3),
        ]
        first = primary.queries[0]
        assert first.target_date == "2025-01-01"
        assert first.window_start.isoformat() == "2025-01-01T00:00:00+00:00"
        assert first.window_end.isoformat() == "2025-01-01T23:59:59+00:00"
        for day in result.processed:
            assert store.read_note(PATHS.inbox(day)) is not None
            assert store.read_note(PATHS.snapshot(day)) is not None

    def test_does_not_touch_dedup_or_last_run(self) -> None:
        """Test backfilled papers stay eligible for live runs."""
        store = InMemoryDocumentStore(fixed_clock)

        result = _driver(store).run_backfill("2025-01-01", "2025-01-02")

        assert len(result.processed) == 2
        assert store.read_note(PATHS.dedup) is None
        state = json.loads(store.read_note(PATHS.state) or "{}")
        assert state.get("lastDailyRun", "") == ""

    def test_continues_past_failing_day(self) -> None:
        """Test a failing day is recorded and later days still run."""
        store = FailingSnapshotStore({"2025-01-02"})

        result = _driver(store).run_backfill("2025-01-01", "2025-01-03")

        assert result.processed == ["2025-01-01", "2025-01-03"]
        assert list(result.errors) == ["2025-01-02"]
        assert "disk full" in result.errors["2025-01-02"]

    def test_fetch_failure_is_not_a_day_failure(self) -> None:
        """Test a failed fetch still yields a processed day with a banner."""
        store = InMemoryDocumentStore(fixed_clock)
        primary = FakeSource(error=RuntimeError("upstream down"))

        result = _driver(store, primary=primary).run_backfill("2025-01-01", "2025-01-01")

        assert result.processed == ["2025-01-01"]
        assert "Fetch failed: upstream down" in store.read_note(PATHS.inbox("2025-01-01"))
        state = json.loads(store.read_note(PATHS.state))
        assert state["lastError"]["stage"] == "FETCH_PRIMARY"

    def test_cancellation_stops_before_next_day(self) -> None:
        """Test cancelling mid-backfill aborts the remaining days."""
        store = InMemoryDocumentStore(fixed_clock)
        token = CancellationToken()

        def cancel_after_first(day: str, index: int, total: int) -> None:
            if index == 2:
                token.cancel()

        with pytest.raises(PipelineAbortedError):
            _driver(store).run_backfill(
                "2025-01-01", "2025-01-03", on_progress=cancel_after_first, cancel=token
            )

        assert store.read_note(PATHS.inbox("2025-01-01")) is not None
        assert store.read_note(PATHS.inbox("2025-01-02")) is None
        assert store.read_note(PATHS.inbox("2025-01-03")) is None
