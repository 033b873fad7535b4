"""Integration tests for the daily pipeline with fake feeds and an in-memory store."""

import json
from datetime import timedelta

import pytest

from paper_daily.config.schemas import (
    CommunitySourceConfig,
    DigestConfig,
    DirectionConfig,
    DirectionMatch,
    FetchMode,
    InterestKeyword,
)
from paper_daily.llm import LlmApiError
from paper_daily.pipeline import (
    CancellationToken,
    DailyPipeline,
    PipelineAbortedError,
    PipelineEvents,
    RunOptions,
)
from paper_daily.store import ArtifactPaths, InMemoryDocumentStore, TrackingStore
from tests.helpers.fakes import (
    FakeCommunityFeed,
    FakeLlmProvider,
    FakeSource,
    RecordingSleep,
    make_community_paper,
    make_paper,
)
from tests.helpers.time import FIXED_NOW, FIXED_TODAY, fixed_clock


PATHS = ArtifactPaths("PaperDaily")


def _papers() -> list:
    return [
        make_paper("arxiv:2501.00001v1", title="Agents that plan", abstract="An agent study.", hours_ago=2),
        make_paper("arxiv:2501.00002v1", title="Sparse MoE routing", abstract="Mixture of experts.", hours_ago=5),
        make_paper("arxiv:2501.00003v2", title="Protein folding", abstract="Biology.", hours_ago=8),
    ]


def _pipeline(
    store: InMemoryDocumentStore,
    config: DigestConfig | None = None,
    primary: FakeSource | None = None,
    community: FakeCommunityFeed | None = None,
    llm: FakeLlmProvider | None = None,
    clock=fixed_clock,
    sleep: RecordingSleep | None = None,
    events: PipelineEvents | None = None,
) -> DailyPipeline:
    return DailyPipeline(
        config=config or DigestConfig(),
        store=store,
        primary=primary or FakeSource(_papers()),
        community=community,
        llm=llm,
        clock=clock,
        sleep=sleep or RecordingSleep(),
        events=events,
    )


def _state(store: InMemoryDocumentStore) -> dict:
    return json.loads(store.read_note(PATHS.state) or "{}")


def _dedup(store: InMemoryDocumentStore) -> dict:
    return json.loads(store.read_note(PATHS.dedup) or "{}")


class TestLiveRun:
    """Tests for a complete live run."""

    def test_writes_digest_snapshot_dedup_and_state(self) -> None:
        """Test a successful run persists every artifact."""
        store = InMemoryDocumentStore(fixed_clock)

        result = _pipeline(store).run()

        assert result.date == FIXED_TODAY
        assert not result.has_errors
        assert result.digest_path == PATHS.inbox(FIXED_TODAY)
        digest = store.read_note(result.digest_path)
        assert digest is not None
        assert f"# Paper Daily {FIXED_TODAY}" in digest
        assert "Pipeline errors" not in digest

        snapshot = json.loads(store.read_note(PATHS.snapshot(FIXED_TODAY)))
        assert [p["id"] for p in snapshot["papers"]] == [p.id for p in result.papers]
        assert "error" not in snapshot

        assert set(_dedup(store)) == {
            "arxiv:2501.00001v1",
            "arxiv:2501.00002v1",
            "arxiv:2501.00003v2",
        }
        state = _state(store)
        assert state["lastDailyRun"] == FIXED_NOW.isoformat()
        assert state.get("lastError") is None
        assert "RUN" in store.read_note(PATHS.run_log)

    def test_orders_by_recency_without_interests(self) -> None:
        """Test papers with equal scores are ordered newest first."""
        result = _pipeline(InMemoryDocumentStore(fixed_clock)).run()

        assert [p.id for p in result.papers] == [
            "arxiv:2501.00001v1",
            "arxiv:2501.00002v1",
            "arxiv:2501.00003v2",
        ]

    def test_interest_keywords_rank_and_partition(self) -> None:
        """Test interest scores drive order and non-matching papers go to trending."""
        config = DigestConfig(
            interest_keywords=[
                InterestKeyword(keyword="mixture of experts", weight=4),
                InterestKeyword(keyword="agent", weight=2),
            ]
        )

        result = _pipeline(InMemoryDocumentStore(fixed_clock), config).run()

        assert [p.id for p in result.papers] == ["arxiv:2501.00002v1", "arxiv:2501.00001v1"]
        assert result.papers[0].interest_hits == ["mixture of experts"]
        assert result.papers[1].interest_hits == ["agent"]
        # v2 + published <24h ago clears the default trending threshold
        assert [t.paper.id for t in result.trending] == ["arxiv:2501.00003v2"]

    def test_interest_only_mode_drops_non_matching_papers(self) -> None:
        """Test interest_only fetch mode filters before ranking."""
        config = DigestConfig(
            fetch_mode=FetchMode.INTEREST_ONLY,
            interest_keywords=[InterestKeyword(keyword="agent", weight=1)],
        )

        result = _pipeline(InMemoryDocumentStore(fixed_clock), config).run()

        assert [p.id for p in result.papers] == ["arxiv:2501.00001v1"]
        assert result.trending == []

    def test_directions_attach_top_directions(self) -> None:
        """Test direction scoring labels papers and is rendered."""
        config = DigestConfig(
            directions=[
                DirectionConfig(
                    name="MoE",
                    weight=1.5,
                    match=DirectionMatch(keywords=["mixture of experts", "sparse"]),
                ),
            ]
        )
        store = InMemoryDocumentStore(fixed_clock)

        result = _pipeline(store, config).run()

        assert result.papers[0].id == "arxiv:2501.00002v1"
        assert result.papers[0].top_directions == ["MoE"]
        assert "**MoE**" in store.read_note(result.digest_path)


class TestEmptyAndFailedFetch:
    """Tests for empty fetches and fetch failures."""

    def test_empty_fetch_is_not_an_error(self) -> None:
        """Test zero papers renders an empty digest without a banner."""
        store = InMemoryDocumentStore(fixed_clock)

        result = _pipeline(store, primary=FakeSource([])).run()

        assert result.papers == []
        assert result.fetch_error is None
        digest = store.read_note(result.digest_path)
        assert "0 papers ranked" in digest
        assert "Pipeline errors" not in digest
        assert _state(store).get("lastError") is None

    def test_fetch_failure_renders_banner_and_records_error(self) -> None:
        """Test a failed primary fetch still produces a digest and snapshot."""
        store = InMemoryDocumentStore(fixed_clock)

        result = _pipeline(store, primary=FakeSource(error=RuntimeError("connection reset"))).run()

        assert result.fetch_error == "connection reset"
        assert result.papers == []
        digest = store.read_note(result.digest_path)
        assert "Pipeline errors" in digest
        assert "Fetch failed: connection reset" in digest

        snapshot = json.loads(store.read_note(PATHS.snapshot(FIXED_TODAY)))
        assert snapshot["error"] == "connection reset"
        state = _state(store)
        assert state["lastError"]["stage"] == "FETCH_PRIMARY"
        assert state["lastError"]["message"] == "connection reset"
        assert state["lastDailyRun"] == FIXED_NOW.isoformat()

    def test_successful_run_clears_previous_error(self) -> None:
        """Test a clean live run clears the recorded error."""
        store = InMemoryDocumentStore(fixed_clock)
        _pipeline(store, primary=FakeSource(error=RuntimeError("down"))).run()

        _pipeline(store).run()

        assert _state(store).get("lastError") is None

    def test_community_failure_does_not_fail_run(self) -> None:
        """Test the community feed is best-effort."""
        store = InMemoryDocumentStore(fixed_clock)
        community = FakeCommunityFeed(error=RuntimeError("feed down"))

        result = _pipeline(store, community=community).run()

        assert len(result.papers) == 3
        assert not result.has_errors


class TestRateLimitRetry:
    """Tests for retry transparency on the primary feed."""

    def test_two_rate_limits_then_success_matches_clean_run(self) -> None:
        """Test retried fetch yields the same result as an immediate success."""
        sleep = RecordingSleep()
        retried = _pipeline(
            InMemoryDocumentStore(fixed_clock),
            primary=FakeSource(_papers(), rate_limits=2),
            sleep=sleep,
        ).run()
        clean = _pipeline(InMemoryDocumentStore(fixed_clock)).run()

        assert sleep.delays == [5, 15]
        assert retried.fetch_error is None
        assert [p.model_dump() for p in retried.papers] == [p.model_dump() for p in clean.papers]

    def test_exhausted_retries_become_fetch_error(self) -> None:
        """Test a persistent rate limit is reported, not raised."""
        sleep = RecordingSleep()

        result = _pipeline(
            InMemoryDocumentStore(fixed_clock),
            primary=FakeSource(_papers(), rate_limits=10),
            sleep=sleep,
        ).run()

        assert sleep.delays == [5, 15, 30]
        assert result.fetch_error is not None
        assert result.papers == []


class TestCommunityMerge:
    """Tests for merging community picks into the pool."""

    def test_unversioned_community_id_enriches_versioned_paper(self) -> None:
        """Test 2501.00001 from the community feed merges into 2501.00001v1."""
        store = InMemoryDocumentStore(fixed_clock)
        community = FakeCommunityFeed(
            [
                make_community_paper("2501.00001", "Agents that plan", upvotes=42),
                make_community_paper("2501.09999", "Community only", upvotes=7),
            ]
        )

        result = _pipeline(store, community=community).run()

        by_id = {p.id: p for p in result.papers}
        assert by_id["arxiv:2501.00001v1"].upvotes == 42
        assert by_id["arxiv:2501.00001v1"].streak == 1
        assert by_id["arxiv:2501.00001v1"].links.community == (
            "https://huggingface.co/papers/2501.00001"
        )
        assert "arxiv:2501.00001" not in by_id
        assert "arxiv:2501.09999" in by_id
        assert len(result.papers) == 4
        assert community.days == [FIXED_TODAY]

    def test_new_version_stays_distinct_in_dedup(self) -> None:
        """Test v1 and v2 of the same paper are separate dedup entries."""
        store = InMemoryDocumentStore(fixed_clock)
        _pipeline(store, primary=FakeSource([make_paper("arxiv:2501.00001v1")])).run()

        next_day = FIXED_NOW + timedelta(days=1)
        result = _pipeline(
            store,
            primary=FakeSource([make_paper("arxiv:2501.00001v2")]),
            clock=lambda: next_day,
        ).run()

        assert [p.id for p in result.papers] == ["arxiv:2501.00001v2"]
        dedup = _dedup(store)
        assert dedup["arxiv:2501.00001v1"] == FIXED_TODAY
        assert dedup["arxiv:2501.00001v2"] == next_day.date().isoformat()

    def test_community_streak_counts_consecutive_days(self) -> None:
        """Test the tracking store increments once per new day."""
        store = InMemoryDocumentStore(fixed_clock)
        community = FakeCommunityFeed([make_community_paper("2501.05555", "Hot", upvotes=3)])
        config = DigestConfig(dedup=False)

        _pipeline(store, config, community=community).run()
        again = _pipeline(store, config, community=community).run()
        next_day = FIXED_NOW + timedelta(days=1)
        later = _pipeline(store, config, community=community, clock=lambda: next_day).run()

        def streak(result) -> int:
            return next(p.streak for p in result.papers if p.id == "arxiv:2501.05555")

        assert streak(again) == 1
        assert streak(later) == 2

    def test_lookback_feed_day_is_not_counted_twice(self) -> None:
        """Test a run that falls back to an already-counted feed day keeps the streak."""
        store = InMemoryDocumentStore(fixed_clock)
        community = FakeCommunityFeed(
            [make_community_paper("2501.05555", "Hot", upvotes=3)], feed_date=FIXED_TODAY
        )
        config = DigestConfig(dedup=False)
        next_day = FIXED_NOW + timedelta(days=1)

        _pipeline(store, config, community=community).run()
        later = _pipeline(store, config, community=community, clock=lambda: next_day).run()

        assert [p.streak for p in later.papers if p.id == "arxiv:2501.05555"] == [1]
        assert community.days == [FIXED_TODAY, next_day.date().isoformat()]

    def test_community_dedup_keeps_papers_first_seen_on_feed_day(self) -> None:
        """Test dedup compares against the feed day, not the run day."""
        store = InMemoryDocumentStore(fixed_clock)
        community = FakeCommunityFeed(
            [make_community_paper("2501.05555", "Hot", upvotes=3)], feed_date=FIXED_TODAY
        )
        config = DigestConfig(dedup=False, community=CommunitySourceConfig(dedup=True))
        next_day = FIXED_NOW + timedelta(days=1)

        _pipeline(store, config, community=community).run()
        later = _pipeline(store, config, community=community, clock=lambda: next_day).run()

        assert "arxiv:2501.05555" in [p.id for p in later.papers]

    def test_community_dedup_still_counts_reappearances(self) -> None:
        """Test a paper hidden by community dedup still has its streak recorded."""
        store = InMemoryDocumentStore(fixed_clock)
        paper = make_community_paper("2501.05555", "Hot", upvotes=3)
        config = DigestConfig(dedup=False, community=CommunitySourceConfig(dedup=True))
        next_day = FIXED_NOW + timedelta(days=1)

        _pipeline(store, config, community=FakeCommunityFeed([paper])).run()
        later = _pipeline(
            store,
            config,
            community=FakeCommunityFeed([paper], feed_date=next_day.date().isoformat()),
            clock=lambda: next_day,
        ).run()

        assert "arxiv:2501.05555" not in [p.id for p in later.papers]
        tracking = TrackingStore(store, PATHS.tracking)
        tracking.load()
        entry = tracking.get_entry("arxiv:2501.05555")
        assert entry is not None
        assert entry.count == 2
        assert entry.last_seen == next_day.date().isoformat()


class TestDedup:
    """Tests for the permanent dedup map across runs."""

    def test_second_run_hides_seen_papers(self) -> None:
        """Test papers shown once are not shown again."""
        store = InMemoryDocumentStore(fixed_clock)
        _pipeline(store).run()
        before = _dedup(store)

        result = _pipeline(store).run()

        assert result.papers == []
        assert _dedup(store) == before

    def test_skip_dedup_neither_filters_nor_records(self) -> None:
        """Test skip_dedup leaves the map untouched."""
        store = InMemoryDocumentStore(fixed_clock)
        _pipeline(store).run()
        before = _dedup(store)

        result = _pipeline(
            store, primary=FakeSource([*_papers(), make_paper("arxiv:2501.00004v1")])
        ).run(RunOptions(skip_dedup=True))

        assert len(result.papers) == 4
        assert _dedup(store) == before

    def test_skip_dedup_does_not_mark_the_day_as_run(self) -> None:
        """Test a dedup-bypassing run leaves the last-run timestamp unset."""
        store = InMemoryDocumentStore(fixed_clock)

        _pipeline(store).run(RunOptions(skip_dedup=True))

        assert _state(store).get("lastDailyRun", "") == ""

    def test_historical_run_leaves_dedup_and_state_alone(self) -> None:
        """Test a pinned target date does not touch live-run bookkeeping."""
        store = InMemoryDocumentStore(fixed_clock)

        result = _pipeline(store).run(RunOptions(target_date="2025-01-10"))

        assert result.date == "2025-01-10"
        assert store.read_note(PATHS.inbox("2025-01-10")) is not None
        assert store.read_note(PATHS.dedup) is None
        assert _state(store).get("lastDailyRun", "") == ""


class TestLlmStages:
    """Tests for LLM scoring and digest stages."""

    def test_non_json_scoring_keeps_keyword_order(self) -> None:
        """Test an unparseable scoring reply leaves the order and scores alone."""
        config = DigestConfig(interest_keywords=[InterestKeyword(keyword="a", weight=1)])
        baseline = _pipeline(InMemoryDocumentStore(fixed_clock), config).run()
        store = InMemoryDocumentStore(fixed_clock)

        result = _pipeline(
            store, config, llm=FakeLlmProvider(["I cannot score these papers."])
        ).run()

        assert [p.id for p in result.papers] == [p.id for p in baseline.papers]
        assert all(p.llm_score is None for p in result.papers)
        assert any(msg.startswith("scoring:") for msg in result.llm_errors)
        digest = store.read_note(result.digest_path)
        assert "LLM failed:" in digest
        assert _state(store)["lastError"]["stage"] == "LLM_SCORE"

    def test_scores_reorder_and_digest_is_rendered(self) -> None:
        """Test LLM scores re-sort the list and the digest text is rendered."""
        scores = json.dumps(
            [
                {"id": "2501.00001", "score": 4},
                {"id": "2501.00002", "score": 6},
                {"id": "2501.00003", "score": 9},
            ]
        )
        llm = FakeLlmProvider([scores, "Today in research: protein folding wins."])
        store = InMemoryDocumentStore(fixed_clock)

        result = _pipeline(store, llm=llm).run()

        assert [p.id for p in result.papers] == [
            "arxiv:2501.00003v2",
            "arxiv:2501.00002v1",
            "arxiv:2501.00001v1",
        ]
        assert result.papers[0].llm_score == 9.0
        assert result.digest_text == "Today in research: protein folding wins."
        assert result.llm_errors == []
        assert result.tokens.calls == 2
        assert "Today in research" in store.read_note(result.digest_path)

    def test_digest_failure_is_reported_in_document(self) -> None:
        """Test a digest API error renders the failure and keeps the table."""
        llm = FakeLlmProvider(["[]", LlmApiError("HTTP 500", status_code=500)])
        store = InMemoryDocumentStore(fixed_clock)

        result = _pipeline(store, llm=llm).run()

        assert len(result.papers) == 3
        assert result.digest_text is None
        assert result.llm_errors
        digest = store.read_note(result.digest_path)
        assert "LLM failed: HTTP 500" in digest
        assert "Agents that plan" in digest


class _CancelAfter(PipelineEvents):
    def __init__(self, token: CancellationToken, stage: str) -> None:
        self.token = token
        self.stage = stage
        self.completed: list[str] = []

    def stage_completed(self, stage: str, detail: str) -> None:
        self.completed.append(stage)
        if stage == self.stage:
            self.token.cancel()


class TestCancellation:
    """Tests for cooperative cancellation."""

    def test_cancel_before_start_aborts_at_first_stage(self) -> None:
        """Test a pre-cancelled token aborts before fetching."""
        token = CancellationToken()
        token.cancel()
        primary = FakeSource(_papers())

        with pytest.raises(PipelineAbortedError) as exc_info:
            _pipeline(InMemoryDocumentStore(fixed_clock), primary=primary).run(cancel=token)

        assert exc_info.value.stage == "FETCH_PRIMARY"
        assert primary.queries == []

    def test_cancel_mid_run_stops_before_next_stage(self) -> None:
        """Test cancelling after RANK prevents rendering and persistence."""
        token = CancellationToken()
        events = _CancelAfter(token, "RANK")
        store = InMemoryDocumentStore(fixed_clock)

        with pytest.raises(PipelineAbortedError) as exc_info:
            _pipeline(store, events=events).run(cancel=token)

        assert exc_info.value.stage == "LLM_SCORE"
        assert events.completed[-1] == "RANK"
        assert store.read_note(PATHS.inbox(FIXED_TODAY)) is None
        assert store.read_note(PATHS.snapshot(FIXED_TODAY)) is None
        assert "aborted at LLM_SCORE" in store.read_note(PATHS.run_log)
