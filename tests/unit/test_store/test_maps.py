"""Unit tests for the dedup, tracking and run state stores."""

import json
from datetime import date

from paper_daily.store import DedupStore, InMemoryDocumentStore, StateStore, TrackingStore
from tests.helpers.time import FIXED_NOW, fixed_clock


DEDUP_PATH = "PaperDaily/cache/seen_ids.json"
TRACK_PATH = "PaperDaily/cache/community_track.json"
STATE_PATH = "PaperDaily/cache/state.json"


class TestDedupStore:
    """Tests for DedupStore."""

    def test_mark_keeps_first_seen_date(self) -> None:
        """Re-marking an id never overwrites its first-seen date."""
        store = InMemoryDocumentStore()
        dedup = DedupStore(store, DEDUP_PATH)
        dedup.load()

        assert dedup.mark_seen_batch(["arxiv:1v1", "arxiv:2v1"], "2025-01-14") == 2
        assert dedup.mark_seen_batch(["arxiv:1v1", "arxiv:3v1"], "2025-01-15") == 1

        assert dedup.first_seen("arxiv:1v1") == "2025-01-14"
        assert dedup.first_seen("arxiv:3v1") == "2025-01-15"

    def test_marking_twice_is_a_fixed_point(self) -> None:
        store = InMemoryDocumentStore()
        dedup = DedupStore(store, DEDUP_PATH)
        dedup.mark_seen_batch(["arxiv:1v1"], "2025-01-14")
        before = dedup.snapshot()

        dedup.mark_seen_batch(["arxiv:1v1"], "2025-01-20")

        assert dedup.snapshot() == before

    def test_versions_are_distinct(self) -> None:
        dedup = DedupStore(InMemoryDocumentStore(), DEDUP_PATH)
        dedup.mark_seen_batch(["arxiv:2501.00001v1"], "2025-01-14")

        assert dedup.has_id("arxiv:2501.00001v1")
        assert not dedup.has_id("arxiv:2501.00001v2")

    def test_persists_and_reloads(self) -> None:
        store = InMemoryDocumentStore()
        DedupStore(store, DEDUP_PATH).mark_seen_batch(["arxiv:1v1"], "2025-01-14")

        reloaded = DedupStore(store, DEDUP_PATH)
        reloaded.load()

        assert reloaded.snapshot() == {"arxiv:1v1": "2025-01-14"}

    def test_corrupt_map_loads_empty(self) -> None:
        store = InMemoryDocumentStore()
        store.write_note(DEDUP_PATH, "{not json")
        dedup = DedupStore(store, DEDUP_PATH)

        dedup.load()

        assert dedup.snapshot() == {}

    def test_prune_removes_old_entries(self) -> None:
        dedup = DedupStore(InMemoryDocumentStore(), DEDUP_PATH)
        dedup.mark_seen_batch(["old"], "2024-12-01")
        dedup.mark_seen_batch(["edge"], "2025-01-05")
        dedup.mark_seen_batch(["new"], "2025-01-14")

        removed = dedup.prune(keep_days=10, today=date(2025, 1, 15))

        assert removed == 1
        assert set(dedup.snapshot()) == {"edge", "new"}


class TestTrackingStore:
    """Tests for TrackingStore."""

    def test_count_increments_once_per_day(self) -> None:
        tracking = TrackingStore(InMemoryDocumentStore(), TRACK_PATH)

        assert tracking.track("arxiv:2501.00001v1", "T", "2025-01-14") == 1
        assert tracking.track("arxiv:2501.00001v2", "T", "2025-01-14") == 1
        assert tracking.track("2501.00001", "T", "2025-01-15") == 2

    def test_replaying_a_day_is_idempotent(self) -> None:
        tracking = TrackingStore(InMemoryDocumentStore(), TRACK_PATH)
        tracking.track("arxiv:1", "T", "2025-01-13")
        tracking.track("arxiv:1", "T", "2025-01-15")

        assert tracking.track("arxiv:1", "T", "2025-01-14") == 2
        entry = tracking.get_entry("arxiv:1")
        assert entry is not None
        assert (entry.first_seen, entry.last_seen) == ("2025-01-13", "2025-01-15")

    def test_earlier_day_widens_range(self) -> None:
        tracking = TrackingStore(InMemoryDocumentStore(), TRACK_PATH)
        tracking.track("arxiv:1", "T", "2025-01-15")

        assert tracking.track("arxiv:1", "T", "2025-01-10") == 2
        assert tracking.get_entry("arxiv:1").first_seen == "2025-01-10"

    def test_seen_before(self) -> None:
        tracking = TrackingStore(InMemoryDocumentStore(), TRACK_PATH)
        tracking.track("arxiv:1", "T", "2025-01-14")

        assert tracking.seen_before("arxiv:1", "2025-01-15")
        assert not tracking.seen_before("arxiv:1", "2025-01-14")
        assert not tracking.seen_before("arxiv:2", "2025-01-15")

    def test_save_uses_camel_case(self) -> None:
        store = InMemoryDocumentStore()
        tracking = TrackingStore(store, TRACK_PATH)
        tracking.track("arxiv:2501.00001v1", "Title", "2025-01-14")
        tracking.save()

        data = json.loads(store.read_note(TRACK_PATH))

        assert data == {
            "2501.00001": {
                "title": "Title",
                "firstSeen": "2025-01-14",
                "lastSeen": "2025-01-14",
                "count": 1,
            }
        }

        reloaded = TrackingStore(store, TRACK_PATH)
        reloaded.load()
        assert reloaded.get_entry("2501.00001").count == 1


class TestStateStore:
    """Tests for StateStore."""

    def test_defaults(self) -> None:
        state = StateStore(InMemoryDocumentStore(), STATE_PATH)
        state.load()

        assert state.get().last_daily_run == ""
        assert state.get().last_error is None

    def test_error_round_trip(self) -> None:
        store = InMemoryDocumentStore()
        state = StateStore(store, STATE_PATH, clock=fixed_clock)
        state.set_last_daily_run("2025-01-15T08:30:00+00:00")
        state.set_last_error("FETCH_PRIMARY", "boom")

        reloaded = StateStore(store, STATE_PATH)
        reloaded.load()
        loaded = reloaded.get()

        assert loaded.last_daily_run == "2025-01-15T08:30:00+00:00"
        assert loaded.last_error is not None
        assert loaded.last_error.stage == "FETCH_PRIMARY"
        assert loaded.last_error.time == FIXED_NOW.isoformat()
        assert "lastDailyRun" in json.loads(store.read_note(STATE_PATH))

    def test_clear_last_error(self) -> None:
        state = StateStore(InMemoryDocumentStore(), STATE_PATH)
        state.set_last_error("RENDER", "x")
        state.clear_last_error()
        assert state.get().last_error is None

    def test_corrupt_state_keeps_defaults(self) -> None:
        store = InMemoryDocumentStore()
        store.write_note(STATE_PATH, "[]")
        state = StateStore(store, STATE_PATH)

        state.load()

        assert state.get().last_daily_run == ""
