"""Dated snapshots of each day's ranked papers."""

import json
from collections.abc import Callable, Sequence
from datetime import UTC, datetime

import structlog
from pydantic import ValidationError

from paper_daily.data_model import CamelModel
from paper_daily.papers import Paper
from paper_daily.store.document_store import DocumentStore
from paper_daily.store.paths import ArtifactPaths


logger = structlog.get_logger()

_SNAPSHOT_SUFFIX = ".json"


class DailySnapshot(CamelModel):
    """One day's ranked papers plus the fetch error, if any."""

    date: str
    papers: list[Paper]
    fetched_at: str
    error: str | None = None


class SnapshotStore:
    """Reads and writes ``papers/<date>.json`` snapshots."""

    def __init__(
        self,
        store: DocumentStore,
        paths: ArtifactPaths,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._paths = paths
        self._clock = clock or (lambda: datetime.now(UTC))
        self._log = logger.bind(component="store", subcomponent="snapshot")

    def write_snapshot(
        self,
        snapshot_date: str,
        papers: Sequence[Paper],
        error: str | None = None,
    ) -> DailySnapshot:
        """Write (or overwrite) the snapshot for a day.

        Args:
            snapshot_date: ``YYYY-MM-DD`` date of the digest.
            papers: Full ranked list.
            error: Fetch error of the run, if any.

        Returns:
            The snapshot that was written.
        """
        snapshot = DailySnapshot(
            date=snapshot_date,
            papers=list(papers),
            fetched_at=self._clock().isoformat(),
            error=error,
        )
        content = json.dumps(
            snapshot.model_dump(mode="json", by_alias=True, exclude_none=True),
            indent=2,
            ensure_ascii=False,
        )
        self._store.write_note(self._paths.snapshot(snapshot_date), content)
        self._log.info(
            "snapshot_written", date=snapshot_date, paper_count=len(snapshot.papers)
        )
        return snapshot

    def read_snapshot(self, snapshot_date: str) -> DailySnapshot | None:
        """Read a day's snapshot; missing or corrupt snapshots yield None."""
        content = self._store.read_note(self._paths.snapshot(snapshot_date))
        if not content:
            return None
        try:
            return DailySnapshot.model_validate(json.loads(content))
        except (json.JSONDecodeError, ValidationError) as e:
            self._log.warning("snapshot_corrupt", date=snapshot_date, error=str(e))
            return None

    def list_snapshot_dates(self) -> list[str]:
        """Dates with a snapshot, ascending."""
        names = self._store.list_folder(self._paths.snapshot_folder)
        return sorted(
            name[: -len(_SNAPSHOT_SUFFIX)]
            for name in names
            if name.endswith(_SNAPSHOT_SUFFIX)
        )

    def read_snapshots_for_range(self, start: str, end: str) -> list[DailySnapshot]:
        """Readable snapshots with ``start <= date <= end``, ascending."""
        snapshots: list[DailySnapshot] = []
        for snapshot_date in self.list_snapshot_dates():
            if start <= snapshot_date <= end:
                snapshot = self.read_snapshot(snapshot_date)
                if snapshot is not None:
                    snapshots.append(snapshot)
        return snapshots
