"""Cross-day dedup map: paper id -> first-seen date."""

import json
from collections.abc import Iterable
from datetime import date, timedelta

import structlog

from paper_daily.store.document_store import DocumentStore


logger = structlog.get_logger()


class DedupStore:
    """Remembers which paper ids were already delivered.

    Keys are full stored ids (version suffix retained), so ``v1`` and
    ``v2`` of the same paper are distinct entries. The map only grows
    during runs; :meth:`prune` is the out-of-band way to shrink it.
    The whole map is loaded, mutated and written back wholesale.
    """

    def __init__(self, store: DocumentStore, path: str) -> None:
        """Initialize the store.

        Args:
            store: Document store holding the JSON map.
            path: Document path of the map.
        """
        self._store = store
        self._path = path
        self._seen: dict[str, str] = {}
        self._log = logger.bind(component="store", subcomponent="dedup")

    def load(self) -> None:
        """Load the persisted map; corrupt or missing data yields an empty map."""
        content = self._store.read_note(self._path)
        self._seen = {}
        if not content:
            return
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            self._log.warning("dedup_map_corrupt", path=self._path, error=str(e))
            return
        if not isinstance(data, dict):
            self._log.warning("dedup_map_corrupt", path=self._path, error="not an object")
            return
        self._seen = {str(k): str(v) for k, v in data.items()}
        self._log.debug("dedup_map_loaded", entries=len(self._seen))

    def save(self) -> None:
        """Write the whole map back."""
        self._store.write_note(
            self._path, json.dumps(self._seen, indent=2, ensure_ascii=False)
        )

    def has_id(self, paper_id: str) -> bool:
        """Whether the exact id has been seen."""
        return paper_id in self._seen

    def first_seen(self, paper_id: str) -> str | None:
        """First-seen date of an id, if any."""
        return self._seen.get(paper_id)

    def mark_seen_batch(self, paper_ids: Iterable[str], seen_date: str) -> int:
        """Record ids as seen on ``seen_date`` without overwriting earlier dates.

        Persists once for the whole batch.

        Args:
            paper_ids: Ids to record.
            seen_date: ``YYYY-MM-DD`` date to record for new ids.

        Returns:
            Number of ids that were newly added.
        """
        added = 0
        for paper_id in paper_ids:
            if paper_id not in self._seen:
                self._seen[paper_id] = seen_date
                added += 1
        self.save()
        self._log.info("dedup_marked", added=added, total=len(self._seen))
        return added

    def prune(self, keep_days: int, today: date) -> int:
        """Drop entries first seen more than ``keep_days`` before ``today``.

        Returns:
            Number of entries removed.
        """
        cutoff = (today - timedelta(days=keep_days)).isoformat()
        stale = [k for k, v in self._seen.items() if v < cutoff]
        for key in stale:
            del self._seen[key]
        self.save()
        self._log.info("dedup_pruned", removed=len(stale), cutoff=cutoff)
        return len(stale)

    def snapshot(self) -> dict[str, str]:
        """Copy of the current map."""
        return dict(self._seen)
