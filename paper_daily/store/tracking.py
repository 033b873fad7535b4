"""Community-feed appearance tracking (streaks across days)."""

import json

import structlog
from pydantic import ValidationError

from paper_daily.data_model import CamelModel
from paper_daily.papers import normalize_paper_id
from paper_daily.store.document_store import DocumentStore


logger = structlog.get_logger()


class TrackEntry(CamelModel):
    """How often a paper appeared in the community feed.

    ``count`` increments at most once per calendar day and
    ``first_seen <= last_seen`` always holds.
    """

    title: str = ""
    first_seen: str
    last_seen: str
    count: int = 1


class TrackingStore:
    """Tracks community-feed appearances keyed by normalized base id."""

    def __init__(self, store: DocumentStore, path: str) -> None:
        self._store = store
        self._path = path
        self._entries: dict[str, TrackEntry] = {}
        self._log = logger.bind(component="store", subcomponent="tracking")

    def load(self) -> None:
        """Load persisted entries; corrupt data yields an empty map."""
        content = self._store.read_note(self._path)
        self._entries = {}
        if not content:
            return
        try:
            data = json.loads(content)
            if not isinstance(data, dict):
                msg = "tracking map is not an object"
                raise TypeError(msg)
            self._entries = {
                str(key): TrackEntry.model_validate(value) for key, value in data.items()
            }
        except (json.JSONDecodeError, TypeError, ValidationError) as e:
            self._log.warning("tracking_map_corrupt", path=self._path, error=str(e))
            self._entries = {}

    def save(self) -> None:
        """Write all entries back."""
        data = {
            key: entry.model_dump(by_alias=True) for key, entry in self._entries.items()
        }
        self._store.write_note(self._path, json.dumps(data, indent=2, ensure_ascii=False))

    def track(self, paper_id: str, title: str, seen_date: str) -> int:
        """Record an appearance and return the updated day count.

        A new id starts at 1; a date inside ``[first_seen, last_seen]`` is
        a no-op; a date outside it increments the count and widens the
        range (backfills may replay days before ``first_seen``).
        """
        key = normalize_paper_id(paper_id)
        entry = self._entries.get(key)
        if entry is None:
            self._entries[key] = TrackEntry(
                title=title, first_seen=seen_date, last_seen=seen_date, count=1
            )
            return 1
        if entry.first_seen <= seen_date <= entry.last_seen:
            return entry.count
        if seen_date < entry.first_seen:
            entry.first_seen = seen_date
        else:
            entry.last_seen = seen_date
        entry.count += 1
        return entry.count

    def seen_before(self, paper_id: str, seen_date: str) -> bool:
        """Whether the paper first appeared strictly before ``seen_date``."""
        entry = self._entries.get(normalize_paper_id(paper_id))
        return entry is not None and entry.first_seen < seen_date

    def get_entry(self, paper_id: str) -> TrackEntry | None:
        """Tracking entry for a paper, if any."""
        return self._entries.get(normalize_paper_id(paper_id))
