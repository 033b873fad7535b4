"""Cache of fetched paper full texts."""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import structlog

from paper_daily.store.document_store import DocumentStore
from paper_daily.store.paths import ArtifactPaths


logger = structlog.get_logger()


class FullTextCache:
    """Full texts keyed by bare arXiv id, pruned by modification age."""

    def __init__(
        self,
        store: DocumentStore,
        paths: ArtifactPaths,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._paths = paths
        self._clock = clock or (lambda: datetime.now(UTC))

    def get(self, base_id: str) -> str | None:
        """Cached text, if present."""
        return self._store.read_note(self._paths.fulltext(base_id))

    def set(self, base_id: str, text: str) -> None:
        """Store text for a paper."""
        self._store.write_note(self._paths.fulltext(base_id), text)

    def prune(self, ttl_days: int) -> int:
        """Delete entries not modified within ``ttl_days``.

        Returns:
            Number of entries deleted.
        """
        cutoff = self._clock() - timedelta(days=ttl_days)
        deleted = 0
        for name in self._store.list_folder(self._paths.fulltext_folder):
            path = f"{self._paths.fulltext_folder}/{name}"
            modified = self._store.modified_at(path)
            if modified is not None and modified < cutoff and self._store.delete_note(path):
                deleted += 1
        logger.info("fulltext_cache_pruned", component="store", deleted=deleted)
        return deleted
