"""Persistence: document stores and the small JSON state maps."""

from paper_daily.store.dedup import DedupStore
from paper_daily.store.document_store import (
    DocumentStore,
    FileDocumentStore,
    InMemoryDocumentStore,
    InvalidDocumentPathError,
    normalize_path,
)
from paper_daily.store.fulltext_cache import FullTextCache
from paper_daily.store.io import AtomicWriter, WrittenFile
from paper_daily.store.paths import ArtifactPaths
from paper_daily.store.snapshot import DailySnapshot, SnapshotStore
from paper_daily.store.state import LastError, RunState, StateStore
from paper_daily.store.tracking import TrackEntry, TrackingStore


__all__ = [
    "ArtifactPaths",
    "AtomicWriter",
    "DailySnapshot",
    "DedupStore",
    "DocumentStore",
    "FileDocumentStore",
    "FullTextCache",
    "InMemoryDocumentStore",
    "InvalidDocumentPathError",
    "LastError",
    "RunState",
    "SnapshotStore",
    "StateStore",
    "TrackEntry",
    "TrackingStore",
    "WrittenFile",
    "normalize_path",
]
