"""Document store interface and implementations.

Paths are ``/``-separated and relative to the store root, for example
``PaperDaily/inbox/2025-01-15.md``.
"""

from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path, PurePosixPath
from typing import Protocol, runtime_checkable

from paper_daily.store.io import AtomicWriter


@runtime_checkable
class DocumentStore(Protocol):
    """Text document persistence used by every store and the pipeline."""

    def write_note(self, path: str, content: str) -> None:
        """Create or overwrite a document, creating folders as needed."""
        ...

    def read_note(self, path: str) -> str | None:
        """Return a document's content, or None if it does not exist."""
        ...

    def append_to_note(self, path: str, content: str) -> None:
        """Append to a document, creating it when missing."""
        ...

    def file_exists(self, path: str) -> bool:
        """Whether a document exists at ``path``."""
        ...

    def list_folder(self, path: str) -> list[str]:
        """Names of the documents directly inside a folder (sorted)."""
        ...

    def delete_note(self, path: str) -> bool:
        """Delete a document; returns False when it did not exist."""
        ...

    def modified_at(self, path: str) -> datetime | None:
        """Last modification time of a document, None when missing."""
        ...


class InvalidDocumentPathError(ValueError):
    """Raised for paths that are absolute or escape the store root."""


def normalize_path(path: str) -> str:
    """Normalize a store path, rejecting absolute and parent-relative forms.

    Args:
        path: Raw path, ``/`` or ``\\`` separated.

    Returns:
        Clean ``/``-separated relative path.

    Raises:
        InvalidDocumentPathError: If the path is empty, absolute or uses ``..``.
    """
    pure = PurePosixPath(path.replace("\\", "/"))
    parts = [part for part in pure.parts if part not in ("", ".")]
    if pure.is_absolute() or not parts or ".." in parts:
        msg = f"Invalid document path: {path!r}"
        raise InvalidDocumentPathError(msg)
    return "/".join(parts)


class FileDocumentStore:
    """Document store backed by a directory on disk."""

    def __init__(self, root: Path, run_id: str | None = None) -> None:
        """Initialize the store.

        Args:
            root: Directory all document paths are relative to.
            run_id: Optional run identifier for logging.
        """
        self._root = root
        self._writer = AtomicWriter(run_id=run_id)

    @property
    def root(self) -> Path:
        """Root directory of the store."""
        return self._root

    def _resolve(self, path: str) -> Path:
        return self._root / normalize_path(path)

    def write_note(self, path: str, content: str) -> None:
        self._writer.write(self._resolve(path), content)

    def read_note(self, path: str) -> str | None:
        target = self._resolve(path)
        if not target.is_file():
            return None
        return target.read_text(encoding="utf-8")

    def append_to_note(self, path: str, content: str) -> None:
        target = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        with target.open("a", encoding="utf-8") as handle:
            handle.write(content)

    def file_exists(self, path: str) -> bool:
        return self._resolve(path).is_file()

    def list_folder(self, path: str) -> list[str]:
        folder = self._resolve(path)
        if not folder.is_dir():
            return []
        return sorted(
            child.name
            for child in folder.iterdir()
            if child.is_file() and not child.name.startswith(".")
        )

    def delete_note(self, path: str) -> bool:
        target = self._resolve(path)
        if not target.is_file():
            return False
        target.unlink()
        return True

    def modified_at(self, path: str) -> datetime | None:
        target = self._resolve(path)
        if not target.is_file():
            return None
        return datetime.fromtimestamp(target.stat().st_mtime, tz=UTC)


class InMemoryDocumentStore:
    """Dictionary-backed document store for tests and dry runs."""

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        """Initialize an empty store.

        Args:
            clock: Source of modification timestamps (default: UTC now).
        """
        self._clock = clock or (lambda: datetime.now(UTC))
        self._documents: dict[str, str] = {}
        self._modified: dict[str, datetime] = {}

    @property
    def documents(self) -> dict[str, str]:
        """Copy of all documents keyed by normalized path."""
        return dict(self._documents)

    def write_note(self, path: str, content: str) -> None:
        key = normalize_path(path)
        self._documents[key] = content
        self._modified[key] = self._clock()

    def read_note(self, path: str) -> str | None:
        return self._documents.get(normalize_path(path))

    def append_to_note(self, path: str, content: str) -> None:
        key = normalize_path(path)
        self.write_note(key, self._documents.get(key, "") + content)

    def file_exists(self, path: str) -> bool:
        return normalize_path(path) in self._documents

    def list_folder(self, path: str) -> list[str]:
        prefix = normalize_path(path) + "/"
        return sorted(
            key[len(prefix) :]
            for key in self._documents
            if key.startswith(prefix) and "/" not in key[len(prefix) :]
        )

    def delete_note(self, path: str) -> bool:
        key = normalize_path(path)
        self._modified.pop(key, None)
        return self._documents.pop(key, None) is not None

    def modified_at(self, path: str) -> datetime | None:
        return self._modified.get(normalize_path(path))
