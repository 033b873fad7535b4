"""Atomic file writing for the on-disk document store."""

import hashlib
import tempfile
from dataclasses import dataclass
from pathlib import Path

import structlog


logger = structlog.get_logger()


@dataclass(frozen=True)
class WrittenFile:
    """Result of an atomic write.

    Attributes:
        path: Absolute path written.
        bytes_written: Size of the content in bytes.
        sha256: SHA-256 of the content.
    """

    path: Path
    bytes_written: int
    sha256: str


class AtomicWriter:
    """Writes files via a sibling temp file and a rename.

    Readers see either the complete old file or the complete new one,
    never a partial write.
    """

    def __init__(self, run_id: str | None = None) -> None:
        self._log = logger.bind(component="store", subcomponent="atomic_writer")
        if run_id:
            self._log = self._log.bind(run_id=run_id)

    def write(self, path: Path, content: str) -> WrittenFile:
        """Write content to ``path`` atomically, creating parent folders.

        Args:
            path: Target file path.
            content: Text to write (UTF-8).

        Returns:
            WrittenFile describing the write.
        """
        content_bytes = content.encode("utf-8")
        sha256 = hashlib.sha256(content_bytes).hexdigest()
        path.parent.mkdir(parents=True, exist_ok=True)

        temp_path: Path | None = None
        try:
            with tempfile.NamedTemporaryFile(
                mode="wb",
                dir=path.parent,
                prefix=f".{path.name}.",
                suffix=".tmp",
                delete=False,
            ) as temp_file:
                temp_path = Path(temp_file.name)
                temp_file.write(content_bytes)
            temp_path.replace(path)
            temp_path = None
        finally:
            if temp_path is not None and temp_path.exists():
                temp_path.unlink()

        self._log.debug(
            "file_written",
            path=str(path),
            bytes=len(content_bytes),
            sha256=sha256[:12],
        )
        return WrittenFile(path=path, bytes_written=len(content_bytes), sha256=sha256)
