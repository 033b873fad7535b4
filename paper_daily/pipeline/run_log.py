"""Human-readable run history flushed to the store once per run."""

from collections.abc import Callable
from datetime import UTC, datetime

from paper_daily.store import DocumentStore


MAX_RUN_LOG_BYTES = 10 * 1024 * 1024
ROTATED_SUFFIX = ".1"


class RunLog:
    """Buffers timestamped lines in memory until :meth:`flush`."""

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or (lambda: datetime.now(UTC))
        self._lines: list[str] = []

    @property
    def lines(self) -> list[str]:
        return list(self._lines)

    def add(self, stage: str, message: str) -> None:
        """Buffer one line."""
        self._lines.append(f"[{self._clock().isoformat()}] [{stage}] {message}")

    def flush(
        self,
        store: DocumentStore,
        path: str,
        max_bytes: int = MAX_RUN_LOG_BYTES,
    ) -> None:
        """Append buffered lines to ``path`` and clear the buffer.

        When the existing log is larger than ``max_bytes`` it is moved to
        ``<path>.1`` first, replacing any earlier rotation.
        """
        if not self._lines:
            return
        existing = store.read_note(path)
        if existing is not None and len(existing.encode("utf-8")) > max_bytes:
            store.write_note(path + ROTATED_SUFFIX, existing)
            store.write_note(path, "")
        store.append_to_note(path, "\n".join(self._lines) + "\n")
        self._lines.clear()
