"""Source adapter interfaces."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol, runtime_checkable

from paper_daily.config.schemas import SortBy
from paper_daily.papers import Paper


@dataclass(frozen=True)
class FetchQuery:
    """Parameters of one fetch.

    Attributes:
        categories: Feed categories to include.
        keywords: Free-text keywords OR-ed into the query.
        max_results: Target number of papers.
        sort_by: Feed sort order.
        window_start: Earliest publication time kept.
        window_end: Latest publication time kept.
        target_date: ``YYYY-MM-DD`` when the run is pinned to a past day.
    """

    categories: list[str]
    window_start: datetime
    window_end: datetime
    keywords: list[str] = field(default_factory=list)
    max_results: int = 20
    sort_by: SortBy = SortBy.SUBMITTED_DATE
    target_date: str | None = None


@runtime_checkable
class PaperSourceAdapter(Protocol):
    """A feed of papers; each adapter fails independently."""

    name: str

    def fetch(self, query: FetchQuery) -> list[Paper]:
        """Fetch papers matching the query.

        Raises:
            RateLimitedError: If the feed rate-limited the request.
            SourceError: For any other fetch or parse failure.
        """
        ...


@dataclass(frozen=True)
class CommunityFetchResult:
    """Community papers and the feed day they were taken from."""

    papers: list[Paper]
    feed_date: str


@runtime_checkable
class CommunityFeed(Protocol):
    """Day-indexed community feed with look-back for empty days."""

    name: str

    def fetch_day(self, day: str, lookback_days: int = 0) -> CommunityFetchResult:
        """Fetch the feed for ``day``, stepping back while it is empty.

        Raises:
            SourceError: If the feed cannot be fetched or parsed.
        """
        ...


@runtime_checkable
class FullTextFetcher(Protocol):
    """Best-effort full-text retrieval."""

    def fetch(self, paper_id: str, max_chars: int) -> str | None:
        """Plain text of a paper truncated to ``max_chars``; None when unavailable."""
        ...
