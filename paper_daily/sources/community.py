"""HuggingFace daily papers (the community trending feed)."""

import json
from datetime import date, timedelta
from typing import Any

import httpx
import structlog

from paper_daily.papers import ARXIV_PREFIX, Paper, PaperLinks, PaperSource
from paper_daily.sources.base import CommunityFetchResult, FetchQuery
from paper_daily.sources.errors import SourceError, SourceErrorClass
from paper_daily.sources.http import build_http_client, get_checked


logger = structlog.get_logger()

HF_DAILY_PAPERS_API_URL = "https://huggingface.co/api/daily_papers"
HF_PAPER_PAGE_URL = "https://huggingface.co/papers"


class CommunitySource:
    """Fetches the community's daily paper picks with upvote counts.

    Entries carry unversioned arXiv ids, stored as ``arxiv:<base>`` so
    they match primary-feed papers after normalization.
    """

    name = "huggingface"

    def __init__(
        self,
        client: httpx.Client | None = None,
        base_url: str = HF_DAILY_PAPERS_API_URL,
        lookback_days: int = 0,
        run_id: str = "",
    ) -> None:
        """Initialize the source.

        Args:
            client: HTTP client; a default one is created when omitted.
            base_url: API endpoint.
            lookback_days: Look-back used by :meth:`fetch`.
            run_id: Run identifier for logging.
        """
        self._client = client or build_http_client()
        self._base_url = base_url
        self._lookback_days = lookback_days
        self._log = logger.bind(
            component="sources", subcomponent="community", run_id=run_id
        )

    def fetch(self, query: FetchQuery) -> list[Paper]:
        """Papers for the query's day (``target_date`` or the window end)."""
        day = query.target_date or query.window_end.date().isoformat()
        return self.fetch_day(day, self._lookback_days).papers

    def fetch_day(self, day: str, lookback_days: int = 0) -> CommunityFetchResult:
        """Fetch ``day``; while empty, try up to ``lookback_days`` earlier days.

        Args:
            day: ``YYYY-MM-DD`` to fetch.
            lookback_days: Maximum number of earlier days to try.

        Returns:
            Papers sorted by upvotes (descending) and the day they came from.

        Raises:
            SourceError: If a request or response parse fails.
        """
        start = date.fromisoformat(day)
        for offset in range(lookback_days + 1):
            try_day = (start - timedelta(days=offset)).isoformat()
            papers = self.fetch_for_date(try_day)
            if papers:
                self._log.info(
                    "community_fetch_complete",
                    feed_date=try_day,
                    requested_date=day,
                    paper_count=len(papers),
                )
                return CommunityFetchResult(papers=papers, feed_date=try_day)

        self._log.info("community_feed_empty", requested_date=day, lookback_days=lookback_days)
        return CommunityFetchResult(papers=[], feed_date=day)

    def fetch_for_date(self, day: str) -> list[Paper]:
        """Fetch a single day of the feed."""
        response = get_checked(
            self._client, self._base_url, source=self.name, params={"date": day}
        )
        try:
            data = json.loads(response.content.decode("utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            msg = f"Invalid JSON from community feed: {e}"
            raise SourceError(SourceErrorClass.PARSE, msg, source=self.name) from e
        return self.parse_entries(data)

    @staticmethod
    def parse_entries(data: Any) -> list[Paper]:
        """Convert API entries to papers sorted by upvotes, descending."""
        if not isinstance(data, list):
            return []

        papers: list[Paper] = []
        for entry in data:
            raw = entry.get("paper") if isinstance(entry, dict) else None
            if not isinstance(raw, dict) or not raw.get("id"):
                continue
            base_id = str(raw["id"]).strip()
            published = str(raw.get("publishedAt") or "")
            papers.append(
                Paper(
                    id=f"{ARXIV_PREFIX}{base_id}",
                    title=str(raw.get("title") or ""),
                    abstract=str(raw.get("summary") or ""),
                    authors=[
                        str(a["name"])
                        for a in raw.get("authors") or []
                        if isinstance(a, dict) and a.get("name")
                    ],
                    published=published,
                    updated=published,
                    links=PaperLinks(
                        html=f"https://arxiv.org/abs/{base_id}",
                        pdf=f"https://arxiv.org/pdf/{base_id}",
                        community=f"{HF_PAPER_PAGE_URL}/{base_id}",
                    ),
                    source=PaperSource.COMMUNITY,
                    upvotes=int(raw.get("upvotes") or 0),
                )
            )

        papers.sort(key=lambda p: -(p.upvotes or 0))
        return papers
