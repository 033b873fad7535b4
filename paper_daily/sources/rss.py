"""Generic RSS/Atom paper feeds."""

import hashlib
from collections.abc import Sequence
from datetime import UTC, datetime
from time import struct_time
from typing import Any

import feedparser  # type: ignore[import-untyped]
import httpx
import structlog

from paper_daily.papers import Paper, PaperLinks, PaperSource
from paper_daily.sources.base import FetchQuery
from paper_daily.sources.errors import SourceError
from paper_daily.sources.http import build_http_client, get_checked


logger = structlog.get_logger()


def _entry_timestamp(entry: Any) -> str:
    for key in ("published_parsed", "updated_parsed"):
        parsed: struct_time | None = entry.get(key)
        if parsed is not None:
            return datetime(*parsed[:6], tzinfo=UTC).isoformat()
    return ""


def _entry_id(feed_url: str, entry: Any) -> str:
    key = entry.get("id") or entry.get("link") or entry.get("title") or ""
    digest = hashlib.sha256(f"{feed_url}\n{key}".encode()).hexdigest()[:16]
    return f"rss:{digest}"


class RssSource:
    """Turns entries of configured RSS/Atom feeds into papers.

    Each feed fails independently: a broken feed is logged and skipped.
    """

    name = "rss"

    def __init__(
        self,
        feeds: Sequence[str],
        client: httpx.Client | None = None,
        run_id: str = "",
    ) -> None:
        self._feeds = list(feeds)
        self._client = client or build_http_client()
        self._log = logger.bind(component="sources", subcomponent="rss", run_id=run_id)

    def fetch(self, query: FetchQuery) -> list[Paper]:
        """Entries of all feeds, limited to ``query.max_results`` per feed."""
        papers: list[Paper] = []
        for feed_url in self._feeds:
            try:
                papers.extend(self.fetch_feed(feed_url)[: query.max_results])
            except SourceError as e:
                self._log.warning("rss_feed_failed", feed_url=feed_url, error=str(e))
        return papers

    def fetch_feed(self, feed_url: str) -> list[Paper]:
        """Fetch and parse one feed.

        Raises:
            SourceError: If the feed cannot be fetched.
        """
        response = get_checked(self._client, feed_url, source=self.name)
        parsed = feedparser.parse(response.content)
        if parsed.bozo and not parsed.entries:
            self._log.warning(
                "rss_parse_warning",
                feed_url=feed_url,
                error=str(parsed.get("bozo_exception", "")),
            )

        papers: list[Paper] = []
        for entry in parsed.entries:
            title = (entry.get("title") or "").strip()
            if not title:
                continue
            timestamp = _entry_timestamp(entry)
            papers.append(
                Paper(
                    id=_entry_id(feed_url, entry),
                    title=title,
                    abstract=(entry.get("summary") or "").strip(),
                    authors=[
                        a.get("name", "")
                        for a in entry.get("authors", [])
                        if a.get("name")
                    ],
                    categories=[
                        t.get("term", "") for t in entry.get("tags", []) if t.get("term")
                    ],
                    published=timestamp,
                    updated=timestamp,
                    links=PaperLinks(html=entry.get("link") or None),
                    source=PaperSource.RSS,
                )
            )
        self._log.info("rss_feed_parsed", feed_url=feed_url, entries=len(papers))
        return papers
