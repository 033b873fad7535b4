"""Source adapters for paper feeds and full text."""

from paper_daily.sources.arxiv import ArxivSource
from paper_daily.sources.base import (
    CommunityFeed,
    CommunityFetchResult,
    FetchQuery,
    FullTextFetcher,
    PaperSourceAdapter,
)
from paper_daily.sources.community import CommunitySource
from paper_daily.sources.custom import CustomApiSource
from paper_daily.sources.errors import RateLimitedError, SourceError, SourceErrorClass
from paper_daily.sources.fulltext import Ar5ivFullTextFetcher, extract_text
from paper_daily.sources.retry import RateLimitRetryPolicy, call_with_rate_limit_retry
from paper_daily.sources.rss import RssSource


__all__ = [
    "Ar5ivFullTextFetcher",
    "ArxivSource",
    "CommunityFeed",
    "CommunityFetchResult",
    "CommunitySource",
    "CustomApiSource",
    "FetchQuery",
    "FullTextFetcher",
    "PaperSourceAdapter",
    "RateLimitRetryPolicy",
    "RateLimitedError",
    "RssSource",
    "SourceError",
    "SourceErrorClass",
    "call_with_rate_limit_retry",
    "extract_text",
]
