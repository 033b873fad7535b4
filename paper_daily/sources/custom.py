"""Placeholder adapter for a user-provided paper API."""

import structlog

from paper_daily.papers import Paper
from paper_daily.sources.base import FetchQuery


logger = structlog.get_logger()


class CustomApiSource:
    """Custom API source; no wire format is defined yet, so it yields nothing."""

    name = "custom"

    def __init__(self, url: str | None = None) -> None:
        self._url = url

    def fetch(self, query: FetchQuery) -> list[Paper]:
        """Always empty."""
        logger.debug(
            "custom_source_not_implemented",
            component="sources",
            url=self._url,
            max_results=query.max_results,
        )
        return []
