"""Full-text retrieval from ar5iv HTML renderings."""

import re

import httpx
import structlog
from bs4 import BeautifulSoup

from paper_daily.papers import base_arxiv_id
from paper_daily.sources.errors import SourceError
from paper_daily.sources.http import build_http_client, get_checked
from paper_daily.store import FullTextCache


logger = structlog.get_logger()

AR5IV_HTML_URL = "https://ar5iv.labs.arxiv.org/html"

# Non-content elements removed before text extraction
_STRIP_SELECTORS = (
    "math",
    "figure",
    "figcaption",
    ".ltx_bibliography",
    ".ltx_page_footer",
    "nav",
    "header",
    "script",
    "style",
    "svg",
)

_WHITESPACE_PATTERN = re.compile(r"\s+")


def extract_text(html: str, max_chars: int) -> str:
    """Readable text of an ar5iv page, truncated to ``max_chars``.

    Prefers the ``<article>`` element and falls back to ``<body>``.
    """
    soup = BeautifulSoup(html, "lxml")
    for selector in _STRIP_SELECTORS:
        for element in soup.select(selector):
            element.decompose()

    root = soup.find("article") or soup.body or soup
    text = _WHITESPACE_PATTERN.sub(" ", root.get_text(" ")).strip()
    return text[:max_chars]


class Ar5ivFullTextFetcher:
    """Best-effort full-text fetcher backed by an optional cache.

    Any failure yields None; full text is an enrichment, never required.
    """

    def __init__(
        self,
        client: httpx.Client | None = None,
        cache: FullTextCache | None = None,
        base_url: str = AR5IV_HTML_URL,
        run_id: str = "",
    ) -> None:
        self._client = client or build_http_client()
        self._cache = cache
        self._base_url = base_url
        self._log = logger.bind(component="sources", subcomponent="fulltext", run_id=run_id)

    def fetch(self, paper_id: str, max_chars: int) -> str | None:
        """Plain text of a paper, or None when unavailable.

        Args:
            paper_id: Any form of the paper id; the bare arXiv id is used.
            max_chars: Maximum characters returned.

        Returns:
            Text truncated to ``max_chars``, or None.
        """
        base_id = base_arxiv_id(paper_id)
        if self._cache is not None:
            cached = self._cache.get(base_id)
            if cached:
                self._log.debug("fulltext_cache_hit", base_id=base_id)
                return cached[:max_chars]

        try:
            response = get_checked(
                self._client, f"{self._base_url}/{base_id}", source="ar5iv"
            )
        except SourceError as e:
            self._log.warning("fulltext_fetch_failed", base_id=base_id, error=str(e))
            return None

        text = extract_text(response.text, max_chars)
        if not text:
            return None
        if self._cache is not None:
            self._cache.set(base_id, text)
        self._log.info("fulltext_fetched", base_id=base_id, chars=len(text))
        return text
