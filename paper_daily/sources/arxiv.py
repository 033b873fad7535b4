"""arXiv export API source (the primary feed)."""

import re
from collections.abc import Sequence
from datetime import datetime
from urllib.parse import urlencode
from xml.etree.ElementTree import Element, ParseError

import defusedxml.ElementTree as DefusedET
import httpx
import structlog

from paper_daily.papers import Paper, PaperLinks, PaperSource, arxiv_paper_id
from paper_daily.scoring import parse_timestamp
from paper_daily.sources.base import FetchQuery
from paper_daily.sources.errors import SourceError, SourceErrorClass
from paper_daily.sources.http import build_http_client, get_checked


logger = structlog.get_logger()

ARXIV_API_URL = "https://export.arxiv.org/api/query"
ATOM_NS = "{http://www.w3.org/2005/Atom}"

# Over-fetch so the publication-window filter still leaves enough papers
OVERFETCH_FACTOR = 3

_WHITESPACE_PATTERN = re.compile(r"\s+")


def _clean(text: str | None) -> str:
    return _WHITESPACE_PATTERN.sub(" ", text or "").strip()


def _arxiv_stamp(value: datetime) -> str:
    return value.strftime("%Y%m%d%H%M")


class ArxivSource:
    """Fetches papers from the arXiv Atom API.

    Rate limiting surfaces as :class:`RateLimitedError`; retrying is the
    caller's decision. Results are limited to papers published inside
    the query window, so dedup only ever marks genuinely new papers.
    """

    name = "arxiv"

    def __init__(
        self,
        client: httpx.Client | None = None,
        base_url: str = ARXIV_API_URL,
        run_id: str = "",
    ) -> None:
        """Initialize the source.

        Args:
            client: HTTP client; a default one is created when omitted.
            base_url: API endpoint.
            run_id: Run identifier for logging.
        """
        self._client = client or build_http_client()
        self._base_url = base_url
        self._log = logger.bind(component="sources", subcomponent="arxiv", run_id=run_id)

    @staticmethod
    def build_query(categories: Sequence[str], keywords: Sequence[str]) -> str:
        """Build an arXiv ``search_query`` expression.

        Categories are OR-ed, keywords are OR-ed, and the two groups are
        AND-ed together.
        """
        cat_clause = " OR ".join(f"cat:{c}" for c in categories)
        if cat_clause:
            cat_clause = f"({cat_clause})"

        if not keywords:
            return cat_clause or "all:*"

        kw_clause = "(" + " OR ".join(f'all:"{k}"' for k in keywords) + ")"
        return f"{cat_clause} AND {kw_clause}" if cat_clause else kw_clause

    def build_url(self, query: FetchQuery) -> str:
        """Full request URL for a query.

        Runs pinned to a past day add a ``submittedDate`` range so the
        API returns that day's papers rather than the newest ones.
        """
        search = self.build_query(query.categories, query.keywords)
        if query.target_date is not None:
            search = (
                f"({search}) AND submittedDate:"
                f"[{_arxiv_stamp(query.window_start)} TO {_arxiv_stamp(query.window_end)}]"
            )
        params = {
            "search_query": search,
            "max_results": query.max_results * OVERFETCH_FACTOR,
            "sortBy": query.sort_by.value,
            "sortOrder": "descending",
        }
        return f"{self._base_url}?{urlencode(params)}"

    def fetch(self, query: FetchQuery) -> list[Paper]:
        """Fetch and window-filter papers.

        Raises:
            RateLimitedError: On HTTP 429.
            SourceError: On network, HTTP or XML errors.
        """
        url = self.build_url(query)
        self._log.info("arxiv_fetch_started", url=url)

        response = get_checked(self._client, url, source=self.name)
        papers = self.parse_feed(response.content)
        in_window = self.filter_by_window(papers, query.window_start, query.window_end)

        self._log.info(
            "arxiv_fetch_complete",
            entries=len(papers),
            in_window=len(in_window),
        )
        return in_window

    def parse_feed(self, body: bytes) -> list[Paper]:
        """Parse an Atom response body into papers.

        Raises:
            SourceError: If the XML is malformed.
        """
        try:
            root = DefusedET.fromstring(body)
        except ParseError as e:
            msg = f"arXiv XML parse error: {e}"
            raise SourceError(SourceErrorClass.PARSE, msg, source=self.name) from e

        papers: list[Paper] = []
        for entry in root.findall(f"{ATOM_NS}entry"):
            paper = self._parse_entry(entry)
            if paper is not None:
                papers.append(paper)
        return papers

    def _parse_entry(self, entry: Element) -> Paper | None:
        raw_id = _clean(entry.findtext(f"{ATOM_NS}id"))
        if not raw_id:
            return None

        html_link: str | None = None
        pdf_link: str | None = None
        for link in entry.findall(f"{ATOM_NS}link"):
            href = link.get("href", "")
            if link.get("rel") == "alternate" or link.get("type") == "text/html":
                html_link = href
            if link.get("type") == "application/pdf" or "/pdf/" in href:
                pdf_link = href

        return Paper(
            id=arxiv_paper_id(raw_id).lower(),
            title=_clean(entry.findtext(f"{ATOM_NS}title")),
            abstract=_clean(entry.findtext(f"{ATOM_NS}summary")),
            authors=[
                name
                for author in entry.findall(f"{ATOM_NS}author")
                if (name := _clean(author.findtext(f"{ATOM_NS}name")))
            ],
            categories=[
                term
                for category in entry.findall(f"{ATOM_NS}category")
                if (term := category.get("term"))
            ],
            published=_clean(entry.findtext(f"{ATOM_NS}published")),
            updated=_clean(entry.findtext(f"{ATOM_NS}updated")),
            links=PaperLinks(html=html_link or None, pdf=pdf_link or None),
            source=PaperSource.PRIMARY,
        )

    @staticmethod
    def filter_by_window(
        papers: Sequence[Paper],
        window_start: datetime,
        window_end: datetime,
    ) -> list[Paper]:
        """Keep papers whose publication time lies in ``[start, end]``.

        ``published`` is used rather than ``updated``, which can be a much
        later revision of an old paper.
        """
        kept: list[Paper] = []
        for paper in papers:
            published = parse_timestamp(paper.published or paper.updated)
            if published is not None and window_start <= published <= window_end:
                kept.append(paper)
        return kept
