"""Paper model and identifier normalization."""

from paper_daily.papers.ids import (
    ARXIV_ABS_URL,
    ARXIV_HTML_URL,
    ARXIV_PREFIX,
    arxiv_paper_id,
    base_arxiv_id,
    normalize_paper_id,
    strip_version,
    version_of,
)
from paper_daily.papers.models import Paper, PaperLinks, PaperSource


__all__ = [
    "ARXIV_ABS_URL",
    "ARXIV_HTML_URL",
    "ARXIV_PREFIX",
    "Paper",
    "PaperLinks",
    "PaperSource",
    "arxiv_paper_id",
    "base_arxiv_id",
    "normalize_paper_id",
    "strip_version",
    "version_of",
]
