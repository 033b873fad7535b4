"""Text normalization shared by the keyword scorers."""

import re

from paper_daily.papers import Paper


_WHITESPACE_PATTERN = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """Lower-case and collapse runs of whitespace to single spaces."""
    return _WHITESPACE_PATTERN.sub(" ", text.lower()).strip()


def paper_haystack(paper: Paper) -> str:
    """Normalized ``title + abstract`` searched by keyword matching."""
    return normalize_text(f"{paper.title} {paper.abstract}")


def contains_phrase(haystack: str, phrase: str) -> bool:
    """Substring test of a normalized phrase; blank phrases never match."""
    needle = normalize_text(phrase)
    return bool(needle) and needle in haystack
