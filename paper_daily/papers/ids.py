"""Paper identifier helpers.

Stored IDs are source-qualified and keep the arXiv version suffix
(``arxiv:2501.12345v2``). Every comparison across sources or against LLM
output goes through :func:`normalize_paper_id`.
"""

import re


ARXIV_PREFIX = "arxiv:"
ARXIV_ABS_URL = "https://arxiv.org/abs"
ARXIV_HTML_URL = "https://arxiv.org/html"

_KNOWN_PREFIX_PATTERN = re.compile(r"^(?:arxiv|primary):", re.IGNORECASE)
_VERSION_SUFFIX_PATTERN = re.compile(r"v(\d+)$", re.IGNORECASE)


def strip_version(paper_id: str) -> str:
    """Remove a trailing ``vN`` version suffix, keeping any prefix.

    Args:
        paper_id: Raw paper identifier.

    Returns:
        Identifier without the version suffix.
    """
    return _VERSION_SUFFIX_PATTERN.sub("", paper_id.strip())


def base_arxiv_id(paper_id: str) -> str:
    """Return the bare arXiv identifier (no prefix, no version).

    Case is preserved, so the result can be used in URLs.
    """
    return strip_version(_KNOWN_PREFIX_PATTERN.sub("", paper_id.strip()))


def normalize_paper_id(paper_id: str) -> str:
    """Normalize an identifier for cross-source and LLM matching.

    ``ARXIV:2501.12345V3``, ``arxiv:2501.12345`` and ``2501.12345v1``
    all normalize to ``2501.12345``.

    Args:
        paper_id: Raw identifier, possibly prefixed and versioned.

    Returns:
        Lower-cased identifier without prefix or version suffix.
    """
    return base_arxiv_id(paper_id).lower()


def arxiv_paper_id(raw_id: str) -> str:
    """Build the storage ID for an arXiv identifier.

    Args:
        raw_id: Identifier as found in a feed, e.g. ``2501.12345v2`` or
            ``http://arxiv.org/abs/2501.12345v2``.

    Returns:
        ``arxiv:``-qualified identifier with the version suffix retained.
    """
    tail = raw_id.strip().rsplit("/abs/", 1)[-1]
    return ARXIV_PREFIX + _KNOWN_PREFIX_PATTERN.sub("", tail)


def version_of(paper_id: str) -> int:
    """Return the arXiv version number of an ID, 1 when unversioned."""
    match = _VERSION_SUFFIX_PATTERN.search(paper_id.strip())
    if match is None:
        return 1
    return int(match.group(1))
