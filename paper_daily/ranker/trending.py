"""Trending selection among papers the ranking excluded."""

from collections.abc import Sequence
from datetime import datetime

from paper_daily.papers import Paper
from paper_daily.ranker.models import TrendingPaper
from paper_daily.scoring import compute_hotness


def select_trending(
    excluded: Sequence[Paper],
    now: datetime,
    min_score: int,
    max_items: int,
) -> list[TrendingPaper]:
    """Pick the hottest excluded papers.

    Args:
        excluded: Papers with no interest or direction match.
        now: Reference time for the recency tier.
        min_score: Minimum hotness to keep.
        max_items: Maximum number of papers returned.

    Returns:
        Papers at or above ``min_score``, hottest first (input order on ties).
    """
    if max_items <= 0:
        return []

    candidates: list[TrendingPaper] = []
    for paper in excluded:
        hotness = compute_hotness(paper, now)
        if hotness.score >= min_score:
            candidates.append(
                TrendingPaper(paper=paper, hotness=hotness.score, reasons=hotness.reasons)
            )

    candidates.sort(key=lambda item: -item.hotness)
    return candidates[:max_items]
