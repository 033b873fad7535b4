"""Scoring engine: interest keywords, research directions and hotness."""

from paper_daily.scoring.directions import (
    aggregate_directions,
    score_directions,
    top_directions,
)
from paper_daily.scoring.hotness import (
    MAX_HOTNESS,
    HotnessScore,
    compute_hotness,
    parse_timestamp,
)
from paper_daily.scoring.interest import InterestResult, interest_hits, score_interest
from paper_daily.scoring.text import normalize_text


__all__ = [
    "MAX_HOTNESS",
    "HotnessScore",
    "InterestResult",
    "aggregate_directions",
    "compute_hotness",
    "interest_hits",
    "normalize_text",
    "parse_timestamp",
    "score_directions",
    "score_interest",
    "top_directions",
]
