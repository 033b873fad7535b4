"""Paper ranking, trending selection and interest summaries."""

from paper_daily.ranker.models import (
    InterestAreaStat,
    RankComponents,
    RankedPaper,
    RankerResult,
    TrendingPaper,
)
from paper_daily.ranker.ranker import PaperRanker, rank_papers
from paper_daily.ranker.summary import summarize_interest_areas
from paper_daily.ranker.trending import select_trending


__all__ = [
    "InterestAreaStat",
    "PaperRanker",
    "RankComponents",
    "RankedPaper",
    "RankerResult",
    "TrendingPaper",
    "rank_papers",
    "select_trending",
    "summarize_interest_areas",
]
