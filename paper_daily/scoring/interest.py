"""Interest keyword scoring."""

from collections.abc import Sequence
from dataclasses import dataclass, field

from paper_daily.config.schemas import InterestKeyword
from paper_daily.papers import Paper
from paper_daily.scoring.text import contains_phrase, paper_haystack


@dataclass(frozen=True)
class InterestResult:
    """Interest keywords matched by one paper.

    Attributes:
        hits: Matched keywords in configuration order.
        score: Sum of the matched keywords' weights.
    """

    hits: list[str] = field(default_factory=list)
    score: int = 0


def score_interest(paper: Paper, keywords: Sequence[InterestKeyword]) -> InterestResult:
    """Match a paper's title and abstract against weighted keywords.

    Args:
        paper: Paper to score.
        keywords: Configured interest keywords.

    Returns:
        Matched keywords (configured order) and their weighted sum.
    """
    if not keywords:
        return InterestResult()

    haystack = paper_haystack(paper)
    matched = [kw for kw in keywords if contains_phrase(haystack, kw.keyword)]
    return InterestResult(
        hits=[kw.keyword for kw in matched],
        score=sum(kw.weight for kw in matched),
    )


def interest_hits(paper: Paper, keywords: Sequence[InterestKeyword]) -> list[str]:
    """Matched interest keywords, in configuration order."""
    return score_interest(paper, keywords).hits
