"""Paper ranker: keyword, direction and community-signal scoring."""

import hashlib
import math
from collections.abc import Sequence
from datetime import UTC, datetime
from functools import cmp_to_key

import structlog

from paper_daily.config.schemas import DirectionConfig, InterestKeyword
from paper_daily.papers import Paper
from paper_daily.ranker.models import RankComponents, RankedPaper, RankerResult
from paper_daily.scoring import (
    parse_timestamp,
    score_directions,
    score_interest,
    top_directions,
)


logger = structlog.get_logger()

# Scores closer than this are treated as equal
SCORE_TIE_TOLERANCE = 0.001
UPVOTE_MULTIPLIER = 10.0
DIRECTION_MULTIPLIER = 2.0

_EPOCH = datetime.min.replace(tzinfo=UTC)


def _recency_key(paper: Paper) -> datetime:
    return parse_timestamp(paper.most_recent) or _EPOCH


def _compare(a: RankedPaper, b: RankedPaper) -> int:
    """Order by score desc, then most recent first, then id asc."""
    diff = b.components.total_score - a.components.total_score
    if abs(diff) >= SCORE_TIE_TOLERANCE:
        return 1 if diff > 0 else -1
    recency_a, recency_b = _recency_key(a.paper), _recency_key(b.paper)
    if recency_a != recency_b:
        return -1 if recency_a > recency_b else 1
    if a.paper.id != b.paper.id:
        return -1 if a.paper.id < b.paper.id else 1
    return 0


class PaperRanker:
    """Scores papers and sorts them into a deterministic rank order.

    ``rank_score = log(1 + upvotes) * 10 + 2 * sum(direction scores)
    + weighted interest score``; the direction term only applies when
    directions are configured. Inputs are never mutated: scored copies
    carry ``interest_hits``, ``direction_scores`` and ``top_directions``.
    """

    def __init__(
        self,
        interest_keywords: Sequence[InterestKeyword],
        directions: Sequence[DirectionConfig] | None = None,
        direction_top_k: int = 5,
        run_id: str = "",
    ) -> None:
        """Initialize the ranker.

        Args:
            interest_keywords: Weighted interest keywords.
            directions: Research directions; None or empty disables them.
            direction_top_k: Number of top directions kept per paper.
            run_id: Run identifier for logging.
        """
        self._interest_keywords = list(interest_keywords)
        self._directions = list(directions or [])
        self._direction_top_k = direction_top_k
        self._log = logger.bind(component="ranker", run_id=run_id)

    def score(self, paper: Paper) -> RankedPaper:
        """Score a copy of one paper."""
        interest = score_interest(paper, self._interest_keywords)
        direction_scores = score_directions(paper, self._directions)

        upvote_score = math.log1p(max(paper.upvotes or 0, 0)) * UPVOTE_MULTIPLIER
        direction_score = (
            sum(direction_scores.values()) * DIRECTION_MULTIPLIER
            if self._directions
            else 0.0
        )
        components = RankComponents(
            upvote_score=upvote_score,
            direction_score=direction_score,
            interest_score=float(interest.score),
            total_score=upvote_score + direction_score + interest.score,
        )

        scored = paper.model_copy(deep=True)
        scored.interest_hits = interest.hits
        scored.direction_scores = direction_scores
        scored.top_directions = top_directions(direction_scores, self._direction_top_k)
        return RankedPaper(paper=scored, components=components)

    def rank(self, papers: Sequence[Paper], partition: bool = False) -> RankerResult:
        """Rank papers.

        Args:
            papers: Papers to rank.
            partition: When True, papers matching no interest keyword and no
                direction are moved to ``excluded`` instead of ``ranked``.

        Returns:
            RankerResult with scored copies in rank order.
        """
        self._log.info("ranker_started", papers_in=len(papers), partition=partition)

        scored = sorted((self.score(p) for p in papers), key=cmp_to_key(_compare))

        ranked: list[Paper] = []
        excluded: list[Paper] = []
        for item in scored:
            if partition and not item.is_relevant:
                excluded.append(item.paper)
            else:
                ranked.append(item.paper)

        result = RankerResult(
            ranked=ranked,
            excluded=excluded,
            components={item.paper.id: item.components for item in scored},
            output_checksum=_checksum(ranked),
        )
        self._log.info(
            "ranker_complete",
            papers_in=len(papers),
            ranked_count=len(ranked),
            excluded_count=len(excluded),
        )
        return result


def _checksum(papers: Sequence[Paper]) -> str:
    joined = "\n".join(p.id for p in papers)
    return hashlib.sha256(joined.encode("utf-8")).hexdigest()


def rank_papers(
    papers: Sequence[Paper],
    interest_keywords: Sequence[InterestKeyword],
    directions: Sequence[DirectionConfig] | None = None,
    direction_top_k: int = 5,
) -> list[Paper]:
    """Pure function API: scored copies of ``papers`` in rank order.

    Args:
        papers: Papers to rank.
        interest_keywords: Weighted interest keywords.
        directions: Research directions; None disables the direction term.
        direction_top_k: Number of top directions kept per paper.

    Returns:
        New list of scored paper copies.
    """
    ranker = PaperRanker(interest_keywords, directions, direction_top_k, run_id="pure")
    return ranker.rank(papers).ranked
