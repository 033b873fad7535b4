"""Data models for the paper ranker."""

import math
from dataclasses import dataclass, field

from paper_daily.papers import Paper


@dataclass(frozen=True)
class RankComponents:
    """Breakdown of a paper's rank score.

    Attributes:
        upvote_score: ``log(1 + upvotes) * 10``.
        direction_score: Twice the summed direction score (0 when disabled).
        interest_score: Weighted interest keyword score.
        total_score: Sum of all components.
    """

    upvote_score: float
    direction_score: float
    interest_score: float
    total_score: float

    def to_dict(self) -> dict[str, float]:
        """Convert to dictionary for logging."""
        return {
            "upvote_score": self.upvote_score,
            "direction_score": self.direction_score,
            "interest_score": self.interest_score,
            "total_score": self.total_score,
        }


@dataclass
class RankedPaper:
    """A scored copy of a paper."""

    paper: Paper
    components: RankComponents

    @property
    def is_relevant(self) -> bool:
        """Whether any interest keyword or direction matched."""
        return bool(self.paper.interest_hits or self.paper.direction_scores)


@dataclass
class RankerResult:
    """Output of one ranking pass.

    Attributes:
        ranked: Scored copies in rank order.
        excluded: Papers held out of the ranked set because nothing the
            user cares about matched (only when partitioning was requested).
        components: Rank components keyed by paper id.
        output_checksum: SHA-256 of the ranked id order.
    """

    ranked: list[Paper] = field(default_factory=list)
    excluded: list[Paper] = field(default_factory=list)
    components: dict[str, RankComponents] = field(default_factory=dict)
    output_checksum: str = ""


@dataclass(frozen=True)
class TrendingPaper:
    """A paper selected for the trending section."""

    paper: Paper
    hotness: int
    reasons: list[str]


@dataclass
class InterestAreaStat:
    """How one interest keyword fared in today's ranked papers.

    Attributes:
        keyword: The interest keyword.
        weight: Its configured weight.
        count: Ranked papers hitting it.
        total_score: Sum of LLM scores of those papers that were scored.
        scored: How many of those papers carry an LLM score.
        top_paper: Highest LLM-scored paper hitting the keyword.
    """

    keyword: str
    weight: int
    count: int = 0
    total_score: float = 0.0
    scored: int = 0
    top_paper: Paper | None = None

    @property
    def average_score(self) -> float | None:
        """Mean LLM score, None when nothing was scored."""
        if self.scored == 0:
            return None
        return self.total_score / self.scored

    @property
    def heat(self) -> float:
        """Ordering key: ``avg_score * log(1 + count) * weight``."""
        average = self.average_score if self.average_score is not None else 5.0
        return average * math.log1p(self.count) * self.weight
