"""Research-direction scoring.

A direction scores one point per matched keyword, plus 0.5 when the paper
shares a configured category and at least one keyword matched; the total
is multiplied by the direction weight. Zero scores are left out, so score
maps are sparse and keep configuration order.
"""

from collections.abc import Iterable, Mapping, Sequence

from paper_daily.config.schemas import DirectionConfig
from paper_daily.papers import Paper
from paper_daily.scoring.text import contains_phrase, paper_haystack


CATEGORY_BONUS = 0.5


def score_directions(
    paper: Paper,
    directions: Sequence[DirectionConfig],
) -> dict[str, float]:
    """Compute the sparse direction score map for a paper.

    Args:
        paper: Paper to score.
        directions: Directions in declaration order.

    Returns:
        Direction name to weighted score, positive scores only, in
        declaration order.
    """
    if not directions:
        return {}

    haystack = paper_haystack(paper)
    paper_categories = set(paper.categories)
    scores: dict[str, float] = {}

    for direction in directions:
        score = float(
            sum(1 for kw in direction.match.keywords if contains_phrase(haystack, kw))
        )
        if score > 0 and paper_categories.intersection(direction.match.categories):
            score += CATEGORY_BONUS
        weighted = score * direction.weight
        if weighted > 0:
            scores[direction.name] = weighted

    return scores


def top_directions(scores: Mapping[str, float], k: int) -> list[str]:
    """Return the ``k`` highest-scoring direction names.

    Ties keep the map's iteration order, which is declaration order for
    maps built by :func:`score_directions` and :func:`aggregate_directions`.
    """
    if k <= 0:
        return []
    # sorted() is stable, so equal scores stay in declaration order
    ranked = sorted(scores.items(), key=lambda item: -item[1])
    return [name for name, _ in ranked[:k]]


def aggregate_directions(
    papers: Iterable[Paper],
    directions: Sequence[DirectionConfig] = (),
) -> dict[str, float]:
    """Sum each direction's score across papers.

    Args:
        papers: Papers carrying ``direction_scores``.
        directions: When given, fixes key order to declaration order.

    Returns:
        Direction name to summed score.
    """
    totals: dict[str, float] = {d.name: 0.0 for d in directions}
    for paper in papers:
        for name, score in paper.direction_scores.items():
            totals[name] = totals.get(name, 0.0) + score
    return {name: total for name, total in totals.items() if total > 0}
