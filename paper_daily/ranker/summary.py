"""Interest-area hotness summary over the final ranked list."""

from collections.abc import Sequence

from paper_daily.config.schemas import InterestKeyword
from paper_daily.papers import Paper
from paper_daily.ranker.models import InterestAreaStat


def summarize_interest_areas(
    papers: Sequence[Paper],
    keywords: Sequence[InterestKeyword],
) -> list[InterestAreaStat]:
    """Aggregate ranked papers per interest keyword.

    Args:
        papers: Ranked papers carrying ``interest_hits`` and ``llm_score``.
        keywords: Configured interest keywords.

    Returns:
        Keywords hit by at least one paper, hottest first.
    """
    stats = {
        kw.keyword: InterestAreaStat(keyword=kw.keyword, weight=kw.weight)
        for kw in keywords
    }

    for paper in papers:
        for hit in paper.interest_hits:
            stat = stats.get(hit)
            if stat is None:
                continue
            stat.count += 1
            if paper.llm_score is not None:
                stat.total_score += paper.llm_score
                stat.scored += 1
                top_score = stat.top_paper.llm_score if stat.top_paper else None
                if top_score is None or paper.llm_score > top_score:
                    stat.top_paper = paper

    hot = [stat for stat in stats.values() if stat.count > 0]
    hot.sort(key=lambda stat: -stat.heat)
    return hot
