"""Hotness heuristic for papers outside the user's interests.

Four tiered components, each worth up to 3 points:

- version: v2 +1, v3 +2, v4 and later +3
- category breadth: 2 distinct +1, 3 +2, 4 or more +3
- recency against ``now``: within 24h +3, 48h +2, 72h +1
- community upvotes: 1+ +1, 6+ +2, 21+ +3
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime

from dateutil import parser as date_parser

from paper_daily.papers import Paper, version_of


MAX_HOTNESS = 12


@dataclass(frozen=True)
class HotnessScore:
    """Hotness of a paper with the reasons that contributed."""

    score: int = 0
    reasons: list[str] = field(default_factory=list)


def parse_timestamp(value: str) -> datetime | None:
    """Parse a feed timestamp to an aware UTC datetime, None when unparseable."""
    if not value:
        return None
    try:
        parsed = date_parser.parse(value)
    except (ValueError, TypeError, OverflowError):
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def _version_tier(version: int) -> tuple[int, str | None]:
    if version >= 4:
        return 3, f"v{version} (heavily revised)"
    if version == 3:
        return 2, f"v{version} (revised twice)"
    if version == 2:
        return 1, f"v{version} (revised once)"
    return 0, None


def _breadth_tier(count: int) -> tuple[int, str | None]:
    if count >= 4:
        return 3, f"{count} categories (broad impact)"
    if count == 3:
        return 2, f"{count} categories"
    if count == 2:
        return 1, f"{count} categories"
    return 0, None


def _recency_tier(hours: float | None) -> tuple[int, str | None]:
    if hours is None:
        return 0, None
    if hours <= 24:
        return 3, "published <24h ago"
    if hours <= 48:
        return 2, "published <48h ago"
    if hours <= 72:
        return 1, "published <72h ago"
    return 0, None


def _upvote_tier(upvotes: int) -> tuple[int, str | None]:
    if upvotes >= 21:
        return 3, f"{upvotes} community upvotes"
    if upvotes >= 6:
        return 2, f"{upvotes} community upvotes"
    if upvotes >= 1:
        return 1, f"{upvotes} community upvotes"
    return 0, None


def compute_hotness(paper: Paper, now: datetime) -> HotnessScore:
    """Score how "hot" a paper looks from metadata alone.

    Args:
        paper: Paper to score.
        now: Reference time for the recency tier.

    Returns:
        Score in ``0..MAX_HOTNESS`` and one reason per triggered tier.
    """
    published = parse_timestamp(paper.published or paper.updated)
    hours = (now - published).total_seconds() / 3600 if published else None

    tiers = (
        _version_tier(version_of(paper.id)),
        _breadth_tier(len(set(paper.categories))),
        _recency_tier(hours),
        _upvote_tier(paper.upvotes or 0),
    )
    return HotnessScore(
        score=sum(points for points, _ in tiers),
        reasons=[reason for _, reason in tiers if reason],
    )
