"""Secondary source and enrichment schemas."""

from typing import Annotated

from pydantic import Field

from paper_daily.data_model import StrictBaseModel


class CommunitySourceConfig(StrictBaseModel):
    """Community trending-papers feed.

    Attributes:
        enabled: Whether the feed is fetched.
        lookback_days: Earlier days tried when the requested day is empty.
        dedup: Drop papers whose first appearance predates the fetched day.
        add_to_pool: Fold community-only papers into the scoring pool.
        prompt_top_n: Community papers listed in the digest prompt.
    """

    enabled: bool = True
    lookback_days: Annotated[int, Field(ge=0, le=14)] = 3
    dedup: bool = False
    add_to_pool: bool = True
    prompt_top_n: Annotated[int, Field(ge=0, le=100)] = 15


class RssSourceConfig(StrictBaseModel):
    """Plain RSS/Atom feeds of papers."""

    enabled: bool = False
    feeds: list[str] = Field(default_factory=list)


class CustomSourceConfig(StrictBaseModel):
    """Placeholder for a user-provided JSON API."""

    enabled: bool = False
    url: str | None = None


class FullTextConfig(StrictBaseModel):
    """Full-text enrichment of the top papers.

    Attributes:
        enabled: Whether full text is fetched for the digest prompt.
        top_n: Number of top-ranked papers to fetch.
        max_chars_per_paper: Excerpt length passed to the LLM.
        cache_ttl_days: Age after which cached texts are pruned.
    """

    enabled: bool = False
    top_n: Annotated[int, Field(ge=1, le=50)] = 5
    max_chars_per_paper: Annotated[int, Field(ge=500, le=200_000)] = 8000
    cache_ttl_days: Annotated[int, Field(ge=1, le=3650)] = 60


class TrendingConfig(StrictBaseModel):
    """Trending section for papers the ranking excluded.

    Attributes:
        enabled: Whether excluded papers are scored for hotness.
        min_score: Minimum hotness (0-12) to be listed.
        max_items: Maximum number of trending papers listed.
    """

    enabled: bool = True
    min_score: Annotated[int, Field(ge=0, le=12)] = 3
    max_items: Annotated[int, Field(ge=0, le=100)] = 5
