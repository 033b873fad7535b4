"""Paper data model shared by sources, scorers, stores and renderers."""

from enum import Enum
from typing import Annotated

from pydantic import Field

from paper_daily.data_model.base import CamelModel
from paper_daily.papers.ids import normalize_paper_id


class PaperSource(str, Enum):
    """Feed a paper was obtained from."""

    PRIMARY = "primary"
    COMMUNITY = "community"
    CUSTOM = "custom"
    RSS = "rss"


class PaperLinks(CamelModel):
    """Optional outbound links for a paper."""

    html: str | None = None
    pdf: str | None = None
    community: str | None = None
    local_pdf: str | None = None


class Paper(CamelModel):
    """A research paper plus fields computed during a run.

    The ``id`` keeps the source qualifier and version suffix and is the
    dedup key. Enrichment matching uses :attr:`base_id`.

    Computed fields start empty and are filled in by the ranker and the
    LLM annotator. Instances are mutable; the ranker works on copies.
    """

    id: Annotated[str, Field(min_length=1)]
    title: str = ""
    authors: list[str] = Field(default_factory=list)
    abstract: str = ""
    categories: list[str] = Field(default_factory=list)
    published: str = ""
    updated: str = ""
    links: PaperLinks = Field(default_factory=PaperLinks)
    source: PaperSource = PaperSource.PRIMARY

    # Computed during a run
    interest_hits: list[str] = Field(default_factory=list)
    direction_scores: dict[str, float] = Field(default_factory=dict)
    top_directions: list[str] = Field(default_factory=list)
    llm_score: float | None = None
    llm_score_reason: str | None = None
    llm_summary: str | None = None
    upvotes: int | None = None
    streak: int | None = None
    deep_read_analysis: str | None = None

    @property
    def base_id(self) -> str:
        """Normalized identifier used for cross-source matching."""
        return normalize_paper_id(self.id)

    @property
    def most_recent(self) -> str:
        """Most recent timestamp: ``updated`` falling back to ``published``."""
        return self.updated or self.published

    def to_record(self) -> dict[str, object]:
        """Serialize with camelCase keys, omitting unset optional fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
