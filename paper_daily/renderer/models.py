"""Render contexts for the Markdown documents."""

from dataclasses import dataclass, field

from paper_daily.papers import Paper
from paper_daily.ranker import InterestAreaStat, TrendingPaper


@dataclass(frozen=True)
class StageFailure:
    """An upstream stage failure shown in the error banner.

    Attributes:
        label: Human label such as ``Fetch`` or ``LLM``.
        message: Failure message.
    """

    label: str
    message: str

    def __str__(self) -> str:
        return f"{self.label} failed: {self.message}"


@dataclass
class DailyRenderContext:
    """Everything the daily template needs.

    Attributes:
        date: Digest date (``YYYY-MM-DD``).
        papers: Final ranked papers.
        sources: Names of the feeds consulted.
        categories: Configured categories.
        interest_keywords: ``keyword(weight)`` labels for front matter.
        failures: Upstream failures for the error banner.
        digest_text: LLM narrative, if generated.
        digest_error: LLM digest failure reason, if any.
        llm_disabled: True when no LLM credential is configured.
        direction_totals: ``(name, score)`` pairs, strongest first.
        trending: Trending section entries.
        interest_stats: Interest hotness rows.
        include_abstract: Whether to add the abstracts section.
        include_pdf_link: Whether to add PDF links to the table.
        deep_read_links: Wiki-link targets of deep-read notes by base id.
    """

    date: str
    papers: list[Paper] = field(default_factory=list)
    sources: list[str] = field(default_factory=list)
    categories: list[str] = field(default_factory=list)
    interest_keywords: list[str] = field(default_factory=list)
    failures: list[StageFailure] = field(default_factory=list)
    digest_text: str | None = None
    digest_error: str | None = None
    llm_disabled: bool = False
    direction_totals: list[tuple[str, float]] = field(default_factory=list)
    trending: list[TrendingPaper] = field(default_factory=list)
    interest_stats: list[InterestAreaStat] = field(default_factory=list)
    include_abstract: bool = True
    include_pdf_link: bool = True
    deep_read_links: dict[str, str] = field(default_factory=dict)

    @property
    def featured(self) -> list[Paper]:
        """Papers with a deep-read analysis, in ranked order."""
        return [paper for paper in self.papers if paper.deep_read_analysis]

    @property
    def error_banner(self) -> str | None:
        """Combined failure text, None when nothing failed."""
        if not self.failures:
            return None
        return "\n\n".join(str(failure) for failure in self.failures)


@dataclass
class DeepReadRenderContext:
    """A standalone deep-read note.

    Attributes:
        date: Digest date the analysis belongs to.
        paper: Analysed paper, carrying ``deep_read_analysis``.
        tags: Configured tags; interest hits are appended when rendering.
    """

    date: str
    paper: Paper
    tags: list[str] = field(default_factory=list)


@dataclass
class RollupRenderContext:
    """Everything the weekly/monthly template needs.

    Attributes:
        kind: ``weekly`` or ``monthly``.
        label: Period label (``2025-W03`` or ``2025-01``).
        start: First day of the period.
        end: Last day of the period.
        paper_count: Papers collected in the period.
        day_count: Days with a snapshot.
        narrative: LLM narrative, if generated.
        llm_error: LLM failure reason, if any.
        direction_lines: Pre-formatted direction trend lines.
        top_papers: Papers listed when no narrative is available.
    """

    kind: str
    label: str
    start: str
    end: str
    paper_count: int = 0
    day_count: int = 0
    narrative: str | None = None
    llm_error: str | None = None
    direction_lines: str = "No data"
    top_papers: list[Paper] = field(default_factory=list)
