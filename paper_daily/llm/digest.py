"""Free-text digest and rollup narrative generation."""

import json
from collections.abc import Mapping, Sequence

import structlog

from paper_daily.config.schemas import InterestKeyword, OutputLanguage
from paper_daily.llm.models import LlmRequest, TokenLedger
from paper_daily.llm.prompts import (
    DEFAULT_DAILY_PROMPT,
    DEFAULT_DEEP_READ_PROMPT,
    DIGEST_SYSTEM_INSTRUCTION,
    fill_template,
    format_interest_keywords,
)
from paper_daily.llm.protocols import LlmProvider
from paper_daily.papers import ARXIV_ABS_URL, ARXIV_HTML_URL, Paper


logger = structlog.get_logger()

DIGEST_ABSTRACT_CHARS = 500
DEEP_READ_AUTHORS = 5


def _digest_payload(paper: Paper) -> dict[str, object]:
    payload: dict[str, object] = {
        "id": paper.id,
        "title": paper.title,
        "abstract": paper.abstract[:DIGEST_ABSTRACT_CHARS],
        "categories": paper.categories,
        "interestHits": paper.interest_hits,
        "topDirections": paper.top_directions,
    }
    if paper.llm_score is not None:
        payload["llmScore"] = paper.llm_score
    if paper.upvotes is not None:
        payload["upvotes"] = paper.upvotes
    return payload


def _community_payload(paper: Paper) -> dict[str, object]:
    payload: dict[str, object] = {"title": paper.title, "upvotes": paper.upvotes or 0}
    if paper.streak is not None and paper.streak > 1:
        payload["streakDays"] = paper.streak
    return payload


def format_fulltext_section(
    papers: Sequence[Paper], excerpts: Mapping[str, str]
) -> str:
    """Markdown block of full-text excerpts keyed by base id."""
    blocks = [
        f"### {paper.title} ({paper.id})\n\n{excerpts[paper.base_id]}"
        for paper in papers
        if excerpts.get(paper.base_id)
    ]
    if not blocks:
        return ""
    return "## Full-text excerpts\n\n" + "\n\n".join(blocks)


def format_deep_read_section(papers: Sequence[Paper]) -> str:
    """Markdown block of the deep-read analyses, empty when there are none."""
    analysed = [paper for paper in papers if paper.deep_read_analysis]
    if not analysed:
        return ""
    blocks = [
        f"### [{index}] {paper.title}\n\n{paper.deep_read_analysis}"
        for index, paper in enumerate(analysed, start=1)
    ]
    return (
        f"## Deep Read Analysis (top {len(analysed)} papers)\n\n"
        + "\n\n---\n\n".join(blocks)
    )


class DigestWriter:
    """Produces narrative text through the LLM provider.

    Provider errors propagate; callers decide how to degrade.
    """

    def __init__(
        self,
        provider: LlmProvider,
        ledger: TokenLedger | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        run_id: str = "",
    ) -> None:
        self._provider = provider
        self._ledger = ledger if ledger is not None else TokenLedger()
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._log = logger.bind(component="llm", subcomponent="digest", run_id=run_id)

    def daily_digest(
        self,
        date: str,
        papers: Sequence[Paper],
        top_directions: str,
        interest_keywords: Sequence[InterestKeyword],
        language: OutputLanguage,
        community: Sequence[Paper] = (),
        excerpts: Mapping[str, str] | None = None,
        deep_reads: Sequence[Paper] = (),
        template: str = DEFAULT_DAILY_PROMPT,
    ) -> str:
        """Generate the daily narrative.

        Args:
            date: Digest date.
            papers: Top papers to discuss (already truncated).
            top_directions: Pre-formatted direction summary.
            interest_keywords: Reader interests.
            language: Requested response language.
            community: Community favourites (already truncated).
            excerpts: Full-text excerpts keyed by base id.
            deep_reads: Papers carrying a deep-read analysis.
            template: Prompt template.

        Returns:
            Markdown narrative.

        Raises:
            LlmApiError: If the provider call fails.
            LlmProcessingError: If the provider response is unusable.
        """
        prompt = fill_template(
            template,
            {
                "date": date,
                "topDirections": top_directions,
                "papers_json": json.dumps(
                    [_digest_payload(paper) for paper in papers],
                    ensure_ascii=False,
                    indent=2,
                ),
                "community_json": json.dumps(
                    [_community_payload(paper) for paper in community],
                    ensure_ascii=False,
                    indent=2,
                ),
                "fulltext_section": format_fulltext_section(papers, excerpts or {}),
                "deep_read_section": format_deep_read_section(deep_reads),
                "interest_keywords": format_interest_keywords(interest_keywords),
                "language": language.prompt_label,
            },
        )
        return self.generate(prompt, label="daily digest")

    def deep_read(
        self,
        paper: Paper,
        date: str,
        language: OutputLanguage,
        fulltext: str | None = None,
        template: str = DEFAULT_DEEP_READ_PROMPT,
        label: str = "deep read",
    ) -> str:
        """Generate a structured analysis of one paper.

        Without an excerpt the prompt carries the paper's HTML URL so a
        model with browsing can read it directly.

        Raises:
            LlmApiError: If the provider call fails.
            LlmProcessingError: If the provider response is unusable.
        """
        prompt = fill_template(
            template,
            {
                "title": paper.title,
                "authors": ", ".join(paper.authors[:DEEP_READ_AUTHORS]) or "Unknown",
                "published": paper.published[:10] or date,
                "arxiv_url": f"{ARXIV_ABS_URL}/{paper.base_id}",
                "interest_hits": ", ".join(paper.interest_hits) or "none",
                "abstract": paper.abstract,
                "fulltext": fulltext or f"{ARXIV_HTML_URL}/{paper.base_id}",
                "language": language.prompt_label,
            },
        )
        return self.generate(prompt, label=label)

    def generate(self, prompt: str, label: str) -> str:
        """Run one narrative prompt and return stripped text."""
        response = self._provider.generate(
            LlmRequest(
                prompt=prompt,
                system=DIGEST_SYSTEM_INSTRUCTION,
                temperature=self._temperature,
                max_tokens=self._max_tokens,
            )
        )
        self._ledger.record(label, response.usage)
        self._log.info("llm_narrative_generated", label=label, chars=len(response.text))
        return response.text.strip()
