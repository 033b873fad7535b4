"""Batch relevance scoring of ranked papers by an LLM."""

import json
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

import structlog

from paper_daily.config.schemas import InterestKeyword
from paper_daily.llm.errors import LlmApiError, LlmProcessingError
from paper_daily.llm.json_utils import parse_score_entries
from paper_daily.llm.models import LlmRequest, TokenLedger
from paper_daily.llm.prompts import (
    DEFAULT_SCORING_PROMPT,
    SCORING_SYSTEM_INSTRUCTION,
    fill_template,
    format_interest_keywords,
)
from paper_daily.llm.protocols import LlmProvider
from paper_daily.papers import Paper, normalize_paper_id


logger = structlog.get_logger()

SCORING_BATCH_SIZE = 10
SCORING_TEMPERATURE = 0.1
TOKENS_PER_PAPER = 150
TOKEN_BUDGET_BASE = 256
TOKEN_BUDGET_CAP = 8192
ABSTRACT_PROMPT_CHARS = 250


def scoring_token_budget(batch_size: int) -> int:
    """Output token budget for a batch of ``batch_size`` papers."""
    return min(batch_size * TOKENS_PER_PAPER + TOKEN_BUDGET_BASE, TOKEN_BUDGET_CAP)


def _paper_payload(paper: Paper) -> dict[str, object]:
    payload: dict[str, object] = {
        "id": paper.id,
        "title": paper.title,
        "abstract": paper.abstract[:ABSTRACT_PROMPT_CHARS],
        "interestHits": paper.interest_hits,
    }
    if paper.upvotes is not None:
        payload["upvotes"] = paper.upvotes
    return payload


def sort_by_llm_score(papers: Sequence[Paper]) -> list[Paper]:
    """Stable re-sort: scored papers by descending score, unscored last."""
    return sorted(
        papers,
        key=lambda paper: -(paper.llm_score if paper.llm_score is not None else -1.0),
    )


@dataclass
class ScoringOutcome:
    """Result of an LLM scoring pass.

    Attributes:
        papers: Papers in final order (unchanged order if nothing scored).
        scored: Number of papers that received a score.
        batches: Number of batches sent.
        errors: One message per failed batch.
    """

    papers: list[Paper]
    scored: int = 0
    batches: int = 0
    errors: list[str] = field(default_factory=list)


class LlmBatchScorer:
    """Scores papers in batches and writes the results onto them."""

    def __init__(
        self,
        provider: LlmProvider,
        ledger: TokenLedger | None = None,
        batch_size: int = SCORING_BATCH_SIZE,
        run_id: str = "",
    ) -> None:
        """Initialize the scorer.

        Args:
            provider: LLM provider.
            ledger: Token ledger shared across the run's calls.
            batch_size: Papers per request.
            run_id: Run identifier for logging.
        """
        self._provider = provider
        self._ledger = ledger if ledger is not None else TokenLedger()
        self._batch_size = batch_size
        self._log = logger.bind(component="llm", subcomponent="scorer", run_id=run_id)

    def score(
        self,
        papers: Sequence[Paper],
        interest_keywords: Sequence[InterestKeyword],
        template: str = DEFAULT_SCORING_PROMPT,
        checkpoint: Callable[[], None] | None = None,
    ) -> ScoringOutcome:
        """Score ``papers`` and return them re-sorted by LLM score.

        A failed batch leaves its papers unscored and is recorded in
        ``errors``; later batches still run. When no paper is scored the
        incoming order is returned unchanged.

        Args:
            papers: Ranked papers (mutated in place with LLM fields).
            interest_keywords: Reader interests for the prompt.
            template: Prompt template with ``interest_keywords`` and
                ``papers_json`` placeholders.
            checkpoint: Called before each batch; may raise to abort.

        Returns:
            Scoring outcome with the final order.
        """
        outcome = ScoringOutcome(papers=list(papers))
        if not papers:
            return outcome

        keywords_text = format_interest_keywords(interest_keywords)
        total_batches = (len(papers) + self._batch_size - 1) // self._batch_size

        for index in range(total_batches):
            if checkpoint is not None:
                checkpoint()
            batch = papers[index * self._batch_size : (index + 1) * self._batch_size]
            label = f"score batch {index + 1}/{total_batches}"
            outcome.batches += 1
            try:
                outcome.scored += self._score_batch(batch, keywords_text, template, label)
            except (LlmApiError, LlmProcessingError) as e:
                outcome.errors.append(f"{label}: {e}")
                self._log.warning("llm_score_batch_failed", batch=label, error=str(e))

        if outcome.scored:
            outcome.papers = sort_by_llm_score(papers)
        self._log.info(
            "llm_scoring_complete",
            scored=outcome.scored,
            total=len(papers),
            failed_batches=len(outcome.errors),
        )
        return outcome

    def _score_batch(
        self,
        batch: Sequence[Paper],
        keywords_text: str,
        template: str,
        label: str,
    ) -> int:
        prompt = fill_template(
            template,
            {
                "interest_keywords": keywords_text,
                "papers_json": json.dumps(
                    [_paper_payload(paper) for paper in batch],
                    ensure_ascii=False,
                    indent=2,
                ),
            },
        )
        response = self._provider.generate(
            LlmRequest(
                prompt=prompt,
                system=SCORING_SYSTEM_INSTRUCTION,
                temperature=SCORING_TEMPERATURE,
                max_tokens=scoring_token_budget(len(batch)),
            )
        )
        self._ledger.record(label, response.usage)

        entries = parse_score_entries(response.text)
        if entries is None:
            msg = "response contained no JSON array"
            raise LlmProcessingError(msg)

        # Only ids sent in this batch may be scored by its reply
        by_base_id = {paper.base_id: paper for paper in batch}
        scored = 0
        for entry in entries:
            paper = by_base_id.get(normalize_paper_id(entry.id))
            if paper is None:
                continue
            if paper.llm_score is None:
                scored += 1
            paper.llm_score = entry.score
            paper.llm_score_reason = entry.reason
            if entry.summary:
                paper.llm_summary = entry.summary
        return scored
