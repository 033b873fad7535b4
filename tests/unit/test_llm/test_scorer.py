"""Unit tests for LLM batch scoring, digests and token accounting."""

import json

import pytest

from paper_daily.config.schemas import InterestKeyword, OutputLanguage
from paper_daily.llm import (
    DigestWriter,
    LlmApiError,
    LlmBatchScorer,
    LlmRequest,
    LlmUsage,
    TokenLedger,
    format_deep_read_section,
    format_fulltext_section,
    sort_by_llm_score,
)
from paper_daily.llm.scorer import scoring_token_budget
from tests.helpers.fakes import FakeLlmProvider, make_paper


KEYWORDS = [InterestKeyword(keyword="agent", weight=2)]


def _papers(count: int) -> list:
    return [make_paper(paper_id=f"arxiv:2501.{i:05d}v1", title=f"P{i}") for i in range(count)]


def _score_all(request: LlmRequest, score_of=lambda pid: 5) -> str:
    """Reply scoring every paper in the prompt, echoing unversioned ids."""
    start = request.prompt.index("[")
    payload = json.loads(request.prompt[start : request.prompt.index("\n]", start) + 2])
    return json.dumps(
        [
            {"id": p["id"].replace("arxiv:", "").rsplit("v", 1)[0], "score": score_of(p["id"])}
            for p in payload
        ]
    )


class TestScoringTokenBudget:
    """Tests for scoring_token_budget."""

    def test_scales_and_caps(self) -> None:
        assert scoring_token_budget(10) == 1756
        assert scoring_token_budget(1000) == 8192


class TestLlmBatchScorer:
    """Tests for LlmBatchScorer."""

    def test_scores_and_resorts(self) -> None:
        papers = _papers(3)
        scores = {"arxiv:2501.00000v1": 3, "arxiv:2501.00001v1": 9, "arxiv:2501.00002v1": 6}
        provider = FakeLlmProvider([lambda r: _score_all(r, scores.get)])

        outcome = LlmBatchScorer(provider).score(papers, KEYWORDS)

        assert outcome.scored == 3
        assert outcome.errors == []
        assert [p.title for p in outcome.papers] == ["P1", "P2", "P0"]
        assert papers[1].llm_score == 9.0

    def test_batches_of_ten(self) -> None:
        provider = FakeLlmProvider([_score_all])
        ledger = TokenLedger()

        outcome = LlmBatchScorer(provider, ledger=ledger).score(_papers(23), KEYWORDS)

        assert outcome.batches == 3
        assert len(provider.requests) == 3
        assert [r.max_tokens for r in provider.requests] == [1756, 1756, 706]
        assert all(r.temperature == 0.1 for r in provider.requests)
        assert ledger.calls == 3

    def test_non_json_reply_keeps_order(self) -> None:
        """Unparseable output leaves papers unscored and in input order."""
        papers = _papers(3)
        provider = FakeLlmProvider(["I'd rather not."])

        outcome = LlmBatchScorer(provider).score(papers, KEYWORDS)

        assert outcome.scored == 0
        assert [p.id for p in outcome.papers] == [p.id for p in papers]
        assert outcome.errors == ["score batch 1/1: response contained no JSON array"]
        assert all(p.llm_score is None for p in papers)

    def test_failed_batch_does_not_stop_later_ones(self) -> None:
        provider = FakeLlmProvider([LlmApiError("boom", status_code=500), _score_all])

        outcome = LlmBatchScorer(provider, batch_size=2).score(_papers(4), KEYWORDS)

        assert outcome.scored == 2
        assert len(outcome.errors) == 1
        assert outcome.errors[0].startswith("score batch 1/2")
        assert [p.llm_score for p in outcome.papers[:2]] == [5.0, 5.0]
        assert [p.llm_score for p in outcome.papers[2:]] == [None, None]

    def test_unknown_ids_are_ignored(self) -> None:
        provider = FakeLlmProvider(['[{"id": "9999.99999", "score": 10}]'])

        outcome = LlmBatchScorer(provider).score(_papers(2), KEYWORDS)

        assert outcome.scored == 0

    def test_reply_cannot_rescore_earlier_batch(self) -> None:
        """An id from another batch in a reply is ignored."""
        papers = _papers(4)
        provider = FakeLlmProvider(
            [
                lambda r: _score_all(r, lambda pid: 4),
                '[{"id": "2501.00000", "score": 10}, {"id": "2501.00002", "score": 8}]',
            ]
        )

        outcome = LlmBatchScorer(provider, batch_size=2).score(papers, KEYWORDS)

        assert outcome.scored == 3
        assert papers[0].llm_score == 4.0
        assert papers[2].llm_score == 8.0
        assert papers[3].llm_score is None

    def test_summary_and_reason_applied(self) -> None:
        papers = _papers(1)
        provider = FakeLlmProvider(
            ['[{"id": "ARXIV:2501.00000V2", "score": 7, "reason": "r", "summary": "s"}]']
        )

        LlmBatchScorer(provider).score(papers, KEYWORDS)

        assert papers[0].llm_score == 7.0
        assert papers[0].llm_score_reason == "r"
        assert papers[0].llm_summary == "s"

    def test_checkpoint_can_abort(self) -> None:
        class Stop(Exception):
            pass

        calls = []

        def checkpoint() -> None:
            calls.append(1)
            if len(calls) > 1:
                raise Stop

        provider = FakeLlmProvider([_score_all])

        with pytest.raises(Stop):
            LlmBatchScorer(provider, batch_size=1).score(_papers(3), KEYWORDS, checkpoint=checkpoint)

        assert len(provider.requests) == 1

    def test_empty_input(self) -> None:
        provider = FakeLlmProvider()
        assert LlmBatchScorer(provider).score([], KEYWORDS).papers == []
        assert provider.requests == []


class TestSortByLlmScore:
    """Tests for sort_by_llm_score."""

    def test_unscored_last_and_stable(self) -> None:
        a, b, c, d = _papers(4)
        a.llm_score = None
        b.llm_score = 4.0
        c.llm_score = None
        d.llm_score = 4.0

        assert [p.title for p in sort_by_llm_score([a, b, c, d])] == ["P1", "P3", "P0", "P2"]


class TestDigestWriter:
    """Tests for DigestWriter."""

    def test_daily_prompt_contents(self) -> None:
        paper = make_paper(paper_id="arxiv:2501.00001v1", title="Agents")
        paper.llm_score = 8.0
        community = make_paper(paper_id="arxiv:2501.00002", title="Popular", upvotes=30)
        community.streak = 3
        provider = FakeLlmProvider(["  # Digest\n\nBody  "])
        ledger = TokenLedger()

        text = DigestWriter(provider, ledger, temperature=0.3, max_tokens=999).daily_digest(
            date="2025-01-15",
            papers=[paper],
            top_directions="- RL: 2.0",
            interest_keywords=KEYWORDS,
            language=OutputLanguage.EN,
            community=[community],
            excerpts={"2501.00001": "Full body text"},
        )

        assert text == "# Digest\n\nBody"
        request = provider.requests[0]
        assert request.temperature == 0.3
        assert request.max_tokens == 999
        assert "2025-01-15" in request.prompt
        assert "Respond in English" in request.prompt
        assert "agent(weight:2)" in request.prompt
        assert '"llmScore": 8.0' in request.prompt
        assert '"streakDays": 3' in request.prompt
        assert "### Agents (arxiv:2501.00001v1)\n\nFull body text" in request.prompt
        assert ledger.calls == 1

    def test_errors_propagate(self) -> None:
        writer = DigestWriter(FakeLlmProvider([LlmApiError("down")]))
        with pytest.raises(LlmApiError):
            writer.generate("prompt", label="daily digest")

    def test_fulltext_section_empty(self) -> None:
        assert format_fulltext_section([make_paper()], {}) == ""

    def test_deep_read_prompt_without_excerpt(self) -> None:
        """Without an excerpt the prompt points at the HTML rendering."""
        paper = make_paper(paper_id="arxiv:2501.00001v2", title="Agents")
        provider = FakeLlmProvider(["  Analysis  "])
        ledger = TokenLedger()

        text = DigestWriter(provider, ledger, temperature=0.2, max_tokens=1024).deep_read(
            paper, date="2025-01-15", language=OutputLanguage.EN, label="deep read 1/1"
        )

        assert text == "Analysis"
        request = provider.requests[0]
        assert request.temperature == 0.2
        assert request.max_tokens == 1024
        assert "Title: Agents" in request.prompt
        assert "Authors: Ada Lovelace" in request.prompt
        assert "Published: 2025-01-15" in request.prompt
        assert "https://arxiv.org/abs/2501.00001" in request.prompt
        assert "Matched interests: none" in request.prompt
        assert "https://arxiv.org/html/2501.00001" in request.prompt
        assert ledger.calls == 1

    def test_deep_read_prompt_uses_excerpt(self) -> None:
        provider = FakeLlmProvider()
        paper = make_paper()
        paper.interest_hits = ["agent", "planning"]

        DigestWriter(provider).deep_read(
            paper,
            date="2025-01-15",
            language=OutputLanguage.EN,
            fulltext="Section 1. Introduction",
            template="{{fulltext}} | {{interest_hits}}",
        )

        assert provider.requests[0].prompt == "Section 1. Introduction | agent, planning"

    def test_deep_read_section(self) -> None:
        first = make_paper(title="First")
        first.deep_read_analysis = "One."
        second = make_paper(title="Second")
        second.deep_read_analysis = "Two."

        section = format_deep_read_section([first, make_paper(title="Unread"), second])

        assert section == (
            "## Deep Read Analysis (top 2 papers)\n\n"
            "### [1] First\n\nOne.\n\n---\n\n### [2] Second\n\nTwo."
        )
        assert format_deep_read_section([make_paper()]) == ""


class TestTokenLedger:
    """Tests for TokenLedger."""

    def test_accumulates_and_warns(self) -> None:
        ledger = TokenLedger()

        ledger.record("a", LlmUsage(input_tokens=25_000, output_tokens=10))
        ledger.record("b", None)
        ledger.record("c", LlmUsage(input_tokens=30_000, output_tokens=5))

        assert ledger.calls == 2
        assert ledger.input_tokens == 55_000
        assert ledger.output_tokens == 15
        assert len(ledger.warnings) == 2
        assert ledger.check_total() == "total run input=55000 exceeds 50000"

    def test_under_thresholds(self) -> None:
        ledger = TokenLedger()
        ledger.record("a", LlmUsage(input_tokens=100))
        assert ledger.check_total() is None
        assert ledger.warnings == []
