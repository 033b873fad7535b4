"""Unit tests for interest keyword scoring."""

from paper_daily.config.schemas import InterestKeyword
from paper_daily.scoring import interest_hits, normalize_text, score_interest
from tests.helpers.fakes import make_paper


KEYWORDS = [
    InterestKeyword(keyword="agent", weight=3),
    InterestKeyword(keyword="Reinforcement  Learning", weight=2),
    InterestKeyword(keyword="diffusion", weight=1),
]


class TestScoreInterest:
    """Tests for score_interest."""

    def test_weighted_sum_of_matches(self) -> None:
        """Score is the sum of the matched keywords' weights."""
        paper = make_paper(
            title="Agents that plan",
            abstract="We apply reinforcement\nlearning to web tasks.",
        )

        result = score_interest(paper, KEYWORDS)

        assert result.hits == ["agent", "Reinforcement  Learning"]
        assert result.score == 5

    def test_matching_is_case_insensitive_substring(self) -> None:
        paper = make_paper(title="MULTI-AGENT SYSTEMS")
        assert score_interest(paper, KEYWORDS).hits == ["agent"]

    def test_no_keywords_scores_zero(self) -> None:
        result = score_interest(make_paper(title="agent"), [])
        assert result.hits == []
        assert result.score == 0

    def test_no_match(self) -> None:
        assert score_interest(make_paper(title="Graph coloring"), KEYWORDS).score == 0

    def test_hits_keep_configuration_order(self) -> None:
        paper = make_paper(title="diffusion policies for agent control")
        assert interest_hits(paper, KEYWORDS) == ["agent", "diffusion"]


class TestNormalizeText:
    """Tests for normalize_text."""

    def test_collapses_whitespace_and_lowercases(self) -> None:
        assert normalize_text("  Mixture\tof\n Experts ") == "mixture of experts"
