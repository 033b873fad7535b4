"""Unit tests for LLM JSON recovery helpers."""

from paper_daily.llm import ScoreEntry
from paper_daily.llm.json_utils import (
    extract_first_json_array,
    fix_escape_sequences,
    parse_json_array,
    parse_score_entries,
    strip_markdown_fences,
)


class TestStripMarkdownFences:
    """Tests for strip_markdown_fences."""

    def test_fenced_json(self) -> None:
        assert strip_markdown_fences('```json\n[{"a": 1}]\n```') == '[{"a": 1}]'

    def test_plain_text_untouched(self) -> None:
        assert strip_markdown_fences("  [1]  ") == "[1]"


class TestExtractFirstJsonArray:
    """Tests for extract_first_json_array."""

    def test_with_surrounding_chatter(self) -> None:
        text = 'Sure! Here you go: [{"id": "x", "tags": [1, 2]}] Hope this helps [really].'
        assert extract_first_json_array(text) == '[{"id": "x", "tags": [1, 2]}]'

    def test_brackets_inside_strings_ignored(self) -> None:
        text = '[{"reason": "uses ] and [ freely \\" ]"}] tail'
        assert extract_first_json_array(text) == '[{"reason": "uses ] and [ freely \\" ]"}]'

    def test_unbalanced(self) -> None:
        assert extract_first_json_array("[1, 2") is None
        assert extract_first_json_array("no array") is None


class TestParseJsonArray:
    """Tests for parse_json_array."""

    def test_invalid_escape_is_repaired(self) -> None:
        assert parse_json_array('[{"reason": "uses \\alpha"}]') == [{"reason": "uses \\alpha"}]
        assert fix_escape_sequences('"\\alpha \\n"') == '"\\\\alpha \\n"'

    def test_object_is_not_an_array(self) -> None:
        assert parse_json_array('{"id": 1}') is None

    def test_fenced_with_chatter(self) -> None:
        assert parse_json_array("```\nResult: [1, 2]\n```") == [1, 2]


class TestParseScoreEntries:
    """Tests for parse_score_entries."""

    def test_valid_entries(self) -> None:
        text = (
            '[{"id": "arxiv:2501.00001v1", "score": 8, "reason": "on topic",'
            ' "summary": "Does X."}]'
        )
        assert parse_score_entries(text) == [
            ScoreEntry(id="arxiv:2501.00001v1", score=8.0, reason="on topic", summary="Does X.")
        ]

    def test_drops_invalid_items_and_clamps(self) -> None:
        text = """[
            {"id": "a", "score": 15},
            {"id": "b", "score": -3},
            {"id": "c", "score": "7.5"},
            {"id": "d", "score": true},
            {"id": 5, "score": 5},
            {"score": 5},
            {"id": "e"},
            "junk",
            {"id": "f", "score": 6, "summary": ""}
        ]"""

        entries = parse_score_entries(text)

        assert entries is not None
        assert [(e.id, e.score) for e in entries] == [
            ("a", 10.0),
            ("b", 1.0),
            ("c", 7.5),
            ("f", 6.0),
        ]
        assert entries[-1].summary is None
        assert entries[-1].reason == ""

    def test_no_array(self) -> None:
        assert parse_score_entries("I cannot rate these papers.") is None

    def test_empty_array(self) -> None:
        assert parse_score_entries("[]") == []
