"""Unit tests for the community feed source."""

import json

import httpx
import pytest

from paper_daily.papers import PaperSource
from paper_daily.sources import CommunitySource, SourceError
from paper_daily.sources.errors import SourceErrorClass


def _entry(base_id: str, title: str, upvotes: int) -> dict:
    return {
        "paper": {
            "id": base_id,
            "title": title,
            "summary": f"Abstract of {title}",
            "authors": [{"name": "Grace Hopper"}, {"hidden": True}],
            "publishedAt": "2025-01-14T00:00:00.000Z",
            "upvotes": upvotes,
        }
    }


class _FeedByDay:
    """MockTransport handler serving canned entries per ``date`` param."""

    def __init__(self, days: dict[str, list[dict]]) -> None:
        self._days = days
        self.requested: list[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        day = request.url.params["date"]
        self.requested.append(day)
        return httpx.Response(200, json=self._days.get(day, []))


class TestParseEntries:
    """Tests for CommunitySource.parse_entries."""

    def test_converts_and_sorts_by_upvotes(self) -> None:
        papers = CommunitySource.parse_entries(
            [_entry("2501.00001", "Low", 3), _entry("2501.00002", "High", 40)]
        )

        assert [p.title for p in papers] == ["High", "Low"]
        high = papers[0]
        assert high.id == "arxiv:2501.00002"
        assert high.base_id == "2501.00002"
        assert high.source == PaperSource.COMMUNITY
        assert high.upvotes == 40
        assert high.authors == ["Grace Hopper"]
        assert high.links.community == "https://huggingface.co/papers/2501.00002"

    def test_skips_malformed_entries(self) -> None:
        papers = CommunitySource.parse_entries(
            [{"paper": {}}, "junk", {"nope": 1}, _entry("2501.00003", "Ok", 0)]
        )
        assert [p.title for p in papers] == ["Ok"]

    def test_non_list_payload(self) -> None:
        assert CommunitySource.parse_entries({"error": "x"}) == []


class TestFetchDay:
    """Tests for CommunitySource.fetch_day."""

    def test_requested_day_has_papers(self) -> None:
        handler = _FeedByDay({"2025-01-15": [_entry("2501.00001", "Today", 5)]})
        source = CommunitySource(client=httpx.Client(transport=httpx.MockTransport(handler)))

        result = source.fetch_day("2025-01-15", lookback_days=3)

        assert result.feed_date == "2025-01-15"
        assert [p.title for p in result.papers] == ["Today"]
        assert handler.requested == ["2025-01-15"]

    def test_looks_back_over_empty_days(self) -> None:
        handler = _FeedByDay({"2025-01-13": [_entry("2501.00001", "Friday", 5)]})
        source = CommunitySource(client=httpx.Client(transport=httpx.MockTransport(handler)))

        result = source.fetch_day("2025-01-15", lookback_days=3)

        assert result.feed_date == "2025-01-13"
        assert handler.requested == ["2025-01-15", "2025-01-14", "2025-01-13"]

    def test_all_empty(self) -> None:
        handler = _FeedByDay({})
        source = CommunitySource(client=httpx.Client(transport=httpx.MockTransport(handler)))

        result = source.fetch_day("2025-01-15", lookback_days=1)

        assert result.papers == []
        assert result.feed_date == "2025-01-15"
        assert len(handler.requested) == 2

    def test_invalid_json(self) -> None:
        source = CommunitySource(
            client=httpx.Client(
                transport=httpx.MockTransport(lambda r: httpx.Response(200, content=b"<html>"))
            )
        )

        with pytest.raises(SourceError) as exc_info:
            source.fetch_for_date("2025-01-15")

        assert exc_info.value.error_class == SourceErrorClass.PARSE

    def test_payload_is_json(self) -> None:
        body = json.dumps([_entry("2501.00009", "Nine", 9)]).encode()
        source = CommunitySource(
            client=httpx.Client(
                transport=httpx.MockTransport(lambda r: httpx.Response(200, content=body))
            )
        )
        assert source.fetch_for_date("2025-01-15")[0].upvotes == 9
