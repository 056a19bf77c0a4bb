"""Tests for search request and response models."""

import pytest
from pydantic import ValidationError

from event_search.vectorstore.schemas import (
    ScoredResult,
    ScoredSearchResponse,
    SearchRequest,
    SearchResponse,
)


class TestSearchRequest:
    """Tests for SearchRequest parsing."""

    def test_defaults(self):
        """Every field is optional; the query defaults to empty text."""
        request = SearchRequest()

        assert request.query == ""
        assert request.limit is None
        assert request.category_filter is None

    def test_wire_aliases(self):
        """Requests accept the search / event_kinds wire names."""
        request = SearchRequest.model_validate(
            {"search": "zaps", "event_kinds": [7, 1], "author": "npub_bob"}
        )

        assert request.query == "zaps"
        assert request.categories == [7, 1]
        assert request.author == "npub_bob"

    def test_first_category_only(self):
        """Only the first category is used as a filter."""
        assert SearchRequest(categories=[30023, 1]).category_filter == 30023

    def test_numeric_string_limit(self):
        """Query-string limits arrive as text and are parsed."""
        assert SearchRequest.model_validate({"limit": "25"}).limit == 25

    def test_limit_bounds(self):
        """Limits must be positive."""
        with pytest.raises(ValidationError):
            SearchRequest(limit=0)

    def test_time_range_checked(self):
        """An inverted time range is rejected."""
        with pytest.raises(ValidationError):
            SearchRequest(min_created_at=200, max_created_at=100)

    def test_language_accepted(self):
        """The language hint is accepted but has no effect."""
        assert SearchRequest.model_validate({"language": "en"}).language == "en"


class TestSearchResponses:
    """Tests for response models."""

    def test_empty_response(self):
        """The empty response has no ids and a zero count."""
        assert SearchResponse.empty().model_dump() == {"event_ids": [], "total_found": 0}

    def test_scored_to_plain(self):
        """Dropping scores keeps order and count."""
        scored = ScoredSearchResponse(
            results=[
                ScoredResult(event_id="a", relevance_score=0.9, raw_score=0.11),
                ScoredResult(event_id="b", relevance_score=0.6, raw_score=0.66),
            ],
            total_found=2,
        )

        assert scored.to_response() == SearchResponse(event_ids=["a", "b"], total_found=2)

    def test_relevance_range_enforced(self):
        """Relevance outside [0, 1] is invalid."""
        with pytest.raises(ValidationError):
            ScoredResult(event_id="a", relevance_score=1.2, raw_score=0.0)
