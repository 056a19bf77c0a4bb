"""Tests for the /search endpoints."""


class TestSemanticSearchRoute:
    """Tests for GET /search."""

    def test_search(self, client, mock_search_service):
        """The query text and limit are forwarded."""
        response = client.get("/search", params={"query": "zaps", "limit": 3})

        assert response.status_code == 200
        assert response.json()["event_ids"] == ["e1", "e3"]
        request = mock_search_service.semantic_search.call_args.args[0]
        assert request.query == "zaps"
        assert request.limit == 3
        assert request.author is None

    def test_query_required(self, client):
        """GET /search needs a query."""
        assert client.get("/search").status_code == 422


class TestScoredSearchRoute:
    """Tests for POST /search/scored."""

    def test_scored_results(self, client, mock_search_service):
        """Scored search returns relevance and raw score per hit."""
        response = client.post(
            "/search/scored",
            json={"search": "bitcoin", "event_kinds": [1], "limit": 10},
        )

        assert response.status_code == 200
        assert response.json() == {
            "results": [{"event_id": "e1", "relevance_score": 0.87, "raw_score": 0.15}],
            "total_found": 1,
        }
        request = mock_search_service.semantic_search_with_scores.call_args.args[0]
        assert request.category_filter == 1

    def test_scored_validation(self, client):
        """Invalid bodies are rejected."""
        response = client.post("/search/scored", json={"limit": -1})

        assert response.status_code == 422

    def test_scored_failure(self, client, mock_search_service):
        """Backend failures surface as 500."""
        mock_search_service.semantic_search_with_scores.side_effect = RuntimeError("boom")

        assert client.post("/search/scored", json={}).status_code == 500
