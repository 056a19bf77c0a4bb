"""Tests for vector store data types and relevance scoring."""

import json

import pytest

from event_search.vectorstore.base import (
    EmbeddedItem,
    ScoreKind,
    VectorSearchFilter,
    compute_relevance,
    split_repeated_ids,
)
from event_search.vectorstore.lancedb_store import LanceDBStore
from event_search.vectorstore.qdrant_store import QdrantStore
from event_search.vectorstore.errors import (
    DimensionMismatchError,
    DuplicateItemError,
    ErrorVocabulary,
)


class TestComputeRelevance:
    """Tests for score normalization."""

    def test_zero_distance_is_fully_relevant(self):
        """Distance 0 maps to relevance 1."""
        assert compute_relevance(0.0, ScoreKind.DISTANCE) == 1.0

    def test_distance_maps_through_reciprocal(self):
        """Distance d maps to 1 / (1 + d)."""
        assert compute_relevance(1.0, ScoreKind.DISTANCE) == pytest.approx(0.5)
        assert compute_relevance(3.0, ScoreKind.DISTANCE) == pytest.approx(0.25)

    def test_large_distance_approaches_zero(self):
        """Very distant hits stay within [0, 1]."""
        relevance = compute_relevance(1e9, ScoreKind.DISTANCE)
        assert 0.0 <= relevance < 1e-6

    def test_similarity_used_directly(self):
        """Native similarities are not transformed."""
        assert compute_relevance(0.73, ScoreKind.SIMILARITY) == pytest.approx(0.73)

    def test_similarity_clamped(self):
        """Out-of-range similarities are clamped to [0, 1]."""
        assert compute_relevance(-0.2, ScoreKind.SIMILARITY) == 0.0
        assert compute_relevance(1.0000002, ScoreKind.SIMILARITY) == 1.0


class TestEmbeddedItem:
    """Tests for EmbeddedItem construction."""

    def test_from_content_copies_fields(self, sample_item):
        """Identity and metadata come from the ContentItem."""
        item = EmbeddedItem.from_content(sample_item, [0.1, 0.2, 0.3, 0.4], dimension=4)

        assert item.id == "e1"
        assert item.author == sample_item.author
        assert item.created_at == sample_item.created_at
        assert item.category == sample_item.category
        assert item.embedding == [0.1, 0.2, 0.3, 0.4]

    def test_tags_serialized_as_json(self, item_factory):
        """Tags are stored as one JSON string and decode back."""
        content = item_factory("e1", tags=[["p", "abc"], ["t", "bitcoin"]])
        item = EmbeddedItem.from_content(content, [0.0] * 4, dimension=4)

        assert json.loads(item.tags) == [["p", "abc"], ["t", "bitcoin"]]
        assert item.decoded_tags() == [["p", "abc"], ["t", "bitcoin"]]

    def test_dimension_mismatch_rejected(self, sample_item):
        """A vector of the wrong length cannot become an EmbeddedItem."""
        with pytest.raises(DimensionMismatchError) as exc_info:
            EmbeddedItem.from_content(sample_item, [0.1, 0.2], dimension=4)

        assert exc_info.value.expected == 4
        assert exc_info.value.actual == 2
        assert exc_info.value.item_id == "e1"

    def test_payload_excludes_embedding(self, sample_item):
        """Payload holds the persisted metadata columns only."""
        item = EmbeddedItem.from_content(sample_item, [0.0] * 4, dimension=4)

        assert set(item.payload()) == {"id", "author", "created_at", "category", "tags"}


class TestVectorSearchFilter:
    """Tests for VectorSearchFilter."""

    def test_empty_filter(self):
        """Filter with no fields set is empty."""
        assert VectorSearchFilter().is_empty

    def test_non_empty_filter(self):
        """Any field makes the filter non-empty."""
        assert not VectorSearchFilter(category=1).is_empty

    def test_inverted_time_range_rejected(self):
        """min_created_at above max_created_at is invalid."""
        with pytest.raises(ValueError, match="must not exceed"):
            VectorSearchFilter(min_created_at=200, max_created_at=100)


class TestErrorVocabulary:
    """Tests for backend error classification."""

    def test_duplicate_error_instance_matches(self):
        """DuplicateItemError is always a duplicate."""
        assert ErrorVocabulary().is_duplicate(DuplicateItemError(["e1"]))

    def test_duplicate_message_contains_already_exists(self):
        """The duplicate message uses the shared 'already exists' phrase."""
        assert "already exists" in str(DuplicateItemError(["e1", "e2"]))

    def test_matching_is_case_insensitive(self):
        """Backend messages are matched regardless of case."""
        vocabulary = ErrorVocabulary(missing_store=(("table", "not found"),))

        assert vocabulary.is_missing_store(RuntimeError("Table 'events' was NOT FOUND"))

    def test_all_fragments_must_appear(self):
        """A pattern only matches when every fragment is present."""
        vocabulary = ErrorVocabulary(missing_store=(("collection", "not found"),))

        assert not vocabulary.is_missing_store(RuntimeError("point not found"))

    def test_unrelated_error_matches_nothing(self):
        """Generic failures are not reclassified."""
        vocabulary = ErrorVocabulary(
            missing_store=(("table", "not found"),),
            insufficient_rows=(("kmeans",),),
            already_indexed=(("index already exists",),),
        )
        error = ConnectionError("connection reset by peer")

        assert not vocabulary.is_duplicate(error)
        assert not vocabulary.is_missing_store(error)
        assert not vocabulary.is_no_data(error)
        assert not vocabulary.is_insufficient_rows(error)
        assert not vocabulary.is_already_indexed(error)

    def test_empty_in_message_is_not_no_data(self):
        """Only backend-specific phrases mark a search as having no data."""
        error = ValueError("query vector must not be empty")

        assert not ErrorVocabulary().is_no_data(error)
        assert not LanceDBStore.error_vocabulary.is_no_data(error)
        assert not QdrantStore.error_vocabulary.is_no_data(error)

    def test_backend_no_data_phrases(self):
        """Each backend recognizes its own empty-store wording."""
        assert LanceDBStore.error_vocabulary.is_no_data(RuntimeError("Table events is empty"))
        assert QdrantStore.error_vocabulary.is_no_data(RuntimeError("Collection is empty"))


class TestSplitRepeatedIds:
    """Tests for in-batch id deduplication."""

    def test_first_occurrence_kept(self, item_factory):
        """Repeats are dropped in favor of the first item with that id."""
        first = EmbeddedItem.from_content(item_factory("e1", "a"), [1.0] * 4, dimension=4)
        other = EmbeddedItem.from_content(item_factory("e2", "b"), [2.0] * 4, dimension=4)
        repeat = EmbeddedItem.from_content(item_factory("e1", "c"), [3.0] * 4, dimension=4)

        unique, repeated = split_repeated_ids([first, other, repeat, repeat])

        assert unique == [first, other]
        assert repeated == ["e1", "e1"]

    def test_no_repeats(self, embedded_items):
        """A batch of distinct ids is returned unchanged."""
        unique, repeated = split_repeated_ids(embedded_items)

        assert unique == embedded_items
        assert repeated == []
