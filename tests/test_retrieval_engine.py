"""Unit tests for RetrievalEngine."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import numpy as np
import pytest
from unittest.mock import Mock
from services.retrieval_engine import RetrievalEngine, cosine_similarity
from models.chunk import Chunk


def _chunk(index, vector, content=None):
    return Chunk(
        document_id="doc-1",
        index=index,
        content=content or f"chunk {index}",
        char_start=index * 10,
        char_end=index * 10 + 9,
        embedding=np.asarray(vector, dtype=np.float32),
        document_name="doc1.pdf",
    )


class TestCosineSimilarity:
    """Test suite for cosine_similarity."""

    def test_identical_vectors(self):
        assert cosine_similarity([1.0, 2.0, 3.0], [1.0, 2.0, 3.0]) == pytest.approx(1.0)

    def test_orthogonal_vectors(self):
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)

    def test_opposite_vectors(self):
        assert cosine_similarity([1.0, 0.0], [-1.0, 0.0]) == pytest.approx(-1.0)

    def test_scale_invariant(self):
        assert cosine_similarity([1.0, 1.0], [5.0, 5.0]) == pytest.approx(1.0)

    def test_zero_vector_scores_zero(self):
        assert cosine_similarity([0.0, 0.0], [1.0, 1.0]) == 0.0

    def test_dimension_mismatch(self):
        with pytest.raises(ValueError, match="dimensions differ"):
            cosine_similarity([1.0, 0.0], [1.0, 0.0, 0.0])


class TestRetrievalEngine:
    """Test suite for RetrievalEngine class."""

    @pytest.fixture
    def mock_vector_store(self):
        """Create a mock vector store."""
        return Mock()

    @pytest.fixture
    def mock_indexer(self):
        """Create a mock EmbeddingIndexer."""
        indexer = Mock()
        indexer.embed_query.return_value = np.array([1.0, 0.0], dtype=np.float32)
        return indexer

    @pytest.fixture
    def retrieval_engine(self, mock_vector_store, mock_indexer):
        return RetrievalEngine(mock_vector_store, mock_indexer)

    def test_retrieve_empty_query(self, retrieval_engine, mock_indexer):
        """Blank queries return nothing without calling the provider."""
        assert retrieval_engine.retrieve("") == []
        assert retrieval_engine.retrieve("   ") == []
        mock_indexer.embed_query.assert_not_called()

    def test_retrieve_non_positive_limit(self, retrieval_engine, mock_indexer):
        assert retrieval_engine.retrieve("query", max_results=0) == []
        mock_indexer.embed_query.assert_not_called()

    def test_retrieve_no_indexed_chunks(self, retrieval_engine, mock_vector_store, mock_indexer):
        mock_vector_store.find_chunks_with_embedding.return_value = []

        assert retrieval_engine.retrieve("query") == []
        mock_indexer.embed_query.assert_not_called()

    def test_retrieve_sorted_descending(self, retrieval_engine, mock_vector_store):
        mock_vector_store.find_chunks_with_embedding.return_value = [
            _chunk(0, [0.6, 0.8]),   # 0.6
            _chunk(1, [1.0, 0.0]),   # 1.0
            _chunk(2, [0.8, 0.6]),   # 0.8
        ]

        matches = retrieval_engine.retrieve("query", similarity_threshold=0.0, max_results=5)

        assert [m.chunk.index for m in matches] == [1, 2, 0]
        assert [m.similarity for m in matches] == pytest.approx([1.0, 0.8, 0.6])

    def test_threshold_is_exclusive(self, retrieval_engine, mock_vector_store):
        mock_vector_store.find_chunks_with_embedding.return_value = [
            _chunk(0, [0.6, 0.8]),   # 0.6
            _chunk(1, [0.8, 0.6]),   # 0.8
        ]

        matches = retrieval_engine.retrieve("query", similarity_threshold=0.7)
        assert [m.chunk.index for m in matches] == [1]

        # A perfect match scored exactly at the threshold is excluded
        mock_vector_store.find_chunks_with_embedding.return_value = [_chunk(2, [2.0, 0.0])]
        assert retrieval_engine.retrieve("query", similarity_threshold=1.0) == []

    def test_max_results_caps_matches(self, retrieval_engine, mock_vector_store):
        mock_vector_store.find_chunks_with_embedding.return_value = [
            _chunk(i, [1.0, 0.1 * i]) for i in range(6)
        ]

        matches = retrieval_engine.retrieve("query", similarity_threshold=0.0, max_results=2)

        assert len(matches) == 2
        assert [m.chunk.index for m in matches] == [0, 1]

    def test_ties_keep_storage_order(self, retrieval_engine, mock_vector_store):
        mock_vector_store.find_chunks_with_embedding.return_value = [
            _chunk(0, [0.5, 0.5]),
            _chunk(1, [1.0, 0.0]),
            _chunk(2, [0.5, 0.5]),
        ]

        matches = retrieval_engine.retrieve("query", similarity_threshold=0.0)

        assert [m.chunk.index for m in matches] == [1, 0, 2]

    def test_negative_similarity_excluded_by_default_threshold(self, retrieval_engine, mock_vector_store):
        mock_vector_store.find_chunks_with_embedding.return_value = [_chunk(0, [-1.0, 0.0])]

        assert retrieval_engine.retrieve("query") == []

    def test_dimension_mismatch_propagates(self, retrieval_engine, mock_vector_store):
        mock_vector_store.find_chunks_with_embedding.return_value = [_chunk(0, [1.0, 0.0, 0.0])]

        with pytest.raises(ValueError):
            retrieval_engine.retrieve("query", similarity_threshold=0.0)

    def test_provider_failure_propagates(self, retrieval_engine, mock_vector_store, mock_indexer):
        mock_vector_store.find_chunks_with_embedding.return_value = [_chunk(0, [1.0, 0.0])]
        mock_indexer.embed_query.side_effect = RuntimeError("provider down")

        with pytest.raises(RuntimeError, match="provider down"):
            retrieval_engine.retrieve("query")
