"""Unit tests for ChunkingEngine."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from services.chunking_engine import ChunkingEngine
from models.document import Document, ExtractedText


def _assert_covers_text(text, chunks):
    for position, character in enumerate(text):
        if character.isspace():
            continue
        assert any(c.char_start <= position < c.char_end for c in chunks), (
            f"character {position} ({character!r}) not covered"
        )


PARAGRAPHS = "\n\n".join(
    f"Paragraph {n} talks about topic {n} in some detail with several words." for n in range(12)
)


class TestChunkingEngine:
    """Test suite for ChunkingEngine."""

    @pytest.fixture
    def engine(self):
        return ChunkingEngine(chunk_size=200, chunk_overlap=50)

    def test_invalid_sizes(self):
        with pytest.raises(ValueError):
            ChunkingEngine(chunk_size=100, chunk_overlap=100)
        with pytest.raises(ValueError):
            ChunkingEngine(chunk_size=0, chunk_overlap=0)
        with pytest.raises(ValueError):
            ChunkingEngine(chunk_size=100, chunk_overlap=-1)

    def test_empty_and_blank_text(self, engine):
        assert engine.chunk_text("", "doc-1") == []
        assert engine.chunk_text("   \n\n \t ", "doc-1") == []

    def test_short_text_single_chunk(self, engine):
        text = "  A short document.  "
        chunks = engine.chunk_text(text, "doc-1", document_name="short.txt")

        assert len(chunks) == 1
        chunk = chunks[0]
        assert chunk.content == "A short document."
        assert (chunk.char_start, chunk.char_end) == (2, 19)
        assert chunk.index == 0
        assert chunk.document_id == "doc-1"
        assert chunk.document_name == "short.txt"
        assert chunk.embedding is None

    def test_small_paragraphs_are_packed_together(self, engine):
        text = "First paragraph.\n\nSecond paragraph."
        chunks = engine.chunk_text(text, "doc-1")

        assert len(chunks) == 1
        assert chunks[0].content == text

    def test_chunks_are_exact_slices_and_bounded(self, engine):
        chunks = engine.chunk_text(PARAGRAPHS, "doc-1")

        assert len(chunks) > 1
        for chunk in chunks:
            assert chunk.content == PARAGRAPHS[chunk.char_start:chunk.char_end]
            assert chunk.char_start < chunk.char_end
            assert len(chunk.content) <= engine.chunk_size

    def test_indices_contiguous_and_offsets_increasing(self, engine):
        chunks = engine.chunk_text(PARAGRAPHS, "doc-1")

        assert [c.index for c in chunks] == list(range(len(chunks)))
        for previous, current in zip(chunks, chunks[1:]):
            assert current.char_start > previous.char_start
            assert current.char_end > previous.char_end

    def test_every_character_is_covered(self, engine):
        chunks = engine.chunk_text(PARAGRAPHS, "doc-1")
        _assert_covers_text(PARAGRAPHS, chunks)

    def test_overlap_never_starts_mid_word(self, engine):
        chunks = engine.chunk_text(PARAGRAPHS, "doc-1")

        overlapping = [
            (prev, cur) for prev, cur in zip(chunks, chunks[1:]) if cur.char_start < prev.char_end
        ]
        assert overlapping, "expected at least one overlapping seam"
        for previous, current in overlapping:
            assert PARAGRAPHS[current.char_start - 1].isspace()
            assert previous.char_end - current.char_start <= engine.chunk_overlap

    def test_overlap_shrinks_to_fit_long_paragraphs(self):
        engine = ChunkingEngine(chunk_size=1000, chunk_overlap=200)
        paragraph = " ".join(["alpha"] * 150)
        text = paragraph + "\n\n" + paragraph

        chunks = engine.chunk_text(text, "doc-1")

        assert len(paragraph) == 899
        assert len(chunks) == 2
        first, second = chunks
        assert second.char_start < first.char_end
        assert text[second.char_start - 1].isspace()
        assert first.char_end - second.char_start <= engine.chunk_overlap
        assert second.char_end == len(text)
        assert len(second.content) <= engine.chunk_size
        assert (second.char_start, second.char_end) == (804, 1800)

    def test_oversized_paragraph_split_on_sentences(self):
        engine = ChunkingEngine(chunk_size=60, chunk_overlap=10)
        text = "First sentence is here. Second sentence is here. Third sentence is here."

        chunks = engine.chunk_text(text, "doc-1")

        assert [c.content for c in chunks] == [
            "First sentence is here. Second sentence is here.",
            "is here. Third sentence is here.",
        ]
        _assert_covers_text(text, chunks)

    def test_oversized_sentence_split_into_fixed_windows(self):
        engine = ChunkingEngine(chunk_size=100, chunk_overlap=20)
        text = "x" * 250

        chunks = engine.chunk_text(text, "doc-1")

        assert [(c.char_start, c.char_end) for c in chunks] == [(0, 100), (80, 180), (160, 250)]
        _assert_covers_text(text, chunks)

    def test_zero_overlap(self):
        engine = ChunkingEngine(chunk_size=40, chunk_overlap=0)
        text = "One short paragraph here.\n\nAnother short paragraph.\n\nA third one."

        chunks = engine.chunk_text(text, "doc-1")

        for previous, current in zip(chunks, chunks[1:]):
            assert current.char_start >= previous.char_end
        _assert_covers_text(text, chunks)

    def test_metadata(self, engine):
        chunks = engine.chunk_text("Article 15 establishes a deadline of thirty days.", "doc-1")

        metadata = chunks[0].metadata
        assert metadata["word_count"] == 8
        assert metadata["character_count"] == len(chunks[0].content)
        assert metadata["contains_legal_section"] is True

    def test_legal_section_detection(self, engine):
        assert engine.chunk_text("See § 3 of the act.", "d")[0].metadata["contains_legal_section"]
        assert engine.chunk_text("Chapter 2: Definitions", "d")[0].metadata["contains_legal_section"]
        assert not engine.chunk_text("Plain prose without references.", "d")[0].metadata["contains_legal_section"]

    def test_page_numbers_from_offsets(self):
        engine = ChunkingEngine(chunk_size=20, chunk_overlap=5)
        text = "Page one text.\n\nPage two text."

        chunks = engine.chunk_text(text, "doc-1", page_offsets=[0, 16])

        assert [(c.content, c.page_number) for c in chunks] == [
            ("Page one text.", 1),
            ("Page two text.", 2),
        ]

    def test_page_number_absent_without_offsets(self, engine):
        assert engine.chunk_text("Some text.", "doc-1")[0].page_number is None

    def test_chunk_document(self, engine):
        document = Document(filename="guide.md")
        extracted = ExtractedText(text=PARAGRAPHS, page_count=1, page_offsets=[0])

        chunks = engine.chunk_document(document, extracted)

        assert chunks
        assert all(c.document_id == document.id for c in chunks)
        assert all(c.document_name == "guide.md" for c in chunks)
        assert all(c.page_number == 1 for c in chunks)
