"""Chunking engine: paragraph packing with word-aligned overlap."""
import bisect
import logging
import re
from typing import List, Optional, Tuple

from models.document import Document, ExtractedText
from models.chunk import Chunk
from config import CHUNK_SIZE, CHUNK_OVERLAP

logger = logging.getLogger(__name__)

Span = Tuple[int, int]


class ChunkingEngine:
    """Segments document text into overlapping chunks of bounded length."""

    PARAGRAPH_BREAK = re.compile(r"\n\s*\n")
    SENTENCE_BREAK = re.compile(r"(?<=[.!?])\s+(?=[A-Z])")
    LEGAL_SECTION = re.compile(
        r"\b(?:article|art\.|chapter|ch\.|section|sec\.|title)\s*\d+|§\s*\d+",
        re.IGNORECASE,
    )

    def __init__(self, chunk_size: int = CHUNK_SIZE, chunk_overlap: int = CHUNK_OVERLAP):
        """
        Initialize ChunkingEngine.

        Args:
            chunk_size: Maximum chunk length in characters
            chunk_overlap: Characters carried over from a sealed chunk into the next one

        Raises:
            ValueError: If the sizes are not 0 <= chunk_overlap < chunk_size
        """
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if chunk_overlap < 0 or chunk_overlap >= chunk_size:
            raise ValueError("chunk_overlap must be >= 0 and smaller than chunk_size")

        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap

    def chunk_document(self, document: Document, extracted: ExtractedText) -> List[Chunk]:
        """
        Chunk the extracted text of one document.

        Args:
            document: Owning document
            extracted: Text extracted from the document's file

        Returns:
            Ordered list of chunks with page numbers resolved from page offsets
        """
        logger.info(f"Chunking document: {document.filename}")
        chunks = self.chunk_text(
            text=extracted.text,
            document_id=document.id,
            document_name=document.filename,
            page_offsets=extracted.page_offsets,
        )
        logger.info(
            f"Created {len(chunks)} chunks from {document.filename}",
            extra={"document_id": document.id, "chunk_count": len(chunks)},
        )
        return chunks

    def chunk_text(
        self,
        text: str,
        document_id: str,
        document_name: Optional[str] = None,
        page_offsets: Optional[List[int]] = None,
    ) -> List[Chunk]:
        """
        Split text into chunks whose content is an exact slice of the input.

        Paragraphs (blank-line separated) are packed into a running buffer. When
        the next piece would push the buffer past chunk_size the buffer is sealed
        and the next one starts with the tail of the sealed chunk, aligned to a
        word start. Paragraphs longer than chunk_size are split into sentences
        first, and sentences still too long are cut into fixed windows.

        Args:
            text: Full document text
            document_id: Owning document id
            document_name: Optional filename copied onto each chunk
            page_offsets: Start offset of every page, ascending

        Returns:
            Ordered list of chunks (empty for blank input)
        """
        if not text or not text.strip():
            return []

        pieces: List[Span] = []
        for start, end in self._paragraph_spans(text):
            if end - start <= self.chunk_size:
                pieces.append((start, end))
            else:
                logger.debug(f"Splitting oversized paragraph at {start} ({end - start} chars)")
                pieces.extend(self._split_long_paragraph(text, start, end))

        chunks = []
        for index, (start, end) in enumerate(self._pack(text, pieces)):
            content = text[start:end]
            chunks.append(Chunk(
                document_id=document_id,
                index=index,
                content=content,
                char_start=start,
                char_end=end,
                page_number=self._page_for(start, page_offsets),
                metadata=self._build_metadata(content),
                document_name=document_name,
            ))
        return chunks

    def _paragraph_spans(self, text: str) -> List[Span]:
        """Return stripped paragraph spans, skipping blank ones."""
        spans = []
        position = 0
        for match in self.PARAGRAPH_BREAK.finditer(text):
            span = self._strip_span(text, position, match.start())
            if span:
                spans.append(span)
            position = match.end()
        span = self._strip_span(text, position, len(text))
        if span:
            spans.append(span)
        return spans

    def _split_long_paragraph(self, text: str, start: int, end: int) -> List[Span]:
        """Break a paragraph into pieces no longer than chunk_size."""
        pieces = []
        position = start
        boundaries = [m.start() for m in self.SENTENCE_BREAK.finditer(text, start, end)]
        for boundary in boundaries + [end]:
            sentence = self._strip_span(text, position, boundary)
            position = boundary
            if not sentence:
                continue
            if sentence[1] - sentence[0] <= self.chunk_size:
                pieces.append(sentence)
            else:
                pieces.extend(self._fixed_windows(text, *sentence))
        return pieces

    def _fixed_windows(self, text: str, start: int, end: int) -> List[Span]:
        """Cut a span into windows of chunk_size advancing by chunk_size - chunk_overlap."""
        step = self.chunk_size - self.chunk_overlap
        windows = []
        position = start
        while position < end:
            window_end = min(position + self.chunk_size, end)
            window = self._strip_span(text, position, window_end)
            if window:
                windows.append(window)
            if window_end >= end:
                break
            position += step
        return windows

    def _pack(self, text: str, pieces: List[Span]) -> List[Span]:
        """Greedily merge pieces into chunk spans, seeding each new chunk with overlap."""
        sealed: List[Span] = []
        buffer: Optional[Span] = None

        for piece_start, piece_end in pieces:
            if buffer is None:
                buffer = (piece_start, piece_end)
                continue

            if piece_end - buffer[0] <= self.chunk_size:
                buffer = (buffer[0], piece_end)
                continue

            sealed.append(buffer)
            seed = self._overlap_start(text, buffer, earliest=piece_end - self.chunk_size)
            buffer = (seed if seed is not None else piece_start, piece_end)

        if buffer is not None:
            sealed.append(buffer)
        return sealed

    def _overlap_start(self, text: str, span: Span, earliest: int = 0) -> Optional[int]:
        """
        Find where the overlap carried from a sealed chunk begins.

        The overlap covers at most the last chunk_overlap characters of the
        sealed chunk and always starts at the beginning of a word. When the
        next piece leaves less room, the overlap shrinks word by word so it
        starts no earlier than `earliest`; None means no word fits.
        """
        start, end = span
        if self.chunk_overlap == 0 or end - start <= self.chunk_overlap:
            return None

        position = max(end - self.chunk_overlap, earliest)
        while position < end:
            if not text[position].isspace() and (position == 0 or text[position - 1].isspace()):
                return position
            position += 1
        return None

    def _build_metadata(self, content: str) -> dict:
        return {
            "word_count": len(content.split()),
            "character_count": len(content),
            "contains_legal_section": bool(self.LEGAL_SECTION.search(content)),
        }

    @staticmethod
    def _strip_span(text: str, start: int, end: int) -> Optional[Span]:
        while start < end and text[start].isspace():
            start += 1
        while end > start and text[end - 1].isspace():
            end -= 1
        return (start, end) if start < end else None

    @staticmethod
    def _page_for(offset: int, page_offsets: Optional[List[int]]) -> Optional[int]:
        # Pages are 1-based
        if not page_offsets:
            return None
        return max(bisect.bisect_right(page_offsets, offset), 1)
