"""Text extraction from uploaded PDF, plain-text and markdown files."""
import logging
import os
from typing import List

import fitz  # PyMuPDF

from models.document import ExtractedText

logger = logging.getLogger(__name__)

PAGE_SEPARATOR = "\n\n"


class DocumentProcessingError(Exception):
    """A document could not be validated, extracted or processed."""


class TextExtractor:
    """Extracts text from raw file bytes."""

    SUPPORTED_EXTENSIONS = (".pdf", ".txt", ".md")

    def is_supported(self, filename: str) -> bool:
        return os.path.splitext(filename or "")[1].lower() in self.SUPPORTED_EXTENSIONS

    def validate(self, raw_bytes: bytes, filename: str) -> bool:
        """
        Check that the file is a supported type and yields readable text.

        Returns:
            True if extract() would succeed
        """
        if not raw_bytes or not self.is_supported(filename):
            return False
        try:
            extracted = self.extract(raw_bytes, filename)
        except DocumentProcessingError as e:
            logger.warning(f"Validation failed for {filename}: {e}")
            return False
        return bool(extracted.text.strip())

    def extract(self, raw_bytes: bytes, filename: str) -> ExtractedText:
        """
        Extract text from a file.

        PDF pages are joined with blank lines, so every page boundary is also
        a paragraph boundary for the chunker.

        Args:
            raw_bytes: File contents
            filename: Original filename, used to pick the format

        Returns:
            ExtractedText with text, page count, metadata and page offsets

        Raises:
            DocumentProcessingError: If the format is unsupported or the file is unreadable
        """
        if not raw_bytes:
            raise DocumentProcessingError(f"File is empty: {filename}")

        extension = os.path.splitext(filename or "")[1].lower()
        if extension == ".pdf":
            return self._extract_pdf(raw_bytes, filename)
        if extension in (".txt", ".md"):
            return self._extract_text(raw_bytes, filename, extension)
        raise DocumentProcessingError(
            f"Unsupported file type '{extension or filename}'. Supported: {', '.join(self.SUPPORTED_EXTENSIONS)}"
        )

    def _extract_pdf(self, raw_bytes: bytes, filename: str) -> ExtractedText:
        try:
            pdf_document = fitz.open(stream=raw_bytes, filetype="pdf")
        except Exception as e:
            raise DocumentProcessingError(f"Could not open PDF {filename}: {str(e)}") from e

        try:
            page_texts: List[str] = [page.get_text().strip() for page in pdf_document]
            metadata = {k: v for k, v in (pdf_document.metadata or {}).items() if v}
        finally:
            pdf_document.close()

        offsets = []
        parts = []
        position = 0
        for text in page_texts:
            offsets.append(position)
            parts.append(text)
            position += len(text) + len(PAGE_SEPARATOR)

        full_text = PAGE_SEPARATOR.join(parts)
        logger.info(f"Extracted {len(full_text)} characters from {len(page_texts)} pages of {filename}")

        return ExtractedText(
            text=full_text,
            page_count=len(page_texts),
            metadata={**metadata, "format": "pdf"},
            page_offsets=offsets,
        )

    @staticmethod
    def _extract_text(raw_bytes: bytes, filename: str, extension: str) -> ExtractedText:
        text = raw_bytes.decode("utf-8", errors="replace")
        logger.info(f"Extracted {len(text)} characters from {filename}")
        return ExtractedText(
            text=text,
            page_count=1,
            metadata={"format": "markdown" if extension == ".md" else "text"},
            page_offsets=[0],
        )
