"""Builds the bounded retrieval context passed to the language model."""
import logging
import re
from dataclasses import dataclass
from typing import List, Optional

from models.chunk import RetrievedMatch
from config import MAX_CONTEXT_LENGTH

logger = logging.getLogger(__name__)

NO_CONTEXT = "No context available."
FRAGMENT_SEPARATOR = "\n---\n"

_WHITESPACE = re.compile(r"\s+")
_FRAGMENT_HEADER = re.compile(r"^FRAGMENT \d+:", re.MULTILINE)


@dataclass(frozen=True)
class ContextMetadata:
    """Size statistics of an assembled context."""
    character_count: int
    word_count: int
    fragment_count: int
    information_density: float  # words per fragment


class ContextBuilder:
    """Renders retrieved matches as numbered fragments within a character budget."""

    def __init__(self, max_context_length: int = MAX_CONTEXT_LENGTH):
        if max_context_length <= 0:
            raise ValueError("max_context_length must be positive")
        self.max_context_length = max_context_length

    def build_context(self, matches: List[RetrievedMatch]) -> str:
        """
        Assemble matches into one context block.

        Fragments are appended in the given order and the first fragment that
        would push the total past the budget is dropped together with all the
        ones after it. A fragment is never cut in half.

        Args:
            matches: Ranked matches

        Returns:
            The context, or NO_CONTEXT when there is nothing that fits
        """
        if not matches:
            return NO_CONTEXT

        context = self._pack([self._render_fragment(n, m) for n, m in enumerate(matches, start=1)],
                             self.max_context_length)
        if context is None:
            logger.warning("First fragment exceeds the context budget; returning empty context")
            return NO_CONTEXT

        logger.debug(f"Built context of {len(context)} characters from {len(matches)} matches")
        return context

    def build_context_with_similarity(self, matches: List[RetrievedMatch], min_similarity: float) -> str:
        """Build context from the matches whose similarity is at least min_similarity."""
        kept = [m for m in matches if m.similarity >= min_similarity]
        logger.debug(f"Similarity >= {min_similarity}: {len(matches)} -> {len(kept)} matches")
        return self.build_context(kept)

    def build_context_with_max_chunks(self, matches: List[RetrievedMatch], max_chunks: int) -> str:
        """Build context from at most the first max_chunks matches."""
        kept = matches[:max(max_chunks, 0)]
        logger.debug(f"Limiting to {max_chunks} chunks: {len(matches)} -> {len(kept)} matches")
        return self.build_context(kept)

    def summarize_context(self, context: str, max_length: int) -> str:
        """
        Shrink an already built context to max_length by dropping whole fragments.

        Args:
            context: Output of build_context
            max_length: New budget, normally below max_context_length

        Returns:
            The shortened context, or NO_CONTEXT when no fragment fits
        """
        if not context or len(context) <= max_length:
            return context

        logger.info(f"Summarizing context from {len(context)} to at most {max_length} characters")
        summary = self._pack(context.split(FRAGMENT_SEPARATOR), max_length)
        return summary if summary is not None else NO_CONTEXT

    def analyze_context(self, context: str) -> ContextMetadata:
        if not context or context == NO_CONTEXT:
            return ContextMetadata(0, 0, 0, 0.0)

        word_count = len(context.split())
        fragment_count = len(_FRAGMENT_HEADER.findall(context))
        density = word_count / fragment_count if fragment_count else 0.0
        return ContextMetadata(len(context), word_count, fragment_count, density)

    @staticmethod
    def _pack(fragments: List[str], budget: int) -> Optional[str]:
        kept: List[str] = []
        length = 0
        for fragment in fragments:
            added = len(fragment) + (len(FRAGMENT_SEPARATOR) if kept else 0)
            if length + added > budget:
                break
            kept.append(fragment)
            length += added
        return FRAGMENT_SEPARATOR.join(kept) if kept else None

    @staticmethod
    def _render_fragment(number: int, match: RetrievedMatch) -> str:
        chunk = match.chunk
        lines = [
            f"FRAGMENT {number}:",
            f"Source: {chunk.document_name or chunk.document_id}",
        ]
        if chunk.page_number is not None:
            lines.append(f"Page: {chunk.page_number}")
        lines.append(f"Similarity: {match.similarity:.2f}")
        lines.append("")
        lines.append("Content:")
        lines.append(_WHITESPACE.sub(" ", chunk.content).strip())
        return "\n".join(lines) + "\n"
