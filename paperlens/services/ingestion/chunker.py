"""Text chunking with overlapping windows and paragraph boundary preservation.

Splits cleaned per-page text into :class:`~paperlens.models.document.TextChunk`
objects sized for embedding and retrieval (~1000 tokens each with up to
200 tokens of overlap by default).

The chunking strategy has two goals:

1. **Paragraph-preserving** -- Chunk boundaries fall on blank lines, so no
   chunk starts or ends mid-paragraph and each embedding covers whole
   thoughts.

2. **Overlapping windows** -- A new chunk is seeded with the trailing
   paragraphs of the chunk just closed (as many as fit in the overlap
   budget), so an argument spanning a boundary is retrievable from at
   least one chunk.

A chunk is closed when adding the next paragraph would take it more than
10% over the target size.  A single paragraph larger than that becomes a
chunk of its own rather than being cut.
"""

from __future__ import annotations

import re
import uuid
from collections.abc import Sequence
from typing import NamedTuple

import structlog

from paperlens.models.document import TextChunk
from paperlens.utils.tokens import estimate_tokens

logger = structlog.get_logger(logger_name=__name__)


class _Paragraph(NamedTuple):
    text: str
    tokens: int
    page: int


class TextChunker:
    """Splits page text into overlapping chunks preserving paragraph boundaries.

    The algorithm works in two phases:
    1. Split each page into paragraphs (blank-line boundaries)
    2. Accumulate paragraphs in document order until the next one would
       overflow the tolerance, then start a new chunk with overlap from the
       tail of the previous one

    Parameters
    ----------
    chunk_size:
        Target token count per chunk (default 1000).  Chunks close once the
        next paragraph would exceed ``chunk_size + chunk_size // 10``.
    overlap:
        Token budget for paragraphs carried into the next chunk (default 200).
    """

    def __init__(self, chunk_size: int = 1000, overlap: int = 200) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if overlap < 0:
            raise ValueError("overlap must not be negative")
        self._chunk_size = chunk_size
        self._overlap = overlap
        self._limit = chunk_size + chunk_size // 10

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    @property
    def overlap(self) -> int:
        return self._overlap

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def chunk(self, pages: Sequence[tuple[int, str]]) -> list[TextChunk]:
        """Split cleaned page text into overlapping :class:`TextChunk` objects.

        Parameters
        ----------
        pages:
            ``(page_index, cleaned_text)`` pairs in document order, as
            produced by ``DocumentExtractor.iter_pages``.

        Returns
        -------
        list[TextChunk]
            Chunks in document order.  Empty input returns an empty list.
        """
        chunks: list[TextChunk] = []
        current: list[_Paragraph] = []
        current_tokens = 0
        carried = 0

        for page_index, text in pages:
            for para_text in self._split_paragraphs(text):
                para = _Paragraph(para_text, estimate_tokens(para_text), page_index)

                if current and current_tokens + para.tokens > self._limit:
                    chunks.append(self._build_chunk(current, carried))
                    current, current_tokens = self._build_overlap(current)
                    carried = len(current)

                current.append(para)
                current_tokens += para.tokens

        if current and len(current) > carried:
            chunks.append(self._build_chunk(current, carried))

        logger.debug(
            "chunking_complete",
            num_chunks=len(chunks),
            num_pages=len(pages),
            avg_tokens=self._avg_tokens(chunks),
        )
        return chunks

    def chunk_text(self, text: str, page_index: int = 0) -> list[TextChunk]:
        """Chunk a single block of text attributed to one page."""
        if not text or not text.strip():
            return []
        return self.chunk([(page_index, text)])

    # ------------------------------------------------------------------
    # Paragraph splitting
    # ------------------------------------------------------------------

    @staticmethod
    def _split_paragraphs(text: str) -> list[str]:
        """Split *text* on blank lines, discarding blanks."""
        parts = re.split(r"\n\s*\n", text)
        return [p.strip() for p in parts if p.strip()]

    # ------------------------------------------------------------------
    # Chunk accumulation
    # ------------------------------------------------------------------

    def _build_chunk(self, parts: list[_Paragraph], carried: int) -> TextChunk:
        text = "\n\n".join(p.text for p in parts)
        return TextChunk(
            chunk_id=str(uuid.uuid4()),
            text=text,
            page_start=parts[0].page,
            page_end=parts[-1].page + 1,
            overlap_paragraphs=carried,
            token_count=estimate_tokens(text),
        )

    def _build_overlap(self, parts: list[_Paragraph]) -> tuple[list[_Paragraph], int]:
        """Return tail paragraphs from *parts* whose combined tokens <= *overlap*."""
        overlap_parts: list[_Paragraph] = []
        overlap_tokens = 0
        for para in reversed(parts):
            if overlap_tokens + para.tokens > self._overlap:
                break
            overlap_parts.insert(0, para)
            overlap_tokens += para.tokens
        return overlap_parts, overlap_tokens

    @staticmethod
    def _avg_tokens(chunks: list[TextChunk]) -> int:
        if not chunks:
            return 0
        return sum(c.token_count for c in chunks) // len(chunks)
