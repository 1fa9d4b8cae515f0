"""Document, chunk and context data models.

Defines Pydantic v2 models for the retrieval side of PaperLens: the result
of an extraction call, the chunks held by the retriever's in-memory index,
ranked retrieval candidates, ingestion progress snapshots, and the context
block assembled for one chat turn.  All models use frozen config so that a
result handed to a caller can never be mutated behind the index's back.

Page indices are zero-based throughout; spans are half-open
(``page_start`` inclusive, ``page_end`` exclusive) like Python ranges.
Human-facing labels ("--- Page 3 ---") are one-based.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------
class ExtractionResult(BaseModel):
    """Text extracted from a document along with what it covers.

    Produced fresh by every :class:`~paperlens.services.extraction.extractor.DocumentExtractor`
    call.  ``text`` is a sequence of ``--- Page N ---`` blocks joined by a
    blank line.
    """

    model_config = ConfigDict(frozen=True)

    text: str = Field(default="", description="Cleaned page text with page-boundary markers.")
    total_page_count: int = Field(ge=0, description="Page count of the whole document.")
    page_start: int = Field(default=0, ge=0, description="First covered page index (inclusive).")
    page_end: int = Field(default=0, ge=0, description="Last covered page index (exclusive).")
    estimated_tokens: int = Field(default=0, ge=0, description="Token estimate of ``text``.")

    @property
    def covered_pages(self) -> range:
        return range(self.page_start, self.page_end)

    @property
    def is_empty(self) -> bool:
        return not self.text


class DocumentInfo(BaseModel):
    """Summary metadata for an opened document."""

    model_config = ConfigDict(frozen=True)

    document_id: str = Field(description="Stable identity of the document (path or content hash).")
    page_count: int = Field(ge=0)
    title: str | None = Field(default=None)
    author: str | None = Field(default=None)
    subject: str | None = Field(default=None)
    keywords: str | None = Field(default=None)
    estimated_tokens: int = Field(
        default=0, ge=0, description="Token estimate of the full cleaned text."
    )


# ---------------------------------------------------------------------------
# Chunks and retrieval
# ---------------------------------------------------------------------------
class TextChunk(BaseModel):
    """A paragraph-aligned span of document text; the unit of retrieval.

    ``overlap_paragraphs`` counts the leading paragraphs carried over from
    the previous chunk.  Dropping them from every chunk and concatenating
    what remains gives back the document's paragraph sequence exactly once.
    """

    model_config = ConfigDict(frozen=True)

    chunk_id: str = Field(description="Unique identifier (UUID) for this chunk.")
    text: str = Field(description="Paragraphs joined by blank lines.")
    page_start: int = Field(ge=0, description="Page index the chunk was opened on (inclusive).")
    page_end: int = Field(ge=0, description="Page index after the one the chunk closed on.")
    overlap_paragraphs: int = Field(
        default=0, ge=0, description="Leading paragraphs duplicated from the previous chunk."
    )
    token_count: int = Field(default=0, ge=0, description="Estimated token count of ``text``.")

    @property
    def page_span(self) -> range:
        return range(self.page_start, self.page_end)

    @property
    def page_label(self) -> str:
        """One-based label used when the chunk is quoted in a prompt."""
        return f"--- Page {self.page_start + 1}-{self.page_end} ---"


class RetrievalMethod(str, Enum):  # noqa: UP042 — StrEnum requires Python 3.11+
    """How a candidate was scored; scores from different methods never mix."""

    VECTOR = "VECTOR"    # cosine similarity, [-1, 1]
    KEYWORD = "KEYWORD"  # raw substring match count, >= 0


class RetrievalCandidate(BaseModel):
    """A chunk paired with its retrieval score."""

    model_config = ConfigDict(frozen=True)

    chunk: TextChunk
    score: float = Field(description="Cosine similarity or keyword match count.")
    method: RetrievalMethod = Field(description="Scoring path that produced ``score``.")


# ---------------------------------------------------------------------------
# Ingestion progress
# ---------------------------------------------------------------------------
class IngestionPhase(str, Enum):  # noqa: UP042 — StrEnum requires Python 3.11+
    """Phases of document ingestion.

    EXTRACTING covers fractions 0.0-0.5 and EMBEDDING 0.5-1.0; COMPLETE is
    reported once at 1.0.
    """

    EXTRACTING = "EXTRACTING"
    EMBEDDING = "EMBEDDING"
    COMPLETE = "COMPLETE"


class IngestionProgress(BaseModel):
    """A single ``{phase, fraction}`` progress update."""

    model_config = ConfigDict(frozen=True)

    phase: IngestionPhase
    fraction: float = Field(ge=0.0, le=1.0)


# ---------------------------------------------------------------------------
# Context assembly
# ---------------------------------------------------------------------------
class PageRangeOption(str, Enum):  # noqa: UP042 — StrEnum requires Python 3.11+
    """Which part of the document a chat turn should draw context from."""

    ALL = "all"
    CURRENT_PAGE = "current"
    CUSTOM = "custom"


class ContextSource(str, Enum):  # noqa: UP042 — StrEnum requires Python 3.11+
    """Which branch of the context priority policy produced a context."""

    CURRENT_PAGE = "CURRENT_PAGE"
    CUSTOM_RANGE = "CUSTOM_RANGE"
    SELECTION = "SELECTION"
    RETRIEVAL = "RETRIEVAL"
    BUDGETED = "BUDGETED"
    EMPTY = "EMPTY"


class AssembledContext(BaseModel):
    """The document context built for one chat turn."""

    model_config = ConfigDict(frozen=True)

    text: str = Field(default="", description="Context substituted for ``{pdf_content}``.")
    source: ContextSource
    estimated_tokens: int = Field(default=0, ge=0)
    chunks: list[TextChunk] = Field(
        default_factory=list, description="Retrieved chunks, when source is RETRIEVAL."
    )
