"""Document ingestion and per-turn context assembly.

The :class:`ContextAssembler` ties extraction, chunking, embedding and
retrieval together for one open document.

**Ingestion** (:meth:`ContextAssembler.ingest_document`) reads every page,
chunks the text, embeds the chunks when an embedding endpoint is
configured, and only then swaps the new index into the retriever.  A
failure part-way leaves the previous document and index untouched.
Progress goes through a :class:`~paperlens.pipeline.progress_tracker.ProgressTracker`:
page reading fills 0.0-0.5, embedding fills 0.5-1.0.  If embedding fails
the document is still indexed, without vectors, and retrieval uses
keyword scoring.

**Context** (:meth:`ContextAssembler.build_context`) follows a fixed
priority order:

1. Page mode "current page" or "custom range": exactly those pages, no
   retrieval.  An unparseable custom range falls back to the current page.
2. Full-document mode with a non-empty selection: the selection, labelled
   as high priority, followed by a budgeted extract at half the budget.
   The pending selection is consumed.
3. Non-empty query: the retrieved chunks that fit in the budget, each
   labelled with its page span.
4. Otherwise: a budgeted extract from the start of the document.
"""

from __future__ import annotations

import structlog

from paperlens.interfaces.document_source import IDocumentSource
from paperlens.models.document import (
    AssembledContext,
    ContextSource,
    PageRangeOption,
    TextChunk,
)
from paperlens.pipeline.progress_tracker import ProgressTracker
from paperlens.services.extraction.extractor import PAGE_SEPARATOR, DocumentExtractor
from paperlens.services.ingestion.chunker import TextChunker
from paperlens.services.retrieval import Retriever
from paperlens.utils.errors import (
    BudgetExceededError,
    IngestionError,
    InvalidPageRangeError,
    PaperLensError,
)
from paperlens.utils.tokens import CharTally, estimate_tokens

logger = structlog.get_logger(logger_name=__name__)

SELECTION_HEADER = "--- User Selected Text (High Priority) ---"
DOCUMENT_CONTEXT_HEADER = "--- Document Context ---"

_SEPARATOR_TALLY = CharTally.of(PAGE_SEPARATOR)


def format_retrieved_chunk(chunk: TextChunk) -> str:
    return f"{chunk.page_label}\n{chunk.text}"


class ContextAssembler:
    """Builds bounded document context for chat turns.

    Parameters
    ----------
    extractor:
        Page text extraction.
    chunker:
        Paragraph-aligned chunking for the retrieval index.
    retriever:
        The in-memory index; its embedding provider (if any) is also used
        to embed chunks at ingestion time.
    progress_tracker:
        Receives ingestion progress; a private tracker is used when omitted.
    context_token_budget:
        Ceiling for budgeted extracts and retrieved context (default 16000).
    retrieval_limit:
        Chunks requested from the retriever per turn (default 3).
    embedding_batch_size:
        Chunks per embedding request during ingestion (default 10).
    """

    def __init__(
        self,
        extractor: DocumentExtractor,
        chunker: TextChunker,
        retriever: Retriever,
        progress_tracker: ProgressTracker | None = None,
        context_token_budget: int = 16000,
        retrieval_limit: int = 3,
        embedding_batch_size: int = 10,
    ) -> None:
        self._extractor = extractor
        self._chunker = chunker
        self._retriever = retriever
        self._progress = progress_tracker or ProgressTracker()
        self._budget = context_token_budget
        self._retrieval_limit = retrieval_limit
        self._embedding_batch_size = embedding_batch_size
        self._document: IDocumentSource | None = None
        self._pending_selection: str | None = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def document(self) -> IDocumentSource | None:
        return self._document

    @property
    def progress_tracker(self) -> ProgressTracker:
        return self._progress

    @property
    def retriever(self) -> Retriever:
        return self._retriever

    @property
    def context_token_budget(self) -> int:
        return self._budget

    @property
    def pending_selection(self) -> str | None:
        return self._pending_selection

    def set_selection(self, text: str | None) -> None:
        """Remember the reader's current selection for the next full-document turn."""
        self._pending_selection = text if text and text.strip() else None

    def clear(self) -> None:
        """Forget the document, its index and any pending selection."""
        self._retriever.clear()
        self._document = None
        self._pending_selection = None

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    async def ingest_document(self, document: IDocumentSource) -> list[TextChunk]:
        """Extract, chunk and (optionally) embed *document*, then index it.

        Returns
        -------
        list[TextChunk]
            The chunks now held by the retriever.

        Raises
        ------
        IngestionError
            If reading the document fails; the previous index is kept.
        """
        document_id = document.document_id
        await self._progress.start(document_id)
        logger.info("ingestion_started", document_id=document_id, pages=document.page_count)

        pages = await self._read_pages(document)
        chunks = self._chunker.chunk(pages)
        vectors = await self._embed_chunks(document_id, chunks)

        self._retriever.ingest(chunks, vectors)
        self._document = document
        self._pending_selection = None
        await self._progress.complete(document_id)

        logger.info(
            "ingestion_complete",
            document_id=document_id,
            pages_with_text=len(pages),
            chunks=len(chunks),
            vectors=len(vectors),
        )
        return chunks

    async def _read_pages(self, document: IDocumentSource) -> list[tuple[int, str]]:
        document_id = document.document_id
        page_count = document.page_count
        pages: list[tuple[int, str]] = []
        try:
            for index in range(page_count):
                pages.extend(self._extractor.iter_pages(document, [index]))
                await self._progress.extraction_progress(document_id, index + 1, page_count)
        except Exception as exc:
            logger.warning(
                "ingestion_failed",
                document_id=document_id,
                pages_read=len(pages),
                error=str(exc),
            )
            raise IngestionError(
                message=f"Could not read document {document_id}: {exc}",
            ) from exc
        return pages

    async def _embed_chunks(self, document_id: str, chunks: list[TextChunk]) -> list[list[float]]:
        provider = self._retriever.embedding_provider
        if not chunks or provider is None or not provider.is_available():
            return []

        vectors: list[list[float]] = []
        total = len(chunks)
        try:
            for start in range(0, total, self._embedding_batch_size):
                batch = chunks[start : start + self._embedding_batch_size]
                vectors.extend(await provider.embed([c.text for c in batch]))
                await self._progress.embedding_progress(document_id, start + len(batch), total)
        except PaperLensError as exc:
            logger.warning(
                "chunk_embedding_failed_keyword_only",
                document_id=document_id,
                embedded=len(vectors),
                total=total,
                error=str(exc),
                error_kind=exc.kind.value,
            )
            return []
        return vectors

    # ------------------------------------------------------------------
    # Context assembly
    # ------------------------------------------------------------------

    async def build_context(
        self,
        query: str,
        page_range_option: PageRangeOption = PageRangeOption.ALL,
        selection_text: str | None = None,
        custom_range: str = "",
        current_page: int = 0,
    ) -> AssembledContext:
        """Assemble the document context for one chat turn.

        Parameters
        ----------
        query:
            The user's question; drives retrieval.
        page_range_option:
            ALL, CURRENT_PAGE or CUSTOM.
        selection_text:
            Selected text for this turn.  When ``None`` the pending selection
            set via :meth:`set_selection` is used.
        custom_range:
            One-based range expression for CUSTOM mode.
        current_page:
            Zero-based index of the page the reader is on.
        """
        document = self._document
        if document is None:
            return AssembledContext(source=ContextSource.EMPTY)

        if page_range_option is PageRangeOption.CURRENT_PAGE:
            return self._current_page_context(document, current_page)

        if page_range_option is PageRangeOption.CUSTOM:
            try:
                result = self._extractor.extract_by_range_expression(document, custom_range)
            except InvalidPageRangeError as exc:
                logger.info(
                    "custom_range_fallback_to_current_page",
                    custom_range=custom_range,
                    error=str(exc),
                )
                return self._current_page_context(document, current_page)
            return AssembledContext(
                text=result.text,
                source=ContextSource.CUSTOM_RANGE,
                estimated_tokens=result.estimated_tokens,
            )

        selection = selection_text if selection_text is not None else self._pending_selection
        if selection and selection.strip():
            return self._selection_context(document, selection)

        if query.strip():
            chunks = await self._retriever.retrieve(query, self._retrieval_limit)
            context = self._retrieved_context(chunks)
            if context is not None:
                return context

        return self._budgeted_context(document)

    def _current_page_context(self, document: IDocumentSource, current_page: int) -> AssembledContext:
        page = min(max(0, current_page), max(0, document.page_count - 1))
        result = self._extractor.extract_range(document, [page])
        return AssembledContext(
            text=result.text,
            source=ContextSource.CURRENT_PAGE,
            estimated_tokens=result.estimated_tokens,
        )

    def _selection_context(self, document: IDocumentSource, selection: str) -> AssembledContext:
        self._pending_selection = None
        extract = self._extractor.extract_with_budget(document, self._budget // 2)
        text = f"{SELECTION_HEADER}\n{selection}\n\n{DOCUMENT_CONTEXT_HEADER}\n{extract.text}"
        return AssembledContext(
            text=text,
            source=ContextSource.SELECTION,
            estimated_tokens=estimate_tokens(text),
        )

    def _retrieved_context(self, chunks: list[TextChunk]) -> AssembledContext | None:
        """Join retrieved chunks in score order while they fit the budget."""
        blocks: list[str] = []
        included: list[TextChunk] = []
        tally = CharTally()
        for chunk in chunks:
            block = format_retrieved_chunk(chunk)
            candidate = tally + CharTally.of(block)
            if blocks:
                candidate = candidate + _SEPARATOR_TALLY
            if candidate.tokens > self._budget:
                logger.debug("retrieved_chunk_over_budget", chunk_id=chunk.chunk_id)
                continue
            blocks.append(block)
            included.append(chunk)
            tally = candidate

        if not blocks:
            return None
        return AssembledContext(
            text=PAGE_SEPARATOR.join(blocks),
            source=ContextSource.RETRIEVAL,
            estimated_tokens=tally.tokens,
            chunks=included,
        )

    def _budgeted_context(self, document: IDocumentSource) -> AssembledContext:
        try:
            result = self._extractor.extract_with_budget(document, self._budget, strict=True)
        except BudgetExceededError as exc:
            logger.warning("context_budget_exceeded", budget=self._budget, error=str(exc))
            return AssembledContext(source=ContextSource.EMPTY)
        return AssembledContext(
            text=result.text,
            source=ContextSource.BUDGETED,
            estimated_tokens=result.estimated_tokens,
        )
