"""Unit tests for ContextAssembler — ingestion and the context priority order."""

from __future__ import annotations

import pytest

from paperlens.interfaces.embedding_provider import IEmbeddingProvider
from paperlens.models.chat import EmbeddingConfig
from paperlens.models.document import ContextSource, IngestionPhase, IngestionProgress, PageRangeOption
from paperlens.pipeline.progress_tracker import ProgressTracker
from paperlens.providers.document.memory_document import InMemoryDocument
from paperlens.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from paperlens.services.context_assembler import SELECTION_HEADER, ContextAssembler
from paperlens.services.extraction.extractor import DocumentExtractor
from paperlens.services.ingestion.chunker import TextChunker
from paperlens.services.retrieval import Retriever
from paperlens.utils.errors import IngestionError, NetworkFailureError
from paperlens.utils.tokens import estimate_tokens
from tests.conftest import MockEmbeddingProvider, corrupt_gzip_response, mock_client


def _assembler(
    embedding_provider: IEmbeddingProvider | None = None,
    budget: int = 16000,
    tracker: ProgressTracker | None = None,
) -> ContextAssembler:
    return ContextAssembler(
        extractor=DocumentExtractor(max_token_budget=budget),
        chunker=TextChunker(chunk_size=30, overlap=0),
        retriever=Retriever(embedding_provider=embedding_provider),
        progress_tracker=tracker,
        context_token_budget=budget,
        retrieval_limit=3,
        embedding_batch_size=2,
    )


class BrokenDocument(InMemoryDocument):
    """Fails when page 3 is read."""

    def page_text(self, index: int) -> str | None:
        if index == 2:
            raise RuntimeError("corrupt xref table")
        return super().page_text(index)


class TestIngestion:
    @pytest.mark.asyncio
    async def test_keyword_only_without_embeddings(self, paper: InMemoryDocument) -> None:
        assembler = _assembler()
        chunks = await assembler.ingest_document(paper)
        assert chunks
        assert assembler.document is paper
        assert assembler.retriever.chunks == chunks
        assert not assembler.retriever.has_vectors

    @pytest.mark.asyncio
    async def test_embeds_chunks_in_batches(self, paper: InMemoryDocument) -> None:
        provider = MockEmbeddingProvider()
        assembler = _assembler(embedding_provider=provider)
        chunks = await assembler.ingest_document(paper)
        assert assembler.retriever.has_vectors
        assert all(len(batch) <= 2 for batch in provider.calls)
        assert sum(len(batch) for batch in provider.calls) == len(chunks)

    @pytest.mark.asyncio
    async def test_progress_is_monotonic_and_completes(self, paper: InMemoryDocument) -> None:
        tracker = ProgressTracker()
        received: list[IngestionProgress] = []
        tracker.register_listener("paper-1", lambda _id, p: received.append(p))

        await _assembler(MockEmbeddingProvider(), tracker=tracker).ingest_document(paper)

        fractions = [p.fraction for p in received]
        assert fractions == sorted(fractions)
        assert received[0].fraction == 0.0
        assert received[-1] == IngestionProgress(phase=IngestionPhase.COMPLETE, fraction=1.0)
        assert any(p.phase is IngestionPhase.EMBEDDING for p in received)
        assert all(p.fraction <= 0.5 for p in received if p.phase is IngestionPhase.EXTRACTING)

    @pytest.mark.asyncio
    async def test_embedding_failure_still_indexes(self, paper: InMemoryDocument) -> None:
        provider = MockEmbeddingProvider(fail_with=NetworkFailureError("down"))
        assembler = _assembler(embedding_provider=provider)
        await assembler.ingest_document(paper)
        assert not assembler.retriever.is_empty
        assert not assembler.retriever.has_vectors

        context = await assembler.build_context("centroids")
        assert context.source is ContextSource.RETRIEVAL

    @pytest.mark.asyncio
    async def test_undecodable_embedding_response_still_indexes(self, paper: InMemoryDocument) -> None:
        provider = OpenAIEmbeddingProvider(
            EmbeddingConfig(
                base_url="https://api.example.com/v1",
                api_key="sk-embed",
                model_name="embed-small",
            ),
            http_client=mock_client(corrupt_gzip_response),
        )
        assembler = _assembler(embedding_provider=provider)

        chunks = await assembler.ingest_document(paper)

        assert assembler.retriever.chunks == chunks
        assert not assembler.retriever.has_vectors
        context = await assembler.build_context("centroids")
        assert context.source is ContextSource.RETRIEVAL

    @pytest.mark.asyncio
    async def test_failed_ingestion_keeps_previous_document(self, paper: InMemoryDocument) -> None:
        assembler = _assembler()
        chunks = await assembler.ingest_document(paper)

        broken = BrokenDocument(["one", "two", "three"], document_id="broken")
        with pytest.raises(IngestionError):
            await assembler.ingest_document(broken)

        assert assembler.document is paper
        assert assembler.retriever.chunks == chunks

    @pytest.mark.asyncio
    async def test_ingestion_drops_pending_selection(self, paper: InMemoryDocument) -> None:
        assembler = _assembler()
        assembler.set_selection("old selection")
        await assembler.ingest_document(paper)
        assert assembler.pending_selection is None


class TestContextPriority:
    @pytest.mark.asyncio
    async def test_no_document_is_empty(self) -> None:
        context = await _assembler().build_context("anything")
        assert context.source is ContextSource.EMPTY
        assert context.text == ""

    @pytest.mark.asyncio
    async def test_current_page(self, paper: InMemoryDocument) -> None:
        assembler = _assembler()
        await assembler.ingest_document(paper)
        context = await assembler.build_context(
            "centroids", PageRangeOption.CURRENT_PAGE, current_page=2
        )
        assert context.source is ContextSource.CURRENT_PAGE
        assert context.text.startswith("--- Page 3 ---\nRelated work.")
        assert "--- Page 4 ---" not in context.text

    @pytest.mark.asyncio
    async def test_current_page_is_clamped(self, paper: InMemoryDocument) -> None:
        assembler = _assembler()
        await assembler.ingest_document(paper)
        context = await assembler.build_context("", PageRangeOption.CURRENT_PAGE, current_page=99)
        assert context.text.startswith("--- Page 10 ---")

    @pytest.mark.asyncio
    async def test_custom_range(self, paper: InMemoryDocument) -> None:
        assembler = _assembler()
        await assembler.ingest_document(paper)
        context = await assembler.build_context("q", PageRangeOption.CUSTOM, custom_range="2-3")
        assert context.source is ContextSource.CUSTOM_RANGE
        assert "--- Page 2 ---" in context.text
        assert "--- Page 3 ---" in context.text
        assert "--- Page 4 ---" not in context.text

    @pytest.mark.asyncio
    async def test_bad_custom_range_falls_back_to_current_page(self, paper: InMemoryDocument) -> None:
        assembler = _assembler()
        await assembler.ingest_document(paper)
        context = await assembler.build_context(
            "q", PageRangeOption.CUSTOM, custom_range="abc", current_page=4
        )
        assert context.source is ContextSource.CURRENT_PAGE
        assert context.text.startswith("--- Page 5 ---")

    @pytest.mark.asyncio
    async def test_selection_comes_first_and_is_consumed(self, paper: InMemoryDocument) -> None:
        assembler = _assembler()
        await assembler.ingest_document(paper)
        assembler.set_selection("quadratic attention cost")

        context = await assembler.build_context("explain this")
        assert context.source is ContextSource.SELECTION
        assert context.text.startswith(f"{SELECTION_HEADER}\nquadratic attention cost")
        assert "--- Page 1 ---" in context.text
        assert assembler.pending_selection is None

        again = await assembler.build_context("explain this")
        assert again.source is not ContextSource.SELECTION

    @pytest.mark.asyncio
    async def test_selection_ignored_outside_full_document_mode(self, paper: InMemoryDocument) -> None:
        assembler = _assembler()
        await assembler.ingest_document(paper)
        assembler.set_selection("kept for later")
        context = await assembler.build_context("q", PageRangeOption.CURRENT_PAGE)
        assert context.source is ContextSource.CURRENT_PAGE
        assert assembler.pending_selection == "kept for later"

    @pytest.mark.asyncio
    async def test_explicit_empty_selection_overrides_pending(self, paper: InMemoryDocument) -> None:
        assembler = _assembler()
        await assembler.ingest_document(paper)
        assembler.set_selection("pending")
        context = await assembler.build_context("", selection_text="")
        assert context.source is ContextSource.BUDGETED
        assert assembler.pending_selection == "pending"

    @pytest.mark.asyncio
    async def test_query_uses_retrieval(self, paper: InMemoryDocument) -> None:
        assembler = _assembler()
        await assembler.ingest_document(paper)
        context = await assembler.build_context("centroid")
        assert context.source is ContextSource.RETRIEVAL
        assert "learned centroids" in context.text
        assert "centroid updates" in context.text
        assert 1 <= len(context.chunks) <= 3
        assert context.text.startswith(context.chunks[0].page_label)

    @pytest.mark.asyncio
    async def test_vector_retrieval(self, paper: InMemoryDocument) -> None:
        assembler = _assembler(MockEmbeddingProvider())
        await assembler.ingest_document(paper)
        context = await assembler.build_context("routing with learned centroids")
        assert context.source is ContextSource.RETRIEVAL
        assert len(context.chunks) == 3

    @pytest.mark.asyncio
    @pytest.mark.parametrize("query", ["", "   ", "zebra"])
    async def test_no_retrieval_hits_gives_budgeted_extract(
        self, paper: InMemoryDocument, query: str
    ) -> None:
        assembler = _assembler()
        await assembler.ingest_document(paper)
        context = await assembler.build_context(query)
        assert context.source is ContextSource.BUDGETED
        assert context.text.startswith("--- Page 1 ---\nAbstract.")
        assert "--- Page 10 ---" in context.text

    @pytest.mark.asyncio
    async def test_tiny_budget_gives_empty_context(self, paper: InMemoryDocument) -> None:
        assembler = _assembler(budget=5)
        await assembler.ingest_document(paper)
        for query in ("zebra", "centroid"):
            context = await assembler.build_context(query)
            assert context.source is ContextSource.EMPTY
            assert context.text == ""

    @pytest.mark.asyncio
    async def test_contexts_respect_budget(self, paper: InMemoryDocument) -> None:
        assembler = _assembler(budget=40)
        await assembler.ingest_document(paper)
        for query in ("centroid sparse attention routing", "zebra"):
            context = await assembler.build_context(query)
            assert context.estimated_tokens <= 40
            assert context.estimated_tokens == estimate_tokens(context.text)

    @pytest.mark.asyncio
    async def test_clear_forgets_document(self, paper: InMemoryDocument) -> None:
        assembler = _assembler()
        await assembler.ingest_document(paper)
        assembler.clear()
        assert assembler.document is None
        assert assembler.retriever.is_empty
        assert (await assembler.build_context("centroid")).source is ContextSource.EMPTY
