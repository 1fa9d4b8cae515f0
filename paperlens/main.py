"""PaperLens component wiring.

Builds providers and services from :class:`~paperlens.config.settings.Settings`
and injects them into each other.  Nothing here holds global state: every
call returns fresh objects, so the CLI, scripts and tests can assemble as
many independent sessions as they need.

    Settings ─► ProviderConfig ─► InferenceGateway ─┐
            └─► EmbeddingConfig ─► OpenAIEmbeddingProvider ─► Retriever ─► ContextAssembler ─► ChatSession
"""

from __future__ import annotations

from pathlib import Path

import httpx

from paperlens.config import Settings, settings
from paperlens.interfaces.document_source import IDocumentSource
from paperlens.interfaces.embedding_provider import IEmbeddingProvider
from paperlens.pipeline.progress_tracker import ProgressTracker
from paperlens.providers.cache.memory_cache import MemoryCacheProvider
from paperlens.providers.document.memory_document import InMemoryDocument
from paperlens.providers.document.pymupdf_document import PyMuPDFDocument
from paperlens.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from paperlens.providers.llm.gateway import InferenceGateway
from paperlens.services.briefing_service import BriefingService
from paperlens.services.chat_session import ChatSession
from paperlens.services.context_assembler import ContextAssembler
from paperlens.services.extraction.extractor import DocumentExtractor
from paperlens.services.ingestion.chunker import TextChunker
from paperlens.services.retrieval import Retriever
from paperlens.utils.errors import IngestionError
from paperlens.utils.logging import get_logger

logger = get_logger(__name__)

_TEXT_SUFFIXES = {".txt", ".md", ".text"}


# ---------------------------------------------------------------------------
# Providers
# ---------------------------------------------------------------------------


def build_gateway(
    app_settings: Settings | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> InferenceGateway:
    s = app_settings or settings
    config = s.provider_config()
    logger.debug("gateway_built", provider=config.provider_name, model=config.model_name)
    return InferenceGateway(config, http_client=http_client)


def build_embedding_provider(
    app_settings: Settings | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> IEmbeddingProvider | None:
    """Return the embedding client, or ``None`` when no endpoint is configured.

    ``None`` means retrieval runs on keyword scoring only.
    """
    s = app_settings or settings
    config = s.embedding_config()
    if not config.is_configured:
        logger.info("embeddings_disabled", provider=s.llm_provider)
        return None
    return OpenAIEmbeddingProvider(config, http_client=http_client)


def open_document(path: str | Path) -> IDocumentSource:
    """Open a PDF, or a plain-text file split into pages on form feeds."""
    path = Path(path)
    if path.suffix.lower() in _TEXT_SUFFIXES:
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise IngestionError(message=f"Cannot read {path}: {exc}") from exc
        return InMemoryDocument.from_text(text, metadata={"title": path.stem})
    return PyMuPDFDocument.open(path)


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------


def build_context_assembler(
    app_settings: Settings | None = None,
    embedding_provider: IEmbeddingProvider | None = None,
    progress_tracker: ProgressTracker | None = None,
) -> ContextAssembler:
    s = app_settings or settings
    return ContextAssembler(
        extractor=DocumentExtractor(max_token_budget=s.context_token_budget),
        chunker=TextChunker(chunk_size=s.chunk_size, overlap=s.chunk_overlap),
        retriever=Retriever(embedding_provider=embedding_provider, default_limit=s.retrieval_limit),
        progress_tracker=progress_tracker,
        context_token_budget=s.context_token_budget,
        retrieval_limit=s.retrieval_limit,
        embedding_batch_size=s.embedding_batch_size,
    )


def build_chat_session(
    app_settings: Settings | None = None,
    http_client: httpx.AsyncClient | None = None,
    progress_tracker: ProgressTracker | None = None,
) -> ChatSession:
    """Wire a complete chat session: gateway, embeddings, retrieval, context."""
    s = app_settings or settings
    assembler = build_context_assembler(
        s,
        embedding_provider=build_embedding_provider(s, http_client=http_client),
        progress_tracker=progress_tracker,
    )
    return ChatSession(
        gateway=build_gateway(s, http_client=http_client),
        assembler=assembler,
        system_prompt=s.system_prompt,
    )


def build_briefing_service(app_settings: Settings | None = None) -> BriefingService:
    s = app_settings or settings
    return BriefingService(
        extractor=DocumentExtractor(max_token_budget=s.context_token_budget),
        cache=MemoryCacheProvider(max_size=s.brief_cache_size, ttl=s.brief_cache_ttl),
    )
