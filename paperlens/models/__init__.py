"""PaperLens domain models — re-exports all public model classes.

The models are organized by concern:
    - brief.py     — structured paper brief
    - chat.py      — conversation, provider configuration, stream events
    - document.py  — extraction results, chunks, retrieval, context
"""

from __future__ import annotations

from paperlens.models.brief import BRIEF_FIELDS, PaperBrief
from paperlens.models.chat import (
    CancelledEvent,
    ChatMessage,
    CompletedEvent,
    EmbeddingConfig,
    FailedEvent,
    MessageRole,
    ProviderConfig,
    ProviderKind,
    RequestState,
    StreamEvent,
    TokenEvent,
)
from paperlens.models.document import (
    AssembledContext,
    ContextSource,
    DocumentInfo,
    ExtractionResult,
    IngestionPhase,
    IngestionProgress,
    PageRangeOption,
    RetrievalCandidate,
    RetrievalMethod,
    TextChunk,
)

__all__ = [
    "BRIEF_FIELDS",
    "AssembledContext",
    "CancelledEvent",
    "ChatMessage",
    "CompletedEvent",
    "ContextSource",
    "DocumentInfo",
    "EmbeddingConfig",
    "ExtractionResult",
    "FailedEvent",
    "IngestionPhase",
    "IngestionProgress",
    "MessageRole",
    "PageRangeOption",
    "PaperBrief",
    "ProviderConfig",
    "ProviderKind",
    "RequestState",
    "RetrievalCandidate",
    "RetrievalMethod",
    "StreamEvent",
    "TextChunk",
    "TokenEvent",
]
