"""Public interface definitions for PaperLens' external collaborators.

Every backend (PDF library, embedding endpoint, inference server, cache)
is reached only through the abstract base classes in this package.
Concrete adapters live in ``paperlens/providers/`` and are injected by the
caller, so tests can substitute fakes without network access.

    Interface            →  Concrete implementations (in paperlens/providers/)
    ─────────────────────────────────────────────────────────────────────
    IDocumentSource      →  PyMuPDFDocument, InMemoryDocument
    IEmbeddingProvider   →  OpenAIEmbeddingProvider
    IInferenceGateway    →  InferenceGateway (SSE + NDJSON wire formats)
    IChatStream          →  ChatStream
    ICacheProvider       →  MemoryCacheProvider
"""

from paperlens.interfaces.cache_provider import ICacheProvider
from paperlens.interfaces.document_source import IDocumentSource
from paperlens.interfaces.embedding_provider import IEmbeddingProvider
from paperlens.interfaces.inference_gateway import IChatStream, IInferenceGateway

__all__ = [
    "ICacheProvider",
    "IChatStream",
    "IDocumentSource",
    "IEmbeddingProvider",
    "IInferenceGateway",
]
