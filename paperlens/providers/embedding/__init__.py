"""Embedding provider adapters.

OpenAIEmbeddingProvider speaks the OpenAI-compatible ``/embeddings`` API
used by OpenAI, SiliconFlow, 302.AI and Ollama's ``/v1`` endpoint.  When
no endpoint is configured, main.build_embedding_provider returns ``None``
and retrieval uses keyword scoring.
"""

from paperlens.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

__all__ = ["OpenAIEmbeddingProvider"]
