"""Abstract base class for text-embedding service providers.

Defines the contract for turning text into vectors for similarity search.
The retriever only depends on this interface, so an OpenAI-compatible HTTP
endpoint, a local model or a test fake are interchangeable.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementation: OpenAIEmbeddingProvider (any OpenAI-compatible /embeddings)
# Located in: paperlens/providers/embedding/
class IEmbeddingProvider(ABC):
    """Contract for text-embedding services used by the retriever."""

    @abstractmethod
    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts.

        Parameters
        ----------
        texts:
            Text strings to embed.  Implementations batch internally when
            the endpoint has a per-request limit; batches run sequentially.

        Returns
        -------
        list[list[float]]
            One vector per input, aligned positionally with *texts*
            regardless of the order the server answered in.

        Raises
        ------
        paperlens.utils.errors.InvalidConfigurationError
            If the endpoint or key is not configured.
        paperlens.utils.errors.NetworkFailureError
            If the endpoint cannot be reached.
        paperlens.utils.errors.ProtocolError
            If the endpoint answers with a non-2xx status.
        paperlens.utils.errors.DecodeError
            If the response body is not the expected shape.
        """

    @abstractmethod
    async def embed_single(self, text: str) -> list[float]:
        """Generate an embedding vector for a single text (e.g. a query)."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this embedding provider."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the endpoint, key and model are configured.

        Must not perform network I/O.
        """
