"""OpenAI-compatible embedding provider adapter.

Talks to any ``/embeddings`` endpoint that follows the OpenAI wire format
(OpenAI, SiliconFlow, 302.AI, Ollama's ``/v1`` shim) over ``httpx``:

    POST {base_url}/embeddings
    Authorization: Bearer {api_key}
    {"input": [...], "model": "...", "encoding_format": "float"}

    -> {"data": [{"index": 0, "embedding": [...]}, ...]}

The server is not required to answer in request order, so vectors are
re-sorted by ``index`` before being returned.  Inputs are sent in fixed-size
batches, one request at a time, to bound request size and load on the
endpoint; a failure anywhere in a batch fails the whole call.
"""

from __future__ import annotations

import httpx
import structlog

from paperlens.interfaces.embedding_provider import IEmbeddingProvider
from paperlens.models.chat import EmbeddingConfig
from paperlens.utils.errors import (
    DecodeError,
    InvalidConfigurationError,
    NetworkFailureError,
    ProtocolError,
)

logger = structlog.get_logger(logger_name=__name__)

_EMBEDDINGS_SUFFIX = "/embeddings"


class OpenAIEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by an OpenAI-compatible embeddings API.

    Parameters
    ----------
    config:
        Endpoint, key, model and batch size.
    http_client:
        Optional shared ``httpx.AsyncClient``; when omitted the provider
        creates and owns one.
    """

    def __init__(
        self,
        config: EmbeddingConfig,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(config.request_timeout),
        )

    # ------------------------------------------------------------------
    # IEmbeddingProvider implementation
    # ------------------------------------------------------------------

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Embed *texts* in sequential batches, preserving input order."""
        if not texts:
            return []

        url = self._endpoint_url()
        batch_size = self._config.batch_size
        vectors: list[list[float]] = []
        for start in range(0, len(texts), batch_size):
            batch = texts[start : start + batch_size]
            vectors.extend(await self._embed_batch(url, batch))
            logger.info(
                "embedding_batch",
                provider=self.get_provider_name(),
                model=self._config.model_name,
                batch_start=start,
                batch_size=len(batch),
                total=len(texts),
            )
        return vectors

    async def embed_single(self, text: str) -> list[float]:
        """Generate an embedding vector for a single text string."""
        result = await self.embed([text])
        return result[0]

    def get_provider_name(self) -> str:
        return self._config.provider_name

    def is_available(self) -> bool:
        """Return ``True`` if base URL, API key and model are all configured."""
        return self._config.is_configured

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this provider created it."""
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _endpoint_url(self) -> str:
        base = self._config.base_url.strip().rstrip("/")
        if not base or not self._config.api_key or not self._config.model_name:
            raise InvalidConfigurationError(
                message="Embedding endpoint, API key and model must all be configured",
                provider_name=self.get_provider_name(),
            )
        if not base.startswith(("http://", "https://")):
            raise InvalidConfigurationError(
                message=f"Embedding base URL must be an http(s) URL: {base!r}",
                provider_name=self.get_provider_name(),
            )
        if base.endswith(_EMBEDDINGS_SUFFIX):
            return base
        return f"{base}{_EMBEDDINGS_SUFFIX}"

    async def _embed_batch(self, url: str, batch: list[str]) -> list[list[float]]:
        payload = {
            # Newlines degrade some embedding models; flatten them.
            "input": [text.replace("\n", " ") for text in batch],
            "model": self._config.model_name,
            "encoding_format": "float",
        }
        headers = {"Authorization": f"Bearer {self._config.api_key}"}

        try:
            response = await self._client.post(url, json=payload, headers=headers)
        except httpx.TimeoutException as exc:
            raise NetworkFailureError(
                message=f"Timeout calling embedding endpoint: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except httpx.DecodingError as exc:
            raise DecodeError(
                message=f"Embedding response body could not be decoded: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except httpx.HTTPError as exc:
            raise NetworkFailureError(
                message=f"Could not reach embedding endpoint: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if not response.is_success:
            raise ProtocolError(
                status_code=response.status_code,
                body=_error_message(response),
                provider_name=self.get_provider_name(),
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise DecodeError(
                message="Embedding response is not valid JSON",
                provider_name=self.get_provider_name(),
            ) from exc

        return self._parse_vectors(data, expected=len(batch))

    def _parse_vectors(self, data: object, expected: int) -> list[list[float]]:
        items = data.get("data") if isinstance(data, dict) else None
        if not isinstance(items, list):
            raise DecodeError(
                message="Embedding response has no 'data' array",
                provider_name=self.get_provider_name(),
            )

        indexed: list[tuple[int, list[float]]] = []
        for item in items:
            index = item.get("index") if isinstance(item, dict) else None
            embedding = item.get("embedding") if isinstance(item, dict) else None
            if not isinstance(index, int) or not isinstance(embedding, list):
                raise DecodeError(
                    message="Embedding item lacks an integer 'index' or an 'embedding' list",
                    provider_name=self.get_provider_name(),
                )
            try:
                indexed.append((index, [float(v) for v in embedding]))
            except (TypeError, ValueError) as exc:
                raise DecodeError(
                    message=f"Embedding {index} contains non-numeric values",
                    provider_name=self.get_provider_name(),
                ) from exc

        indexed.sort(key=lambda pair: pair[0])
        if [index for index, _ in indexed] != list(range(expected)):
            raise DecodeError(
                message=f"Expected {expected} embeddings indexed 0..{expected - 1}, got {len(indexed)}",
                provider_name=self.get_provider_name(),
            )
        return [vector for _, vector in indexed]


def _error_message(response: httpx.Response) -> str:
    """Prefer ``error.message`` from a JSON error body, else the raw text."""
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            return error["message"]
        if isinstance(error, str):
            return error
    return response.text
