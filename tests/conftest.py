"""Shared pytest fixtures for the PaperLens test suite."""

from __future__ import annotations

import hashlib
import math
from collections.abc import AsyncIterator, Callable
from typing import Any

import httpx
import pytest

from paperlens.config.settings import Settings
from paperlens.interfaces.embedding_provider import IEmbeddingProvider
from paperlens.interfaces.inference_gateway import IChatStream, IInferenceGateway
from paperlens.models.chat import (
    CancelledEvent,
    ChatMessage,
    CompletedEvent,
    FailedEvent,
    RequestState,
    StreamEvent,
    TokenEvent,
)
from paperlens.providers.document.memory_document import InMemoryDocument
from paperlens.utils.errors import PaperLensError, RequestCancelledError


def make_settings(**overrides: Any) -> Settings:
    """Settings isolated from the developer's environment and .env file."""
    defaults: dict[str, Any] = {
        "llm_provider": "openai",
        "llm_base_url": "",
        "llm_api_key": "sk-test",
        "llm_model": "",
        "embedding_use_shared_key": True,
        "embedding_base_url": "",
        "embedding_api_key": "",
        "embedding_model": "",
    }
    defaults.update(overrides)
    return Settings(_env_file=None, **defaults)


def mock_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    """An AsyncClient whose requests are answered by *handler*."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def corrupt_gzip_response(request: httpx.Request) -> httpx.Response:
    """A 200 that claims gzip encoding but whose body is not gzip."""
    return httpx.Response(
        200,
        headers={"Content-Encoding": "gzip"},
        stream=httpx.ByteStream(b"definitely not gzip"),
    )


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


@pytest.fixture
def paper() -> InMemoryDocument:
    """A ten-page paper with distinct topics per page."""
    topics = [
        "Abstract. We study sparse attention for long documents.",
        "Introduction. Transformers scale quadratically with sequence length.",
        "Related work. Prior methods use sliding windows and memory tokens.",
        "Method. Our sparse attention routes each query to a few key blocks.",
        "Method continued. Routing uses learned centroids over key blocks.",
        "Experiments. We evaluate on arXiv summarization and long QA.",
        "Results. Sparse attention matches dense attention at a third of the cost.",
        "Ablations. Removing centroid updates hurts accuracy by four points.",
        "Limitations. Routing adds latency for very short inputs.",
        "Conclusion. Sparse routing makes long document modeling practical.",
    ]
    pages = [f"{topic}\n\nPage {i + 1} body text." for i, topic in enumerate(topics)]
    return InMemoryDocument(pages, document_id="paper-1", metadata={"title": "Sparse Routing"})


# ---------------------------------------------------------------------------
# Embeddings
# ---------------------------------------------------------------------------

_EMBEDDING_DIM = 32


def hash_to_vector(text: str, dim: int = _EMBEDDING_DIM) -> list[float]:
    """Deterministic bag-of-words vector so similar texts score higher."""
    vector = [0.0] * dim
    for word in text.lower().split():
        digest = hashlib.sha256(word.strip(".,").encode()).digest()
        vector[digest[0] % dim] += 1.0
    norm = math.sqrt(sum(v * v for v in vector)) or 1.0
    return [v / norm for v in vector]


class MockEmbeddingProvider(IEmbeddingProvider):
    """Embeds locally with :func:`hash_to_vector`; can be told to fail."""

    def __init__(self, fail_with: PaperLensError | None = None, available: bool = True) -> None:
        self.fail_with = fail_with
        self.available = available
        self.calls: list[list[str]] = []

    async def embed(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        if self.fail_with is not None:
            raise self.fail_with
        return [hash_to_vector(t) for t in texts]

    async def embed_single(self, text: str) -> list[float]:
        return (await self.embed([text]))[0]

    def get_provider_name(self) -> str:
        return "mock-embedding"

    def is_available(self) -> bool:
        return self.available


@pytest.fixture
def mock_embedding_provider() -> MockEmbeddingProvider:
    return MockEmbeddingProvider()


# ---------------------------------------------------------------------------
# Inference
# ---------------------------------------------------------------------------


class ScriptedStream(IChatStream):
    """Replays a fixed list of events, honouring cancel() between events."""

    def __init__(self, events: list[StreamEvent], error: PaperLensError | None = None) -> None:
        self._events = events
        self._error_on_fail = error
        self._error: PaperLensError | None = None
        self._state = RequestState.IDLE
        self._cancelled = False

    @property
    def state(self) -> RequestState:
        return self._state

    @property
    def error(self) -> PaperLensError | None:
        return self._error

    def cancel(self) -> None:
        if not self._state.is_terminal:
            self._cancelled = True
            self._state = RequestState.CANCELLED

    def __aiter__(self) -> AsyncIterator[StreamEvent]:
        return self._run()

    async def _run(self) -> AsyncIterator[StreamEvent]:
        if not self._cancelled:
            self._state = RequestState.STREAMING
        for event in self._events:
            if self._cancelled:
                yield CancelledEvent()
                return
            if isinstance(event, FailedEvent):
                self._error = self._error_on_fail
                self._state = RequestState.FAILED
            elif isinstance(event, CompletedEvent):
                self._state = RequestState.COMPLETED
            yield event
            if self._state.is_terminal:
                return

    async def collect(self) -> str:
        parts = [e.text async for e in self if isinstance(e, TokenEvent)]
        if self._state is RequestState.CANCELLED:
            raise RequestCancelledError()
        if self._error is not None:
            raise self._error
        return "".join(parts)


class ScriptedGateway(IInferenceGateway):
    """Gateway returning pre-scripted streams and recording every request."""

    def __init__(self, *replies: ScriptedStream) -> None:
        self._replies = list(replies)
        self.requests: list[tuple[list[ChatMessage], str]] = []
        self.streams: list[ScriptedStream] = []

    def send_message(self, history: list[ChatMessage], system_prompt: str) -> IChatStream:
        self.requests.append((list(history), system_prompt))
        stream = self._replies.pop(0) if self._replies else reply_stream("ok")
        self.streams.append(stream)
        return stream

    async def test_connection(self) -> bool:
        return True

    async def list_models(self) -> list[str]:
        return ["scripted-model"]

    def cancel(self) -> None:
        if self.streams:
            self.streams[-1].cancel()

    def get_provider_name(self) -> str:
        return "scripted"


def reply_stream(*tokens: str) -> ScriptedStream:
    """A stream that yields *tokens* then completes."""
    return ScriptedStream([*(TokenEvent(text=t) for t in tokens), CompletedEvent()])
