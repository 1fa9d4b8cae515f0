"""Chat, provider configuration and streaming event models.

``ProviderConfig`` and ``EmbeddingConfig`` are immutable per request and
are built by :class:`~paperlens.config.settings.Settings`.  ``StreamEvent``
is the tagged union emitted by an inference stream:

    TokenEvent(text)        -- zero or more, in arrival order
    CompletedEvent          -- terminal: stream ended normally
    FailedEvent(kind, ...)  -- terminal: stream ended with an error
    CancelledEvent          -- terminal: caller stopped the stream

Exactly one terminal event ends every stream.  Cancellation has its own
event type so callers never mistake a user-initiated stop for a failure.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from paperlens.utils.errors import ErrorKind


# ---------------------------------------------------------------------------
# Conversation
# ---------------------------------------------------------------------------
class MessageRole(str, Enum):  # noqa: UP042 — StrEnum requires Python 3.11+
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class ChatMessage(BaseModel):
    """One turn of the conversation history."""

    model_config = ConfigDict(frozen=True)

    message_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    role: MessageRole
    content: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(tz=timezone.utc))

    @classmethod
    def user(cls, content: str) -> ChatMessage:
        return cls(role=MessageRole.USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> ChatMessage:
        return cls(role=MessageRole.ASSISTANT, content=content)

    def to_wire(self) -> dict[str, str]:
        """Return the ``{role, content}`` dict both chat wire formats accept."""
        return {"role": self.role.value, "content": self.content}


# ---------------------------------------------------------------------------
# Provider configuration
# ---------------------------------------------------------------------------
class ProviderKind(str, Enum):  # noqa: UP042 — StrEnum requires Python 3.11+
    """Closed set of chat wire formats.

    OPENAI_COMPATIBLE speaks SSE on ``/v1/chat/completions``; OLLAMA speaks
    newline-delimited JSON on ``/api/chat``.
    """

    OPENAI_COMPATIBLE = "OPENAI_COMPATIBLE"
    OLLAMA = "OLLAMA"


class ProviderConfig(BaseModel):
    """Everything the inference gateway needs for one request."""

    model_config = ConfigDict(frozen=True)

    provider_name: str = Field(default="openai", description="Preset name used in logs and errors.")
    provider_kind: ProviderKind = Field(default=ProviderKind.OPENAI_COMPATIBLE)
    base_url: str = Field(description="Server root, without the /v1 or /api path.")
    api_key: str = Field(default="", repr=False)
    model_name: str
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=4096, gt=0)
    context_token_budget: int = Field(default=16000, gt=0)
    requires_api_key: bool = Field(default=True)
    fallback_models: list[str] = Field(
        default_factory=list, description="Returned by list_models() when the server can't be asked."
    )
    request_timeout: float = Field(default=120.0, gt=0)


class EmbeddingConfig(BaseModel):
    """Endpoint settings for the embedding client."""

    model_config = ConfigDict(frozen=True)

    provider_name: str = Field(default="embedding")
    base_url: str = Field(default="", description="Either a versioned root or the full /embeddings URL.")
    api_key: str = Field(default="", repr=False)
    model_name: str = Field(default="")
    batch_size: int = Field(default=10, gt=0)
    request_timeout: float = Field(default=60.0, gt=0)

    @property
    def is_configured(self) -> bool:
        return bool(self.base_url and self.api_key and self.model_name)


# ---------------------------------------------------------------------------
# Streaming
# ---------------------------------------------------------------------------
class RequestState(str, Enum):  # noqa: UP042 — StrEnum requires Python 3.11+
    """Lifecycle of one inference request.

    IDLE -> CONNECTING -> STREAMING -> {COMPLETED | FAILED | CANCELLED}.
    Terminal states are final.
    """

    IDLE = "IDLE"
    CONNECTING = "CONNECTING"
    STREAMING = "STREAMING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in (RequestState.COMPLETED, RequestState.FAILED, RequestState.CANCELLED)


class TokenEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["token"] = "token"
    text: str


class CompletedEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["completed"] = "completed"


class FailedEvent(BaseModel):
    """Terminal failure.  ``status_code``/``body`` are set for PROTOCOL_ERROR."""

    model_config = ConfigDict(frozen=True)

    type: Literal["failed"] = "failed"
    kind: ErrorKind
    message: str
    status_code: int | None = None
    body: str | None = None


class CancelledEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["cancelled"] = "cancelled"


StreamEvent = Union[TokenEvent, CompletedEvent, FailedEvent, CancelledEvent]

TERMINAL_EVENT_TYPES = (CompletedEvent, FailedEvent, CancelledEvent)
