"""Chat wire formats: request construction and per-line response parsing.

Two incompatible streaming protocols sit behind the single inference
gateway.  Each is a small stateless parser object; the gateway picks one by
:class:`~paperlens.models.chat.ProviderKind` from :data:`WIRE_FORMATS`.

**OpenAI-compatible (SSE)** -- ``POST {base}/v1/chat/completions``::

    : keep-alive comment             -> ignored
    data: {"choices":[{"delta":{"content":"Hi"}}]}   -> token "Hi"
    data: [DONE]                     -> end of stream

**Ollama (NDJSON)** -- ``POST {base}/api/chat``::

    {"message":{"content":"Hi"},"done":false}        -> token "Hi"
    {"done":true}                                    -> end of stream

In both formats a line that fails to decode as JSON is skipped, not fatal.
A decoded object carrying an ``error`` field ends the stream as a failure.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Protocol

import structlog

from paperlens.models.chat import ProviderConfig, ProviderKind

logger = structlog.get_logger(logger_name=__name__)


@dataclass(frozen=True)
class ParsedLine:
    """Outcome of parsing one response line.

    All fields unset means the line carried nothing (keep-alive, unknown
    line, undecodable JSON, empty delta).
    """

    token: str | None = None
    done: bool = False
    error: str | None = None


SKIP = ParsedLine()
DONE = ParsedLine(done=True)


class ChatWireFormat(Protocol):
    """What the gateway needs from a wire format."""

    name: str
    chat_path: str
    models_path: str
    connection_timeout: float
    default_models: tuple[str, ...]

    def build_headers(self, config: ProviderConfig) -> dict[str, str]: ...

    def build_body(self, config: ProviderConfig, messages: list[dict[str, str]]) -> dict[str, Any]: ...

    def parse_line(self, line: str) -> ParsedLine: ...

    def parse_models(self, payload: Any) -> list[str]: ...


def _decode_object(payload: str) -> dict[str, Any] | None:
    try:
        value = json.loads(payload)
    except ValueError:
        logger.debug("stream_line_not_json", line=payload[:200])
        return None
    return value if isinstance(value, dict) else None


def _error_text(obj: dict[str, Any]) -> str | None:
    error = obj.get("error")
    if not error:
        return None
    if isinstance(error, dict):
        return str(error.get("message") or error)
    return str(error)


# ---------------------------------------------------------------------------
# OpenAI-compatible server-sent events
# ---------------------------------------------------------------------------

class OpenAISSEFormat:
    """``text/event-stream`` chat completions (OpenAI, SiliconFlow, DeepSeek, ...)."""

    name = "openai-sse"
    chat_path = "/v1/chat/completions"
    models_path = "/v1/models"
    connection_timeout = 10.0
    default_models: tuple[str, ...] = ("gpt-4o", "gpt-4o-mini", "gpt-4-turbo")

    _DATA_PREFIX = "data:"
    _DONE_SENTINEL = "[DONE]"

    def build_headers(self, config: ProviderConfig) -> dict[str, str]:
        headers = {"Accept": "text/event-stream"}
        if config.api_key:
            headers["Authorization"] = f"Bearer {config.api_key}"
        return headers

    def build_body(self, config: ProviderConfig, messages: list[dict[str, str]]) -> dict[str, Any]:
        return {
            "model": config.model_name,
            "messages": messages,
            "stream": True,
            "temperature": config.temperature,
            "max_tokens": config.max_tokens,
        }

    def parse_line(self, line: str) -> ParsedLine:
        line = line.rstrip("\r")
        if not line.strip() or line.startswith(":"):
            return SKIP
        if not line.startswith(self._DATA_PREFIX):
            return SKIP

        payload = line[len(self._DATA_PREFIX) :]
        if payload.startswith(" "):
            payload = payload[1:]
        if payload.strip() == self._DONE_SENTINEL:
            return DONE

        obj = _decode_object(payload)
        if obj is None:
            return SKIP
        error = _error_text(obj)
        if error:
            return ParsedLine(error=error)

        choices = obj.get("choices")
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            return SKIP
        delta = choices[0].get("delta")
        content = delta.get("content") if isinstance(delta, dict) else None
        if isinstance(content, str) and content:
            return ParsedLine(token=content)
        return SKIP

    def parse_models(self, payload: Any) -> list[str]:
        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, list):
            return []
        return [item["id"] for item in data if isinstance(item, dict) and isinstance(item.get("id"), str)]


# ---------------------------------------------------------------------------
# Ollama newline-delimited JSON
# ---------------------------------------------------------------------------

class OllamaNDJSONFormat:
    """Ollama's native ``/api/chat`` stream; no authentication."""

    name = "ollama-ndjson"
    chat_path = "/api/chat"
    models_path = "/api/tags"
    connection_timeout = 5.0
    default_models: tuple[str, ...] = ("llama3.2", "qwen2.5", "gemma2", "mistral")

    def build_headers(self, config: ProviderConfig) -> dict[str, str]:
        return {"Accept": "application/x-ndjson"}

    def build_body(self, config: ProviderConfig, messages: list[dict[str, str]]) -> dict[str, Any]:
        return {
            "model": config.model_name,
            "messages": messages,
            "stream": True,
            "options": {
                "temperature": config.temperature,
                "num_predict": config.max_tokens,
            },
        }

    def parse_line(self, line: str) -> ParsedLine:
        if not line.strip():
            return SKIP
        obj = _decode_object(line)
        if obj is None:
            return SKIP
        error = _error_text(obj)
        if error:
            return ParsedLine(error=error)
        if obj.get("done") is True:
            return DONE

        message = obj.get("message")
        content = message.get("content") if isinstance(message, dict) else None
        if isinstance(content, str) and content:
            return ParsedLine(token=content)
        return SKIP

    def parse_models(self, payload: Any) -> list[str]:
        models = payload.get("models") if isinstance(payload, dict) else None
        if not isinstance(models, list):
            return []
        return [m["name"] for m in models if isinstance(m, dict) and isinstance(m.get("name"), str)]


WIRE_FORMATS: dict[ProviderKind, ChatWireFormat] = {
    ProviderKind.OPENAI_COMPATIBLE: OpenAISSEFormat(),
    ProviderKind.OLLAMA: OllamaNDJSONFormat(),
}
