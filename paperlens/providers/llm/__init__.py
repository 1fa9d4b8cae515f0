"""Streaming chat backends.

One concrete implementation of IInferenceGateway
(paperlens/interfaces/inference_gateway.py):
    - InferenceGateway -- dispatches on ProviderKind to a wire format
        - OpenAISSEFormat    -- /v1/chat/completions, server-sent events
        - OllamaNDJSONFormat -- /api/chat, newline-delimited JSON

Each request is a ChatStream handle that can be iterated for events or
cancelled from another task.
"""

from paperlens.providers.llm.gateway import InferenceGateway
from paperlens.providers.llm.stream import ChatStream
from paperlens.providers.llm.wire_formats import (
    WIRE_FORMATS,
    OllamaNDJSONFormat,
    OpenAISSEFormat,
)

__all__ = [
    "WIRE_FORMATS",
    "ChatStream",
    "InferenceGateway",
    "OllamaNDJSONFormat",
    "OpenAISSEFormat",
]
