"""One in-flight streaming chat request.

:class:`ChatStream` is the handle returned by
:meth:`~paperlens.providers.llm.gateway.InferenceGateway.send_message`.
Nothing touches the network until the handle is iterated; iteration
performs the POST, feeds each response line through the wire format's
parser and yields :data:`~paperlens.models.chat.StreamEvent` objects.

State machine::

    IDLE ──► CONNECTING ──► STREAMING ──► COMPLETED
      │           │             │
      └───────────┴─────────────┴──► FAILED | CANCELLED

Terminal states never change again.  :meth:`ChatStream.cancel` may be
called from any task: the state flips to CANCELLED at once, the next
received line is discarded, and the stream ends with a single
``CancelledEvent``.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
from contextlib import aclosing
from typing import Any

import httpx
import structlog

from paperlens.interfaces.inference_gateway import IChatStream
from paperlens.models.chat import (
    CancelledEvent,
    CompletedEvent,
    FailedEvent,
    ProviderConfig,
    RequestState,
    StreamEvent,
    TokenEvent,
)
from paperlens.providers.llm.wire_formats import ChatWireFormat
from paperlens.utils.errors import (
    DecodeError,
    NetworkFailureError,
    PaperLensError,
    ProtocolError,
    RequestCancelledError,
)

logger = structlog.get_logger(logger_name=__name__)


class ChatStream(IChatStream):
    """Streaming handle for a single chat completion.

    Parameters
    ----------
    client:
        Shared ``httpx.AsyncClient``; the stream never closes it.
    wire_format:
        Request builder and line parser for the provider kind.
    config:
        Provider configuration the request was built from.
    url:
        Fully resolved chat endpoint.
    body:
        JSON request body.
    on_finish:
        Called with the stream once it reaches a terminal state.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        wire_format: ChatWireFormat,
        config: ProviderConfig,
        url: str,
        body: dict[str, Any],
        on_finish: Callable[[ChatStream], None] | None = None,
    ) -> None:
        self._client = client
        self._format = wire_format
        self._config = config
        self._url = url
        self._body = body
        self._on_finish = on_finish
        self._state = RequestState.IDLE
        self._cancel_requested = False
        self._started = False
        self._error: PaperLensError | None = None

    # ------------------------------------------------------------------
    # IChatStream implementation
    # ------------------------------------------------------------------

    @property
    def state(self) -> RequestState:
        return self._state

    @property
    def error(self) -> PaperLensError | None:
        return self._error

    def cancel(self) -> None:
        if self._state.is_terminal:
            return
        self._cancel_requested = True
        self._transition(RequestState.CANCELLED)
        logger.info("chat_stream_cancelled", provider=self._config.provider_name)

    def __aiter__(self) -> AsyncIterator[StreamEvent]:
        if self._started:
            raise RuntimeError("A chat stream can only be iterated once")
        self._started = True
        return self._run()

    async def collect(self) -> str:
        parts: list[str] = []
        async with aclosing(self.__aiter__()) as events:
            async for event in events:
                if isinstance(event, TokenEvent):
                    parts.append(event.text)
        if self._state is RequestState.CANCELLED:
            raise RequestCancelledError(provider_name=self._config.provider_name)
        if self._error is not None:
            raise self._error
        return "".join(parts)

    # ------------------------------------------------------------------
    # Request lifecycle
    # ------------------------------------------------------------------

    def _transition(self, new_state: RequestState) -> bool:
        if self._state.is_terminal:
            return False
        self._state = new_state
        if new_state.is_terminal and self._on_finish is not None:
            self._on_finish(self)
        return True

    def _fail(self, error: PaperLensError) -> StreamEvent:
        if self._cancel_requested:
            return CancelledEvent()
        self._error = error
        self._transition(RequestState.FAILED)
        logger.warning(
            "chat_stream_failed",
            provider=self._config.provider_name,
            error_kind=error.kind.value,
            error=str(error),
        )
        status_code = error.status_code if isinstance(error, ProtocolError) else None
        body = error.body if isinstance(error, ProtocolError) else None
        return FailedEvent(kind=error.kind, message=str(error), status_code=status_code, body=body)

    async def _run(self) -> AsyncIterator[StreamEvent]:
        if self._cancel_requested:
            yield CancelledEvent()
            return

        provider = self._config.provider_name
        self._transition(RequestState.CONNECTING)
        headers = self._format.build_headers(self._config)
        tokens = 0

        try:
            async with self._client.stream(
                "POST",
                self._url,
                json=self._body,
                headers=headers,
                timeout=self._config.request_timeout,
            ) as response:
                if response.status_code != 200:
                    raw = await response.aread()
                    yield self._fail(
                        ProtocolError(
                            status_code=response.status_code,
                            body=raw.decode("utf-8", errors="replace"),
                            provider_name=provider,
                        )
                    )
                    return

                if self._cancel_requested:
                    yield CancelledEvent()
                    return
                self._transition(RequestState.STREAMING)

                async for line in response.aiter_lines():
                    if self._cancel_requested:
                        break
                    parsed = self._format.parse_line(line)
                    if parsed.error is not None:
                        yield self._fail(
                            ProtocolError(
                                status_code=response.status_code,
                                body=parsed.error,
                                provider_name=provider,
                                message=f"Stream error: {parsed.error}",
                            )
                        )
                        return
                    if parsed.token is not None:
                        tokens += 1
                        yield TokenEvent(text=parsed.token)
                    if parsed.done:
                        break
        except httpx.DecodingError as exc:
            yield self._fail(
                DecodeError(
                    message=f"Chat response body could not be decoded: {exc}",
                    provider_name=provider,
                )
            )
            return
        except (httpx.HTTPError, httpx.StreamError) as exc:
            yield self._fail(
                NetworkFailureError(
                    message=f"Chat request to {self._url} failed: {exc}",
                    provider_name=provider,
                )
            )
            return
        except asyncio.CancelledError:
            self._cancel_requested = True
            self._transition(RequestState.CANCELLED)
            raise

        if self._cancel_requested:
            yield CancelledEvent()
            return

        self._transition(RequestState.COMPLETED)
        logger.debug("chat_stream_completed", provider=provider, tokens=tokens)
        yield CompletedEvent()
