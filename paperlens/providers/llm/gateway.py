"""Streaming inference gateway for OpenAI-compatible and Ollama backends.

One gateway class serves every provider preset.  The
:class:`~paperlens.models.chat.ProviderKind` of the configuration selects a
wire format from :data:`~paperlens.providers.llm.wire_formats.WIRE_FORMATS`;
the gateway itself only validates configuration, resolves URLs, owns the
HTTP client and remembers the live stream so :meth:`InferenceGateway.cancel`
can stop it.
"""

from __future__ import annotations

import httpx
import structlog

from paperlens.interfaces.inference_gateway import IChatStream, IInferenceGateway
from paperlens.models.chat import ChatMessage, MessageRole, ProviderConfig
from paperlens.providers.llm.stream import ChatStream
from paperlens.providers.llm.wire_formats import WIRE_FORMATS, ChatWireFormat
from paperlens.utils.errors import InvalidConfigurationError, NetworkFailureError

logger = structlog.get_logger(logger_name=__name__)


class InferenceGateway(IInferenceGateway):
    """Chat gateway that dispatches on ``config.provider_kind``.

    Parameters
    ----------
    config:
        Provider settings for every request made through this gateway.
    http_client:
        Optional shared ``httpx.AsyncClient``.  When omitted the gateway
        creates one and closes it in :meth:`aclose`.
    """

    def __init__(
        self,
        config: ProviderConfig,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config
        self._format: ChatWireFormat = WIRE_FORMATS[config.provider_kind]
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=config.request_timeout)
        self._active: ChatStream | None = None

    @property
    def config(self) -> ProviderConfig:
        return self._config

    @property
    def active_stream(self) -> IChatStream | None:
        return self._active

    # ------------------------------------------------------------------
    # IInferenceGateway implementation
    # ------------------------------------------------------------------

    def send_message(self, history: list[ChatMessage], system_prompt: str) -> IChatStream:
        base = self._validate()
        messages = [{"role": MessageRole.SYSTEM.value, "content": system_prompt}]
        messages.extend(message.to_wire() for message in history)

        stream = ChatStream(
            client=self._http,
            wire_format=self._format,
            config=self._config,
            url=base + self._format.chat_path,
            body=self._format.build_body(self._config, messages),
            on_finish=self._stream_finished,
        )
        self._active = stream
        logger.info(
            "chat_request_prepared",
            provider=self._config.provider_name,
            model=self._config.model_name,
            wire_format=self._format.name,
            messages=len(messages),
        )
        return stream

    async def test_connection(self) -> bool:
        base = self._validate()
        url = base + self._format.models_path
        try:
            response = await self._http.get(
                url,
                headers=self._format.build_headers(self._config),
                timeout=self._format.connection_timeout,
            )
        except httpx.HTTPError as exc:
            raise NetworkFailureError(
                message=f"Could not reach {url}: {exc}",
                provider_name=self._config.provider_name,
            ) from exc

        ok = response.status_code == 200
        logger.info(
            "connection_test",
            provider=self._config.provider_name,
            status=response.status_code,
            ok=ok,
        )
        return ok

    async def list_models(self) -> list[str]:
        try:
            base = self._validate()
            response = await self._http.get(
                base + self._format.models_path,
                headers=self._format.build_headers(self._config),
                timeout=self._format.connection_timeout,
            )
            if response.status_code == 200:
                models = self._format.parse_models(response.json())
                if models:
                    return models
            logger.info(
                "model_list_unavailable",
                provider=self._config.provider_name,
                status=response.status_code,
            )
        except (InvalidConfigurationError, httpx.HTTPError, ValueError) as exc:
            logger.info(
                "model_list_fallback",
                provider=self._config.provider_name,
                error=str(exc),
            )
        return self.default_models()

    def cancel(self) -> None:
        if self._active is not None:
            self._active.cancel()

    def get_provider_name(self) -> str:
        return self._config.provider_name

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def default_models(self) -> list[str]:
        """Static model list used when the backend cannot be asked."""
        if self._config.fallback_models:
            return list(self._config.fallback_models)
        return list(self._format.default_models)

    async def aclose(self) -> None:
        """Cancel any live stream and close the HTTP client if we own it."""
        self.cancel()
        if self._owns_client:
            await self._http.aclose()

    def _stream_finished(self, stream: ChatStream) -> None:
        if self._active is stream:
            self._active = None

    def _validate(self) -> str:
        """Check the configuration and return the base URL without a trailing slash."""
        config = self._config
        base = config.base_url.strip().rstrip("/")
        try:
            url = httpx.URL(base)
        except httpx.InvalidURL as exc:
            raise InvalidConfigurationError(
                message=f"Malformed base URL: {config.base_url!r}",
                provider_name=config.provider_name,
            ) from exc
        if url.scheme not in ("http", "https") or not url.host:
            raise InvalidConfigurationError(
                message=f"Base URL must be an http(s) URL with a host: {config.base_url!r}",
                provider_name=config.provider_name,
            )
        if config.requires_api_key and not config.api_key.strip():
            raise InvalidConfigurationError(
                message="API key is required for this provider",
                provider_name=config.provider_name,
            )
        if not config.model_name.strip():
            raise InvalidConfigurationError(
                message="No model selected",
                provider_name=config.provider_name,
            )
        return base
