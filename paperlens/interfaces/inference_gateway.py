"""Abstract base classes for the streaming inference gateway.

Defines the provider-agnostic chat contract.  A request is started with
:meth:`IInferenceGateway.send_message`, which returns an
:class:`IChatStream` handle.  The handle is pulled as an async iterator of
:data:`~paperlens.models.chat.StreamEvent` and can be cancelled from any
task.  Keeping the wire format (SSE vs NDJSON) behind this contract means
the chat session and briefing service never know which backend answered.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from paperlens.models.chat import ChatMessage, RequestState, StreamEvent
from paperlens.utils.errors import PaperLensError


class IChatStream(ABC):
    """Handle for one in-flight inference request.

    Iterating the handle performs the request.  Every stream ends with
    exactly one terminal event (``CompletedEvent``, ``FailedEvent`` or
    ``CancelledEvent``); no events follow it.
    """

    @property
    @abstractmethod
    def state(self) -> RequestState:
        """Current lifecycle state of the request."""

    @property
    @abstractmethod
    def error(self) -> PaperLensError | None:
        """The typed error behind the ``FailedEvent``, if the stream failed."""

    @abstractmethod
    def cancel(self) -> None:
        """Stop the request.

        Moves a non-terminal request to ``CANCELLED`` immediately and
        suppresses all further token events.  Idempotent; a no-op once the
        request reached a terminal state.
        """

    @abstractmethod
    def __aiter__(self) -> AsyncIterator[StreamEvent]:
        """Perform the request, yielding events as they arrive."""

    @abstractmethod
    async def collect(self) -> str:
        """Consume the stream and return the concatenated token text.

        Raises
        ------
        paperlens.utils.errors.PaperLensError
            The typed error behind a ``FailedEvent``.
        paperlens.utils.errors.RequestCancelledError
            If the stream was cancelled.
        """


# Concrete implementation: InferenceGateway (dispatches on ProviderKind)
# Located in: paperlens/providers/llm/gateway.py
class IInferenceGateway(ABC):
    """Contract for streaming chat backends."""

    @abstractmethod
    def send_message(self, history: list[ChatMessage], system_prompt: str) -> IChatStream:
        """Start a chat request.

        Parameters
        ----------
        history:
            The conversation so far, oldest first, ending with the new user
            message.
        system_prompt:
            Instruction message sent ahead of the history.

        Returns
        -------
        IChatStream
            A handle in state ``IDLE``; the HTTP request is made when it is
            iterated.

        Raises
        ------
        paperlens.utils.errors.InvalidConfigurationError
            If the provider needs an API key that is not set, or the base
            URL is malformed.
        """

    @abstractmethod
    async def test_connection(self) -> bool:
        """Return ``True`` if the backend answers its model-list endpoint with 200.

        Raises
        ------
        paperlens.utils.errors.InvalidConfigurationError
            If the configuration is unusable.
        paperlens.utils.errors.NetworkFailureError
            If the backend cannot be reached.
        """

    @abstractmethod
    async def list_models(self) -> list[str]:
        """Return model identifiers offered by the backend.

        Best-effort: any failure falls back to the provider's static
        default list instead of raising.
        """

    @abstractmethod
    def cancel(self) -> None:
        """Cancel the most recent live stream; idempotent."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return the configured provider preset name."""
