"""Conversation orchestration for one open document.

A :class:`ChatSession` owns the message history, the
:class:`~paperlens.services.context_assembler.ContextAssembler` for the
document and the inference gateway.  Each :meth:`ChatSession.send`:

1. stops any reply still streaming (one live stream per conversation),
2. appends the user message,
3. assembles document context and substitutes it into the system prompt,
4. streams the reply, yielding every event to the caller.

When the stream ends the reply is appended to the history if any text
arrived.  A failed reply keeps its partial text followed by an
``[Error: ...]`` note and records :attr:`ChatSession.last_error`; a
cancelled reply keeps its partial text and is never treated as an error.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import aclosing

import structlog

from paperlens.config.prompts import (
    DEFAULT_SYSTEM_PROMPT,
    SelectionAction,
    render_selection_prompt,
    render_system_prompt,
)
from paperlens.interfaces.document_source import IDocumentSource
from paperlens.interfaces.inference_gateway import IChatStream, IInferenceGateway
from paperlens.models.chat import ChatMessage, RequestState, StreamEvent, TokenEvent
from paperlens.models.document import PageRangeOption, TextChunk
from paperlens.services.context_assembler import ContextAssembler
from paperlens.utils.errors import PaperLensError, RequestCancelledError

logger = structlog.get_logger(logger_name=__name__)


class ChatSession:
    """Question answering over the currently open document.

    Parameters
    ----------
    gateway:
        Streaming inference backend.
    assembler:
        Builds the per-turn document context.
    system_prompt:
        Template containing a ``{pdf_content}`` placeholder.
    """

    def __init__(
        self,
        gateway: IInferenceGateway,
        assembler: ContextAssembler,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
    ) -> None:
        self._gateway = gateway
        self._assembler = assembler
        self._system_prompt = system_prompt
        self._history: list[ChatMessage] = []
        self._stream: IChatStream | None = None
        self._partial: list[str] = []
        self._last_error: PaperLensError | None = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def history(self) -> list[ChatMessage]:
        return list(self._history)

    @property
    def last_error(self) -> PaperLensError | None:
        return self._last_error

    @property
    def is_generating(self) -> bool:
        return self._stream is not None and not self._stream.state.is_terminal

    @property
    def current_text(self) -> str:
        """Reply text received so far for the live stream."""
        return "".join(self._partial)

    @property
    def assembler(self) -> ContextAssembler:
        return self._assembler

    # ------------------------------------------------------------------
    # Document
    # ------------------------------------------------------------------

    async def open_document(self, document: IDocumentSource) -> list[TextChunk]:
        """Index *document* for this conversation."""
        return await self._assembler.ingest_document(document)

    def set_selection(self, text: str | None) -> None:
        self._assembler.set_selection(text)

    # ------------------------------------------------------------------
    # Conversation
    # ------------------------------------------------------------------

    async def send(
        self,
        question: str,
        page_range_option: PageRangeOption = PageRangeOption.ALL,
        current_page: int = 0,
        custom_range: str = "",
    ) -> AsyncIterator[StreamEvent]:
        """Ask *question* and yield the reply's stream events.

        Blank questions are ignored (nothing is yielded).

        Raises
        ------
        InvalidConfigurationError
            If the gateway configuration is unusable.  The user message is
            still recorded.
        """
        if not question.strip():
            logger.debug("blank_question_ignored")
            return

        self.stop()
        self._last_error = None
        self._history.append(ChatMessage.user(question))

        context = await self._assembler.build_context(
            question,
            page_range_option=page_range_option,
            custom_range=custom_range,
            current_page=current_page,
        )
        system_prompt = render_system_prompt(self._system_prompt, context.text)
        logger.info(
            "chat_turn_started",
            context_source=context.source.value,
            context_tokens=context.estimated_tokens,
            history=len(self._history),
        )

        stream = self._gateway.send_message(list(self._history), system_prompt)
        self._stream = stream
        self._partial = []
        try:
            async with aclosing(stream.__aiter__()) as events:
                async for event in events:
                    if isinstance(event, TokenEvent) and self._stream is stream:
                        self._partial.append(event.text)
                    yield event
        finally:
            if self._stream is stream:
                # Caller abandoned the iteration early.
                if not stream.state.is_terminal:
                    stream.cancel()
                self._finish()

    async def ask(
        self,
        question: str,
        page_range_option: PageRangeOption = PageRangeOption.ALL,
        current_page: int = 0,
        custom_range: str = "",
    ) -> str:
        """Send *question* and return the full reply text.

        Raises
        ------
        PaperLensError
            The typed error if the reply failed.
        RequestCancelledError
            If the reply was stopped.
        """
        before = len(self._history)
        cancelled = False
        async for event in self.send(question, page_range_option, current_page, custom_range):
            cancelled = event.type == "cancelled"
        if self._last_error is not None:
            raise self._last_error
        if cancelled:
            raise RequestCancelledError(provider_name=self._gateway.get_provider_name())
        replies = self._history[before + 1 :]
        return replies[-1].content if replies else ""

    def run_selection_action(
        self,
        action: SelectionAction,
        selection: str,
        page_range_option: PageRangeOption = PageRangeOption.ALL,
        current_page: int = 0,
    ) -> AsyncIterator[StreamEvent]:
        """Translate, explain or summarize *selection* as a normal chat turn."""
        prompt = render_selection_prompt(action, selection)
        return self.send(prompt, page_range_option, current_page)

    def stop(self) -> None:
        """Cancel the live reply, keeping whatever text already arrived."""
        if self._stream is None:
            return
        self._stream.cancel()
        self._finish()

    def clear(self) -> None:
        """Stop generating and forget the history and the document index."""
        self.stop()
        self._history.clear()
        self._last_error = None
        self._assembler.clear()

    async def estimate_context_tokens(
        self,
        page_range_option: PageRangeOption = PageRangeOption.ALL,
        current_page: int = 0,
        custom_range: str = "",
    ) -> int:
        """Estimated tokens of the context a question-less turn would send."""
        context = await self._assembler.build_context(
            "",
            page_range_option=page_range_option,
            selection_text="",
            custom_range=custom_range,
            current_page=current_page,
        )
        return context.estimated_tokens

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _finish(self) -> None:
        stream = self._stream
        if stream is None:
            return
        self._stream = None
        reply = "".join(self._partial)
        self._partial = []

        if stream.state is RequestState.FAILED:
            self._last_error = stream.error
            if reply:
                reply += f"\n\n[Error: {stream.error}]"

        if reply:
            self._history.append(ChatMessage.assistant(reply))
        logger.info("chat_turn_finished", state=stream.state.value, reply_chars=len(reply))
