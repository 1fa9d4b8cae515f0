"""Unit tests for ChatSession — history, context injection, failure and stop handling."""

from __future__ import annotations

import pytest

from paperlens.config.prompts import SelectionAction
from paperlens.models.chat import CancelledEvent, FailedEvent, MessageRole, TokenEvent
from paperlens.models.document import PageRangeOption
from paperlens.providers.document.memory_document import InMemoryDocument
from paperlens.services.chat_session import ChatSession
from paperlens.services.context_assembler import SELECTION_HEADER, ContextAssembler
from paperlens.services.extraction.extractor import DocumentExtractor
from paperlens.services.ingestion.chunker import TextChunker
from paperlens.services.retrieval import Retriever
from paperlens.utils.errors import ErrorKind, ProtocolError, RequestCancelledError
from tests.conftest import ScriptedGateway, ScriptedStream, reply_stream

TEMPLATE = "Answer from the paper.\n\n{pdf_content}\n\nEnd of paper."


def _session(gateway: ScriptedGateway) -> ChatSession:
    assembler = ContextAssembler(
        extractor=DocumentExtractor(),
        chunker=TextChunker(chunk_size=30, overlap=0),
        retriever=Retriever(),
    )
    return ChatSession(gateway=gateway, assembler=assembler, system_prompt=TEMPLATE)


def _failing_stream(*tokens: str) -> ScriptedStream:
    error = ProtocolError(status_code=500, body="boom", provider_name="scripted")
    events = [TokenEvent(text=t) for t in tokens]
    events.append(FailedEvent(kind=ErrorKind.PROTOCOL_ERROR, message=str(error), status_code=500))
    return ScriptedStream(events, error=error)


def _roles(session: ChatSession) -> list[MessageRole]:
    return [m.role for m in session.history]


class TestSend:
    @pytest.mark.asyncio
    async def test_streams_reply_into_history(self, paper: InMemoryDocument) -> None:
        gateway = ScriptedGateway(reply_stream("Centroid ", "routing."))
        session = _session(gateway)
        await session.open_document(paper)

        events = [e async for e in session.send("How does routing work?")]

        assert [e.type for e in events] == ["token", "token", "completed"]
        assert _roles(session) == [MessageRole.USER, MessageRole.ASSISTANT]
        assert session.history[1].content == "Centroid routing."
        assert not session.is_generating
        assert session.last_error is None

    @pytest.mark.asyncio
    async def test_system_prompt_carries_document_context(self, paper: InMemoryDocument) -> None:
        gateway = ScriptedGateway()
        session = _session(gateway)
        await session.open_document(paper)

        await session.ask("Explain centroids")

        history, system_prompt = gateway.requests[0]
        assert system_prompt.startswith("Answer from the paper.\n\n--- Page")
        assert "learned centroids" in system_prompt
        assert system_prompt.endswith("End of paper.")
        assert [m.content for m in history] == ["Explain centroids"]

    @pytest.mark.asyncio
    async def test_history_accumulates_across_turns(self, paper: InMemoryDocument) -> None:
        gateway = ScriptedGateway(reply_stream("one"), reply_stream("two"))
        session = _session(gateway)
        await session.open_document(paper)

        assert await session.ask("first?") == "one"
        assert await session.ask("second?") == "two"

        sent, _ = gateway.requests[1]
        assert [m.content for m in sent] == ["first?", "one", "second?"]
        assert len(session.history) == 4

    @pytest.mark.asyncio
    @pytest.mark.parametrize("question", ["", "   ", "\n"])
    async def test_blank_question_is_ignored(self, question: str) -> None:
        gateway = ScriptedGateway()
        session = _session(gateway)
        assert [e async for e in session.send(question)] == []
        assert gateway.requests == []
        assert session.history == []

    @pytest.mark.asyncio
    async def test_without_document_context_is_empty(self) -> None:
        gateway = ScriptedGateway()
        await _session(gateway).ask("anything?")
        assert gateway.requests[0][1] == "Answer from the paper.\n\n\n\nEnd of paper."

    @pytest.mark.asyncio
    async def test_current_page_option(self, paper: InMemoryDocument) -> None:
        gateway = ScriptedGateway()
        session = _session(gateway)
        await session.open_document(paper)
        await session.ask("Summarize", PageRangeOption.CURRENT_PAGE, current_page=8)
        assert "--- Page 9 ---\nLimitations." in gateway.requests[0][1]
        assert "--- Page 8 ---" not in gateway.requests[0][1]

    @pytest.mark.asyncio
    async def test_selection_is_used_once(self, paper: InMemoryDocument) -> None:
        gateway = ScriptedGateway()
        session = _session(gateway)
        await session.open_document(paper)
        session.set_selection("a third of the cost")

        await session.ask("Why?")
        await session.ask("Why?")

        assert SELECTION_HEADER in gateway.requests[0][1]
        assert SELECTION_HEADER not in gateway.requests[1][1]


class TestFailures:
    @pytest.mark.asyncio
    async def test_partial_reply_keeps_error_note(self, paper: InMemoryDocument) -> None:
        session = _session(ScriptedGateway(_failing_stream("Par", "tial")))
        await session.open_document(paper)

        events = [e async for e in session.send("q?")]

        assert isinstance(events[-1], FailedEvent)
        assert session.history[-1].content == "Partial\n\n[Error: [scripted] HTTP 500: boom]"
        assert isinstance(session.last_error, ProtocolError)

    @pytest.mark.asyncio
    async def test_failure_without_text_adds_no_reply(self) -> None:
        session = _session(ScriptedGateway(_failing_stream()))
        with pytest.raises(ProtocolError):
            await session.ask("q?")
        assert _roles(session) == [MessageRole.USER]

    @pytest.mark.asyncio
    async def test_next_turn_resets_last_error(self) -> None:
        session = _session(ScriptedGateway(_failing_stream(), reply_stream("fine")))
        with pytest.raises(ProtocolError):
            await session.ask("q1?")
        assert await session.ask("q2?") == "fine"
        assert session.last_error is None


class TestStop:
    @pytest.mark.asyncio
    async def test_stop_keeps_partial_text(self) -> None:
        session = _session(ScriptedGateway(reply_stream("Hel", "lo", " world")))

        events = []
        async for event in session.send("q?"):
            events.append(event)
            if isinstance(event, TokenEvent):
                assert session.is_generating
                assert session.current_text == "Hel"
                session.stop()

        assert events == [TokenEvent(text="Hel"), CancelledEvent()]
        assert session.history[-1].content == "Hel"
        assert session.last_error is None
        assert not session.is_generating

    @pytest.mark.asyncio
    async def test_ask_raises_when_cancelled(self) -> None:
        stream = reply_stream("never")
        stream.cancel()
        session = _session(ScriptedGateway(stream))
        with pytest.raises(RequestCancelledError):
            await session.ask("q?")
        assert _roles(session) == [MessageRole.USER]

    @pytest.mark.asyncio
    async def test_new_question_supersedes_live_reply(self) -> None:
        gateway = ScriptedGateway(reply_stream("first ", "answer"), reply_stream("second"))
        session = _session(gateway)

        first = session.send("q1?")
        assert await first.__anext__() == TokenEvent(text="first ")

        assert await session.ask("q2?") == "second"
        await first.aclose()

        assert [m.content for m in session.history] == ["q1?", "first ", "q2?", "second"]
        assert gateway.streams[0].state.is_terminal

    @pytest.mark.asyncio
    async def test_abandoned_iteration_cancels_stream(self) -> None:
        gateway = ScriptedGateway(reply_stream("a", "b"))
        session = _session(gateway)

        events = session.send("q?")
        await events.__anext__()
        await events.aclose()

        assert gateway.streams[0].state.is_terminal
        assert not session.is_generating
        assert session.history[-1].content == "a"

    def test_stop_when_idle_is_a_no_op(self) -> None:
        session = _session(ScriptedGateway())
        session.stop()
        assert session.history == []


class TestSelectionActionsAndHousekeeping:
    @pytest.mark.asyncio
    async def test_selection_action_becomes_user_turn(self) -> None:
        gateway = ScriptedGateway()
        session = _session(gateway)
        events = [e async for e in session.run_selection_action(SelectionAction.EXPLAIN, "eq. 3")]
        assert events[-1].type == "completed"
        question = session.history[0].content
        assert question.startswith("Explain the following passage")
        assert question.endswith("eq. 3")

    @pytest.mark.asyncio
    async def test_clear(self, paper: InMemoryDocument) -> None:
        session = _session(ScriptedGateway())
        await session.open_document(paper)
        await session.ask("q?")
        session.clear()
        assert session.history == []
        assert session.assembler.document is None

    @pytest.mark.asyncio
    async def test_estimate_context_tokens_leaves_selection(self, paper: InMemoryDocument) -> None:
        session = _session(ScriptedGateway())
        await session.open_document(paper)
        session.set_selection("pending text")

        assert await session.estimate_context_tokens() > 0
        assert await session.estimate_context_tokens(PageRangeOption.CUSTOM, custom_range="1") > 0
        assert session.assembler.pending_selection == "pending text"

    @pytest.mark.asyncio
    async def test_history_is_a_copy(self) -> None:
        session = _session(ScriptedGateway())
        await session.ask("q?")
        session.history.clear()
        assert len(session.history) == 2
