"""Tests for conversation persistence and the chat session."""

from relocation_agent.conversation import (
    ChatSession,
    ConversationMessage,
    InMemoryConversationStore,
)
from relocation_agent.response import ChatResponse
from relocation_agent.streaming import StreamComplete, TextDelta, ToolCallComplete
from relocation_agent.tools import build_registry
from relocation_agent.types import StreamChunk, ToolCallResult

from fakes import FakeLLM, RecordingBackend, args, finish, start, tool_call


def make_session(llm, backend=None, **kwargs):
    backend = backend or RecordingBackend()
    store = InMemoryConversationStore()
    session = ChatSession(llm, build_registry(), store, rpc=backend.caller(), **kwargs)
    return session, store, backend


class TestConversationMessage:
    """Test the stored message shape."""

    def test_dict_round_trip(self):
        """Test that tool calls are stored in their client-facing form."""
        message = ConversationMessage(
            "assistant",
            "done",
            [ToolCallResult(id="c1", name="list_moves", arguments={}, result="[]")],
        )
        data = message.to_dict()

        assert data["toolCalls"][0]["isError"] is False
        assert ConversationMessage.from_dict(data) == message
        assert message.to_chat_message() == {"role": "assistant", "content": "done"}


class TestSendMessage:
    """Test request/response turns through a session."""

    async def test_persists_both_sides(self):
        """Test that user and assistant messages are appended to the history."""
        llm = FakeLLM([ChatResponse(content="Hi there")])
        session, store, _ = make_session(llm)

        reply = await session.send_message("conv-1", "Hello")
        history = await store.get_history("conv-1")

        assert reply.content == "Hi there"
        assert [(m.role, m.content) for m in history] == [
            ("user", "Hello"),
            ("assistant", "Hi there"),
        ]

    async def test_history_is_replayed(self):
        """Test that earlier turns are sent with the next request."""
        llm = FakeLLM([ChatResponse(content="first"), ChatResponse(content="second")])
        session, _, _ = make_session(llm)

        await session.send_message("conv-1", "one")
        await session.send_message("conv-1", "two")

        sent = [m["content"] for m in llm.calls[1]["messages"][1:]]
        assert sent == ["one", "first", "two"]

    async def test_session_id_reaches_tools(self):
        """Test that inbox tools run against the conversation's id."""
        llm = FakeLLM(
            [
                ChatResponse(content="", tool_calls=[tool_call("c1", "sync_emails")]),
                ChatResponse(content="You have 2 new emails."),
            ]
        )
        session, store, backend = make_session(llm)

        reply = await session.send_message("conv-7", "Any mail?")

        assert backend.calls == [("chat.syncEmails", {"sessionId": "conv-7"})]
        history = await store.get_history("conv-7")
        assert history[-1].tool_calls == reply.tool_calls

    async def test_failed_turn_is_not_persisted(self):
        """Test that provider errors leave only the user's message behind."""
        llm = FakeLLM([ChatResponse(content="", error="down")])
        session, store, _ = make_session(llm)

        reply = await session.send_message("conv-1", "Hello")

        assert reply.is_error
        assert [m.role for m in await store.get_history("conv-1")] == ["user"]


class TestStreamMessage:
    """Test streamed turns through a session."""

    async def test_follows_up_after_tools(self):
        """Test that a tool round is followed by a second stream and one final completion."""
        llm = FakeLLM(
            streams=[
                [StreamChunk(content="Checking. "), start(0, "c1", "list_moves"), args(0, "{}"), finish("tool_calls")],
                [StreamChunk(content="No moves yet."), finish()],
            ]
        )
        session, store, _ = make_session(llm)

        events = [e async for e in session.stream_message("conv-1", "Show my moves")]

        completes = [e for e in events if isinstance(e, StreamComplete)]
        assert len(completes) == 1
        assert completes[0].full_content == "Checking. No moves yet."
        assert [c.id for c in completes[0].tool_calls] == ["c1"]
        assert any(isinstance(e, ToolCallComplete) for e in events)
        assert len(llm.calls) == 2

        history = await store.get_history("conv-1")
        assert history[-1].content == "Checking. No moves yet."
        assert history[-1].tool_calls[0].name == "list_moves"

    async def test_follow_up_rounds_are_capped(self):
        """Test that a model that keeps calling tools is stopped."""
        tool_round = [start(0, "c", "list_moves"), args(0, "{}"), finish("tool_calls")]
        llm = FakeLLM(streams=[list(tool_round), list(tool_round)])
        session, store, _ = make_session(llm, max_tool_rounds=1)

        events = [e async for e in session.stream_message("conv-1", "loop")]

        assert len(llm.calls) == 2
        assert isinstance(events[-1], StreamComplete)
        assert len(events[-1].tool_calls) == 2

    async def test_stream_error_is_not_persisted(self):
        """Test that a failed stream stores nothing for the assistant."""
        llm = FakeLLM(streams=[[StreamChunk(content="par"), StreamChunk(error="boom")]])
        session, store, _ = make_session(llm)

        events = [e async for e in session.stream_message("conv-1", "Hello")]

        assert events[0] == TextDelta(content="par")
        assert not any(isinstance(e, StreamComplete) for e in events)
        assert [m.role for m in await store.get_history("conv-1")] == ["user"]
