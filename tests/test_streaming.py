"""Tests for the streaming tool-calling loop."""

import asyncio
import json

import pytest

from relocation_agent.streaming import (
    ReasoningDelta,
    StreamComplete,
    StreamError,
    StreamState,
    TextDelta,
    ToolCallAccumulator,
    ToolCallArgs,
    ToolCallComplete,
    ToolCallStart,
    _DETACHED,
    stream_ai_response,
)
from relocation_agent.bridge import LocalCaller
from relocation_agent.errors import StreamProtocolError
from relocation_agent.params import ModelConfig
from relocation_agent.tools import build_registry
from relocation_agent.tools.base import ToolContext
from relocation_agent.types import StreamChunk, ToolCallFragment

from fakes import FakeLLM, RecordingBackend, args, finish, start

HISTORY = [{"role": "user", "content": "What's going on with my move?"}]


def make_turn(*streams, backend=None, **kwargs):
    backend = backend or RecordingBackend()
    llm = FakeLLM(streams=streams)
    turn = stream_ai_response(
        llm,
        build_registry(),
        HISTORY,
        context=ToolContext(rpc=backend.caller()),
        **kwargs,
    )
    return turn, llm, backend


class TestToolCallAccumulator:
    """Test reassembly of fragmented tool calls."""

    def test_index_only_fragments_resolve_to_id(self):
        """Test that fragments without an id are attributed through their index."""
        acc = ToolCallAccumulator()
        opened = acc.feed(ToolCallFragment(index=0, id="a", name="get_move", arguments='{"id"'))
        appended = acc.feed(ToolCallFragment(index=0, arguments=': "m1"}'))

        assert opened.opened is True
        assert appended.opened is False
        assert acc.pending()[0].arguments == '{"id": "m1"}'

    def test_empty_fragment_is_ignored(self):
        """Test that fragments carrying nothing are dropped."""
        acc = ToolCallAccumulator()
        acc.feed(ToolCallFragment(index=0, id="a", name="get_move"))

        assert acc.feed(ToolCallFragment(index=0)) is None
        assert len(acc) == 1

    def test_orphan_arguments_raise(self):
        """Test that argument text for a call never opened is a protocol error."""
        acc = ToolCallAccumulator()

        with pytest.raises(StreamProtocolError):
            acc.feed(ToolCallFragment(index=3, arguments="{}"))


class TestStreamingTurn:
    """Test event sequences produced by one streamed turn."""

    async def test_text_only(self):
        """Test that a plain answer streams text deltas and completes without follow-up."""
        turn, _, _ = make_turn(
            [
                StreamChunk(reasoning="thinking"),
                StreamChunk(content="Hel"),
                StreamChunk(content="lo"),
                finish(),
            ]
        )

        events = await turn.collect()

        assert events[0] == ReasoningDelta(content="thinking")
        assert events[1:3] == [TextDelta(content="Hel"), TextDelta(content="lo")]
        complete = events[-1]
        assert isinstance(complete, StreamComplete)
        assert complete.full_content == "Hello"
        assert complete.reasoning == "thinking"
        assert complete.needs_follow_up is False
        assert turn.state is StreamState.COMPLETE

    async def test_unknown_workflow_streams_with_full_catalog(self):
        """Test that a workflow with no tool domain does not stop the turn from streaming."""
        turn, llm, _ = make_turn([StreamChunk(content="Sure"), finish()], workflow="pre-move")

        events = await turn.collect()

        assert events[0] == TextDelta(content="Sure")
        assert isinstance(events[-1], StreamComplete)
        names = [t["function"]["name"] for t in llm.calls[0]["params"]["tools"]]
        assert names == build_registry().names()

    async def test_interleaved_fragments(self):
        """Test that interleaved calls are reassembled and executed in open order."""
        turn, _, backend = make_turn(
            [
                start(1, "b", "list_services"),
                start(0, "a", "get_move"),
                args(1, "{}"),
                args(0, '{"id": "m1"}'),
                finish("tool_calls"),
            ]
        )

        events = await turn.collect()

        assert events[:4] == [
            ToolCallStart(call_id="b", tool_name="list_services"),
            ToolCallStart(call_id="a", tool_name="get_move"),
            ToolCallArgs(call_id="b", args="{}"),
            ToolCallArgs(call_id="a", args='{"id": "m1"}'),
        ]
        completed = [e for e in events if isinstance(e, ToolCallComplete)]
        assert [e.call_id for e in completed] == ["b", "a"]
        assert completed[1].arguments == {"id": "m1"}
        assert backend.paths() == ["services.list", "moves.getById"]

        complete = events[-1]
        assert complete.needs_follow_up is True
        assert [r.id for r in complete.tool_calls] == ["b", "a"]
        assistant, *tool_messages = complete.messages
        assert assistant["role"] == "assistant"
        assert [c["id"] for c in assistant["tool_calls"]] == ["b", "a"]
        assert [m["tool_call_id"] for m in tool_messages] == ["b", "a"]

    async def test_malformed_arguments(self):
        """Test that unparseable arguments emit an error event but still feed back a result."""
        turn, _, backend = make_turn(
            [start(0, "a", "get_move"), args(0, '{"id": '), finish("tool_calls")]
        )

        events = await turn.collect()

        errors = [e for e in events if isinstance(e, StreamError)]
        assert len(errors) == 1
        assert errors[0].tool_name == "get_move"
        assert errors[0].call_id == "a"
        assert not any(isinstance(e, ToolCallComplete) for e in events)
        assert backend.calls == []

        complete = events[-1]
        assert complete.tool_calls[0].is_error is True
        assert complete.messages[-1]["tool_call_id"] == "a"

    async def test_unknown_tool_completes_with_inline_error(self):
        """Test that an unknown tool is reported as a completed call carrying the error."""
        turn, _, _ = make_turn([start(0, "a", "teleport"), args(0, "{}"), finish("tool_calls")])

        events = await turn.collect()

        completed = [e for e in events if isinstance(e, ToolCallComplete)]
        assert completed[0].is_error is True
        assert json.loads(completed[0].result)["message"] == 'Tool "teleport" not found'

    async def test_orphan_fragment(self):
        """Test that an unattributable fragment is reported and the turn goes on."""
        turn, _, _ = make_turn([args(4, '{"x": 1}'), StreamChunk(content="ok"), finish()])

        events = await turn.collect()

        assert isinstance(events[0], StreamError)
        assert events[1] == TextDelta(content="ok")
        assert isinstance(events[-1], StreamComplete)

    async def test_stream_ends_before_execution(self):
        """Test that calls left open when the stream stops are reported, not run."""
        turn, _, backend = make_turn([start(0, "a", "list_moves"), args(0, "{}")])

        events = await turn.collect()

        assert "list_moves" in events[-2].error
        assert events[-1].tool_calls == []
        assert backend.calls == []

    async def test_provider_error(self):
        """Test that a provider failure ends the turn with an error and no completion."""
        turn, _, _ = make_turn([StreamChunk(content="par"), StreamChunk(error="Connection problem")])

        events = await turn.collect()

        assert events == [TextDelta(content="par"), StreamError(error="Connection problem")]
        assert turn.state is StreamState.ERROR

    async def test_early_close_closes_provider_stream(self):
        """Test that leaving the turn early closes the provider stream."""
        turn, llm, _ = make_turn([StreamChunk(content="a"), StreamChunk(content="b"), finish()])

        async with turn:
            async for event in turn:
                assert event == TextDelta(content="a")
                break

        assert llm.stream_closed is True

    async def test_closed_turn_releases_running_tools(self):
        """Test that tools still running when a turn closes finish and are then forgotten."""
        release = asyncio.Event()

        async def slow_move(payload):
            await release.wait()
            return {"id": "m1"}

        async def services(payload):
            return []

        llm = FakeLLM(
            streams=[
                [
                    start(0, "a", "list_services"),
                    start(1, "b", "get_move"),
                    args(0, "{}"),
                    args(1, '{"id": "m1"}'),
                    finish("tool_calls"),
                ]
            ]
        )
        turn = stream_ai_response(
            llm,
            build_registry(),
            HISTORY,
            config=ModelConfig(parallel_tool_calls=True),
            context=ToolContext(
                rpc=LocalCaller({"services.list": services, "moves.getById": slow_move})
            ),
        )

        async with turn:
            async for event in turn:
                if isinstance(event, ToolCallComplete):
                    assert event.call_id == "a"
                    break

        assert len(_DETACHED) == 1
        release.set()
        for _ in range(10):
            await asyncio.sleep(0)
        assert not _DETACHED

    async def test_single_use(self):
        """Test that a turn cannot be iterated twice."""
        turn, _, _ = make_turn([finish()])

        await turn.collect()
        with pytest.raises(RuntimeError):
            turn.__aiter__()

    async def test_follow_up_stream(self):
        """Test that streaming again with the completion's messages yields the final answer."""
        backend = RecordingBackend()
        turn, llm, _ = make_turn(
            [start(0, "a", "list_moves"), args(0, "{}"), finish("tool_calls")],
            [StreamChunk(content="You have no moves."), finish()],
            backend=backend,
        )
        first = (await turn.collect())[-1]

        follow_up = stream_ai_response(
            llm,
            build_registry(),
            [*HISTORY, *first.messages],
            context=ToolContext(rpc=backend.caller()),
        )
        second = (await follow_up.collect())[-1]

        assert second.full_content == "You have no moves."
        sent = llm.calls[1]["messages"]
        assert sent[-1]["role"] == "tool"
        assert sent[-1]["tool_call_id"] == "a"

    def test_event_wire_shapes(self):
        """Test the camelCase dictionaries sent to clients."""
        assert ToolCallStart(call_id="a", tool_name="x").to_dict() == {
            "type": "tool_call_start",
            "toolName": "x",
            "callId": "a",
        }
        assert StreamComplete(full_content="hi").to_dict() == {
            "type": "complete",
            "fullContent": "hi",
            "toolCalls": [],
        }
