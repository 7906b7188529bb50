"""
Streaming variant of the tool-calling loop.

A ``StreamingTurn`` consumes one provider stream and turns it into typed
events. Tool-call fragments are accumulated per call id; when the provider
finishes with ``tool_calls`` every open call is executed in the order it was
opened. The turn never starts a follow-up completion itself: the ``complete``
event carries the messages to append, and the caller decides whether to
stream again.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import (
    TYPE_CHECKING,
    Any,
    AsyncGenerator,
    AsyncIterator,
    ClassVar,
    Optional,
    Sequence,
    Union,
)

from relocation_agent.assistant import (
    build_request_messages,
    conversation_tools,
    request_params,
)
from relocation_agent.errors import StreamProtocolError, ToolValidationError
from relocation_agent.params import ModelConfig
from relocation_agent.prompts import SYSTEM_PROMPT
from relocation_agent.tools.base import ToolContext
from relocation_agent.tools.registry import ToolRegistry
from relocation_agent.types import (
    ChatMessage,
    ToolCallFragment,
    ToolCallRequest,
    ToolCallResult,
    assistant_tool_call_message,
    tool_result_message,
)

if TYPE_CHECKING:
    from relocation_agent.client import BaseAsyncLLM

logger = logging.getLogger(__name__)

__all__ = [
    "StreamState",
    "TextDelta",
    "ReasoningDelta",
    "ToolCallStart",
    "ToolCallArgs",
    "ToolCallComplete",
    "StreamError",
    "StreamComplete",
    "StreamEvent",
    "PendingToolCall",
    "ToolCallAccumulator",
    "StreamingTurn",
    "stream_ai_response",
]


class StreamState(str, Enum):
    IDLE = "idle"
    STREAMING = "streaming"
    TOOL_CALL_ACCUMULATING = "tool_call_accumulating"
    TOOL_EXECUTING = "tool_executing"
    COMPLETE = "complete"
    ERROR = "error"


# --- events ------------------------------------------------------------------


@dataclass(frozen=True)
class TextDelta:
    type: ClassVar[str] = "text_delta"
    content: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "content": self.content}


@dataclass(frozen=True)
class ReasoningDelta:
    type: ClassVar[str] = "reasoning"
    content: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "content": self.content}


@dataclass(frozen=True)
class ToolCallStart:
    type: ClassVar[str] = "tool_call_start"
    call_id: str
    tool_name: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "toolName": self.tool_name, "callId": self.call_id}


@dataclass(frozen=True)
class ToolCallArgs:
    type: ClassVar[str] = "tool_call_args"
    call_id: str
    args: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "callId": self.call_id, "args": self.args}


@dataclass(frozen=True)
class ToolCallComplete:
    type: ClassVar[str] = "tool_call_complete"
    call_id: str
    tool_name: str
    result: str
    arguments: dict[str, Any] = field(default_factory=dict)
    is_error: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "callId": self.call_id,
            "toolName": self.tool_name,
            "result": self.result,
        }


@dataclass(frozen=True)
class StreamError:
    type: ClassVar[str] = "error"
    error: str
    tool_name: Optional[str] = None
    call_id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "error": self.error}


@dataclass(frozen=True)
class StreamComplete:
    type: ClassVar[str] = "complete"
    full_content: str
    tool_calls: list[ToolCallResult] = field(default_factory=list)
    messages: list[ChatMessage] = field(default_factory=list)
    reasoning: str = ""

    @property
    def needs_follow_up(self) -> bool:
        """True when tool results were produced and the model has not answered them yet."""
        return bool(self.tool_calls)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "fullContent": self.full_content,
            "toolCalls": [call.to_wire() for call in self.tool_calls],
        }


StreamEvent = Union[
    TextDelta,
    ReasoningDelta,
    ToolCallStart,
    ToolCallArgs,
    ToolCallComplete,
    StreamError,
    StreamComplete,
]


# --- accumulation ------------------------------------------------------------


@dataclass
class PendingToolCall:
    id: str
    name: str
    index: int
    parts: list[str] = field(default_factory=list)

    @property
    def arguments(self) -> str:
        return "".join(self.parts)

    def to_request(self) -> ToolCallRequest:
        return ToolCallRequest(id=self.id, name=self.name, arguments=self.arguments)


@dataclass(frozen=True)
class FeedResult:
    call: PendingToolCall
    opened: bool
    appended: str


class ToolCallAccumulator:
    """
    Rebuilds tool calls from interleaved stream fragments.

    Calls are keyed by id. Providers that send the id only on a call's first
    fragment tag later fragments with the same ``index``, which is resolved
    back to the id. Iteration follows the order calls were opened.
    """

    def __init__(self) -> None:
        self._calls: dict[str, PendingToolCall] = {}
        self._index_to_id: dict[int, str] = {}

    def _resolve_id(self, fragment: ToolCallFragment) -> str:
        if fragment.id:
            return fragment.id
        return self._index_to_id.get(fragment.index, f"call_{fragment.index}")

    def feed(self, fragment: ToolCallFragment) -> Optional[FeedResult]:
        """
        Apply one fragment.

        Returns None for fragments that carry nothing. Raises
        ``StreamProtocolError`` for argument text that belongs to no open call.
        """
        call_id = self._resolve_id(fragment)
        existing = self._calls.get(call_id)

        if fragment.name and existing is None:
            call = PendingToolCall(id=call_id, name=fragment.name, index=fragment.index)
            if fragment.arguments:
                call.parts.append(fragment.arguments)
            self._calls[call_id] = call
            self._index_to_id[fragment.index] = call_id
            return FeedResult(call=call, opened=True, appended=fragment.arguments)

        if not fragment.arguments:
            return None

        if existing is None:
            raise StreamProtocolError(
                f"Received arguments for unknown tool call {call_id!r}"
            )
        existing.parts.append(fragment.arguments)
        return FeedResult(call=existing, opened=False, appended=fragment.arguments)

    def pending(self) -> list[PendingToolCall]:
        return list(self._calls.values())

    def clear(self) -> None:
        self._calls.clear()
        self._index_to_id.clear()

    def __len__(self) -> int:
        return len(self._calls)

    def __bool__(self) -> bool:
        return bool(self._calls)


# --- the turn ----------------------------------------------------------------

# Process-wide, not per turn: tool tasks left running after their turn was
# closed. Holds only a reference until each task finishes; no turn reads it.
_DETACHED: set[asyncio.Task] = set()


def _discard_result(task: asyncio.Task) -> None:
    _DETACHED.discard(task)
    if not task.cancelled() and task.exception() is not None:
        logger.debug("Detached tool call failed: %s", task.exception())


class StreamingTurn:
    """
    One streamed assistant turn, consumed with ``async for``.

    The event sequence is produced lazily and can be iterated only once.
    Calling ``aclose()`` (or leaving ``async with``) stops it early and
    closes the provider stream.
    """

    def __init__(
        self,
        llm: "BaseAsyncLLM",
        registry: ToolRegistry,
        messages: Sequence[ChatMessage],
        *,
        params: dict[str, Any],
        context: ToolContext,
        parallel: bool = False,
        tool_timeout: Optional[float] = None,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> None:
        self._llm = llm
        self._registry = registry
        self._messages = list(messages)
        self._params = params
        self._ctx = context
        self._parallel = parallel
        self._tool_timeout = tool_timeout
        self.logger = logger or logging.getLogger(__name__)
        self.name = name or self.__class__.__name__

        self.state = StreamState.IDLE
        self.accumulator = ToolCallAccumulator()
        self.tool_results: list[ToolCallResult] = []
        self.follow_up_messages: list[ChatMessage] = []
        self._text: list[str] = []
        self._round_text: list[str] = []
        self._reasoning: list[str] = []
        self._tasks: list[asyncio.Task] = []
        self._events: Optional[AsyncGenerator[StreamEvent, None]] = None

    def _log(self, message: str, level: int = logging.INFO) -> None:
        self.logger.log(level, f"[{self.name}] {message}")

    @property
    def full_content(self) -> str:
        return "".join(self._text)

    @property
    def messages(self) -> list[ChatMessage]:
        """Request history this turn was started with."""
        return list(self._messages)

    # --- iteration ------------------------------------------------------------
    def __aiter__(self) -> AsyncIterator[StreamEvent]:
        if self._events is not None:
            raise RuntimeError("StreamingTurn can only be iterated once")
        self._events = self._run()
        return self._events

    async def aclose(self) -> None:
        if self._events is None:
            self._events = self._run()
        await self._events.aclose()

    async def __aenter__(self) -> "StreamingTurn":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def collect(self) -> list[StreamEvent]:
        """Drain the turn and return every event."""
        return [event async for event in self]

    # --- state machine --------------------------------------------------------
    async def _run(self) -> AsyncGenerator[StreamEvent, None]:
        self.state = StreamState.STREAMING
        stream = self._llm.stream(self._messages, params=self._params)
        try:
            try:
                async for chunk in stream:
                    if chunk.is_error:
                        self.state = StreamState.ERROR
                        yield StreamError(error=chunk.error or "Stream failed")
                        return

                    if chunk.reasoning:
                        self._reasoning.append(chunk.reasoning)
                        yield ReasoningDelta(content=chunk.reasoning)

                    if chunk.content:
                        self._text.append(chunk.content)
                        self._round_text.append(chunk.content)
                        yield TextDelta(content=chunk.content)

                    for fragment in chunk.tool_calls:
                        try:
                            fed = self.accumulator.feed(fragment)
                        except StreamProtocolError as exc:
                            self._log(str(exc), logging.WARNING)
                            yield StreamError(error=str(exc))
                            continue
                        if fed is None:
                            continue
                        self.state = StreamState.TOOL_CALL_ACCUMULATING
                        if fed.opened:
                            yield ToolCallStart(call_id=fed.call.id, tool_name=fed.call.name)
                        if fed.appended:
                            yield ToolCallArgs(call_id=fed.call.id, args=fed.appended)

                    if chunk.finish_reason == "tool_calls" and self.accumulator:
                        async for event in self._execute_pending():
                            yield event
                        self.state = StreamState.STREAMING
            except Exception as exc:
                self.state = StreamState.ERROR
                self._log(f"Stream failed: {exc}", logging.ERROR)
                yield StreamError(error=str(exc))
                return

            if self.accumulator:
                names = ", ".join(call.name for call in self.accumulator.pending())
                self.accumulator.clear()
                yield StreamError(
                    error=f"Stream ended before tool call(s) could run: {names}"
                )

            self.state = StreamState.COMPLETE
            yield StreamComplete(
                full_content=self.full_content,
                tool_calls=list(self.tool_results),
                messages=list(self.follow_up_messages),
                reasoning="".join(self._reasoning),
            )
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()
            self._detach_tasks()

    async def _execute_pending(self) -> AsyncGenerator[StreamEvent, None]:
        self.state = StreamState.TOOL_EXECUTING
        calls = [call.to_request() for call in self.accumulator.pending()]
        self.accumulator.clear()
        self._log(f"Executing {len(calls)} tool call(s)", logging.DEBUG)

        if self._parallel:
            self._tasks = [asyncio.ensure_future(self._run_call(call)) for call in calls]
            outcomes = self._tasks
        else:
            outcomes = calls

        round_results: list[ToolCallResult] = []
        for item in outcomes:
            if isinstance(item, asyncio.Future):
                result, error = await item
            else:
                result, error = await self._run_call(item)
            round_results.append(result)

            if isinstance(error, ToolValidationError):
                yield StreamError(
                    error=f"Failed to execute tool {result.name}: {error}",
                    tool_name=result.name,
                    call_id=result.id,
                )
            else:
                yield ToolCallComplete(
                    call_id=result.id,
                    tool_name=result.name,
                    result=result.result,
                    arguments=result.arguments,
                    is_error=result.is_error,
                )
        self._tasks = []

        self.tool_results.extend(round_results)
        self.follow_up_messages.append(
            assistant_tool_call_message("".join(self._round_text), calls)
        )
        self.follow_up_messages.extend(tool_result_message(r) for r in round_results)
        self._round_text = []

    async def _run_call(self, call: ToolCallRequest) -> tuple[ToolCallResult, Optional[Exception]]:
        return await self._registry.run_call(
            call.name,
            call.arguments,
            self._ctx,
            call_id=call.id,
            timeout=self._tool_timeout,
        )

    def _detach_tasks(self) -> None:
        for task in self._tasks:
            if task.done():
                continue
            _DETACHED.add(task)
            task.add_done_callback(_discard_result)
        self._tasks = []


def stream_ai_response(
    llm: "BaseAsyncLLM",
    registry: ToolRegistry,
    history: Sequence[ChatMessage],
    *,
    workflow: Optional[str] = None,
    config: Optional[ModelConfig] = None,
    context: Optional[ToolContext] = None,
    system_prompt: Optional[str] = SYSTEM_PROMPT,
    tool_timeout: Optional[float] = None,
) -> StreamingTurn:
    """
    Start a streamed turn over ``history``.

    Nothing is sent until the returned turn is iterated. To obtain the final
    answer after tools ran, stream again with
    ``history + complete.messages``.
    """
    config = config or ModelConfig()
    tools = conversation_tools(registry, workflow)
    return StreamingTurn(
        llm,
        registry,
        build_request_messages(history, system_prompt),
        params=request_params(config, tools),
        context=context or ToolContext(rpc=None),
        parallel=config.parallel_tool_calls,
        tool_timeout=tool_timeout,
    )
