"""Scripted stand-ins for providers and the CRUD layer used across the tests."""

from __future__ import annotations

import asyncio
from typing import Any, AsyncGenerator, Sequence

from relocation_agent.bridge import LocalCaller
from relocation_agent.response import ChatResponse
from relocation_agent.types import ChatMessage, StreamChunk, ToolCallFragment, ToolCallRequest


class FakeLLM:
    """
    Replays scripted completions.

    ``responses`` feed ``chat`` one per call; ``streams`` feed ``stream`` one
    chunk list per call. Every request is recorded in ``calls``.
    """

    def __init__(
        self,
        responses: Sequence[ChatResponse] = (),
        streams: Sequence[Sequence[StreamChunk]] = (),
        model: str = "fake-model",
    ) -> None:
        self.model = model
        self._responses = list(responses)
        self._streams = [list(chunks) for chunks in streams]
        self.calls: list[dict[str, Any]] = []
        self.stream_closed = False

    async def chat(
        self, messages: Sequence[ChatMessage], *, params: dict[str, Any] | None = None
    ) -> ChatResponse:
        self.calls.append({"messages": list(messages), "params": params})
        if not self._responses:
            raise AssertionError("FakeLLM.chat called more often than scripted")
        return self._responses.pop(0)

    async def stream(
        self, messages: Sequence[ChatMessage], *, params: dict[str, Any] | None = None
    ) -> AsyncGenerator[StreamChunk, None]:
        self.calls.append({"messages": list(messages), "params": params})
        if not self._streams:
            raise AssertionError("FakeLLM.stream called more often than scripted")
        chunks = self._streams.pop(0)
        try:
            for chunk in chunks:
                await asyncio.sleep(0)
                yield chunk
        finally:
            self.stream_closed = True


def tool_call(call_id: str, name: str, arguments: str = "{}") -> ToolCallRequest:
    return ToolCallRequest(id=call_id, name=name, arguments=arguments)


def start(index: int, call_id: str, name: str) -> StreamChunk:
    return StreamChunk(tool_calls=[ToolCallFragment(index=index, id=call_id, name=name)])


def args(index: int, text: str) -> StreamChunk:
    return StreamChunk(tool_calls=[ToolCallFragment(index=index, arguments=text)])


def finish(reason: str = "stop") -> StreamChunk:
    return StreamChunk(finish_reason=reason)


class RecordingBackend:
    """In-process CRUD layer: records every procedure call and returns canned data."""

    def __init__(self, overrides: dict[str, Any] | None = None) -> None:
        self.calls: list[tuple[str, Any]] = []
        self._overrides = overrides or {}

    def _route(self, path: str, default: Any):
        async def procedure(payload: Any) -> Any:
            self.calls.append((path, payload))
            value = self._overrides.get(path, default)
            if isinstance(value, Exception):
                raise value
            return value(payload) if callable(value) else value

        return procedure

    def caller(self) -> LocalCaller:
        return LocalCaller(
            {
                "moves.list": self._route("moves.list", []),
                "moves.getById": self._route("moves.getById", {"id": "m1"}),
                "moves.createTestMove": self._route(
                    "moves.createTestMove", {"move": {"id": "m1"}, "employee": {"id": "e1"}}
                ),
                "moves.update": self._route("moves.update", {"id": "m1"}),
                "moves.updateEmployer": self._route("moves.updateEmployer", {"id": "m1"}),
                "housing.search": self._route(
                    "housing.search", {"options": [{"id": "h1"}, {"id": "h2"}]}
                ),
                "housing.select": self._route("housing.select", {"selected": True}),
                "services.request": self._route("services.request", {"id": "s1"}),
                "services.list": self._route("services.list", []),
                "financial.invoices.create": self._route(
                    "financial.invoices.create", {"id": "inv1"}
                ),
                "financial.taxGrossUps.calculate": self._route(
                    "financial.taxGrossUps.calculate", {"grossAmount": "1250.00"}
                ),
                "chat.sendEmail": self._route("chat.sendEmail", {"id": "email1"}),
                "chat.syncEmails": self._route("chat.syncEmails", {"count": 2}),
            }
        )

    def paths(self) -> list[str]:
        return [path for path, _ in self.calls]
