"""OpenAI adapter for pure request/response transformations."""

from __future__ import annotations

import json
from typing import Any, Sequence

from openai.types.chat import ChatCompletion, ChatCompletionChunk

from relocation_agent.response import ChatResponse
from relocation_agent.types import (
    ChatMessage,
    StreamChunk,
    ToolCallFragment,
    ToolCallRequest,
)


def _raw_arguments(arguments: Any) -> str:
    if arguments is None:
        return ""
    if isinstance(arguments, str):
        return arguments
    return json.dumps(arguments)


class OpenAIRequestAdapter:
    """Adapter for converting between generic format and OpenAI format."""

    def to_provider(
        self, messages: Sequence[ChatMessage], params: dict[str, Any]
    ) -> dict[str, Any]:
        """Convert generic messages and params to OpenAI request format."""
        openai_messages: list[dict[str, Any]] = []
        for msg in messages:
            openai_msg: dict[str, Any] = {"role": msg["role"]}

            if msg.get("content") is not None:
                openai_msg["content"] = msg["content"]

            # Assistant messages that requested tools
            if msg.get("tool_calls"):
                openai_msg["tool_calls"] = [
                    {
                        "id": tc["id"],
                        "type": tc.get("type", "function"),
                        "function": {
                            "name": tc["function"]["name"],
                            "arguments": _raw_arguments(tc["function"].get("arguments")),
                        },
                    }
                    for tc in msg["tool_calls"]
                ]
                # OpenAI API: content should be null when tool_calls is present
                openai_msg.setdefault("content", None)

            if msg.get("tool_call_id"):
                openai_msg["tool_call_id"] = msg["tool_call_id"]

            if msg.get("name"):
                openai_msg["name"] = msg["name"]

            if "content" not in openai_msg and not openai_msg.get("tool_calls"):
                openai_msg["content"] = ""

            openai_messages.append(openai_msg)

        base_params = dict(params)
        base_params.pop("stream", None)
        extras = base_params.pop("extra", {})

        # Anthropic-only knobs are meaningless here
        extras = {k: v for k, v in extras.items() if k != "thinking"}

        if not base_params.get("tools"):
            base_params.pop("tools", None)
            base_params.pop("tool_choice", None)
            base_params.pop("parallel_tool_calls", None)

        for k, v in extras.items():
            base_params.setdefault(k, v)

        return {"messages": openai_messages, **base_params}

    def from_provider(self, raw: ChatCompletion) -> ChatResponse:
        """Convert OpenAI response to unified ChatResponse."""
        content = ""
        tool_calls = None
        reasoning = None
        finish_reason = None

        if raw.choices and raw.choices[0].message:
            choice = raw.choices[0]
            message = choice.message
            content = message.content or ""
            finish_reason = choice.finish_reason
            # Reasoning-capable compatible endpoints add this as an extra field
            reasoning = getattr(message, "reasoning_content", None)

            if message.tool_calls:
                tool_calls = [
                    ToolCallRequest(
                        id=tc.id,
                        name=tc.function.name,
                        arguments=_raw_arguments(tc.function.arguments),
                    )
                    for tc in message.tool_calls
                    if getattr(tc, "function", None) is not None
                ]

        return ChatResponse(
            content=content,
            tool_calls=tool_calls or None,
            reasoning=reasoning,
            finish_reason=finish_reason,
            raw=raw,
        )

    def stream_chunk(self, raw_chunk: ChatCompletionChunk) -> StreamChunk:
        """Normalize one streaming chunk."""
        chunk = StreamChunk(raw=raw_chunk)
        if not raw_chunk.choices:
            return chunk

        choice = raw_chunk.choices[0]
        delta = choice.delta
        if delta is not None:
            chunk.content = delta.content or ""
            chunk.reasoning = getattr(delta, "reasoning_content", None) or ""
            for tc in delta.tool_calls or []:
                function = tc.function
                chunk.tool_calls.append(
                    ToolCallFragment(
                        index=tc.index,
                        id=tc.id,
                        name=function.name if function else None,
                        arguments=(function.arguments or "") if function else "",
                    )
                )
        chunk.finish_reason = choice.finish_reason
        return chunk
