"""Anthropic adapter for pure request/response transformations."""

from __future__ import annotations

import json
from typing import Any, Sequence

from anthropic.types import Message

from relocation_agent.response import ChatResponse
from relocation_agent.types import (
    ChatMessage,
    StreamChunk,
    ToolCallFragment,
    ToolCallRequest,
    parse_arguments,
)

_STOP_REASONS = {
    "tool_use": "tool_calls",
    "end_turn": "stop",
    "stop_sequence": "stop",
    "max_tokens": "length",
}

# Keys only OpenAI-style endpoints understand
_OPENAI_ONLY_KEYS = ("reasoning_effort", "parallel_tool_calls", "verbosity")


def _tool_use_blocks(tool_calls: list[dict[str, Any]]) -> list[dict[str, Any]]:
    blocks = []
    for tc in tool_calls:
        func = tc["function"]
        try:
            tool_input = parse_arguments(func.get("arguments"))
        except ValueError:
            tool_input = {}
        blocks.append(
            {"type": "tool_use", "id": tc["id"], "name": func["name"], "input": tool_input}
        )
    return blocks


class AnthropicRequestAdapter:
    """Adapter for converting between generic format and Anthropic format."""

    def to_provider(
        self, messages: Sequence[ChatMessage], params: dict[str, Any]
    ) -> dict[str, Any]:
        """Convert generic messages and params to Anthropic request format."""
        anthropic_messages: list[dict[str, Any]] = []
        system_prompt: Any = ""
        open_tool_turn = False

        for msg in messages:
            if msg["role"] == "system":
                content = msg.get("content", "")
                system_prompt = content if isinstance(content, (str, list)) else str(content)
                continue

            # Tool results travel as user turns; consecutive results share one turn.
            if msg["role"] == "tool" or msg.get("tool_call_id"):
                block = {
                    "type": "tool_result",
                    "tool_use_id": msg["tool_call_id"],
                    "content": msg.get("content") or "",
                }
                previous = anthropic_messages[-1] if anthropic_messages else None
                if (
                    previous is not None
                    and previous["role"] == "user"
                    and isinstance(previous["content"], list)
                    and all(b.get("type") == "tool_result" for b in previous["content"])
                ):
                    previous["content"].append(block)
                else:
                    anthropic_messages.append({"role": "user", "content": [block]})
                continue

            anthropic_msg: dict[str, Any] = {"role": msg["role"]}
            content = msg.get("content")
            open_tool_turn = msg["role"] == "assistant" and bool(msg.get("tool_calls"))

            if msg.get("tool_calls"):
                blocks: list[dict[str, Any]] = []
                if isinstance(content, str) and content:
                    blocks.append({"type": "text", "text": content})
                blocks.extend(_tool_use_blocks(msg["tool_calls"]))
                anthropic_msg["content"] = blocks
            elif isinstance(content, (str, list)):
                anthropic_msg["content"] = content
            else:
                anthropic_msg["content"] = "" if content is None else str(content)

            anthropic_messages.append(anthropic_msg)

        base_params = dict(params)
        base_params.pop("stream", None)
        extras = dict(base_params.pop("extra", None) or {})
        for key in _OPENAI_ONLY_KEYS:
            base_params.pop(key, None)
            extras.pop(key, None)

        # Anthropic requires max_tokens
        if base_params.get("max_tokens") is None:
            base_params["max_tokens"] = 4096

        # With thinking on, a tool_use turn must be replayed with its signed
        # thinking blocks. History keeps only OpenAI-shaped messages, so the
        # follow-up to a tool round is sent without thinking.
        if open_tool_turn:
            extras.pop("thinking", None)
            base_params.pop("thinking", None)

        thinking = extras.get("thinking")
        if isinstance(thinking, dict) and thinking.get("budget_tokens"):
            budget = int(thinking["budget_tokens"])
            if base_params["max_tokens"] <= budget:
                base_params["max_tokens"] = budget + 4096

        if "stop" in base_params:
            stop = base_params.pop("stop")
            if stop:
                base_params["stop_sequences"] = stop if isinstance(stop, list) else [stop]

        if base_params.get("tools"):
            anthropic_tools = []
            for tool in base_params["tools"]:
                if tool.get("type") == "function":
                    func = tool["function"]
                    anthropic_tools.append(
                        {
                            "name": func["name"],
                            "description": func.get("description", ""),
                            "input_schema": func.get("parameters", {"type": "object"}),
                        }
                    )
                else:
                    anthropic_tools.append(tool)
            base_params["tools"] = anthropic_tools
            if base_params.get("tool_choice") == "auto":
                base_params["tool_choice"] = {"type": "auto"}
        else:
            base_params.pop("tools", None)
            base_params.pop("tool_choice", None)

        for k, v in extras.items():
            base_params.setdefault(k, v)

        request: dict[str, Any] = {"messages": anthropic_messages, **base_params}
        if system_prompt:
            request["system"] = system_prompt
        return request

    def from_provider(self, raw: Message) -> ChatResponse:
        """Convert Anthropic response to unified ChatResponse."""
        text_parts: list[str] = []
        thinking_parts: list[str] = []
        tool_calls: list[ToolCallRequest] = []

        for block in raw.content or []:
            if block.type == "text":
                text_parts.append(block.text)
            elif block.type == "thinking":
                thinking_parts.append(block.thinking)
            elif block.type == "tool_use":
                tool_input = dict(block.input) if hasattr(block.input, "items") else {}
                tool_calls.append(
                    ToolCallRequest(id=block.id, name=block.name, arguments=json.dumps(tool_input))
                )

        return ChatResponse(
            content="".join(text_parts),
            tool_calls=tool_calls or None,
            reasoning="".join(thinking_parts) or None,
            finish_reason=_STOP_REASONS.get(raw.stop_reason or "", raw.stop_reason),
            raw=raw,
        )

    def stream_chunk(self, raw_event: Any) -> StreamChunk:
        """Normalize one raw streaming event from ``messages.create(stream=True)``."""
        chunk = StreamChunk(raw=raw_event)
        event_type = getattr(raw_event, "type", None)

        if event_type == "content_block_start":
            block = raw_event.content_block
            if block.type == "tool_use":
                chunk.tool_calls.append(
                    ToolCallFragment(index=raw_event.index, id=block.id, name=block.name)
                )
        elif event_type == "content_block_delta":
            delta = raw_event.delta
            if delta.type == "text_delta":
                chunk.content = delta.text
            elif delta.type == "thinking_delta":
                chunk.reasoning = delta.thinking
            elif delta.type == "input_json_delta":
                chunk.tool_calls.append(
                    ToolCallFragment(index=raw_event.index, arguments=delta.partial_json)
                )
        elif event_type == "message_delta":
            stop_reason = getattr(raw_event.delta, "stop_reason", None)
            if stop_reason:
                chunk.finish_reason = _STOP_REASONS.get(stop_reason, stop_reason)

        return chunk
