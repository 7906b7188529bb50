"""Chat message and streaming chunk types shared by every provider."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from relocation_agent.types.tool import ToolCallRequest, ToolCallResult

# Provider-neutral chat message. History is kept in the OpenAI chat shape:
# {"role": ..., "content": ...}, assistant messages may carry "tool_calls",
# tool results use role "tool" with a "tool_call_id".
ChatMessage = dict[str, Any]


@dataclass(slots=True)
class ToolCallFragment:
    """One streamed piece of a tool call.

    ``id`` and ``name`` are usually present only on the fragment that opens the
    call; later fragments carry ``index`` and a slice of argument text.
    """
    index: int = 0
    id: Optional[str] = None
    name: Optional[str] = None
    arguments: str = ""


@dataclass
class StreamChunk:
    """A single provider stream chunk, normalized."""

    content: str = ""
    reasoning: str = ""
    tool_calls: list[ToolCallFragment] = field(default_factory=list)
    finish_reason: Optional[str] = None  # "stop" | "tool_calls" | provider value
    raw: Any = None
    error: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.error is not None


def assistant_tool_call_message(
    content: str | None, calls: Sequence[ToolCallRequest]
) -> ChatMessage:
    """Build the assistant message that announces ``calls`` to the provider."""
    return {
        "role": "assistant",
        "content": content or None,
        "tool_calls": [
            {
                "id": call.id,
                "type": "function",
                "function": {"name": call.name, "arguments": call.arguments or "{}"},
            }
            for call in calls
        ],
    }


def tool_result_message(result: ToolCallResult) -> ChatMessage:
    """Build the synthetic "tool" message carrying one call's result."""
    content = result.result
    if not isinstance(content, str):
        content = json.dumps(content)
    return {"role": "tool", "tool_call_id": result.id, "content": content}
