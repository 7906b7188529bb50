from .chat import (
    ChatMessage,
    StreamChunk,
    ToolCallFragment,
    assistant_tool_call_message,
    tool_result_message,
)
from .tool import ToolCallRequest, ToolCallResult, parse_arguments

__all__ = [
    "ChatMessage",
    "StreamChunk",
    "ToolCallFragment",
    "assistant_tool_call_message",
    "tool_result_message",
    "ToolCallRequest",
    "ToolCallResult",
    "parse_arguments",
]
