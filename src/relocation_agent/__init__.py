"""
Relocation Agent - LLM chat assistant that operates a relocation platform through tools.
"""

from .client import (
    BaseAsyncLLM,
    OpenAILLM,
    AnthropicLLM,
    GeminiLLM,
    create_llm,
)
from .config import Provider, Settings, get_api_key
from .response import ChatResponse
from .params import ModelConfig
from .types import ChatMessage, StreamChunk, ToolCallRequest, ToolCallResult
from .bridge import HttpRpcClient, LocalCaller, call_procedure
from .tools import ToolContext, ToolDefinition, ToolRegistry, build_registry, create_tool
from .assistant import AssistantReply, get_ai_response
from .streaming import StreamingTurn, stream_ai_response
from .flows import FlowOrchestrator, FlowResult, build_orchestrator
from .conversation import ChatSession, InMemoryConversationStore

__version__ = "0.1.0"

__all__ = [
    "BaseAsyncLLM",
    "OpenAILLM",
    "AnthropicLLM",
    "GeminiLLM",
    "create_llm",
    "Provider",
    "Settings",
    "get_api_key",
    "ChatResponse",
    "ModelConfig",
    "ChatMessage",
    "StreamChunk",
    "ToolCallRequest",
    "ToolCallResult",
    "HttpRpcClient",
    "LocalCaller",
    "call_procedure",
    "ToolContext",
    "ToolDefinition",
    "ToolRegistry",
    "build_registry",
    "create_tool",
    "AssistantReply",
    "get_ai_response",
    "StreamingTurn",
    "stream_ai_response",
    "FlowOrchestrator",
    "FlowResult",
    "build_orchestrator",
    "ChatSession",
    "InMemoryConversationStore",
]
