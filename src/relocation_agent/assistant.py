"""
Request/response tool-calling loop.

One turn is at most two completions: the first may request tools, which are
executed and fed back, and the second produces the final answer.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional, Sequence

from relocation_agent.errors import UnknownWorkflowError
from relocation_agent.params import ModelConfig
from relocation_agent.prompts import NO_RESPONSE, SYSTEM_PROMPT, TOOLS_EXECUTED
from relocation_agent.tools.base import ToolContext
from relocation_agent.tools.registry import ToolRegistry
from relocation_agent.types import (
    ChatMessage,
    ToolCallRequest,
    ToolCallResult,
    assistant_tool_call_message,
    tool_result_message,
)

if TYPE_CHECKING:
    from relocation_agent.client import BaseAsyncLLM

logger = logging.getLogger(__name__)

__all__ = [
    "AssistantReply",
    "build_request_messages",
    "conversation_tools",
    "execute_tool_calls",
    "get_ai_response",
    "request_params",
]


@dataclass
class AssistantReply:
    """Outcome of one assistant turn."""

    content: str
    tool_calls: list[ToolCallResult] = field(default_factory=list)
    reasoning: Optional[str] = None
    model: Optional[str] = None
    error: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.error is not None


def build_request_messages(
    history: Sequence[ChatMessage], system_prompt: Optional[str] = SYSTEM_PROMPT
) -> list[ChatMessage]:
    """Prefix ``history`` with the system prompt unless it already starts with one."""
    messages = [dict(message) for message in history]
    if system_prompt and not (messages and messages[0].get("role") == "system"):
        messages.insert(0, {"role": "system", "content": system_prompt})
    return messages


def conversation_tools(
    registry: ToolRegistry, workflow: Optional[str]
) -> list[dict[str, Any]]:
    """Tool catalog for a conversation; a workflow with no tool domain gets the full catalog."""
    try:
        return registry.openai_tools(workflow)
    except UnknownWorkflowError:
        logger.warning("No tools for workflow %r; offering the full catalog", workflow)
        return registry.openai_tools()


def request_params(config: ModelConfig, tools: list[dict[str, Any]]) -> dict[str, Any]:
    params = config.as_params()
    if tools:
        params["tools"] = tools
        params["tool_choice"] = "auto"
    else:
        params.pop("parallel_tool_calls", None)
    return params


async def execute_tool_calls(
    registry: ToolRegistry,
    calls: Sequence[ToolCallRequest],
    ctx: ToolContext,
    *,
    parallel: bool = False,
    timeout: Optional[float] = None,
) -> list[ToolCallResult]:
    """
    Execute one turn's tool calls.

    Each call is isolated: a failure becomes that call's inline error result.
    With ``parallel`` the calls run concurrently; results always follow the
    order of ``calls``.
    """

    async def run(call: ToolCallRequest) -> ToolCallResult:
        return await registry.execute(
            call.name, call.arguments, ctx, call_id=call.id, timeout=timeout
        )

    if parallel and len(calls) > 1:
        return list(await asyncio.gather(*(run(call) for call in calls)))
    return [await run(call) for call in calls]


def _join_reasoning(*parts: Optional[str]) -> Optional[str]:
    text = "\n\n".join(part for part in parts if part)
    return text or None


async def get_ai_response(
    llm: "BaseAsyncLLM",
    registry: ToolRegistry,
    history: Sequence[ChatMessage],
    *,
    workflow: Optional[str] = None,
    config: Optional[ModelConfig] = None,
    context: Optional[ToolContext] = None,
    system_prompt: Optional[str] = SYSTEM_PROMPT,
    tool_timeout: Optional[float] = None,
) -> AssistantReply:
    """
    Answer the latest message in ``history``, calling tools as the model asks.

    Provider failures are reported through ``AssistantReply.error``; tool
    failures are reported to the model as inline error results. A
    ``workflow`` that names no tool domain falls back to the full catalog.
    """
    config = config or ModelConfig()
    ctx = context or ToolContext(rpc=None)
    model = config.model or llm.model

    tools = conversation_tools(registry, workflow)
    params = request_params(config, tools)
    messages = build_request_messages(history, system_prompt)

    first = await llm.chat(messages, params=params)
    if first.is_error:
        logger.warning("Completion failed: %s", first.error)
        return AssistantReply(content="", model=model, error=first.error)

    if not first.tool_calls:
        return AssistantReply(
            content=first.content or NO_RESPONSE,
            reasoning=first.reasoning,
            model=model,
        )

    logger.info(
        "Model requested %d tool call(s): %s",
        len(first.tool_calls),
        ", ".join(call.name for call in first.tool_calls),
    )
    results = await execute_tool_calls(
        registry,
        first.tool_calls,
        ctx,
        parallel=config.parallel_tool_calls,
        timeout=tool_timeout,
    )

    follow_up = [
        *messages,
        assistant_tool_call_message(first.content, first.tool_calls),
        *(tool_result_message(result) for result in results),
    ]
    final = await llm.chat(follow_up, params=params)
    if final.is_error:
        logger.warning("Follow-up completion failed: %s", final.error)
        return AssistantReply(
            content="",
            tool_calls=results,
            reasoning=first.reasoning,
            model=model,
            error=final.error,
        )
    if final.tool_calls:
        logger.debug("Ignoring %d tool call(s) requested in the follow-up", len(final.tool_calls))

    return AssistantReply(
        content=final.content or TOOLS_EXECUTED,
        tool_calls=results,
        reasoning=_join_reasoning(first.reasoning, final.reasoning),
        model=model,
    )
