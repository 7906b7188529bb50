"""
Conversation persistence and the chat session that drives both loops.

The store is an external collaborator; ``InMemoryConversationStore`` is the
reference implementation used by the CLI examples and the tests.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, AsyncGenerator, Literal, Mapping, Optional, Protocol

from relocation_agent.assistant import AssistantReply, get_ai_response
from relocation_agent.config import Settings
from relocation_agent.params import ModelConfig
from relocation_agent.prompts import SYSTEM_PROMPT
from relocation_agent.streaming import StreamComplete, StreamEvent, stream_ai_response
from relocation_agent.tools.base import ToolContext
from relocation_agent.tools.registry import ToolRegistry
from relocation_agent.types import ChatMessage, ToolCallResult

if TYPE_CHECKING:
    from relocation_agent.client import BaseAsyncLLM

__all__ = [
    "ConversationMessage",
    "ConversationStore",
    "InMemoryConversationStore",
    "ChatSession",
]

Role = Literal["user", "assistant", "system"]


@dataclass
class ConversationMessage:
    role: Role
    content: str
    tool_calls: list[ToolCallResult] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.tool_calls:
            data["toolCalls"] = [call.to_wire() for call in self.tool_calls]
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ConversationMessage":
        return cls(
            role=data["role"],
            content=data.get("content") or "",
            tool_calls=[ToolCallResult.from_wire(c) for c in data.get("toolCalls") or []],
        )

    def to_chat_message(self) -> ChatMessage:
        # Tool results are rendered for the user, not replayed to the model.
        return {"role": self.role, "content": self.content}


class ConversationStore(Protocol):
    async def append_message(self, conversation_id: str, message: ConversationMessage) -> None:
        ...

    async def get_history(self, conversation_id: str) -> list[ConversationMessage]:
        ...


class InMemoryConversationStore:
    def __init__(self) -> None:
        self._messages: dict[str, list[ConversationMessage]] = defaultdict(list)

    async def append_message(self, conversation_id: str, message: ConversationMessage) -> None:
        self._messages[conversation_id].append(message)

    async def get_history(self, conversation_id: str) -> list[ConversationMessage]:
        return list(self._messages.get(conversation_id, []))

    def conversations(self) -> list[str]:
        return list(self._messages)


class ChatSession:
    """
    Ties an LLM, the tool registry and a conversation store together.

    Every call appends the user's message, answers it from the stored
    history and persists the assistant's reply. Failed turns are reported to
    the caller and not persisted.
    """

    def __init__(
        self,
        llm: "BaseAsyncLLM",
        registry: ToolRegistry,
        store: ConversationStore,
        *,
        rpc: Any = None,
        workflow: Optional[str] = None,
        config: Optional[ModelConfig] = None,
        system_prompt: Optional[str] = SYSTEM_PROMPT,
        tool_timeout: Optional[float] = None,
        max_tool_rounds: int = 3,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> None:
        self.llm = llm
        self.registry = registry
        self.store = store
        self.rpc = rpc
        self.workflow = workflow
        self.config = config or ModelConfig()
        self.system_prompt = system_prompt
        self.tool_timeout = tool_timeout
        self.max_tool_rounds = max_tool_rounds
        self.logger = logger or logging.getLogger(__name__)
        self.name = name or self.__class__.__name__

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        llm: "BaseAsyncLLM",
        registry: ToolRegistry,
        store: ConversationStore,
        **kwargs: Any,
    ) -> "ChatSession":
        kwargs.setdefault("tool_timeout", settings.tool_timeout)
        kwargs.setdefault("max_tool_rounds", settings.max_tool_rounds)
        return cls(llm, registry, store, **kwargs)

    def _log(self, message: str, level: int = logging.INFO) -> None:
        self.logger.log(level, f"[{self.name}] {message}")

    def _context(self, conversation_id: str) -> ToolContext:
        return ToolContext(rpc=self.rpc, session_id=conversation_id)

    async def _history(self, conversation_id: str, text: str) -> list[ChatMessage]:
        await self.store.append_message(conversation_id, ConversationMessage("user", text))
        return [m.to_chat_message() for m in await self.store.get_history(conversation_id)]

    async def send_message(self, conversation_id: str, text: str) -> AssistantReply:
        history = await self._history(conversation_id, text)
        reply = await get_ai_response(
            self.llm,
            self.registry,
            history,
            workflow=self.workflow,
            config=self.config,
            context=self._context(conversation_id),
            system_prompt=self.system_prompt,
            tool_timeout=self.tool_timeout,
        )
        if reply.is_error:
            self._log(f"Turn failed for {conversation_id}: {reply.error}", logging.WARNING)
            return reply

        await self.store.append_message(
            conversation_id,
            ConversationMessage("assistant", reply.content, list(reply.tool_calls)),
        )
        return reply

    async def stream_message(
        self, conversation_id: str, text: str
    ) -> AsyncGenerator[StreamEvent, None]:
        """
        Stream a reply, following up after tool calls for up to ``max_tool_rounds``.

        Yields every event of every streamed turn except the per-turn
        ``complete`` events, then one ``complete`` event covering the whole
        reply once it has been persisted.
        """
        history = await self._history(conversation_id, text)
        ctx = self._context(conversation_id)
        texts: list[str] = []
        reasoning: list[str] = []
        results: list[ToolCallResult] = []
        rounds = 0

        while True:
            turn = stream_ai_response(
                self.llm,
                self.registry,
                history,
                workflow=self.workflow,
                config=self.config,
                context=ctx,
                system_prompt=self.system_prompt,
                tool_timeout=self.tool_timeout,
            )
            complete: Optional[StreamComplete] = None
            async with turn:
                async for event in turn:
                    if isinstance(event, StreamComplete):
                        complete = event
                    else:
                        yield event

            if complete is None:
                self._log(f"Stream for {conversation_id} ended without completing", logging.WARNING)
                return

            texts.append(complete.full_content)
            reasoning.append(complete.reasoning)
            results.extend(complete.tool_calls)
            if not complete.needs_follow_up:
                break
            if rounds >= self.max_tool_rounds:
                self._log(
                    f"Stopping after {rounds} follow-up round(s) for {conversation_id}",
                    logging.WARNING,
                )
                break
            history = [*history, *complete.messages]
            rounds += 1

        content = "".join(texts)
        await self.store.append_message(
            conversation_id, ConversationMessage("assistant", content, results)
        )
        yield StreamComplete(
            full_content=content,
            tool_calls=results,
            reasoning="".join(reasoning),
        )
