from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from relocation_agent.types import ToolCallRequest


@dataclass
class ChatResponse:
    """Unified non-streaming response object for all LLM providers."""

    content: str
    tool_calls: list[ToolCallRequest] | None = None
    reasoning: Optional[str] = None
    finish_reason: Optional[str] = None
    raw: Any = None
    error: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.error is not None
