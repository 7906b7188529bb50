"""
Provider-neutral dataclasses for client-side tool use.

They are intentionally minimal: everything provider-specific lives in adapters.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Mapping

__all__ = ["ToolCallRequest", "ToolCallResult", "parse_arguments"]


@dataclass(slots=True)
class ToolCallRequest:
    """A model-agnostic request emitted by the LLM to call a local tool.

    ``arguments`` is the raw, not-yet-parsed JSON text the model produced.
    """
    id: str
    name: str
    arguments: str = ""


@dataclass(slots=True)
class ToolCallResult:
    """Outcome of one tool call, as sent back to the LLM and shown to the UI."""
    id: str                     # must match the request id
    name: str
    arguments: dict[str, Any]
    result: str                 # serialized handler output or inline error
    is_error: bool = False

    def to_wire(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "arguments": self.arguments,
            "result": self.result,
            "isError": self.is_error,
        }

    @classmethod
    def from_wire(cls, data: Mapping[str, Any]) -> "ToolCallResult":
        arguments = data.get("arguments") or {}
        if isinstance(arguments, str):
            arguments = parse_arguments(arguments)
        return cls(
            id=data.get("id", ""),
            name=data["name"],
            arguments=dict(arguments),
            result=data.get("result", ""),
            is_error=bool(data.get("isError", False)),
        )


def parse_arguments(raw: str | Mapping[str, Any] | None) -> dict[str, Any]:
    """
    Decode a tool-call argument payload into a dict.

    Empty text means "no arguments". Raises ``ValueError`` (including
    ``json.JSONDecodeError``) when the text is not a JSON object.
    """
    if raw is None:
        return {}
    if isinstance(raw, Mapping):
        return dict(raw)
    if not raw.strip():
        return {}
    decoded = json.loads(raw)
    if not isinstance(decoded, dict):
        raise ValueError(f"Tool arguments must be a JSON object, got {type(decoded).__name__}")
    return decoded
