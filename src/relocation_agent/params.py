"""
Request parameters: the per-call ``ModelConfig`` and the params dict handed
to ``llm.chat`` / ``llm.stream``.

Keys every provider understands stay at the top level (see ``STANDARD_KEYS``).
Anything else, e.g. ``model`` (per-call override), ``reasoning_effort`` or
Anthropic's ``thinking``, is collected under ``extra`` and left for the
provider adapter to forward or drop.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Optional

STANDARD_KEYS = frozenset(
    {
        "temperature",
        "max_tokens",
        "top_p",
        "stream",
        "tools",
        "tool_choice",
        "stop",
        "response_format",
        "user",
        "frequency_penalty",
        "presence_penalty",
        "parallel_tool_calls",
        "seed",
    }
)

DEFAULT_THINKING_BUDGET = 2048


@dataclass
class ModelConfig:
    """Model settings a chat user picks for one conversation."""

    model: Optional[str] = None
    temperature: Optional[float] = None
    parallel_tool_calls: bool = False
    reasoning_effort: Optional[str] = None
    max_reasoning_tokens: Optional[int] = None
    extended_thinking: bool = False

    def as_params(self) -> dict[str, Any]:
        """
        Params dict for this config; unset fields are left out.

        ``parallel_tool_calls`` also switches local concurrent dispatch, so it
        is only sent when enabled.
        """
        params: dict[str, Any] = {}
        if self.model:
            params["model"] = self.model
        if self.temperature is not None:
            params["temperature"] = self.temperature
        if self.parallel_tool_calls:
            params["parallel_tool_calls"] = True
        if self.reasoning_effort:
            params["reasoning_effort"] = self.reasoning_effort
        if self.extended_thinking:
            params["thinking"] = {
                "type": "enabled",
                "budget_tokens": self.max_reasoning_tokens or DEFAULT_THINKING_BUDGET,
            }
        return params

    def copy(self, **changes: Any) -> "ModelConfig":
        return replace(self, **changes)


def normalize_params(params: dict | None) -> dict:
    """
    Split ``params`` into standard keys plus an ``extra`` dict.

    ``stream`` defaults to False. An explicit ``extra`` dict wins over keys
    moved there. None values are kept; adapters decide whether to drop them.

    >>> normalize_params({"temperature": 0.2, "model": "gpt-4o"})
    {'temperature': 0.2, 'stream': False, 'extra': {'model': 'gpt-4o'}}
    """
    if params is None:
        params = {}
    elif not isinstance(params, dict):
        raise TypeError(f"params must be a dict, got {type(params).__name__}")

    explicit_extra = params.get("extra") or {}
    if not isinstance(explicit_extra, dict):
        raise TypeError("params['extra'] must be a dict")

    normalized = {k: v for k, v in params.items() if k in STANDARD_KEYS}
    moved = {k: v for k, v in params.items() if k not in STANDARD_KEYS and k != "extra"}
    normalized.setdefault("stream", False)
    normalized["extra"] = {**moved, **explicit_extra}
    return normalized


def merge_params(defaults: dict | None, overrides: dict | None) -> dict:
    """Overlay ``overrides`` on ``defaults`` (``extra`` merged per key), then normalize."""
    defaults = dict(defaults or {})
    overrides = dict(overrides or {})
    extra = {**(defaults.pop("extra", None) or {}), **(overrides.pop("extra", None) or {})}
    return normalize_params({**defaults, **overrides, "extra": extra})
