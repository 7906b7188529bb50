"""
Tool definitions and the builder used to declare them.

A tool pairs a name and an LLM-facing description with a pydantic model that
is at once the handler's static input type, the runtime validator and the
JSON schema advertised to the model.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Union

from pydantic import BaseModel
from pydantic_core import to_jsonable_python

from relocation_agent.bridge import call_procedure, resolve_procedure

__all__ = [
    "ToolContext",
    "ToolDefinition",
    "ToolBuilder",
    "ToolHandler",
    "create_tool",
    "forward",
    "serialize_result",
]


@dataclass(frozen=True, slots=True)
class ToolContext:
    """Per-call context handed to every handler.

    ``rpc`` is a ``LocalCaller``, an ``HttpRpcClient`` or anything else whose
    procedures ``call_procedure`` understands.
    """
    rpc: Any
    session_id: Optional[str] = None


ToolHandler = Callable[[Any, ToolContext], Union[Awaitable[Any], Any]]


@dataclass(frozen=True, slots=True)
class ToolDefinition:
    name: str
    description: str
    schema: type[BaseModel]
    handler: ToolHandler

    def json_schema(self) -> dict[str, Any]:
        """JSON schema of the input model, using the wire (camelCase) field names."""
        schema = self.schema.model_json_schema(by_alias=True)
        schema.pop("title", None)
        schema.setdefault("properties", {})
        return schema

    def to_openai_tool(self) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.json_schema(),
            },
        }


class ToolBuilder:
    """Fluent builder: ``create_tool(name).describe(...).input(Model).handler(fn)``."""

    def __init__(self, name: str) -> None:
        if not name:
            raise ValueError("Tool name must be a non-empty string.")
        self._name = name
        self._description: Optional[str] = None
        self._schema: Optional[type[BaseModel]] = None

    def describe(self, description: str) -> "ToolBuilder":
        self._description = description
        return self

    def input(self, schema: type[BaseModel]) -> "ToolBuilder":
        if not (isinstance(schema, type) and issubclass(schema, BaseModel)):
            raise TypeError(f'Tool "{self._name}" input must be a pydantic model class.')
        self._schema = schema
        return self

    def handler(self, fn: ToolHandler) -> ToolDefinition:
        if not self._description:
            raise ValueError(f'Tool "{self._name}" is missing a description.')
        if self._schema is None:
            raise ValueError(f'Tool "{self._name}" is missing an input schema.')
        return ToolDefinition(
            name=self._name,
            description=self._description,
            schema=self._schema,
            handler=fn,
        )


def create_tool(name: str) -> ToolBuilder:
    return ToolBuilder(name)


def serialize_result(result: Any) -> str:
    """Serialize a handler result the way it is shown to the model and to MCP clients."""
    return json.dumps(to_jsonable_python(result, by_alias=True), indent=2)


def forward(path: str, *, mutation: bool) -> ToolHandler:
    """Handler that sends the validated input straight to one remote procedure."""

    async def handler(args: BaseModel, ctx: ToolContext) -> Any:
        procedure = resolve_procedure(ctx.rpc, path)
        payload = args.to_rpc() if hasattr(args, "to_rpc") else args.model_dump(mode="json")
        return await call_procedure(procedure, payload, mutation=mutation)

    handler.__name__ = f"forward_{path.replace('.', '_')}"
    return handler
