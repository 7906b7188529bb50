"""Tool registry: registration, lookup, validation and execution."""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
from typing import Any, Iterable, Iterator, Mapping, Optional

from pydantic import BaseModel, ValidationError

from relocation_agent.errors import (
    DuplicateToolError,
    ToolExecutionError,
    ToolNotFoundError,
    ToolValidationError,
    UnknownWorkflowError,
)
from relocation_agent.tools.base import ToolContext, ToolDefinition, serialize_result
from relocation_agent.types import ToolCallResult, parse_arguments

__all__ = ["ToolRegistry", "inline_error"]

RawArguments = str | Mapping[str, Any] | None


def _error_entries(exc: ValidationError) -> list[dict[str, Any]]:
    return [
        {
            "path": ".".join(str(part) for part in err["loc"]),
            "message": err["msg"],
        }
        for err in exc.errors()
    ]


def inline_error(exc: Exception, available: Iterable[str] = ()) -> str:
    """Render a tool-local failure as the JSON text the model receives instead of a result."""
    if isinstance(exc, ToolNotFoundError):
        payload: dict[str, Any] = {
            "error": True,
            "message": f'Tool "{exc.tool_name}" not found',
            "availableTools": list(exc.available or available),
        }
    elif isinstance(exc, ToolValidationError):
        payload = {
            "error": True,
            "message": f'Error validating arguments for tool "{exc.tool_name}"',
            "details": exc.details,
            "errors": exc.errors,
        }
    elif isinstance(exc, ToolExecutionError):
        payload = {
            "error": True,
            "message": f'Error executing tool "{exc.tool_name}"',
            "details": str(exc.original_exc),
        }
    else:
        payload = {"error": True, "message": str(exc)}
    return json.dumps(payload, indent=2)


class ToolRegistry:
    """
    Name-to-definition table shared by every conversation.

    Definitions are registered at startup, optionally grouped by workflow
    domain; afterwards the registry is only read. ``call`` raises tool-local
    errors, ``execute`` turns them into inline error results.
    """

    def __init__(
        self,
        *,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> None:
        self._tools: dict[str, ToolDefinition] = {}
        self._domains: dict[str, list[str]] = {}
        self.logger = logger or logging.getLogger(__name__)
        self.name = name or self.__class__.__name__

    def _log(self, message: str, level: int = logging.INFO) -> None:
        self.logger.log(level, f"[{self.name}] {message}")

    # --- registration ------------------------------------------------------
    def register(
        self, definitions: Iterable[ToolDefinition], domain: Optional[str] = None
    ) -> None:
        definitions = list(definitions)
        seen: set[str] = set()
        for definition in definitions:
            if definition.name in self._tools or definition.name in seen:
                raise DuplicateToolError(f'Tool "{definition.name}" is already registered')
            seen.add(definition.name)

        for definition in definitions:
            self._tools[definition.name] = definition
            if domain is not None:
                self._domains.setdefault(domain, []).append(definition.name)
        self._log(
            f"Registered {len(definitions)} tool(s)" + (f" for {domain}" if domain else ""),
            logging.DEBUG,
        )

    # --- lookup ------------------------------------------------------------
    def get(self, name: str) -> Optional[ToolDefinition]:
        return self._tools.get(name)

    def require(self, name: str) -> ToolDefinition:
        definition = self._tools.get(name)
        if definition is None:
            raise ToolNotFoundError(name, self.names())
        return definition

    def names(self) -> list[str]:
        return list(self._tools)

    def domains(self) -> list[str]:
        return list(self._domains)

    def list_for(self, domain: Optional[str] = None) -> list[ToolDefinition]:
        """Tools of one workflow domain, or the full catalog when ``domain`` is None."""
        if domain is None:
            return list(self._tools.values())
        if domain not in self._domains:
            raise UnknownWorkflowError(f"No tools registered for workflow {domain!r}")
        return [self._tools[name] for name in self._domains[domain]]

    def openai_tools(self, domain: Optional[str] = None) -> list[dict[str, Any]]:
        return [definition.to_openai_tool() for definition in self.list_for(domain)]

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[ToolDefinition]:
        return iter(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)

    # --- validation & execution -------------------------------------------
    def validate(self, name: str, arguments: RawArguments) -> BaseModel:
        """Parse raw arguments and validate them against the tool's input model."""
        definition = self.require(name)
        try:
            payload = parse_arguments(arguments)
        except ValueError as exc:
            raise ToolValidationError(
                name, [{"path": "", "message": f"Arguments are not a JSON object: {exc}"}]
            ) from exc
        try:
            return definition.schema.model_validate(payload)
        except ValidationError as exc:
            raise ToolValidationError(name, _error_entries(exc)) from exc

    async def call(
        self,
        name: str,
        arguments: RawArguments,
        ctx: ToolContext,
        *,
        timeout: Optional[float] = None,
    ) -> Any:
        """
        Validate and run one tool, returning the handler's raw result.

        Raises:
            ToolNotFoundError: ``name`` is not registered.
            ToolValidationError: arguments rejected; the handler is not invoked.
            ToolExecutionError: the handler raised or exceeded ``timeout``.
        """
        definition = self.require(name)
        validated = self.validate(name, arguments)

        self._log(f"Executing tool {name}", logging.DEBUG)
        try:
            result = definition.handler(validated, ctx)
            if inspect.isawaitable(result):
                if timeout is not None:
                    result = await asyncio.wait_for(result, timeout)
                else:
                    result = await result
        except TimeoutError as exc:
            if timeout is None:
                self._log(f"Tool {name} failed: {exc}", logging.WARNING)
                raise ToolExecutionError(name, exc) from exc
            self._log(f"Tool {name} timed out after {timeout}s", logging.WARNING)
            raise ToolExecutionError(name, TimeoutError(f"timed out after {timeout}s")) from exc
        except Exception as exc:
            self._log(f"Tool {name} failed: {exc}", logging.WARNING)
            raise ToolExecutionError(name, exc) from exc

        self._log(f"Tool {name} completed", logging.DEBUG)
        return result

    async def execute(
        self,
        name: str,
        arguments: RawArguments,
        ctx: ToolContext,
        *,
        call_id: str = "",
        timeout: Optional[float] = None,
    ) -> ToolCallResult:
        """
        Run one tool call and always return a result.

        Unknown tools, rejected arguments and handler failures come back as
        an inline JSON error with ``is_error`` set, so the model can react.
        """
        result, _ = await self.run_call(
            name, arguments, ctx, call_id=call_id, timeout=timeout
        )
        return result

    async def run_call(
        self,
        name: str,
        arguments: RawArguments,
        ctx: ToolContext,
        *,
        call_id: str = "",
        timeout: Optional[float] = None,
    ) -> tuple[ToolCallResult, Optional[Exception]]:
        """Like ``execute``, but also hand back the tool-local error it absorbed."""
        try:
            parsed = parse_arguments(arguments)
        except ValueError:
            parsed = {}

        error: Optional[Exception] = None
        try:
            value = await self.call(name, arguments, ctx, timeout=timeout)
            try:
                text = serialize_result(value)
            except (TypeError, ValueError) as exc:
                raise ToolExecutionError(name, exc) from exc
        except (ToolNotFoundError, ToolValidationError, ToolExecutionError) as exc:
            self._log(str(exc), logging.WARNING)
            text = inline_error(exc, self.names())
            error = exc

        result = ToolCallResult(
            id=call_id, name=name, arguments=parsed, result=text, is_error=error is not None
        )
        return result, error
