"""
Exception taxonomy for relocation-agent.

Tool-local failures (unknown tool, bad arguments, handler crash) are raised by
the registry's strict path and converted into model-visible text by the loops.
Orchestration failures (a whole flow, a whole stream) surface structurally.
Provider SDK exceptions are wrapped by `classify_error`, which keeps the
original exception for full tracebacks.
"""

from __future__ import annotations

import importlib
import logging
from typing import Any, Final, Optional, Sequence, Type

__all__: tuple[str, ...] = (
    "RelocationAgentError",
    "ToolNotFoundError",
    "ToolValidationError",
    "ToolExecutionError",
    "DuplicateToolError",
    "DuplicateFlowError",
    "UnknownWorkflowError",
    "FlowNotFoundError",
    "FlowStepError",
    "StreamProtocolError",
    "ProcedureError",
    "LLMError",
    "classify_error",
)


class RelocationAgentError(Exception):
    """Base class for every error raised by this package."""


class ToolNotFoundError(RelocationAgentError, LookupError):
    """The model (or a flow) asked for a tool that is not registered."""

    def __init__(self, tool_name: str, available: Sequence[str] = ()) -> None:
        super().__init__(f'Tool "{tool_name}" not found')
        self.tool_name = tool_name
        self.available = list(available)


class ToolValidationError(RelocationAgentError, ValueError):
    """Arguments did not satisfy a tool's input schema.

    Attributes:
        tool_name: Tool whose schema rejected the input.
        errors: One ``{"path": ..., "message": ...}`` entry per offending field.
    """

    def __init__(self, tool_name: str, errors: list[dict[str, Any]]) -> None:
        details = "; ".join(f"{e['path'] or '<root>'}: {e['message']}" for e in errors)
        super().__init__(f'Error validating arguments for tool "{tool_name}": {details}')
        self.tool_name = tool_name
        self.errors = errors
        self.details = details

    @property
    def field_paths(self) -> list[str]:
        return [e["path"] for e in self.errors]


class ToolExecutionError(RelocationAgentError):
    """A tool handler (or the operation behind it) failed."""

    original_exc: BaseException

    def __init__(self, tool_name: str, original_exc: BaseException) -> None:
        super().__init__(f'Error executing tool "{tool_name}": {original_exc}')
        self.tool_name = tool_name
        self.original_exc = original_exc
        self.__cause__ = original_exc


class DuplicateToolError(RelocationAgentError, ValueError):
    """Two definitions were registered under the same tool name."""


class DuplicateFlowError(RelocationAgentError, ValueError):
    """Two flows were registered under the same name."""


class UnknownWorkflowError(RelocationAgentError, LookupError):
    """A tool listing was requested for a workflow domain that has no tools."""


class FlowNotFoundError(RelocationAgentError, LookupError):
    """No flow is registered under the requested name."""


class FlowStepError(RelocationAgentError):
    """A flow step failed; the remaining steps are not run."""

    def __init__(self, step_name: str, tool_name: str, original_exc: BaseException) -> None:
        super().__init__(str(original_exc))
        self.step_name = step_name
        self.tool_name = tool_name
        self.original_exc = original_exc
        self.__cause__ = original_exc


class StreamProtocolError(RelocationAgentError):
    """A streamed tool-call fragment could not be attributed or parsed."""


class ProcedureError(RelocationAgentError):
    """The RPC bridge could not invoke a procedure, or the remote side failed."""


class LLMError(RuntimeError):
    """Public provider-level exception.

    Attributes:
        original_exc: The underlying provider exception.
    """

    original_exc: Exception

    def __init__(self, message: str, original_exc: Exception) -> None:
        super().__init__(message)
        self.original_exc = original_exc
        self.__cause__ = original_exc


def _import_exception(path: str) -> Type[Exception]:
    """Import an exception type by dotted path."""
    module_name, _, attr = path.rpartition(".")
    module = importlib.import_module(module_name)
    return getattr(module, attr)


OpenAI_APIError: Final = _import_exception("openai.APIError")
OpenAI_APIConnectionError: Final = _import_exception("openai.APIConnectionError")
OpenAI_RateLimitError: Final = _import_exception("openai.RateLimitError")

Anthropic_APIError: Final = _import_exception("anthropic.APIError")
Anthropic_APIConnectionError: Final = _import_exception("anthropic.APIConnectionError")
Anthropic_RateLimitError: Final = _import_exception("anthropic.RateLimitError")

API_ERRORS: Final[tuple[Type[Exception], ...]] = (
    OpenAI_APIError,
    Anthropic_APIError,
)

CONN_ERRORS: Final[tuple[Type[Exception], ...]] = (
    OpenAI_APIConnectionError,
    Anthropic_APIConnectionError,
    TimeoutError,
    ConnectionError,
)

RATE_LIMIT_ERRORS: Final[tuple[Type[Exception], ...]] = (
    OpenAI_RateLimitError,
    Anthropic_RateLimitError,
)


def classify_error(
    exc: Exception,
    logger: Optional[logging.Logger] = None,
) -> LLMError:
    """Wrap an SDK exception in LLMError with a friendly, concise message."""
    log = logger or logging.getLogger("relocation_agent.errors")

    # Rate-limit and connection errors subclass APIError, so test them first.
    if isinstance(exc, RATE_LIMIT_ERRORS):
        msg = "Rate-limit exceeded, please retry later"
    elif isinstance(exc, CONN_ERRORS):
        msg = "Connection problem, unable to reach the LLM provider"
    elif isinstance(exc, API_ERRORS):
        status = getattr(exc, "status_code", "unknown")
        msg = f"Provider reported an error ({status})"
    else:
        msg = exc.__class__.__name__

    log.warning("Wrapping provider exception: %s", msg, exc_info=exc)
    return LLMError(f"{msg}: {exc}", exc)
