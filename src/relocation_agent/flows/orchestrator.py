"""
Declarative multi-step flows over the tool registry.

A flow is an ordered list of steps. Each step names a tool, computes its
arguments from a ``FlowContext`` holding the flow input and the results of
earlier steps, and may carry a guard that skips it. Steps run strictly in
declaration order and the first failure stops the flow, keeping the records
of everything that already ran.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping, Optional, Union

from pydantic_core import to_jsonable_python

from relocation_agent.errors import DuplicateFlowError, FlowNotFoundError, FlowStepError
from relocation_agent.tools.base import ToolContext
from relocation_agent.tools.registry import ToolRegistry

__all__ = [
    "FlowContext",
    "FlowDefinition",
    "FlowOrchestrator",
    "FlowResult",
    "FlowStep",
    "FlowStepRecord",
]

_MISSING = object()


@dataclass
class FlowContext:
    """Mutable state threaded through one flow invocation."""

    input: dict[str, Any]
    results: dict[str, Any] = field(default_factory=dict)
    step_index: int = 0

    def lookup(self, path: str, default: Any = None) -> Any:
        """
        Read a dotted path such as ``"results.create_move.move.id"``.

        Missing keys, out-of-range list indices and ``None`` along the way
        all yield ``default``.
        """
        current: Any = {"input": self.input, "results": self.results}
        for part in path.split("."):
            if isinstance(current, Mapping):
                current = current.get(part, _MISSING)
            elif isinstance(current, (list, tuple)) and part.isdigit():
                index = int(part)
                current = current[index] if index < len(current) else _MISSING
            else:
                current = _MISSING
            if current is _MISSING or current is None:
                return default
        return current


Arguments = Union[Mapping[str, Any], Callable[[FlowContext], Mapping[str, Any]]]


@dataclass(frozen=True)
class FlowStep:
    name: str
    tool: str
    arguments: Arguments = field(default_factory=dict)
    condition: Optional[Callable[[FlowContext], bool]] = None
    transform: Optional[Callable[[Any, FlowContext], Any]] = None

    def should_run(self, ctx: FlowContext) -> bool:
        return self.condition is None or bool(self.condition(ctx))

    def resolve_arguments(self, ctx: FlowContext) -> dict[str, Any]:
        args = self.arguments(ctx) if callable(self.arguments) else self.arguments
        return dict(args)


@dataclass(frozen=True)
class FlowDefinition:
    name: str
    description: str
    steps: tuple[FlowStep, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "steps", tuple(self.steps))
        if not self.steps:
            raise ValueError(f'Flow "{self.name}" has no steps')
        names = [step.name for step in self.steps]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(
                f'Flow "{self.name}" has duplicate step names: {", ".join(duplicates)}'
            )

    @property
    def tools(self) -> list[str]:
        return [step.tool for step in self.steps]


@dataclass
class FlowStepRecord:
    name: str
    tool: str
    arguments: dict[str, Any]
    result: Any = None
    skipped: bool = False
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "tool": self.tool,
            "arguments": self.arguments,
            "result": self.result,
        }
        if self.skipped:
            data["skipped"] = True
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass
class FlowResult:
    success: bool
    steps: list[FlowStepRecord] = field(default_factory=list)
    final_result: Any = None
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "success": self.success,
            "steps": [step.to_dict() for step in self.steps],
        }
        if self.final_result is not None:
            data["finalResult"] = self.final_result
        if self.error is not None:
            data["error"] = self.error
        return data


class FlowOrchestrator:
    """
    Runs named flows against a ``ToolRegistry``.

    The set of flows is fixed at construction; flow names must be unique.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        flows: Iterable[FlowDefinition] = (),
        *,
        context: Optional[ToolContext] = None,
        tool_timeout: Optional[float] = None,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> None:
        self.registry = registry
        self.context = context or ToolContext(rpc=None)
        self.tool_timeout = tool_timeout
        self.logger = logger or logging.getLogger(__name__)
        self.name = name or self.__class__.__name__

        self._flows: dict[str, FlowDefinition] = {}
        for flow in flows:
            if flow.name in self._flows:
                raise DuplicateFlowError(f'Flow "{flow.name}" is already registered')
            unknown = [tool for tool in flow.tools if tool not in registry]
            if unknown:
                self._log(
                    f'Flow "{flow.name}" uses unregistered tool(s): {", ".join(unknown)}',
                    logging.WARNING,
                )
            self._flows[flow.name] = flow
        self._log(f"Initialized with {len(self._flows)} flows", logging.DEBUG)

    def _log(self, message: str, level: int = logging.INFO) -> None:
        self.logger.log(level, f"[{self.name}] {message}")

    def get(self, name: str) -> Optional[FlowDefinition]:
        return self._flows.get(name)

    def require(self, name: str) -> FlowDefinition:
        flow = self._flows.get(name)
        if flow is None:
            raise FlowNotFoundError(f'Flow "{name}" not found')
        return flow

    def list_flows(self) -> list[FlowDefinition]:
        return list(self._flows.values())

    async def execute_flow(
        self,
        name: str,
        input: Optional[Mapping[str, Any]] = None,
        *,
        context: Optional[ToolContext] = None,
    ) -> FlowResult:
        """
        Run flow ``name`` and report what ran, what was skipped and the final result.

        Never raises for step failures: the returned result has
        ``success=False``, the records up to and including the failing step,
        and the error message. ``final_result`` is the result stored for the
        last declared step, so it is None when that step was skipped.
        """
        try:
            flow = self.require(name)
        except FlowNotFoundError as exc:
            self._log(str(exc), logging.WARNING)
            return FlowResult(success=False, steps=[], error=str(exc))

        ctx = FlowContext(input=dict(input or {}))
        tool_ctx = context or self.context
        records: list[FlowStepRecord] = []
        self._log(f"Starting flow {name}")

        for index, step in enumerate(flow.steps):
            ctx.step_index = index
            args: dict[str, Any] = {}
            try:
                if not step.should_run(ctx):
                    self._log(f"Skipping step {index}: {step.name} (condition not met)")
                    records.append(
                        FlowStepRecord(name=step.name, tool=step.tool, arguments={}, skipped=True)
                    )
                    continue

                args = step.resolve_arguments(ctx)
                self._log(f"Executing step {index}: {step.name} ({step.tool})", logging.DEBUG)
                result = await self._run_step(step, args, tool_ctx)
                if step.transform is not None:
                    result = step.transform(result, ctx)
            except Exception as exc:
                error = exc if isinstance(exc, FlowStepError) else FlowStepError(
                    step.name, step.tool, exc
                )
                self._log(f"Flow {name} aborted at step {step.name}: {error}", logging.ERROR)
                records.append(
                    FlowStepRecord(
                        name=step.name, tool=step.tool, arguments=args, error=str(error)
                    )
                )
                return FlowResult(success=False, steps=records, error=str(error))

            ctx.results[step.name] = result
            records.append(
                FlowStepRecord(name=step.name, tool=step.tool, arguments=args, result=result)
            )
            self._log(f"Step {index} completed: {step.name}", logging.DEBUG)

        self._log(f"Flow {name} completed")
        return FlowResult(
            success=True,
            steps=records,
            final_result=ctx.results.get(flow.steps[-1].name),
        )

    async def _run_step(
        self, step: FlowStep, args: dict[str, Any], ctx: ToolContext
    ) -> Any:
        result = await self.registry.call(step.tool, args, ctx, timeout=self.tool_timeout)
        # Later steps read plain JSON data, whatever the handler returned.
        return to_jsonable_python(result, by_alias=True)
