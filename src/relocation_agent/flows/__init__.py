from __future__ import annotations

import logging
from typing import Optional

from relocation_agent.flows.catalog import PREDEFINED_FLOWS
from relocation_agent.flows.orchestrator import (
    FlowContext,
    FlowDefinition,
    FlowOrchestrator,
    FlowResult,
    FlowStep,
    FlowStepRecord,
)
from relocation_agent.tools.base import ToolContext
from relocation_agent.tools.registry import ToolRegistry


def build_orchestrator(
    registry: ToolRegistry,
    *,
    context: Optional[ToolContext] = None,
    tool_timeout: Optional[float] = None,
    logger: Optional[logging.Logger] = None,
) -> FlowOrchestrator:
    """Orchestrator preloaded with the predefined flows."""
    return FlowOrchestrator(
        registry,
        PREDEFINED_FLOWS,
        context=context,
        tool_timeout=tool_timeout,
        logger=logger,
    )


__all__ = [
    "PREDEFINED_FLOWS",
    "FlowContext",
    "FlowDefinition",
    "FlowOrchestrator",
    "FlowResult",
    "FlowStep",
    "FlowStepRecord",
    "build_orchestrator",
]
