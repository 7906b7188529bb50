"""Tool catalog: definitions, registry and the per-domain tool lists."""

from __future__ import annotations

import logging
from typing import Optional

from relocation_agent.tools import email, financial, housing, moves, operations, services
from relocation_agent.tools.base import (
    ToolContext,
    ToolDefinition,
    create_tool,
    forward,
    serialize_result,
)
from relocation_agent.tools.registry import ToolRegistry, inline_error

# Registration order is the order tools are advertised to the model.
DOMAIN_CATALOGS = {
    "moves": moves.TOOLS,
    "housing": housing.TOOLS,
    "services": services.TOOLS,
    "financial": financial.TOOLS,
    "operations": operations.TOOLS,
    "email": email.TOOLS,
}


def build_registry(logger: Optional[logging.Logger] = None) -> ToolRegistry:
    """Compose every domain catalog into one flat registry."""
    registry = ToolRegistry(logger=logger)
    for domain, definitions in DOMAIN_CATALOGS.items():
        registry.register(definitions, domain=domain)
    return registry


__all__ = [
    "DOMAIN_CATALOGS",
    "ToolContext",
    "ToolDefinition",
    "ToolRegistry",
    "build_registry",
    "create_tool",
    "forward",
    "inline_error",
    "serialize_result",
]
