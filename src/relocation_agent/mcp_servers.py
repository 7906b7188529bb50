"""
MCP front ends: one Model Context Protocol server per tool domain.

Each server lists its domain's tools with the same name, description and
input schema the LLM sees, forwards calls unchanged to ``ToolRegistry.call``
and publishes the domain's workflow SOP as a prompt.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from dataclasses import replace
from typing import Any, Optional, Sequence

import mcp.types as types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server

from relocation_agent import __version__
from relocation_agent.bridge import HttpRpcClient
from relocation_agent.config import Settings
from relocation_agent.errors import ToolNotFoundError
from relocation_agent.tools import DOMAIN_CATALOGS, build_registry
from relocation_agent.tools.base import ToolContext, serialize_result
from relocation_agent.tools.registry import ToolRegistry
from relocation_agent.workflows import get_workflow

logger = logging.getLogger(__name__)

__all__ = [
    "call_domain_tool",
    "create_server",
    "get_domain_prompt",
    "list_domain_prompts",
    "list_domain_tools",
    "main",
    "serve",
]


def server_name(domain: str) -> str:
    return f"relocation-{domain}-server"


def list_domain_tools(registry: ToolRegistry, domain: str) -> list[types.Tool]:
    return [
        types.Tool(
            name=definition.name,
            description=definition.description,
            inputSchema=definition.json_schema(),
        )
        for definition in registry.list_for(domain)
    ]


async def call_domain_tool(
    registry: ToolRegistry,
    domain: str,
    ctx: ToolContext,
    name: str,
    arguments: Optional[dict[str, Any]],
) -> list[types.TextContent]:
    """Run one tool of ``domain``; failures propagate for the SDK to report as tool errors."""
    domain_tools = [definition.name for definition in registry.list_for(domain)]
    if name not in domain_tools:
        raise ToolNotFoundError(name, domain_tools)
    result = await registry.call(name, arguments or {}, ctx)
    return [types.TextContent(type="text", text=serialize_result(result))]


def list_domain_prompts(domain: str) -> list[types.Prompt]:
    workflow = get_workflow(domain)
    if workflow is None:
        return []
    return [types.Prompt(name=workflow.prompt_name, description=workflow.description)]


def get_domain_prompt(domain: str, name: str) -> types.GetPromptResult:
    workflow = get_workflow(domain)
    if workflow is None or workflow.prompt_name != name:
        raise ValueError(f"Unknown prompt: {name}")
    return types.GetPromptResult(
        description=workflow.description,
        messages=[
            types.PromptMessage(
                role="user",
                content=types.TextContent(type="text", text=workflow.text),
            )
        ],
    )


def create_server(domain: str, registry: ToolRegistry, rpc: Any) -> Server:
    """Build the MCP server for ``domain``; raises ``UnknownWorkflowError`` for unknown domains."""
    registry.list_for(domain)
    ctx = ToolContext(rpc=rpc)
    server: Server = Server(server_name(domain), version=__version__)

    @server.list_tools()
    async def _list_tools() -> list[types.Tool]:
        return list_domain_tools(registry, domain)

    @server.call_tool()
    async def _call_tool(name: str, arguments: dict[str, Any]) -> list[types.TextContent]:
        return await call_domain_tool(registry, domain, ctx, name, arguments)

    @server.list_prompts()
    async def _list_prompts() -> list[types.Prompt]:
        return list_domain_prompts(domain)

    @server.get_prompt()
    async def _get_prompt(
        name: str, arguments: Optional[dict[str, str]] = None
    ) -> types.GetPromptResult:
        return get_domain_prompt(domain, name)

    return server


async def serve(domain: str, registry: ToolRegistry, rpc: Any) -> None:
    server = create_server(domain, registry, rpc)
    async with stdio_server() as (read_stream, write_stream):
        logger.info("%s MCP server running on stdio", domain)
        await server.run(read_stream, write_stream, server.create_initialization_options())


def _parse_args(argv: Optional[Sequence[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="relocation-mcp",
        description="Run one relocation tool domain as an MCP server on stdio.",
    )
    parser.add_argument("domain", choices=sorted(DOMAIN_CATALOGS))
    parser.add_argument("--app-url", help="Base URL of the CRUD application (overrides env)")
    parser.add_argument("--log-level", help="Logging level (overrides RELOCATION_LOG_LEVEL)")
    return parser.parse_args(argv)


async def _run(args: argparse.Namespace, settings: Settings) -> None:
    registry = build_registry()
    url = f"{args.app_url.rstrip('/')}/api/trpc" if args.app_url else settings.rpc_url
    async with HttpRpcClient(url) as rpc:
        await serve(args.domain, registry, rpc)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parse_args(argv)
    settings = Settings.from_env()
    if args.log_level:
        settings = replace(settings, log_level=args.log_level.upper())
    # Logging goes to stderr; stdout carries the protocol.
    settings.configure_logging()
    try:
        asyncio.run(_run(args, settings))
    except KeyboardInterrupt:
        return 130
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
