"""Run one predefined flow against the CRUD application and print its report.

Example::

    $ python examples/run_flow.py housing_search '{"location": "Austin", "budget": 2000}'
"""

from __future__ import annotations

import argparse
import asyncio
import json

from relocation_agent import HttpRpcClient, Settings, ToolContext, build_orchestrator, build_registry


async def run(name: str, flow_input: dict) -> None:
    settings = Settings.from_env()
    settings.configure_logging()

    async with HttpRpcClient.from_settings(settings) as rpc:
        orchestrator = build_orchestrator(
            build_registry(),
            context=ToolContext(rpc=rpc),
            tool_timeout=settings.tool_timeout,
        )
        result = await orchestrator.execute_flow(name, flow_input)

    print(json.dumps(result.to_dict(), indent=2, default=str))


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("flow")
    parser.add_argument("input", nargs="?", default="{}", help="Flow input as a JSON object")
    args = parser.parse_args()
    asyncio.run(run(args.flow, json.loads(args.input)))
