"""Interactive relocation assistant in the terminal.

Talks to the CRUD application configured by ``RELOCATION_APP_URL`` and the
provider chosen with ``--provider`` (API key from the environment).

Example::

    $ OPENAI_API_KEY=sk-... python examples/chat_with_tools.py --stream --workflow housing
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import uuid

from relocation_agent import (
    ChatSession,
    HttpRpcClient,
    InMemoryConversationStore,
    ModelConfig,
    Provider,
    Settings,
    build_registry,
    create_llm,
)
from relocation_agent.streaming import StreamComplete, StreamError, TextDelta, ToolCallComplete, ToolCallStart

logger = logging.getLogger(__name__)


async def run(args: argparse.Namespace) -> None:
    settings = Settings.from_env()
    settings.configure_logging()

    provider = Provider(args.provider or settings.provider.value)
    llm = create_llm(provider, args.model or settings.default_model)
    conversation_id = str(uuid.uuid4())

    async with llm, HttpRpcClient.from_settings(settings) as rpc:
        session = ChatSession.from_settings(
            settings,
            llm,
            build_registry(),
            InMemoryConversationStore(),
            rpc=rpc,
            workflow=args.workflow,
            config=ModelConfig(parallel_tool_calls=args.parallel),
        )

        while True:
            try:
                text = input("you> ").strip()
            except EOFError:
                break
            if not text:
                continue

            if not args.stream:
                reply = await session.send_message(conversation_id, text)
                if reply.is_error:
                    logger.error("Turn failed: %s", reply.error)
                    continue
                for call in reply.tool_calls:
                    logger.info("tool %s -> %s", call.name, "error" if call.is_error else "ok")
                print(f"assistant> {reply.content}")
                continue

            print("assistant> ", end="", flush=True)
            async for event in session.stream_message(conversation_id, text):
                if isinstance(event, TextDelta):
                    print(event.content, end="", flush=True)
                elif isinstance(event, ToolCallStart):
                    print(f"\n  [calling {event.tool_name}]", flush=True)
                elif isinstance(event, ToolCallComplete):
                    print(f"  [{event.tool_name} {'failed' if event.is_error else 'done'}]", flush=True)
                elif isinstance(event, StreamError):
                    print(f"\n  [error: {event.error}]", flush=True)
                elif isinstance(event, StreamComplete):
                    print()


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("--provider", choices=[p.value for p in Provider])
    parser.add_argument("--model")
    parser.add_argument("--workflow", help="Limit tools to one domain, e.g. housing")
    parser.add_argument("--stream", action="store_true")
    parser.add_argument("--parallel", action="store_true", help="Run tool calls concurrently")
    asyncio.run(run(parser.parse_args()))
