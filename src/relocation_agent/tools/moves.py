"""Move lifecycle tools."""

from __future__ import annotations

from relocation_agent.bridge import call_procedure, resolve_procedure
from relocation_agent.schemas.moves import (
    CreateMoveInput,
    CreateTestMoveInput,
    GetMoveInput,
    ListMovesInput,
    UpdateLifestyleIntakeInput,
    UpdateMoveEmployerInput,
    UpdateMoveStatusInput,
)
from relocation_agent.tools.base import ToolContext, create_tool, forward


async def _update_lifestyle_intake(args: UpdateLifestyleIntakeInput, ctx: ToolContext):
    payload = args.to_rpc()
    payload["lifestyleIntakeCompleted"] = True
    return await call_procedure(resolve_procedure(ctx.rpc, "moves.update"), payload)


async def _update_move_employer(args: UpdateMoveEmployerInput, ctx: ToolContext):
    result = await call_procedure(
        resolve_procedure(ctx.rpc, "moves.updateEmployer"), args.to_rpc()
    )
    if not result:
        raise RuntimeError("Failed to update employer")
    return result


TOOLS = [
    create_tool("list_moves")
    .describe("List all moves with optional filtering by status or employer")
    .input(ListMovesInput)
    .handler(forward("moves.list", mutation=False)),
    create_tool("get_move")
    .describe("Get details of a specific move by ID")
    .input(GetMoveInput)
    .handler(forward("moves.getById", mutation=False)),
    create_tool("create_move")
    .describe("Create a new move/relocation. Requires existing employee and employer IDs.")
    .input(CreateMoveInput)
    .handler(forward("moves.create", mutation=True)),
    create_tool("create_test_move")
    .describe(
        "Create a test move with auto-generated employee and employer. Use this when the "
        "user wants to create a move without providing IDs. Automatically creates employee "
        "and employer records if needed. When parsing from emails or user requests: "
        "- For city names, expand abbreviations (e.g., 'sf' -> 'San Francisco', "
        "'ny' -> 'New York', 'uk' -> 'United Kingdom'). "
        "- For employee names, use the full name as provided (e.g., 'lyndon leong' -> 'Lyndon Leong'). "
        "- For employer names, use the company name as provided (e.g., 'janestreet' -> 'Jane Street'). "
        "All parameters are optional and will use sensible defaults if not provided."
    )
    .input(CreateTestMoveInput)
    .handler(forward("moves.createTestMove", mutation=True)),
    create_tool("update_move_status")
    .describe("Update the status of a move")
    .input(UpdateMoveStatusInput)
    .handler(forward("moves.updateStatus", mutation=True)),
    create_tool("update_lifestyle_intake")
    .describe("Update lifestyle intake information for a move")
    .input(UpdateLifestyleIntakeInput)
    .handler(_update_lifestyle_intake),
    create_tool("update_move_employer")
    .describe(
        "Update the employer/company for a specific move. "
        "If the employer doesn't exist, it will be created."
    )
    .input(UpdateMoveEmployerInput)
    .handler(_update_move_employer),
]
