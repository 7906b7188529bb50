"""
Conversation inbox tools.

Every conversation owns an inbox; both tools need the session id carried by
the ``ToolContext`` and fail without one.
"""

from __future__ import annotations

import logging

from relocation_agent.bridge import call_procedure, resolve_procedure
from relocation_agent.schemas.email import SendEmailInput, SyncEmailsInput
from relocation_agent.tools.base import ToolContext, create_tool

logger = logging.getLogger(__name__)


def _require_session(ctx: ToolContext, action: str) -> str:
    if not ctx.session_id:
        raise ValueError(f"Session ID is required to {action}")
    return ctx.session_id


async def _send_email(args: SendEmailInput, ctx: ToolContext) -> dict:
    session_id = _require_session(ctx, "send email")
    logger.info("Sending email to %s", ", ".join(args.to))
    result = await call_procedure(
        resolve_procedure(ctx.rpc, "chat.sendEmail"),
        {"sessionId": session_id, **args.to_rpc()},
    )
    return {
        "success": True,
        "message": f"Email sent to {', '.join(args.to)}",
        "details": result,
    }


async def _sync_emails(args: SyncEmailsInput, ctx: ToolContext) -> dict:
    session_id = _require_session(ctx, "sync emails")
    result = await call_procedure(
        resolve_procedure(ctx.rpc, "chat.syncEmails"), {"sessionId": session_id}
    )
    count = int((result or {}).get("count", 0))
    return {
        "success": True,
        "message": f"Found {count} new emails." if count > 0 else "No new emails found.",
        "count": count,
    }


TOOLS = [
    create_tool("send_email")
    .describe(
        "Send an email to one or more recipients from the current conversation's email address."
    )
    .input(SendEmailInput)
    .handler(_send_email),
    create_tool("sync_emails")
    .describe("Check for new emails in the current conversation inbox.")
    .input(SyncEmailsInput)
    .handler(_sync_emails),
]
