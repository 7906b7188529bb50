from __future__ import annotations

from typing import Optional

from pydantic import Field

from relocation_agent.schemas import RpcInput


class SendEmailInput(RpcInput):
    to: list[str] = Field(min_length=1, description="List of email addresses to send to")
    subject: str = Field(description="Subject of the email")
    body: str = Field(description="Body content of the email")
    cc: Optional[list[str]] = Field(None, description="List of email addresses to CC")
    bcc: Optional[list[str]] = Field(None, description="List of email addresses to BCC")


class SyncEmailsInput(RpcInput):
    pass
