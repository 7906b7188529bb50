from __future__ import annotations

from relocation_agent.schemas.operations import (
    CreateCheckInInput,
    CreatePolicyExceptionInput,
    ListCheckInsInput,
    ListPolicyExceptionsInput,
    ReportServiceBreakInput,
    UpdateExceptionStatusInput,
)
from relocation_agent.tools.base import create_tool, forward

TOOLS = [
    create_tool("list_policy_exceptions")
    .describe("List policy exceptions requiring approval")
    .input(ListPolicyExceptionsInput)
    .handler(forward("operations.policyExceptions.list", mutation=False)),
    create_tool("create_policy_exception")
    .describe("Create a policy exception request")
    .input(CreatePolicyExceptionInput)
    .handler(forward("operations.policyExceptions.create", mutation=True)),
    create_tool("update_exception_status")
    .describe("Update policy exception status (approve/deny)")
    .input(UpdateExceptionStatusInput)
    .handler(forward("operations.policyExceptions.updateStatus", mutation=True)),
    create_tool("list_check_ins")
    .describe("List scheduled check-ins")
    .input(ListCheckInsInput)
    .handler(forward("operations.checkIns.list", mutation=False)),
    create_tool("create_check_in")
    .describe("Schedule a check-in")
    .input(CreateCheckInInput)
    .handler(forward("operations.checkIns.create", mutation=True)),
    create_tool("report_service_break")
    .describe("Report a service break issue")
    .input(ReportServiceBreakInput)
    .handler(forward("operations.serviceBreaks.report", mutation=True)),
]
