"""The predefined flows."""

from __future__ import annotations

from typing import Any

from relocation_agent.flows.orchestrator import FlowContext, FlowDefinition, FlowStep


def _compact(values: dict[str, Any]) -> dict[str, Any]:
    """Drop unset values so tool defaults apply."""
    return {key: value for key, value in values.items() if value is not None}


def _move_id(ctx: FlowContext) -> Any:
    return ctx.lookup("results.create_move.move.id")


def _housing_options(ctx: FlowContext) -> list[Any]:
    found = ctx.lookup("results.search_housing")
    if isinstance(found, dict):
        found = found.get("options")
    return found if isinstance(found, list) else []


def _money(value: Any) -> str:
    return f"{float(value):.2f}"


# complete_relocation: create move, search housing, request services

COMPLETE_RELOCATION = FlowDefinition(
    name="complete_relocation",
    description="Complete end-to-end relocation: create move, search housing, request services",
    steps=(
        FlowStep(
            name="create_move",
            tool="create_test_move",
            arguments=lambda ctx: _compact(
                {
                    "employeeName": ctx.lookup("input.employeeName"),
                    "employeeEmail": ctx.lookup("input.employeeEmail"),
                    "originCity": ctx.lookup("input.fromLocation"),
                    "destinationCity": ctx.lookup("input.toLocation"),
                    "employerName": ctx.lookup("input.companyName"),
                    "moveDate": ctx.lookup("input.moveDate"),
                }
            ),
        ),
        FlowStep(
            name="search_housing",
            tool="search_housing",
            arguments=lambda ctx: {
                "location": ctx.lookup("input.toLocation"),
                "budget": ctx.lookup("input.housingBudget") or 3000,
                "bedrooms": ctx.lookup("input.bedrooms") or 2,
                "moveId": _move_id(ctx),
            },
        ),
        FlowStep(
            name="request_moving_service",
            tool="request_service",
            arguments=lambda ctx: {
                "moveId": _move_id(ctx),
                "serviceType": "moving",
                "notes": "Full-service moving requested",
            },
            condition=lambda ctx: bool(_move_id(ctx)),
        ),
        FlowStep(
            name="request_visa_service",
            tool="request_service",
            arguments=lambda ctx: {
                "moveId": _move_id(ctx),
                "serviceType": "visa",
                "notes": "Visa assistance requested",
            },
            condition=lambda ctx: bool(_move_id(ctx)) and ctx.input.get("needsVisa") is True,
        ),
    ),
)

# housing_search: search, then select the requested or first option

HOUSING_SEARCH = FlowDefinition(
    name="housing_search",
    description="Search and select housing based on preferences",
    steps=(
        FlowStep(
            name="search_housing",
            tool="search_housing",
            arguments=lambda ctx: {
                "location": ctx.lookup("input.location"),
                "budget": ctx.lookup("input.budget") or 3000,
                "bedrooms": ctx.lookup("input.bedrooms") or 2,
                "moveId": ctx.lookup("input.moveId"),
            },
        ),
        FlowStep(
            name="select_housing",
            tool="select_housing",
            arguments=lambda ctx: _compact(
                {
                    "moveId": ctx.lookup("input.moveId"),
                    "housingId": ctx.lookup("input.housingId")
                    or (_housing_options(ctx) or [{}])[0].get("id"),
                }
            ),
            condition=lambda ctx: bool(ctx.lookup("input.housingId")) or len(_housing_options(ctx)) > 0,
        ),
    ),
)

# invoice_and_pay: invoice the employer, compute the gross-up, notify the employee

INVOICE_AND_PAY = FlowDefinition(
    name="invoice_and_pay",
    description="Create invoice, calculate tax grossup, and send payment request",
    steps=(
        FlowStep(
            name="create_invoice",
            tool="create_invoice",
            arguments=lambda ctx: _compact(
                {
                    "moveId": ctx.input["moveId"],
                    "employerId": ctx.lookup("input.employerId"),
                    "invoiceNumber": ctx.lookup("input.invoiceNumber")
                    or f"INV-{ctx.input['moveId']}",
                    "description": ctx.lookup("input.description") or "Relocation services",
                    "subtotal": _money(ctx.input["amount"]),
                    "gullieFee": _money(ctx.lookup("input.fee") or 0),
                    "total": _money(
                        float(ctx.input["amount"]) + float(ctx.lookup("input.fee") or 0)
                    ),
                    "dueDate": ctx.lookup("input.dueDate"),
                }
            ),
        ),
        FlowStep(
            name="calculate_grossup",
            tool="calculate_tax_grossup",
            arguments=lambda ctx: _compact(
                {
                    "moveId": ctx.input["moveId"],
                    "serviceType": ctx.lookup("input.serviceType") or "relocation",
                    "serviceCost": _money(ctx.input["amount"]),
                    "country": ctx.lookup("input.country") or "US",
                    "state": ctx.lookup("input.state"),
                    "employerCoversGrossUp": bool(ctx.lookup("input.employerCoversGrossUp")),
                }
            ),
        ),
        FlowStep(
            name="send_invoice_email",
            tool="send_email",
            arguments=lambda ctx: {
                "to": [ctx.input["employeeEmail"]],
                "subject": "Invoice for Relocation Services",
                "body": (
                    "Your invoice has been created.\n\n"
                    f"Amount: ${ctx.input['amount']}\n"
                    f"Gross Amount (after tax): ${ctx.lookup('results.calculate_grossup.grossAmount')}\n"
                    f"Due Date: {ctx.lookup('input.dueDate')}\n\n"
                    "Please review and approve."
                ),
            },
            condition=lambda ctx: bool(ctx.lookup("input.employeeEmail")),
        ),
    ),
)

# move_housing_chain: demo of chaining create move -> search housing -> request service

MOVE_HOUSING_CHAIN = FlowDefinition(
    name="move_housing_chain",
    description="Demo: Create move -> Search housing -> Request housing service",
    steps=(
        FlowStep(
            name="create_move",
            tool="create_test_move",
            arguments=lambda ctx: _compact(
                {
                    "employeeName": ctx.lookup("input.employeeName") or "Lyndon Leong",
                    "employeeEmail": ctx.lookup("input.employeeEmail")
                    or "test.employee@example.com",
                    "originCity": ctx.lookup("input.fromLocation") or "United Kingdom",
                    "destinationCity": ctx.lookup("input.toLocation") or "San Francisco",
                    "employerName": ctx.lookup("input.companyName") or "Test Company",
                    "moveDate": ctx.lookup("input.moveDate"),
                }
            ),
        ),
        FlowStep(
            name="search_housing",
            tool="search_housing",
            arguments=lambda ctx: {
                "location": ctx.lookup("input.toLocation") or "San Francisco",
                "budget": ctx.lookup("input.budget") or 3500,
                "bedrooms": ctx.lookup("input.bedrooms") or 2,
                "moveId": _move_id(ctx),
            },
            condition=lambda ctx: bool(_move_id(ctx)),
        ),
        FlowStep(
            name="request_housing_service",
            tool="request_service",
            arguments=lambda ctx: {
                "moveId": _move_id(ctx),
                "serviceType": "permanent_housing",
                "notes": (
                    f"Housing search completed. Budget: ${ctx.lookup('input.budget') or 3500}/month, "
                    f"{ctx.lookup('input.bedrooms') or 2} bedrooms. "
                    f"Found {len(_housing_options(ctx))} options."
                ),
            },
            condition=lambda ctx: bool(_move_id(ctx)),
        ),
    ),
)

PREDEFINED_FLOWS: tuple[FlowDefinition, ...] = (
    COMPLETE_RELOCATION,
    HOUSING_SEARCH,
    INVOICE_AND_PAY,
    MOVE_HOUSING_CHAIN,
)
