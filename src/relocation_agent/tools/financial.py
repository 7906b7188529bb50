from __future__ import annotations

from relocation_agent.schemas.financial import (
    CalculateTaxGrossUpInput,
    CreateInvoiceInput,
    ListInvoicesInput,
)
from relocation_agent.tools.base import create_tool, forward

TOOLS = [
    create_tool("list_invoices")
    .describe("List invoices with optional filters")
    .input(ListInvoicesInput)
    .handler(forward("financial.invoices.list", mutation=False)),
    create_tool("create_invoice")
    .describe("Create a new invoice")
    .input(CreateInvoiceInput)
    .handler(forward("financial.invoices.create", mutation=True)),
    create_tool("calculate_tax_grossup")
    .describe("Calculate tax gross-up for a service")
    .input(CalculateTaxGrossUpInput)
    .handler(forward("financial.taxGrossUps.calculate", mutation=True)),
]
