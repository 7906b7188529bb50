from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Optional

from relocation_agent.schemas import Id, NonEmpty, RpcInput


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    DISPUTED = "disputed"


class ListInvoicesInput(RpcInput):
    move_id: Optional[Id] = None
    employer_id: Optional[Id] = None
    payment_status: Optional[PaymentStatus] = None


class VendorReceipt(RpcInput):
    vendor: str
    service: str
    amount: str
    receipt_url: Optional[str] = None


class ServiceSummaryLine(RpcInput):
    service: str
    vendor: str
    date: str
    amount: str


class CreateInvoiceInput(RpcInput):
    move_id: Id
    employer_id: Id
    invoice_number: NonEmpty
    description: Optional[str] = None
    subtotal: str
    gullie_fee: str
    gross_up_amount: Optional[str] = None
    total: str
    due_date: Optional[date] = None
    vendor_receipts: Optional[list[VendorReceipt]] = None
    service_summary: Optional[list[ServiceSummaryLine]] = None


class CalculateTaxGrossUpInput(RpcInput):
    move_id: Id
    service_type: NonEmpty
    service_cost: str
    country: NonEmpty
    state: Optional[str] = None
    employee_income_level: Optional[str] = None
    employer_covers_gross_up: bool = False
