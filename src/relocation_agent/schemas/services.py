from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Any, Optional

from pydantic import Field

from relocation_agent.schemas import Id, NonEmpty, RpcInput


class ServiceType(str, Enum):
    TEMPORARY_HOUSING = "temporary_housing"
    PERMANENT_HOUSING = "permanent_housing"
    HHG = "hhg"
    CAR_SHIPMENT = "car_shipment"
    FLIGHT = "flight"
    DSP_ORIENTATION = "dsp_orientation"
    IMMIGRATION_VISA = "immigration_visa"
    CHILDREN_EDUCATION = "children_education"
    PET_RELOCATION = "pet_relocation"
    BANKING_FINANCE = "banking_finance"
    HEALTHCARE = "healthcare"
    INSURANCE = "insurance"
    OTHER = "other"


class ServiceStatus(str, Enum):
    PENDING = "pending"
    QUOTED = "quoted"
    APPROVED = "approved"
    BOOKED = "booked"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    EXCEPTION = "exception"


class ListServicesInput(RpcInput):
    move_id: Optional[Id] = None
    type: Optional[ServiceType] = None
    status: Optional[ServiceStatus] = None
    vendor_id: Optional[Id] = None


class RequestServiceInput(RpcInput):
    move_id: Id
    # Free text; flows request kinds such as "moving" that ServiceType does not list.
    service_type: NonEmpty = Field(description="Kind of service, e.g. 'moving' or 'permanent_housing'")
    notes: Optional[str] = None
    vendor_id: Optional[Id] = None


class CreateHhgQuoteInput(RpcInput):
    move_id: Id
    vendor_name: NonEmpty
    quote_amount: str
    budget: Optional[str] = None
    within_budget: bool
    inventory: Optional[dict[str, Any]] = None


class CreateCarShipmentInput(RpcInput):
    move_id: Id
    make: NonEmpty
    model: NonEmpty
    year: int
    vin: Optional[str] = None
    desired_ship_date: Optional[date] = None


class CreateFlightInput(RpcInput):
    move_id: Id
    origin: NonEmpty
    destination: NonEmpty
    departure_date: Optional[date] = None
    return_date: Optional[date] = None
    airline: Optional[str] = None
    travel_class: Optional[str] = Field(None, alias="class")
    price: Optional[str] = None


class BookFlightInput(RpcInput):
    id: Id
    booking_reference: NonEmpty
