"""Vendor service tools: requests, HHG quotes, car shipments and flights."""

from __future__ import annotations

from relocation_agent.schemas.services import (
    BookFlightInput,
    CreateCarShipmentInput,
    CreateFlightInput,
    CreateHhgQuoteInput,
    ListServicesInput,
    RequestServiceInput,
)
from relocation_agent.tools.base import create_tool, forward

TOOLS = [
    create_tool("list_services")
    .describe("List all services for a move")
    .input(ListServicesInput)
    .handler(forward("services.list", mutation=False)),
    create_tool("request_service")
    .describe("Request a relocation service (moving, visa, housing, ...) for a move")
    .input(RequestServiceInput)
    .handler(forward("services.request", mutation=True)),
    create_tool("create_hhg_quote")
    .describe("Create a household goods (HHG) quote")
    .input(CreateHhgQuoteInput)
    .handler(forward("services.hhgQuotes.create", mutation=True)),
    create_tool("create_car_shipment")
    .describe("Create a car shipment request")
    .input(CreateCarShipmentInput)
    .handler(forward("services.carShipments.create", mutation=True)),
    create_tool("create_flight")
    .describe("Create a flight booking")
    .input(CreateFlightInput)
    .handler(forward("services.flights.create", mutation=True)),
    create_tool("book_flight")
    .describe("Book a flight with booking reference")
    .input(BookFlightInput)
    .handler(forward("services.flights.book", mutation=True)),
]
