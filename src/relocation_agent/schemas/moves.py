from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Literal, Optional

from pydantic import EmailStr, Field

from relocation_agent.schemas import Id, NonEmpty, RpcInput


class MoveStatus(str, Enum):
    INITIATED = "initiated"
    INTAKE_IN_PROGRESS = "intake_in_progress"
    HOUSING_SEARCH = "housing_search"
    SERVICES_BOOKED = "services_booked"
    IN_TRANSIT = "in_transit"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ListMovesInput(RpcInput):
    limit: int = Field(50, ge=1, le=100)
    offset: int = Field(0, ge=0)
    status: Optional[MoveStatus] = None
    employer_id: Optional[Id] = None


class GetMoveInput(RpcInput):
    id: Id


class CreateMoveInput(RpcInput):
    employee_id: Id
    employer_id: Id
    policy_id: Optional[Id] = None
    origin_city: NonEmpty
    destination_city: NonEmpty
    office_location: NonEmpty
    program_type: Optional[str] = None
    benefit_amount: Optional[str] = None
    move_date: Optional[date] = None


class CreateTestMoveInput(RpcInput):
    origin_city: NonEmpty = "San Francisco"
    destination_city: NonEmpty = "New York"
    office_location: NonEmpty = "New York Office"
    employee_name: str = "Test Employee"
    employee_email: EmailStr = "test.employee@example.com"
    employee_phone: str = "+1-555-0100"
    employer_name: str = "Test Company"
    employer_email: EmailStr = "hr@testcompany.com"
    program_type: Optional[str] = None
    benefit_amount: Optional[str] = None
    move_date: Optional[date] = None


class UpdateMoveStatusInput(RpcInput):
    id: Id
    status: MoveStatus


class HouseholdComposition(RpcInput):
    relocating_alone: bool
    spouse_partner: Optional[str] = None
    family_members: Optional[list[str]] = None


class HousingPreferences(RpcInput):
    required_criteria: list[str]
    nice_to_have_criteria: list[str]
    neighborhood_preferences: list[str]
    hobbies: list[str]
    walkability: bool
    urban_rural: Literal["urban", "rural", "suburban"]
    commute_distance: float


class UpdateLifestyleIntakeInput(RpcInput):
    id: Id
    household_composition: Optional[HouseholdComposition] = None
    housing_preferences: Optional[HousingPreferences] = None


class UpdateMoveEmployerInput(RpcInput):
    move_id: Id
    employer_name: str = Field(description="The name of the employer (e.g. 'Jane Street')")
    employer_email: Optional[EmailStr] = Field(
        None, description="Optional email for the employer's HR contact"
    )
