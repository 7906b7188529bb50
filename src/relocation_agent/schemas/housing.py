from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Optional

from pydantic import Field

from relocation_agent.schemas import Id, NonEmpty, RpcInput


class HousingType(str, Enum):
    HOTEL = "hotel"
    SERVICED_APARTMENT = "serviced_apartment"
    AIRBNB = "airbnb"
    APARTMENT = "apartment"
    CONDO = "condo"
    SINGLE_FAMILY_HOME = "single_family_home"


class MatchCategory(str, Enum):
    OPTIMAL = "optimal"
    STRONG = "strong"
    ESSENTIAL = "essential"


class SearchHousingInput(RpcInput):
    location: Optional[str] = Field(None, description="City or area to search in")
    budget: Optional[float] = Field(None, ge=0, description="Monthly budget")
    bedrooms: Optional[int] = Field(None, ge=0)
    move_id: Optional[Id] = None
    max_commute: Optional[float] = Field(None, description="Maximum commute in minutes")


class ListHousingInput(RpcInput):
    move_id: Optional[Id] = None
    type: Optional[HousingType] = None
    is_temporary: Optional[bool] = None
    match_category: Optional[MatchCategory] = None
    min_price: Optional[str] = None
    max_price: Optional[str] = None


class CreateHousingOptionInput(RpcInput):
    move_id: Id
    type: HousingType
    is_temporary: bool
    address: NonEmpty
    city: NonEmpty
    state: Optional[str] = None
    zip_code: Optional[str] = None
    price: str
    price_per_month: Optional[str] = None
    price_per_night: Optional[str] = None
    commute_to_office: Optional[float] = None
    commute_mode: Optional[str] = None
    parking_available: bool = False
    lease_terms: Optional[str] = None
    min_stay: Optional[int] = None
    availability_start_date: Optional[date] = None
    availability_end_date: Optional[date] = None
    neighborhood_rating: Optional[str] = None
    match_category: Optional[MatchCategory] = None


class SelectHousingInput(RpcInput):
    housing_id: Id = Field(description="Housing option to select")
    move_id: Optional[Id] = None
