from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from relocation_agent.schemas import Id, NonEmpty, RpcInput


class ExceptionStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"


class CheckInType(str, Enum):
    T_MINUS_48 = "t_minus_48"
    DAY_OF = "day_of"
    T_PLUS_48 = "t_plus_48"


class ListPolicyExceptionsInput(RpcInput):
    move_id: Optional[Id] = None
    status: Optional[ExceptionStatus] = None


class CreatePolicyExceptionInput(RpcInput):
    move_id: Id
    service_id: Optional[Id] = None
    service_type: NonEmpty
    requested_service: NonEmpty


class UpdateExceptionStatusInput(RpcInput):
    id: Id
    status: ExceptionStatus
    employer_decision: Optional[str] = None


class ListCheckInsInput(RpcInput):
    move_id: Optional[Id] = None
    service_id: Optional[Id] = None
    check_in_type: Optional[CheckInType] = None
    upcoming: Optional[bool] = None


class CreateCheckInInput(RpcInput):
    move_id: Id
    service_id: Optional[Id] = None
    check_in_type: CheckInType
    scheduled_at: datetime


class ReportServiceBreakInput(RpcInput):
    service_id: Id
    description: NonEmpty
