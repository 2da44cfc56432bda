"""
Pydantic schemas for the club events FastAPI surface.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field

from shared.types import CheckInStatus, PaymentStatus, RegistrationStatus


class CredentialsRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=320)
    password: str = Field(..., min_length=1)


class GoogleSignInRequest(BaseModel):
    id_token: str = Field(..., min_length=1)


class SessionResponse(BaseModel):
    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    id_token: Optional[str] = None
    refresh_token: Optional[str] = None


class ProfileResponse(BaseModel):
    id: str
    name: str
    email: str
    role: str
    roll_number: Optional[str] = None
    year: Optional[str] = None
    branch: Optional[str] = None
    mobile: Optional[str] = None
    is_guest: bool = False
    managed_club_ids: list[str] = []


class ProfileUpdateRequest(BaseModel):
    """Self-service fields only; role and managed clubs are not user-editable."""

    name: Optional[str] = None
    roll_number: Optional[str] = None
    year: Optional[str] = None
    branch: Optional[str] = None
    mobile: Optional[str] = None


class EventInfoPayload(BaseModel):
    name: str
    date: str
    location: str
    registration_fee: Optional[float] = Field(default=None, ge=0)


class RegistrationRequest(BaseModel):
    event_info: EventInfoPayload
    team_id: Optional[str] = None
    additional_info: Optional[str] = Field(default=None, max_length=2048)


class PaidRegistrationRequest(BaseModel):
    event_info: EventInfoPayload
    payment_id: str = Field(..., min_length=1)
    additional_info: Optional[str] = Field(default=None, max_length=2048)


class RegistrationCreatedResponse(BaseModel):
    registration_id: str


class RegistrationResponse(BaseModel):
    id: Optional[str] = None
    event_id: str
    club_id: Optional[str] = None
    user_id: str
    user_name: str
    user_email: str
    user_phone: Optional[str] = None
    status: RegistrationStatus
    additional_info: Optional[str] = None
    event_name: Optional[str] = None
    event_date: Optional[str] = None
    event_location: Optional[str] = None
    registration_fee: Optional[float] = None
    payment_status: Optional[PaymentStatus] = None
    payment_id: Optional[str] = None
    check_in_status: Optional[CheckInStatus] = None
    team_id: Optional[str] = None


class RegistrationListResponse(BaseModel):
    registrations: list[RegistrationResponse]


class RegistrationStatsResponse(BaseModel):
    total_registrations: int
    confirmed_registrations: int
    pending_registrations: int
    cancelled_registrations: int
    checked_in_count: int


class RegistrationCountResponse(BaseModel):
    count: int


class RegisteredResponse(BaseModel):
    registered: bool


class StatusUpdateRequest(BaseModel):
    status: RegistrationStatus


class PaymentStatusUpdateRequest(BaseModel):
    payment_status: PaymentStatus
    payment_id: str


class PaymentRecordRequest(BaseModel):
    registration_id: str
    user_id: str
    user_name: str
    user_email: str
    amount: float = Field(..., ge=0)
    payment_id: str = Field(..., min_length=1)
    payment_method: Optional[str] = None
    transaction_id: Optional[str] = None


class TeamCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=128)


class TeamCreatedResponse(BaseModel):
    team_id: str


class TeamJoinRequest(BaseModel):
    max_team_size: Optional[int] = Field(default=None, ge=1)


class TeamMemberResponse(BaseModel):
    user_id: str
    user_name: str
    user_email: str


class TeamResponse(BaseModel):
    id: Optional[str] = None
    name: str
    event_id: str
    club_id: str
    created_by: str
    members: list[TeamMemberResponse]


class TeamListResponse(BaseModel):
    teams: list[TeamResponse]


class StatusResponse(BaseModel):
    status: Literal["ok"]
