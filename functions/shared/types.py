# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import List, Optional, Union

from google.cloud.firestore_v1.transforms import Sentinel

DEFAULT_ROLE = "student"
DEFAULT_USER_NAME = "User"

# None: not yet set. datetime: client supplied, or read back from storage.
# Sentinel: firestore_v1.SERVER_TIMESTAMP, assigned by the server on write.
Timestamp = Optional[Union[datetime, Sentinel]]


class RegistrationStatus(StrEnum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class PaymentStatus(StrEnum):
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"


class CheckInStatus(StrEnum):
    NOT_CHECKED_IN = "not_checked_in"
    CHECKED_IN = "checked_in"


@dataclass
class SessionUser:
    """Identity handle returned by the auth provider for a signed-in user."""

    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    id_token: Optional[str] = None
    refresh_token: Optional[str] = None


@dataclass
class User:
    """Application profile stored at users/{id}."""

    id: str
    name: str = DEFAULT_USER_NAME
    email: str = ""
    role: str = DEFAULT_ROLE
    roll_number: Optional[str] = None
    year: Optional[str] = None
    branch: Optional[str] = None
    mobile: Optional[str] = None
    is_guest: bool = False
    managed_club_ids: List[str] = field(default_factory=list)


@dataclass
class EventInfo:
    """Event metadata copied onto a registration when it is created."""

    name: str
    date: str
    location: str
    organizer_club_id: str
    registration_fee: Optional[float] = None

    @property
    def requires_payment(self) -> bool:
        return bool(self.registration_fee and self.registration_fee > 0)


@dataclass
class EventRegistration:
    """One user's registration for one event of one club."""

    event_id: str
    user_id: str
    status: RegistrationStatus
    user_name: str = ""
    user_email: str = ""
    id: Optional[str] = None
    club_id: Optional[str] = None
    user_phone: Optional[str] = None
    user_roll_number: Optional[str] = None
    user_branch: Optional[str] = None
    user_year: Optional[str] = None
    registration_date: Timestamp = None
    additional_info: Optional[str] = None
    event_name: Optional[str] = None
    event_date: Optional[str] = None
    event_location: Optional[str] = None
    registration_fee: Optional[float] = None
    payment_status: Optional[PaymentStatus] = None
    payment_id: Optional[str] = None
    qr_code: Optional[str] = None
    check_in_time: Timestamp = None
    check_in_status: Optional[CheckInStatus] = None
    team_id: Optional[str] = None


@dataclass
class EventPaymentRecord:
    """Append-only record of a successful payment, keyed by payment_id."""

    registration_id: str
    event_id: str
    club_id: str
    user_id: str
    user_name: str
    user_email: str
    amount: float
    payment_id: str
    payment_status: PaymentStatus = PaymentStatus.PAID
    payment_method: Optional[str] = None
    transaction_id: Optional[str] = None
    timestamp: Timestamp = None
    id: Optional[str] = None


@dataclass
class TeamMember:
    user_id: str
    user_name: str
    user_email: str


@dataclass
class EventTeam:
    name: str
    event_id: str
    club_id: str
    created_by: str
    members: List[TeamMember] = field(default_factory=list)
    created_at: Timestamp = None
    id: Optional[str] = None
