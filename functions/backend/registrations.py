"""
Event registrations, payment records and teams.

Everything lives under events/{clubId}/clubEvents/{eventId}/, in the
registrations, payments and teams sub-collections.
"""

from __future__ import annotations

import dataclasses
import functools
import logging
from datetime import datetime
from typing import Callable, List, Optional

from google.cloud.firestore_v1 import SERVER_TIMESTAMP

from backend.db import (
    DocumentStore,
    payments_path,
    registrations_path,
    teams_path,
)
from shared.api import ReadResult, RegistrationStats
from shared.errors import AuthenticationError, NotFoundError, ValidationError
from shared.types import (
    CheckInStatus,
    EventInfo,
    EventPaymentRecord,
    EventRegistration,
    EventTeam,
    PaymentStatus,
    RegistrationStatus,
    SessionUser,
    TeamMember,
    User,
)
from shared.utils import from_document, to_document

logger = logging.getLogger(__name__)

# Highest code point in the Basic Multilingual Plane's private use area; sorts
# after any character a team name would reasonably contain.
PREFIX_SEARCH_SENTINEL = "\uf8ff"

PAID_EVENT_ERROR = (
    "Registration for paid events should be created after payment is successful."
)


def _compare_registration_dates(a: EventRegistration, b: EventRegistration) -> int:
    """Newest first; registrations without a timestamp compare as equal."""
    a_date, b_date = a.registration_date, b.registration_date
    if isinstance(a_date, datetime) and isinstance(b_date, datetime):
        return (b_date > a_date) - (b_date < a_date)
    return 0


class EventRegistrationService:
    """
    Registration, payment and team operations for a single club event.

    Args:
        store (DocumentStore): The document database.
        current_user (Callable): Returns the active session user, or None when
            nobody is signed in.
    """

    def __init__(
        self,
        store: DocumentStore,
        current_user: Callable[[], Optional[SessionUser]] = lambda: None,
    ):
        self.store = store
        self.current_user = current_user

    def _registration_path(self, club_id: str, event_id: str, registration_id: str):
        return registrations_path(club_id, event_id) + (registration_id,)

    def _add_registration(
        self,
        event_id: str,
        user: User,
        event_info: EventInfo,
        additional_info: Optional[str],
        **overrides,
    ) -> str:
        registration = EventRegistration(
            event_id=event_id,
            club_id=event_info.organizer_club_id,
            user_id=user.id or "",
            user_name=user.name,
            user_email=user.email or "",
            user_phone=user.mobile,
            user_roll_number=user.roll_number,
            user_branch=user.branch,
            user_year=user.year,
            status=RegistrationStatus.CONFIRMED,
            additional_info=additional_info or "",
            event_name=event_info.name,
            event_date=event_info.date,
            event_location=event_info.location,
            registration_fee=event_info.registration_fee or 0,
            check_in_status=CheckInStatus.NOT_CHECKED_IN,
        )
        for name, value in overrides.items():
            setattr(registration, name, value)

        document = to_document(registration, exclude=("id",))
        document["registrationDate"] = SERVER_TIMESTAMP
        return self.store.add_document(
            registrations_path(event_info.organizer_club_id, event_id), document
        )

    def register_for_event(
        self,
        event_id: str,
        user: User,
        event_info: EventInfo,
        additional_info: Optional[str] = None,
    ) -> str:
        """
        Registers `user` for a free event.

        Raises:
            ValidationError: If the event has a registration fee; paid events
                are registered with `register_for_paid_event` once paid.

        Returns:
            str: The new registration id.
        """
        if event_info.requires_payment:
            raise ValidationError(PAID_EVENT_ERROR)
        return self._add_registration(event_id, user, event_info, additional_info)

    def register_for_paid_event(
        self,
        event_id: str,
        user: User,
        event_info: EventInfo,
        payment_id: str,
        additional_info: Optional[str] = None,
    ) -> str:
        """
        Registers the signed-in user for a paid event after a successful payment.

        The stored userId is the uid of the active session, not `user.id`.
        """
        if not user.id:
            raise ValidationError("User ID is required for registration")
        session_user = self.current_user()
        if session_user is None:
            raise AuthenticationError(
                "User must be authenticated to register for events"
            )
        if session_user.uid != user.id:
            logger.warning(
                f"Paid registration for {user.id} stored under session uid {session_user.uid}"
            )
        return self._add_registration(
            event_id,
            user,
            event_info,
            additional_info,
            user_id=session_user.uid,
            payment_status=PaymentStatus.PAID,
            payment_id=payment_id,
        )

    def register_for_team_event(
        self,
        event_id: str,
        user: User,
        event_info: EventInfo,
        team_id: str,
        additional_info: Optional[str] = None,
    ) -> str:
        return self._add_registration(
            event_id, user, event_info, additional_info, team_id=team_id
        )

    def check_user_registration(
        self, event_id: str, user_id: str, club_id: Optional[str]
    ) -> ReadResult[bool]:
        if not club_id or not event_id or not user_id:
            return ReadResult(value=False)
        try:
            matches = self.store.query_documents(
                registrations_path(club_id, event_id),
                [("userId", "==", user_id)],
            )
        except Exception as e:
            logger.error(
                f"Error checking user registration (event={event_id}, user={user_id}, club={club_id}): {e}"
            )
            return ReadResult(value=False, error=str(e))
        active = [
            data for _, data in matches if data.get("status") != RegistrationStatus.CANCELLED
        ]
        return ReadResult(value=len(active) > 0)

    def is_user_registered(
        self, event_id: str, user_id: str, club_id: Optional[str]
    ) -> bool:
        """True if the user has a registration for the event that is not cancelled."""
        return self.check_user_registration(event_id, user_id, club_id).value

    def fetch_user_registrations(
        self, user_id: str, club_id: str, event_id: str
    ) -> ReadResult[List[EventRegistration]]:
        if not user_id or not club_id or not event_id:
            logger.warning(
                f"get_user_registrations called with missing params: user={user_id!r}, club={club_id!r}, event={event_id!r}"
            )
            return ReadResult(value=[])
        try:
            matches = self.store.query_documents(
                registrations_path(club_id, event_id),
                [("userId", "==", user_id)],
            )
            registrations = [
                from_document(EventRegistration, doc_id, data) for doc_id, data in matches
            ]
        except Exception as e:
            logger.error(
                f"Error getting user registrations (user={user_id}, club={club_id}, event={event_id}): {e}"
            )
            return ReadResult(value=[], error=str(e))
        registrations.sort(key=functools.cmp_to_key(_compare_registration_dates))
        return ReadResult(value=registrations)

    def get_user_registrations(
        self, user_id: str, club_id: str, event_id: str
    ) -> List[EventRegistration]:
        """The user's registrations for the event, newest first."""
        return self.fetch_user_registrations(user_id, club_id, event_id).value

    def get_event_registrations(
        self, event_id: str, club_id: str
    ) -> List[EventRegistration]:
        matches = self.store.query_documents(registrations_path(club_id, event_id))
        return [
            from_document(EventRegistration, doc_id, data) for doc_id, data in matches
        ]

    def get_event_registration_stats(
        self, event_id: str, club_id: str
    ) -> RegistrationStats:
        registrations = self.get_event_registrations(event_id, club_id)

        def count(predicate) -> int:
            return sum(1 for r in registrations if predicate(r))

        return RegistrationStats(
            total_registrations=len(registrations),
            confirmed_registrations=count(
                lambda r: r.status == RegistrationStatus.CONFIRMED
            ),
            pending_registrations=count(lambda r: r.status == RegistrationStatus.PENDING),
            cancelled_registrations=count(
                lambda r: r.status == RegistrationStatus.CANCELLED
            ),
            checked_in_count=count(
                lambda r: r.check_in_status == CheckInStatus.CHECKED_IN
            ),
        )

    def get_event_registration_count(self, event_id: str, club_id: str) -> int:
        return len(self.get_event_registrations(event_id, club_id))

    def update_registration_status(
        self,
        registration_id: str,
        new_status: RegistrationStatus | str,
        club_id: str,
        event_id: str,
    ) -> None:
        """Sets the status; any status may move to any other."""
        try:
            status = RegistrationStatus(new_status)
        except ValueError as e:
            raise ValidationError(f"Unknown registration status: {new_status}") from e
        self.store.update_document(
            self._registration_path(club_id, event_id, registration_id),
            {"status": status.value},
        )

    def cancel_registration(
        self, registration_id: str, club_id: str, event_id: str
    ) -> None:
        try:
            self.update_registration_status(
                registration_id, RegistrationStatus.CANCELLED, club_id, event_id
            )
        except Exception as e:
            logger.error(f"Error cancelling registration {registration_id}: {e}")
            raise

    def check_in_user(self, registration_id: str, club_id: str, event_id: str) -> None:
        """Marks the registrant as present. Repeat calls re-stamp checkInTime."""
        try:
            self.store.update_document(
                self._registration_path(club_id, event_id, registration_id),
                {
                    "checkInStatus": CheckInStatus.CHECKED_IN.value,
                    "checkInTime": SERVER_TIMESTAMP,
                },
            )
        except Exception as e:
            logger.error(f"Error checking in registration {registration_id}: {e}")
            raise
        logger.info(f"Checked in registration {registration_id}")

    def update_payment_status(
        self,
        registration_id: str,
        payment_status: PaymentStatus | str,
        payment_id: str,
        club_id: str,
        event_id: str,
    ) -> None:
        """Records the payment; a paid registration is also confirmed."""
        try:
            status = PaymentStatus(payment_status)
        except ValueError as e:
            raise ValidationError(f"Unknown payment status: {payment_status}") from e
        updates = {"paymentStatus": status.value, "paymentId": payment_id}
        if status == PaymentStatus.PAID:
            updates["status"] = RegistrationStatus.CONFIRMED.value
        self.store.update_document(
            self._registration_path(club_id, event_id, registration_id), updates
        )

    def fetch_registration_by_id(
        self, registration_id: str, club_id: str, event_id: str
    ) -> ReadResult[EventRegistration]:
        try:
            data = self.store.get_document(
                self._registration_path(club_id, event_id, registration_id)
            )
            if data is None:
                return ReadResult()
            return ReadResult(
                value=from_document(EventRegistration, registration_id, data)
            )
        except Exception as e:
            logger.error(f"Error getting registration {registration_id}: {e}")
            return ReadResult(error=str(e))

    def get_registration_by_id(
        self, registration_id: str, club_id: str, event_id: str
    ) -> Optional[EventRegistration]:
        return self.fetch_registration_by_id(registration_id, club_id, event_id).value

    def delete_registration(
        self, registration_id: str, club_id: str, event_id: str
    ) -> None:
        # Access control is left to the database's security rules.
        try:
            self.store.delete_document(
                self._registration_path(club_id, event_id, registration_id)
            )
        except Exception as e:
            logger.error(f"Error deleting registration {registration_id}: {e}")
            raise
        logger.info(f"Deleted registration {registration_id}")

    def store_event_payment(self, payment: EventPaymentRecord) -> None:
        """
        Writes the payment record to payments/{payment_id}.

        Does nothing when the registration, event or club id is missing.
        """
        if not payment.event_id or not payment.club_id or not payment.registration_id:
            logger.warning(
                f"Skipping payment record {payment.payment_id}: missing registration, event or club id"
            )
            return
        if not payment.payment_id:
            raise ValidationError("Payment ID is required to store a payment record")
        record = dataclasses.replace(payment, payment_status=PaymentStatus.PAID)
        document = to_document(record, exclude=("id", "timestamp"))
        document["timestamp"] = SERVER_TIMESTAMP
        self.store.set_document(
            payments_path(payment.club_id, payment.event_id) + (payment.payment_id,),
            document,
        )

    def create_team(
        self, event_id: str, club_id: str, team_name: str, creator: TeamMember
    ) -> str:
        """Creates a team with `creator` as its only member; returns the team id."""
        team = EventTeam(
            name=team_name,
            event_id=event_id,
            club_id=club_id,
            created_by=creator.user_id,
            members=[creator],
        )
        document = to_document(team, exclude=("id", "created_at"))
        document["createdAt"] = SERVER_TIMESTAMP
        return self.store.add_document(teams_path(club_id, event_id), document)

    def join_team(
        self,
        event_id: str,
        club_id: str,
        team_id: str,
        member: TeamMember,
        max_team_size: Optional[int] = None,
    ) -> None:
        """
        Adds `member` to the team inside a transaction.

        Joining a team the user already belongs to is a no-op.

        Raises:
            NotFoundError: If the team does not exist.
            ValidationError: If the team already has `max_team_size` members.
        """

        def _add_member(team_data: dict) -> Optional[dict]:
            members = team_data.get("members") or []
            if any(m.get("userId") == member.user_id for m in members):
                return None
            if max_team_size is not None and len(members) >= max_team_size:
                raise ValidationError(f"Team is full ({max_team_size} members)")
            return {"members": members + [to_document(member)]}

        try:
            self.store.update_in_transaction(
                teams_path(club_id, event_id) + (team_id,), _add_member
            )
        except NotFoundError as e:
            raise NotFoundError("Team not found") from e

    def search_teams(
        self, event_id: str, club_id: str, search_text: str
    ) -> List[EventTeam]:
        """Teams whose name starts with `search_text` (case-sensitive)."""
        matches = self.store.query_documents(
            teams_path(club_id, event_id),
            [
                ("name", ">=", search_text),
                ("name", "<=", search_text + PREFIX_SEARCH_SENTINEL),
            ],
        )
        return [from_document(EventTeam, doc_id, data) for doc_id, data in matches]
