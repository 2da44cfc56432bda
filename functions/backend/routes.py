"""
HTTP routes for the club events API.

Sign-in routes are stateless and return the provider session; every other
route expects `Authorization: Bearer <id token>`.

The server talks to Firestore with admin credentials, so database security
rules do not apply here: event-wide reads and registration management need a
club admin (`club_id in managed_club_ids`), and a single registration is
visible to its owner or a club admin.
"""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, Query

from backend.auth import AuthClient
from backend.dependencies import (
    get_auth_client,
    get_profile_service,
    get_request_registration_service,
    get_session_user,
)
from backend.identity import UserProfileService
from backend.registrations import EventRegistrationService
from backend.schemas import (
    CredentialsRequest,
    GoogleSignInRequest,
    PaidRegistrationRequest,
    PaymentRecordRequest,
    PaymentStatusUpdateRequest,
    ProfileResponse,
    ProfileUpdateRequest,
    RegisteredResponse,
    RegistrationCountResponse,
    RegistrationCreatedResponse,
    RegistrationListResponse,
    RegistrationRequest,
    RegistrationResponse,
    RegistrationStatsResponse,
    SessionResponse,
    StatusResponse,
    StatusUpdateRequest,
    TeamCreatedResponse,
    TeamCreateRequest,
    TeamJoinRequest,
    TeamListResponse,
    TeamResponse,
)
from shared.types import (
    DEFAULT_USER_NAME,
    EventInfo,
    EventPaymentRecord,
    EventRegistration,
    SessionUser,
    TeamMember,
    User,
)

router = APIRouter()

EVENT_PREFIX = "/events/{club_id}/{event_id}"


def _session_response(session: SessionUser) -> SessionResponse:
    return SessionResponse(**asdict(session))


def _require_profile(
    session: SessionUser, profiles: UserProfileService
) -> User:
    profile = profiles.get_or_create_profile(session)
    if profile is None:
        raise HTTPException(status_code=503, detail="Profile unavailable")
    return profile


def require_club_admin(
    club_id: str,
    session: SessionUser = Depends(get_session_user),
    profiles: UserProfileService = Depends(get_profile_service),
) -> User:
    """Route dependency: the caller must manage the club in the path."""
    profile = _require_profile(session, profiles)
    if club_id not in profile.managed_club_ids:
        raise HTTPException(status_code=403, detail="Club admin access required")
    return profile


def _require_owner_or_admin(
    registration: EventRegistration,
    club_id: str,
    session: SessionUser,
    profiles: UserProfileService,
) -> None:
    if registration.user_id == session.uid:
        return
    require_club_admin(club_id, session, profiles)


def _load_registration(
    service: EventRegistrationService,
    registration_id: str,
    club_id: str,
    event_id: str,
) -> EventRegistration:
    registration = service.get_registration_by_id(registration_id, club_id, event_id)
    if registration is None:
        raise HTTPException(status_code=404, detail="Registration not found")
    return registration


def _team_member(session: SessionUser) -> TeamMember:
    return TeamMember(
        user_id=session.uid,
        user_name=session.display_name or DEFAULT_USER_NAME,
        user_email=session.email or "",
    )


@router.post("/auth/sign-in", response_model=SessionResponse)
def sign_in(
    payload: CredentialsRequest, auth_client: AuthClient = Depends(get_auth_client)
):
    return _session_response(
        auth_client.sign_in_with_password(payload.email, payload.password)
    )


@router.post("/auth/sign-up", response_model=SessionResponse, status_code=201)
def sign_up(
    payload: CredentialsRequest, auth_client: AuthClient = Depends(get_auth_client)
):
    return _session_response(
        auth_client.sign_up_with_password(payload.email, payload.password)
    )


@router.post("/auth/google", response_model=SessionResponse)
def sign_in_with_google(
    payload: GoogleSignInRequest, auth_client: AuthClient = Depends(get_auth_client)
):
    return _session_response(auth_client.sign_in_with_idp(payload.id_token))


@router.get("/profile", response_model=ProfileResponse)
def get_profile(
    session: SessionUser = Depends(get_session_user),
    profiles: UserProfileService = Depends(get_profile_service),
):
    return ProfileResponse(**asdict(_require_profile(session, profiles)))


@router.patch("/profile", response_model=ProfileResponse)
def update_profile(
    payload: ProfileUpdateRequest,
    session: SessionUser = Depends(get_session_user),
    profiles: UserProfileService = Depends(get_profile_service),
):
    _require_profile(session, profiles)
    profiles.update_profile(session.uid, payload.model_dump(exclude_unset=True))
    return ProfileResponse(**asdict(_require_profile(session, profiles)))


@router.post(
    EVENT_PREFIX + "/registrations",
    response_model=RegistrationCreatedResponse,
    status_code=201,
)
def register(
    club_id: str,
    event_id: str,
    payload: RegistrationRequest,
    session: SessionUser = Depends(get_session_user),
    profiles: UserProfileService = Depends(get_profile_service),
    service: EventRegistrationService = Depends(get_request_registration_service),
):
    """Free registration, or team registration when `team_id` is given."""
    user = _require_profile(session, profiles)
    event_info = EventInfo(organizer_club_id=club_id, **payload.event_info.model_dump())
    if payload.team_id:
        registration_id = service.register_for_team_event(
            event_id, user, event_info, payload.team_id, payload.additional_info
        )
    else:
        registration_id = service.register_for_event(
            event_id, user, event_info, payload.additional_info
        )
    return RegistrationCreatedResponse(registration_id=registration_id)


@router.post(
    EVENT_PREFIX + "/registrations/paid",
    response_model=RegistrationCreatedResponse,
    status_code=201,
)
def register_paid(
    club_id: str,
    event_id: str,
    payload: PaidRegistrationRequest,
    session: SessionUser = Depends(get_session_user),
    profiles: UserProfileService = Depends(get_profile_service),
    service: EventRegistrationService = Depends(get_request_registration_service),
):
    user = _require_profile(session, profiles)
    event_info = EventInfo(organizer_club_id=club_id, **payload.event_info.model_dump())
    registration_id = service.register_for_paid_event(
        event_id, user, event_info, payload.payment_id, payload.additional_info
    )
    return RegistrationCreatedResponse(registration_id=registration_id)


@router.get(
    EVENT_PREFIX + "/registrations",
    response_model=RegistrationListResponse,
    dependencies=[Depends(require_club_admin)],
)
def list_registrations(
    club_id: str,
    event_id: str,
    service: EventRegistrationService = Depends(get_request_registration_service),
):
    registrations = service.get_event_registrations(event_id, club_id)
    return RegistrationListResponse(
        registrations=[RegistrationResponse(**asdict(r)) for r in registrations]
    )


@router.get(
    EVENT_PREFIX + "/registrations/stats",
    response_model=RegistrationStatsResponse,
    dependencies=[Depends(require_club_admin)],
)
def registration_stats(
    club_id: str,
    event_id: str,
    service: EventRegistrationService = Depends(get_request_registration_service),
):
    stats = service.get_event_registration_stats(event_id, club_id)
    return RegistrationStatsResponse(**asdict(stats))


@router.get(
    EVENT_PREFIX + "/registrations/count",
    response_model=RegistrationCountResponse,
    dependencies=[Depends(require_club_admin)],
)
def registration_count(
    club_id: str,
    event_id: str,
    service: EventRegistrationService = Depends(get_request_registration_service),
):
    return RegistrationCountResponse(
        count=service.get_event_registration_count(event_id, club_id)
    )


@router.get(EVENT_PREFIX + "/registrations/me", response_model=RegistrationListResponse)
def my_registrations(
    club_id: str,
    event_id: str,
    session: SessionUser = Depends(get_session_user),
    service: EventRegistrationService = Depends(get_request_registration_service),
):
    registrations = service.get_user_registrations(session.uid, club_id, event_id)
    return RegistrationListResponse(
        registrations=[RegistrationResponse(**asdict(r)) for r in registrations]
    )


@router.get(
    EVENT_PREFIX + "/registrations/me/registered", response_model=RegisteredResponse
)
def am_i_registered(
    club_id: str,
    event_id: str,
    session: SessionUser = Depends(get_session_user),
    service: EventRegistrationService = Depends(get_request_registration_service),
):
    return RegisteredResponse(
        registered=service.is_user_registered(event_id, session.uid, club_id)
    )


@router.get(
    EVENT_PREFIX + "/registrations/{registration_id}",
    response_model=RegistrationResponse,
)
def get_registration(
    club_id: str,
    event_id: str,
    registration_id: str,
    session: SessionUser = Depends(get_session_user),
    profiles: UserProfileService = Depends(get_profile_service),
    service: EventRegistrationService = Depends(get_request_registration_service),
):
    registration = _load_registration(service, registration_id, club_id, event_id)
    _require_owner_or_admin(registration, club_id, session, profiles)
    return RegistrationResponse(**asdict(registration))


@router.delete(
    EVENT_PREFIX + "/registrations/{registration_id}",
    response_model=StatusResponse,
    dependencies=[Depends(require_club_admin)],
)
def delete_registration(
    club_id: str,
    event_id: str,
    registration_id: str,
    service: EventRegistrationService = Depends(get_request_registration_service),
):
    service.delete_registration(registration_id, club_id, event_id)
    return StatusResponse(status="ok")


@router.post(
    EVENT_PREFIX + "/registrations/{registration_id}/cancel",
    response_model=StatusResponse,
)
def cancel_registration(
    club_id: str,
    event_id: str,
    registration_id: str,
    session: SessionUser = Depends(get_session_user),
    profiles: UserProfileService = Depends(get_profile_service),
    service: EventRegistrationService = Depends(get_request_registration_service),
):
    registration = _load_registration(service, registration_id, club_id, event_id)
    _require_owner_or_admin(registration, club_id, session, profiles)
    service.cancel_registration(registration_id, club_id, event_id)
    return StatusResponse(status="ok")


@router.post(
    EVENT_PREFIX + "/registrations/{registration_id}/check-in",
    response_model=StatusResponse,
    dependencies=[Depends(require_club_admin)],
)
def check_in(
    club_id: str,
    event_id: str,
    registration_id: str,
    service: EventRegistrationService = Depends(get_request_registration_service),
):
    service.check_in_user(registration_id, club_id, event_id)
    return StatusResponse(status="ok")


@router.patch(
    EVENT_PREFIX + "/registrations/{registration_id}/status",
    response_model=StatusResponse,
    dependencies=[Depends(require_club_admin)],
)
def update_status(
    club_id: str,
    event_id: str,
    registration_id: str,
    payload: StatusUpdateRequest,
    service: EventRegistrationService = Depends(get_request_registration_service),
):
    service.update_registration_status(
        registration_id, payload.status, club_id, event_id
    )
    return StatusResponse(status="ok")


@router.patch(
    EVENT_PREFIX + "/registrations/{registration_id}/payment",
    response_model=StatusResponse,
    dependencies=[Depends(require_club_admin)],
)
def update_payment(
    club_id: str,
    event_id: str,
    registration_id: str,
    payload: PaymentStatusUpdateRequest,
    service: EventRegistrationService = Depends(get_request_registration_service),
):
    service.update_payment_status(
        registration_id, payload.payment_status, payload.payment_id, club_id, event_id
    )
    return StatusResponse(status="ok")


@router.post(
    EVENT_PREFIX + "/payments", response_model=StatusResponse, status_code=201
)
def store_payment(
    club_id: str,
    event_id: str,
    payload: PaymentRecordRequest,
    session: SessionUser = Depends(get_session_user),
    profiles: UserProfileService = Depends(get_profile_service),
    service: EventRegistrationService = Depends(get_request_registration_service),
):
    """Club admins may record any payment; other callers only their own."""
    registration = _load_registration(
        service, payload.registration_id, club_id, event_id
    )
    _require_owner_or_admin(registration, club_id, session, profiles)
    if payload.user_id != registration.user_id:
        raise HTTPException(
            status_code=400, detail="Payment user does not match the registration"
        )
    service.store_event_payment(
        EventPaymentRecord(club_id=club_id, event_id=event_id, **payload.model_dump())
    )
    return StatusResponse(status="ok")


@router.post(
    EVENT_PREFIX + "/teams", response_model=TeamCreatedResponse, status_code=201
)
def create_team(
    club_id: str,
    event_id: str,
    payload: TeamCreateRequest,
    session: SessionUser = Depends(get_session_user),
    service: EventRegistrationService = Depends(get_request_registration_service),
):
    team_id = service.create_team(
        event_id, club_id, payload.name, _team_member(session)
    )
    return TeamCreatedResponse(team_id=team_id)


@router.get(EVENT_PREFIX + "/teams", response_model=TeamListResponse)
def search_teams(
    club_id: str,
    event_id: str,
    search: str = Query(""),
    service: EventRegistrationService = Depends(get_request_registration_service),
):
    teams = service.search_teams(event_id, club_id, search)
    return TeamListResponse(teams=[TeamResponse(**asdict(t)) for t in teams])


@router.post(
    EVENT_PREFIX + "/teams/{team_id}/members", response_model=StatusResponse
)
def join_team(
    club_id: str,
    event_id: str,
    team_id: str,
    payload: TeamJoinRequest,
    session: SessionUser = Depends(get_session_user),
    service: EventRegistrationService = Depends(get_request_registration_service),
):
    service.join_team(
        event_id,
        club_id,
        team_id,
        _team_member(session),
        max_team_size=payload.max_team_size,
    )
    return StatusResponse(status="ok")
