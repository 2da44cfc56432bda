"""
Sign-in session handling and user profile records stored at users/{uid}.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, List, Optional

from backend.auth import AuthClient
from backend.db import DocumentStore, user_path
from shared.api import ReadResult
from shared.errors import AuthenticationError
from shared.json_utils import convert_keys
from shared.types import DEFAULT_ROLE, DEFAULT_USER_NAME, SessionUser, User
from shared.utils import remove_none_values, to_document

logger = logging.getLogger(__name__)

AuthStateListener = Callable[[Optional[SessionUser]], None]


class AuthService:
    """
    Authenticates against the auth provider and keeps the process session.

    Listeners registered with `on_auth_state_changed` are called with the
    current session user on registration and again on every sign-in or
    sign-out.
    """

    def __init__(self, auth_client: AuthClient, store: DocumentStore):
        self.auth_client = auth_client
        self.store = store
        self._current_user: Optional[SessionUser] = None
        self._listeners: List[AuthStateListener] = []
        self._lock = threading.Lock()

    def _set_current_user(self, user: Optional[SessionUser]) -> None:
        with self._lock:
            self._current_user = user
            listeners = list(self._listeners)
        for listener in listeners:
            listener(user)

    def _authenticate(
        self, call: Callable[[], SessionUser], default_message: str
    ) -> SessionUser:
        try:
            user = call()
        except AuthenticationError as e:
            raise AuthenticationError(str(e) or default_message) from e
        self._set_current_user(user)
        return user

    def sign_in(self, email: str, password: str) -> SessionUser:
        return self._authenticate(
            lambda: self.auth_client.sign_in_with_password(email, password),
            "Failed to sign in",
        )

    def sign_up(self, email: str, password: str) -> SessionUser:
        return self._authenticate(
            lambda: self.auth_client.sign_up_with_password(email, password),
            "Failed to create account",
        )

    def sign_in_with_google(self, id_token: str) -> SessionUser:
        """
        Exchanges a Google ID token (obtained by the caller's sign-in UI) for a
        provider session.
        """
        return self._authenticate(
            lambda: self.auth_client.sign_in_with_idp(id_token),
            "Failed to sign in with Google",
        )

    def sign_out(self) -> None:
        self._set_current_user(None)

    def get_current_user(self) -> Optional[SessionUser]:
        return self._current_user

    def on_auth_state_changed(self, callback: AuthStateListener) -> Callable[[], None]:
        """Registers `callback`; returns a function that unregisters it."""
        with self._lock:
            self._listeners.append(callback)
        callback(self._current_user)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._listeners:
                    self._listeners.remove(callback)

        return unsubscribe

    def fetch_user_document(self, uid: str) -> ReadResult[dict]:
        try:
            return ReadResult(value=self.store.get_document(user_path(uid)))
        except Exception as e:
            logger.error(f"Error getting user document {uid}: {e}")
            return ReadResult(error=str(e))

    def get_user_document(self, uid: str) -> Optional[dict]:
        """Returns the raw stored profile, or None if absent or unreadable."""
        return self.fetch_user_document(uid).value


def _profile_from_document(uid: str, data: dict) -> User:
    return User(
        id=uid,
        name=data.get("name") or DEFAULT_USER_NAME,
        email=data.get("email") or "",
        role=data.get("role") or DEFAULT_ROLE,
        roll_number=data.get("rollNumber") or None,
        year=data.get("year") or None,
        branch=data.get("branch") or None,
        mobile=data.get("mobile") or None,
        is_guest=data.get("isGuest") or False,
        managed_club_ids=data.get("managedClubIds") or [],
    )


class UserProfileService:
    """Reads and writes application profiles keyed by the provider's uid."""

    def __init__(self, store: DocumentStore):
        self.store = store

    def fetch_profile(self, uid: str) -> ReadResult[User]:
        try:
            data = self.store.get_document(user_path(uid))
        except Exception as e:
            logger.error(f"Error getting user profile {uid}: {e}")
            return ReadResult(error=str(e))
        if data is None:
            return ReadResult()
        return ReadResult(value=_profile_from_document(uid, data))

    def get_profile(self, uid: str) -> Optional[User]:
        return self.fetch_profile(uid).value

    def create_profile(
        self, session_user: SessionUser, profile_data: Optional[dict] = None
    ) -> User:
        """
        Writes a full profile for `session_user`.

        Args:
            session_user (SessionUser): The signed-in user the profile belongs to.
            profile_data (dict): Optional snake_case User fields. Fields that are
                None are not written.

        Returns:
            User: The profile as written.
        """
        profile_data = profile_data or {}
        profile = User(
            id=session_user.uid,
            name=profile_data.get("name") or session_user.display_name or DEFAULT_USER_NAME,
            email=session_user.email or "",
            role=profile_data.get("role") or DEFAULT_ROLE,
            roll_number=profile_data.get("roll_number"),
            year=profile_data.get("year"),
            branch=profile_data.get("branch"),
            mobile=profile_data.get("mobile"),
            is_guest=False,
            managed_club_ids=profile_data.get("managed_club_ids") or [],
        )
        self.store.set_document(user_path(session_user.uid), to_document(profile))
        return profile

    def update_profile(self, uid: str, updates: dict) -> None:
        """Merges the non-None snake_case `updates` into users/{uid}."""
        cleaned = remove_none_values(updates)
        if not cleaned:
            return
        self.store.update_document(
            user_path(uid), convert_keys(cleaned, "snake_to_camel")
        )

    def fetch_or_create_profile(self, session_user: SessionUser) -> ReadResult[User]:
        existing = self.fetch_profile(session_user.uid)
        if not existing.ok or existing.value is not None:
            return existing
        try:
            profile = self.create_profile(
                session_user,
                {
                    "name": session_user.display_name or DEFAULT_USER_NAME,
                    "role": DEFAULT_ROLE,
                },
            )
        except Exception as e:
            logger.error(f"Error creating profile for {session_user.uid}: {e}")
            return ReadResult(error=str(e))
        return ReadResult(value=profile)

    def get_or_create_profile(self, session_user: SessionUser) -> Optional[User]:
        """Returns the stored profile, creating a minimal one on first sign-in."""
        return self.fetch_or_create_profile(session_user).value
