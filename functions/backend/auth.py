"""
Auth provider abstraction for Firebase Auth and an in-memory test implementation.

Clients are stateless: each call returns the provider's session handle and the
caller decides where the session lives.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol

import requests
from firebase_admin import auth as firebase_auth
from firebase_admin import exceptions as firebase_exceptions

from shared.errors import AuthenticationError
from shared.types import SessionUser

logger = logging.getLogger(__name__)

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1"
GOOGLE_PROVIDER_ID = "google.com"
REQUEST_TIMEOUT = 30  # seconds


class AuthClient(Protocol):
    """Operations the data layer needs from the auth provider."""

    def sign_in_with_password(self, email: str, password: str) -> SessionUser:
        ...

    def sign_up_with_password(self, email: str, password: str) -> SessionUser:
        ...

    def sign_in_with_idp(
        self, id_token: str, provider_id: str = GOOGLE_PROVIDER_ID
    ) -> SessionUser:
        ...

    def verify_id_token(self, id_token: str) -> SessionUser:
        ...


def _session_from_response(payload: dict) -> SessionUser:
    return SessionUser(
        uid=payload["localId"],
        email=payload.get("email"),
        display_name=payload.get("displayName") or payload.get("fullName"),
        id_token=payload.get("idToken"),
        refresh_token=payload.get("refreshToken"),
    )


class FirebaseAuthClient:
    """
    Firebase Auth client. Sign-in and sign-up go through the Identity Toolkit
    REST API (the Admin SDK cannot verify passwords); ID tokens are verified
    with the Admin SDK.
    """

    def __init__(
        self,
        api_key: str,
        emulator_host: Optional[str] = None,
        request_uri: str = "http://localhost",
        timeout: int = REQUEST_TIMEOUT,
    ):
        if not api_key:
            raise ValueError("FIREBASE_API_KEY is required for FirebaseAuthClient")
        self.api_key = api_key
        self.request_uri = request_uri
        self.timeout = timeout
        if emulator_host:
            self.base_url = f"http://{emulator_host}/identitytoolkit.googleapis.com/v1"
        else:
            self.base_url = IDENTITY_TOOLKIT_URL

    def _post(self, method: str, body: dict) -> dict:
        url = f"{self.base_url}/accounts:{method}"
        try:
            response = requests.post(
                url, params={"key": self.api_key}, json=body, timeout=self.timeout
            )
        except requests.RequestException as e:
            raise AuthenticationError(str(e)) from e

        if not response.ok:
            try:
                message = response.json().get("error", {}).get("message")
            except ValueError:
                message = None
            logger.warning(f"Auth request {method} rejected: {message}")
            raise AuthenticationError(message or response.reason or "Auth request failed")
        return response.json()

    def sign_in_with_password(self, email: str, password: str) -> SessionUser:
        payload = self._post(
            "signInWithPassword",
            {"email": email, "password": password, "returnSecureToken": True},
        )
        return _session_from_response(payload)

    def sign_up_with_password(self, email: str, password: str) -> SessionUser:
        payload = self._post(
            "signUp",
            {"email": email, "password": password, "returnSecureToken": True},
        )
        return _session_from_response(payload)

    def sign_in_with_idp(
        self, id_token: str, provider_id: str = GOOGLE_PROVIDER_ID
    ) -> SessionUser:
        payload = self._post(
            "signInWithIdp",
            {
                "postBody": f"id_token={id_token}&providerId={provider_id}",
                "requestUri": self.request_uri,
                "returnIdpCredential": True,
                "returnSecureToken": True,
            },
        )
        return _session_from_response(payload)

    def verify_id_token(self, id_token: str) -> SessionUser:
        try:
            claims = firebase_auth.verify_id_token(id_token)
        except (ValueError, firebase_exceptions.FirebaseError) as e:
            raise AuthenticationError(str(e)) from e
        return SessionUser(
            uid=claims["uid"],
            email=claims.get("email"),
            display_name=claims.get("name"),
            id_token=id_token,
        )


@dataclass
class _Account:
    uid: str
    email: str
    password: Optional[str] = None
    display_name: Optional[str] = None


@dataclass
class InMemoryAuthClient:
    """Test double for auth provider interactions."""

    accounts: Dict[str, _Account] = field(default_factory=dict)
    tokens: Dict[str, str] = field(default_factory=dict)
    # Google ID token -> (email, display name)
    idp_identities: Dict[str, tuple[str, Optional[str]]] = field(default_factory=dict)

    def _issue(self, account: _Account) -> SessionUser:
        id_token = uuid.uuid4().hex
        self.tokens[id_token] = account.uid
        return SessionUser(
            uid=account.uid,
            email=account.email,
            display_name=account.display_name,
            id_token=id_token,
            refresh_token=uuid.uuid4().hex,
        )

    def add_account(
        self, email: str, password: Optional[str] = None, display_name: Optional[str] = None
    ) -> str:
        uid = uuid.uuid4().hex
        self.accounts[email] = _Account(
            uid=uid, email=email, password=password, display_name=display_name
        )
        return uid

    def sign_in_with_password(self, email: str, password: str) -> SessionUser:
        account = self.accounts.get(email)
        if account is None:
            raise AuthenticationError("EMAIL_NOT_FOUND")
        if account.password != password:
            raise AuthenticationError("INVALID_PASSWORD")
        return self._issue(account)

    def sign_up_with_password(self, email: str, password: str) -> SessionUser:
        if email in self.accounts:
            raise AuthenticationError("EMAIL_EXISTS")
        if not password or len(password) < 6:
            raise AuthenticationError(
                "WEAK_PASSWORD : Password should be at least 6 characters"
            )
        self.add_account(email, password)
        return self._issue(self.accounts[email])

    def sign_in_with_idp(
        self, id_token: str, provider_id: str = GOOGLE_PROVIDER_ID
    ) -> SessionUser:
        identity = self.idp_identities.get(id_token)
        if identity is None:
            raise AuthenticationError("INVALID_IDP_RESPONSE")
        email, display_name = identity
        if email not in self.accounts:
            self.add_account(email, display_name=display_name)
        return self._issue(self.accounts[email])

    def verify_id_token(self, id_token: str) -> SessionUser:
        uid = self.tokens.get(id_token)
        if uid is None:
            raise AuthenticationError("INVALID_ID_TOKEN")
        account = next(a for a in self.accounts.values() if a.uid == uid)
        return SessionUser(
            uid=uid,
            email=account.email,
            display_name=account.display_name,
            id_token=id_token,
        )
