"""
Dependency wiring for library callers and the FastAPI app.
"""

from __future__ import annotations

from typing import Optional

import firebase_admin
from fastapi import Depends, Header

from backend.auth import AuthClient, FirebaseAuthClient, InMemoryAuthClient
from backend.config import get_settings
from backend.db import DocumentStore, FirestoreDocumentStore, InMemoryDocumentStore
from backend.identity import AuthService, UserProfileService
from backend.registrations import EventRegistrationService
from shared.errors import AuthenticationError
from shared.types import SessionUser

_document_store: DocumentStore | None = None
_auth_client: AuthClient | None = None
_auth_service: AuthService | None = None


def _ensure_firebase_app(project_id: Optional[str]) -> None:
    try:
        firebase_admin.get_app()
    except ValueError:
        options = {"projectId": project_id} if project_id else None
        firebase_admin.initialize_app(options=options)


def get_document_store() -> DocumentStore:
    """
    Return a singleton document store so in-memory state persists across requests.
    """
    global _document_store
    if _document_store:
        return _document_store

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.google_cloud_project:
        _document_store = InMemoryDocumentStore()
    else:
        _ensure_firebase_app(settings.google_cloud_project)
        _document_store = FirestoreDocumentStore()
    return _document_store


def get_auth_client() -> AuthClient:
    global _auth_client
    if _auth_client:
        return _auth_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.firebase_api_key:
        _auth_client = InMemoryAuthClient()
    else:
        _ensure_firebase_app(settings.google_cloud_project)
        _auth_client = FirebaseAuthClient(
            api_key=settings.firebase_api_key,
            emulator_host=settings.firebase_auth_emulator_host,
            request_uri=settings.idp_request_uri,
            timeout=settings.auth_request_timeout,
        )
    return _auth_client


def get_auth_service() -> AuthService:
    """The process-wide session used by library callers."""
    global _auth_service
    if _auth_service:
        return _auth_service
    _auth_service = AuthService(get_auth_client(), get_document_store())
    return _auth_service


def get_profile_service() -> UserProfileService:
    return UserProfileService(get_document_store())


def get_registration_service() -> EventRegistrationService:
    """Registration service bound to the process session of `get_auth_service`."""
    return EventRegistrationService(
        get_document_store(), get_auth_service().get_current_user
    )


def get_session_user(
    authorization: Optional[str] = Header(default=None),
    auth_client: AuthClient = Depends(get_auth_client),
) -> SessionUser:
    """Verifies the request's `Authorization: Bearer <id token>` header."""
    if not authorization or not authorization.lower().startswith("bearer "):
        raise AuthenticationError("Missing bearer token")
    return auth_client.verify_id_token(authorization[len("bearer ") :].strip())


def get_request_registration_service(
    session_user: SessionUser = Depends(get_session_user),
    store: DocumentStore = Depends(get_document_store),
) -> EventRegistrationService:
    """Registration service bound to the session of the current request."""
    return EventRegistrationService(store, lambda: session_user)


def reset_dependencies() -> None:
    """Drop cached singletons (useful in tests)."""
    global _document_store, _auth_client, _auth_service
    _document_store = None
    _auth_client = None
    _auth_service = None
