"""
Document database abstraction for Firestore and an in-memory test implementation.

Documents and collections are addressed by tuples of path segments, e.g.
("events", club_id, "clubEvents", event_id, "registrations", registration_id).
"""

from __future__ import annotations

import copy
import operator
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, Optional, Protocol, Sequence

from firebase_admin import firestore
from google.api_core import exceptions
from google.cloud.firestore_v1 import SERVER_TIMESTAMP
from google.cloud.firestore_v1.base_query import FieldFilter

from shared.errors import NotFoundError
from shared.firebase_constants import (
    CLUB_EVENTS_COLLECTION,
    EVENTS_COLLECTION,
    PAYMENTS_COLLECTION,
    REGISTRATIONS_COLLECTION,
    TEAMS_COLLECTION,
    USERS_COLLECTION,
)

DocPath = tuple[str, ...]
# (field, op, value), e.g. ("userId", "==", "u1")
QueryFilter = tuple[str, str, Any]
# Receives the current document data; returns the fields to update, or None
# to leave the document untouched.
Mutation = Callable[[dict], Optional[dict]]


def user_path(user_id: str) -> DocPath:
    return (USERS_COLLECTION, user_id)


def event_path(club_id: str, event_id: str) -> DocPath:
    return (EVENTS_COLLECTION, club_id, CLUB_EVENTS_COLLECTION, event_id)


def registrations_path(club_id: str, event_id: str) -> DocPath:
    return event_path(club_id, event_id) + (REGISTRATIONS_COLLECTION,)


def teams_path(club_id: str, event_id: str) -> DocPath:
    return event_path(club_id, event_id) + (TEAMS_COLLECTION,)


def payments_path(club_id: str, event_id: str) -> DocPath:
    return event_path(club_id, event_id) + (PAYMENTS_COLLECTION,)


class DocumentStore(Protocol):
    """Interface for document database access."""

    def get_document(self, path: DocPath) -> Optional[dict]:
        ...

    def set_document(self, path: DocPath, data: dict, merge: bool = False) -> None:
        ...

    def update_document(self, path: DocPath, data: dict) -> None:
        ...

    def delete_document(self, path: DocPath) -> None:
        ...

    def add_document(self, collection_path: DocPath, data: dict) -> str:
        ...

    def query_documents(
        self, collection_path: DocPath, filters: Sequence[QueryFilter] = ()
    ) -> list[tuple[str, dict]]:
        ...

    def update_in_transaction(self, path: DocPath, mutate: Mutation) -> bool:
        ...


_FILTER_OPS: Dict[str, Callable[[Any, Any], bool]] = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "in": lambda value, options: value in options,
}


def _resolve_server_timestamps(data, now: datetime):
    if data is SERVER_TIMESTAMP:
        return now
    if isinstance(data, dict):
        return {k: _resolve_server_timestamps(v, now) for k, v in data.items()}
    if isinstance(data, list):
        return [_resolve_server_timestamps(v, now) for v in data]
    return data


def _matches(data: dict, filters: Iterable[QueryFilter]) -> bool:
    for field_name, op, value in filters:
        if op not in _FILTER_OPS:
            raise ValueError(f"Unsupported filter operator: {op}")
        if field_name not in data:
            return False
        try:
            if not _FILTER_OPS[op](data[field_name], value):
                return False
        except TypeError:
            # Values of different types never compare in Firestore.
            return False
    return True


class InMemoryDocumentStore:
    """Simple in-memory document database for development and tests."""

    def __init__(self):
        self.documents: Dict[DocPath, dict] = {}
        self._lock = threading.Lock()

    def _prepare(self, data: dict) -> dict:
        now = datetime.now(timezone.utc)
        return copy.deepcopy(_resolve_server_timestamps(data, now))

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        with self._lock:
            self.documents.clear()

    def get_document(self, path: DocPath) -> Optional[dict]:
        doc = self.documents.get(tuple(path))
        return copy.deepcopy(doc) if doc is not None else None

    def set_document(self, path: DocPath, data: dict, merge: bool = False) -> None:
        path = tuple(path)
        with self._lock:
            prepared = self._prepare(data)
            if merge and path in self.documents:
                self.documents[path].update(prepared)
            else:
                self.documents[path] = prepared

    def update_document(self, path: DocPath, data: dict) -> None:
        path = tuple(path)
        with self._lock:
            if path not in self.documents:
                raise NotFoundError(f"No document to update: {'/'.join(path)}")
            self.documents[path].update(self._prepare(data))

    def delete_document(self, path: DocPath) -> None:
        with self._lock:
            self.documents.pop(tuple(path), None)

    def add_document(self, collection_path: DocPath, data: dict) -> str:
        doc_id = uuid.uuid4().hex
        self.set_document(tuple(collection_path) + (doc_id,), data)
        return doc_id

    def query_documents(
        self, collection_path: DocPath, filters: Sequence[QueryFilter] = ()
    ) -> list[tuple[str, dict]]:
        collection_path = tuple(collection_path)
        depth = len(collection_path) + 1
        results: list[tuple[str, dict]] = []
        for path, data in list(self.documents.items()):
            if len(path) != depth or path[:-1] != collection_path:
                continue
            if _matches(data, filters):
                results.append((path[-1], copy.deepcopy(data)))
        return results

    def update_in_transaction(self, path: DocPath, mutate: Mutation) -> bool:
        path = tuple(path)
        with self._lock:
            current = self.documents.get(path)
            if current is None:
                raise NotFoundError(f"No document to update: {'/'.join(path)}")
            updates = mutate(copy.deepcopy(current))
            if not updates:
                return False
            current.update(self._prepare(updates))
            return True


class FirestoreDocumentStore:
    """
    Firestore-backed implementation using the firebase_admin client.
    """

    def __init__(self, client=None):
        self.client = client or firestore.client()

    def _document(self, path: DocPath):
        return self.client.document(*path)

    def get_document(self, path: DocPath) -> Optional[dict]:
        snapshot = self._document(path).get()
        if not snapshot.exists:
            return None
        return snapshot.to_dict()

    def set_document(self, path: DocPath, data: dict, merge: bool = False) -> None:
        self._document(path).set(data, merge=merge)

    def update_document(self, path: DocPath, data: dict) -> None:
        try:
            self._document(path).update(data)
        except exceptions.NotFound as e:
            raise NotFoundError(f"No document to update: {'/'.join(path)}") from e

    def delete_document(self, path: DocPath) -> None:
        self._document(path).delete()

    def add_document(self, collection_path: DocPath, data: dict) -> str:
        _, doc_ref = self.client.collection(*collection_path).add(data)
        return doc_ref.id

    def query_documents(
        self, collection_path: DocPath, filters: Sequence[QueryFilter] = ()
    ) -> list[tuple[str, dict]]:
        query = self.client.collection(*collection_path)
        for field_name, op, value in filters:
            query = query.where(filter=FieldFilter(field_name, op, value))
        return [(snapshot.id, snapshot.to_dict()) for snapshot in query.stream()]

    def update_in_transaction(self, path: DocPath, mutate: Mutation) -> bool:
        doc_ref = self._document(path)
        transaction = self.client.transaction()

        @firestore.transactional
        def _update_transaction(transaction, doc_ref) -> bool:
            snapshot = doc_ref.get(transaction=transaction)
            if not snapshot.exists:
                raise NotFoundError(f"No document to update: {'/'.join(path)}")
            updates = mutate(snapshot.to_dict())
            if not updates:
                return False
            transaction.update(doc_ref, updates)
            return True

        return _update_transaction(transaction, doc_ref)
