"""
Backend package for the club events data layer.

Wraps Firebase Auth and Firestore behind small store/auth abstractions with
in-memory doubles, and exposes the identity and registration services both as
a library and through a FastAPI application.
"""
