"""
FastAPI application entry point for the club events backend.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from backend.config import get_settings
from backend.routes import router
from shared.errors import AuthenticationError, NotFoundError, ValidationError

ERROR_STATUS_CODES = {
    ValidationError: 400,
    AuthenticationError: 401,
    NotFoundError: 404,
}


def _error_handler(status_code: int):
    async def handler(request: Request, exc: Exception) -> JSONResponse:
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})

    return handler


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level)
    app = FastAPI(title="Club Events Backend (FastAPI)", version="0.1.0")
    for error_class, status_code in ERROR_STATUS_CODES.items():
        app.add_exception_handler(error_class, _error_handler(status_code))
    app.include_router(router, prefix=settings.api_prefix)
    return app


app = create_app()
