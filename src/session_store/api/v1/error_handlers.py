"""
FastAPI exception handlers that map repository-level exceptions to HTTP responses.

Repositories raise `session_store.exceptions.base.*`; the handlers render
`exc.to_payload()` with `exc.http_status()`:

    {"detail": "Conversation already exists", "code": "duplicate", "fields": ["userName", "analysisId"]}
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from session_store.exceptions.base import (
    DuplicateError,
    InvalidInputError,
    NotFoundError,
    RepositoryError,
    StoreUnavailableError,
)

logger = logging.getLogger(__name__)


async def duplicate_error_handler(request: Request, exc: DuplicateError) -> JSONResponse:
    logger.info("DuplicateError for %s %s: fields=%s", request.method, request.url.path, exc.fields)
    return JSONResponse(status_code=exc.http_status(), content=exc.to_payload())


async def invalid_input_handler(request: Request, exc: InvalidInputError) -> JSONResponse:
    logger.info("InvalidInputError for %s %s: fields=%s", request.method, request.url.path, exc.fields)
    return JSONResponse(status_code=exc.http_status(), content=exc.to_payload())


async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    logger.info("NotFoundError for %s %s", request.method, request.url.path)
    return JSONResponse(status_code=exc.http_status(), content=exc.to_payload())


async def store_unavailable_handler(request: Request, exc: StoreUnavailableError) -> JSONResponse:
    # The driver error was already logged with its traceback where it was wrapped
    logger.error("StoreUnavailableError for %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.http_status(), content=exc.to_payload())


async def repository_error_handler(request: Request, exc: RepositoryError) -> JSONResponse:
    """Fallback for any other repository error (400 unless its code says otherwise)."""
    logger.warning("RepositoryError for %s %s: %s", request.method, request.url.path, str(exc))
    return JSONResponse(status_code=exc.http_status(), content=exc.to_payload())


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DuplicateError, duplicate_error_handler)
    app.add_exception_handler(InvalidInputError, invalid_input_handler)
    app.add_exception_handler(NotFoundError, not_found_handler)
    app.add_exception_handler(StoreUnavailableError, store_unavailable_handler)
    app.add_exception_handler(RepositoryError, repository_error_handler)
