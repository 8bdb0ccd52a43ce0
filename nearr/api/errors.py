"""Translate exceptions into the JSON error envelope."""

import psycopg
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..errors import NearrError
from ..logging_config import get_logger

logger = get_logger(__name__)

INTERNAL_ERROR = {"success": False, "message": "Internal server error."}


def _describe_validation(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request."
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query"))
    if location:
        return f"Invalid request: {location}: {first.get('msg')}"
    return f"Invalid request: {first.get('msg')}"


def register_error_handlers(app: FastAPI) -> None:
    """Install the handlers on an application."""

    @app.exception_handler(NearrError)
    async def handle_nearr_error(request: Request, exc: NearrError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message} {exc.context}")
        else:
            logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"success": False, "message": _describe_validation(exc)})

    @app.exception_handler(psycopg.Error)
    async def handle_database_error(request: Request, exc: psycopg.Error) -> JSONResponse:
        logger.error(f"{request.method} {request.url.path} database error: {exc}")
        return JSONResponse(status_code=500, content=INTERNAL_ERROR)

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"{request.method} {request.url.path} unexpected error")
        return JSONResponse(status_code=500, content=INTERNAL_ERROR)
