from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from todu.domain.common.errors import (
    AuthenticationError,
    ConflictError,
    DomainError,
    GoneError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitedError,
    ServiceError,
    ValidationError,
)

logger = logging.getLogger(__name__)

STATUS_BY_ERROR = (
    (ValidationError, 400),
    (AuthenticationError, 401),
    (PermissionDeniedError, 403),
    (NotFoundError, 404),
    (ConflictError, 409),
    (GoneError, 410),
    (RateLimitedError, 429),
    (ServiceError, 500),
)


def status_for(exc: DomainError) -> int:
    for cls, status in STATUS_BY_ERROR:
        if isinstance(exc, cls):
            return status
    return 500


def error_response(status: int, error: str, details: Optional[Any] = None, message: Optional[str] = None) -> JSONResponse:
    body: Dict[str, Any] = {"success": False, "error": error}
    if message:
        body["message"] = message
    if details:
        body["details"] = jsonable_encoder(details)
    return JSONResponse(status_code=status, content=body)


def _field_name(loc: Any) -> str:
    # drop the "body"/"query" prefix pydantic puts in front
    parts = [str(p) for p in loc if p not in ("body", "query", "path")]
    return ".".join(parts) or "body"


def install_error_handlers(app: FastAPI, is_production: bool) -> None:
    @app.exception_handler(DomainError)
    async def _domain_error(request: Request, exc: DomainError) -> JSONResponse:
        status = status_for(exc)
        if status >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}", exc_info=True)
        return error_response(status, exc.message, exc.details)

    @app.exception_handler(RequestValidationError)
    async def _validation_error(_: Request, exc: RequestValidationError) -> JSONResponse:
        details = [{"field": _field_name(e.get("loc", ())), "message": e.get("msg", "")} for e in exc.errors()]
        return error_response(400, "Validation failed", details)

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(_: Request, exc: StarletteHTTPException) -> JSONResponse:
        error = exc.detail if isinstance(exc.detail, str) else "Request failed"
        if exc.status_code == 404 and error == "Not Found":
            error = "Route not found"
        return error_response(exc.status_code, error)

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unhandled error: {request.method} {request.url.path}")
        return error_response(500, "Something went wrong!", message=None if is_production else str(exc)[:500])
