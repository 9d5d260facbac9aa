"""
Exception handlers: every failure leaves the API as a structured JSON body.
"""

from __future__ import annotations

import logging
from typing import Dict, List

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from task_portal.domain.errors import (
    APIError,
    BadRequestError,
    UnsupportedMediaTypeError,
    ValidationError,
)

logger = logging.getLogger("portal.system")

_BODY_METHODS = {"POST", "PUT", "PATCH"}
_LOC_SOURCES = {"body", "query", "path", "header"}


def _is_json(content_type: str) -> bool:
    media = content_type.split(";", 1)[0].strip().lower()
    return media == "application/json" or (media.startswith("application/") and media.endswith("+json"))


def _field_name(loc) -> str:
    parts = [str(p) for p in loc]
    if parts and parts[0] in _LOC_SOURCES:
        parts = parts[1:]
    return ".".join(parts) or "body"


def _message(err: dict) -> str:
    msg = str(err.get("msg", "Invalid value"))
    return msg[len("Value error, "):] if msg.startswith("Value error, ") else msg


def field_errors(exc: RequestValidationError) -> Dict[str, List[str]]:
    errors: Dict[str, List[str]] = {}
    for err in exc.errors():
        errors.setdefault(_field_name(err.get("loc", ())), []).append(_message(err))
    return errors


def _reject_payload(request: Request, exc: RequestValidationError) -> APIError:
    """Map FastAPI's validation failure onto 400 / 415 / 422."""
    if any(err.get("type") == "json_invalid" for err in exc.errors()):
        return BadRequestError()

    content_type = request.headers.get("content-type")
    if request.method in _BODY_METHODS and content_type and not _is_json(content_type):
        return UnsupportedMediaTypeError(content_type)

    return ValidationError(field_errors(exc))


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    logger.warning(
        "api.error",
        extra={
            "category": "http",
            "event": "api.error",
            "error_code": exc.error_code,
            "status_code": exc.status_code,
            "path": request.url.path,
            "request_id": getattr(request.state, "request_id", None),
        },
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return await api_error_handler(request, _reject_payload(request, exc))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": True, "error_code": "HTTP_ERROR", "message": exc.detail, "details": {}},
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "api.unhandled",
        exc_info=exc,
        extra={
            "category": "http",
            "event": "api.unhandled",
            "path": request.url.path,
            "request_id": getattr(request.state, "request_id", None),
        },
    )
    return JSONResponse(
        status_code=500,
        content={"error": True, "error_code": "INTERNAL_ERROR", "message": "Internal server error", "details": {}},
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
