from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

_LOG = logging.getLogger("app.errors")


class ApiError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ApiError):
    status_code = 400
    default_message = "Invalid request"


class NotFoundError(ApiError):
    status_code = 404
    default_message = "Not found"


class ConflictError(ApiError):
    status_code = 400
    default_message = "Record already exists"


class DependencyError(ApiError):
    status_code = 400
    default_message = "Record has dependent data"


class InternalError(ApiError):
    status_code = 500


def error_body(message: str) -> dict[str, Any]:
    return {"success": False, "message": message}


def parse_id_or_400(raw: Any, label: str) -> int:
    text = str(raw or "").strip()
    try:
        value = int(text)
    except ValueError:
        raise ValidationError(f"Invalid {label} ID")
    if value <= 0:
        raise ValidationError(f"Invalid {label} ID")
    return value


def _field_name(loc: tuple) -> str:
    parts = [str(p) for p in loc if p not in ("body", "query", "path")]
    return ".".join(parts) or "body"


def validation_message(errors: list[dict[str, Any]]) -> str:
    missing = [
        _field_name(e.get("loc") or ())
        for e in errors
        if e.get("type") == "missing" or (e.get("input") is None and e.get("type") != "value_error")
    ]
    if missing:
        if missing == ["body"]:
            return "Request body is required"
        return "Missing required fields: " + ", ".join(missing)
    first = errors[0] if errors else {}
    if first.get("type") == "value_error":
        ctx_error = (first.get("ctx") or {}).get("error")
        if ctx_error is not None:
            return str(ctx_error)
    field = _field_name(first.get("loc") or ())
    return f"Invalid value for {field}: {first.get('msg') or 'invalid input'}"


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ApiError)
    async def _api_error_handler(request: Request, exc: ApiError):
        if exc.status_code >= 500:
            _LOG.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(error_body(exc.message), status_code=exc.status_code)

    @app.exception_handler(StarletteHTTPException)
    async def _http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            error_body(str(exc.detail)),
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def _request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(error_body(validation_message(list(exc.errors()))), status_code=400)

    @app.exception_handler(IntegrityError)
    async def _integrity_error_handler(request: Request, exc: IntegrityError):
        _LOG.warning("integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
        return JSONResponse(error_body(ConflictError.default_message), status_code=ConflictError.status_code)
