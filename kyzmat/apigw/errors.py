"""Gestion standardisée des erreurs API avec enveloppes d'erreur.

Les exceptions du domaine (`AuthError`, `PersistenceError`, `FormValidationError`, `UploadError`,
`NotFoundError`, `PermissionDenied`) sont converties ici en réponses JSON
`{code, message, trace_id, details}`; la cause métier est reprise dans `details.cause` pour que
le client puisse choisir la clé de traduction à afficher.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from kyzmat.core.http_constants import (
    HTTP_BAD_REQUEST,
    HTTP_CONFLICT,
    HTTP_FORBIDDEN,
    HTTP_INTERNAL_SERVER_ERROR,
    HTTP_NOT_FOUND,
    HTTP_PAYLOAD_TOO_LARGE,
    HTTP_SERVICE_UNAVAILABLE,
    HTTP_TOO_MANY_REQUESTS,
    HTTP_UNAUTHORIZED,
    HTTP_UNPROCESSABLE_ENTITY,
    HTTP_UNSUPPORTED_MEDIA_TYPE,
)
from kyzmat.domain.errors import (
    AuthError,
    DomainError,
    FormValidationError,
    NotFoundError,
    PermissionDenied,
    PersistenceError,
    UploadError,
)

log = structlog.get_logger(__name__)


@dataclass
class ErrorEnvelope:
    """Standard error envelope for API responses."""

    code: str
    message: str
    trace_id: str | None = None
    details: dict[str, Any] | None = None


class ErrorCodes:
    """Standard error codes for the API."""

    BAD_REQUEST = "BAD_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"
    CONFLICT = "CONFLICT"
    PAYLOAD_TOO_LARGE = "PAYLOAD_TOO_LARGE"
    UNSUPPORTED_MEDIA_TYPE = "UNSUPPORTED_MEDIA_TYPE"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    RATE_LIMITED = "RATE_LIMITED"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"


_STATUS_CODES = {
    HTTP_BAD_REQUEST: ErrorCodes.BAD_REQUEST,
    HTTP_UNAUTHORIZED: ErrorCodes.UNAUTHORIZED,
    HTTP_FORBIDDEN: ErrorCodes.FORBIDDEN,
    HTTP_NOT_FOUND: ErrorCodes.NOT_FOUND,
    405: ErrorCodes.METHOD_NOT_ALLOWED,
    HTTP_CONFLICT: ErrorCodes.CONFLICT,
    HTTP_PAYLOAD_TOO_LARGE: ErrorCodes.PAYLOAD_TOO_LARGE,
    HTTP_UNSUPPORTED_MEDIA_TYPE: ErrorCodes.UNSUPPORTED_MEDIA_TYPE,
    HTTP_UNPROCESSABLE_ENTITY: ErrorCodes.VALIDATION_ERROR,
    HTTP_TOO_MANY_REQUESTS: ErrorCodes.RATE_LIMITED,
    HTTP_INTERNAL_SERVER_ERROR: ErrorCodes.INTERNAL_ERROR,
    HTTP_SERVICE_UNAVAILABLE: ErrorCodes.SERVICE_UNAVAILABLE,
}

# Statut HTTP par cause métier; à défaut, statut par classe d'exception
_AUTH_STATUS = {
    "invalid_credentials": HTTP_UNAUTHORIZED,
    "not_authenticated": HTTP_UNAUTHORIZED,
    "invalid_token": HTTP_UNAUTHORIZED,
    "email_exists": HTTP_CONFLICT,
    "weak_password": HTTP_UNPROCESSABLE_ENTITY,
    "invalid_profile_fields": HTTP_UNPROCESSABLE_ENTITY,
    "rate_limited": HTTP_TOO_MANY_REQUESTS,
    "profile_update_failed": HTTP_SERVICE_UNAVAILABLE,
    "users_select_failed": HTTP_SERVICE_UNAVAILABLE,
    "user_create_failed": HTTP_SERVICE_UNAVAILABLE,
}
_UPLOAD_STATUS = {
    "too_large": HTTP_PAYLOAD_TOO_LARGE,
    "not_image": HTTP_UNSUPPORTED_MEDIA_TYPE,
    "duplicate": HTTP_CONFLICT,
    "invalid_path": HTTP_BAD_REQUEST,
    "invalid_data_url": HTTP_BAD_REQUEST,
    "foreign_reference": HTTP_FORBIDDEN,
}
_CLASS_STATUS: list[tuple[type[DomainError], int]] = [
    (FormValidationError, HTTP_UNPROCESSABLE_ENTITY),
    (NotFoundError, HTTP_NOT_FOUND),
    (PermissionDenied, HTTP_FORBIDDEN),
    (PersistenceError, HTTP_SERVICE_UNAVAILABLE),
    (UploadError, HTTP_INTERNAL_SERVER_ERROR),
    (AuthError, HTTP_BAD_REQUEST),
]


def status_for(exc: DomainError) -> int:
    """Statut HTTP d'une erreur métier."""
    if isinstance(exc, AuthError) and exc.cause in _AUTH_STATUS:
        return _AUTH_STATUS[exc.cause]
    if isinstance(exc, UploadError) and exc.cause in _UPLOAD_STATUS:
        return _UPLOAD_STATUS[exc.cause]
    for cls, status in _CLASS_STATUS:
        if isinstance(exc, cls):
            return status
    return HTTP_BAD_REQUEST


def create_error_response(
    status_code: int,
    code: str,
    message: str,
    trace_id: str | None = None,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    """Create a standardized error response."""
    envelope = ErrorEnvelope(code=code, message=message, trace_id=trace_id, details=details)
    return JSONResponse(
        status_code=status_code,
        content={
            "code": envelope.code,
            "message": envelope.message,
            "trace_id": envelope.trace_id,
            **({"details": envelope.details} if envelope.details else {}),
        },
    )


def extract_trace_id(request: Request) -> str | None:
    """Identifiant de trace: en-tête `X-Trace-ID`, sinon celui posé par le middleware."""
    trace_id = request.headers.get("X-Trace-ID")
    if trace_id:
        return trace_id
    return getattr(request.state, "trace_id", None)


def handle_domain_error(request: Request, exc: DomainError) -> JSONResponse:
    """Convertit une erreur métier en enveloppe standard."""
    status = status_for(exc)
    code = _STATUS_CODES.get(status, "HTTP_ERROR")
    details: dict[str, Any] = {"cause": exc.cause}
    if isinstance(exc, FormValidationError):
        details["errors"] = exc.errors
    trace_id = extract_trace_id(request)
    log.warning(
        "domain_error",
        code=code,
        cause=exc.cause,
        status_code=status,
        error_type=type(exc).__name__,
        trace_id=trace_id,
    )
    return create_error_response(status, code, exc.message, trace_id, details)


def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle FastAPI HTTPException with standard envelope."""
    trace_id = extract_trace_id(request)
    code = _STATUS_CODES.get(exc.status_code, "HTTP_ERROR")
    log.warning("http_exception", code=code, status_code=exc.status_code, trace_id=trace_id)
    response = create_error_response(exc.status_code, code, str(exc.detail), trace_id)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Erreurs de validation des entrées FastAPI (corps, paramètres)."""
    trace_id = extract_trace_id(request)
    errors = {
        ".".join(str(p) for p in e.get("loc", ())): e.get("msg", "") for e in exc.errors()
    }
    return create_error_response(
        HTTP_UNPROCESSABLE_ENTITY,
        ErrorCodes.VALIDATION_ERROR,
        "request validation failed",
        trace_id,
        {"cause": "validation_error", "errors": errors},
    )


def handle_generic_exception(request: Request, exc: Exception) -> JSONResponse:
    """Handle generic exceptions with standard envelope."""
    trace_id = extract_trace_id(request)
    log.error(
        "unexpected_error",
        trace_id=trace_id,
        exception_type=type(exc).__name__,
        exc_info=exc,
    )
    return create_error_response(
        HTTP_INTERNAL_SERVER_ERROR,
        ErrorCodes.INTERNAL_ERROR,
        "An unexpected error occurred",
        trace_id,
    )


def register_error_handlers(app: FastAPI) -> None:
    """Branche les gestionnaires d'erreurs sur l'application."""
    app.add_exception_handler(DomainError, handle_domain_error)
    app.add_exception_handler(HTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_generic_exception)
