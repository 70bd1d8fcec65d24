"""Translate domain errors into JSON error responses.

Every error body has the shape ``{"error": {"kind": ..., "message": ...}}``
with ``violations`` added for validation failures and ``reason`` for
rejected tokens.
"""

from __future__ import annotations

import logging
from typing import Any, cast

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..domain.contracts import ViolationKind
from ..domain.errors import (
    Conflict,
    CredentialIssuanceFailed,
    IdentityServiceError,
    RateLimited,
    TemporarilyUnavailable,
    TokenRejected,
    ValidationFailed,
)

logger = logging.getLogger(__name__)

RETRY_AFTER_SECONDS = "5"

_STATUS_BY_ERROR: dict[type[IdentityServiceError], int] = {
    ValidationFailed: 422,
    Conflict: status.HTTP_409_CONFLICT,
    TemporarilyUnavailable: status.HTTP_503_SERVICE_UNAVAILABLE,
    CredentialIssuanceFailed: status.HTTP_500_INTERNAL_SERVER_ERROR,
    TokenRejected: status.HTTP_401_UNAUTHORIZED,
    RateLimited: status.HTTP_429_TOO_MANY_REQUESTS,
}


def status_for(exc: IdentityServiceError) -> int:
    """Return the HTTP status code for a domain error."""
    for error_type, code in _STATUS_BY_ERROR.items():
        if isinstance(exc, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def error_body(exc: IdentityServiceError) -> dict[str, Any]:
    """Build the JSON error envelope for a domain error."""
    body: dict[str, Any] = {"kind": exc.kind, "message": exc.message}
    if isinstance(exc, ValidationFailed):
        body["violations"] = [
            {"field": v.field, "kind": v.kind.value, "message": v.message} for v in exc.violations
        ]
    if isinstance(exc, TokenRejected):
        body["reason"] = exc.reason.value
    return {"error": body}


async def identity_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render a domain error with its status code and retry or auth headers."""
    error = cast(IdentityServiceError, exc)
    headers: dict[str, str] = {}
    if isinstance(error, TemporarilyUnavailable):
        headers["Retry-After"] = RETRY_AFTER_SECONDS
    elif isinstance(error, TokenRejected):
        headers["WWW-Authenticate"] = 'Bearer error="invalid_token"'
    return JSONResponse(status_code=status_for(error), content=error_body(error), headers=headers)


async def request_validation_handler(request: Request, exc: Exception) -> JSONResponse:
    """Report malformed request bodies in the same shape as domain validation errors."""
    violations = []
    for item in cast(RequestValidationError, exc).errors():
        loc = [str(part) for part in item.get("loc", ()) if part != "body"]
        violations.append(
            {
                "field": ".".join(loc) or "body",
                "kind": ViolationKind.invalid_format.value,
                "message": item.get("msg", "invalid value"),
            }
        )
    return JSONResponse(
        status_code=422,
        content={
            "error": {
                "kind": ValidationFailed.kind,
                "message": ValidationFailed.message,
                "violations": violations,
            }
        },
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled error on %s", request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": {"kind": "internal_error", "message": IdentityServiceError.message}},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the error handlers used by every route to ``app``."""
    app.add_exception_handler(IdentityServiceError, identity_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
