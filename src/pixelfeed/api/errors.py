"""Error taxonomy and exception handlers for the Pixelfeed API.

Every handled failure leaves the API as a JSON body of the form
``{"error": "<message>"}`` with a status code from this table:

======  ======================  =============================================
Status  Exception               Meaning
======  ======================  =============================================
400     ``BadRequestError``     Client-correctable validation failure
401     ``UnauthorizedError``   Missing or invalid identity
404     ``NotFoundError``       Target record absent
409     ``ConflictError``       Unique value already taken
429     ``RateLimitedError``    Cooldown or upstream throttling
500     ``UpstreamError``       Datastore or provider failure (generic text)
======  ======================  =============================================

Request-body validation is done by Pydantic before a route runs.  Its errors
are rendered here as well: the first reported error decides the message, and
an error on an identity field (``userId``) becomes a 401 instead of a 400.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

# Body fields whose absence means "who are you?" rather than "bad input".
IDENTITY_FIELDS = frozenset({"userId"})

_VALIDATION_MESSAGES = {
    "missing": "{field} is required",
    "string_type": "{field} must be a string",
    "int_type": "{field} must be an integer",
    "value_error": "{field} must be a non-empty string",
    "string_too_short": "{field} must be a non-empty string",
    "greater_than_equal": "{field} must be a non-negative integer",
}


class APIError(Exception):
    """Base API error.

    Args:
        message: Text returned in the ``error`` field.
        status_code: HTTP status of the response.
        extra: Additional JSON fields merged into the body.
        headers: Response headers to send with the error.
    """

    status_code = 400

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        extra: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.extra = extra or {}
        self.headers = headers or {}
        super().__init__(message)


class BadRequestError(APIError):
    """Invalid client input."""

    status_code = 400


class UnauthorizedError(APIError):
    """Identity missing or invalid."""

    status_code = 401

    def __init__(self, message: str = "Authentication required", **kwargs):
        super().__init__(message, **kwargs)


class NotFoundError(APIError):
    """Resource not found."""

    status_code = 404

    def __init__(self, resource: str, **kwargs):
        super().__init__(f"{resource} not found", **kwargs)


class ConflictError(APIError):
    """Resource conflict."""

    status_code = 409


class RateLimitedError(APIError):
    """Too many requests; ``retry_after`` is the wait hint in seconds, if known."""

    status_code = 429

    def __init__(self, message: str, retry_after: int | None = None, **kwargs):
        extra = kwargs.pop("extra", None) or {}
        if retry_after is not None:
            extra["retryAfter"] = retry_after
        super().__init__(message, extra=extra, **kwargs)
        self.retry_after = retry_after


class UpstreamError(APIError):
    """A dependency failed; the message must stay free of internal detail."""

    status_code = 500


def describe_validation_error(error: dict) -> tuple[str, str | None]:
    """Turn one Pydantic error into ``(message, field)``.

    ``field`` is ``None`` when the error concerns the body as a whole
    (malformed JSON, a non-object payload, or no body at all).
    """
    loc = error.get("loc", ())
    field = loc[1] if len(loc) > 1 and loc[0] == "body" and isinstance(loc[1], str) else None

    if field is None:
        if error.get("type") == "json_invalid":
            return "Request body is not valid JSON", None
        if len(loc) > 1 and loc[0] != "body":
            # Query or path parameter.
            return f"{loc[-1]}: {error.get('msg', 'invalid value')}", None
        return "Request body must be a JSON object", None

    template = _VALIDATION_MESSAGES.get(error.get("type", ""))
    if template is None:
        return f"{field}: {error.get('msg', 'invalid value')}", field
    return template.format(field=field), field


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    """Handle APIError exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, **exc.extra},
        headers=exc.headers or None,
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render request validation failures as 400, or 401 for identity fields."""
    errors = exc.errors()
    if not errors:
        return JSONResponse(status_code=400, content={"error": "Invalid request"})

    message, field = describe_validation_error(errors[0])
    status_code = 401 if field in IDENTITY_FIELDS else 400
    logger.debug(f"Rejected {request.method} {request.url.path}: {message}")
    return JSONResponse(status_code=status_code, content={"error": message})


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Keep framework-raised errors (unknown route, bad method) in the same shape."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.exception("Unexpected error", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers."""
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, generic_error_handler)
