from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlencode

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse
from starlette import status
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class StoreNotConfigured(RuntimeError):
    """Raised when the backing store URL or key is missing."""


class StoreError(RuntimeError):
    """A request to the backing store came back with a non-2xx status."""

    def __init__(self, message: str, *, status_code: int | None = None, details: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class FormError(ValueError):
    """User input that cannot be turned into a store payload.

    The message is shown verbatim to the user next to the form.
    """


class ErrorEnvelope(JSONResponse):
    def __init__(
        self,
        *,
        status_code: int,
        code: str,
        message: str,
        details: Any | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        payload: dict[str, Any] = {"code": code, "message": message}
        if details is not None:
            payload["details"] = details
        super().__init__(payload, status_code=status_code, headers=headers)


def _wants_html(request: Request) -> bool:
    accept = (request.headers.get("accept") or "").lower()
    return "text/html" in accept and not request.url.path.startswith("/api")


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    # Edit pages answer 401 until the admin password has been verified.
    if exc.status_code == status.HTTP_401_UNAUTHORIZED and _wants_html(request):
        if not request.url.path.startswith("/acceso"):
            target = request.url.path
            if request.url.query:
                target = f"{target}?{request.url.query}"
            return RedirectResponse(url=f"/acceso?{_next_query(target)}", status_code=302)
    detail = exc.detail
    message = detail if isinstance(detail, str) else "Error"
    details = detail if isinstance(detail, dict) else None
    return ErrorEnvelope(status_code=exc.status_code, code="http_error", message=message, details=details)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return ErrorEnvelope(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        code="validation_error",
        message="Validation failed",
        details={"errors": exc.errors()},
    )


async def store_not_configured_handler(request: Request, exc: StoreNotConfigured):
    logger.error("Backing store is not configured: %s", exc)
    return ErrorEnvelope(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        code="store_not_configured",
        message=str(exc),
    )


async def store_error_handler(request: Request, exc: StoreError):
    logger.error("Backing store request failed: %s", exc)
    return ErrorEnvelope(
        status_code=status.HTTP_502_BAD_GATEWAY,
        code="store_error",
        message=str(exc),
    )


def _next_query(target: str) -> str:
    return urlencode({"next": target})
