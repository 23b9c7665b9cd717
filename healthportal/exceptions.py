"""
Healthcare Portal - Error Taxonomy and Exception Handlers

Application exceptions carry an HTTP status and a caller-safe detail.
Handlers registered on the FastAPI app turn them into JSON responses.

Taxonomy:
- ValidationError: malformed or missing input; detail is safe to show
- AuthenticationError: bad credentials or token; detail is always generic
- InvalidResetTokenError: unusable reset token; generic, reported as 400
- NotFoundError: cross-tenant access; never reported as forbidden
- DependencyError: data store / collaborator failure; logged, opaque to caller
"""

import logging
from typing import Optional

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


GENERIC_SERVER_ERROR = "Internal server error"

# Single body for every 404: unknown route, denied role, foreign or missing record
NOT_FOUND = "Not found"


class PortalError(Exception):
    """Base class for application-specific exceptions."""
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str, status_code: Optional[int] = None):
        super().__init__(detail)
        self.detail = detail
        if status_code is not None:
            self.status_code = status_code


class ValidationError(PortalError):
    """Invalid input. The detail names the failing field category."""
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str, field: Optional[str] = None):
        super().__init__(detail)
        self.field = field


class AuthenticationError(PortalError):
    """Invalid credentials or session. Never says which check failed."""
    status_code = status.HTTP_401_UNAUTHORIZED


class InvalidResetTokenError(PortalError):
    """Reset token missing, malformed, expired or already used."""
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str = "Invalid or expired reset token"):
        super().__init__(detail)


class NotFoundError(PortalError):
    """Resource absent or owned by another organization."""
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, detail: str = NOT_FOUND):
        super().__init__(detail)


class DependencyError(PortalError):
    """A backing service failed. Full detail goes to the log only."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str = GENERIC_SERVER_ERROR):
        super().__init__(detail)


async def portal_exception_handler(request: Request, exc: PortalError):
    """
    Handler for application-specific exceptions.

    Args:
        request: The request that caused the exception
        exc: The exception instance

    Returns:
        JSONResponse: Standardized error response
    """
    if isinstance(exc, DependencyError):
        logger.error("Dependency failure on %s %s: %s", request.method, request.url.path, exc.detail)
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": GENERIC_SERVER_ERROR},
        )

    content = {"detail": exc.detail}
    if isinstance(exc, ValidationError) and exc.field:
        content["field"] = exc.field
    return JSONResponse(status_code=exc.status_code, content=content)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Handler for request body validation exceptions.

    Missing or malformed fields are reported as 400 with field-level
    detail. Submitted values are dropped so passwords never echo back.
    """
    errors = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]
    logger.info("Request validation failed on %s: %s", request.url.path, [e["loc"] for e in errors])
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=jsonable_encoder({"detail": "Missing or invalid fields", "errors": errors}),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Framework HTTP errors; 404s share the body of NotFoundError."""
    detail = NOT_FOUND if exc.status_code == status.HTTP_404_NOT_FOUND else exc.detail
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": detail},
        headers=getattr(exc, "headers", None),
    )


async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    """Data store failures surface as an opaque 500."""
    logger.exception("Database error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": GENERIC_SERVER_ERROR},
    )


def register_exception_handlers(app) -> None:
    """
    Register all exception handlers with the FastAPI application.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(PortalError, portal_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, database_exception_handler)
