"""
Domain exceptions for the ShareIt service.

Services raise these; the API layer turns them into HTTP responses through
``register_exception_handlers``. Messages are returned to the caller verbatim,
so they must name the violated rule or the missing identifier.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger("shareit")


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class NotFoundException(DomainException):
    """The entity does not exist, or its existence is withheld from the caller."""

    status_code = status.HTTP_404_NOT_FOUND


class ValidationException(DomainException):
    """The request breaks a business rule."""

    status_code = status.HTTP_400_BAD_REQUEST


class UnsupportedStateException(ValidationException):
    def __init__(self, state: str):
        self.state = state
        super().__init__(f"Unknown state: {state}")


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data (e.g. duplicate email)."""

    status_code = status.HTTP_409_CONFLICT


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(DomainException)
    async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})
