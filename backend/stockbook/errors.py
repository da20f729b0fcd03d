# Overview: Domain error taxonomy and the JSON error handlers that translate it at the HTTP boundary.

"""
Every service raises one of these; routes never build error responses by hand.

    ValidationError         400  missing/malformed input
    ForbiddenError          403  path company differs from the caller
    NotFoundError           404  absent, or owned by another company
    ConflictError           409  duplicate SKU, illegal state change, lost update
    InsufficientStockError  409  sale or revision exceeds quantity on hand
    StorageError            502  image store failure
"""

from __future__ import annotations

from flask import Flask, current_app
from werkzeug.exceptions import HTTPException

from .responses import failure


class ServiceError(Exception):
    """Base for errors that are reported to the caller."""
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(ServiceError):
    """400-level input problem."""
    status_code = 400


class ForbiddenError(ServiceError):
    status_code = 403


class NotFoundError(ServiceError):
    status_code = 404


class ConflictError(ServiceError):
    """409-level business rule conflict (e.g., duplicate SKU)."""
    status_code = 409


class InsufficientStockError(ConflictError):
    """Requested decrement exceeds the quantity on hand."""

    def __init__(self, message: str, *, available: int, requested: int):
        super().__init__(message, details={"available": available, "requested": requested})
        self.available = available
        self.requested = requested


class StorageError(ServiceError):
    """The image store could not save or release a file."""
    status_code = 502


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ServiceError)
    def handle_service_error(exc: ServiceError):
        return failure(exc.message, exc.status_code, details=exc.details)

    @app.errorhandler(HTTPException)
    def handle_http_exception(exc: HTTPException):
        return failure(exc.description or exc.name, exc.code or 500)

    @app.errorhandler(Exception)
    def handle_unexpected(exc: Exception):
        current_app.logger.exception("Unhandled error")
        return failure("Internal server error", 500)
