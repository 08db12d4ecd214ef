"""Domain errors raised by the catalog, stock and payment services."""

from __future__ import annotations

from fastapi import status


class ServiceError(Exception):
    """Base exception for all storefront service errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ServiceError):
    """Raised when the caller supplied bad or missing input."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(ServiceError):
    """Raised when a product, user or page does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class ForbiddenError(ServiceError):
    """Raised when the caller does not own the resource they act on."""

    status_code = status.HTTP_403_FORBIDDEN


class ConflictError(ServiceError):
    """Raised when the current state forbids the operation (stock, payment)."""

    status_code = status.HTTP_409_CONFLICT


class ExternalServiceError(ServiceError):
    """Raised when the payment gateway rejects or fails a call."""

    status_code = status.HTTP_502_BAD_GATEWAY


class InternalError(ServiceError):
    """Raised when the document store fails unexpectedly."""
