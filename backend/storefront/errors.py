"""
Service-level error taxonomy.

Services raise these to abort a unit of work. The session is rolled back
before the error leaves the service, so no partial write survives it.
Routes translate them into JSON responses using ``status_code`` and ``code``.
"""

from __future__ import annotations


class ServiceError(Exception):
    """Base class for business errors reported to the caller."""

    status_code = 400
    code = "SERVICE_ERROR"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        payload = {"error": self.message, "code": self.code}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(ServiceError):
    """400-level input problem or business-rule violation (e.g. insufficient stock)."""

    status_code = 400
    code = "VALIDATION_ERROR"


class NotFoundError(ServiceError):
    """Referenced branch/offer/promocode/product/order does not exist."""

    status_code = 404
    code = "NOT_FOUND"


class ConflictError(ServiceError):
    """409-level uniqueness violation (e.g. duplicate offer code)."""

    status_code = 409
    code = "CONFLICT"


class ConcurrencyError(ServiceError):
    """The caller's concurrency stamp is stale; re-fetch and retry."""

    status_code = 409
    code = "CONCURRENCY_ERROR"

    DEFAULT_MESSAGE = "This record was modified by someone else. Please reload and retry."

    def __init__(self, message: str | None = None, details: dict | None = None):
        super().__init__(message or self.DEFAULT_MESSAGE, details)
