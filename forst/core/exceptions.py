"""
Service-layer exceptions.

Services raise these instead of returning error tuples; the master data
blueprint maps each one to a status code in a single place.

Usage:
    from forst.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError("Offer", 42)
    raise ValidationError("poExpectedMonth must be YYYY-MM", details={"poExpectedMonth": "2025-13"})
"""


class ServiceError(Exception):
    """Base class; ``details`` is a field → problem mapping (may be empty)."""

    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(message)
        self.details = details or {}


class NotFoundError(ServiceError):
    """A looked-up row does not exist. HTTP 404."""

    def __init__(self, resource: str, resource_id=None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        suffix = "" if resource_id is None else f" id={resource_id}"
        super().__init__(f"{resource}{suffix} not found")


class ValidationError(ServiceError):
    """Request data broke a field rule (format, enum, range). HTTP 400."""


class ConflictError(ServiceError):
    """A unique key is already taken. HTTP 409."""

    def __init__(self, resource: str, field: str, value=None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        super().__init__(f"{resource} with {field}={value!r} already exists", {field: value})
