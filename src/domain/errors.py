"""
Domain error taxonomy.

Every error raised by the core derives from ``DomainError``.  The API layer
maps each subclass 1:1 onto an HTTP response (see ``src.api.errors``).
"""

from __future__ import annotations

from typing import Any, Optional


class DomainError(Exception):
    """Base class for all errors surfaced by the ride core."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def extra(self) -> dict[str, Any]:
        return {}


class ValidationError(DomainError):
    """Malformed or out-of-range input; raised before any mutation."""

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field

    def extra(self) -> dict[str, Any]:
        return {"errors": [{"field": self.field, "message": self.message}]}


class NotFoundError(DomainError):
    def __init__(self, resource: str, resource_id: Optional[int] = None):
        super().__init__(f"{resource.capitalize()} not found")
        self.resource = resource
        self.resource_id = resource_id

    def extra(self) -> dict[str, Any]:
        return {"resource": self.resource, "id": self.resource_id}


class AuthorizationError(DomainError):
    """Actor failed an ownership/role check."""


class CapacityError(DomainError):
    def __init__(self, available: int):
        super().__init__(f"Not enough spots available: only {available} left")
        self.available = available

    def extra(self) -> dict[str, Any]:
        return {"available": self.available}


class StateError(DomainError):
    """Operation is invalid for the current ride / sequence state."""

    def __init__(self, reason: str, message: str):
        super().__init__(message)
        self.reason = reason

    def extra(self) -> dict[str, Any]:
        return {"reason": self.reason}


class InfrastructureError(DomainError):
    """Storage / lock / connection failure.  Always retryable by the client."""

    def extra(self) -> dict[str, Any]:
        return {"retryable": True}
