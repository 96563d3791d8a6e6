"""Domain exceptions.

Services raise these; the global error handler renders them as JSON
``{"detail": message, **extra}`` with the matching status code.
"""

from __future__ import annotations

from typing import Any


class DomainError(Exception):
    """Base class for anticipated business-rule failures."""

    status_code = 400

    def __init__(self, message: str, **extra: Any) -> None:  # noqa: ANN401
        self.message = message
        self.extra = extra
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a response body."""
        return {"detail": self.message, **self.extra}


class NotFoundError(DomainError):
    """Referenced entity does not exist."""

    status_code = 404


class ValidationError(DomainError):
    """Required field missing or malformed."""


class StateConflictError(DomainError):
    """Operation is invalid for the entity's current status."""


class PermissionDeniedError(DomainError):
    """Actor lacks the required role or ownership."""

    status_code = 403


class InsufficientTokensError(StateConflictError):
    """User holds fewer unused reward tokens than the reward costs."""

    def __init__(self, required: int, available: int) -> None:
        super().__init__("Insufficient tokens", required=required, available=available)
        self.required = required
        self.available = available
