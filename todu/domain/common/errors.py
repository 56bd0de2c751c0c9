from __future__ import annotations

from typing import Any, Optional


class DomainError(Exception):
    """Base for errors raised by services; the HTTP layer maps each subclass to a status."""

    def __init__(self, message: str, details: Optional[Any] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(DomainError):
    pass


class AuthenticationError(DomainError):
    pass


class PermissionDeniedError(DomainError):
    pass


class NotFoundError(DomainError):
    pass


class ConflictError(DomainError):
    pass


class GoneError(DomainError):
    pass


class RateLimitedError(DomainError):
    pass


class ServiceError(DomainError):
    """A dependency (SMTP, Google sign-in config) failed; reported as 500 with its message."""
