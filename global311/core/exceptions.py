"""Exception hierarchy for the pin service.

Every failure the consensus engine surfaces is one of these types. The HTTP
layer maps them to responses through ``status_code`` and ``code``.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import status


class PinServiceError(Exception):
    """Base application error with HTTP semantics."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "application_error"

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        code: str | None = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        base = f"[{self.code}] {self.message}"
        if self.details:
            return f"{base} :: {self.details}"
        return base


class Unauthenticated(PinServiceError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "unauthenticated"


class ValidationError(PinServiceError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "validation_error"


class NotFound(PinServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class SelfVoteError(PinServiceError):
    """Raised when a creator tries to approve or decline their own pin."""

    status_code = status.HTTP_409_CONFLICT
    code = "self_vote"


class PermissionDenied(PinServiceError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "permission_denied"


class ConcurrentModificationError(PinServiceError):
    """Raised when conditional writes keep losing to concurrent writers."""

    status_code = status.HTTP_409_CONFLICT
    code = "concurrent_modification"


class ServiceUnavailable(PinServiceError):
    """Wraps transport failures from the document store or identity provider."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "service_unavailable"


__all__ = [
    "ConcurrentModificationError",
    "NotFound",
    "PermissionDenied",
    "PinServiceError",
    "SelfVoteError",
    "ServiceUnavailable",
    "Unauthenticated",
    "ValidationError",
]
