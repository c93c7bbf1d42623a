"""Identity providers resolving the caller an operation is attributed to."""

from __future__ import annotations

from typing import Any, Dict, Optional, Protocol

from global311.core.exceptions import Unauthenticated
from global311.core.security import verify_access_token
from global311.models import Caller


class IdentityProvider(Protocol):
    async def get_current_user(self) -> Optional[Caller]:
        ...


class StaticIdentityProvider:
    """Always resolves the same caller (or nobody). Used by scripts and tests."""

    def __init__(self, caller: Optional[Caller] = None) -> None:
        self._caller = caller

    async def get_current_user(self) -> Optional[Caller]:
        return self._caller


class TokenIdentityProvider:
    """Resolve a caller from a bearer JWT; a missing token means anonymous."""

    def __init__(self, token: Optional[str]) -> None:
        self._token = token

    async def get_current_user(self) -> Optional[Caller]:
        if not self._token:
            return None
        payload = verify_access_token(self._token)
        return caller_from_claims(payload)


def caller_from_claims(payload: Dict[str, Any]) -> Caller:
    subject = payload.get("sub")
    if not subject:
        raise Unauthenticated("Token has no subject")
    return Caller(id=str(subject), is_admin=bool(payload.get("admin", False)))


__all__ = ["IdentityProvider", "StaticIdentityProvider", "TokenIdentityProvider", "caller_from_claims"]
