"""Authentication utilities for API routes."""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from global311.core.exceptions import Unauthenticated
from global311.models import Caller
from global311.pins.identity import TokenIdentityProvider

_http_bearer = HTTPBearer(auto_error=False)


async def authenticate_caller(
    request: Request,
    bearer_token: Optional[HTTPAuthorizationCredentials] = Depends(_http_bearer),
) -> Optional[Caller]:
    """Resolve the caller from the bearer token.

    No token yields ``None`` so the engine decides whether anonymous access is
    allowed. A token that fails verification is rejected outright.
    """

    token = bearer_token.credentials if bearer_token else None
    try:
        caller = await TokenIdentityProvider(token).get_current_user()
    except Unauthenticated as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=exc.message) from exc
    request.state.caller = caller
    return caller


async def require_caller(caller: Optional[Caller] = Depends(authenticate_caller)) -> Caller:
    if caller is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return caller


__all__ = ["authenticate_caller", "require_caller"]
