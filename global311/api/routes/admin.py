"""Administrative endpoints for Global-311."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from global311.api.security import require_caller
from global311.core.config import settings
from global311.core.security import create_access_token
from global311.models import Caller

router = APIRouter(prefix="/admin", tags=["admin"])


class TokenIssueRequest(BaseModel):
    subject: str = Field(..., min_length=1)
    admin: bool = False
    expires_minutes: int = Field(60, gt=0, le=24 * 60)


class TokenIssueResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_at: str
    claims: Dict[str, Any]


@router.get("/health")
async def healthcheck() -> Dict[str, str]:
    """Liveness probe."""

    return {"status": "ok", "environment": settings.ENVIRONMENT}


@router.get("/config")
async def configuration_snapshot(caller: Caller = Depends(require_caller)) -> Dict[str, Any]:
    """Return the consensus settings in effect. Admins only."""

    _ensure_admin(caller)
    return {
        "api_title": settings.API_TITLE,
        "environment": settings.ENVIRONMENT,
        "store_backend": settings.STORE_BACKEND,
        "pin_quorum": settings.PIN_QUORUM,
        "dispute_min_declines": settings.DISPUTE_MIN_DECLINES,
        "max_write_retries": settings.MAX_WRITE_RETRIES,
        "allow_anonymous_read": settings.ALLOW_ANONYMOUS_READ,
    }


@router.post(
    "/tokens",
    response_model=TokenIssueResponse,
    status_code=status.HTTP_201_CREATED,
)
async def issue_token(
    payload: TokenIssueRequest,
    caller: Caller = Depends(require_caller),
) -> TokenIssueResponse:
    """Mint a bearer token for a caller, e.g. a moderator or a service account."""

    _ensure_admin(caller)
    expires = timedelta(minutes=payload.expires_minutes)
    claims: Dict[str, Any] = {"admin": payload.admin}
    token = create_access_token(subject=payload.subject, expires_delta=expires, claims=claims)
    expires_at = (datetime.now(timezone.utc) + expires).isoformat()
    return TokenIssueResponse(access_token=token, expires_at=expires_at, claims=claims)


def _ensure_admin(caller: Caller) -> None:
    if caller.is_admin:
        return
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin privileges required")
