"""Pin lifecycle endpoints.

Each route is a thin binding over one :class:`PinEngine` operation. Engine
errors propagate to the application-level exception handler.
"""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from global311.api.dependencies import get_caller, get_engine
from global311.api.security import require_caller
from global311.models import Caller, Pin, PinCreateRequest, PinPermissions, PinUpdateRequest
from global311.pins.engine import PinEngine

router = APIRouter(prefix="/pins", tags=["pins"])


@router.post("/", response_model=Pin, status_code=status.HTTP_201_CREATED)
async def create_pin(
    payload: PinCreateRequest,
    caller: Optional[Caller] = Depends(get_caller),
    engine: PinEngine = Depends(get_engine),
) -> Pin:
    """Drop a new pin at the given coordinates."""

    return await engine.add_pin(
        caller,
        payload.latitude,
        payload.longitude,
        payload.title,
        payload.description,
        category_id=payload.category_id,
        category_name=payload.category_name,
    )


@router.get("/", response_model=List[Pin])
async def list_pins(
    order: str = Query("created_desc", pattern=r"^created_(desc|asc)$"),
    limit: Optional[int] = Query(None, ge=1),
    category_id: Optional[str] = None,
    creator: Optional[str] = None,
    caller: Optional[Caller] = Depends(get_caller),
    engine: PinEngine = Depends(get_engine),
) -> List[Pin]:
    return await engine.list_pins(caller, order=order, limit=limit, category_id=category_id, creator=creator)


@router.get("/mine", response_model=List[Pin])
async def list_my_pins(
    limit: Optional[int] = Query(None, ge=1),
    caller: Caller = Depends(require_caller),
    engine: PinEngine = Depends(get_engine),
) -> List[Pin]:
    """Pins created by the authenticated caller, newest first."""

    return await engine.list_pins(caller, limit=limit, creator=caller.id)


@router.get("/{pin_id}", response_model=Pin)
async def get_pin(
    pin_id: str,
    caller: Optional[Caller] = Depends(get_caller),
    engine: PinEngine = Depends(get_engine),
) -> Pin:
    return await engine.get_pin(caller, pin_id)


@router.patch("/{pin_id}", response_model=Pin)
async def update_pin(
    pin_id: str,
    payload: PinUpdateRequest,
    caller: Optional[Caller] = Depends(get_caller),
    engine: PinEngine = Depends(get_engine),
) -> Pin:
    """Edit title, description or category. Creator only."""

    return await engine.update_pin(caller, pin_id, payload.model_dump(exclude_unset=True))


@router.delete("/{pin_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_pin(
    pin_id: str,
    caller: Optional[Caller] = Depends(get_caller),
    engine: PinEngine = Depends(get_engine),
) -> Response:
    await engine.delete_pin(caller, pin_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{pin_id}/approve", response_model=Pin)
async def approve_pin(
    pin_id: str,
    caller: Optional[Caller] = Depends(get_caller),
    engine: PinEngine = Depends(get_engine),
) -> Pin:
    return await engine.approve(caller, pin_id)


@router.post("/{pin_id}/decline", response_model=Pin)
async def decline_pin(
    pin_id: str,
    caller: Optional[Caller] = Depends(get_caller),
    engine: PinEngine = Depends(get_engine),
) -> Pin:
    return await engine.decline(caller, pin_id)


@router.post("/{pin_id}/resolve", response_model=Pin)
async def resolve_pin(
    pin_id: str,
    caller: Optional[Caller] = Depends(get_caller),
    engine: PinEngine = Depends(get_engine),
) -> Pin:
    """Mark a pin resolved. Allowed for the creator, a quorum, or an admin."""

    return await engine.resolve(caller, pin_id)


@router.get("/{pin_id}/permissions", response_model=PinPermissions)
async def pin_permissions(
    pin_id: str,
    caller: Optional[Caller] = Depends(get_caller),
    engine: PinEngine = Depends(get_engine),
) -> PinPermissions:
    """Which controls the caller should see for this pin."""

    return PinPermissions(
        pin_id=pin_id,
        can_edit=await engine.can_edit(caller, pin_id),
        can_delete=await engine.can_delete(caller, pin_id),
    )
