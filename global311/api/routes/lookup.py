"""Reference data endpoints: the category taxonomy and address lookup."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Query

from global311.api.dependencies import get_geocoder
from global311.integrations.geocoding import GeocodeResult, GeocodingClient
from global311.models import PRESET_CATEGORIES, Category

router = APIRouter(tags=["lookup"])


@router.get("/categories", response_model=List[Category])
async def list_categories() -> List[Category]:
    return PRESET_CATEGORIES


@router.get("/geocode", response_model=List[GeocodeResult])
async def geocode(
    q: str = Query(..., description="Free-form address"),
    limit: int = Query(5, ge=1, le=10),
    geocoder: GeocodingClient = Depends(get_geocoder),
) -> List[GeocodeResult]:
    """Resolve an address to candidate coordinates for dropping a pin."""

    return await geocoder.search(q, limit=limit)
