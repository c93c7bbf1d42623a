from __future__ import annotations

from typing import Optional

from fastapi import Depends, Request

from global311.api.security import authenticate_caller
from global311.integrations.geocoding import GeocodingClient, geocoding_client
from global311.models import Caller
from global311.pins.engine import PinEngine


async def get_engine(request: Request) -> PinEngine:
    return request.app.state.engine


async def get_geocoder() -> GeocodingClient:
    return geocoding_client


async def get_caller(caller: Optional[Caller] = Depends(authenticate_caller)) -> Optional[Caller]:
    return caller
