#!/usr/bin/env python
"""
Seed the pin collection with sample civic issue reports and votes.

Usage:
    python scripts/seed_pins.py
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone

from global311.core.config import settings
from global311.core.database import database_manager
from global311.models import Caller
from global311.pins.engine import PinEngine
from global311.pins.identity import StaticIdentityProvider
from global311.pins.store import build_document_store

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("global311.seed_pins")

PINS = [
    {
        "creator": "seed-alice",
        "latitude": 40.7128,
        "longitude": -74.0060,
        "title": "Pothole on Main St",
        "description": "Deep pothole in the right lane near the crosswalk.",
        "category_id": "pot",
        "approvers": ["seed-bob", "seed-carol"],
        "decliners": [],
    },
    {
        "creator": "seed-bob",
        "latitude": 40.7306,
        "longitude": -73.9866,
        "title": "Flooded underpass",
        "description": "Water pools after every storm.",
        "category_id": "flood",
        "approvers": ["seed-alice"],
        "decliners": [],
    },
    {
        "creator": "seed-carol",
        "latitude": 40.7484,
        "longitude": -73.9857,
        "title": "Street light out",
        "description": "",
        "category_id": "light",
        "approvers": [],
        "decliners": ["seed-alice", "seed-bob", "seed-dave"],
    },
]


async def seed() -> None:
    if settings.STORE_BACKEND == "mongo":
        await database_manager.initialize()

    engine = PinEngine(build_document_store())

    for entry in PINS:
        creator = await StaticIdentityProvider(Caller(id=entry["creator"])).get_current_user()
        pin = await engine.add_pin(
            creator,
            entry["latitude"],
            entry["longitude"],
            entry["title"],
            entry["description"],
            category_id=entry["category_id"],
        )
        for voter_id in entry["approvers"]:
            pin = await engine.approve(Caller(id=voter_id), pin.id)
        for voter_id in entry["decliners"]:
            pin = await engine.decline(Caller(id=voter_id), pin.id)
        logger.info("Seeded pin %s (%s) status=%s", pin.id, pin.title, pin.status.value)

    await database_manager.close()
    logger.info("Seeding completed at %s", datetime.now(timezone.utc).isoformat())


if __name__ == "__main__":
    asyncio.run(seed())
