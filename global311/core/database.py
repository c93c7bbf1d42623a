"""Database connectivity layer for Global-311."""

from __future__ import annotations

import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from global311.core.config import settings

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Lazily establishes the MongoDB connection backing the pin store."""

    def __init__(self) -> None:
        self.mongodb: Optional[AsyncIOMotorClient] = None

    async def initialize(self) -> None:
        if self.mongodb is not None:
            return

        logger.info("Initializing Global-311 database manager")
        self.mongodb = AsyncIOMotorClient(str(settings.MONGODB_URL), tz_aware=True)
        logger.info("Database manager initialized")

    @property
    def database(self) -> Optional[AsyncIOMotorDatabase]:
        if self.mongodb is None:
            return None
        return self.mongodb[settings.MONGODB_DATABASE]

    async def close(self) -> None:
        """Tear down connections gracefully."""

        logger.info("Closing database connections")

        if self.mongodb is not None:
            self.mongodb.close()
            self.mongodb = None


# Singleton instance shared by the API lifespan and the Mongo store
database_manager = DatabaseManager()
