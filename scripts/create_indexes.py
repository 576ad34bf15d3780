"""
Database Index Creation Script

Creates the MongoDB indexes the repositories rely on (unique ids, the
unique chat room token, 2dsphere coordinates, status/date compounds).
Run this after deployment or when setting up a new database.
"""

import asyncio
import logging

from motor.motor_asyncio import AsyncIOMotorClient

from app.config import settings
from app.database import create_indexes
from app.utils.logging_setup import setup_logging

logger = logging.getLogger(__name__)


async def main():
    client = AsyncIOMotorClient(settings.mongodb_uri, tz_aware=True)
    db = client[settings.mongodb_database]

    logger.info("Creating database indexes on '%s'...", settings.mongodb_database)
    try:
        await create_indexes(db)
        for name in ("users", "pool_requests", "groups", "notifications"):
            indexes = await db[name].index_information()
            logger.info("%s: %d indexes", name, len(indexes))
    finally:
        client.close()
    logger.info("Index creation complete")


if __name__ == "__main__":
    setup_logging(settings.log_level)
    asyncio.run(main())
