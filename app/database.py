"""
Cab Pool Database Module

MongoDB and Redis connection management.
"""

import logging
from typing import Optional

import redis.asyncio as redis
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, GEOSPHERE

from app.config import settings

logger = logging.getLogger(__name__)


# =============================================================================
# MongoDB Connection
# =============================================================================

class MongoDB:
    """MongoDB connection manager."""

    client: Optional[AsyncIOMotorClient] = None
    db: Optional[AsyncIOMotorDatabase] = None


mongo = MongoDB()


async def create_indexes(db: AsyncIOMotorDatabase):
    """Create every index the repositories rely on. Safe to run repeatedly."""
    # users
    await db.users.create_index("user_id", unique=True)

    # pool_requests
    await db.pool_requests.create_index("request_id", unique=True)
    await db.pool_requests.create_index("creator_id")
    await db.pool_requests.create_index([("pickup.coordinates", GEOSPHERE)])
    await db.pool_requests.create_index([("drop.coordinates", GEOSPHERE)])
    await db.pool_requests.create_index([("status", ASCENDING), ("date_time", ASCENDING)])
    await db.pool_requests.create_index([("creator_id", ASCENDING), ("date_time", DESCENDING)])

    # groups
    await db.groups.create_index("group_id", unique=True)
    await db.groups.create_index("chat_room_id", unique=True)
    await db.groups.create_index("members.user_id")
    await db.groups.create_index([("route.pickup.coordinates", GEOSPHERE)])
    await db.groups.create_index([("status", ASCENDING), ("date_time", ASCENDING)])

    # notifications
    await db.notifications.create_index("notification_id", unique=True)
    await db.notifications.create_index([("user_id", ASCENDING), ("read", ASCENDING)])
    await db.notifications.create_index([("user_id", ASCENDING), ("created_at", DESCENDING)])


async def init_mongodb():
    """Initialize MongoDB connection and create indexes."""
    mongo.client = AsyncIOMotorClient(settings.mongodb_uri, tz_aware=True)
    mongo.db = mongo.client[settings.mongodb_database]
    await create_indexes(mongo.db)
    logger.info("Connected to MongoDB database '%s'", settings.mongodb_database)


async def close_mongodb():
    """Close MongoDB connection."""
    if mongo.client:
        mongo.client.close()
        mongo.client = None
        mongo.db = None


def get_db() -> AsyncIOMotorDatabase:
    """Get database instance."""
    if mongo.db is None:
        raise RuntimeError("Database not initialized")
    return mongo.db


# =============================================================================
# Redis Connection
# =============================================================================

class RedisClient:
    """Redis connection manager."""

    client: Optional[redis.Redis] = None


redis_client = RedisClient()


async def init_redis():
    """Initialize Redis connection."""
    redis_client.client = redis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        health_check_interval=30,
        socket_connect_timeout=5,
        retry_on_timeout=True,
        socket_keepalive=True,
    )


async def close_redis():
    """Close Redis connection."""
    if redis_client.client:
        await redis_client.client.aclose()
        redis_client.client = None


def get_redis() -> redis.Redis:
    """Get Redis client instance."""
    if redis_client.client is None:
        raise RuntimeError("Redis not initialized")
    return redis_client.client


# =============================================================================
# Combined Initialization
# =============================================================================

async def init_db():
    """Initialize all database connections."""
    await init_mongodb()
    await init_redis()


async def close_db():
    """Close all database connections."""
    await close_mongodb()
    await close_redis()
