"""Database models and connection setup."""

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING, DESCENDING
from typing import Optional
from config.settings import settings
import redis.asyncio as aioredis
from utils.logger import setup_logger

logger = setup_logger(__name__)


class Database:
    """Database connection manager."""

    client: Optional[AsyncIOMotorClient] = None
    redis_client: Optional[aioredis.Redis] = None


db = Database()


async def connect_to_mongo():
    """Create database connection."""
    db.client = AsyncIOMotorClient(settings.mongodb_url)
    logger.info(f"Connected to MongoDB database: {database_name()}")


async def close_mongo_connection():
    """Close database connection."""
    if db.client:
        db.client.close()
        db.client = None
        logger.info("Disconnected from MongoDB")


async def connect_to_redis():
    """Create Redis connection when a Redis URL is configured."""
    if not settings.redis_url:
        logger.info("REDIS_URL not set; plan locks are process-local")
        return
    db.redis_client = aioredis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True
    )
    logger.info("Connected to Redis")


async def close_redis_connection():
    """Close Redis connection."""
    if db.redis_client:
        await db.redis_client.close()
        db.redis_client = None
        logger.info("Disconnected from Redis")


async def init_mongo():
    """Initialize MongoDB connection and all collections with indexes."""
    await connect_to_mongo()

    database = get_database()

    # Workout plans collection
    plans = database.workout_plans
    await plans.create_index([("user_id", ASCENDING), ("is_active", ASCENDING)])
    await plans.create_index([("user_id", ASCENDING), ("created_at", DESCENDING)])
    await plans.create_index([("user_id", ASCENDING), ("mode", ASCENDING), ("start_date", ASCENDING), ("end_date", ASCENDING)])
    await plans.create_index([("is_active", ASCENDING)])

    # Scheduled exercises collection
    scheduled = database.scheduled_exercises
    await scheduled.create_index([("user_id", ASCENDING), ("date", ASCENDING)])
    await scheduled.create_index([("user_id", ASCENDING), ("workout_plan_id", ASCENDING), ("date", ASCENDING)])
    await scheduled.create_index([("user_id", ASCENDING), ("completed", ASCENDING)])
    await scheduled.create_index([("generation_batch_id", ASCENDING)], sparse=True)

    # Exercise catalog collection (read-only reference data)
    exercises = database.exercises
    await exercises.create_index([("category_id", ASCENDING)])

    logger.info("MongoDB initialized: All collections created with indexes")


def database_name() -> str:
    """Database name taken from the path of the Mongo URL."""
    return settings.mongodb_url.rsplit("/", 1)[-1].split("?")[0] or "workout_planner"


def get_database():
    """Get database instance."""
    return db.client[database_name()]


def get_redis():
    """Get Redis instance (None when Redis is not configured)."""
    return db.redis_client


# Helper functions to get collections
def get_workout_plans_collection():
    """Get workout plans collection."""
    return get_database().workout_plans


def get_scheduled_exercises_collection():
    """Get scheduled exercises collection."""
    return get_database().scheduled_exercises


def get_exercises_collection():
    """Get exercise catalog collection."""
    return get_database().exercises
