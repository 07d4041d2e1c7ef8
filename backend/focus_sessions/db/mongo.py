# backend/focus_sessions/db/mongo.py
from motor.motor_asyncio import AsyncIOMotorClient

from focus_sessions.core.config import settings
from focus_sessions.core.logging import get_logger

logger = get_logger(__name__)

client: AsyncIOMotorClient | None = None
db = None


async def connect_to_mongo():
    global client, db
    # tz_aware: datetimes come back as aware UTC, matching what the engine writes
    client = AsyncIOMotorClient(
        settings.MONGO_URI,
        tz_aware=True,
        serverSelectionTimeoutMS=settings.MONGO_TIMEOUT_MS,
        connectTimeoutMS=settings.MONGO_TIMEOUT_MS,
        socketTimeoutMS=settings.MONGO_TIMEOUT_MS,
    )
    db = client[settings.MONGO_DB_NAME]
    logger.info("MongoDB connected", extra={"event_type": "startup", "db": settings.MONGO_DB_NAME})


async def close_mongo_connection():
    global client, db
    if client:
        client.close()
        client = None
        db = None
        logger.info("MongoDB connection closed", extra={"event_type": "shutdown"})


def get_db():
    if db is None:
        raise RuntimeError("MongoDB not initialized. Did you call connect_to_mongo()?")
    return db
