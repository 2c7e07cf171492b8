import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import PyMongoError, ServerSelectionTimeoutError

from .config import Settings

logger = logging.getLogger(__name__)


async def connect_to_mongo(settings: Settings) -> AsyncIOMotorClient | None:
    """Create a MongoDB client and verify the connection.

    Returns ``None`` when the server cannot be reached.
    """

    client = AsyncIOMotorClient(
        settings.mongodb_uri,
        uuidRepresentation="standard",
        tz_aware=True,
        serverSelectionTimeoutMS=settings.mongodb_timeout_ms,
    )
    try:
        await client[settings.mongodb_db_name].command("ping")
    except (ServerSelectionTimeoutError, PyMongoError) as exc:
        logger.warning("MongoDB connection failed: %s", exc)
        client.close()
        return None

    logger.info("Connected to MongoDB database '%s'", settings.mongodb_db_name)
    return client


def get_database(client: AsyncIOMotorClient, settings: Settings) -> AsyncIOMotorDatabase:
    """Return the configured database of ``client``."""

    return client[settings.mongodb_db_name]


def close_mongo_connection(client: AsyncIOMotorClient | None) -> None:
    """Dispose of the MongoDB client if it exists."""

    if client is not None:
        client.close()
        logger.info("MongoDB connection closed")
