# MongoDB connection management
# mflix_api/data_access/mongo_client.py

import asyncio
import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from mflix_api.core.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)

TEXT_INDEX_NAME = "text_search_index"

# --- Global Client (initialized once per process) ---
_mongo_client: Optional[AsyncIOMotorClient] = None
_db_instance: Optional[AsyncIOMotorDatabase] = None
_connect_lock: Optional[asyncio.Lock] = None


class DatabaseNotConnectedError(RuntimeError):
    """Raised when the database is accessed before connect_to_database() completed."""


def _get_connect_lock() -> asyncio.Lock:
    global _connect_lock
    if _connect_lock is None:
        _connect_lock = asyncio.Lock()
    return _connect_lock


async def connect_to_database(settings: Optional[Settings] = None) -> AsyncIOMotorDatabase:
    """
    Returns the shared database handle, connecting on first use.

    Concurrent first callers wait on the same lock, so the client is created
    and pinged at most once per process.

    Raises:
        RuntimeError: If MONGODB_URI is not configured.
        PyMongoError: If the initial ping fails.
    """
    global _mongo_client, _db_instance
    if _db_instance is not None:
        return _db_instance

    async with _get_connect_lock():
        # another caller may have finished while we waited
        if _db_instance is not None:
            return _db_instance

        settings = settings or default_settings
        if settings.MONGODB_URI is None or not settings.MONGODB_URI.get_secret_value():
            raise RuntimeError(
                "MONGODB_URI environment variable is not defined. Please check your .env file "
                "and ensure it contains a valid MongoDB connection string."
            )

        uri = settings.MONGODB_URI.get_secret_value()
        logger.info(f"Connecting to MongoDB: {uri[:15]}...")  # partial URI only
        client = AsyncIOMotorClient(uri, appname=settings.MONGODB_APP_NAME)
        try:
            await client.admin.command("ping")
        except PyMongoError as e:
            logger.error(f"MongoDB connection failed: {e}", exc_info=True)
            client.close()
            raise

        _mongo_client = client
        _db_instance = client[settings.MONGODB_DB_NAME]
        logger.info(f"MongoDB client initialized. Using database: '{settings.MONGODB_DB_NAME}'")
        return _db_instance


def get_database() -> AsyncIOMotorDatabase:
    """Returns the connected database; fails fast if the connection is not established."""
    if _db_instance is None:
        raise DatabaseNotConnectedError("Database not connected.")
    return _db_instance


def get_collection(collection_name: str) -> AsyncIOMotorCollection:
    return get_database()[collection_name]


async def close_database_connection() -> None:
    global _mongo_client, _db_instance, _connect_lock
    if _mongo_client is not None:
        _mongo_client.close()
        logger.info("Database connection closed")
    _mongo_client = None
    _db_instance = None
    _connect_lock = None


# --- Startup checks ---

async def verify_requirements(db: AsyncIOMotorDatabase) -> None:
    """
    Warns about an empty movies collection and makes sure a text index exists.

    Index creation problems are logged, not raised: everything except the
    `q` filter of the list endpoint works without it.
    """
    movies = db["movies"]

    movie_count = await movies.estimated_document_count()
    if movie_count == 0:
        logger.warning("Movies collection is empty. Please ensure sample_mflix data is loaded.")

    await ensure_text_index(movies)
    logger.debug("All database requirements verified successfully")


async def ensure_text_index(movies: AsyncIOMotorCollection) -> None:
    try:
        existing_indexes = await movies.index_information()
        # MongoDB allows a single text index per collection
        for name, info in existing_indexes.items():
            if any(kind == "text" for _, kind in info.get("key", [])):
                logger.debug(f"Text search index '{name}' already exists on movies collection")
                return

        await movies.create_index(
            [("plot", "text"), ("title", "text"), ("fullplot", "text")],
            name=TEXT_INDEX_NAME,
        )
        logger.info(f"Text search index '{TEXT_INDEX_NAME}' created for movies collection")
    except PyMongoError as e:
        logger.warning(f"Could not create text search index: {e}")
        logger.warning("Text search functionality may not work without the index")
