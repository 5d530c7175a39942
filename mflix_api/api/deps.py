# FastAPI dependencies (get_db, get_movie_service, get_embedding_client)
# mflix_api/api/deps.py

import logging
from typing import Optional

from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from mflix_api.core.config import settings
from mflix_api.data_access.mongo_client import (
    close_database_connection,
    connect_to_database,
    verify_requirements,
)
from mflix_api.services.embedding_service import VoyageEmbeddingClient
from mflix_api.services.movie_service import MovieService

logger = logging.getLogger(__name__)

# --- Global Clients (Initialized once) ---
embedding_client: Optional[VoyageEmbeddingClient] = None


async def initialize_connections():
    """
    Connects to MongoDB, checks the collection/index prerequisites and
    creates the embedding client.
    Call this during FastAPI startup using lifespan events.
    """
    global embedding_client
    logger.info("Initializing external connections...")

    db = await connect_to_database(settings)
    await verify_requirements(db)

    embedding_client = VoyageEmbeddingClient(settings)
    if not embedding_client.configured:
        logger.warning("VOYAGE_API_KEY not configured; vector search requests will be rejected.")


async def close_connections():
    """
    Closes the embedding client session and the MongoDB client.
    Call this during FastAPI shutdown using lifespan events.
    """
    global embedding_client
    logger.info("Closing external connections...")
    if embedding_client is not None:
        await embedding_client.close()
        embedding_client = None
    await close_database_connection()


# --- Database Dependency ---

async def get_db() -> AsyncIOMotorDatabase:
    """
    FastAPI dependency returning the shared database handle.

    Connects lazily if startup did not; connection errors propagate to the
    top-level error handlers.
    """
    return await connect_to_database(settings)


# --- Service Dependencies ---

def get_movie_service(db: AsyncIOMotorDatabase = Depends(get_db)) -> MovieService:
    return MovieService(db=db, settings=settings)


def get_embedding_client() -> VoyageEmbeddingClient:
    global embedding_client
    if embedding_client is None:
        embedding_client = VoyageEmbeddingClient(settings)
    return embedding_client
