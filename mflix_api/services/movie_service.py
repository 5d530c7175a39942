# mflix_api/services/movie_service.py

import logging
from typing import Any, Dict, List, Optional, Tuple

from bson import ObjectId
from fastapi import status
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from mflix_api.core.config import Settings, settings as default_settings
from mflix_api.core.errors import APIError, MovieNotFoundError
from mflix_api.models.query import (
    CommentReportParams,
    DirectorReportParams,
    MovieListParams,
    MovieSearchParams,
    VectorSearchParams,
)
from mflix_api.services.embedding_service import VoyageEmbeddingClient
from mflix_api.services.filters import build_movie_filter, build_sort
from mflix_api.services.pipelines import (
    build_comments_report_pipeline,
    build_director_stats_pipeline,
    build_search_pipeline,
    build_vector_movies_pipeline,
    build_vector_search_pipeline,
    build_year_stats_pipeline,
    merge_vector_results,
    shape_comments_report,
    unpack_search_facet,
)

logger = logging.getLogger(__name__)


class MovieService:
    def __init__(self, db: AsyncIOMotorDatabase, settings: Optional[Settings] = None):
        """
        Initializes the Movie Service.

        Args:
            db: An instance of AsyncIOMotorDatabase (Motor client).
            settings: Index names etc.; defaults to the process settings.
        """
        self.db = db
        self.settings = settings or default_settings
        self.collection = db["movies"]
        self.embedded_collection = db["embedded_movies"]

    # --- Reads ---

    async def list_movies(self, params: MovieListParams) -> List[Dict[str, Any]]:
        query = build_movie_filter(params)
        sort = build_sort(params)
        cursor = self.collection.find(query).sort(sort).skip(params.skip).limit(params.limit)
        movies = await cursor.to_list(length=params.limit)
        logger.debug(f"Fetched {len(movies)} movies with query: {query} sort: {sort}")
        return movies

    async def get_movie(self, movie_id: ObjectId) -> Dict[str, Any]:
        """
        Raises:
            MovieNotFoundError: If no movie has this id.
        """
        movie = await self.collection.find_one({"_id": movie_id})
        if movie is None:
            logger.debug(f"Movie with ID {movie_id} not found in database.")
            raise MovieNotFoundError()
        return movie

    # --- Writes ---

    async def create_movie(self, document: Dict[str, Any]) -> Dict[str, Any]:
        """Inserts one movie and returns the stored document, including its new _id."""
        result = await self.collection.insert_one(document)
        if not result.acknowledged:
            raise RuntimeError("Movie insertion was not acknowledged by the database")
        created = await self.collection.find_one({"_id": result.inserted_id})
        logger.info(f"Created movie {result.inserted_id} ('{document.get('title')}')")
        return created

    async def create_movies(self, documents: List[Dict[str, Any]]) -> Dict[str, Any]:
        result = await self.collection.insert_many(documents)
        if not result.acknowledged:
            raise RuntimeError("Batch movie insertion was not acknowledged by the database")
        inserted_ids = result.inserted_ids
        logger.info(f"Created {len(inserted_ids)} movies in batch")
        return {
            "insertedCount": len(inserted_ids),
            # keyed by position in the request body
            "insertedIds": {str(index): inserted_id for index, inserted_id in enumerate(inserted_ids)},
        }

    async def update_movie(self, movie_id: ObjectId, changes: Dict[str, Any]) -> Tuple[Dict[str, Any], int]:
        """
        Applies a $set to one movie.

        Returns:
            The updated document and the driver's modified count.

        Raises:
            MovieNotFoundError: If no movie has this id.
        """
        result = await self.collection.update_one({"_id": movie_id}, {"$set": changes})
        if result.matched_count == 0:
            raise MovieNotFoundError()
        updated = await self.collection.find_one({"_id": movie_id})
        return updated, result.modified_count

    async def update_movies(self, query: Dict[str, Any], changes: Dict[str, Any]) -> Dict[str, int]:
        result = await self.collection.update_many(query, {"$set": changes})
        logger.info(f"update_many matched {result.matched_count}, modified {result.modified_count}")
        return {"matchedCount": result.matched_count, "modifiedCount": result.modified_count}

    async def delete_movie(self, movie_id: ObjectId) -> int:
        result = await self.collection.delete_one({"_id": movie_id})
        if result.deleted_count == 0:
            raise MovieNotFoundError()
        return result.deleted_count

    async def delete_movies(self, query: Dict[str, Any]) -> int:
        result = await self.collection.delete_many(query)
        logger.info(f"delete_many removed {result.deleted_count} movies")
        return result.deleted_count

    async def find_and_delete_movie(self, movie_id: ObjectId) -> Dict[str, Any]:
        deleted = await self.collection.find_one_and_delete({"_id": movie_id})
        if deleted is None:
            raise MovieNotFoundError()
        return deleted

    # --- Search ---

    async def search_movies(self, params: MovieSearchParams) -> Dict[str, Any]:
        pipeline = build_search_pipeline(params, index_name=self.settings.SEARCH_INDEX_NAME)
        results = await self.collection.aggregate(pipeline).to_list(length=None)
        return unpack_search_facet(results)

    async def vector_search(
        self, params: VectorSearchParams, embedder: VoyageEmbeddingClient
    ) -> List[Dict[str, Any]]:
        """
        Semantic plot search in two phases: ANN search over embedded_movies, then a
        re-fetch of the matched movies merged with their scores.

        Raises:
            EmbeddingNotConfiguredError, EmbeddingAuthError, EmbeddingServiceError: From the embedder.
            APIError: 500 VECTOR_SEARCH_ERROR if either store round-trip fails.
        """
        query_vector = await embedder.embed(params.q)

        try:
            hits = await self.embedded_collection.aggregate(
                build_vector_search_pipeline(
                    query_vector,
                    params.limit,
                    index_name=self.settings.VECTOR_INDEX_NAME,
                    path=self.settings.VECTOR_EMBEDDING_PATH,
                )
            ).to_list(length=None)
            if not hits:
                return []

            movie_ids = [hit["_id"] for hit in hits]
            movies = await self.collection.aggregate(
                build_vector_movies_pipeline(movie_ids)
            ).to_list(length=None)
        except PyMongoError as e:
            logger.error(f"Vector search error: {e}", exc_info=True)
            raise APIError(
                "Error performing vector search",
                "VECTOR_SEARCH_ERROR",
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                str(e),
            ) from e

        return merge_vector_results(hits, movies)

    # --- Reports ---

    async def movies_with_recent_comments(self, params: CommentReportParams) -> List[Dict[str, Any]]:
        pipeline = build_comments_report_pipeline(params.limit, params.movie_id)
        results = await self.collection.aggregate(pipeline).to_list(length=None)
        return shape_comments_report(results)

    async def year_statistics(self) -> List[Dict[str, Any]]:
        return await self.collection.aggregate(build_year_stats_pipeline()).to_list(length=None)

    async def director_statistics(self, params: DirectorReportParams) -> List[Dict[str, Any]]:
        return await self.collection.aggregate(build_director_stats_pipeline(params.limit)).to_list(length=None)
