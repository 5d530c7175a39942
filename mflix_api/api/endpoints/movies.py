# /api/movies endpoints
# mflix_api/api/endpoints/movies.py

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Query, status

from mflix_api.api.deps import get_embedding_client, get_movie_service
from mflix_api.core.errors import APIError
from mflix_api.models.movie import (
    BatchDeleteRequest,
    BatchUpdateRequest,
    DirectorStatistics,
    MovieCreate,
    MovieDocument,
    MovieUpdate,
    MovieWithComments,
    SearchMoviesResult,
    VectorSearchResult,
    YearStatistics,
)
from mflix_api.models.response import ErrorResponse, SuccessResponse
from mflix_api.services.embedding_service import VoyageEmbeddingClient
from mflix_api.services.movie_service import MovieService
from mflix_api.services.pipelines import comments_report_message
from mflix_api.utils.params import (
    convert_id_filter,
    normalize_comment_report_params,
    normalize_director_report_params,
    normalize_list_params,
    normalize_search_params,
    normalize_vector_search_params,
    parse_object_id,
)
from mflix_api.utils.responses import create_success_response, envelope_response

logger = logging.getLogger(__name__)
router = APIRouter()

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid request"},
    500: {"model": ErrorResponse, "description": "Database or internal error"},
}
NOT_FOUND_RESPONSES = {**ERROR_RESPONSES, 404: {"model": ErrorResponse, "description": "Movie not found"}}


# --- Collection reads ---

@router.get(
    "",  # GET /api/movies
    response_model=SuccessResponse[List[Dict[str, Any]]],
    summary="List Movies",
    description="Retrieve movies with optional text search, genre/year/rating filters, sorting and pagination.",
    responses=ERROR_RESPONSES,
)
async def list_movies(
    q: Optional[str] = Query(None, description="Full-text search over title, plot and fullplot."),
    genre: Optional[str] = Query(None, description="Case-insensitive genre substring."),
    year: Optional[str] = Query(None, description="Exact release year."),
    min_rating: Optional[str] = Query(None, alias="minRating", description="Minimum IMDb rating."),
    max_rating: Optional[str] = Query(None, alias="maxRating", description="Maximum IMDb rating."),
    limit: Optional[str] = Query(None, description="Page size (default 20, max 100)."),
    skip: Optional[str] = Query(None, description="Number of movies to skip."),
    sort_by: Optional[str] = Query(None, alias="sortBy", description="Field to sort by (default title)."),
    sort_order: Optional[str] = Query(None, alias="sortOrder", description="asc or desc."),
    movie_service: MovieService = Depends(get_movie_service),
):
    params = normalize_list_params(q, genre, year, min_rating, max_rating, limit, skip, sort_by, sort_order)
    movies = await movie_service.list_movies(params)
    return envelope_response(create_success_response(movies, f"Found {len(movies)} movies"))


@router.get(
    "/search",  # GET /api/movies/search
    response_model=SuccessResponse[SearchMoviesResult],
    summary="Search Movies",
    description="Atlas Search across plot, fullplot (phrase) and directors, writers, cast (fuzzy).",
    responses=ERROR_RESPONSES,
)
async def search_movies(
    plot: Optional[str] = Query(None),
    fullplot: Optional[str] = Query(None),
    directors: Optional[str] = Query(None),
    writers: Optional[str] = Query(None),
    cast: Optional[str] = Query(None),
    limit: Optional[str] = Query(None, description="Page size (default 20, max 100)."),
    skip: Optional[str] = Query(None),
    search_operator: Optional[str] = Query(None, alias="searchOperator", description="must, should, mustNot or filter."),
    movie_service: MovieService = Depends(get_movie_service),
):
    params = normalize_search_params(plot, fullplot, directors, writers, cast, limit, skip, search_operator)
    result = await movie_service.search_movies(params)
    return envelope_response(
        create_success_response(result, f"Found {result['totalCount']} movies matching the search criteria")
    )


@router.get(
    "/vector-search",  # GET /api/movies/vector-search
    response_model=SuccessResponse[List[VectorSearchResult]],
    summary="Semantic Plot Search",
    description="Embeds the query with Voyage AI and runs a vector similarity search over plot embeddings.",
    responses={
        **ERROR_RESPONSES,
        401: {"model": ErrorResponse, "description": "Embedding provider rejected the API key"},
        503: {"model": ErrorResponse, "description": "Embedding service unavailable"},
    },
)
async def vector_search_movies(
    q: Optional[str] = Query(None, description="Natural-language description of the plot."),
    limit: Optional[str] = Query(None, description="Number of results (default 10, max 50)."),
    movie_service: MovieService = Depends(get_movie_service),
    embedder: VoyageEmbeddingClient = Depends(get_embedding_client),
):
    params = normalize_vector_search_params(q, limit)
    results = await movie_service.vector_search(params, embedder)
    if not results:
        message = f"No similar movies found for query: '{params.q}'"
    else:
        message = f"Found {len(results)} similar movies for query: '{params.q}'"
    return envelope_response(create_success_response(results, message))


# --- Reports ---

@router.get(
    "/aggregations/reportingByComments",
    response_model=SuccessResponse[List[MovieWithComments]],
    summary="Movies With Recent Comments",
    responses=ERROR_RESPONSES,
)
async def movies_with_recent_comments(
    limit: Optional[str] = Query(None, description="Recent comments per movie (default 10, max 50)."),
    movie_id: Optional[str] = Query(None, alias="movieId", description="Restrict the report to one movie."),
    movie_service: MovieService = Depends(get_movie_service),
):
    params = normalize_comment_report_params(limit, movie_id)
    results = await movie_service.movies_with_recent_comments(params)
    message = comments_report_message(results, single_movie=params.movie_id is not None)
    return envelope_response(create_success_response(results, message))


@router.get(
    "/aggregations/reportingByYear",
    response_model=SuccessResponse[List[YearStatistics]],
    summary="Statistics Per Year",
    responses=ERROR_RESPONSES,
)
async def year_statistics(movie_service: MovieService = Depends(get_movie_service)):
    results = await movie_service.year_statistics()
    return envelope_response(create_success_response(results, f"Aggregated statistics for {len(results)} years"))


@router.get(
    "/aggregations/reportingByDirectors",
    response_model=SuccessResponse[List[DirectorStatistics]],
    summary="Directors With Most Movies",
    responses=ERROR_RESPONSES,
)
async def director_statistics(
    limit: Optional[str] = Query(None, description="Number of directors (default 20, max 100)."),
    movie_service: MovieService = Depends(get_movie_service),
):
    params = normalize_director_report_params(limit)
    results = await movie_service.director_statistics(params)
    return envelope_response(create_success_response(results, f"Found {len(results)} directors with most movies"))


# --- Batch writes ---

@router.post(
    "/batch",
    status_code=status.HTTP_201_CREATED,
    response_model=SuccessResponse[Dict[str, Any]],
    summary="Create Movies",
    responses=ERROR_RESPONSES,
)
async def create_movies(
    movies: List[MovieCreate] = Body(...),
    movie_service: MovieService = Depends(get_movie_service),
):
    if not movies:
        raise APIError("Request body must be a non-empty array of movie objects", "INVALID_INPUT")
    result = await movie_service.create_movies([movie.to_document() for movie in movies])
    return envelope_response(
        create_success_response(result, f"Successfully created {result['insertedCount']} movies"),
        status_code=status.HTTP_201_CREATED,
    )


@router.patch(
    "",
    response_model=SuccessResponse[Dict[str, int]],
    summary="Update Movies",
    description="Applies $set to every movie matched by the filter. An empty filter matches all movies.",
    responses=ERROR_RESPONSES,
)
async def update_movies(
    payload: Optional[BatchUpdateRequest] = Body(None),
    movie_service: MovieService = Depends(get_movie_service),
):
    if payload is None or payload.filter is None or payload.update is None:
        raise APIError("Both filter and update objects are required", "MISSING_REQUIRED_FIELDS")
    if not payload.update:
        raise APIError("Update object cannot be empty", "EMPTY_UPDATE")

    query = convert_id_filter(payload.filter)
    result = await movie_service.update_movies(query, payload.update)
    return envelope_response(
        create_success_response(
            result,
            f"Update operation completed. Matched {result['matchedCount']} documents, "
            f"modified {result['modifiedCount']} documents.",
        )
    )


@router.delete(
    "",
    response_model=SuccessResponse[Dict[str, int]],
    summary="Delete Movies",
    responses=ERROR_RESPONSES,
)
async def delete_movies(
    payload: Optional[BatchDeleteRequest] = Body(None),
    movie_service: MovieService = Depends(get_movie_service),
):
    if payload is None or not payload.filter:
        raise APIError(
            "Filter object is required and cannot be empty. This prevents accidental deletion of all documents.",
            "MISSING_FILTER",
        )

    query = convert_id_filter(payload.filter)
    deleted_count = await movie_service.delete_movies(query)
    return envelope_response(
        create_success_response(
            {"deletedCount": deleted_count},
            f"Delete operation completed. Removed {deleted_count} documents.",
        )
    )


# --- Single movie ---

@router.post(
    "",  # POST /api/movies
    status_code=status.HTTP_201_CREATED,
    response_model=SuccessResponse[MovieDocument],
    summary="Create Movie",
    responses=ERROR_RESPONSES,
)
async def create_movie(
    movie: MovieCreate,
    movie_service: MovieService = Depends(get_movie_service),
):
    created = await movie_service.create_movie(movie.to_document())
    return envelope_response(
        create_success_response(created, f"Movie '{movie.title}' created successfully"),
        status_code=status.HTTP_201_CREATED,
    )


@router.get(
    "/{movie_id}",  # GET /api/movies/{movie_id}
    response_model=SuccessResponse[MovieDocument],
    summary="Get Movie Details",
    responses=NOT_FOUND_RESPONSES,
)
async def get_movie(
    movie_id: str,
    movie_service: MovieService = Depends(get_movie_service),
):
    movie = await movie_service.get_movie(parse_object_id(movie_id))
    return envelope_response(create_success_response(movie, "Movie retrieved successfully"))


@router.patch(
    "/{movie_id}",
    response_model=SuccessResponse[MovieDocument],
    summary="Update Movie",
    responses=NOT_FOUND_RESPONSES,
)
async def update_movie(
    movie_id: str,
    changes: MovieUpdate,
    movie_service: MovieService = Depends(get_movie_service),
):
    object_id = parse_object_id(movie_id)
    update_doc = changes.to_document()
    if not update_doc:
        raise APIError("No update data provided", "NO_UPDATE_DATA")

    updated, modified_count = await movie_service.update_movie(object_id, update_doc)
    return envelope_response(
        create_success_response(updated, f"Movie updated successfully. Modified {modified_count} field(s).")
    )


@router.delete(
    "/{movie_id}/find-and-delete",
    response_model=SuccessResponse[MovieDocument],
    summary="Find And Delete Movie",
    description="Atomically deletes a movie and returns the deleted document.",
    responses=NOT_FOUND_RESPONSES,
)
async def find_and_delete_movie(
    movie_id: str,
    movie_service: MovieService = Depends(get_movie_service),
):
    deleted = await movie_service.find_and_delete_movie(parse_object_id(movie_id))
    return envelope_response(create_success_response(deleted, "Movie found and deleted successfully"))


@router.delete(
    "/{movie_id}",
    response_model=SuccessResponse[Dict[str, int]],
    summary="Delete Movie",
    responses=NOT_FOUND_RESPONSES,
)
async def delete_movie(
    movie_id: str,
    movie_service: MovieService = Depends(get_movie_service),
):
    deleted_count = await movie_service.delete_movie(parse_object_id(movie_id))
    return envelope_response(create_success_response({"deletedCount": deleted_count}, "Movie deleted successfully"))
