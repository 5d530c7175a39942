# Filter/sort compilation for plain find() queries
# mflix_api/services/filters.py

from typing import Any, Dict, List, Tuple

from pymongo import ASCENDING, DESCENDING

from mflix_api.models.query import MovieListParams, SortOrder
from mflix_api.utils.params import genre_pattern


def build_movie_filter(params: MovieListParams) -> Dict[str, Any]:
    """
    Builds the MongoDB filter for the movie list endpoint.

    Each supplied parameter contributes one independent clause; MongoDB ANDs
    top-level keys implicitly.
    """
    query: Dict[str, Any] = {}

    if params.q:
        # Needs the text index on title/plot/fullplot (see verify_requirements)
        query["$text"] = {"$search": params.q}

    if params.genre:
        query["genres"] = {"$regex": genre_pattern(params.genre), "$options": "i"}

    if params.year is not None:
        query["year"] = params.year

    rating: Dict[str, float] = {}
    if params.min_rating is not None:
        rating["$gte"] = params.min_rating
    if params.max_rating is not None:
        rating["$lte"] = params.max_rating
    if rating:
        query["imdb.rating"] = rating

    return query


def build_sort(params: MovieListParams) -> List[Tuple[str, int]]:
    """Single-field sort; sort_by is not checked against known fields."""
    direction = DESCENDING if params.sort_order == SortOrder.DESC else ASCENDING
    return [(params.sort_by, direction)]
