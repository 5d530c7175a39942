# Aggregation pipeline construction
# mflix_api/services/pipelines.py

from typing import Any, Dict, List, Optional

from bson import ObjectId

from mflix_api.core.errors import APIError
from mflix_api.models.query import MovieSearchParams

# Data-quality bounds; sample_mflix contains strings and typos in `year`
MIN_VALID_YEAR = 1800
MAX_VALID_YEAR = 2030

# Over-fetch factor for ANN search: numCandidates = limit * 20
VECTOR_CANDIDATE_MULTIPLIER = 20

FUZZY_OPTIONS = {"maxEdits": 1, "prefixLength": 5}

PHRASE_FIELDS = ("plot", "fullplot")
FUZZY_TEXT_FIELDS = ("directors", "writers", "cast")

SEARCH_RESULT_FIELDS = (
    "_id", "title", "year", "plot", "fullplot", "released", "runtime", "poster",
    "genres", "directors", "writers", "cast", "countries", "languages", "rated",
    "awards", "imdb",
)

COMMENTS_REPORT_LIMIT_SINGLE = 50
COMMENTS_REPORT_LIMIT_ALL = 20


def _valid_year_match() -> Dict[str, Any]:
    return {"$type": "number", "$gte": MIN_VALID_YEAR, "$lte": MAX_VALID_YEAR}


# --- (a) Compound multi-field search ---

def build_search_phrases(params: MovieSearchParams) -> List[Dict[str, Any]]:
    """One Atlas Search clause per supplied field, in a fixed field order."""
    phrases: List[Dict[str, Any]] = []
    for field in PHRASE_FIELDS:
        value = getattr(params, field)
        if value:
            phrases.append({"phrase": {"query": value, "path": field}})
    for field in FUZZY_TEXT_FIELDS:
        value = getattr(params, field)
        if value:
            phrases.append({"text": {"query": value, "path": field, "fuzzy": dict(FUZZY_OPTIONS)}})
    return phrases


def build_search_pipeline(params: MovieSearchParams, index_name: str = "movieSearchIndex") -> List[Dict[str, Any]]:
    """
    $search (compound) followed by a $facet that yields the total match count
    alongside one projected page of results.

    Raises:
        APIError: 400 NO_SEARCH_PARAMETERS when no text field was supplied.
    """
    phrases = build_search_phrases(params)
    if not phrases:
        raise APIError("At least one search parameter must be provided", "NO_SEARCH_PARAMETERS")

    return [
        {
            "$search": {
                "index": index_name,
                "compound": {params.search_operator.value: phrases},
            }
        },
        {
            "$facet": {
                "totalCount": [{"$count": "count"}],
                "results": [
                    {"$skip": params.skip},
                    {"$limit": params.limit},
                    {"$project": {field: 1 for field in SEARCH_RESULT_FIELDS}},
                ],
            }
        },
    ]


def unpack_search_facet(results: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Flattens the single $facet document into {movies, totalCount}."""
    facet = results[0] if results else {}
    total = facet.get("totalCount") or []
    return {
        "movies": facet.get("results") or [],
        "totalCount": total[0].get("count", 0) if total else 0,
    }


# --- (b) Vector similarity search ---

def build_vector_search_pipeline(
    query_vector: List[float],
    limit: int,
    index_name: str = "vector_index",
    path: str = "plot_embedding_voyage_3_large",
) -> List[Dict[str, Any]]:
    return [
        {
            "$vectorSearch": {
                "index": index_name,
                "path": path,
                "queryVector": query_vector,
                "numCandidates": limit * VECTOR_CANDIDATE_MULTIPLIER,
                "limit": limit,
            }
        },
        {
            "$project": {
                "_id": 1,
                "score": {"$meta": "vectorSearchScore"},
            }
        },
    ]


def build_vector_movies_pipeline(movie_ids: List[ObjectId]) -> List[Dict[str, Any]]:
    """Re-fetches matched movies; `year` is kept only when stored as a real int."""
    return [
        {"$match": {"_id": {"$in": movie_ids}}},
        {
            "$project": {
                "_id": 1,
                "title": 1,
                "plot": 1,
                "poster": 1,
                "genres": 1,
                "directors": 1,
                "cast": 1,
                "year": {
                    "$cond": {
                        "if": {
                            "$and": [
                                {"$ne": ["$year", None]},
                                {"$eq": [{"$type": "$year"}, "int"]},
                            ]
                        },
                        "then": "$year",
                        "else": None,
                    }
                },
            }
        },
    ]


def merge_vector_results(
    vector_hits: List[Dict[str, Any]],
    movies: List[Dict[str, Any]],
) -> List[Dict[str, Any]]:
    """
    Joins re-fetched movies with their similarity scores and orders them by score.

    The second query does not preserve ranking, so the order is rebuilt here from
    the scores of the first. Ties keep the order the store returned them in.
    """
    scores = {str(hit["_id"]): hit.get("score", 0) for hit in vector_hits}

    merged = []
    for movie in movies:
        movie_id = str(movie["_id"])
        merged.append({
            "_id": movie_id,
            "title": movie.get("title") or "",
            "plot": movie.get("plot"),
            "poster": movie.get("poster"),
            "year": movie.get("year"),
            "genres": movie.get("genres") or [],
            "directors": movie.get("directors") or [],
            "cast": movie.get("cast") or [],
            "score": scores.get(movie_id, 0),
        })

    merged.sort(key=lambda item: item["score"], reverse=True)
    return merged


# --- (c) Movies with their most recent comments ---

def build_comments_report_pipeline(limit: int, movie_id: Optional[ObjectId] = None) -> List[Dict[str, Any]]:
    match: Dict[str, Any] = {"year": _valid_year_match()}
    if movie_id is not None:
        match["_id"] = movie_id

    return [
        # STAGE 1: data-quality filter, optionally narrowed to one movie
        {"$match": match},
        # STAGE 2: left join with comments
        {
            "$lookup": {
                "from": "comments",
                "localField": "_id",
                "foreignField": "movie_id",
                "as": "comments",
            }
        },
        # STAGE 3: only movies that have comments
        {"$match": {"comments": {"$ne": []}}},
        # STAGE 4: newest N comments plus the newest date
        {
            "$addFields": {
                "recentComments": {
                    "$slice": [
                        {"$sortArray": {"input": "$comments", "sortBy": {"date": -1}}},
                        limit,
                    ]
                },
                "mostRecentCommentDate": {"$max": "$comments.date"},
            }
        },
        # STAGE 5
        {"$sort": {"mostRecentCommentDate": -1}},
        # STAGE 6
        {"$limit": COMMENTS_REPORT_LIMIT_SINGLE if movie_id is not None else COMMENTS_REPORT_LIMIT_ALL},
        # STAGE 7: flat output; totalComments counts the full join, not the slice
        {
            "$project": {
                "_id": 1,
                "title": 1,
                "year": 1,
                "genres": 1,
                "imdbRating": "$imdb.rating",
                "recentComments": {
                    "$map": {
                        "input": "$recentComments",
                        "as": "comment",
                        "in": {
                            "_id": "$$comment._id",
                            "userName": "$$comment.name",
                            "userEmail": "$$comment.email",
                            "text": "$$comment.text",
                            "date": "$$comment.date",
                        },
                    }
                },
                "totalComments": {"$size": "$comments"},
            }
        },
    ]


def shape_comments_report(results: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Stringifies ids of movies and their embedded comments."""
    shaped = []
    for result in results:
        shaped.append({
            "_id": str(result["_id"]),
            "title": result.get("title"),
            "year": result.get("year"),
            "genres": result.get("genres"),
            "imdbRating": result.get("imdbRating"),
            "recentComments": [
                {
                    "_id": str(comment["_id"]) if comment.get("_id") is not None else None,
                    "userName": comment.get("userName"),
                    "userEmail": comment.get("userEmail"),
                    "text": comment.get("text"),
                    "date": comment.get("date"),
                }
                for comment in result.get("recentComments", [])
            ],
            "totalComments": result.get("totalComments", 0),
        })
    return shaped


def comments_report_message(results: List[Dict[str, Any]], single_movie: bool) -> str:
    total_comments = sum(result.get("totalComments") or 0 for result in results)
    if single_movie:
        return f"Found {total_comments} comments from movie"
    plural = "s" if len(results) != 1 else ""
    return f"Found {total_comments} comments from {len(results)} movie{plural}"


# --- (d) Statistics per year ---

def _rating_if_double() -> Dict[str, Any]:
    # ratings that are missing, "" or not a double are dropped from the aggregate
    return {
        "$cond": [
            {
                "$and": [
                    {"$ne": ["$imdb.rating", None]},
                    {"$ne": ["$imdb.rating", ""]},
                    {"$eq": [{"$type": "$imdb.rating"}, "double"]},
                ]
            },
            "$imdb.rating",
            "$$REMOVE",
        ]
    }


def build_year_stats_pipeline() -> List[Dict[str, Any]]:
    return [
        {"$match": {"year": _valid_year_match()}},
        {
            "$group": {
                "_id": "$year",
                "movieCount": {"$sum": 1},
                "averageRating": {"$avg": _rating_if_double()},
                "highestRating": {"$max": _rating_if_double()},
                "lowestRating": {"$min": _rating_if_double()},
                "totalVotes": {"$sum": "$imdb.votes"},
            }
        },
        {
            "$project": {
                "year": "$_id",
                "movieCount": 1,
                "averageRating": {"$round": ["$averageRating", 2]},
                "highestRating": 1,
                "lowestRating": 1,
                "totalVotes": 1,
                "_id": 0,
            }
        },
        {"$sort": {"year": -1}},
    ]


# --- (e) Directors with the most movies ---

def build_director_stats_pipeline(limit: int) -> List[Dict[str, Any]]:
    return [
        {
            "$match": {
                "directors": {"$exists": True, "$ne": None, "$not": {"$eq": []}},
                "year": _valid_year_match(),
            }
        },
        # one row per (movie, director)
        {"$unwind": "$directors"},
        {"$match": {"directors": {"$nin": [None, ""]}}},
        {
            "$group": {
                "_id": "$directors",
                "movieCount": {"$sum": 1},
                "averageRating": {"$avg": "$imdb.rating"},
            }
        },
        {"$sort": {"movieCount": -1}},
        {"$limit": limit},
        {
            "$project": {
                "director": "$_id",
                "movieCount": 1,
                "averageRating": {"$round": ["$averageRating", 2]},
                "_id": 0,
            }
        },
    ]
