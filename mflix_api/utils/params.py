# Request parameter normalization
# mflix_api/utils/params.py

import logging
import math
import re
from typing import Any, Dict, List, Optional

from bson import ObjectId

from mflix_api.core.errors import APIError, InvalidObjectIdError
from mflix_api.models.query import (
    CommentReportParams,
    DirectorReportParams,
    MovieListParams,
    MovieSearchParams,
    SearchOperator,
    SortOrder,
    VectorSearchParams,
)

logger = logging.getLogger(__name__)

# --- Per-endpoint pagination bounds ---
LIST_LIMIT_DEFAULT, LIST_LIMIT_MAX = 20, 100
SEARCH_LIMIT_DEFAULT, SEARCH_LIMIT_MAX = 20, 100
VECTOR_LIMIT_DEFAULT, VECTOR_LIMIT_MAX = 10, 50
COMMENTS_LIMIT_DEFAULT, COMMENTS_LIMIT_MAX = 10, 50
DIRECTORS_LIMIT_DEFAULT, DIRECTORS_LIMIT_MAX = 20, 100

VALID_SEARCH_OPERATORS = [op.value for op in SearchOperator]

# Optional sign and ASCII digits only.
_INT_RE = re.compile(r"[+-]?[0-9]+")


# --- Scalars ---

def parse_int(raw: Optional[str]) -> Optional[int]:
    """Parses a base-10 integer, returning None for absent or malformed input."""
    if raw is None or not _INT_RE.fullmatch(str(raw)):
        return None
    return int(raw)


def parse_float(raw: Optional[str]) -> Optional[float]:
    """Parses a finite float, returning None for absent, malformed, NaN or infinite input."""
    if raw is None:
        return None
    try:
        value = float(str(raw).strip())
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def clean_text(raw: Optional[str]) -> Optional[str]:
    """Strips whitespace; empty strings count as absent."""
    if raw is None:
        return None
    text = raw.strip()
    return text or None


# --- Pagination Helpers ---

def parse_limit(raw: Optional[str], default: int, maximum: int) -> int:
    """
    Parses a page size and clamps it into [1, maximum].

    Args:
        raw: Raw query-string value, possibly None or garbage.
        default: Used when raw is absent or not an integer.
        maximum: Endpoint-specific ceiling.

    Returns:
        The effective limit. Out-of-range values snap to the nearest bound.
    """
    value = parse_int(raw)
    if value is None:
        return default
    return min(max(value, 1), maximum)


def parse_skip(raw: Optional[str]) -> int:
    """Parses an offset; malformed input gives 0 and negatives clamp to 0."""
    value = parse_int(raw)
    if value is None:
        return 0
    return max(value, 0)


# --- Enums ---

def parse_sort_order(raw: Optional[str]) -> SortOrder:
    """Anything other than 'desc' sorts ascending."""
    return SortOrder.DESC if raw == SortOrder.DESC.value else SortOrder.ASC


def parse_search_operator(raw: Optional[str]) -> SearchOperator:
    """
    Validates the compound-search operator.

    Raises:
        APIError: 400 INVALID_SEARCH_OPERATOR for any value outside the allow-list.
    """
    if raw is None:
        return SearchOperator.MUST
    try:
        return SearchOperator(raw)
    except ValueError:
        raise APIError(
            f"Invalid search_operator '{raw}'. Must be one of: {', '.join(VALID_SEARCH_OPERATORS)}",
            "INVALID_SEARCH_OPERATOR",
        )


# --- Identifiers ---

def parse_object_id(raw: Any) -> ObjectId:
    """
    Converts a client-supplied id into an ObjectId.

    Raises:
        InvalidObjectIdError: If the value is not a valid ObjectId.
    """
    if isinstance(raw, ObjectId):
        return raw
    if isinstance(raw, str) and ObjectId.is_valid(raw):
        return ObjectId(raw)
    logger.debug(f"Rejected invalid ObjectId: {raw!r}")
    raise InvalidObjectIdError()


def convert_id_filter(filter_doc: Dict[str, Any]) -> Dict[str, Any]:
    """
    Returns a copy of a client filter with its _id criteria converted to ObjectIds.

    Supports a bare id string, {"$in": [...]} and {"$nin": [...]}. Every entry is
    validated before anything is returned, so one malformed id rejects the whole
    filter and no partial batch can be executed.

    Raises:
        InvalidObjectIdError: On the first malformed id, with the offending value in details.
    """
    processed = dict(filter_doc)
    id_criteria = filter_doc.get("_id")
    if id_criteria is None:
        return processed

    if isinstance(id_criteria, str):
        processed["_id"] = _convert_one(id_criteria)
    elif isinstance(id_criteria, dict):
        converted = dict(id_criteria)
        for operator in ("$in", "$nin"):
            ids = id_criteria.get(operator)
            if isinstance(ids, list):
                converted[operator] = _convert_many(ids)
        processed["_id"] = converted
    return processed


def _convert_one(raw: Any) -> ObjectId:
    try:
        return parse_object_id(raw)
    except InvalidObjectIdError:
        raise InvalidObjectIdError(f"Invalid ObjectId: {raw}", details=raw)


def _convert_many(raw_ids: List[Any]) -> List[ObjectId]:
    return [_convert_one(raw) for raw in raw_ids]


# --- Endpoint parameter records ---

def normalize_list_params(
    q: Optional[str] = None,
    genre: Optional[str] = None,
    year: Optional[str] = None,
    min_rating: Optional[str] = None,
    max_rating: Optional[str] = None,
    limit: Optional[str] = None,
    skip: Optional[str] = None,
    sort_by: Optional[str] = None,
    sort_order: Optional[str] = None,
) -> MovieListParams:
    return MovieListParams(
        q=clean_text(q),
        genre=clean_text(genre),
        year=parse_int(year),
        min_rating=parse_float(min_rating),
        max_rating=parse_float(max_rating),
        limit=parse_limit(limit, LIST_LIMIT_DEFAULT, LIST_LIMIT_MAX),
        skip=parse_skip(skip),
        sort_by=clean_text(sort_by) or "title",
        sort_order=parse_sort_order(sort_order),
    )


def normalize_search_params(
    plot: Optional[str] = None,
    fullplot: Optional[str] = None,
    directors: Optional[str] = None,
    writers: Optional[str] = None,
    cast: Optional[str] = None,
    limit: Optional[str] = None,
    skip: Optional[str] = None,
    search_operator: Optional[str] = None,
) -> MovieSearchParams:
    # operator is validated first so a bad operator wins over missing fields
    operator = parse_search_operator(search_operator)
    return MovieSearchParams(
        plot=clean_text(plot),
        fullplot=clean_text(fullplot),
        directors=clean_text(directors),
        writers=clean_text(writers),
        cast=clean_text(cast),
        limit=parse_limit(limit, SEARCH_LIMIT_DEFAULT, SEARCH_LIMIT_MAX),
        skip=parse_skip(skip),
        search_operator=operator,
    )


def normalize_vector_search_params(q: Optional[str] = None, limit: Optional[str] = None) -> VectorSearchParams:
    query = clean_text(q)
    if query is None:
        raise APIError("Search query is required", "MISSING_QUERY_PARAMETER")
    return VectorSearchParams(
        q=query,
        limit=parse_limit(limit, VECTOR_LIMIT_DEFAULT, VECTOR_LIMIT_MAX),
    )


def normalize_comment_report_params(limit: Optional[str] = None, movie_id: Optional[str] = None) -> CommentReportParams:
    return CommentReportParams(
        limit=parse_limit(limit, COMMENTS_LIMIT_DEFAULT, COMMENTS_LIMIT_MAX),
        movie_id=parse_object_id(movie_id) if movie_id else None,
    )


def normalize_director_report_params(limit: Optional[str] = None) -> DirectorReportParams:
    return DirectorReportParams(
        limit=parse_limit(limit, DIRECTORS_LIMIT_DEFAULT, DIRECTORS_LIMIT_MAX),
    )


def genre_pattern(genre: str) -> str:
    """Case-insensitive substring pattern for a genre; regex metacharacters match literally."""
    return re.escape(genre)
