# Typed, normalized request parameters
# mflix_api/models/query.py

from enum import Enum
from typing import Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class SearchOperator(str, Enum):
    """Boolean clause types of an Atlas Search compound query."""
    MUST = "must"
    SHOULD = "should"
    MUST_NOT = "mustNot"
    FILTER = "filter"


class MovieListParams(BaseModel):
    """Normalized parameters of GET /api/movies."""
    q: Optional[str] = None
    genre: Optional[str] = None
    year: Optional[int] = None
    min_rating: Optional[float] = None
    max_rating: Optional[float] = None
    limit: int = Field(20, ge=1, le=100)
    skip: int = Field(0, ge=0)
    sort_by: str = "title"
    sort_order: SortOrder = SortOrder.ASC


class MovieSearchParams(BaseModel):
    """Normalized parameters of GET /api/movies/search."""
    plot: Optional[str] = None
    fullplot: Optional[str] = None
    directors: Optional[str] = None
    writers: Optional[str] = None
    cast: Optional[str] = None
    limit: int = Field(20, ge=1, le=100)
    skip: int = Field(0, ge=0)
    search_operator: SearchOperator = SearchOperator.MUST


class VectorSearchParams(BaseModel):
    q: str = Field(..., min_length=1)
    limit: int = Field(10, ge=1, le=50)


class CommentReportParams(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    limit: int = Field(10, ge=1, le=50)
    movie_id: Optional[ObjectId] = None


class DirectorReportParams(BaseModel):
    limit: int = Field(20, ge=1, le=100)
