# mflix_api/models/movie.py

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# --- Nested blocks ---
class Awards(BaseModel):
    wins: Optional[int] = None
    nominations: Optional[int] = None
    text: Optional[str] = None


class Imdb(BaseModel):
    rating: Optional[float] = None
    votes: Optional[int] = None
    id: Optional[int] = None


class TomatoesRating(BaseModel):
    rating: Optional[float] = None
    numReviews: Optional[int] = None
    meter: Optional[int] = None


class Tomatoes(BaseModel):
    viewer: Optional[TomatoesRating] = None
    critic: Optional[TomatoesRating] = None
    fresh: Optional[int] = None
    rotten: Optional[int] = None
    production: Optional[str] = None
    lastUpdated: Optional[datetime] = None


# --- Read Model (OpenAPI documentation of stored movies) ---
class MovieDocument(BaseModel):
    """
    Shape of a movie as usually found in sample_mflix.

    Only used to document responses. Stored documents are schema-flexible and
    frequently deviate from these types (string years, empty ratings), so
    responses are never validated against it.
    """
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: Optional[str] = Field(None, alias="_id", description="24-character hex ObjectId.")
    title: Optional[str] = None
    year: Optional[int] = Field(None, description="Release year.")
    plot: Optional[str] = None
    fullplot: Optional[str] = None
    released: Optional[datetime] = None
    runtime: Optional[int] = Field(None, description="Runtime in minutes.")
    poster: Optional[str] = Field(None, description="Poster image URL.")
    genres: Optional[List[str]] = None
    directors: Optional[List[str]] = None
    writers: Optional[List[str]] = None
    cast: Optional[List[str]] = None
    countries: Optional[List[str]] = None
    languages: Optional[List[str]] = None
    rated: Optional[str] = None
    awards: Optional[Awards] = None
    imdb: Optional[Imdb] = None
    tomatoes: Optional[Tomatoes] = None
    metacritic: Optional[int] = None
    type: Optional[str] = None


# --- Models for API Requests ---
# Only `title` is checked; every other key is stored exactly as sent.
class MovieCreate(BaseModel):
    """Request body for creating a movie. Only the title is required."""
    model_config = ConfigDict(extra="allow")

    title: str = Field(..., min_length=1, description="Movie title.")

    def to_document(self) -> Dict[str, Any]:
        return {"title": self.title, **(self.model_extra or {})}


class MovieUpdate(BaseModel):
    """Request body for a partial update; any field may be sent."""
    model_config = ConfigDict(extra="allow")

    title: Optional[str] = Field(None, description="New title, if changing it.")

    def to_document(self) -> Dict[str, Any]:
        document = dict(self.model_extra or {})
        if "title" in self.model_fields_set:
            document["title"] = self.title
        return document


class BatchUpdateRequest(BaseModel):
    filter: Optional[Dict[str, Any]] = Field(None, description="MongoDB filter selecting the movies to update.")
    update: Optional[Dict[str, Any]] = Field(None, description="Fields to $set on every matched movie.")


class BatchDeleteRequest(BaseModel):
    filter: Optional[Dict[str, Any]] = Field(
        None,
        description="MongoDB filter; cannot be empty, to prevent accidental deletion of all documents.",
    )


# --- Models for API Responses ---
class VectorSearchResult(BaseModel):
    id: str = Field(..., alias="_id")
    title: str = ""
    plot: Optional[str] = None
    poster: Optional[str] = None
    year: Optional[int] = None
    genres: List[str] = Field(default_factory=list)
    directors: List[str] = Field(default_factory=list)
    cast: List[str] = Field(default_factory=list)
    score: float = 0.0

    model_config = ConfigDict(populate_by_name=True)


class CommentInfo(BaseModel):
    id: Optional[str] = Field(None, alias="_id")
    userName: Optional[str] = None
    userEmail: Optional[str] = None
    text: Optional[str] = None
    date: Optional[datetime] = None


class MovieWithComments(BaseModel):
    id: str = Field(..., alias="_id")
    title: Optional[str] = None
    year: Optional[int] = None
    genres: Optional[List[str]] = None
    imdbRating: Optional[float] = None
    recentComments: List[CommentInfo] = Field(default_factory=list)
    totalComments: int = 0


class YearStatistics(BaseModel):
    year: int
    movieCount: int
    averageRating: Optional[float] = None
    highestRating: Optional[float] = None
    lowestRating: Optional[float] = None
    totalVotes: Optional[int] = None


class DirectorStatistics(BaseModel):
    director: str
    movieCount: int
    averageRating: Optional[float] = None


class SearchMoviesResult(BaseModel):
    movies: List[Dict[str, Any]] = Field(default_factory=list)
    totalCount: int = 0
