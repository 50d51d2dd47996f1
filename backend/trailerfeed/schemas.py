"""
schemas.py

Pydantic schemas for movies, feed batches, preferences, favorites and comments.
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Literal
import datetime


class Genre(BaseModel):
    id: int
    name: str


class Movie(BaseModel):
    """A catalog item as shown in the feed.

    ``video_key`` and ``genres`` are filled in lazily by feed enrichment;
    ``genres is None`` means "not resolved yet". ``liked`` is derived from the
    preference store whenever a movie is handed out and is never trusted from
    a cached copy.
    """
    id: int
    title: str
    overview: str = ""
    vote_average: float = 0.0
    poster_path: Optional[str] = None
    backdrop_path: Optional[str] = None
    # Absolute image URLs built from the paths above
    poster_url: Optional[str] = None
    backdrop_url: Optional[str] = None
    video_key: Optional[str] = None
    liked: bool = False
    genres: Optional[List[Genre]] = None


class LikedMovieRecord(BaseModel):
    movie_id: int
    title: str
    liked_at: int  # epoch milliseconds


class FeedFilters(BaseModel):
    query: Optional[str] = None
    genre_ids: List[int] = Field(default_factory=list)
    # 0..5 stars as chosen in the UI; the provider scale is 0..10
    min_rating: Optional[float] = Field(default=None, ge=0, le=5)

    def is_empty(self) -> bool:
        has_query = bool(self.query and self.query.strip())
        has_rating = bool(self.min_rating and self.min_rating > 0)
        return not (has_query or self.genre_ids or has_rating)


FeedSource = Literal["search", "recommendations", "trending", "mixed", "empty"]


class FeedBatch(BaseModel):
    generation: int
    source: FeedSource
    movies: List[Movie] = Field(default_factory=list)
    # True when a newer refresh started while this batch was loading
    superseded: bool = False


class TrailerSchema(BaseModel):
    movie_id: int
    video_key: Optional[str]
    embed_url: Optional[str]


class PreferencesSchema(BaseModel):
    liked: List[LikedMovieRecord]
    seen_count: int
    sound_muted: bool


class SoundUpdate(BaseModel):
    muted: bool


class LikeToggleResult(BaseModel):
    movie_id: int
    liked: bool


class UserSchema(BaseModel):
    id: int
    telegram_id: str
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    created_at: datetime.datetime
    model_config = ConfigDict(from_attributes=True)


class FavoriteSchema(BaseModel):
    movie_id: int
    title: str
    poster_path: Optional[str] = None
    poster_url: Optional[str] = None
    vote_average: float = 0.0
    created_at: datetime.datetime
    model_config = ConfigDict(from_attributes=True)


class CommentSchema(BaseModel):
    id: int
    movie_id: int
    user_id: str
    text: str
    rating: int
    likes: List[str] = Field(default_factory=list)
    created_at: datetime.datetime
    model_config = ConfigDict(from_attributes=True)


# Payloads
class CommentCreate(BaseModel):
    movie_id: int
    user_id: str = Field(min_length=1)
    text: str = Field(min_length=1, max_length=1000)
    rating: int = Field(ge=1, le=10)


class CommentLike(BaseModel):
    user_id: str = Field(min_length=1)
