"""
feed.py - Movie feed endpoints
"""
from fastapi import APIRouter, Depends, Query
from typing import List, Optional
import logging

from trailerfeed.dependencies import Services, get_services
from trailerfeed.schemas import FeedBatch, FeedFilters, Genre, TrailerSchema

logger = logging.getLogger(__name__)
router = APIRouter()


def _filters(
    query: Optional[str] = None,
    genre_ids: List[int] = Query(default=[]),
    min_rating: Optional[float] = Query(default=None, ge=0, le=5),
) -> FeedFilters:
    return FeedFilters(query=query, genre_ids=genre_ids, min_rating=min_rating)


@router.get("/feed", response_model=FeedBatch)
async def get_feed(filters: FeedFilters = Depends(_filters), services: Services = Depends(get_services)):
    """Next batch of unseen movies. An empty batch means there is nothing new to show."""
    return await services.feed.load_batch(filters)


@router.post("/feed/refresh", response_model=FeedBatch)
async def refresh_feed(filters: FeedFilters = Depends(_filters), services: Services = Depends(get_services)):
    """Clear seen history and caches, then load a fresh batch."""
    return await services.feed.refresh(filters)


@router.get("/genres", response_model=List[Genre])
async def get_genres(services: Services = Depends(get_services)):
    return await services.provider.fetch_genre_catalog()


@router.get("/movies/{movie_id}/trailer", response_model=TrailerSchema)
async def get_trailer(movie_id: int, services: Services = Depends(get_services)):
    cached = services.movie_cache.get(movie_id)
    video_key = cached.video_key if cached is not None else await services.provider.fetch_trailer_key(movie_id)
    embed_url = services.trailers.embed_url(video_key, muted=services.preferences.get_sound_muted())
    return TrailerSchema(movie_id=movie_id, video_key=video_key, embed_url=embed_url)


@router.get("/movies/{movie_id}/genres", response_model=List[Genre])
async def get_movie_genres(movie_id: int, services: Services = Depends(get_services)):
    cached = services.movie_cache.get(movie_id)
    if cached is not None and cached.genres is not None:
        return cached.genres
    return await services.provider.fetch_genres(movie_id)
