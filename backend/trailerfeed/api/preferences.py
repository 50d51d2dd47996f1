"""
preferences.py

Endpoints for the local preference store (likes and sound flag).
"""
from fastapi import APIRouter, Depends
from typing import List

from trailerfeed.dependencies import Services, get_services
from trailerfeed.schemas import LikedMovieRecord, LikeToggleResult, Movie, PreferencesSchema, SoundUpdate

router = APIRouter()


@router.get("", response_model=PreferencesSchema)
async def get_preferences(services: Services = Depends(get_services)):
    prefs = services.preferences
    return PreferencesSchema(
        liked=prefs.get_liked_movies(),
        seen_count=len(prefs.get_seen_movies()),
        sound_muted=prefs.get_sound_muted(),
    )


@router.get("/liked", response_model=List[LikedMovieRecord])
async def get_liked(services: Services = Depends(get_services)):
    return services.preferences.get_liked_movies()


@router.post("/liked/{movie_id}", response_model=LikeToggleResult)
async def toggle_liked(movie_id: int, services: Services = Depends(get_services)):
    """Like or unlike a movie. Liking records the title from the movie cache, or TMDB on a miss."""
    if services.preferences.is_liked(movie_id):
        movie = Movie(id=movie_id, title="")
    else:
        movie = services.movie_cache.get(movie_id) or await services.provider.fetch_movie_details(movie_id)
    liked = await services.preferences.toggle_liked(movie)
    return LikeToggleResult(movie_id=movie_id, liked=liked)


@router.put("/sound", response_model=PreferencesSchema)
async def set_sound(payload: SoundUpdate, services: Services = Depends(get_services)):
    await services.preferences.set_sound_muted(payload.muted)
    return await get_preferences(services)
