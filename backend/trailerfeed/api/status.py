from fastapi import APIRouter, Depends

from trailerfeed.dependencies import Services, get_services

router = APIRouter()

@router.get("")
async def get_status(services: Services = Depends(get_services)):
    """Liveness plus cache occupancy."""
    return {
        "status": "ok",
        "feed_generation": services.feed.generation,
        "movie_cache": {"size": len(services.movie_cache), "capacity": services.movie_cache.capacity},
        "video_cache": {"size": len(services.video_cache), "capacity": services.video_cache.capacity},
    }
