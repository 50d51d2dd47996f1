"""
dependencies.py

Process-scoped services, built once by the application entry point and
handed to routers through FastAPI dependencies.
"""
import logging
import random
from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from trailerfeed.core.config import Settings
from trailerfeed.services.cache import KeyValueCache
from trailerfeed.services.feed import FeedAssembler
from trailerfeed.services.preferences import MemoryStorage, PreferenceStore, RedisStorage
from trailerfeed.services.tmdb_client import TMDBClient
from trailerfeed.services.trailers import TrailerResolver

logger = logging.getLogger(__name__)


@dataclass
class Services:
    provider: TMDBClient
    preferences: PreferenceStore
    movie_cache: KeyValueCache
    video_cache: KeyValueCache
    trailers: TrailerResolver
    feed: FeedAssembler

    async def startup(self) -> None:
        await self.preferences.load()

    async def shutdown(self) -> None:
        await self.provider.aclose()
        if isinstance(self.preferences.storage, RedisStorage):
            from trailerfeed.core.redis_client import close_redis
            await close_redis()


def build_services(
    settings: Settings,
    provider: Optional[TMDBClient] = None,
    preferences: Optional[PreferenceStore] = None,
    rng: Optional[random.Random] = None,
) -> Services:
    if provider is None:
        provider = TMDBClient(
            api_key=settings.tmdb_api_key,
            base_url=settings.tmdb_base_url,
            language=settings.tmdb_language,
            timeout=settings.tmdb_timeout_seconds,
            max_retries=settings.tmdb_max_retries,
            image_base_url=settings.tmdb_image_base_url,
        )
    if preferences is None:
        storage = RedisStorage() if settings.redis_enabled else MemoryStorage()
        preferences = PreferenceStore(storage, namespace=settings.preferences_namespace)

    movie_cache = KeyValueCache(settings.cache_capacity, name="movie_cache")
    video_cache = KeyValueCache(settings.cache_capacity, name="video_cache")
    trailers = TrailerResolver(video_cache)
    feed = FeedAssembler(
        provider,
        preferences,
        movie_cache,
        trailers=trailers,
        rng=rng or random.SystemRandom(),
        batch_size=settings.feed_batch_size,
        min_pool_size=settings.feed_min_pool_size,
        max_concurrency=settings.feed_max_concurrency,
    )
    return Services(
        provider=provider,
        preferences=preferences,
        movie_cache=movie_cache,
        video_cache=video_cache,
        trailers=trailers,
        feed=feed,
    )


def get_services(request: Request) -> Services:
    return request.app.state.services
