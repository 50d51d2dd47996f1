"""
Feed assembly: turns provider lists into a ready-to-display batch.

Process per batch:
1. Pick the candidate pool (search when filtered, otherwise recommendations
   seeded by a random liked movie, padded with trending)
2. Drop movies already seen this session
3. Shuffle and cut to the batch size
4. Enrich each movie (details + trailer) through the movie cache
5. Record newly surfaced movies as seen

Only the pool fetch may fail the batch; per-movie enrichment degrades to the
un-enriched record.
"""
import asyncio
import logging
import random
from typing import Iterable, List, Optional, Set, Tuple

from trailerfeed.schemas import FeedBatch, FeedFilters, Movie
from trailerfeed.services.cache import KeyValueCache
from trailerfeed.services.preferences import PreferenceStore
from trailerfeed.services.tmdb_client import TMDBClient
from trailerfeed.services.trailers import TrailerResolver

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 20
DEFAULT_MIN_POOL_SIZE = 10


def dedup_against_seen(pool: Iterable[Movie], seen: Set[int]) -> List[Movie]:
    """Remove seen ids; a movie listed by several sources keeps its first position."""
    result = []
    kept: Set[int] = set()
    for movie in pool:
        if movie.id in seen or movie.id in kept:
            continue
        kept.add(movie.id)
        result.append(movie)
    return result


def shuffle_movies(pool: List[Movie], rng: random.Random) -> List[Movie]:
    shuffled = list(pool)
    rng.shuffle(shuffled)  # Fisher-Yates
    return shuffled


class FeedAssembler:
    def __init__(
        self,
        provider: TMDBClient,
        preferences: PreferenceStore,
        movie_cache: KeyValueCache,
        trailers: Optional[TrailerResolver] = None,
        rng: Optional[random.Random] = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        min_pool_size: int = DEFAULT_MIN_POOL_SIZE,
        max_concurrency: int = 10,
    ):
        self.provider = provider
        self.preferences = preferences
        self.movie_cache = movie_cache
        self.trailers = trailers
        self.rng = rng or random.Random()
        self.batch_size = batch_size
        self.min_pool_size = min_pool_size
        self.max_concurrency = max(1, max_concurrency)
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    async def build_pool(self, filters: Optional[FeedFilters] = None) -> Tuple[List[Movie], str]:
        """Fetch the candidate pool and name the source it came from."""
        if filters is not None and not filters.is_empty():
            movies = await self.provider.search_movies(filters)
            return movies, "search"

        pool: List[Movie] = []
        liked = self.preferences.get_liked_movies()
        if liked:
            seed = self.rng.choice(liked)
            pool.extend(await self.provider.fetch_recommendations(seed.movie_id))
            logger.info(f"[Feed] {len(pool)} recommendations seeded by liked movie {seed.movie_id}")

        if len(pool) >= self.min_pool_size:
            return pool, "recommendations"

        used_recommendations = bool(pool)
        pool.extend(await self.provider.fetch_trending())
        if not pool:
            return pool, "empty"
        return pool, "mixed" if used_recommendations else "trending"

    async def _enrich_one(self, movie: Movie, generation: int) -> Movie:
        cached = self.movie_cache.get(movie.id)
        if cached is not None:
            return cached.model_copy(update={"liked": self.preferences.is_liked(movie.id)})

        details, video_key = await asyncio.gather(
            self.provider.fetch_movie_details(movie.id),
            self.provider.fetch_trailer_key(movie.id),
            return_exceptions=True,
        )
        if isinstance(video_key, BaseException):
            logger.warning(f"[Feed] Trailer lookup failed for movie {movie.id}: {video_key}")
            video_key = None

        if isinstance(details, BaseException):
            logger.warning(f"[Feed] Enrichment failed for movie {movie.id}, using partial record: {details}")
            enriched = movie.model_copy(update={"video_key": video_key or movie.video_key})
            details_ok = False
        else:
            enriched = details.model_copy(update={"video_key": video_key})
            details_ok = True

        if generation != self._generation:
            logger.debug(f"[Feed] Dropping stale enrichment for movie {movie.id}")
        else:
            if details_ok:
                self.movie_cache.set(movie.id, enriched.model_copy(update={"liked": False}))
            if self.trailers is not None:
                self.trailers.preload(enriched.video_key)
            await self.preferences.mark_seen(movie.id)

        return enriched.model_copy(update={"liked": self.preferences.is_liked(movie.id)})

    async def enrich(self, movies: List[Movie], generation: Optional[int] = None) -> List[Movie]:
        """Enrich ``movies`` concurrently, preserving order and length."""
        if generation is None:
            generation = self._generation
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def enrich_bounded(movie: Movie) -> Movie:
            async with semaphore:
                try:
                    return await self._enrich_one(movie, generation)
                except Exception as e:
                    logger.error(f"[Feed] Unexpected enrichment error for movie {movie.id}: {e}")
                    return movie.model_copy(update={"liked": self.preferences.is_liked(movie.id)})

        return list(await asyncio.gather(*[enrich_bounded(m) for m in movies]))

    async def load_batch(self, filters: Optional[FeedFilters] = None) -> FeedBatch:
        generation = self._generation
        pool, source = await self.build_pool(filters)
        fresh = dedup_against_seen(pool, self.preferences.get_seen_movies())
        batch = shuffle_movies(fresh, self.rng)[: self.batch_size]
        logger.info(f"[Feed] source={source} pool={len(pool)} unseen={len(fresh)} batch={len(batch)}")

        movies = await self.enrich(batch, generation)
        superseded = generation != self._generation
        if superseded:
            logger.info(f"[Feed] Batch from generation {generation} superseded by {self._generation}")
        return FeedBatch(generation=generation, source=source, movies=movies, superseded=superseded)

    async def refresh(self, filters: Optional[FeedFilters] = None) -> FeedBatch:
        """Forget seen history and caches, then load a fresh batch."""
        self._generation += 1
        logger.info(f"[Feed] Refresh started (generation {self._generation})")
        await self.preferences.clear_seen()
        self.movie_cache.clear()
        if self.trailers is not None:
            self.trailers.video_cache.clear()
        return await self.load_batch(filters)
