class ProviderError(Exception):
    """Base exception for TMDB provider errors."""
    kind = "provider"

class ProviderUnauthorizedError(ProviderError):
    """Raised when TMDB rejects the API key (HTTP 401) or no key is configured."""
    kind = "unauthorized"

class ProviderRequestError(ProviderError):
    """Raised when TMDB answers with a non-2xx status other than 401."""
    kind = "request_failed"

    def __init__(self, status: int, message: str):
        super().__init__(f"TMDB API Error: {status} - {message}")
        self.status = status
        self.message = message

class ProviderNetworkError(ProviderError):
    """Raised when the connection to TMDB fails or times out."""
    kind = "network"

"""
tmdb_client.py

Async TMDB client for the movie feed.
- Batch-source calls (trending, search/discover, details) raise ProviderError.
- Enrichment lookups (trailer, genres, recommendations, genre catalog) are
  soft: they log and return None / [] instead of raising.
- Handles 429 with exponential backoff and Retry-After.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from trailerfeed.schemas import FeedFilters, Genre, Movie
from trailerfeed.services.rate_limit import RateLimitExceeded, with_backoff

TMDB_BASE = "https://api.themoviedb.org/3"
TMDB_IMAGE_BASE = "https://image.tmdb.org/t/p"
POSTER_SIZE = "w500"
BACKDROP_SIZE = "w1280"
VIDEO_SITE = "YouTube"
VIDEO_TYPE_TRAILER = "Trailer"

# Failures the enrichment lookups absorb: provider errors plus payloads of the wrong shape
SOFT_ERRORS = (ProviderError, ValueError, TypeError, AttributeError)

logger = logging.getLogger(__name__)


def image_url(path: Optional[str], size: str = POSTER_SIZE, base_url: str = TMDB_IMAGE_BASE) -> Optional[str]:
    if not path:
        return None
    return f"{base_url.rstrip('/')}/{size}{path}"


def normalize_genres(items: Any) -> List[Genre]:
    """Genre objects from a raw list; entries that do not validate are skipped."""
    genres = []
    for g in items if isinstance(items, list) else []:
        if not isinstance(g, dict) or "id" not in g:
            continue
        try:
            genres.append(Genre(id=g["id"], name=g.get("name") or ""))
        except ValueError:
            logger.debug(f"Skipping malformed genre: {g!r}")
    return genres


def normalize_movie(raw: Dict[str, Any], image_base_url: str = TMDB_IMAGE_BASE) -> Optional[Movie]:
    """Map a raw TMDB movie record onto Movie.

    Records without an id, or whose id or rating do not coerce, are dropped.
    """
    if not isinstance(raw, dict) or raw.get("id") is None:
        return None
    genres = raw.get("genres")
    poster_path = raw.get("poster_path") or None
    backdrop_path = raw.get("backdrop_path") or None
    try:
        return Movie(
            id=int(raw["id"]),
            title=str(raw.get("title") or raw.get("original_title") or ""),
            overview=str(raw.get("overview") or ""),
            vote_average=float(raw.get("vote_average") or 0.0),
            poster_path=poster_path,
            backdrop_path=backdrop_path,
            poster_url=image_url(poster_path, POSTER_SIZE, image_base_url),
            backdrop_url=image_url(backdrop_path, BACKDROP_SIZE, image_base_url),
            video_key=None,
            liked=False,
            # Only the details endpoint carries full genre objects
            genres=normalize_genres(genres) if isinstance(genres, list) else None,
        )
    except (TypeError, ValueError) as e:
        logger.warning(f"Skipping malformed movie record {raw.get('id')!r}: {e}")
        return None


def normalize_results(payload: Any, image_base_url: str = TMDB_IMAGE_BASE) -> List[Movie]:
    results = payload.get("results") if isinstance(payload, dict) else None
    movies = []
    for raw in results if isinstance(results, list) else []:
        movie = normalize_movie(raw, image_base_url)
        if movie is not None:
            movies.append(movie)
    return movies


def _vote(raw: Dict[str, Any]) -> float:
    try:
        return float(raw.get("vote_average") or 0.0)
    except (TypeError, ValueError):
        return 0.0


def select_trailer_key(videos: List[Dict[str, Any]], language: str) -> Optional[str]:
    """Pick a YouTube trailer, preferring one in ``language`` (ISO 639-1)."""
    trailers = [
        v for v in videos
        if isinstance(v, dict) and v.get("site") == VIDEO_SITE and v.get("type") == VIDEO_TYPE_TRAILER and v.get("key")
    ]
    for video in trailers:
        if video.get("iso_639_1") == language:
            return video["key"]
    return trailers[0]["key"] if trailers else None


class TMDBClient:
    def __init__(
        self,
        api_key: str,
        base_url: str = TMDB_BASE,
        language: str = "en-US",
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
        max_retries: int = 4,
        backoff_base_delay: float = 1.0,
        image_base_url: str = TMDB_IMAGE_BASE,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.language = language
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_base_delay = backoff_base_delay
        self.image_base_url = image_base_url
        self._http = http_client
        self._owns_http = http_client is None
        self._genre_catalog: Optional[List[Genre]] = None

    @property
    def language_code(self) -> str:
        return self.language.split("-")[0].lower()

    def _client(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self.timeout)
        return self._http

    async def aclose(self) -> None:
        if self._http is not None and self._owns_http:
            await self._http.aclose()
            self._http = None

    async def _get_json(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        if not self.api_key:
            logger.error("TMDB API key not configured")
            raise ProviderUnauthorizedError("TMDB API key not configured. Set TMDB_API_KEY.")

        url = f"{self.base_url}{endpoint}"
        query = {"api_key": self.api_key, "language": self.language}
        query.update(params or {})

        async def make_request():
            try:
                resp = await self._client().get(url, params=query)
            except httpx.TimeoutException as e:
                logger.error(f"Network timeout calling TMDB {endpoint}: {e}")
                raise ProviderNetworkError("Network timeout connecting to TMDB. Please try again later.") from e
            except httpx.RequestError as e:
                logger.error(f"Network error calling TMDB {endpoint}: {e}")
                raise ProviderNetworkError("Network error connecting to TMDB. Please check your connection.") from e

            if resp.status_code == 429:
                retry_after = resp.headers.get("Retry-After")
                try:
                    retry_after = float(retry_after) if retry_after is not None else None
                except ValueError:
                    retry_after = None
                raise RateLimitExceeded("TMDB rate limit exceeded", service="tmdb_api", retry_after=retry_after)
            if resp.status_code == 401:
                logger.error("TMDB rejected the configured API key")
                raise ProviderUnauthorizedError("Invalid TMDB API key. Please check your environment variables.")
            if not resp.is_success:
                message = _status_message(resp)
                logger.error(f"TMDB API Error ({resp.status_code}) for {endpoint}: {message}")
                raise ProviderRequestError(resp.status_code, message)
            try:
                return resp.json()
            except ValueError as e:
                raise ProviderRequestError(resp.status_code, "Invalid JSON in TMDB response") from e

        try:
            return await with_backoff(
                make_request,
                max_retries=self.max_retries,
                service="tmdb_api",
                base_delay=self.backoff_base_delay,
            )
        except RateLimitExceeded as e:
            raise ProviderRequestError(429, str(e)) from e

    # --- batch sources (raise ProviderError) ---

    async def fetch_trending(self) -> List[Movie]:
        logger.info("Fetching trending movies")
        payload = await self._get_json("/trending/movie/day")
        movies = normalize_results(payload, self.image_base_url)
        logger.info(f"Fetched {len(movies)} trending movies")
        return movies

    async def search_movies(self, filters: FeedFilters) -> List[Movie]:
        """Text search when a query is given, otherwise a discover query.

        ``filters.min_rating`` is on a 0..5 scale and is doubled for TMDB.
        The text search endpoint ignores genre/rating, so those are applied
        locally to its results.
        """
        query = (filters.query or "").strip()
        min_vote = filters.min_rating * 2 if filters.min_rating else None

        if query:
            payload = await self._get_json("/search/movie", {"query": query, "include_adult": "false"})
            raw_results = payload.get("results") if isinstance(payload, dict) else None
            wanted = set(filters.genre_ids)
            kept = []
            for raw in raw_results if isinstance(raw_results, list) else []:
                if not isinstance(raw, dict):
                    continue
                genre_ids = raw.get("genre_ids")
                if wanted and not (isinstance(genre_ids, list) and wanted.issubset(g for g in genre_ids if isinstance(g, int))):
                    continue
                if min_vote is not None and _vote(raw) < min_vote:
                    continue
                kept.append(raw)
            return normalize_results({"results": kept}, self.image_base_url)

        params: Dict[str, Any] = {"sort_by": "popularity.desc", "include_adult": "false"}
        if filters.genre_ids:
            params["with_genres"] = ",".join(str(g) for g in filters.genre_ids)
        if min_vote is not None:
            params["vote_average.gte"] = min_vote
        payload = await self._get_json("/discover/movie", params)
        return normalize_results(payload, self.image_base_url)

    async def fetch_movie_details(self, movie_id: int) -> Movie:
        payload = await self._get_json(f"/movie/{movie_id}")
        movie = normalize_movie(payload, self.image_base_url)
        if movie is None:
            raise ProviderRequestError(200, f"Malformed details payload for movie {movie_id}")
        if movie.genres is None:
            movie = movie.model_copy(update={"genres": []})
        return movie

    # --- enrichment lookups (soft) ---

    async def fetch_trailer_key(self, movie_id: int) -> Optional[str]:
        lang = self.language_code
        try:
            payload = await self._get_json(
                f"/movie/{movie_id}/videos",
                {"include_video_language": f"{lang},en,null"},
            )
            results = payload.get("results") if isinstance(payload, dict) else None
            key = select_trailer_key(results if isinstance(results, list) else [], lang)
        except SOFT_ERRORS as e:
            logger.warning(f"Error fetching trailer for movie {movie_id}: {e}")
            return None
        logger.debug(f"Trailer {'found' if key else 'not found'} for movie {movie_id}")
        return key

    async def fetch_recommendations(self, movie_id: int) -> List[Movie]:
        try:
            payload = await self._get_json(f"/movie/{movie_id}/recommendations")
            return normalize_results(payload, self.image_base_url)
        except SOFT_ERRORS as e:
            logger.warning(f"Error fetching recommendations for movie {movie_id}: {e}")
            return []

    async def fetch_genres(self, movie_id: int) -> List[Genre]:
        try:
            movie = await self.fetch_movie_details(movie_id)
        except SOFT_ERRORS as e:
            logger.warning(f"Error fetching genres for movie {movie_id}: {e}")
            return []
        return list(movie.genres or [])

    async def fetch_genre_catalog(self) -> List[Genre]:
        if self._genre_catalog is not None:
            return list(self._genre_catalog)
        try:
            payload = await self._get_json("/genre/movie/list")
            genres = normalize_genres(payload.get("genres") if isinstance(payload, dict) else None)
        except SOFT_ERRORS as e:
            logger.warning(f"Error fetching genre catalog: {e}")
            return []
        if genres:
            self._genre_catalog = genres
        return list(genres)


def _status_message(resp: httpx.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        return resp.reason_phrase or "Unknown error"
    if isinstance(data, dict) and data.get("status_message"):
        return str(data["status_message"])
    return resp.reason_phrase or "Unknown error"
