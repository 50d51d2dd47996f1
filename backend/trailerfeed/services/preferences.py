"""
preferences.py

Local-first personalization state: liked movies, seen movies and the sound flag.

The store keeps everything in memory and writes through to a durable
key/value medium (redis in production). The medium is best-effort: if it is
missing, unreachable or holds corrupt JSON, the store keeps working from
memory and never raises to the caller.
"""
import asyncio
import json
import logging
from typing import Any, Callable, Dict, List, Optional, Protocol, Set

from trailerfeed.schemas import LikedMovieRecord, Movie
from trailerfeed.utils.timezone import now_millis

logger = logging.getLogger(__name__)

LIKED_MOVIES_KEY = "liked_movies"
SEEN_MOVIES_KEY = "seen_movies"
SOUND_MUTED_KEY = "sound_muted"


class KeyValueStorage(Protocol):
    async def get(self, key: str) -> Optional[str]: ...

    async def set(self, key: str, value: str) -> None: ...


class MemoryStorage:
    """Process-local storage; contents are lost on restart."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value


class RedisStorage:
    """Redis-backed storage. The client is resolved lazily per event loop."""

    def __init__(self, client_factory: Optional[Callable[[], Any]] = None):
        if client_factory is None:
            from trailerfeed.core.redis_client import get_redis
            client_factory = get_redis
        self._client_factory = client_factory

    async def get(self, key: str) -> Optional[str]:
        return await self._client_factory().get(key)

    async def set(self, key: str, value: str) -> None:
        await self._client_factory().set(key, value)


class PreferenceStore:
    def __init__(self, storage: Optional[KeyValueStorage] = None, namespace: str = "local"):
        self.storage = storage
        self.namespace = namespace
        self._liked: List[LikedMovieRecord] = []
        self._seen: Set[int] = set()
        self._sound_muted = True
        self._lock = asyncio.Lock()

    def _key(self, name: str) -> str:
        return f"prefs:{self.namespace}:{name}"

    # --- durable medium (best-effort) ---

    async def _read_json(self, name: str) -> Any:
        if self.storage is None:
            return None
        try:
            raw = await self.storage.get(self._key(name))
        except Exception as e:
            logger.warning(f"Preference storage unavailable reading {name}: {e}")
            return None
        if not raw:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            logger.warning(f"Ignoring corrupt preference value for {name}")
            return None

    async def _write_json(self, name: str, value: Any) -> None:
        if self.storage is None:
            return
        try:
            await self.storage.set(self._key(name), json.dumps(value))
        except Exception as e:
            logger.warning(f"Preference storage unavailable writing {name}: {e}")

    async def load(self) -> None:
        """Hydrate the in-memory state from storage; bad or missing values fall back to defaults."""
        liked_raw = await self._read_json(LIKED_MOVIES_KEY)
        liked: List[LikedMovieRecord] = []
        known: Set[int] = set()
        if isinstance(liked_raw, list):
            for item in liked_raw:
                try:
                    record = LikedMovieRecord.model_validate(item)
                except Exception:
                    logger.debug(f"Skipping malformed liked record: {item!r}")
                    continue
                if record.movie_id not in known:
                    known.add(record.movie_id)
                    liked.append(record)

        seen_raw = await self._read_json(SEEN_MOVIES_KEY)
        seen = {i for i in seen_raw if isinstance(i, int) and not isinstance(i, bool)} if isinstance(seen_raw, list) else set()

        muted_raw = await self._read_json(SOUND_MUTED_KEY)
        muted = muted_raw if isinstance(muted_raw, bool) else True

        async with self._lock:
            self._liked = liked
            self._seen = seen
            self._sound_muted = muted
        logger.info(f"Loaded preferences for '{self.namespace}': {len(liked)} liked, {len(seen)} seen")

    # --- liked movies ---

    def get_liked_movies(self) -> List[LikedMovieRecord]:
        return list(self._liked)

    def is_liked(self, movie_id: int) -> bool:
        return any(r.movie_id == movie_id for r in self._liked)

    async def toggle_liked(self, movie: Movie) -> bool:
        """Flip the liked state of ``movie`` and return the new state."""
        async with self._lock:
            if self.is_liked(movie.id):
                self._liked = [r for r in self._liked if r.movie_id != movie.id]
                liked = False
            else:
                self._liked.append(LikedMovieRecord(movie_id=movie.id, title=movie.title, liked_at=now_millis()))
                liked = True
            await self._write_json(LIKED_MOVIES_KEY, [r.model_dump() for r in self._liked])
        return liked

    # --- seen movies ---

    def get_seen_movies(self) -> Set[int]:
        return set(self._seen)

    def is_seen(self, movie_id: int) -> bool:
        return movie_id in self._seen

    async def mark_seen(self, movie_id: int) -> None:
        async with self._lock:
            if movie_id in self._seen:
                return
            self._seen.add(movie_id)
            await self._write_json(SEEN_MOVIES_KEY, sorted(self._seen))

    async def clear_seen(self) -> None:
        async with self._lock:
            self._seen.clear()
            await self._write_json(SEEN_MOVIES_KEY, [])

    # --- sound ---

    def get_sound_muted(self) -> bool:
        return self._sound_muted

    async def set_sound_muted(self, muted: bool) -> None:
        async with self._lock:
            self._sound_muted = bool(muted)
            await self._write_json(SOUND_MUTED_KEY, self._sound_muted)
