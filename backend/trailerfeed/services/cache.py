"""
cache.py

Bounded in-process key/value cache with insertion-order (FIFO) eviction.
Used for resolved trailer embed URLs and enriched movie details.
"""
import logging
from typing import Any, Hashable, Iterator, List, Optional

from cachetools import FIFOCache

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 50


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (str, bytes, list, tuple, dict, set)):
        return len(value) == 0
    return False


class _LoggingFIFOCache(FIFOCache):
    def __init__(self, maxsize: int, name: str):
        super().__init__(maxsize=maxsize)
        self.name = name

    def popitem(self):
        key, value = super().popitem()
        logger.debug(f"[{self.name}] Evicted {key!r} (capacity {int(self.maxsize)})")
        return key, value


class KeyValueCache:
    """Mapping with a hard size bound.

    When full, inserting a new key evicts the oldest-inserted key still
    present. Reads never change eviction order; re-setting an existing key
    moves it to the newest position.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY, name: str = "cache"):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self.name = name
        self._entries = _LoggingFIFOCache(capacity, name)

    def set(self, key: Hashable, value: Any) -> None:
        if _is_blank(key) or _is_blank(value):
            logger.warning(f"[{self.name}] Refusing to cache empty key/value (key={key!r})")
            return
        # Re-insert so iteration order matches eviction order
        self._entries.pop(key, None)
        self._entries[key] = value

    def get(self, key: Hashable, default: Optional[Any] = None) -> Any:
        return self._entries.get(key, default)

    def has(self, key: Hashable) -> bool:
        return key in self._entries

    def clear(self) -> None:
        self._entries = _LoggingFIFOCache(self.capacity, self.name)

    def keys(self) -> List[Hashable]:
        """Keys from oldest to newest."""
        return list(self._entries.keys())

    def __contains__(self, key: Hashable) -> bool:
        return self.has(key)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Hashable]:
        return iter(self.keys())
