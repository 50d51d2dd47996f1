"""
trailers.py

Turns provider video keys into playable embed URLs and keeps them in the
video cache so the feed can start playback without another round trip.
"""
import logging
from typing import Optional
from urllib.parse import urlencode

from trailerfeed.services.cache import KeyValueCache

logger = logging.getLogger(__name__)

EMBED_BASE = "https://www.youtube.com/embed"
EMBED_PARAMS = {"autoplay": 1, "controls": 0, "modestbranding": 1}


def build_embed_url(video_key: str) -> str:
    return f"{EMBED_BASE}/{video_key}?{urlencode(EMBED_PARAMS)}"


def with_sound(url: str, muted: bool) -> str:
    return f"{url}&mute={1 if muted else 0}"


class TrailerResolver:
    def __init__(self, video_cache: KeyValueCache):
        self.video_cache = video_cache

    def preload(self, video_key: Optional[str]) -> None:
        """Cache the embed URL for ``video_key``; an existing entry is kept as is."""
        if not video_key or self.video_cache.has(video_key):
            return
        self.video_cache.set(video_key, build_embed_url(video_key))

    def embed_url(self, video_key: Optional[str], muted: bool = True) -> Optional[str]:
        if not video_key:
            return None
        url = self.video_cache.get(video_key)
        if url is None:
            url = build_embed_url(video_key)
            self.video_cache.set(video_key, url)
        return with_sound(url, muted)
