import os
from pydantic_settings import BaseSettings



class Settings(BaseSettings):
    # TMDB provider
    tmdb_api_key: str = os.getenv("TMDB_API_KEY", "")
    tmdb_base_url: str = os.getenv("TMDB_BASE_URL", "https://api.themoviedb.org/3")
    tmdb_image_base_url: str = os.getenv("TMDB_IMAGE_BASE_URL", "https://image.tmdb.org/t/p")
    # Locale sent with every request; the language part also drives trailer selection
    tmdb_language: str = os.getenv("TMDB_LANGUAGE", "en-US")
    tmdb_timeout_seconds: float = float(os.getenv("TMDB_TIMEOUT_SECONDS", "10"))
    tmdb_max_retries: int = int(os.getenv("TMDB_MAX_RETRIES", "4"))

    # Preference storage (redis, best-effort)
    redis_url: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    redis_enabled: bool = os.getenv("REDIS_ENABLED", "true").lower() == "true"
    preferences_namespace: str = os.getenv("PREFERENCES_NAMESPACE", "local")

    # Favorites / comments
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./trailerfeed.db")

    # Feed assembly
    feed_batch_size: int = int(os.getenv("FEED_BATCH_SIZE", "20"))
    feed_min_pool_size: int = int(os.getenv("FEED_MIN_POOL_SIZE", "10"))
    feed_max_concurrency: int = int(os.getenv("FEED_MAX_CONCURRENCY", "10"))
    cache_capacity: int = int(os.getenv("CACHE_CAPACITY", "50"))

    log_level: str = os.getenv("LOG_LEVEL", "INFO")

settings = Settings()
