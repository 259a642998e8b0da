
import os
from pydantic_settings import BaseSettings



class Settings(BaseSettings):
    redis_url: str = os.getenv("REDIS_URL", "redis://redis:6379/0")

    # AniList GraphQL endpoint
    anilist_api_url: str = os.getenv("ANILIST_API_URL", "https://graphql.anilist.co")
    anilist_timeout_seconds: int = int(os.getenv("ANILIST_TIMEOUT_SECONDS", "10"))
    anilist_max_retries: int = int(os.getenv("ANILIST_MAX_RETRIES", "4"))
    # Page sizes (AniList caps perPage at 50 and perChunk at 500)
    anilist_following_per_page: int = int(os.getenv("ANILIST_FOLLOWING_PER_PAGE", "50"))
    anilist_chunk_size: int = int(os.getenv("ANILIST_CHUNK_SIZE", "500"))
    # Safety stop for paging loops
    anilist_max_pages: int = int(os.getenv("ANILIST_MAX_PAGES", "200"))
    # Aliased sub-queries per batch request; larger batches hit the query complexity limit
    anilist_batch_size: int = int(os.getenv("ANILIST_BATCH_SIZE", "50"))

    # Social graph engine
    # Batch strategy: aliased | concurrent
    social_batch_strategy: str = os.getenv("SOCIAL_BATCH_STRATEGY", "aliased")
    social_fetch_concurrency: int = int(os.getenv("SOCIAL_FETCH_CONCURRENCY", "8"))
    social_media_type: str = os.getenv("SOCIAL_MEDIA_TYPE", "ANIME")
    # true: a failed follower fetch resets to NOT_LOADED; false: it sticks as FAILED
    social_retry_failed_followers: bool = os.getenv("SOCIAL_RETRY_FAILED_FOLLOWERS", "true").lower() == "true"

    rate_limit_enabled: bool = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
    metrics_enabled: bool = os.getenv("METRICS_ENABLED", "false").lower() == "true"
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

settings = Settings()
