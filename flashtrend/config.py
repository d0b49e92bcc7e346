from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    BACKEND_URL: str = "http://localhost:4943"
    BACKEND_TIMEOUT: float = 10.0
    IDENTITY_HEADER: str = "X-Principal"
    APP_ENV: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # Query cache
    CACHE_BACKEND: str = "memory"  # "memory" or "redis"
    REDIS_URL: str = "redis://localhost:6380/0"

    # Sessions: actors (and their cached data) kept per principal
    MAX_SESSIONS: int = 1000

    # Feed
    PAGE_SIZE: int = 10
    MAX_SUMMARY_LENGTH: int = 280

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
