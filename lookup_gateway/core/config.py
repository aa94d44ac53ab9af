from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Literal


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_ignore_empty=True)

    # App Settings
    APP_NAME: str = "Lookup Gateway"
    PROJECT_VERSION: str = "1.2.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    ALLOWED_ORIGINS: str = "*"  # Comma-separated string or "*"

    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = False
    RATE_LIMIT_DEFAULT: str = "120/minute"

    # Upstream API
    UPSTREAM_BASE_URL: str
    UPSTREAM_TIMEOUT: float = 30.0
    MEDIA_DOWNLOAD_TIMEOUT: float = 30.0
    MEDIA_MAX_BYTES: int = 10 * 1024 * 1024

    # Blob store
    STORE_BACKEND: Literal["none", "memory", "database", "redis", "s3"] = "memory"
    DATABASE_URL: str | None = None
    REDIS_URL: str | None = None
    REDIS_NAMESPACE: str = "blobs"
    S3_BUCKET: str | None = None
    S3_ENDPOINT_URL: str | None = None
    S3_REGION: str | None = None

    # Cache behaviour
    CACHE_LIST_LIMIT: int = 50
    CACHE_MATCH_MODE: Literal["substring", "exact"] = "substring"
    STATS_LIST_LIMIT: int = 1000
    CLEAR_BATCH_SIZE: int = 100

    # Background persistence
    PERSIST_QUEUE_SIZE: int = 100
    PERSIST_WORKERS: int = 2
    PERSIST_DRAIN_TIMEOUT: float = 10.0

    ADMIN_API_KEY: str | None = None

    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    # Parse ALLOWED_ORIGINS
    @property
    def allowed_origins_list(self) -> List[str]:
        if self.ALLOWED_ORIGINS == "*":
            return ["*"]
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",") if o.strip()]

    @property
    def user_agent(self) -> str:
        return f"{self.APP_NAME.replace(' ', '-')}/{self.PROJECT_VERSION}"

    @model_validator(mode="after")
    def check_store_backend(self) -> "Settings":
        required = {
            "database": ("DATABASE_URL", self.DATABASE_URL),
            "redis": ("REDIS_URL", self.REDIS_URL),
            "s3": ("S3_BUCKET", self.S3_BUCKET),
        }
        if self.STORE_BACKEND in required:
            name, value = required[self.STORE_BACKEND]
            if not value:
                raise ValueError(
                    f"{name} must be set in .env when STORE_BACKEND={self.STORE_BACKEND}"
                )
        return self


settings = Settings()
