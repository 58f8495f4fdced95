from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Type inference
    TYPE_SAMPLE_ROWS: int = 10
    SMART_TYPE_THRESHOLD: float = 0.5

    # Data quality
    OUTLIER_MIN_VALUES: int = 4
    IQR_MULTIPLIER: float = 1.5

    # Pivot / display
    PIVOT_DECIMALS: int = 2
    PREVIEW_ROWS: int = 5

    # Anonymization
    REDACTED_MARKER: str = "[REDACTED]"

    # Workspace memo
    CACHE_MAX_ENTRIES: int = 128

    # HTTP surface
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str | None = None
    LOG_DIR: str = "logs"
    DEBUG: bool = False

    model_config = SettingsConfigDict(env_prefix="GRIDSIGHT_", env_file=".env", extra="ignore")


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
