from pydantic import Field, AliasChoices, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Any, Optional


class Settings(BaseSettings):
    PROJECT_NAME: str = "GeoQuest Check-In Engine"
    VERSION: str = "0.3.0"
    API_V1_STR: str = "/api/v1"

    # Database
    SQLALCHEMY_DATABASE_URI: Optional[str] = None

    @field_validator("SQLALCHEMY_DATABASE_URI", mode="before")
    @classmethod
    def assemble_db_connection(cls, v: Optional[str]) -> Any:
        if isinstance(v, str) and v:
            return v
        return "sqlite+aiosqlite:///./data/geoquest.db"

    LOG_LEVEL: str = "INFO"
    ENABLE_LATENCY_LOGS: bool = Field(
        default=False,
        validation_alias=AliasChoices("ENABLE_LATENCY_LOGS", "LOG_LATENCY_ENABLED"),
    )

    # Schema is created from metadata; migrations live outside this service
    AUTO_CREATE_SCHEMA: bool = False
    SEED_CATALOG: bool = False

    # Check-in rules
    CHECKIN_RADIUS_KM: float = 0.1
    CHECKIN_WINDOW_MINUTES: int = 60
    RARITY_TIMEZONE: Optional[str] = None  # IANA name, e.g. "Asia/Taipei"
    LEVEL_POINTS_STEP: int = 1000

    # Optimistic concurrency
    PERSISTENCE_MAX_RETRIES: int = 3

    # Reward ledger (mint service)
    REWARD_LEDGER_URL: Optional[str] = None
    REWARD_LEDGER_TIMEOUT_SECONDS: float = 10.0
    REWARD_MAX_ATTEMPTS: int = 5
    REWARD_BATCH_SIZE: int = 20

    ENABLE_SCHEDULER: bool = False
    SCHEDULER_INTERVAL_SECONDS: int = 60

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")


settings = Settings()
