from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    mongodb_uri: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection string",
        alias="MONGODB_URI",
    )
    mongodb_db_name: str = Field(
        default="parrot_progress",
        description="Name of the MongoDB database",
        alias="MONGODB_DB_NAME",
    )
    mongodb_timeout_ms: int = Field(
        default=5000,
        description="Server selection timeout applied to every MongoDB call",
        alias="MONGODB_TIMEOUT_MS",
    )
    progression_collection: str = "user_progression"
    ticket_collection: str = "gacha_tickets"
    catalog_collection: str = "parrots"
    ownership_collection: str = "user_parrots"
    history_collection: str = "gacha_history"
    xp_history_collection: str = "user_experience"
    diary_reward_collection: str = "diary_rewards"
    streak_collection: str = "user_streaks"

    allowed_origins: List[str] = Field(
        default_factory=lambda: ["http://localhost:3000"],
        description="Origins allowed to access the API",
        alias="ALLOWED_ORIGINS",
    )
    jwt_secret: str = Field(
        default="dev-secret-change-me",
        description="Secret used to verify bearer tokens issued by the auth service",
        alias="JWT_SECRET",
    )
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 60 * 24
    log_level: str = "INFO"

    # Reward curve
    xp_per_char: int = Field(default=2, ge=0)
    max_xp_per_entry: int = Field(default=600, ge=0)
    chars_per_ticket: int = Field(default=100, ge=1)
    max_tickets_per_entry: int = Field(default=5, ge=0)

    # Gacha
    max_draws_per_redemption: int = Field(default=50, ge=1)
    initial_ticket_count: int = Field(default=5, ge=0)
    weighted_draws: bool = Field(
        default=False,
        description="Bias draws by each collectible's display weight instead of drawing uniformly",
    )

    # Streaks
    streak_utc_offset_hours: int = Field(
        default=9,
        ge=-12,
        le=14,
        description="UTC offset of the calendar day used for streak counting",
    )

    # Store retries
    persistence_retry_attempts: int = Field(default=3, ge=1)
    progression_write_attempts: int = Field(default=5, ge=1)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        env_prefix = "PARROT_"


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()
