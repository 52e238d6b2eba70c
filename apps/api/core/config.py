"""
Centralized configuration management with validation.

All environment variables are loaded and validated here.
This ensures consistent configuration across the API, the Celery worker
and the adaptation engine.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import Optional
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    """Application settings with validation."""

    # Pydantic v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )

    # Database Configuration
    # DATABASE_URL wins when set (tests and local runs use sqlite).
    DATABASE_URL: Optional[str] = Field(default=None)
    POSTGRES_USER: str = Field(default="postgres")
    POSTGRES_PASSWORD: str = Field(default="postgres")
    POSTGRES_DB: str = Field(default="cyclestride")
    POSTGRES_HOST: str = Field(default="postgres")
    POSTGRES_PORT: int = Field(default=5432)

    # Database Pool Configuration
    DB_POOL_SIZE: int = Field(default=20)
    DB_MAX_OVERFLOW: int = Field(default=10)
    DB_POOL_TIMEOUT: int = Field(default=30)
    DB_POOL_RECYCLE: int = Field(default=3600)  # 1 hour

    # Redis Configuration
    REDIS_URL: str = Field(default="redis://redis:6379/0")

    # Celery Configuration
    CELERY_BROKER_URL: str = Field(default="redis://redis:6379/0")
    CELERY_RESULT_BACKEND: str = Field(default="redis://redis:6379/0")
    # How long we remember that a job id was handed to the broker.
    JOB_TRACKING_TTL_S: int = Field(default=24 * 3600)

    # AI planner (Gemini)
    GOOGLE_API_KEY: Optional[str] = Field(default=None)
    PLANNER_MODEL: str = Field(default="gemini-2.5-flash")
    PLANNER_TIMEOUT_S: int = Field(default=60)

    # Adaptation policy
    ADAPTATION_LOOKBACK_SESSIONS: int = Field(default=7, ge=1)
    ADAPTATION_MIN_QUALIFYING_SESSIONS: int = Field(default=3, ge=1)
    ADAPTATION_OFF_TRACK_THRESHOLD: float = Field(default=0.20, gt=0, le=1)
    ADAPTATION_FORWARD_SESSIONS: int = Field(default=7, ge=1)
    # Both gates ship disabled; recalculation runs freely until product decides otherwise.
    ADAPTATION_COOLDOWN_ENABLED: bool = Field(default=False)
    ADAPTATION_COOLDOWN_DAYS: int = Field(default=7, ge=0)
    ADAPTATION_EARLY_PLAN_EXEMPTION_ENABLED: bool = Field(default=False)
    ADAPTATION_EARLY_PLAN_DAYS: int = Field(default=14, ge=0)

    # Cycle-triggered regeneration
    REGENERATION_WINDOW_DAYS: int = Field(default=28, ge=1)
    CYCLE_PREDICTION_TOLERANCE_DAYS: int = Field(default=2, ge=0)
    CYCLE_LENGTH_MIN_DAYS: int = Field(default=21)
    CYCLE_LENGTH_MAX_DAYS: int = Field(default=45)

    # Session completion: actual vs planned deviation that marks a session modified
    MODIFIED_SESSION_DEVIATION: float = Field(default=0.20, gt=0)

    # API Configuration
    API_HOST: str = Field(default="0.0.0.0")
    API_PORT: int = Field(default=8000)

    # Logging Configuration
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FORMAT: str = Field(default="json")  # json or text

    # Environment
    ENVIRONMENT: str = Field(default="development")
    DEBUG: bool = Field(default=False)

    # CORS - comma-separated list of allowed origins for production
    CORS_ORIGINS: Optional[str] = Field(default=None)


# Global settings instance
settings = Settings()
