"""Application settings using Pydantic Settings."""

from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database Configuration
    mongodb_url: str = "mongodb://localhost:27017/workout_planner"

    # Redis Configuration (optional, enables cross-process plan locks)
    redis_url: str = ""

    # Application Configuration
    app_name: str = "Workout Planner"
    app_version: str = "1.0.0"
    debug: bool = True
    log_level: str = "INFO"

    # Server Configuration
    host: str = "0.0.0.0"
    port: int = 8000

    # CORS Configuration
    cors_origins: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Generation Configuration
    activation_window_days: int = 7

    # Locking Configuration (seconds)
    plan_lock_timeout: float = 30.0
    plan_lock_wait: float = 10.0

    # Shared secret for the cron generation endpoint (empty is only accepted in debug mode)
    cron_secret: str = ""

    class Config:
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()
