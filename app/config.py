"""
Configuration management using Pydantic Settings
"""
from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Gemini API
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-2.0-flash"
    GEMINI_TIMEOUT: int = 60  # seconds

    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_SOCKET_TIMEOUT: int = 5
    CACHE_CAS_RETRIES: int = 3

    # Application
    APP_NAME: str = "Daily Quiz Backend"
    APP_VERSION: str = "3.0.0"
    DEBUG: bool = False
    ALLOWED_ORIGINS: List[str] = ["*"]

    # Cron
    CRON_SECRET: Optional[str] = None

    # Daily quiz settings
    DAILY_QUIZ_TTL_SECONDS: int = 60 * 60 * 48  # tolerate late cron runs

    # Rate limiting for topic submissions
    BACKLOG_RATE_LIMIT_PER_MINUTE: int = 10
    BACKLOG_RATE_LIMIT_PER_HOUR: int = 100

    # Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()
