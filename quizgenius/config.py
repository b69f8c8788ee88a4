"""
Configuration management using Pydantic Settings
"""
from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Database
    DATABASE_URL: str

    # Gemini API (checked when a quiz is generated, not at startup)
    GEMINI_API_KEY: Optional[str] = None
    GEMINI_MODEL: str = "gemini-2.0-flash"
    QUIZ_TEMPERATURE: float = 0.7

    # Redis
    REDIS_URL: str = "redis://redis:6379/0"
    CACHE_ENABLED: bool = True

    # Application
    APP_NAME: str = "QuizGenius"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8000"]

    # Rate Limiting
    RATE_LIMIT_PER_MINUTE: int = 60
    RATE_LIMIT_PER_HOUR: int = 1000

    # Quiz Settings
    DEFAULT_QUIZ_CACHE_TTL: int = 3600  # 1 hour
    MAX_QUIZ_QUESTIONS: int = 20
    NORMALIZER_STRICT: bool = False  # abort the whole batch on one bad question

    # Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()
