"""
Application configuration with environment-based settings.
"""
from functools import lru_cache
from typing import List

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Main application settings."""

    # ============= Application Settings =============
    APP_NAME: str = "Quiz Arcade"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = Field(default="development")
    DEBUG: bool = Field(default=False)
    API_V1_PREFIX: str = "/v1"

    # ============= Database Settings =============
    DATABASE_URL: str = Field(default="sqlite:///./quizarcade.db")
    DATABASE_ECHO: bool = False

    # ============= Security Settings =============
    APP_SECRET: SecretStr = Field(default="dev-secret-change-me")
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_TTL_MINUTES: int = 120
    CORS_ORIGINS: str = "*"

    # ============= Engine Settings =============
    RECENT_WINDOW: int = 50
    REVIEW_PAGE_SIZE: int = 20
    REVIEW_MAX_PAGE_SIZE: int = 100
    MAX_SESSION_QUESTIONS: int = 5000

    # ============= Logging Settings =============
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True

    def cors_origins(self) -> List[str]:
        """CORS origins from a comma-separated value."""
        return [i.strip() for i in self.CORS_ORIGINS.split(",") if i.strip()]

    def is_production(self) -> bool:
        """Check if running in production."""
        return self.ENVIRONMENT.lower() == "production"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
