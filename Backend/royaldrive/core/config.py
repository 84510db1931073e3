from pydantic_settings import BaseSettings
from typing import List, Literal


class Settings(BaseSettings):
    """
    Application configuration settings.
    Loads from environment variables or .env file.
    """

    # Application
    APP_NAME: str = "Royal Drive Back-Office API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = True

    # Database
    DATABASE_URL: str
    DATABASE_NAME: str = "royaldrive_db"

    # JWT Authentication
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440  # 24 hours

    # CORS
    CORS_ORIGINS: List[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
    ]

    # Stock numbers: <PREFIX>-<YEAR>-<6 digit sequence>
    STOCK_NUMBER_PREFIX: str = "RD"
    STOCK_NUMBER_MAX_RETRIES: int = 3

    # Vehicle read cache
    # - memory: process-local dictionary (single instance deployments)
    # - redis: shared cache for horizontally scaled deployments
    VEHICLE_CACHE_BACKEND: Literal["memory", "redis"] = "memory"
    VEHICLE_CACHE_TTL_SECONDS: int = 300
    REDIS_URL: str = "redis://localhost:6379/0"

    # Sales defaults
    DEFAULT_CURRENCY: Literal["CAD", "USD"] = "CAD"
    DEFAULT_TAX_RATE: float = 0.13  # Ontario HST

    # Pagination
    VEHICLE_PAGE_LIMIT_DEFAULT: int = 10
    SALES_PAGE_LIMIT_DEFAULT: int = 25
    PAGE_LIMIT_MAX: int = 100

    class Config:
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()
