"""
Application Configuration — Environment & Settings
Centralizes gateway, database and server config from .env with Pydantic Settings.
"""
from pathlib import Path
from functools import lru_cache
from urllib.parse import quote_plus

from pydantic_settings import BaseSettings

# Resolve paths relative to backend/ directory
BASE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # --- Core ---
    APP_NAME: str = "Paygate Checkout API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    PORT: int = 3500

    # --- Database ---
    # Explicit URL wins; otherwise built from DB_* when DB_HOST is set.
    DATABASE_URL: str = ""
    DB_USER: str = ""
    DB_PASSWORD: str = ""
    DB_HOST: str = ""
    DB_PORT: int = 5432
    DB_NAME: str = ""

    # --- Safepay gateway ---
    SAFE_PAY_PUBLIC_KEY: str = ""
    SAFE_PAY_SECRET_KEY: str = ""
    SAFE_PAY_BASE_URL: str = ""
    SAFE_PAY_MODE: str = "sandbox"
    SAFE_PAY_TIMEOUT_SECONDS: float = 15.0
    SAFE_PAY_DEFAULT_REDIRECT_URL: str = "http://localhost:3000/payment-success"

    # --- Security ---
    CORS_ORIGINS: list[str] = ["*"]

    # --- Logging ---
    LOG_DIR: str = str(BASE_DIR / "logs")
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = str(BASE_DIR / ".env")
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"

    @property
    def database_url(self) -> str:
        """Resolved SQLAlchemy URL."""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        if self.DB_HOST:
            user = quote_plus(self.DB_USER)
            password = quote_plus(self.DB_PASSWORD)
            return f"postgresql+psycopg2://{user}:{password}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        return f"sqlite:///{BASE_DIR / 'data' / 'paygate.db'}"

    @property
    def gateway_configured(self) -> bool:
        return bool(self.SAFE_PAY_PUBLIC_KEY and self.SAFE_PAY_SECRET_KEY and self.SAFE_PAY_BASE_URL)


@lru_cache()
def get_settings() -> Settings:
    """Cached settings singleton."""
    return Settings()
