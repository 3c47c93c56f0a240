# skillconnect/core/config.py
from typing import List, Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_JWT_SECRET = "dev-insecure-secret-change-me"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENVIRONMENT: str = "development"

    # MongoDB
    MONGO_URL: str = "mongodb://localhost:27017"
    MONGO_DB_NAME: str = "skillconnect"

    # Session tokens
    JWT_SECRET_KEY: str = DEFAULT_JWT_SECRET
    ALGORITHM: str = "HS256"
    JWT_EXPIRE_DAYS: int = 5
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7
    COOKIE_NAME: str = "token"

    # CORS
    ALLOWED_ORIGINS: str = "http://localhost:5173"

    # Bootstrap admin
    ADMIN_EMAIL: Optional[str] = None
    ADMIN_PASSWORD: Optional[str] = None

    # Backblaze B2 asset store
    B2_KEY_ID: str = ""
    B2_APPLICATION_KEY: str = ""
    B2_BUCKET_NAME: str = ""
    B2_BUCKET_PUBLIC: bool = False
    UPLOAD_TEMP_DIR: str = "uploads/temp"

    # Global rate limiter
    RATE_LIMIT_MAX_REQUESTS: int = 1000
    RATE_LIMIT_WINDOW_SECONDS: int = 900
    # Only enable behind a proxy that overwrites X-Forwarded-For
    TRUST_FORWARDED_HEADERS: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: Optional[str] = None

    @model_validator(mode="after")
    def require_real_secret(self):
        if self.is_production and self.JWT_SECRET_KEY == DEFAULT_JWT_SECRET:
            raise ValueError("JWT_SECRET_KEY must be set in production")
        return self

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def allowed_origins(self) -> List[str]:
        return [item.strip() for item in self.ALLOWED_ORIGINS.split(",") if item.strip()]

    @property
    def cookie_secure(self) -> bool:
        return self.is_production


settings = Settings()
