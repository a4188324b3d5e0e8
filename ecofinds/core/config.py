from pydantic_settings import BaseSettings
from pydantic import field_validator, model_validator
from typing import List


class Settings(BaseSettings):
    # Project Info
    PROJECT_NAME: str = "EcoFinds Marketplace API"
    API_V1_STR: str = "/api/v1"

    # Database
    DATABASE_URL: str

    # Security
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7
    REFRESH_TOKEN_EXPIRE_DAYS: int = 30

    # CORS
    BACKEND_CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Catalog & checkout
    DEFAULT_PAGE_SIZE: int = 12
    MAX_PAGE_SIZE: int = 50
    MAX_SHIPPING_ADDRESS_LENGTH: int = 500

    # Environment
    ENVIRONMENT: str = "development"

    DEBUG: bool = False

    # Frontend
    FRONTEND_URL: str = "http://localhost:3000"

    # Monitoring (Optional - Add to .env for production)
    SENTRY_DSN: str = ""

    @field_validator("ENVIRONMENT")
    @classmethod
    def normalize_environment(cls, value: str) -> str:
        return value.lower().strip()

    @model_validator(mode="after")
    def validate_production_secret(self):
        if self.ENVIRONMENT == "production":
            normalized_secret = (self.SECRET_KEY or "").strip()
            if len(normalized_secret) < 32 or "your-secret-key-here" in normalized_secret.lower():
                raise ValueError("SECRET_KEY must be at least 32 chars and not use placeholders in production")
        return self

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")

    model_config = {
        "env_file": ".env",
        "case_sensitive": True,
        "extra": "ignore",
    }


settings = Settings()
