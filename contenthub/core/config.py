"""
Configuration settings for the application
"""

import os
from typing import List
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    """Application settings"""

    # Document store
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./contenthub.db")
    USE_FIREBASE: bool = os.getenv("USE_FIREBASE", "false").lower() in ("1", "true", "yes")
    FIREBASE_CREDENTIALS_JSON: str | None = os.getenv("FIREBASE_CREDENTIALS_JSON")
    FIREBASE_CREDENTIALS_FILE: str | None = os.getenv("FIREBASE_CREDENTIALS_FILE")
    FIREBASE_CREDENTIALS_B64: str | None = os.getenv("FIREBASE_CREDENTIALS_B64")
    FIREBASE_API_KEY: str | None = os.getenv("FIREBASE_API_KEY")

    # Security
    ADMIN_TOKEN: str = os.getenv("ADMIN_TOKEN", "admin_token_123")
    SECRET_KEY: str = os.getenv("SECRET_KEY", "change-me-in-production")
    ACCESS_TOKEN_TTL: int = 60 * 60  # 1 hour
    REFRESH_TOKEN_TTL: int = 30 * 24 * 60 * 60  # 30 days

    # Application
    BASE_URL: str = os.getenv("BASE_URL", "http://localhost:8000")
    API_PREFIX: str = os.getenv("API_PREFIX", "/api")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # CORS
    ALLOW_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://localhost:8000",
    ]

    # Media storage
    STORAGE_BUCKET: str = os.getenv("STORAGE_BUCKET", "contenthub-media")
    UPLOAD_DIR: str = os.getenv("UPLOAD_DIR", "uploads")
    MAX_UPLOAD_SIZE: int = 10 * 1024 * 1024  # 10MB
    ALLOWED_UPLOAD_TYPES: List[str] = ["image/*", "application/pdf"]
    SIGNED_URL_TTL: int = 365 * 24 * 60 * 60  # 1 year
    IMAGE_MAX_WIDTH: int = 1200
    IMAGE_QUALITY: int = 80

    # Rate limiting
    RATE_LIMIT_PER_MINUTE: int = 30

    # Demo content
    SEED_DEMO_CONTENT: bool = os.getenv("SEED_DEMO_CONTENT", "true").lower() in ("1", "true", "yes")
    DEMO_ADMIN_EMAIL: str = os.getenv("DEMO_ADMIN_EMAIL", "admin@example.com")
    DEMO_ADMIN_PASSWORD: str = os.getenv("DEMO_ADMIN_PASSWORD", "admin123")

    class Config:
        env_file = ".env"

settings = Settings()
