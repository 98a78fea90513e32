"""
Configuration management for the FastAPI application.
Uses Pydantic Settings for environment variable management.
"""
from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Configuration
    API_TITLE: str = "PhotoLibrary API"
    API_VERSION: str = "1.0.0"
    API_DESCRIPTION: str = "Backend API for studio client galleries, photo uploads and ZIP downloads"

    # "production" tightens CORS; anything else is treated as development
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    # Per-request access logs (always on outside production)
    REQUEST_LOGS: bool = False

    # CORS Configuration
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:3001",
        "http://127.0.0.1:3001",
    ]
    # Comma-separated extra origins; bare hosts are treated as https://
    CORS_ALLOWED_ORIGINS: str = ""
    FRONTEND_URL: str = ""
    ALLOW_VERCEL_PREVIEWS: bool = False

    # Database Configuration
    DATABASE_URL: str = ""

    # Cloudinary Configuration
    CLOUDINARY_CLOUD_NAME: str = ""
    CLOUDINARY_API_KEY: str = ""
    CLOUDINARY_API_SECRET: str = ""
    CLOUDINARY_FOLDER: str = "photolibrary"

    # JWT Configuration
    # Tokens are issued by the auth service; this service only verifies them
    JWT_SECRET_KEY: str = "fallback-secret-key-change-in-production"

    # Studio service (remote gallery owner)
    STUDIO_API_URL: str = "http://localhost:4000"
    ADMIN_SYNC_SECRET: Optional[str] = None
    STUDIO_API_TIMEOUT: float = 10.0

    # Asset downloads
    ASSET_FETCH_TIMEOUT: float = 30.0
    ZIP_COMPRESSION_LEVEL: int = 9
    # Photos larger than this are spooled to disk while being archived
    ZIP_SPOOL_MAX_BYTES: int = 8 * 1024 * 1024
    ALLOWED_DOWNLOAD_HOSTS: List[str] = ["res.cloudinary.com"]

    # Rate limiting
    GALLERY_RATE_LIMIT: str = "1000/15minutes"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields in .env that aren't defined in Settings

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def cors_allowed_origins(self) -> List[str]:
        """
        Normalized CORS allow-list.

        Combines the default origins with CORS_ALLOWED_ORIGINS and FRONTEND_URL.
        Values without a scheme get https://, trailing slashes are dropped.
        """
        extra = self.CORS_ALLOWED_ORIGINS or self.FRONTEND_URL
        origins = []
        for value in [*self.CORS_ORIGINS, *extra.split(",")]:
            value = value.strip()
            if not value:
                continue
            if not value.startswith(("http://", "https://")):
                value = f"https://{value}"
            value = value.rstrip("/")
            if value not in origins:
                origins.append(value)
        return origins


# Global settings instance
settings = Settings()
