"""
Application configuration settings.
"""
import json
from typing import Annotated, List, Optional
from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # Application
    PROJECT_NAME: str = "Dental Lab API"
    VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Security
    JWT_SECRET: str = "change-me-access-token-secret"
    JWT_REFRESH_SECRET: str = "change-me-refresh-token-secret"
    JWT_ALGORITHM: str = "HS256"
    JWT_ISSUER: str = "dental-lab-api"
    JWT_AUDIENCE: str = "dental-lab-app"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    REFRESH_TOKEN_EXPIRE_DAYS: int = 30
    PASSWORD_RESET_EXPIRE_MINUTES: int = 60
    BCRYPT_ROUNDS: int = 10

    # Database
    DATABASE_URL: str = "sqlite:///./dental_lab.db"

    # CORS
    ALLOWED_ORIGINS: Annotated[List[str], NoDecode] = ["http://localhost:3001"]

    # File Storage
    UPLOAD_DIR: str = "./uploads"
    MAX_FILE_SIZE: int = 50 * 1024 * 1024  # 50MB
    ALLOWED_FILE_TYPES: Annotated[List[str], NoDecode] = [
        "image/jpeg", "image/png", "image/gif", "image/tiff", "image/x-tiff", "image/webp",
        "application/pdf", "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "application/dicom", "application/x-dcm",
        "model/stl", "model/gltf+json", "model/gltf-binary",
    ]
    USE_S3: bool = False
    S3_BUCKET: str = "case-attachments"
    AWS_ACCESS_KEY_ID: Optional[str] = None
    AWS_SECRET_ACCESS_KEY: Optional[str] = None
    AWS_REGION: str = "us-east-1"
    SIGNED_URL_EXPIRE_SECONDS: int = 3600

    # Logging
    LOG_TO_FILE: bool = False
    LOG_FILE: str = "./logs/app.log"
    LOG_MAX_SIZE: int = 10 * 1024 * 1024  # 10MB
    LOG_BACKUP_COUNT: int = 5

    # Email
    SMTP_SERVER: Optional[str] = None
    SMTP_PORT: int = 587
    SMTP_USERNAME: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_USE_TLS: bool = True
    FROM_EMAIL: str = "no-reply@dental-lab.local"
    FRONTEND_URL: str = "http://localhost:3001"

    # Seeding
    SEED_ADMIN_EMAIL: Optional[str] = None
    SEED_ADMIN_PASSWORD: Optional[str] = None

    @field_validator("ALLOWED_ORIGINS", "ALLOWED_FILE_TYPES", mode="before")
    @classmethod
    def parse_list(cls, v):
        """Parse comma-separated strings into lists."""
        if isinstance(v, str):
            if v.startswith("["):
                return json.loads(v)
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @field_validator("JWT_SECRET", "JWT_REFRESH_SECRET")
    @classmethod
    def validate_secret(cls, v):
        """Validate JWT secret length."""
        if len(v) < 16:
            raise ValueError("JWT secrets must be at least 16 characters long")
        return v

    @field_validator("ENVIRONMENT")
    @classmethod
    def validate_environment(cls, v):
        if v not in ("development", "production", "test"):
            raise ValueError("ENVIRONMENT must be one of development, production, test")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development" or self.DEBUG

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production" and not self.DEBUG

    @property
    def database_url_safe(self) -> str:
        """Get safe database URL for logging (hides password)."""
        if "@" in self.DATABASE_URL:
            scheme, rest = self.DATABASE_URL.split("://", 1)
            return f"{scheme}://***@{rest.split('@', 1)[1]}"
        return self.DATABASE_URL


# Global settings instance
settings = Settings()
