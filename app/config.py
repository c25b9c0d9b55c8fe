"""
Application settings for MediVault
Values come from the environment or a local .env file
"""

from pydantic_settings import BaseSettings
from pydantic import Field
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings."""

    # Database
    database_url: str = Field(default="sqlite:///./medivault.db")

    # Session tokens (JWT)
    secret_key: str = Field(default="your-secret-key-change-in-production")
    access_token_expire_minutes: int = Field(default=30)

    # Password hashing (log2 of the scrypt cost factor)
    scrypt_rounds: int = Field(default=14, ge=1, le=20)

    # QR sharing tokens
    qr_token_ttl_days: int = Field(default=30, ge=1)
    demo_tokens_enabled: bool = Field(default=False)
    demo_user_id: int = Field(default=1, ge=1)

    # Startup
    seed_demo_data: bool = Field(default=False)

    # File uploads
    max_upload_bytes: int = Field(default=10 * 1024 * 1024)

    # Rate limiting
    rate_limit_enabled: bool = Field(default=True)

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
