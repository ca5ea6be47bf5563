"""
Configuration settings for the Taskdesk tracker.
All sensitive values are loaded from environment variables.
"""

from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    app_name: str = "Taskdesk"
    debug: bool = False
    environment: str = "production"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])

    # Database (PostgreSQL)
    database_url: str = ""
    database_echo: bool = False
    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_pool_timeout: int = 30
    db_pool_recycle: int = 3600

    # Session tokens
    jwt_secret: str = ""
    jwt_algorithm: str = "HS256"
    jwt_expiry_seconds: int = 3600

    # Secrets
    bcrypt_rounds: int = 12

    # Rate limiting on signup/login
    rate_limit_enabled: bool = True
    auth_rate_limit: str = "10/minute"

    # Signup may only create Admin identities when explicitly allowed
    allow_admin_signup: bool = False

    # Bootstrap administrator, created on startup when missing
    admin_email: Optional[str] = None
    admin_password: Optional[str] = None
    admin_name: str = "Administrator"


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get the application settings."""
    return settings
