"""
Configuration management for the Identity Service
"""
from dataclasses import dataclass
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    """Identity Service configuration loaded from environment variables"""

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "./logs"

    # Database Configuration
    DATABASE_URL: str = "sqlite:///./identity.db"
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10

    # JWT Configuration
    JWT_SECRET_KEY: str
    JWT_ISSUER: str = "IdentityService"
    JWT_AUDIENCE: str = "IdentityServiceClient"
    JWT_EXPIRY_MINUTES: int = 60
    JWT_REFRESH_TOKEN_EXPIRY_DAYS: int = 7

    # Roles
    DEFAULT_ROLE_ID: int = 5
    ADMIN_ROLE_NAME: str = "Admin"

    # CORS Configuration
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    # Enables the /dev inspection endpoints
    DEV_MODE: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True
    )

    @field_validator("JWT_SECRET_KEY")
    @classmethod
    def secret_key_not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("JWT_SECRET_KEY not configured")
        return value


@dataclass(frozen=True)
class JwtConfig:
    secret_key: str
    issuer: str = "IdentityService"
    audience: str = "IdentityServiceClient"
    expiry_minutes: int = 60
    refresh_token_expiry_days: int = 7
    algorithm: str = "HS256"


def get_jwt_config(source: "Settings" = None) -> JwtConfig:
    """Build the immutable token configuration from settings."""
    source = source or settings
    return JwtConfig(
        secret_key=source.JWT_SECRET_KEY,
        issuer=source.JWT_ISSUER,
        audience=source.JWT_AUDIENCE,
        expiry_minutes=source.JWT_EXPIRY_MINUTES,
        refresh_token_expiry_days=source.JWT_REFRESH_TOKEN_EXPIRY_DAYS,
    )


# Global settings instance; raises at import if JWT_SECRET_KEY is missing
settings = Settings()
