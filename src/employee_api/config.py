"""Application configuration."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, PostgresDsn, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Distinct characters a production JWT secret must contain
MIN_SECRET_UNIQUE_CHARS = 16

# Lowest bcrypt work factor accepted outside development
MIN_PRODUCTION_BCRYPT_ROUNDS = 10


class Settings(BaseSettings):
    """Settings read from the environment and an optional ``.env`` file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Employee Management API"
    debug: bool = False
    environment: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    # Server
    host: str = "127.0.0.1"
    port: int = Field(default=8000, ge=1, le=65535)

    # Database (required)
    database_url: PostgresDsn = Field(
        description="PostgreSQL DSN for the employee database, e.g. postgresql://user:pw@host/db"
    )
    database_pool_size: int = Field(default=5, ge=1)
    database_max_overflow: int = Field(default=10, ge=0)

    # Tokens
    jwt_secret: str = Field(min_length=32)
    jwt_algorithm: str = "HS256"
    jwt_expiration_hours: int = Field(default=1, ge=1)
    jwt_issuer: str = "employee-api"
    jwt_audience: str = "employee-app"

    # Passwords
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)

    # Comma-separated list of allowed browser origins
    cors_origins: str = "http://localhost:3000"

    # Audit logs older than this are removed by the purge endpoint
    audit_retention_days: int = Field(default=365, ge=1)

    @model_validator(mode="after")
    def validate_settings(self) -> "Settings":
        """Reject combinations that are unsafe or unsupported."""
        if self.environment == "production" and self.debug:
            raise ValueError("DEBUG must be disabled when ENVIRONMENT=production")

        if not str(self.database_url).startswith(("postgresql://", "postgres://")):
            raise ValueError("DATABASE_URL must use the postgresql:// or postgres:// scheme")

        if self.environment == "production":
            if len(set(self.jwt_secret)) < MIN_SECRET_UNIQUE_CHARS:
                raise ValueError(
                    f"JWT_SECRET needs at least {MIN_SECRET_UNIQUE_CHARS} distinct characters "
                    "in production"
                )
            if self.bcrypt_rounds < MIN_PRODUCTION_BCRYPT_ROUNDS:
                raise ValueError(
                    f"BCRYPT_ROUNDS must be at least {MIN_PRODUCTION_BCRYPT_ROUNDS} in production"
                )

        return self

    @property
    def async_database_url(self) -> str:
        """Database URL for SQLAlchemy's asyncpg driver.

        asyncpg spells ``sslmode`` as ``ssl``.
        """
        url = str(self.database_url).replace("postgres://", "postgresql://", 1)
        return url.replace("postgresql://", "postgresql+asyncpg://", 1).replace("sslmode=", "ssl=")

    @property
    def cors_origins_list(self) -> list[str]:
        """Allowed CORS origins as a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings."""
    return Settings()
