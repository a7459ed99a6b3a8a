from typing import Final

from pydantic import Field, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import DEFAULT_PORT
from .domain.constants import DEFAULT_PER_PAGE, DEFAULT_RELATION_LIMIT


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env files."""

    # Server configuration
    debug: bool = Field(default=True, description="Enable debug mode")
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535, description="Server port")

    # Database configuration
    database_url: str = Field(
        default="sqlite:///./relpanel.db", description="Database connection URL"
    )
    db_name: str = Field(default="relpanel", description="Database name for SQLite")

    # Application configuration
    app_name: str = Field(default="RelPanel", description="Application name")
    version: str = Field(default="0.1.0", description="Application version")

    # Admin panel configuration
    admin_prefix: str = Field(
        default="/admin", description="URL prefix for all admin panel routes"
    )
    default_relation_limit: int = Field(
        default=DEFAULT_RELATION_LIMIT,
        ge=1,
        description="Rows shown in relation previews unless a field sets its own limit",
    )
    per_page: int = Field(
        default=DEFAULT_PER_PAGE, ge=1, description="Records per page in tables"
    )
    storage_dir: str = Field(
        default="storage", description="Directory for files attached to records"
    )

    # Logging and observability configuration
    log_to_file: bool = Field(
        default=False, description="Force logging to file even in debug mode"
    )
    metrics_port: int = Field(
        default=8080, ge=1, le=65535, description="Prometheus metrics port"
    )

    # Pydantic Settings configuration
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    @field_validator("admin_prefix")
    @classmethod
    def validate_admin_prefix(cls, v: str) -> str:
        """Normalize the prefix to a leading slash and no trailing slash."""
        v = v.strip().rstrip("/")
        if v and not v.startswith("/"):
            v = f"/{v}"
        return v

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.debug

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return not self.debug

    @computed_field  # type: ignore[prop-decorator]
    @property
    def effective_database_url(self) -> str:
        """Get the effective database URL, handling SQLite with db_name."""
        default_url = "sqlite:///./relpanel.db"
        if self.database_url == default_url and self.db_name != "relpanel":
            return f"sqlite:///./{self.db_name}.db"
        return self.database_url


# Global settings instance
settings: Final = Settings()
