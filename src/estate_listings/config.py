"""Application configuration using pydantic-settings."""

from pathlib import Path

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from estate_listings.models import DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="ESTATE_LISTINGS_",
        extra="ignore",
    )

    # Storage
    database_path: str = Field(default="data/listings.db")
    media_dir: str = Field(
        default="",
        description="Directory for uploaded media (defaults to <database dir>/media)",
    )

    # Listing pages
    default_page_limit: int = Field(default=DEFAULT_PAGE_LIMIT, ge=1, le=MAX_PAGE_LIMIT)
    max_page_limit: int = Field(default=MAX_PAGE_LIMIT, ge=1, le=MAX_PAGE_LIMIT)
    recommended_limit: int = Field(default=6, ge=1, le=MAX_PAGE_LIMIT)
    search_debounce_ms: int = Field(
        default=300,
        ge=0,
        description="Quiet interval after the last keystroke before a search is sent",
    )
    page_window: int = Field(
        default=1,
        ge=0,
        description="Pages shown either side of the current page in page controls",
    )

    # Admin access
    admin_token: SecretStr = Field(
        default=SecretStr(""),
        description="Bearer token that grants an ADMIN session (empty disables admin routes)",
    )
    admin_email: str = Field(default="admin@localhost")

    # Web server
    web_host: str = Field(default="0.0.0.0", description="Web server host")
    web_port: int = Field(default=8000, description="Web server port")
    json_logs: bool = Field(default=False, description="Emit JSON logs instead of console output")
    log_level: str = Field(default="info")

    @property
    def data_dir(self) -> str:
        """Return the directory containing the database."""
        return str(Path(self.database_path).parent)

    @property
    def resolved_media_dir(self) -> str:
        """Media directory, falling back to a folder next to the database."""
        return self.media_dir or str(Path(self.data_dir) / "media")

    def clamp_limit(self, limit: int | None) -> int:
        """Page size within the configured bounds, or the default when unset."""
        if limit is None:
            return self.default_page_limit
        return max(1, min(self.max_page_limit, limit))
