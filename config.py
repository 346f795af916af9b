"""Configuration settings for the tracker core."""

# Load .env into os.environ so TRACKER_* overrides are picked up
try:
    from dotenv import load_dotenv
    load_dotenv()
except ImportError:
    pass

from pydantic_settings import BaseSettings
from pydantic import Field
from typing import Optional
from pathlib import Path


class Settings(BaseSettings):
    """Global settings for the tracker core.

    Settings can be overridden via environment variables with TRACKER_ prefix.
    Example: TRACKER_MAX_ACTIVE_ISSUES=80
    """

    # Capacity limits
    max_active_issues: int = Field(
        default=50,
        ge=1,
        description="Maximum number of non-archived issues per project"
    )
    max_tags_per_project: int = Field(
        default=20,
        ge=0,
        description="Maximum number of tags a project may hold"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Root log level (DEBUG, INFO, WARNING, ERROR)"
    )
    log_file: Optional[str] = Field(
        default=None,
        description="Optional log file path; console-only when unset"
    )

    # Blob store
    blob_url_scheme: str = Field(
        default="memory",
        description="URL scheme used by the in-memory blob store for download locators"
    )
    blob_bucket: str = Field(
        default="attachments",
        description="Bucket name embedded in download locators"
    )

    # Backends
    document_store_backend: str = Field(
        default="memory",
        description="Document store backend name (see stores.factory)"
    )
    blob_store_backend: str = Field(
        default="memory",
        description="Blob store backend name (see stores.factory)"
    )

    # CLI
    caller_id: str = Field(
        default="",
        description="Identity the developer CLI acts as (env: TRACKER_CALLER_ID)",
    )

    model_config = {
        "env_prefix": "TRACKER_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    def get_log_path(self) -> Optional[Path]:
        """Get log file path as Path object."""
        return Path(self.log_file) if self.log_file else None


# Create singleton instance
settings = Settings()
