"""Centralized loader settings using pydantic settings."""

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file
# Look for .env in the package directory or project root
env_path = Path(__file__).parent.parent / ".env"
if not env_path.exists():
    # Try project root
    env_path = Path(__file__).parent.parent.parent / ".env"
load_dotenv(dotenv_path=env_path, override=False)


class Settings(BaseSettings):
    """Environment-aware configuration (org connection, bulk limits, polling)."""

    # Application settings
    app_name: str = "Bulk Loader"
    log_level: str = "INFO"

    # Org connection settings
    instance_url: str = Field(
        default="https://login.salesforce.com",
        description="Instance URL of the org the bulk jobs run against",
    )
    access_token: str | None = Field(
        default=None,
        description="Session id / OAuth access token for the org",
    )
    api_version: str = Field(
        default="58.0",
        description="API version used for Bulk and REST endpoints",
    )
    request_timeout: float = Field(
        default=30.0,
        description="HTTP timeout in seconds for a single API call",
    )

    # Bulk settings
    bulk_max_batch_size: int = Field(
        default=10000,
        description="Maximum number of records per batch",
    )
    bulk_poll_interval_ms: int = Field(
        default=5000,
        description="Interval between batch status polls in wait mode",
    )
    bulk_concurrency_mode: str = Field(
        default="Parallel",
        description="Concurrency mode for new jobs (Parallel or Serial)",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,  # Allow case-insensitive env var matching
        extra="ignore",  # Ignore extra env vars not defined in model
        populate_by_name=True,
    )

    @field_validator("instance_url", mode="before")
    @classmethod
    def normalize_instance_url(cls, v: str | None) -> str:
        """Drop trailing slashes so endpoint paths can be appended."""
        if not v:
            return "https://login.salesforce.com"
        return v.strip().rstrip("/")

    @field_validator("bulk_max_batch_size", "bulk_poll_interval_ms")
    @classmethod
    def require_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be a positive integer")
        return v

    @field_validator("bulk_max_batch_size")
    @classmethod
    def cap_batch_size(cls, v: int) -> int:
        """The Bulk API accepts at most 10000 records per batch."""
        if v > 10000:
            raise ValueError("must be at most 10000 records per batch")
        return v

    @field_validator("bulk_concurrency_mode")
    @classmethod
    def check_concurrency_mode(cls, v: str) -> str:
        if v not in ("Parallel", "Serial"):
            raise ValueError("concurrency mode must be Parallel or Serial")
        return v

    @property
    def bulk_endpoint(self) -> str:
        """Base URL of the asynchronous Bulk API."""
        return f"{self.instance_url}/services/async/{self.api_version}"

    @property
    def rest_endpoint(self) -> str:
        """Base URL of the REST data API (used for describe calls)."""
        return f"{self.instance_url}/services/data/v{self.api_version}"


@lru_cache
def get_settings() -> Settings:
    """Provide singleton-like access for the CLI and services."""
    return Settings()
