"""
Configuration for Revisium SDK.

Uses pydantic-settings for environment variable loading.
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class ClientSettings(BaseSettings):
    """Client configuration loaded from environment."""

    # Revisium server connection
    base_url: str = Field(default="http://localhost:8080", description="Revisium server base URL")
    api_prefix: str = Field(default="/api", description="Path prefix of the REST API")
    timeout: float = Field(default=30.0, description="Request timeout seconds")

    # Navigation defaults
    default_branch: str = Field(default="master", description="Branch used when none is given")
    default_page_size: int = Field(default=100, description="Default items per page")

    # Logging
    log_level: str = Field(default="INFO", description="Root log level for setup_logging()")
    log_format: str = Field(default="text", description="Log format: text or json")

    model_config = {"env_prefix": "REVISIUM_"}

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value[:-1] if value.endswith("/") else value

    @property
    def api_url(self) -> str:
        """Full REST API root."""
        return f"{self.base_url}{self.api_prefix}"
