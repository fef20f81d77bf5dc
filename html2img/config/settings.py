"""
Application Settings
===================

Render server configuration read from HTML2IMG_* environment variables or a
.env file. Durations are in milliseconds, as callers of the HTTP API use them.
"""

from typing import Annotated, Optional, List, Union
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from pathlib import Path

from html2img import __version__


class Settings(BaseSettings):
    """Render server settings. Every field can be set as HTML2IMG_<FIELD_NAME>."""

    # Application Configuration
    app_name: str = Field(default="HTML to Image Render Server", description="Application name")
    app_version: str = Field(default=__version__, description="Application version")
    environment: str = Field(
        default="development", description="Environment: development, testing, production"
    )
    debug: bool = Field(default=True, description="Debug mode")

    # Server Configuration
    host: str = Field(default="localhost", description="Server host")
    port: int = Field(default=3000, description="Server port")
    request_timeout: int = Field(
        default=30000, gt=0, description="Overall render request deadline in milliseconds"
    )

    # Security Configuration
    api_key: Optional[str] = Field(default=None, description="API key expected in ?apiKey=")
    rate_limit_max: int = Field(default=60, gt=0, description="Requests allowed per window per IP")
    rate_limit_window: int = Field(
        default=60000, gt=0, description="Rate limit window in milliseconds"
    )
    max_payload_bytes: int = Field(
        default=10 * 1024 * 1024, gt=0, description="Maximum accepted Content-Length"
    )
    block_private_network: bool = Field(
        default=False, description="Abort page requests to loopback/private addresses"
    )

    # Browser Configuration
    playwright_headless: bool = Field(default=True, description="Run browser in headless mode")
    playwright_timeout: int = Field(default=30000, description="Playwright timeout in milliseconds")
    browser_args: Annotated[List[str], NoDecode] = Field(
        default=["--no-sandbox", "--disable-setuid-sandbox", "--disable-dev-shm-usage"],
        description="Chromium launch flags for containerized, non-root execution",
    )
    user_agent: str = Field(
        default=f"html2img-render-server/{__version__}", description="User agent for render pages"
    )

    # Rendering Configuration
    selector_timeout: int = Field(
        default=5000, gt=0, description="waitForSelector timeout in milliseconds"
    )
    font_settle_delay: int = Field(
        default=50, ge=0, description="Pause after @font-face injection in milliseconds"
    )
    default_viewport_width: int = Field(default=1280, description="Default viewport width")
    default_viewport_height: int = Field(default=720, description="Default viewport height")
    default_jpeg_quality: int = Field(default=90, ge=1, le=100, description="Default JPEG quality")

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: Optional[Path] = Field(default=None, description="Optional rotating log file")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value."""
        allowed = {"development", "testing", "production"}
        if v not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"Log level must be one of: {allowed}")
        return v.upper()

    @field_validator("browser_args", mode="before")
    @classmethod
    def parse_browser_args(cls, v: Union[str, List[str]]) -> List[str]:
        """Parse browser args from a comma-separated string or list."""
        if isinstance(v, str):
            return [arg.strip() for arg in v.split(",") if arg.strip()]
        return v

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def include_stack_traces(self) -> bool:
        """Stack traces are only exposed in error bodies outside production."""
        return not self.is_production

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, env_prefix="HTML2IMG_"
    )


# Global settings instance - will be initialized when needed
settings = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global settings
    if settings is None:
        settings = Settings()
    return settings


def reload_settings() -> Settings:
    """Reload settings from environment."""
    global settings
    settings = Settings()
    return settings
