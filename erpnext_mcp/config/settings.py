"""Centralized configuration management for the ERPNext MCP system.

This module provides a single source of truth for all configuration
including ERPNext credentials, gateway timeouts, retry limits and logging.
"""

from __future__ import annotations

import os
from urllib.parse import urlparse

from dotenv import load_dotenv
from pydantic import Field
from pydantic import field_validator
from pydantic_settings import BaseSettings

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


class Settings(BaseSettings):
    """Centralized settings for the ERPNext MCP system."""

    # === ERPNext Connection ===
    erpnext_base_url: str | None = Field(default=None, description="Base URL of the ERPNext site")
    erpnext_api_key: str | None = Field(default=None, description="ERPNext API key")
    erpnext_api_secret: str | None = Field(default=None, description="ERPNext API secret")

    # === Gateway Configuration ===
    request_timeout: float = Field(default=30.0, description="Per-call timeout in seconds")
    gateway_max_retries: int = Field(
        default=0, ge=0, le=5, description="Retries per gateway call on 429/502/503/504"
    )
    gateway_retry_delay: float = Field(default=1.0, ge=0, description="Initial retry delay in seconds")

    # === Bulk Execution ===
    max_bulk_operations: int = Field(
        default=100, ge=1, le=100, description="Maximum operations per bulk request (at most 100)"
    )

    # === Test Environment Detection ===
    pytest_current_test: str | None = Field(default=None, description="Test mode indicator")

    # === MCP Server Configuration ===
    mcp_host: str = Field(default="localhost", description="SSE server host")
    mcp_port: int = Field(default=3001, description="SSE server port")

    # === Logging Configuration ===
    log_level: str = Field(default="INFO", description="Logging level")
    structured_logging: bool = Field(default=True, description="Enable structured JSON logging")

    # === Metrics Configuration ===
    enable_metrics: bool = Field(default=True, description="Enable metrics collection")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }

    def __init__(self, **kwargs):
        """Initialize settings with environment-specific adjustments."""
        super().__init__(**kwargs)
        self._adjust_for_test_environment()

    def _adjust_for_test_environment(self):
        """Adjust settings for test environment."""
        if self.is_test_environment:
            self.enable_metrics = False

    @field_validator("erpnext_base_url")
    @classmethod
    def validate_base_url(cls, value: str | None) -> str | None:
        """Reject base URLs that are not absolute http(s) URLs."""
        if value is None or not value.strip():
            return None
        parsed = urlparse(value.strip())
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError("ERPNEXT_BASE_URL must be a valid http(s) URL")
        return value.strip().rstrip("/")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of: {', '.join(_LOG_LEVELS)}")
        return level

    @property
    def is_test_environment(self) -> bool:
        """Check if running in test environment."""
        return "PYTEST_CURRENT_TEST" in os.environ or self.pytest_current_test is not None

    @property
    def erpnext_configured(self) -> bool:
        """Check if ERPNext credentials are fully configured."""
        return all(
            value and value.strip()
            for value in (self.erpnext_base_url, self.erpnext_api_key, self.erpnext_api_secret)
        )


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance (singleton pattern)."""
    global _settings
    if _settings is None:
        load_dotenv()
        _settings = Settings()
    return _settings


def reset_settings():
    """Reset the global settings instance (primarily for testing)."""
    global _settings
    _settings = None
