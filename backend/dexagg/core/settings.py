"""Application settings and configuration management."""
from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Main application settings with environment variable support."""

    # App basics
    app_name: str = "DEX Quote Aggregator"
    version: str = "1.0.0"
    environment: str = "development"  # development, staging, production
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8080

    # CORS settings
    cors_origins: List[str] = ["*"]

    # Logging
    log_level: str = "INFO"
    log_to_file: bool = False
    log_dir: Path = Field(default_factory=lambda: Path("data/logs"))

    # Chain node
    node_url: str = "https://rpc-devnet.monadinfra.com/rpc/3fe540e310bbb6ef0b9f16cd23073b0a"
    rpc_timeout_seconds: float = 10.0

    # Token metadata cache
    redis_url: str = "redis://localhost:6379/0"
    redis_password: Optional[str] = None

    # Simple API authentication for write routes
    api_key: str = "your-api-key"

    # Aggregation
    protocol_timeout_seconds: float = 5.0
    route_request_timeout_seconds: float = 15.0
    default_amount_in: int = 10000

    @field_validator(
        "rpc_timeout_seconds",
        "protocol_timeout_seconds",
        "route_request_timeout_seconds",
    )
    @classmethod
    def validate_positive_timeout(cls, v: float) -> float:
        """Timeouts must be strictly positive."""
        if v <= 0:
            raise ValueError("Timeouts must be greater than zero")
        return v

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is a valid value."""
        if v not in ["development", "staging", "production"]:
            raise ValueError("Environment must be one of: development, staging, production")
        return v

    @field_validator("default_amount_in")
    @classmethod
    def validate_default_amount(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Default amount must be positive")
        return v

    model_config = {
        "extra": "ignore",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "validate_assignment": True,
        "str_strip_whitespace": True,
    }


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """
    Get the global settings instance.

    Returns:
        Settings: The global settings instance
    """
    return settings


def reload_settings() -> Settings:
    """
    Reload settings from environment.

    Returns:
        Settings: Reloaded settings instance
    """
    global settings
    settings = Settings()
    return settings


__all__ = [
    "Settings",
    "settings",
    "get_settings",
    "reload_settings",
]
