"""Application settings and configuration management."""

from pathlib import Path
from typing import Literal

import structlog
import yaml
from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings

logger = structlog.get_logger(__name__)

PROFILES = ("dev", "staging", "prod")


class AppSettings(BaseSettings):
    """Application settings with environment variable support."""

    # Environment
    env: Literal["dev", "staging", "prod"] = Field(
        description="Environment: dev, staging, prod"
    )

    # Data storage
    database_path: str = Field(
        default="./indexer.sqlite", description="SQLite database file"
    )
    max_connections: int = Field(
        default=10, ge=1, description="Maximum concurrent database connections"
    )
    query_timeout_seconds: float = Field(
        default=5.0, gt=0, description="Wait on a locked database, in seconds"
    )

    # Search behaviour
    request_timeout_seconds: float = Field(
        default=10.0, gt=0, description="Deadline for all sub-queries of a request"
    )
    search_limit: int = Field(
        default=10, ge=1, description="Maximum rows per text search query"
    )

    # HTTP server
    host: str = Field(default="127.0.0.1", description="Bind address")
    port: int = Field(default=8080, ge=1, le=65535, description="Bind port")
    cors_origins: list[str] = Field(
        default_factory=lambda: ["*"], description="Allowed CORS origins"
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Minimum log level"
    )
    log_json: bool = Field(default=False, description="Render logs as JSON")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "POOLSEARCH_",
        "case_sensitive": False,
        "extra": "ignore",
    }


def load_settings(profile: str, yaml_path: str) -> AppSettings:
    """Load settings from YAML file and environment variables.

    Args:
        profile: Configuration profile name (dev, staging, prod)
        yaml_path: Path to YAML configuration file

    Returns:
        AppSettings instance with loaded configuration

    Raises:
        FileNotFoundError: If YAML file doesn't exist
        ValidationError: If configuration is invalid
        ValueError: If profile is invalid
    """
    if profile not in PROFILES:
        raise ValueError(
            f"Invalid profile: {profile}. Must be one of: {', '.join(PROFILES)}"
        )

    yaml_file = Path(yaml_path)
    if not yaml_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {yaml_path}")

    try:
        with open(yaml_file, encoding="utf-8") as f:
            yaml_config = yaml.safe_load(f) or {}

        if not isinstance(yaml_config, dict):
            raise ValueError("Invalid YAML configuration: top level must be a mapping")

        yaml_config["env"] = profile

        # Production never logs at debug level
        if profile == "prod" and yaml_config.get("log_level") == "DEBUG":
            yaml_config["log_level"] = "INFO"

        logger.info("Loading configuration", profile=profile, yaml_path=yaml_path)

        settings = AppSettings(**yaml_config)

        logger.info(
            "Configuration loaded successfully",
            profile=profile,
            database_path=settings.database_path,
            max_connections=settings.max_connections,
        )

        return settings

    except yaml.YAMLError as e:
        logger.error("Failed to parse YAML configuration", error=str(e))
        raise ValueError(f"Invalid YAML configuration: {e}") from e
    except ValidationError as e:
        logger.error("Configuration validation failed", error=str(e))
        raise
