"""
Event Relay Configuration
=========================

This module handles configuration loading for the event relay.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    RELAY_STREAM_URL             -> stream.url
    RELAY_RECONNECT_DELAY        -> stream.reconnect_delay_seconds
    RELAY_BUFFER_HIGH_WATER_MARK -> buffer.high_water_mark
    RELAY_HOST                   -> server.host
    RELAY_PORT                   -> server.port
    RELAY_LOG_LEVEL              -> logging.level
    RELAY_LOG_FORMAT             -> logging.format
    PORT                         -> server.port (Cloud Run)

All values are fixed at startup.

Example:
    from event_relay.config import settings

    print(settings.stream.url)
    print(settings.server.port)
"""

import os
import logging
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class ServiceConfig(BaseModel):
    """Service identification configuration."""

    name: str = Field(default="event-relay", description="Service name")
    version: str = Field(default="v0.1.0", description="Service version")


class StreamConfig(BaseModel):
    """Upstream WebSocket connection configuration."""

    url: str = Field(
        default="ws://localhost:21213",
        description="WebSocket URL of the upstream event source",
    )
    reconnect_delay_seconds: float = Field(
        default=3.0,
        gt=0,
        description="Fixed delay before each reconnection attempt",
    )


class BufferConfig(BaseModel):
    """Event buffer configuration."""

    high_water_mark: int = Field(
        default=10_000,
        ge=0,
        description="Buffered event count that logs a warning (0 = disabled)",
    )


class ServerConfig(BaseModel):
    """HTTP listener configuration."""

    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=3000, ge=1, le=65535, description="Bind port")
    cors_origins: List[str] = Field(
        default_factory=lambda: ["*"],
        description="Allowed cross-origin request origins",
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="text", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for the event relay.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    service: ServiceConfig = Field(default_factory=ServiceConfig)
    stream: StreamConfig = Field(default_factory=StreamConfig)
    buffer: BufferConfig = Field(default_factory=BufferConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file and environment variables.

    Priority (highest to lowest):
        1. Environment variables
        2. YAML config file
        3. Default values

    Args:
        config_path: Path to config.yaml. If None, searches common locations.

    Returns:
        Settings: Loaded configuration
    """
    # Find config file
    if config_path is None:
        search_paths = [
            Path("config.yaml"),
            Path("config.yml"),
            Path(__file__).parent.parent.parent / "config.yaml",
        ]
        for path in search_paths:
            if path.exists():
                config_path = str(path)
                break

    # Load from YAML if exists
    config_data = {}
    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    else:
        logger.info("No config file found, using defaults and environment variables")

    # Apply environment variable overrides
    _apply_env_overrides(config_data)

    return Settings.model_validate(config_data)


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Stream settings
    if env_url := os.environ.get("RELAY_STREAM_URL"):
        config_data.setdefault("stream", {})["url"] = env_url
    if env_delay := os.environ.get("RELAY_RECONNECT_DELAY"):
        config_data.setdefault("stream", {})["reconnect_delay_seconds"] = float(env_delay)

    # Buffer settings
    if env_hwm := os.environ.get("RELAY_BUFFER_HIGH_WATER_MARK"):
        config_data.setdefault("buffer", {})["high_water_mark"] = int(env_hwm)

    # Server settings (Cloud Run uses PORT env var)
    if env_host := os.environ.get("RELAY_HOST"):
        config_data.setdefault("server", {})["host"] = env_host
    if env_port := os.environ.get("PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)
    elif env_port := os.environ.get("RELAY_PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)

    # Logging settings
    if env_log := os.environ.get("RELAY_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log
    if env_fmt := os.environ.get("RELAY_LOG_FORMAT"):
        config_data.setdefault("logging", {})["format"] = env_fmt


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings."""
    log_level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    if settings.logging.format == "json":
        log_format = '{"time": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "message": "%(message)s"}'
    else:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
        force=True,
    )


# =============================================================================
# Global Settings Instance
# =============================================================================

# Global settings instance - loaded on import
settings = load_config()
setup_logging(settings)
