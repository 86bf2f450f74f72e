"""
CameraChallenge Configuration
=============================

This module handles configuration loading for the capture client and relay.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    CAMERA_CHALLENGE_QUOTA             -> game.quota
    CAMERA_CHALLENGE_TICK_INTERVAL     -> game.tick_interval_seconds
    CAMERA_CHALLENGE_BACKGROUND_POLICY -> game.background_policy
    CAMERA_CHALLENGE_CAMERA_SOURCE     -> camera.source
    CAMERA_CHALLENGE_MIRROR            -> camera.mirror
    CAMERA_CHALLENGE_RELAY_URL         -> relay.url
    CAMERA_CHALLENGE_LOG_LEVEL         -> logging.level
    DISCORD_TOKEN                      -> chat.token
    CHANNEL_ID                         -> chat.channel_id
    PORT                               -> relay_server.port

Example:
    from camera_challenge.config import settings

    print(settings.game.quota)
    print(settings.relay.url)
"""

import os
import logging
from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import BaseModel, Field

from camera_challenge.models.frame import ImageFormat
from camera_challenge.models.phase import BackgroundPolicy


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class AppConfig(BaseModel):
    """Application identification configuration."""

    name: str = Field(default="camera-challenge", description="Application name")
    version: str = Field(default="v0.1.0", description="Application version")


class GameConfig(BaseModel):
    """Challenge game timing and capture policy."""

    quota: int = Field(
        default=5,
        ge=1,
        description="Number of counted frames that completes a game",
    )
    tick_interval_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Seconds between capture ticks",
    )
    background_policy: BackgroundPolicy = Field(
        default=BackgroundPolicy.HALT,
        description="After finish/stop: 'halt' the cadence or 'continue' uncounted capture",
    )
    seed: Optional[int] = Field(
        default=None,
        description="Seed for challenge prompt selection (None = system entropy)",
    )


class CameraConfig(BaseModel):
    """Local camera and still encoding configuration."""

    source: Union[int, str] = Field(
        default=0,
        description="OpenCV device index or stream URL",
    )
    mirror: bool = Field(
        default=True,
        description="Mirror preview and captured stills (self-facing camera)",
    )
    image_format: ImageFormat = Field(
        default=ImageFormat.JPEG,
        description="Still image format: 'jpeg' or 'png'",
    )
    jpeg_quality: int = Field(
        default=70,
        ge=1,
        le=100,
        description="JPEG quality for captured stills",
    )


class RelayConfig(BaseModel):
    """Relay endpoint consumed by the capture client."""

    url: str = Field(
        default="http://localhost:3000/upload",
        description="URL of the relay upload endpoint",
    )
    timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Timeout for a single upload request",
    )


class ChatConfig(BaseModel):
    """Chat destination used by the relay endpoint."""

    token: Optional[str] = Field(default=None, description="Bot token")
    channel_id: Optional[str] = Field(default=None, description="Destination channel")
    api_base: str = Field(
        default="https://discord.com/api/v10",
        description="Chat REST API base URL",
    )
    timeout_seconds: float = Field(default=15.0, gt=0, description="Request timeout")


class ServerConfig(BaseModel):
    """Server bind configuration."""

    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=8001, ge=1, le=65535, description="Bind port")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="text", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for CameraChallenge.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    app: AppConfig = Field(default_factory=AppConfig)
    game: GameConfig = Field(default_factory=GameConfig)
    camera: CameraConfig = Field(default_factory=CameraConfig)
    relay: RelayConfig = Field(default_factory=RelayConfig)
    chat: ChatConfig = Field(default_factory=ChatConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    relay_server: ServerConfig = Field(
        default_factory=lambda: ServerConfig(port=3000),
    )
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

    config_data = {}
    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    else:
        logger.warning("No config file found, using defaults and environment variables")

    _apply_env_overrides(config_data)

    return Settings.model_validate(config_data)


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Game settings
    if env_quota := os.environ.get("CAMERA_CHALLENGE_QUOTA"):
        config_data.setdefault("game", {})["quota"] = int(env_quota)
    if env_tick := os.environ.get("CAMERA_CHALLENGE_TICK_INTERVAL"):
        config_data.setdefault("game", {})["tick_interval_seconds"] = float(env_tick)
    if env_policy := os.environ.get("CAMERA_CHALLENGE_BACKGROUND_POLICY"):
        config_data.setdefault("game", {})["background_policy"] = env_policy.lower()

    # Camera settings (numeric sources are device indices)
    if env_source := os.environ.get("CAMERA_CHALLENGE_CAMERA_SOURCE"):
        source = int(env_source) if env_source.isdigit() else env_source
        config_data.setdefault("camera", {})["source"] = source
    if env_mirror := os.environ.get("CAMERA_CHALLENGE_MIRROR"):
        config_data.setdefault("camera", {})["mirror"] = env_mirror.lower() in ("1", "true", "yes")

    # Relay settings
    if env_relay := os.environ.get("CAMERA_CHALLENGE_RELAY_URL"):
        config_data.setdefault("relay", {})["url"] = env_relay

    # Chat settings (same variable names as the original relay deployment)
    if env_token := os.environ.get("DISCORD_TOKEN"):
        config_data.setdefault("chat", {})["token"] = env_token
    if env_channel := os.environ.get("CHANNEL_ID"):
        config_data.setdefault("chat", {})["channel_id"] = env_channel

    # Relay server port
    if env_port := os.environ.get("PORT"):
        config_data.setdefault("relay_server", {})["port"] = int(env_port)

    # Logging settings
    if env_log := os.environ.get("CAMERA_CHALLENGE_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log


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
    )


# =============================================================================
# Global Settings Instance
# =============================================================================

# Global settings instance - loaded on import
settings = load_config()
setup_logging(settings)
