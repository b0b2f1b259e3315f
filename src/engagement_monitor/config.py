"""
Engagement Monitor Configuration
================================

This module handles configuration loading for the engagement monitor.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    ENGAGEMENT_SAMPLING_PERIOD_MS  -> sampling.period_ms
    ENGAGEMENT_SOURCE_TIMEOUT_MS   -> sampling.source_timeout_ms
    ENGAGEMENT_SMOOTHING_ALPHA     -> smoothing.alpha
    ENGAGEMENT_HISTORY_WINDOW_MS   -> history.window_ms
    ENGAGEMENT_SOURCE_BACKEND      -> source.backend
    ENGAGEMENT_SOURCE_SEED         -> source.mock.seed
    ENGAGEMENT_PROFILES_PATH       -> profiles (YAML file with a `profiles` list)
    ENGAGEMENT_AGENT_PORT          -> server.port
    ENGAGEMENT_LOG_LEVEL           -> logging.level
    PORT                           -> server.port (container platforms)

Example:
    from engagement_monitor.config import settings

    print(settings.sampling.period_ms)
    print(settings.smoothing.alpha)
    print([p.name for p in settings.profiles])
"""

import os
import logging
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from engagement_monitor.models.profile import ReferenceProfile, default_profiles


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class AppConfig(BaseModel):
    """Service identification configuration."""

    name: str = Field(default="engagement-monitor", description="Service name")
    version: str = Field(default="v0.1.0", description="Service version")


class SamplingConfig(BaseModel):
    """Sampling loop configuration."""

    period_ms: float = Field(
        default=300.0,
        gt=0,
        description="Target delay between ticks (milliseconds)",
    )
    source_timeout_ms: Optional[float] = Field(
        default=None,
        gt=0,
        description="Per-call score source timeout (None = no timeout)",
    )
    autostart: bool = Field(
        default=True,
        description="Start sampling when the service starts",
    )


class MockSourceConfig(BaseModel):
    """Mock score source configuration."""

    seed: Optional[int] = Field(default=None, description="RNG seed")
    no_detection_rate: float = Field(
        default=0.05,
        ge=0,
        le=1.0,
        description="Probability a tick reports no subject",
    )
    failure_rate: float = Field(
        default=0.0,
        ge=0,
        le=1.0,
        description="Probability a tick fails",
    )
    drift_period_ticks: int = Field(
        default=100,
        ge=1,
        description="Ticks spent on each simulated mood",
    )
    latency_ms: float = Field(
        default=40.0,
        ge=0,
        description="Simulated inference latency (milliseconds)",
    )


class SourceConfig(BaseModel):
    """Score source backend configuration."""

    backend: str = Field(
        default="mock",
        description="Score source backend: 'mock'",
    )
    mock: MockSourceConfig = Field(default_factory=MockSourceConfig)


class SmoothingConfig(BaseModel):
    """Exponential smoothing configuration."""

    alpha: float = Field(
        default=0.1,
        gt=0,
        le=1.0,
        description="EMA smoothing factor (0, 1]; lower = smoother",
    )


class HistoryConfig(BaseModel):
    """Rolling history configuration."""

    window_ms: float = Field(
        default=15000.0,
        gt=0,
        description="History retention window (milliseconds)",
    )


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=8002, ge=1, le=65535, description="Bind port")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="json", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for the engagement monitor.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    app: AppConfig = Field(default_factory=AppConfig)
    sampling: SamplingConfig = Field(default_factory=SamplingConfig)
    source: SourceConfig = Field(default_factory=SourceConfig)
    smoothing: SmoothingConfig = Field(default_factory=SmoothingConfig)
    history: HistoryConfig = Field(default_factory=HistoryConfig)
    profiles: List[ReferenceProfile] = Field(default_factory=default_profiles)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("profiles")
    @classmethod
    def _unique_profile_names(cls, value: List[ReferenceProfile]) -> List[ReferenceProfile]:
        names = [p.name for p in value]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate profile names: {', '.join(duplicates)}")
        return value


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
            Path("/app/config.yaml"),
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
        logger.warning("No config file found, using defaults and environment variables")

    # Apply environment variable overrides
    _apply_env_overrides(config_data)

    # Build settings object
    settings = Settings.model_validate(config_data)

    return settings


def load_profiles(path: str) -> List[dict]:
    """
    Read a profile table from a YAML file.

    The file must contain a top-level ``profiles`` list of
    ``{name, targets}`` mappings.
    """
    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}
    profiles = data.get("profiles")
    if not isinstance(profiles, list):
        raise ValueError(f"{path}: expected a top-level 'profiles' list")
    return profiles


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Sampling settings
    if env_period := os.environ.get("ENGAGEMENT_SAMPLING_PERIOD_MS"):
        config_data.setdefault("sampling", {})["period_ms"] = float(env_period)
    if env_timeout := os.environ.get("ENGAGEMENT_SOURCE_TIMEOUT_MS"):
        config_data.setdefault("sampling", {})["source_timeout_ms"] = float(env_timeout)

    # Signal settings
    if env_alpha := os.environ.get("ENGAGEMENT_SMOOTHING_ALPHA"):
        config_data.setdefault("smoothing", {})["alpha"] = float(env_alpha)
    if env_window := os.environ.get("ENGAGEMENT_HISTORY_WINDOW_MS"):
        config_data.setdefault("history", {})["window_ms"] = float(env_window)

    # Source settings
    if env_backend := os.environ.get("ENGAGEMENT_SOURCE_BACKEND"):
        config_data.setdefault("source", {})["backend"] = env_backend
    if env_seed := os.environ.get("ENGAGEMENT_SOURCE_SEED"):
        config_data.setdefault("source", {}).setdefault("mock", {})["seed"] = int(env_seed)

    # Profile table
    if env_profiles := os.environ.get("ENGAGEMENT_PROFILES_PATH"):
        config_data["profiles"] = load_profiles(env_profiles)

    # Server settings (container platforms use PORT env var)
    if env_port := os.environ.get("PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)
    elif env_port := os.environ.get("ENGAGEMENT_AGENT_PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)

    # Logging settings
    if env_log := os.environ.get("ENGAGEMENT_LOG_LEVEL"):
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
