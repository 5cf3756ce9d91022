"""Application configuration settings.

This module provides the AppConfig class and settings singleton.
"""

import json
from pathlib import Path
from typing import Annotated

import structlog
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from hwsense.config.env_loader import Environment, get_environment, load_env_files
from hwsense.config.validators import resolve_path, validate_log_format, validate_log_level

log = structlog.get_logger(__name__)


class AppConfig(BaseSettings):
    """Unified application configuration.

    Loads configuration from environment variables (HWSENSE_ prefix), .env
    files and defaults. Validates all values using Pydantic.
    """

    model_config = SettingsConfigDict(
        env_prefix="HWSENSE_",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Environment
    environment: Environment = Field(
        default_factory=get_environment, description="Current environment"
    )

    # Telemetry
    log_level: str = Field(
        default="WARNING",
        description="Console logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    log_format: str = Field(default="console", description="Log format (json or console)")
    log_to_file: bool = Field(default=False, description="Also write JSON-lines logs to log_dir")
    log_dir: Path = Field(default=Path("~/.cache/hwsense/logs"), description="Log directory path")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        return validate_log_level(v)

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate log format."""
        return validate_log_format(v)

    @field_validator("log_dir", mode="before")
    @classmethod
    def resolve_paths(cls, v: Path | str) -> Path:
        """Resolve relative paths to absolute."""
        return resolve_path(v)

    # Sysfs roots
    hwmon_root: Path = Field(
        default=Path("/sys/class/hwmon"), description="Directory holding hwmon* devices"
    )
    cpu_root: Path = Field(
        default=Path("/sys/devices/system/cpu"),
        description="Directory holding cpu*/cpufreq scaling domains",
    )
    drm_root: Path = Field(
        default=Path("/sys/class/drm"), description="Directory holding DRM card devices"
    )

    # Backend switches
    enable_hwmon: bool = Field(default=True, description="Discover hwmon devices")
    enable_cpufreq: bool = Field(default=True, description="Discover cpufreq scaling domains")
    enable_drm: bool = Field(default=True, description="Discover DRM GPU frequency controls")
    enable_nvidia: bool = Field(default=True, description="Discover GPUs through nvidia-smi")

    # nvidia-smi
    smi_command: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["nvidia-smi"],
        description="Command used to invoke nvidia-smi",
    )
    smi_cache_ttl_seconds: float = Field(
        default=1.0,
        ge=0,
        description="How long one nvidia-smi response is reused for attribute reads",
    )
    smi_timeout_seconds: float | None = Field(
        default=None,
        gt=0,
        description="Bounded wait for nvidia-smi; None waits indefinitely",
    )

    @field_validator("smi_command", mode="before")
    @classmethod
    def parse_smi_command(cls, v: str | list[str]) -> list[str]:
        """Parse the nvidia-smi command from a string or list.

        Handles:
        - JSON array: '["sudo", "nvidia-smi"]'
        - Space-separated: "sudo nvidia-smi"
        - Already a list: ["nvidia-smi"]
        """
        if isinstance(v, list):
            return v

        if isinstance(v, str):
            try:
                parsed = json.loads(v)
                if isinstance(parsed, list):
                    return parsed
            except json.JSONDecodeError:
                pass

            return v.split()

        raise ValueError(f"Invalid smi command type: {type(v)}")

    # Polling
    poll_interval_seconds: float = Field(
        default=5.0, gt=0, description="Default interval for the periodic logger"
    )

    # Web snapshot service
    service_host: str = Field(default="127.0.0.1", description="Service host address")
    service_port: int = Field(default=4567, ge=1, le=65535, description="Service port number")


_settings: AppConfig | None = None


def load_app_config() -> AppConfig:
    """Load and validate application configuration.

    This function:
    1. Loads .env files in priority order (via env_loader)
    2. Creates AppConfig instance (reads from environment variables)
    3. Validates all values using Pydantic

    Returns:
        Validated AppConfig instance.

    Raises:
        ValidationError: If configuration validation fails.
    """
    load_env_files()

    try:
        config = AppConfig()
        log.debug(
            "app_config_loaded",
            environment=config.environment.value,
            log_level=config.log_level,
            hwmon_root=str(config.hwmon_root),
        )
        return config
    except Exception as e:
        log.error("app_config_load_failed", error=str(e), error_type=type(e).__name__)
        raise


def get_settings() -> AppConfig:
    """Get the application settings singleton.

    Returns:
        AppConfig instance (singleton pattern).
    """
    global _settings
    if _settings is None:
        _settings = load_app_config()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next get_settings() reloads them."""
    global _settings
    _settings = None
