"""
Configuration management for emudock.

Settings come from ``EMUDOCK_``-prefixed environment variables and an optional
``.env`` file; the descriptor file (``emulators.yaml``) is loaded separately by
:mod:`emudock.services.loader`.
"""

from functools import lru_cache
from pathlib import Path

from ff_logger import ConsoleLogger, JSONLogger, ScopedLogger
from pydantic import Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from emudock.exceptions import ConfigError

LOGGER_TYPES: dict[str, type[ScopedLogger]] = {
    "console": ConsoleLogger,
    "json": JSONLogger,
}


class EmuDockSettings(BaseSettings):
    """Main emudock configuration using Pydantic Settings."""

    model_config = SettingsConfigDict(
        env_prefix="EMUDOCK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Project settings
    project_dir: Path = Field(default_factory=Path.cwd)
    descriptor_file: str = "emulators.yaml"
    project_id: str = "my-local-test-project"

    # Compose settings
    compose_project: str = "emudock"
    service_name: str = "firebase-emulators"
    cache_volume: str = "firebase-cache"

    # Build recipe settings
    base_image: str = "node:20-alpine"
    system_packages: list[str] = Field(
        default_factory=lambda: ["openjdk11-jre", "bash", "curl", "openssl"]
    )
    cli_package: str = "firebase-tools"
    workdir: str = "/app"
    # Host the emulator variables inside the container point at
    container_host: str = "localhost"

    # Readiness settings
    # Host the emulators are reached on from this machine
    endpoint_host: str = "localhost"
    readiness_timeout: float = 60.0
    poll_interval: float = 0.5

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "console"  # "console" or "json"

    @field_validator("log_level")
    @classmethod
    def normalize_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator("log_format")
    @classmethod
    def check_format(cls, v: str) -> str:
        fmt = v.lower()
        if fmt not in LOGGER_TYPES:
            raise ValueError(f"log_format must be one of {sorted(LOGGER_TYPES)}, got {v!r}")
        return fmt

    @field_validator("readiness_timeout", "poll_interval")
    @classmethod
    def check_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"must be positive, got {v}")
        return v

    @property
    def descriptor_path(self) -> Path:
        """Get the descriptor file path, resolved against the project directory."""
        path = Path(self.descriptor_file)
        return path if path.is_absolute() else self.project_dir / path


@lru_cache
def get_settings() -> EmuDockSettings:
    """Get cached settings instance.

    Raises:
        ConfigError: If an ``EMUDOCK_`` variable holds an invalid value
    """
    try:
        return EmuDockSettings()
    except PydanticValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        raise ConfigError(f"Invalid settings: {problems}", source="environment") from exc


@lru_cache(maxsize=128)
def get_logger(scope: str) -> ScopedLogger:
    """Get a scoped logger for a specific module or component.

    Args:
        scope: The name/scope for the logger (e.g., "docker", "bootstrap")

    Returns:
        Scoped logger instance
    """
    try:
        settings = get_settings()
        level, log_format = settings.log_level, settings.log_format
    except ConfigError:
        # Invalid settings are reported by whoever calls get_settings() directly
        level, log_format = "INFO", "console"

    logger_cls = LOGGER_TYPES[log_format]
    return logger_cls(
        name=scope,
        level=level,
        context={"app_name": "emudock", "component": scope},
    )


def reset_settings_cache() -> None:
    """Drop cached settings and loggers so the next call re-reads the environment."""
    get_settings.cache_clear()
    get_logger.cache_clear()
