"""
Configuration system for job-history.

This module provides typed configuration classes with:
- Dataclass-based settings with validation
- Environment variable loading
- YAML/TOML file loading
- Per-class overrides on top of ledger-wide defaults
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Literal, Optional, Union

from dotenv import find_dotenv, load_dotenv

from .errors import ConfigError, InvalidConfigError


# =============================================================================
# Store Configuration
# =============================================================================

StoreBackendType = Literal["redis", "memory"]


@dataclass
class StoreConfig:
    """Configuration for the key-value store holding the ledger."""

    backend: StoreBackendType = "redis"
    redis_url: str = field(
        default_factory=lambda: os.getenv(
            "REDIS_URL",
            "redis://localhost:6379/0"
        )
    )
    key_prefix: str = "job_history"
    socket_timeout: Optional[float] = 5.0

    def __post_init__(self):
        if self.backend not in ("redis", "memory"):
            raise InvalidConfigError("backend", f"unknown store backend {self.backend!r}")
        if not self.key_prefix:
            raise InvalidConfigError("key_prefix", "cannot be empty")
        if self.socket_timeout is not None and self.socket_timeout <= 0:
            raise InvalidConfigError("socket_timeout", "must be positive")


# =============================================================================
# Per-class History Configuration
# =============================================================================

DEFAULT_HISTORY_LEN = 200
DEFAULT_PURGE_AGE_SECONDS = 24 * 60 * 60
DEFAULT_PAGE_SIZE = 25


@dataclass
class ClassConfig:
    """History limits for one job class.

    ``history_len`` caps both the running set (reaching it triggers a sweep)
    and the finished set (older entries are trimmed). ``sweep_target`` is the
    running-set size the sweep evicts down to.
    """

    history_len: int = DEFAULT_HISTORY_LEN
    purge_age_seconds: float = DEFAULT_PURGE_AGE_SECONDS
    exclude_from_linear_history: bool = False
    page_size: int = DEFAULT_PAGE_SIZE
    sweep_target: Optional[int] = None

    def __post_init__(self):
        if self.history_len < 2:
            raise InvalidConfigError("history_len", "must be at least 2")
        if self.purge_age_seconds <= 0:
            raise InvalidConfigError("purge_age_seconds", "must be positive")
        if self.page_size < 1:
            raise InvalidConfigError("page_size", "must be at least 1")
        if self.sweep_target is not None and not 0 < self.sweep_target < self.history_len:
            raise InvalidConfigError("sweep_target", "must be between 1 and history_len - 1")

    @property
    def running_target(self) -> int:
        """Running-set size a threshold sweep brings the class back to."""
        if self.sweep_target is not None:
            return self.sweep_target
        return self.history_len - 1

    def merged(self, overrides: Optional[Dict[str, Any]]) -> "ClassConfig":
        """Return a copy with ``overrides`` applied (unknown keys ignored)."""
        if not overrides:
            return self
        names = {f.name for f in fields(self)}
        known = {k: v for k, v in overrides.items() if k in names}
        return replace(self, **known)


# =============================================================================
# Kill Signal Configuration
# =============================================================================

@dataclass
class KillConfig:
    """Configuration for the per-host cutting block."""

    cutting_block_prefix: str = "cutting_block_"
    cutting_block_ttl_seconds: int = 60

    def __post_init__(self):
        if self.cutting_block_ttl_seconds < 1:
            raise InvalidConfigError("cutting_block_ttl_seconds", "must be at least 1")


# =============================================================================
# Logging Configuration
# =============================================================================

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
LogFormat = Literal["text", "json"]


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: LogLevel = "INFO"
    format: LogFormat = "text"

    log_file: Optional[Path] = None
    include_timestamp: bool = True

    # What to log
    log_transitions: bool = True
    log_sweeps: bool = True


# =============================================================================
# Master Configuration
# =============================================================================

@dataclass
class Settings:
    """
    Master configuration for the history ledger.

    Aggregates store, history defaults, per-class overrides, kill signalling
    and logging into one object that can be loaded from environment
    variables, files, or constructed programmatically.
    """

    store: StoreConfig = field(default_factory=StoreConfig)
    defaults: ClassConfig = field(default_factory=ClassConfig)
    classes: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    kill: KillConfig = field(default_factory=KillConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def class_config(self, class_name: str, overrides: Optional[Dict[str, Any]] = None) -> ClassConfig:
        """Resolve the configuration for ``class_name``.

        Registry overrides win over ``classes[class_name]``, which wins over
        ``defaults``.
        """
        config = self.defaults.merged(self.classes.get(class_name))
        return config.merged(overrides)

    @classmethod
    def from_env(cls, prefix: str = "JOB_HISTORY_") -> "Settings":
        """
        Load settings from environment variables.

        Example:
            JOB_HISTORY_REDIS_URL=redis://cache:6379/2
            JOB_HISTORY_KEY_PREFIX=job_history
            JOB_HISTORY_HISTORY_LEN=500
        """
        settings = cls()

        # Store settings
        if backend := os.getenv(f"{prefix}STORE_BACKEND"):
            settings.store.backend = backend.lower()  # type: ignore
        if url := os.getenv(f"{prefix}REDIS_URL"):
            settings.store.redis_url = url
        if key_prefix := os.getenv(f"{prefix}KEY_PREFIX"):
            settings.store.key_prefix = key_prefix

        # History defaults
        if history_len := os.getenv(f"{prefix}HISTORY_LEN"):
            settings.defaults.history_len = int(history_len)
        if purge_age := os.getenv(f"{prefix}PURGE_AGE_SECONDS"):
            settings.defaults.purge_age_seconds = float(purge_age)
        if page_size := os.getenv(f"{prefix}PAGE_SIZE"):
            settings.defaults.page_size = int(page_size)

        # Kill settings
        if ttl := os.getenv(f"{prefix}CUTTING_BLOCK_TTL"):
            settings.kill.cutting_block_ttl_seconds = int(ttl)

        # Logging settings
        if level := os.getenv(f"{prefix}LOG_LEVEL"):
            settings.logging.level = level.upper()  # type: ignore
        if log_format := os.getenv(f"{prefix}LOG_FORMAT"):
            settings.logging.format = log_format.lower()  # type: ignore

        # Re-run validation on anything the environment touched
        settings.store = StoreConfig(**vars(settings.store))
        settings.defaults = ClassConfig(**vars(settings.defaults))
        settings.kill = KillConfig(**vars(settings.kill))

        return settings

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "Settings":
        """
        Load settings from a YAML or TOML file.

        Args:
            path: Path to configuration file (.yaml, .yml, or .toml)

        Returns:
            Settings object with values from file
        """
        path = Path(path)

        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        suffix = path.suffix.lower()

        if suffix in (".yaml", ".yml"):
            import yaml
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        elif suffix == ".toml":
            import tomllib
            with open(path, "rb") as f:
                data = tomllib.load(f)
        else:
            raise ConfigError(f"Unsupported config file format: {suffix}")

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "Settings":
        """Create Settings from a dictionary."""
        settings = cls()

        if "store" in data:
            settings.store = StoreConfig(**{
                k: v for k, v in data["store"].items()
                if hasattr(settings.store, k)
            })

        if "defaults" in data:
            settings.defaults = ClassConfig().merged(data["defaults"])

        if "classes" in data:
            for class_name, overrides in data["classes"].items():
                # Validate eagerly so a bad file fails at load time
                settings.defaults.merged(overrides)
                settings.classes[class_name] = dict(overrides)

        if "kill" in data:
            settings.kill = KillConfig(**{
                k: v for k, v in data["kill"].items()
                if hasattr(settings.kill, k)
            })

        if "logging" in data:
            for key, value in data["logging"].items():
                if hasattr(settings.logging, key):
                    setattr(settings.logging, key, value)

        return settings

    def to_dict(self) -> Dict[str, Any]:
        """Convert settings to dictionary."""
        import dataclasses

        def convert(obj):
            if dataclasses.is_dataclass(obj):
                return {k: convert(v) for k, v in dataclasses.asdict(obj).items()}
            elif isinstance(obj, Path):
                return str(obj)
            return obj

        return convert(self)


# =============================================================================
# Global Settings & Helpers
# =============================================================================

_global_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance, creating with defaults if needed."""
    global _global_settings
    if _global_settings is None:
        _global_settings = Settings.from_env()
    return _global_settings


def configure(settings: Optional[Settings] = None, **kwargs) -> Settings:
    """
    Configure global settings.

    Args:
        settings: Settings object to use globally
        **kwargs: Override specific settings sections

    Returns:
        The configured Settings object
    """
    global _global_settings

    if settings is not None:
        _global_settings = settings
    elif _global_settings is None:
        _global_settings = Settings.from_env()

    for key, value in kwargs.items():
        if hasattr(_global_settings, key):
            setattr(_global_settings, key, value)

    return _global_settings


def load_env(path: Optional[str] = None, *, override: bool = False) -> bool:
    """
    Load environment variables from a .env file.

    Args:
        path: Optional path to a .env file. If not provided, uses find_dotenv().
        override: Whether to override existing environment variables.

    Returns:
        True if a .env file was found and loaded, False otherwise.
    """
    env_path = path or find_dotenv(usecwd=True)
    if not env_path:
        return False
    return load_dotenv(env_path, override=override)


__all__ = [
    "StoreConfig",
    "ClassConfig",
    "KillConfig",
    "LoggingConfig",
    "Settings",
    "DEFAULT_HISTORY_LEN",
    "DEFAULT_PURGE_AGE_SECONDS",
    "DEFAULT_PAGE_SIZE",
    "get_settings",
    "configure",
    "load_env",
]
