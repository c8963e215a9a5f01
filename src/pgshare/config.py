"""Configuration management for pgshare."""

import tomllib
from pathlib import Path
from typing import Self

import tomli_w
from pydantic import BaseModel, Field, model_validator

from .constants import BACKOFF_MAX_MS, BACKOFF_MIN_MS, CONFIG_FILE
from .core import Backoff
from .models import ClusterMode
from .services import StrategySet, default_strategy


class ClusterConfig(BaseModel):
    """Which cluster to use and what to do with it afterwards."""

    datadir: Path = Field(default=Path("cluster"), description="Cluster data directory")
    database: str = Field(default="postgres", description="Database to connect to")
    destroy: bool = Field(default=False, description="Delete the cluster after use")
    mode: ClusterMode | None = Field(default=None, description="Durability mode to apply")


class LockConfig(BaseModel):
    """Where lock files live and how to back off when contended."""

    dir: Path | None = Field(default=None, description="Lock file directory (default: temp)")
    backoff_min_ms: int = Field(default=BACKOFF_MIN_MS, ge=0)
    backoff_max_ms: int = Field(default=BACKOFF_MAX_MS, ge=0)

    @model_validator(mode="after")
    def validate_backoff_range(self) -> Self:
        """Ensure the backoff range is not inverted."""
        if self.backoff_min_ms > self.backoff_max_ms:
            raise ValueError(
                f"backoff_min_ms ({self.backoff_min_ms}) exceeds "
                f"backoff_max_ms ({self.backoff_max_ms})"
            )
        return self

    def backoff(self) -> Backoff:
        return Backoff(min_ms=self.backoff_min_ms, max_ms=self.backoff_max_ms)


class RuntimeConfig(BaseModel):
    """Where to look for PostgreSQL runtimes."""

    bindirs: list[Path] = Field(default_factory=list, description="Extra bindirs, tried first")
    use_path: bool = True
    use_platform: bool = True

    def strategy(self) -> StrategySet:
        return default_strategy(self.bindirs, self.use_path, self.use_platform)


class PgShareConfig(BaseModel):
    """Root configuration for pgshare."""

    cluster: ClusterConfig = Field(default_factory=ClusterConfig)
    lock: LockConfig = Field(default_factory=LockConfig)
    runtime: RuntimeConfig = Field(default_factory=RuntimeConfig)


def find_config(cwd: Path | None = None) -> Path | None:
    """Return ./pgshare.toml if it exists."""
    path = (cwd or Path.cwd()) / CONFIG_FILE
    return path if path.is_file() else None


def load_config(config_path: Path | None) -> PgShareConfig:
    """Load config from a TOML file.

    Args:
        config_path: Path to the config file, or None

    Returns:
        Loaded configuration, or defaults if there is no file
    """
    if config_path is None or not config_path.exists():
        return PgShareConfig()
    with open(config_path, "rb") as f:
        data = tomllib.load(f)
    return PgShareConfig.model_validate(data)


def write_config_template(config_path: Path) -> Path:
    """Write a default config template.

    Args:
        config_path: Where to write it

    Returns:
        Path to the written config file
    """
    template = {
        "cluster": {"datadir": "cluster", "database": "postgres", "destroy": False},
        "lock": {"backoff_min_ms": BACKOFF_MIN_MS, "backoff_max_ms": BACKOFF_MAX_MS},
        # Extra bindirs are searched before PATH and platform locations
        "runtime": {"bindirs": [], "use_path": True, "use_platform": True},
    }
    with open(config_path, "wb") as f:
        tomli_w.dump(template, f)
    return config_path


# Active config (set by cli.py main callback)
_config: PgShareConfig | None = None


def get_active_config() -> PgShareConfig:
    """Get the config loaded by the CLI, or defaults if none was loaded."""
    if _config is None:
        return PgShareConfig()
    return _config


def set_active_config(config: PgShareConfig) -> None:
    """Set the active config. Called by CLI main callback."""
    global _config
    _config = config
