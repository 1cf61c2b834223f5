"""Configuration management for ReelScout."""

import os
import re
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from reelscout.models.artwork import POSTER_GRID, POSTER_SIZES, STILL_ROW, STILL_SIZES

ENV_REFERENCE = re.compile(r"\$\{(?P<name>[A-Za-z_][A-Za-z0-9_]*)(?::-(?P<fallback>[^}]*))?\}")


class TMDBConfig(BaseModel):
    """TMDB API configuration."""

    api_key: Optional[str] = Field(
        default=None,
        description="TMDB API key (overrides the stored key when set)",
    )
    base_url: str = Field(
        default="https://api.themoviedb.org/3", description="TMDB API base URL"
    )
    image_base_url: str = Field(
        default="https://image.tmdb.org/t/p", description="TMDB image CDN base URL"
    )
    timeout_seconds: float = Field(default=10.0, description="HTTP timeout")
    include_adult: bool = Field(default=False, description="Include adult titles in searches")

    @field_validator("api_key")
    @classmethod
    def validate_api_key(cls, v: Optional[str]) -> Optional[str]:
        """Treat blank keys as missing."""
        if v is None:
            return None
        return v.strip() or None

    @field_validator("base_url", "image_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize base URLs."""
        return v.rstrip("/")


class StorageConfig(BaseModel):
    """On-disk storage configuration."""

    base_dir: str = Field(default="~/.reelscout", description="Root directory for all caches")

    @property
    def root(self) -> Path:
        """Expanded base directory."""
        return Path(self.base_dir).expanduser()

    @property
    def metadata_dir(self) -> Path:
        """Directory holding one JSON document per metadata key."""
        return self.root / "metadata"

    @property
    def artwork_dir(self) -> Path:
        """Directory holding cached artwork blobs."""
        return self.root / "artwork"

    @property
    def key_file(self) -> Path:
        """File holding the stored TMDB API key."""
        return self.root / "tmdb_api_key"


class ResolutionConfig(BaseModel):
    """Metadata resolution configuration."""

    batch_delay_seconds: float = Field(
        default=0.25, description="Delay between remote lookups in batch mode"
    )
    poster_variant: str = Field(default=POSTER_GRID, description="Poster size cached on resolve")
    still_variant: str = Field(default=STILL_ROW, description="Still size cached on resolve")

    @field_validator("batch_delay_seconds")
    @classmethod
    def validate_delay(cls, v: float) -> float:
        """Validate batch delay is not negative."""
        if v < 0:
            raise ValueError("batch_delay_seconds must not be negative")
        return v

    @field_validator("poster_variant")
    @classmethod
    def validate_poster_variant(cls, v: str) -> str:
        """Validate the poster size is one TMDB serves."""
        if v not in POSTER_SIZES:
            raise ValueError(f"poster_variant must be one of {', '.join(POSTER_SIZES)}")
        return v

    @field_validator("still_variant")
    @classmethod
    def validate_still_variant(cls, v: str) -> str:
        """Validate the still size is one TMDB serves."""
        if v not in STILL_SIZES:
            raise ValueError(f"still_variant must be one of {', '.join(STILL_SIZES)}")
        return v


class LoggingConfig(BaseModel):
    """Logging configuration."""

    format: str = Field(default="text", description="Log format (json or text)")
    level: str = Field(default="warning", description="Log level")
    output: Optional[str] = Field(default=None, description="Optional log file path")

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        """Validate log format."""
        if v not in ("json", "text"):
            raise ValueError("Log format must be 'json' or 'text'")
        return v

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        if v.lower() not in ("debug", "info", "warning", "error", "critical"):
            raise ValueError("Invalid log level")
        return v.lower()


class Config(BaseModel):
    """Main configuration model."""

    tmdb: TMDBConfig = Field(default_factory=TMDBConfig, description="TMDB configuration")
    storage: StorageConfig = Field(
        default_factory=StorageConfig, description="Storage configuration"
    )
    resolution: ResolutionConfig = Field(
        default_factory=ResolutionConfig, description="Resolution configuration"
    )
    logging: LoggingConfig = Field(default_factory=LoggingConfig, description="Logging configuration")

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Config":
        """Load configuration from YAML file.

        Args:
            path: Path to YAML configuration file

        Returns:
            Config instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path) as f:
            raw_config = yaml.safe_load(f)

        if raw_config is None:
            raw_config = {}

        raw_config = cls._substitute_env_vars(raw_config)

        return cls(**raw_config)

    @staticmethod
    def _substitute_env_vars(obj: Any) -> Any:
        """Recursively expand ${VAR} and ${VAR:-fallback} references.

        A reference with no fallback to an unset variable is an error.
        """
        if isinstance(obj, dict):
            return {key: Config._substitute_env_vars(value) for key, value in obj.items()}
        if isinstance(obj, list):
            return [Config._substitute_env_vars(item) for item in obj]
        if not isinstance(obj, str):
            return obj

        def expand(match: re.Match) -> str:
            name, fallback = match.group("name"), match.group("fallback")
            value = os.environ.get(name, fallback)
            if value is None:
                raise ValueError(f"Environment variable '{name}' is not set")
            return value

        return ENV_REFERENCE.sub(expand, obj)

    @classmethod
    def from_defaults(cls) -> "Config":
        """Create configuration with default values."""
        return cls()


def load_config(path: Optional[str | Path] = None) -> Config:
    """Load configuration from file or use defaults.

    Args:
        path: Optional path to configuration file. If None, uses defaults.

    Returns:
        Config instance
    """
    if path is None:
        return Config.from_defaults()

    return Config.from_yaml(path)
