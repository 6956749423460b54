"""Configuration loading and validation."""

from datetime import date
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, model_validator


class AuthConfig(BaseModel):
    """GitHub authentication configuration."""

    token_env: str = "GITHUB_TOKEN"


class GitHubConfig(BaseModel):
    """GitHub configuration section."""

    org: str = Field(min_length=1)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    base_url: str = "https://api.github.com"
    strict_discovery: bool = Field(
        default=False,
        description="Treat repository discovery failure as fatal instead of an empty org",
    )


class HTTPConfig(BaseModel):
    """HTTP client configuration."""

    timeout_seconds: float = Field(default=30.0, gt=0)
    max_retries: int = Field(default=3, ge=0, le=10)


class CollectionConfig(BaseModel):
    """Commit collection configuration section."""

    start_date: date = date(2022, 1, 1)
    include_details: bool = False
    repo_batch_size: int = Field(default=5, ge=1, description="Repositories collected at once")
    branch_batch_size: int = Field(default=3, ge=1, description="Branches fetched at once")
    detail_batch_size: int = Field(default=10, ge=1, description="Commit details fetched at once")
    window_delay_seconds: float = Field(default=0.1, ge=0)
    detail_batch_delay_seconds: float = Field(default=0.2, ge=0)
    utc_offset_hours: float = Field(
        default=0.0,
        ge=-12,
        le=14,
        description="Offset used to compute day boundaries for single-day sync",
    )
    min_rate_limit_remaining: int = Field(
        default=100,
        ge=0,
        description="CLI refuses to start a run below this many remaining requests",
    )


class StorageConfig(BaseModel):
    """Storage configuration section."""

    root: Path = Field(default=Path("./data"))
    ledger_file: str = "collection_ledger.json"
    commits_file: str = "commits.jsonl"

    @property
    def ledger_path(self) -> Path:
        """Full path to the collection ledger."""
        return self.root / self.ledger_file

    @property
    def commits_path(self) -> Path:
        """Full path to the commits JSONL file."""
        return self.root / self.commits_file


class Config(BaseModel):
    """Root configuration model."""

    github: GitHubConfig
    http: HTTPConfig = Field(default_factory=HTTPConfig)
    collection: CollectionConfig = Field(default_factory=CollectionConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)

    @model_validator(mode="after")
    def validate_files(self) -> "Config":
        """Ledger and commit sink must not share a file."""
        if self.storage.ledger_file == self.storage.commits_file:
            msg = "storage.ledger_file and storage.commits_file must differ"
            raise ValueError(msg)
        return self


def load_config(path: Path) -> Config:
    """Load and validate configuration from YAML file.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        Validated Config object.

    Raises:
        FileNotFoundError: If the config file doesn't exist.
        ValidationError: If the config is invalid.
    """
    if not path.exists():
        msg = f"Config file not found: {path}"
        raise FileNotFoundError(msg)

    with path.open() as f:
        raw_config: dict[str, Any] = yaml.safe_load(f) or {}

    return Config.model_validate(raw_config)
