"""TOML configuration loader.

Loads ``defaults.toml`` shipped with the package, or the file named by the
``ACCOLADE_CONFIG`` environment variable. ``ACCOLADE_DB`` overrides the
database path independently of the file.
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, field_validator

from accolade.errors import ConfigError
from accolade.schemas.eligibility import Role

_DEFAULTS_PATH = Path(__file__).parent / "defaults.toml"

CONFIG_ENV = "ACCOLADE_CONFIG"
DB_ENV = "ACCOLADE_DB"


class AccoladeConfig(BaseModel):
    """Runtime configuration."""

    db_path: str = Field(
        default="~/.accolade/accolade.db",
        description="Path to the SQLite database file",
    )
    privileged_roles: list[Role] = Field(
        default_factory=lambda: [Role.ADMIN, Role.SUPERVISOR],
        description="Roles excluded from the candidate and rater pools",
    )
    poll_interval_seconds: float = Field(
        default=15.0, gt=0,
        description="Delay between quorum polls in `accolade status --watch`",
    )
    log_level: str = Field(default="WARNING", description="Logging level name")

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level: {value}")
        return level


def load_config(config_path: Path | None = None) -> AccoladeConfig:
    """Load configuration from a TOML file.

    Args:
        config_path: Path to a TOML file. Defaults to ``$ACCOLADE_CONFIG``,
            then the packaged defaults.toml.

    Returns:
        The validated AccoladeConfig.

    Raises:
        FileNotFoundError: If the config file does not exist.
        ConfigError: If the file is not valid TOML or holds invalid values.
    """
    env_path = os.environ.get(CONFIG_ENV)
    path = config_path or (Path(env_path) if env_path else _DEFAULTS_PATH)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, "rb") as f:
        try:
            raw = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid TOML in {path}: {e}") from e

    section = raw.get("accolade", {})
    if not isinstance(section, dict):
        raise ConfigError(f"[accolade] in {path} must be a table")

    db_override = os.environ.get(DB_ENV)
    if db_override:
        section = {**section, "db_path": db_override}

    try:
        return AccoladeConfig(**section)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}") from e
