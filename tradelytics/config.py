"""Configuration for Tradelytics.

Settings live in ``~/.config/tradelytics/config.toml``:

    [account]
    id = "main"

    [currency]
    display = "EUR"
    cache_hours = 24

    [storage]
    db_path = "~/.config/tradelytics/tradelytics.db"

    [logging]
    level = "WARNING"
"""

import logging
from pathlib import Path
from typing import Optional

import toml
from pydantic import BaseModel, Field, ValidationError, field_validator

from tradelytics.currency.providers import DEFAULT_PROVIDER_URL
from tradelytics.exceptions import ConfigError
from tradelytics.models import BASE_CURRENCY

CONFIG_DIR = Path.home() / ".config" / "tradelytics"
DEFAULT_CONFIG_PATH = CONFIG_DIR / "config.toml"
DEFAULT_DB_PATH = CONFIG_DIR / "tradelytics.db"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class AccountConfig(BaseModel):
    id: str = Field(default="", description="Default account identifier")

    model_config = {"frozen": True, "extra": "ignore"}


class CurrencyConfig(BaseModel):
    display: str = Field(default=BASE_CURRENCY, description="Display currency code")
    cache_hours: float = Field(default=24.0, gt=0, description="Rate freshness window in hours")
    provider_url: str = Field(default=DEFAULT_PROVIDER_URL, description="Rate endpoint template")
    timeout: float = Field(default=10.0, gt=0, description="Rate request timeout in seconds")

    model_config = {"frozen": True, "extra": "ignore"}

    @field_validator("display")
    @classmethod
    def _normalize_display(cls, value: str) -> str:
        value = value.strip().upper()
        if not value:
            raise ValueError("display currency must not be empty")
        return value


class StorageConfig(BaseModel):
    db_path: Path = Field(default=DEFAULT_DB_PATH, description="SQLite database file")

    model_config = {"frozen": True, "extra": "ignore"}

    @field_validator("db_path")
    @classmethod
    def _expand(cls, value: Path) -> Path:
        return value.expanduser()


class LoggingConfig(BaseModel):
    level: str = Field(default="WARNING", description="Log level name")

    model_config = {"frozen": True, "extra": "ignore"}

    @field_validator("level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        value = value.strip().upper()
        if value not in LOG_LEVELS:
            raise ValueError(f"unknown log level {value!r}")
        return value


class AppConfig(BaseModel):
    """Validated application configuration."""

    account: AccountConfig = Field(default_factory=AccountConfig)
    currency: CurrencyConfig = Field(default_factory=CurrencyConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True, "extra": "ignore"}

    @property
    def log_level(self) -> int:
        return getattr(logging, self.logging.level)


def load_config(path: Optional[Path] = None) -> AppConfig:
    """Load configuration from a TOML file.

    Args:
        path: Config file; defaults to ``~/.config/tradelytics/config.toml``.

    Returns:
        AppConfig, with defaults for anything the file leaves out or when
        the file does not exist.

    Raises:
        ConfigError: If the file is not valid TOML or holds invalid values.
    """
    config_path = path or DEFAULT_CONFIG_PATH
    if not config_path.exists():
        return AppConfig()

    try:
        raw = toml.load(config_path)
    except (toml.TomlDecodeError, OSError) as e:
        raise ConfigError(f"Cannot read {config_path}: {e}") from e

    try:
        return AppConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {config_path}:\n{e}") from e


def create_template_config(path: Optional[Path] = None) -> Path:
    """Write a template configuration file.

    Args:
        path: Destination; defaults to ``~/.config/tradelytics/config.toml``.

    Returns:
        Path of the written file.
    """
    config_path = path or DEFAULT_CONFIG_PATH
    config_path.parent.mkdir(parents=True, exist_ok=True)

    template = {
        "account": {
            "id": "main",
        },
        "currency": {
            "display": BASE_CURRENCY,
            "cache_hours": 24,
            "provider_url": DEFAULT_PROVIDER_URL,
            "timeout": 10.0,
        },
        "storage": {
            "db_path": str(DEFAULT_DB_PATH),
        },
        "logging": {
            "level": "WARNING",
        },
    }

    with open(config_path, "w") as f:
        toml.dump(template, f)

    return config_path
