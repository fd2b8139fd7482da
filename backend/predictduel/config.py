"""Application settings: environment variables, .env and data_dir/config.yaml."""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from predictduel.services.solana.config import SolanaConfig

logger = logging.getLogger(__name__)


class DatabaseConfig(BaseModel):
    """MongoDB connection parameters."""

    mongodb_url: str = "mongodb://localhost:27017"
    database_name: str = "predictduel"
    server_selection_timeout_ms: int = 5000


class SettlementConfig(BaseModel):
    """Resolution and claim policy."""

    # Verification stays advisory unless explicitly turned into a hard gate
    enforce_tx_verification: bool = False
    stats_update_retries: int = 3
    currency_symbol: str = "SOL"


class ApiConfig(BaseModel):
    """HTTP server parameters."""

    host: str = "0.0.0.0"
    port: int = 8000
    allowed_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000"]
    )
    default_page_size: int = 50
    max_page_size: int = 100

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def parse_origins(cls, v):
        if isinstance(v, str):
            return [o.strip() for o in v.split(",") if o.strip()]
        return v


YAML_SECTIONS = ("database", "solana", "settlement", "api")


def read_config_file(path: Path) -> dict[str, Any]:
    """Parse ``config.yaml``; a missing or empty file yields no overrides."""
    if not path.exists():
        logger.warning(
            f"No config file at {path}, running on defaults "
            "(create one with 'python -m predictduel init')"
        )
        return {}

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        logger.error(f"Invalid YAML in {path}: {e}")
        raise

    if not data:
        logger.warning(f"Config file {path} has no settings")
        return {}
    return data


class Settings(BaseSettings):
    """Environment first (``.env``, ``SECTION__FIELD`` variables), then config.yaml."""

    environment: str = "development"
    log_level: str = "INFO"
    data_dir: Path = Path("data")
    logfire_token: str = ""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    solana: SolanaConfig = Field(default_factory=SolanaConfig)
    settlement: SettlementConfig = Field(default_factory=SettlementConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("data_dir", mode="after")
    @classmethod
    def absolute_data_dir(cls, v: Path) -> Path:
        return v.resolve()

    @property
    def config_path(self) -> Path:
        return self.data_dir / "config.yaml"

    def load_yaml_config(self) -> None:
        """Overlay each YAML section onto the matching settings section."""
        overrides = read_config_file(self.config_path)
        applied = []
        for name in YAML_SECTIONS:
            values = overrides.get(name)
            if not values:
                continue
            current = getattr(self, name)
            merged = type(current).model_validate({**current.model_dump(), **values})
            setattr(self, name, merged)
            applied.append(name)

        if applied:
            logger.info(f"Applied {', '.join(applied)} from {self.config_path}")


@lru_cache()
def get_settings() -> Settings:
    """Process-wide settings, YAML overlay included."""
    settings = Settings()
    settings.load_yaml_config()
    return settings
