"""Application settings loader."""

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


class ClientSettings(BaseModel):
    """Defaults applied to clients built from settings."""

    timeout_seconds: float = Field(default=30.0, gt=0)
    default_port: int = Field(default=990, ge=1, le=65535)
    passive_mode: bool = Field(default=False)
    verify_tls: bool = Field(default=False)
    ca_file: Optional[str] = Field(default=None)


class MetricsSettings(BaseModel):
    """Prometheus metrics configuration."""

    enabled: bool = Field(default=False)
    port: int = Field(default=9090, ge=1, le=65535)


class LoggingSettings(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO")
    format: str = Field(default="console")


class Settings(BaseSettings):
    """Application settings."""

    client: ClientSettings = Field(default_factory=ClientSettings)
    metrics: MetricsSettings = Field(default_factory=MetricsSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    # Paths
    config_path: Optional[str] = Field(default=None)
    connections_path: Optional[str] = Field(default=None)

    model_config = {"env_prefix": "FTPS_CLIENT_", "env_nested_delimiter": "__"}

    @classmethod
    def from_yaml(cls, config_path: str | Path) -> "Settings":
        """Load settings from YAML file.

        Args:
            config_path: Path to the YAML configuration file.

        Returns:
            Settings instance loaded from the file.

        Raises:
            FileNotFoundError: If the file does not exist.
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path, "r", encoding="utf-8") as f:
            config_data = yaml.safe_load(f) or {}

        connections_path = os.getenv("FTPS_CLIENT_CONNECTIONS")
        if connections_path:
            config_data["connections_path"] = connections_path

        config_data["config_path"] = str(config_path)
        return cls(**config_data)


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Cached Settings instance.
    """
    config_path = os.getenv("FTPS_CLIENT_CONFIG")
    if config_path and Path(config_path).exists():
        return Settings.from_yaml(config_path)

    return Settings()
