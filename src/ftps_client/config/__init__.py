"""Configuration module for the FTPS client."""

from ftps_client.config.settings import Settings, get_settings
from ftps_client.config.connections import (
    ConnectionRegistry,
    FTPSConnectionConfig,
    load_connections,
)

__all__ = [
    "Settings",
    "get_settings",
    "ConnectionRegistry",
    "FTPSConnectionConfig",
    "load_connections",
]
