"""Connection profiles (rclone-style INI format).

Example::

    [partner]
    type = ftps
    host = ftp.partner.example
    port = 990
    user = upload
    pass = secret
    initial_path = inbound/
    passive = false
"""

import configparser
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from ftps_client.config.settings import ClientSettings


class ConnectionType(str, Enum):
    """Supported connection types."""

    FTPS = "ftps"


@dataclass
class FTPSConnectionConfig:
    """Implicit FTPS connection profile."""

    connection_id: str
    host: str
    port: int = 990
    user: str = ""
    password: str = field(default="", repr=False)
    initial_path: str = ""
    passive: bool = False
    verify_tls: bool = False
    ca_file: Optional[str] = None
    timeout: float = 30.0
    type: ConnectionType = ConnectionType.FTPS

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if not self.host:
            raise ValueError(f"Host is required for FTPS connection: {self.connection_id}")
        if not self.user:
            raise ValueError(f"User is required for FTPS connection: {self.connection_id}")


class ConnectionRegistry:
    """Registry of connection profiles."""

    def __init__(self) -> None:
        self._connections: dict[str, FTPSConnectionConfig] = {}

    def register(self, config: FTPSConnectionConfig) -> None:
        """Register a connection profile.

        Raises:
            ValueError: If connection ID is already registered.
        """
        if config.connection_id in self._connections:
            raise ValueError(
                f"Connection ID already registered: {config.connection_id}"
            )
        self._connections[config.connection_id] = config

    def get(self, connection_id: str) -> FTPSConnectionConfig:
        """Get a connection profile by ID.

        Raises:
            KeyError: If connection ID is not found.
        """
        if connection_id not in self._connections:
            raise KeyError(f"Connection not found: {connection_id}")
        return self._connections[connection_id]

    def list_connections(self) -> list[str]:
        """List all registered connection IDs."""
        return list(self._connections.keys())

    def __contains__(self, connection_id: str) -> bool:
        return connection_id in self._connections

    def __len__(self) -> int:
        return len(self._connections)


def _parse_bool(value: str) -> bool:
    return value.lower() in ("true", "yes", "1", "on")


def _parse_connection_section(
    connection_id: str,
    section: dict[str, str],
    defaults: Optional["ClientSettings"] = None,
) -> FTPSConnectionConfig:
    """Parse one connection section.

    Args:
        connection_id: The connection ID (section name).
        section: Dictionary of configuration values.
        defaults: Client defaults for keys the section omits.

    Returns:
        Parsed connection profile.

    Raises:
        ValueError: If connection type is unknown or a value is invalid.
    """
    conn_type_str = section.get("type", "").lower()

    try:
        conn_type = ConnectionType(conn_type_str)
    except ValueError:
        raise ValueError(
            f"Unknown connection type '{conn_type_str}' "
            f"for connection: {connection_id}"
        )

    port = str(defaults.default_port) if defaults else "990"
    passive = str(defaults.passive_mode) if defaults else "false"
    verify_tls = str(defaults.verify_tls) if defaults else "false"
    timeout = str(defaults.timeout_seconds) if defaults else "30"
    ca_file = defaults.ca_file if defaults else None

    return FTPSConnectionConfig(
        connection_id=connection_id,
        type=conn_type,
        host=section.get("host", ""),
        port=int(section.get("port", port)),
        user=section.get("user", ""),
        password=section.get("pass", section.get("password", "")),
        initial_path=section.get("initial_path", ""),
        passive=_parse_bool(section.get("passive", passive)),
        verify_tls=_parse_bool(section.get("verify_tls", verify_tls)),
        ca_file=section.get("ca_file") or ca_file,
        timeout=float(section.get("timeout", timeout)),
    )


def load_connections(
    config_path: str | Path,
    registry: Optional[ConnectionRegistry] = None,
    defaults: Optional["ClientSettings"] = None,
) -> ConnectionRegistry:
    """Load connection profiles from an INI file.

    Args:
        config_path: Path to the INI configuration file.
        registry: Optional existing registry to add connections to.
        defaults: Client defaults for keys a section omits.

    Returns:
        ConnectionRegistry with loaded profiles.

    Raises:
        FileNotFoundError: If the configuration file does not exist.
        ValueError: If the configuration is invalid.
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Connections file not found: {config_path}")

    if registry is None:
        registry = ConnectionRegistry()

    # interpolation off: passwords may contain '%'
    parser = configparser.ConfigParser(interpolation=None)
    parser.read(config_path, encoding="utf-8")

    for section_name in parser.sections():
        section_dict = dict(parser[section_name])
        config = _parse_connection_section(section_name, section_dict, defaults)
        registry.register(config)

    return registry
