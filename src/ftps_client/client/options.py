"""Session options and their application to an aioftp client."""

import ssl
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional

from ftps_client.client.errors import ConfigurationError, InvalidArgumentError


DEFAULT_PORT = 990
DEFAULT_TIMEOUT = 30.0

# Local address placeholder meaning "use the control connection's address".
AUTO_ADDRESS = "-"


class TLSAuth(str, Enum):
    """TLS negotiation policy."""

    DEFAULT = "default"  # let the TLS layer negotiate the version
    TLS = "tls"  # refuse anything older than TLS 1.2


@dataclass
class SessionOptions:
    """Options for one implicit FTPS session."""

    username: str
    password: str = field(repr=False)
    server: str
    port: int = DEFAULT_PORT
    initial_path: str = ""
    passive_mode: bool = False
    verify_tls: bool = False
    ca_file: Optional[str] = None
    tls_auth: TLSAuth = TLSAuth.DEFAULT
    timeout: float = DEFAULT_TIMEOUT

    @property
    def base_url(self) -> str:
        """URL of the initial remote directory."""
        return f"ftps://{self.server}/{self.initial_path}"

    def validate(self) -> None:
        """Check the connection arguments.

        Raises:
            InvalidArgumentError: If username, server or port is blank.
        """
        if not self.username:
            raise InvalidArgumentError("FTP Username is blank.")

        # a blank password is allowed

        if not self.server:
            raise InvalidArgumentError("FTP Server is blank.")

        if not self.port:
            raise InvalidArgumentError("FTP Port is blank.")


@dataclass
class SessionConfig:
    """Resolved settings handed to the aioftp client."""

    user: str = ""
    password: str = field(default="", repr=False)
    port: int = DEFAULT_PORT
    ssl_context: Optional[ssl.SSLContext] = None
    protect_data: bool = False
    timeout: float = DEFAULT_TIMEOUT
    active_address: Optional[str] = None

    def client_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``aioftp.Client``."""
        return {
            "ssl": self.ssl_context,
            "socket_timeout": self.timeout,
            "connection_timeout": self.timeout,
            "path_timeout": self.timeout,
        }


def _apply_credentials(config: SessionConfig, options: SessionOptions) -> None:
    if ":" in options.username:
        raise ValueError("username must not contain ':'")
    config.user = options.username
    config.password = options.password or ""


def _apply_verify_tls(config: SessionConfig, options: SessionOptions) -> None:
    context = ssl.create_default_context(cafile=options.ca_file)
    if not options.verify_tls:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    config.ssl_context = context


def _apply_data_tls(config: SessionConfig, options: SessionOptions) -> None:
    config.protect_data = True


def _apply_tls_auth(config: SessionConfig, options: SessionOptions) -> None:
    policy = TLSAuth(options.tls_auth)
    if config.ssl_context is None:
        raise ValueError("no TLS context")
    if policy == TLSAuth.TLS:
        config.ssl_context.minimum_version = ssl.TLSVersion.TLSv1_2


def _apply_port(config: SessionConfig, options: SessionOptions) -> None:
    port = int(options.port)
    if not 1 <= port <= 65535:
        raise ValueError(f"port out of range: {port}")
    config.port = port


def _apply_timeout(config: SessionConfig, options: SessionOptions) -> None:
    timeout = float(options.timeout)
    if timeout <= 0:
        raise ValueError(f"timeout must be positive: {timeout}")
    config.timeout = timeout


def _apply_active_mode(config: SessionConfig, options: SessionOptions) -> None:
    config.active_address = AUTO_ADDRESS


OptionStep = Callable[[SessionConfig, SessionOptions], None]


def build_session_config(options: SessionOptions) -> SessionConfig:
    """Apply session options one at a time.

    Args:
        options: Validated session options.

    Returns:
        The resolved session configuration.

    Raises:
        ConfigurationError: Naming the first option that could not be set.
    """
    steps: list[tuple[str, OptionStep]] = [
        ("credentials", _apply_credentials),
        ("verify_tls", _apply_verify_tls),
        ("data_tls", _apply_data_tls),
        ("tls_auth", _apply_tls_auth),
        ("port", _apply_port),
        ("timeout", _apply_timeout),
    ]

    # aioftp is passive by default; active mode sends PORT from the
    # control connection's local address instead.
    if not options.passive_mode:
        steps.append(("active_mode", _apply_active_mode))

    config = SessionConfig()
    for option_name, step in steps:
        try:
            step(config, options)
        except (ValueError, TypeError, OSError) as e:
            raise ConfigurationError(option_name, str(e)) from e

    return config


def resolve_url(base_url: str, file_name: str) -> str:
    """Append a file name to the base URL.

    Raises:
        ConfigurationError: If the file name is empty or contains a line break.
    """
    if not file_name:
        raise ConfigurationError("url", "file name is blank")
    if "\r" in file_name or "\n" in file_name:
        raise ConfigurationError("url", f"invalid file name: {file_name!r}")
    return base_url + file_name


def url_path(url: str) -> str:
    """Return the remote path of an ``ftps://host/path`` URL, relative to login."""
    _, _, rest = url.partition("://")
    _, _, path = rest.partition("/")
    return path
