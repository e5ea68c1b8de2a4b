"""FTP over implicit SSL/TLS client."""

__version__ = "0.1.0"

# metrics reads __version__ while these are imported
from ftps_client.client import (  # noqa: E402
    UNKNOWN_SIZE,
    ConfigurationError,
    FTPSError,
    InvalidArgumentError,
    LocalIOError,
    SecureFtpClient,
    SessionInitError,
    SessionOptions,
    TLSAuth,
    TransferError,
)

__all__ = [
    "__version__",
    "SecureFtpClient",
    "SessionOptions",
    "TLSAuth",
    "UNKNOWN_SIZE",
    "FTPSError",
    "InvalidArgumentError",
    "SessionInitError",
    "ConfigurationError",
    "LocalIOError",
    "TransferError",
]
