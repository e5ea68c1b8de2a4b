"""Implicit FTPS client."""

from ftps_client.client.errors import (
    ConfigurationError,
    FTPSError,
    InvalidArgumentError,
    LocalIOError,
    SessionInitError,
    TransferError,
)
from ftps_client.client.options import SessionOptions, TLSAuth
from ftps_client.client.session import UNKNOWN_SIZE, SecureFtpClient

__all__ = [
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
