"""Exceptions raised by the FTPS client."""

from typing import Optional


class FTPSError(Exception):
    """Base class for FTPS client errors."""

    pass


class InvalidArgumentError(FTPSError, ValueError):
    """Raised when the client is constructed with invalid arguments."""

    pass


class SessionInitError(FTPSError):
    """Raised when the underlying FTP session cannot be created."""

    pass


class ConfigurationError(FTPSError):
    """Raised when a session option cannot be applied.

    Attributes:
        option: Name of the first option that failed.
        reason: Optional detail from the failure.
    """

    def __init__(self, option: str, reason: Optional[str] = None) -> None:
        self.option = option
        self.reason = reason
        message = f"Could not set option: {option}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class LocalIOError(FTPSError, OSError):
    """Raised when a local buffer or file cannot be opened."""

    pass


class TransferError(FTPSError):
    """Raised when a network or protocol failure happens during a transfer.

    Attributes:
        code: FTP reply code, or 0 when the failure happened below FTP
            (socket, TLS handshake, timeout).
        message: Error text.
    """

    def __init__(self, code: int, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(f"[{code}] - {message}")
