"""FTP over implicit TLS client."""

import asyncio
import io
import time
from contextlib import AbstractAsyncContextManager
from typing import Any, Awaitable, Callable, Optional, TypeVar, Union

import aioftp
import structlog

from ftps_client.client.active import open_active_stream
from ftps_client.client.errors import (
    FTPSError,
    LocalIOError,
    SessionInitError,
    TransferError,
)
from ftps_client.client.options import (
    DEFAULT_PORT,
    DEFAULT_TIMEOUT,
    SessionOptions,
    TLSAuth,
    build_session_config,
    resolve_url,
    url_path,
)
from ftps_client.config.connections import FTPSConnectionConfig
from ftps_client.metrics.prometheus import MetricsCollector, get_metrics


logger = structlog.get_logger(__name__)

# Returned by remote_file_size() when the server cannot report a length.
UNKNOWN_SIZE = -1

CHUNK_SIZE = 65536

T = TypeVar("T")

BytesLike = Union[bytes, bytearray, memoryview]


def to_transfer_error(exc: BaseException) -> TransferError:
    """Map an aioftp, socket or timeout failure to a TransferError."""
    if isinstance(exc, TransferError):
        return exc

    if isinstance(exc, aioftp.StatusCodeError):
        received = exc.received_codes
        code = int(received[-1]) if received else 0
        message = " ".join(str(line).strip() for line in exc.info or ())
        return TransferError(code, message or str(exc))

    if isinstance(exc, asyncio.TimeoutError):
        return TransferError(0, "Operation timed out")

    return TransferError(0, str(exc) or exc.__class__.__name__)


def parse_listing(data: bytes, encoding: str = "utf-8") -> list[str]:
    """Split a name-only directory listing into file names."""
    text = data.decode(encoding, errors="replace").rstrip()
    if not text:
        return []
    # only CRLF/LF end a name; other control characters are part of it
    return [line.rstrip("\r") for line in text.split("\n")]


def parse_size(info: list[str]) -> int:
    """Parse the argument of a ``213`` SIZE reply."""
    tokens = " ".join(info).split()
    if not tokens:
        return UNKNOWN_SIZE
    try:
        return int(tokens[0])
    except ValueError:
        return UNKNOWN_SIZE


def stage_upload(file_bytes: BytesLike) -> io.BytesIO:
    """Copy upload content into a rewound in-memory buffer.

    Raises:
        LocalIOError: If the content cannot be buffered.
    """
    try:
        buffer = io.BytesIO()
        buffer.write(file_bytes)
    except (TypeError, ValueError, MemoryError) as e:
        raise LocalIOError(f"Could not open memory buffer for writing: {e}") from e
    buffer.seek(0)
    return buffer


class SecureFtpClient:
    """Client for one FTP server reached over implicit SSL/TLS.

    Holds a single aioftp session and runs one operation at a time against
    it. Every operation sets the representation type and data connection
    mode it needs, so nothing carries over from the previous call.

    Example:
        async with SecureFtpClient("user", "secret", "ftp.example.com") as ftp:
            await ftp.upload("report.txt", b"...")
            names = await ftp.list_files()
    """

    def __init__(
        self,
        username: str,
        password: str,
        server: str,
        port: int = DEFAULT_PORT,
        initial_path: str = "",
        passive_mode: bool = False,
        *,
        verify_tls: bool = False,
        ca_file: Optional[str] = None,
        tls_auth: TLSAuth = TLSAuth.DEFAULT,
        timeout: float = DEFAULT_TIMEOUT,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        """Validate the arguments and prepare the session.

        No network traffic happens here; the session is opened by
        ``connect()`` or by the first operation.

        Raises:
            InvalidArgumentError: If username, server or port is blank.
            SessionInitError: If the aioftp client cannot be created.
            ConfigurationError: If an option cannot be applied.
        """
        self._options = SessionOptions(
            username=username,
            password=password,
            server=server,
            port=port,
            initial_path=initial_path or "",
            passive_mode=passive_mode,
            verify_tls=verify_tls,
            ca_file=ca_file,
            tls_auth=tls_auth,
            timeout=timeout,
        )
        self._options.validate()

        self._url = self._options.base_url
        self._config = build_session_config(self._options)

        try:
            self._client = aioftp.Client(**self._config.client_kwargs())
        except Exception as e:
            raise SessionInitError(f"Could not initialize FTP session: {e}") from e

        self._metrics = metrics or get_metrics()
        self._connected = False
        self._busy = False
        self._closed = False

    @classmethod
    def from_connection(
        cls,
        config: FTPSConnectionConfig,
        metrics: Optional[MetricsCollector] = None,
    ) -> "SecureFtpClient":
        """Create a client from a connection profile.

        Args:
            config: Connection profile loaded from the connections file.
            metrics: Optional metrics collector.

        Returns:
            A new, not yet connected client.
        """
        return cls(
            username=config.user,
            password=config.password,
            server=config.host,
            port=config.port,
            initial_path=config.initial_path,
            passive_mode=config.passive,
            verify_tls=config.verify_tls,
            ca_file=config.ca_file,
            timeout=config.timeout,
            metrics=metrics,
        )

    @property
    def url(self) -> str:
        """Base URL, ``ftps://{server}/{initial_path}``."""
        return self._url

    @property
    def options(self) -> SessionOptions:
        """Options the client was created with."""
        return self._options

    @property
    def is_active_mode(self) -> bool:
        """True when data connections are opened by the server (PORT)."""
        return self._config.active_address is not None

    @property
    def is_connected(self) -> bool:
        """Check if the session is connected."""
        return self._connected

    @property
    def is_closed(self) -> bool:
        """Check if the client has been closed."""
        return self._closed

    async def connect(self) -> None:
        """Open the session: TLS connect, login and data channel protection.

        Raises:
            RuntimeError: If the client is closed or an operation is running.
            TransferError: If the server cannot be reached or refuses login.
        """
        self._ensure_open()
        if self._connected:
            return
        if self._busy:
            raise RuntimeError(f"Another operation is in progress on {self._url}")

        self._busy = True
        try:
            async with asyncio.timeout(self._config.timeout):
                await self._open_session()
        except asyncio.TimeoutError as e:
            error = to_transfer_error(e)
            logger.error(
                "ftps_connect_failed",
                server=self._options.server,
                code=error.code,
                error=error.message,
            )
            raise error from e
        finally:
            self._busy = False

    async def _open_session(self) -> None:
        """Connect, log in and protect the data channel. Callers set the deadline."""
        log = logger.bind(server=self._options.server, port=self._config.port)

        try:
            await self._client.connect(self._options.server, self._config.port)
            await self._client.login(self._config.user, self._config.password)
            if self._config.protect_data:
                await self._client.command("PBSZ 0", "200")
                await self._client.command("PROT P", "200")
        except (aioftp.StatusCodeError, OSError, EOFError) as e:
            self._client.close()
            error = to_transfer_error(e)
            log.error("ftps_connect_failed", code=error.code, error=error.message)
            raise error from e
        except BaseException:
            self._client.close()
            raise

        self._connected = True
        self._metrics.record_session_opened()
        log.info("ftps_connected", user=self._config.user, active=self.is_active_mode)

    async def close(self) -> None:
        """Release the session. Errors during teardown are logged, never raised."""
        if self._closed:
            return
        self._closed = True

        if not self._connected:
            return

        try:
            await self._client.quit()
        except Exception as e:
            logger.warning("ftps_close_failed", server=self._options.server, error=str(e))
        finally:
            self._drop_session()

        logger.info("ftps_closed", server=self._options.server)

    async def __aenter__(self) -> "SecureFtpClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        await self.close()

    async def upload(self, file_name: str, file_bytes: BytesLike) -> None:
        """Store content as ``file_name`` under the initial path.

        Args:
            file_name: Remote file name, appended to the base URL.
            file_bytes: Content to upload.

        Raises:
            ConfigurationError: If the file name cannot form a URL.
            LocalIOError: If the content cannot be buffered.
            TransferError: If the upload fails.
        """
        path = url_path(resolve_url(self._url, file_name))

        with stage_upload(file_bytes) as buffer:

            async def action() -> int:
                sent = 0
                async with self._data_stream("STOR " + path, conn_type="I") as stream:
                    while True:
                        chunk = buffer.read(CHUNK_SIZE)
                        if not chunk:
                            break
                        await stream.write(chunk)
                        sent += len(chunk)
                return sent

            await self._run(
                "upload",
                action,
                direction="upload",
                measure=lambda sent: sent,
                file_name=file_name,
            )

    async def list_files(self) -> list[str]:
        """List file names in the initial directory (``NLST``).

        Returns:
            File names in server order; an empty list for an empty directory.

        Raises:
            TransferError: If the listing fails.
        """
        path = url_path(self._url)
        command = f"NLST {path}" if path else "NLST"

        async def action() -> bytes:
            async with self._data_stream(command, conn_type="A") as stream:
                return await stream.read()

        data = await self._run("list", action, measure=len)
        return parse_listing(data)

    async def download(self, file_name: str, local_path: str = "/") -> bytes:
        """Retrieve ``file_name`` and write it to ``local_path + file_name``.

        Args:
            file_name: Remote file name, appended to the base URL.
            local_path: Local directory prefix, concatenated as is.

        Returns:
            The retrieved bytes.

        Raises:
            LocalIOError: If the local target cannot be opened.
            ConfigurationError: If the file name cannot form a URL.
            TransferError: If the download fails.
        """
        target = f"{local_path}{file_name}"
        try:
            handle = open(target, "wb")
        except OSError as e:
            raise LocalIOError(f"Could not open {target} for writing: {e}") from e

        with handle:
            path = url_path(resolve_url(self._url, file_name))

            async def action() -> bytes:
                received = bytearray()
                async with self._data_stream("RETR " + path, conn_type="I") as stream:
                    async for block in stream.iter_by_block(CHUNK_SIZE):
                        handle.write(block)
                        received.extend(block)
                return bytes(received)

            return await self._run(
                "download",
                action,
                direction="download",
                measure=len,
                file_name=file_name,
                local_path=target,
            )

    async def remote_file_size(self, file_name: str) -> int:
        """Ask the server for the size of ``file_name`` without transferring it.

        Returns:
            Size in bytes, or ``UNKNOWN_SIZE`` (negative) when the server
            cannot report one. Treat non-positive values as unknown.

        Raises:
            ConfigurationError: If the file name cannot form a URL.
            TransferError: If the session fails.
        """
        path = url_path(resolve_url(self._url, file_name))

        async def action() -> int:
            await self._client.command("TYPE I", "200")
            try:
                _, info = await self._client.command("SIZE " + path, "213")
            except aioftp.StatusCodeError as e:
                logger.debug(
                    "ftps_size_unknown",
                    file_name=file_name,
                    codes=[str(code) for code in e.received_codes],
                )
                return UNKNOWN_SIZE
            return parse_size(info)

        return await self._run("size", action, file_name=file_name)

    def to_dict(self) -> dict:
        """Convert client info to dictionary.

        Returns:
            Dictionary with client information, without credentials.
        """
        return {
            "url": self._url,
            "server": self._options.server,
            "port": self._config.port,
            "user": self._config.user,
            "passive_mode": not self.is_active_mode,
            "verify_tls": self._options.verify_tls,
            "connected": self._connected,
            "closed": self._closed,
        }

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError("Client is closed")

    def _drop_session(self) -> None:
        self._client.close()
        if self._connected:
            self._metrics.record_session_closed()
        self._connected = False

    def _data_stream(self, command: str, conn_type: str) -> AbstractAsyncContextManager:
        if not self.is_active_mode:
            # aioftp sends TYPE and EPSV/PASV itself
            return self._client.get_stream(command, "1xx", conn_type=conn_type)

        return open_active_stream(
            self._client,
            command,
            conn_type=conn_type,
            ssl_context=self._config.ssl_context if self._config.protect_data else None,
            server_hostname=self._options.server,
            accept_timeout=self._config.timeout,
        )

    async def _run(
        self,
        operation: str,
        action: Callable[[], Awaitable[T]],
        direction: Optional[str] = None,
        measure: Optional[Callable[[T], int]] = None,
        **context: Any,
    ) -> T:
        """Connect if needed and run one operation.

        The timeout covers both opening the session and the operation itself.
        """
        self._ensure_open()
        if self._busy:
            raise RuntimeError(f"Another operation is in progress on {self._url}")

        self._busy = True
        log = logger.bind(operation=operation, url=self._url, **context)
        self._metrics.record_operation_started()
        start_time = time.monotonic()

        try:
            async with asyncio.timeout(self._config.timeout):
                if not self._connected:
                    await self._open_session()
                result = await action()
        except FTPSError as e:
            self._record_failure(operation, start_time, e)
            log.error("ftps_operation_failed", error=str(e))
            raise
        except aioftp.StatusCodeError as e:
            error = to_transfer_error(e)
            self._record_failure(operation, start_time, error)
            log.error("ftps_operation_failed", code=error.code, error=error.message)
            raise error from e
        except (OSError, EOFError, asyncio.TimeoutError) as e:
            # the control connection is in an unknown state
            self._drop_session()
            error = to_transfer_error(e)
            self._record_failure(operation, start_time, error)
            log.error("ftps_operation_failed", code=error.code, error=error.message)
            raise error from e
        except BaseException as e:
            # cancelled mid-transfer: the session cannot be reused
            self._drop_session()
            self._record_failure(operation, start_time, e)
            log.warning("ftps_operation_cancelled", error=e.__class__.__name__)
            raise
        finally:
            self._busy = False

        duration = time.monotonic() - start_time
        transferred = measure(result) if measure else 0
        self._metrics.record_operation_success(
            operation,
            duration,
            bytes_transferred=transferred,
            direction=direction,
        )
        log.info(
            "ftps_operation_completed",
            bytes_transferred=transferred,
            duration_ms=int(duration * 1000),
        )
        return result

    def _record_failure(
        self,
        operation: str,
        start_time: float,
        error: BaseException,
    ) -> None:
        code = getattr(error, "code", None)
        self._metrics.record_operation_failure(
            operation,
            time.monotonic() - start_time,
            error_code=str(code) if code is not None else error.__class__.__name__,
        )
