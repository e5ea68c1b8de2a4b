"""Active-mode (PORT/EPRT) data connections on top of aioftp.

aioftp only opens passive data connections, so active mode is built here:
listen on the control connection's local address, announce the port and
wait for the server to connect back.
"""

import asyncio
import ipaddress
import socket
import ssl
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import aioftp
import structlog
from aioftp.client import DataConnectionThrottleStreamIO


logger = structlog.get_logger(__name__)


def port_command(host: str, port: int) -> str:
    """Build the command announcing a local data port.

    Args:
        host: Local IP address.
        port: Local port.

    Returns:
        ``PORT h1,h2,h3,h4,p1,p2`` for IPv4, ``EPRT |2|addr|port|`` for IPv6.
    """
    address = ipaddress.ip_address(host)
    if address.version == 4:
        parts = str(address).split(".") + [str(port >> 8), str(port & 0xFF)]
        return "PORT " + ",".join(parts)
    return f"EPRT |2|{address}|{port}|"


def local_address(client: aioftp.Client) -> str:
    """Return the local IP address of the control connection."""
    sockname = client.stream.writer.get_extra_info("sockname")
    if not sockname:
        raise ConnectionError("Control connection has no local address")
    return sockname[0]


@asynccontextmanager
async def open_active_stream(
    client: aioftp.Client,
    command: str,
    *,
    conn_type: str = "I",
    ssl_context: Optional[ssl.SSLContext] = None,
    server_hostname: Optional[str] = None,
    accept_timeout: Optional[float] = None,
) -> AsyncIterator[DataConnectionThrottleStreamIO]:
    """Run a transfer command over a server-initiated data connection.

    Args:
        client: Connected, logged in aioftp client.
        command: Transfer command, e.g. ``RETR name``.
        conn_type: Representation type sent with ``TYPE``.
        ssl_context: When set, the data connection is upgraded to TLS
            with this side acting as TLS client.
        server_hostname: Host name used for the TLS handshake.
        accept_timeout: Seconds to wait for the server to connect back.

    Yields:
        Data stream. On clean exit the final reply (2xx) is awaited.

    Raises:
        aioftp.StatusCodeError: If the server rejects a command.
        asyncio.TimeoutError: If the server never connects back.
    """
    loop = asyncio.get_running_loop()
    host = local_address(client)
    family = socket.AF_INET6 if ipaddress.ip_address(host).version == 6 else socket.AF_INET

    listener = socket.socket(family, socket.SOCK_STREAM)
    conn = None
    try:
        listener.setblocking(False)
        listener.bind((host, 0))
        listener.listen(1)
        port = listener.getsockname()[1]
        logger.debug("ftps_active_listen", host=host, port=port)

        await client.command("TYPE " + conn_type, "200")
        await client.command(port_command(host, port), "200")
        await client.command(command, "1xx")

        async with asyncio.timeout(accept_timeout):
            conn, _ = await loop.sock_accept(listener)
    except BaseException:
        if conn is not None:
            conn.close()
        raise
    finally:
        listener.close()

    # The server opened the connection, but this side is still the TLS client.
    try:
        reader, writer = await asyncio.open_connection(
            sock=conn,
            ssl=ssl_context,
            server_hostname=(server_hostname or "") if ssl_context is not None else None,
        )
    except BaseException:
        conn.close()
        raise

    stream = DataConnectionThrottleStreamIO(
        client,
        reader,
        writer,
        throttles={"_": client.throttle},
        timeout=client.socket_timeout,
    )
    try:
        yield stream
    except BaseException:
        stream.close()
        raise
    await stream.finish()
