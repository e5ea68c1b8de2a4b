"""End-to-end tests against a local pyftpdlib implicit FTPS server."""

import threading
from pathlib import Path
from types import SimpleNamespace

import pytest
from pyftpdlib.authorizers import DummyAuthorizer
from pyftpdlib.handlers import TLS_FTPHandler
from pyftpdlib.servers import FTPServer

from ftps_client import UNKNOWN_SIZE, SecureFtpClient, TransferError


CERTFILE = Path(__file__).parent / "keycert.pem"
USER = "joedoe"
PASSWORD = "abc123"


class ImplicitTLSHandler(TLS_FTPHandler):
    """TLS_FTPHandler that handshakes before the greeting instead of on AUTH."""

    certfile = str(CERTFILE)
    ssl_context = None
    # requires SSL for both control and data channel
    tls_control_required = True
    tls_data_required = True
    auth_failed_timeout = 0.1

    def handle(self):
        self.secure_connection(self.ssl_context)

    def handle_ssl_established(self):
        TLS_FTPHandler.handle(self)


@pytest.fixture
def ftps_server(tmp_path):
    """Serve tmp_path/root over implicit FTPS on a loopback port."""
    root = tmp_path / "root"
    (root / "inbound").mkdir(parents=True)

    authorizer = DummyAuthorizer()
    authorizer.add_user(USER, PASSWORD, str(root), perm="elradfmwMT")
    handler = type("Handler", (ImplicitTLSHandler,), {"authorizer": authorizer})

    server = FTPServer(("127.0.0.1", 0), handler)
    stopped = threading.Event()

    def serve() -> None:
        while not stopped.is_set():
            server.serve_forever(timeout=0.05, blocking=False)
        server.close_all()

    thread = threading.Thread(target=serve, daemon=True)
    thread.start()
    try:
        yield SimpleNamespace(host="127.0.0.1", port=server.address[1], root=root)
    finally:
        stopped.set()
        thread.join(5)


def make_client(server, metrics, **kwargs) -> SecureFtpClient:
    params = {
        "username": USER,
        "password": PASSWORD,
        "server": server.host,
        "port": server.port,
        "timeout": 10,
    }
    params.update(kwargs)
    return SecureFtpClient(metrics=metrics, **params)


@pytest.mark.parametrize("passive_mode", [True, False], ids=["passive", "active"])
class TestImplicitFTPSServer:
    """Tests running every operation over protected control and data channels."""

    @pytest.mark.asyncio
    async def test_upload_list_size_download(self, ftps_server, metrics, tmp_path, passive_mode) -> None:
        """Test a full session against the server."""
        local = tmp_path / "local"
        local.mkdir()

        async with make_client(ftps_server, metrics, passive_mode=passive_mode) as client:
            await client.upload("a.txt", b"alpha")
            await client.upload("b.txt", b"bravo" * 20000)

            assert await client.list_files() == ["a.txt", "b.txt", "inbound"]
            assert await client.remote_file_size("b.txt") == 100000
            assert await client.remote_file_size("missing.txt") == UNKNOWN_SIZE

            data = await client.download("b.txt", f"{local}/")

        assert data == b"bravo" * 20000
        assert (local / "b.txt").read_bytes() == data
        assert (ftps_server.root / "a.txt").read_bytes() == b"alpha"

    @pytest.mark.asyncio
    async def test_initial_path(self, ftps_server, metrics, passive_mode) -> None:
        """Test operations resolve against the initial path."""
        async with make_client(
            ftps_server,
            metrics,
            passive_mode=passive_mode,
            initial_path="inbound/",
        ) as client:
            await client.upload("report.csv", b"id,value\n1,2\n")

            assert await client.list_files() == ["report.csv"]

        assert (ftps_server.root / "inbound" / "report.csv").read_bytes() == b"id,value\n1,2\n"

    @pytest.mark.asyncio
    async def test_download_missing_file(self, ftps_server, metrics, tmp_path, passive_mode) -> None:
        """Test a refused RETR raises TransferError with the reply code."""
        async with make_client(ftps_server, metrics, passive_mode=passive_mode) as client:
            with pytest.raises(TransferError) as exc_info:
                await client.download("missing.bin", f"{tmp_path}/")

            assert exc_info.value.code == 550
            # the session survives a refused command
            assert client.is_connected is True
            assert await client.list_files() == ["inbound"]

    @pytest.mark.asyncio
    async def test_wrong_password(self, ftps_server, metrics, passive_mode) -> None:
        """Test a refused login raises TransferError with code 530."""
        client = make_client(ftps_server, metrics, passive_mode=passive_mode, password="wrong")

        with pytest.raises(TransferError) as exc_info:
            await client.connect()

        assert exc_info.value.code == 530
        assert client.is_connected is False
        await client.close()
