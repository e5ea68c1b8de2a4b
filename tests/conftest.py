"""Shared fixtures: an in-memory stand-in for aioftp.Client."""

import asyncio
from typing import Optional
from unittest.mock import MagicMock, patch

import aioftp
import pytest
from prometheus_client import CollectorRegistry

from ftps_client.metrics.prometheus import MetricsCollector


class FakeDataStream:
    """Data connection bound to one transfer command."""

    def __init__(self, client: "FakeFTPClient", command: str) -> None:
        self.client = client
        self.command = command
        self.written = bytearray()
        self.finished = False
        self.closed = False

    @property
    def _name(self) -> str:
        return self.command.split(" ", 1)[1]

    async def write(self, data: bytes) -> None:
        self.written.extend(data)

    async def read(self, count: int = -1) -> bytes:
        if self.client.hang_seconds:
            await asyncio.sleep(self.client.hang_seconds)
        return self.client.listing

    async def iter_by_block(self, count: int = 8192):
        data = self.client.files[self._name]
        for i in range(0, len(data), 4):
            yield data[i:i + 4]

    async def __aenter__(self) -> "FakeDataStream":
        verb = self.command.split(" ", 1)[0]
        if verb == "RETR" and self._name not in self.client.files:
            raise aioftp.StatusCodeError(("1xx",), ("550",), ["No such file."])
        if self.client.drop_data:
            raise ConnectionResetError("Connection reset by peer")
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.closed = True
        if exc is None:
            self.finished = True
            if self.command.startswith("STOR "):
                self.client.files[self._name] = bytes(self.written)


class FakeFTPClient:
    """Records commands and serves files from a dict."""

    def __init__(self) -> None:
        self.files: dict[str, bytes] = {}
        self.listing = b""
        self.commands: list[str] = []
        self.streams: list[FakeDataStream] = []
        self.connected_to: Optional[tuple[str, int]] = None
        self.login_args: Optional[tuple[str, str]] = None
        self.connect_error: Optional[BaseException] = None
        self.login_error: Optional[BaseException] = None
        self.quit_error: Optional[BaseException] = None
        self.drop_data = False
        self.hang_seconds = 0.0
        self.connect_delay = 0.0
        self.size_supported = True
        self.close_calls = 0
        self.connect_calls = 0

    async def connect(self, host: str, port: int = 21) -> list[str]:
        self.connect_calls += 1
        if self.connect_delay:
            await asyncio.sleep(self.connect_delay)
        if self.connect_error:
            raise self.connect_error
        self.connected_to = (host, port)
        return ["220 ready"]

    async def login(self, user: str, password: str) -> None:
        if self.login_error:
            raise self.login_error
        self.login_args = (user, password)

    async def command(self, command=None, expected_codes=(), wait_codes=()):
        self.commands.append(command)
        if command and command.startswith("SIZE "):
            name = command[5:]
            if not self.size_supported:
                raise aioftp.StatusCodeError(("213",), ("502",), ["SIZE not implemented."])
            if name not in self.files:
                raise aioftp.StatusCodeError(("213",), ("550",), ["Could not get file size."])
            return "213", [f" {len(self.files[name])}"]
        return "200", [" OK"]

    def get_stream(self, *command_args, conn_type: str = "I", offset: int = 0):
        command = command_args[0]
        self.commands.append(f"TYPE {conn_type}")
        self.commands.append(command)
        stream = FakeDataStream(self, command)
        self.streams.append(stream)
        return stream

    async def quit(self) -> None:
        self.commands.append("QUIT")
        if self.quit_error:
            raise self.quit_error

    def close(self) -> None:
        self.close_calls += 1


@pytest.fixture
def fake_ftp():
    """Patch aioftp.Client so sessions talk to a FakeFTPClient."""
    fake = FakeFTPClient()
    factory = MagicMock(return_value=fake)
    with patch("ftps_client.client.session.aioftp.Client", factory):
        fake.factory = factory
        yield fake


@pytest.fixture
def metrics() -> MetricsCollector:
    """Metrics collector on a private registry."""
    return MetricsCollector(registry=CollectorRegistry())
