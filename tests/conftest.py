import asyncio
import os
from collections.abc import Callable

import pytest

# Keep sessions quick in tests: a single connect attempt, short waits.
os.environ.setdefault("CONNECT_ATTEMPTS", "1")
os.environ.setdefault("OUTBOUND_SEND_TIMEOUT", "0.2")

from ircterm.config import ClientConfig  # noqa: E402
from ircterm.irc.models import SessionInfo  # noqa: E402


class FakeWriter:
    """Captures writes in place of a StreamWriter.

    ``on_line`` is invoked for every decoded line written, which lets a test
    play the server's side (e.g. close the stream after QUIT).
    """

    def __init__(self, on_line: Callable[[str], None] | None = None) -> None:
        self.lines: list[str] = []
        self.closed = False
        self.on_line = on_line

    def write(self, data: bytes) -> None:
        if self.closed:
            raise RuntimeError("write on closed transport")
        line = data.decode("utf-8")
        self.lines.append(line)
        if self.on_line is not None:
            self.on_line(line)

    async def drain(self) -> None:
        await asyncio.sleep(0)

    def close(self) -> None:
        self.closed = True

    async def wait_closed(self) -> None:
        return None


class FakeServer:
    """In-memory transport: a real StreamReader fed by the test plus a FakeWriter."""

    def __init__(self, close_on_quit: bool = True) -> None:
        self.reader: asyncio.StreamReader | None = None
        self.writer = FakeWriter(self._on_line)
        self.close_on_quit = close_on_quit
        self.opened: list[tuple[str, int]] = []

    def _on_line(self, line: str) -> None:
        if self.close_on_quit and line.startswith("QUIT") and self.reader is not None:
            self.reader.feed_eof()

    async def open(self, address: str, port: int):  # type: ignore[no-untyped-def]
        self.opened.append((address, port))
        if self.reader is None:
            self.reader = asyncio.StreamReader()
        return self.reader, self.writer

    def feed(self, *lines: str) -> None:
        if self.reader is None:
            self.reader = asyncio.StreamReader()
        for line in lines:
            self.reader.feed_data(f"{line}\r\n".encode())

    def eof(self) -> None:
        if self.reader is None:
            self.reader = asyncio.StreamReader()
        self.reader.feed_eof()

    async def wait_for_write(self, prefix: str, timeout: float = 1.0) -> str:
        async def _poll() -> str:
            while True:
                for line in self.writer.lines:
                    if line.startswith(prefix):
                        return line
                await asyncio.sleep(0.005)

        return await asyncio.wait_for(_poll(), timeout)


@pytest.fixture
def fake_server() -> FakeServer:
    return FakeServer()


@pytest.fixture
def server_factory() -> Callable[[], FakeServer]:
    return FakeServer


@pytest.fixture
def session_info() -> SessionInfo:
    return SessionInfo(
        address="irc.example.net",
        port=6667,
        nick="tester",
        user="guest",
        realname="Test User",
    )


@pytest.fixture
def config() -> ClientConfig:
    return ClientConfig(nick="tester", log_file=None)
