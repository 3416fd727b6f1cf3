"""Shared fixtures: generated test assets, an in-memory connection and a manual timer."""

from __future__ import annotations

import asyncio

import pytest

from gencam_server.frame_source import FrameSource, generate_test_assets
from gencam_server.protocol import Packet, decode


class FakeConnection:
    """In-memory stand-in for a client connection.

    Inbound messages are queued with :meth:`feed`; ``None`` means the peer
    hung up. Every write is recorded and can be awaited with :meth:`next_reply`.
    """

    peer = "test-peer"

    def __init__(self, fail_writes: bool = False) -> None:
        self.fail_writes = fail_writes
        self.sent: list[bytes] = []
        self.closed = False
        self._inbound: asyncio.Queue = asyncio.Queue()
        self._outbound: asyncio.Queue = asyncio.Queue()

    def feed(self, message: bytes | str | None) -> None:
        self._inbound.put_nowait(message)

    def hang_up(self) -> None:
        self.feed(None)

    async def read(self) -> bytes | str | None:
        return await self._inbound.get()

    async def write(self, data: bytes) -> None:
        if self.fail_writes:
            raise ConnectionError("simulated send failure")
        self.sent.append(data)
        self._outbound.put_nowait(data)

    async def close(self) -> None:
        self.closed = True

    async def next_reply(self, timeout: float = 2.0) -> Packet:
        return decode(await asyncio.wait_for(self._outbound.get(), timeout))


class ManualTimer:
    """Timer that only fires when a test calls :meth:`tick`."""

    def __init__(self) -> None:
        self.cancelled = False
        self._ticks: asyncio.Queue = asyncio.Queue()

    def tick(self, count: int = 1) -> None:
        for _ in range(count):
            self._ticks.put_nowait(None)

    async def wait(self) -> None:
        await self._ticks.get()

    def cancel(self) -> None:
        self.cancelled = True


@pytest.fixture
def assets_dir(tmp_path):
    directory = tmp_path / "res"
    generate_test_assets(directory)
    return directory


@pytest.fixture
def frame_source(assets_dir):
    return FrameSource(assets_dir)


@pytest.fixture
def empty_frame_source(tmp_path):
    directory = tmp_path / "empty"
    directory.mkdir()
    return FrameSource(directory)


@pytest.fixture
def connection():
    return FakeConnection()


@pytest.fixture
def timer():
    return ManualTimer()
