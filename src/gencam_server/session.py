"""Per-connection protocol engine.

A :class:`ConnectionSession` owns one client connection and one frame
counter. Its loop races two event sources, the next inbound message and
the next timer tick, and handles whichever is ready first to completion
before waiting again. Every handled event produces exactly one outbound
message, and since only this loop writes to the connection, writes never
overlap.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Protocol

from .frame_source import FrameLoadError, FrameSource
from .protocol.framing import MAX_SEQUENCE
from .protocol.packets import Packet, PacketKind, encode
from .protocol.parser import DecodeError, parse_message

logger = logging.getLogger(__name__)

DEFAULT_TICK_PERIOD = 2.5


class SessionState(Enum):
    ACTIVE = "active"
    CLOSING = "closing"
    CLOSED = "closed"


class Connection(Protocol):
    """What a session needs from its transport."""

    @property
    def peer(self) -> str: ...

    async def read(self) -> bytes | str | None: ...

    async def write(self, data: bytes) -> None: ...

    async def close(self) -> None: ...


class Timer(Protocol):
    async def wait(self) -> None: ...

    def cancel(self) -> None: ...


class PeriodicTimer:
    """Fixed-period ticker on the event loop clock.

    The schedule starts at the first :meth:`wait`. Ticks missed while the
    session was busy are dropped rather than fired in a burst.
    """

    def __init__(self, period: float = DEFAULT_TICK_PERIOD) -> None:
        if period <= 0:
            raise ValueError(f"Timer period must be positive, got {period}")
        self._period = period
        self._deadline: float | None = None

    @property
    def period(self) -> float:
        return self._period

    async def wait(self) -> None:
        loop = asyncio.get_running_loop()
        if self._deadline is None:
            self._deadline = loop.time() + self._period

        delay = self._deadline - loop.time()
        if delay > 0:
            await asyncio.sleep(delay)

        self._deadline += self._period
        now = loop.time()
        if self._deadline <= now:
            self._deadline = now + self._period

    def cancel(self) -> None:
        self._deadline = None


class ConnectionSession:
    """State machine for one client connection.

    Usage::

        session = ConnectionSession(connection, frame_source, PeriodicTimer(2.5))
        replies = await session.run()
    """

    def __init__(
        self,
        connection: Connection,
        frame_source: FrameSource,
        timer: Timer,
    ) -> None:
        self._connection = connection
        self._frame_source = frame_source
        self._timer = timer
        self._frame_counter = 0
        self._replies_sent = 0
        self._state = SessionState.ACTIVE
        self._handlers: dict[PacketKind, Callable[[Packet], Awaitable[Packet]]] = {
            PacketKind.IMAGE_REQUEST: self._handle_image_request,
            PacketKind.IMAGE: self._handle_unsupported,
            PacketKind.ACKNOWLEDGE: self._handle_unsupported,
            PacketKind.UNKNOWN: self._handle_unsupported,
        }

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def frame_counter(self) -> int:
        return self._frame_counter

    @property
    def replies_sent(self) -> int:
        return self._replies_sent

    @property
    def peer(self) -> str:
        return self._connection.peer

    async def run(self) -> int:
        """Serve the connection until it closes or fails.

        Returns:
            The number of replies sent.
        """
        logger.info("Session started for %s", self.peer)
        read_task: asyncio.Task | None = None
        tick_task: asyncio.Task | None = None
        try:
            while self._state is SessionState.ACTIVE:
                if read_task is None:
                    read_task = asyncio.create_task(self._connection.read())
                if tick_task is None:
                    tick_task = asyncio.create_task(self._timer.wait())

                done, _ = await asyncio.wait(
                    {read_task, tick_task}, return_when=asyncio.FIRST_COMPLETED
                )

                # Inbound first when both are ready, then the tick.
                if read_task in done:
                    message = read_task.result()
                    read_task = None
                    await self._on_message(message)

                if tick_task in done and self._state is SessionState.ACTIVE:
                    tick_task.result()
                    tick_task = None
                    await self._on_tick()
        finally:
            await self._shutdown(read_task, tick_task)

        logger.info(
            "Session for %s closed after %d replies (%d frames)",
            self.peer,
            self._replies_sent,
            self._frame_counter,
        )
        return self._replies_sent

    async def _shutdown(self, *tasks: asyncio.Task | None) -> None:
        if self._state is SessionState.ACTIVE:
            self._state = SessionState.CLOSING

        finished = [task for task in tasks if task is not None and task.done()]
        for task in finished:
            if not task.cancelled() and task.exception() is not None:
                logger.debug("Discarded %r for %s: %r", task, self.peer, task.exception())

        pending = [task for task in tasks if task is not None and not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        self._timer.cancel()
        await self._connection.close()
        self._state = SessionState.CLOSED

    async def _on_message(self, message: bytes | str | None) -> None:
        if message is None:
            self._state = SessionState.CLOSING
            return

        try:
            packet = parse_message(message)
        except DecodeError as e:
            logger.warning("Malformed message from %s: %s", self.peer, e)
            await self._send(Packet.acknowledge())
            return

        logger.debug("Received %r from %s", packet, self.peer)
        reply = await self._handlers[packet.kind](packet)
        await self._send(reply)

    async def _on_tick(self) -> None:
        await self._send(await self._next_frame())

    async def _handle_image_request(self, packet: Packet) -> Packet:
        return await self._next_frame()

    async def _handle_unsupported(self, packet: Packet) -> Packet:
        return Packet.acknowledge(packet.sequence)

    async def _next_frame(self) -> Packet:
        """Advance the counter and build the Image reply for it.

        Falls back to an Acknowledge when the frame cannot be produced.
        """
        self._frame_counter += 1
        counter = self._frame_counter
        sequence = counter & MAX_SEQUENCE
        try:
            frame = await asyncio.to_thread(self._frame_source.produce, counter)
        except FrameLoadError as e:
            logger.warning("Frame %d unavailable for %s: %s", counter, self.peer, e)
            return Packet.acknowledge(sequence)
        return frame.to_packet(sequence=sequence)

    async def _send(self, packet: Packet) -> None:
        try:
            await self._connection.write(encode(packet))
        except ConnectionError as e:
            logger.error("Closing session for %s: %s", self.peer, e)
            self._state = SessionState.CLOSING
            return
        self._replies_sent += 1
        logger.debug("Sent %r to %s", packet, self.peer)
