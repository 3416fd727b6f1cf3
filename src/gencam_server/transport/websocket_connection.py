"""WebSocket connection wrapper for one GenCam client.

Wraps a ``websockets`` server connection behind the small read/write/close
surface the session needs. Control frames (ping/pong) are answered by
``websockets`` itself and never reach :meth:`WebSocketConnection.read`.
"""

from __future__ import annotations

import logging

from websockets.asyncio.server import ServerConnection
from websockets.exceptions import ConnectionClosed, ConnectionClosedOK

logger = logging.getLogger(__name__)


class WebSocketConnection:
    """Owns the read and write halves of one client connection.

    Usage::

        conn = WebSocketConnection(websocket)
        message = await conn.read()
        await conn.write(reply_bytes)
        await conn.close()
    """

    def __init__(self, websocket: ServerConnection) -> None:
        self._websocket = websocket
        self._connected = True
        address = websocket.remote_address
        if isinstance(address, tuple) and len(address) >= 2:
            self._peer = f"{address[0]}:{address[1]}"
        else:
            self._peer = str(address)

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def peer(self) -> str:
        return self._peer

    async def read(self) -> bytes | str | None:
        """Wait for the next data message.

        Returns:
            ``bytes`` for binary messages, ``str`` for text messages, or
            ``None`` once the connection is closed or failed.
        """
        if not self._connected:
            return None

        try:
            return await self._websocket.recv()
        except ConnectionClosedOK:
            logger.info("Client %s closed the connection", self._peer)
        except ConnectionClosed as e:
            logger.warning("Connection to %s lost: %s", self._peer, e)
        except OSError as e:
            logger.warning("Read error from %s: %s", self._peer, e)
        self._connected = False
        return None

    async def write(self, data: bytes) -> None:
        """Send one binary message.

        Raises:
            ConnectionError: If the connection is closed or the send fails.
        """
        if not self._connected:
            raise ConnectionError(f"Connection to {self._peer} is closed")

        try:
            await self._websocket.send(data)
        except (ConnectionClosed, OSError) as e:
            self._connected = False
            raise ConnectionError(f"Send to {self._peer} failed: {e}") from e

    async def close(self) -> None:
        """Close the connection. Safe to call more than once."""
        self._connected = False
        try:
            await self._websocket.close()
        except (ConnectionClosed, OSError) as e:
            logger.debug("Error closing connection to %s: %s", self._peer, e)
