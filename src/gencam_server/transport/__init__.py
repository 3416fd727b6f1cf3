"""Client transports."""

from .websocket_connection import WebSocketConnection
