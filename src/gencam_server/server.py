"""GenCam server entry point.

Accepts WebSocket connections and runs one :class:`ConnectionSession` per
connection, each with its own frame counter and timer. Only the frame
source, which holds read-only configuration, is shared between sessions.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from typing import Callable

from websockets.asyncio.server import Server, ServerConnection, serve

from .config import GenCamSettings
from .frame_source import FrameSource, generate_test_assets
from .session import ConnectionSession, PeriodicTimer, Timer
from .transport.websocket_connection import WebSocketConnection

logger = logging.getLogger(__name__)


class GenCamServer:
    """WebSocket server spawning one session per client.

    Usage::

        server = GenCamServer(GenCamSettings())
        await server.start()
        await server.serve_forever()
    """

    def __init__(
        self,
        settings: GenCamSettings,
        frame_source: FrameSource | None = None,
        timer_factory: Callable[[], Timer] | None = None,
    ) -> None:
        self._settings = settings
        self._frame_source = frame_source or FrameSource(
            settings.assets_dir,
            asset_count=settings.asset_count,
            width=settings.frame_width,
            height=settings.frame_height,
        )
        self._timer_factory = timer_factory or (
            lambda: PeriodicTimer(settings.tick_period)
        )
        self._server: Server | None = None
        self._port: int | None = None
        self._sessions: set[ConnectionSession] = set()
        self._sessions_started = 0

    @property
    def port(self) -> int | None:
        """Bound port, or ``None`` before :meth:`start`."""
        return self._port

    @property
    def active_sessions(self) -> int:
        return len(self._sessions)

    @property
    def sessions_started(self) -> int:
        return self._sessions_started

    async def handle(self, websocket: ServerConnection) -> None:
        """Run a session for one accepted connection.

        Failures are contained to this connection so the server keeps
        accepting new clients.
        """
        connection = WebSocketConnection(websocket)
        self._sessions_started += 1
        logger.info("Client %s connected", connection.peer)
        session: ConnectionSession | None = None
        try:
            session = ConnectionSession(
                connection, self._frame_source, self._timer_factory()
            )
            self._sessions.add(session)
            await session.run()
        except Exception:
            logger.exception("Session for %s failed", connection.peer)
            await connection.close()
        finally:
            if session is not None:
                self._sessions.discard(session)
            logger.info(
                "Client %s left (%d active)", connection.peer, len(self._sessions)
            )

    async def start(self) -> int:
        """Bind the listening socket.

        Returns:
            The bound port.
        """
        if self._server is not None:
            raise RuntimeError("Server already started")

        self._warn_missing_assets()
        self._server = await serve(self.handle, self._settings.host, self._settings.port)
        self._port = self._server.sockets[0].getsockname()[1]
        logger.info("Listening on ws://%s:%d", self._settings.host, self._port)
        return self._port

    async def serve_forever(self) -> None:
        if self._server is None:
            await self.start()
        await self._server.serve_forever()

    async def close(self) -> None:
        """Stop accepting connections and close every open session."""
        if self._server is None:
            return
        self._server.close()
        await self._server.wait_closed()
        self._server = None
        logger.info("Server stopped")

    def _warn_missing_assets(self) -> None:
        missing = [
            index
            for index in range(self._frame_source.asset_count)
            if not self._frame_source.asset_path(index).is_file()
        ]
        if missing:
            logger.warning(
                "%d of %d test assets missing in %s; affected frames are "
                "answered with Acknowledge",
                len(missing),
                self._frame_source.asset_count,
                self._frame_source.assets_dir,
            )


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="gencam-server",
        description="GenCam reference server: synthetic camera frames over WebSocket.",
    )
    p.add_argument("--host", help="Listen address (default 127.0.0.1).")
    p.add_argument("--port", type=int, help="Listen port (default 9001).")
    p.add_argument(
        "--tick-period", type=float, help="Seconds between pushed frames (default 2.5)."
    )
    p.add_argument("--assets", dest="assets_dir", help="Test asset directory.")
    p.add_argument("--asset-count", type=int, help="Number of test assets (default 10).")
    p.add_argument(
        "--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Log level."
    )
    p.add_argument(
        "--generate-assets",
        action="store_true",
        help="Write synthetic test assets into the asset directory before serving.",
    )
    return p


def load_settings(argv: list[str] | None = None) -> tuple[GenCamSettings, argparse.Namespace]:
    """Merge CLI flags over environment/default settings."""
    args = _build_parser().parse_args(argv)
    overrides = {
        name: getattr(args, name)
        for name in ("host", "port", "tick_period", "assets_dir", "asset_count", "log_level")
        if getattr(args, name) is not None
    }
    return GenCamSettings(**overrides), args


async def _serve(settings: GenCamSettings) -> None:
    server = GenCamServer(settings)
    try:
        await server.serve_forever()
    finally:
        await server.close()


def main(argv: list[str] | None = None) -> int:
    """Run the GenCam server until interrupted."""
    settings, args = load_settings(argv)
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.generate_assets:
        generate_test_assets(settings.assets_dir, settings.asset_count)

    try:
        asyncio.run(_serve(settings))
    except KeyboardInterrupt:
        logger.info("Interrupted")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
