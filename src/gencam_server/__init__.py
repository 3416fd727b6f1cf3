"""GenCam reference server: synthetic camera frames over WebSocket."""

__version__ = "0.1.0"
