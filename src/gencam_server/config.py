"""Server configuration loading and validation."""

from __future__ import annotations

from pathlib import Path
from typing import ClassVar, Literal

from pydantic import Field, PositiveFloat, PositiveInt
from pydantic_settings import BaseSettings, SettingsConfigDict

from .frame_source import DEFAULT_ASSET_COUNT, FRAME_HEIGHT, FRAME_WIDTH
from .session import DEFAULT_TICK_PERIOD


class GenCamSettings(BaseSettings):
    """Validated settings for the GenCam server.

    Every field can be overridden with a ``GENCAM_``-prefixed environment
    variable, e.g. ``GENCAM_PORT=9100``.
    """

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_prefix="GENCAM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    host: str = Field(
        default="127.0.0.1",
        description="Address the WebSocket server binds to.",
    )
    port: int = Field(
        default=9001,
        ge=0,
        le=65535,
        description="TCP port to listen on; 0 picks a free port.",
    )
    tick_period: PositiveFloat = Field(
        default=DEFAULT_TICK_PERIOD,
        description="Seconds between unprompted frame pushes.",
    )
    assets_dir: Path = Field(
        default=Path("res"),
        description="Directory holding test_image_<n>.png assets.",
    )
    asset_count: PositiveInt = Field(
        default=DEFAULT_ASSET_COUNT,
        description="Number of indexed test assets.",
    )
    frame_width: PositiveInt = Field(
        default=FRAME_WIDTH,
        le=0xFFFF,
        description="Width of produced frames in pixels.",
    )
    frame_height: PositiveInt = Field(
        default=FRAME_HEIGHT,
        le=0xFFFF,
        description="Height of produced frames in pixels.",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Root log level.",
    )

    @property
    def listen_url(self) -> str:
        return f"ws://{self.host}:{self.port}"
