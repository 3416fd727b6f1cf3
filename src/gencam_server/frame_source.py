"""Deterministic frame synthesis from an indexed set of test images.

Test assets live in one directory as ``test_image_<index>.png`` for
``index`` in ``0..asset_count-1``. A frame for counter ``c`` is built from
asset ``c % asset_count``, converted to RGB, resized to the canonical
frame size and hue-rotated by ``(90 * c) % 360`` degrees.
"""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
from PIL import Image

from .models.frame import PIXEL_FORMAT, RawFrame
from .protocol.framing import MAX_DIMENSION

logger = logging.getLogger(__name__)

ASSET_NAME = "test_image_{index}.png"
DEFAULT_ASSET_COUNT = 10
FRAME_WIDTH = 64
FRAME_HEIGHT = 64
HUE_STEP_DEGREES = 90

# Native size of generated assets, deliberately not the frame size.
GENERATED_ASSET_SIZE = (96, 72)


class FrameLoadError(Exception):
    """A test asset is missing or cannot be decoded."""


def hue_shift(image: Image.Image, degrees: int) -> Image.Image:
    """Rotate the hue of an RGB image.

    Args:
        image: Source image (any mode Pillow can convert to HSV).
        degrees: Rotation in degrees; taken modulo 360.

    Returns:
        A new RGB image.
    """
    shift = round((degrees % 360) * 256 / 360) % 256
    if shift == 0:
        return image.convert(PIXEL_FORMAT)
    hue, saturation, value = image.convert("HSV").split()
    hue = hue.point([(level + shift) % 256 for level in range(256)])
    return Image.merge("HSV", (hue, saturation, value)).convert(PIXEL_FORMAT)


class FrameSource:
    """Produces frame payloads for a per-session counter.

    Instances hold configuration only, so one source can be shared by
    every session on the server.
    """

    def __init__(
        self,
        assets_dir: str | Path,
        asset_count: int = DEFAULT_ASSET_COUNT,
        width: int = FRAME_WIDTH,
        height: int = FRAME_HEIGHT,
    ) -> None:
        if asset_count < 1:
            raise ValueError(f"asset_count must be positive, got {asset_count}")
        if not (0 < width <= MAX_DIMENSION and 0 < height <= MAX_DIMENSION):
            raise ValueError(
                f"Frame size must be 1-{MAX_DIMENSION} per side, got {width}x{height}"
            )
        self._assets_dir = Path(assets_dir)
        self._asset_count = asset_count
        self._width = width
        self._height = height

    @property
    def assets_dir(self) -> Path:
        return self._assets_dir

    @property
    def asset_count(self) -> int:
        return self._asset_count

    @property
    def frame_size(self) -> tuple[int, int]:
        return self._width, self._height

    def asset_path(self, index: int) -> Path:
        if not 0 <= index < self._asset_count:
            raise ValueError(
                f"Asset index must be 0-{self._asset_count - 1}, got {index}"
            )
        return self._assets_dir / ASSET_NAME.format(index=index)

    def load(self, index: int) -> Image.Image:
        """Load test asset ``index`` as an RGB image.

        Raises:
            FrameLoadError: If the file is missing or unreadable.
        """
        path = self.asset_path(index)
        try:
            with Image.open(path) as image:
                return image.convert(PIXEL_FORMAT)
        except (OSError, ValueError, Image.DecompressionBombError) as e:
            raise FrameLoadError(f"Cannot load test asset {path}: {e}") from e

    def produce(self, counter: int) -> RawFrame:
        """Build the frame for ``counter``.

        The result depends only on ``counter`` and the asset files.

        Raises:
            FrameLoadError: If the selected asset cannot be loaded.
        """
        index = counter % self._asset_count
        image = self.load(index)
        image = image.resize((self._width, self._height), Image.Resampling.BILINEAR)
        image = hue_shift(image, HUE_STEP_DEGREES * counter)
        frame = RawFrame(
            data=image.tobytes(),
            width=self._width,
            height=self._height,
            index=index,
            counter=counter,
        )
        logger.debug("Produced %r", frame)
        return frame


def _test_pattern(index: int, count: int, width: int, height: int) -> np.ndarray:
    yy, xx = np.mgrid[0:height, 0:width]
    pixels = np.empty((height, width, 3), dtype=np.uint8)
    pixels[..., 0] = xx * 255 // max(width - 1, 1)
    pixels[..., 1] = yy * 255 // max(height - 1, 1)
    pixels[..., 2] = index * 255 // max(count - 1, 1)
    # One white stripe per asset so neighbouring indices differ spatially.
    stripes = max(width // 8, 1)
    pixels[(xx // 8) == index % stripes] = 255
    return pixels


def generate_test_assets(
    directory: str | Path,
    count: int = DEFAULT_ASSET_COUNT,
    size: tuple[int, int] = GENERATED_ASSET_SIZE,
    overwrite: bool = False,
) -> list[Path]:
    """Write a deterministic set of synthetic PNG test assets.

    Args:
        directory: Target directory, created if missing.
        count: Number of assets to write.
        size: ``(width, height)`` of each asset.
        overwrite: Replace assets that already exist.

    Returns:
        Paths of all ``count`` assets.
    """
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    width, height = size

    paths: list[Path] = []
    for index in range(count):
        path = directory / ASSET_NAME.format(index=index)
        if overwrite or not path.exists():
            Image.fromarray(_test_pattern(index, count, width, height)).save(path)
            logger.info("Wrote test asset %s", path)
        paths.append(path)
    return paths
