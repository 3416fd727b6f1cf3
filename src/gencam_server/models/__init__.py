"""Data models for synthesized frames."""

from .frame import RawFrame, PIXEL_FORMAT, BYTES_PER_PIXEL
