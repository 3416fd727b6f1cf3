"""Raw frame model produced by the frame source."""

from __future__ import annotations

from dataclasses import dataclass

from ..protocol.packets import Packet

PIXEL_FORMAT = "RGB"
BYTES_PER_PIXEL = 3


@dataclass(frozen=True)
class RawFrame:
    """An RGB8 frame, row-major, no row padding."""

    data: bytes
    width: int
    height: int
    index: int = 0  # test asset the frame was built from
    counter: int = 0

    def __post_init__(self) -> None:
        expected = self.width * self.height * BYTES_PER_PIXEL
        if len(self.data) != expected:
            raise ValueError(
                f"{self.width}x{self.height} {PIXEL_FORMAT} frame needs "
                f"{expected} bytes, got {len(self.data)}"
            )

    def to_packet(self, sequence: int = 0) -> Packet:
        return Packet.image(self.data, self.width, self.height, sequence=sequence)

    def __repr__(self) -> str:
        return (
            f"RawFrame(counter={self.counter}, index={self.index}, "
            f"size={self.width}x{self.height})"
        )
