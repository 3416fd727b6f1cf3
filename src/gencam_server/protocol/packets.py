"""Packet kinds, the Packet message type and its encoder.

Each packet carries a single-byte kind tag. Only Image packets carry a
payload; every other kind has ``payload=None``, which is enforced when the
packet is constructed.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

from .framing import MAX_DIMENSION, MAX_SEQUENCE, build_frame


class PacketKind(IntEnum):
    """Packet kind tags."""

    IMAGE_REQUEST = 0x01
    IMAGE = 0x02
    ACKNOWLEDGE = 0x03
    UNKNOWN = 0xFF


@dataclass(frozen=True)
class Packet:
    """A single protocol message.

    Use the ``image_request``, ``image``, ``acknowledge`` and ``unknown``
    constructors rather than building instances by hand.
    """

    kind: PacketKind
    sequence: int = 0
    width: int = 0
    height: int = 0
    payload: bytes | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.kind, PacketKind):
            raise ValueError(f"Unknown packet kind: {self.kind!r}")
        for name in ("sequence", "width", "height"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool):
                raise ValueError(f"{name} must be an int, got {type(value).__name__}")
        if not 0 <= self.sequence <= MAX_SEQUENCE:
            raise ValueError(f"Sequence must be 0-{MAX_SEQUENCE}, got {self.sequence}")
        if not 0 <= self.width <= MAX_DIMENSION or not 0 <= self.height <= MAX_DIMENSION:
            raise ValueError(
                f"Width and height must be 0-{MAX_DIMENSION}, "
                f"got {self.width}x{self.height}"
            )
        if (self.payload is not None) != (self.kind is PacketKind.IMAGE):
            raise ValueError(
                f"{self.kind.name} packet must "
                f"{'carry' if self.kind is PacketKind.IMAGE else 'not carry'} a payload"
            )
        if self.payload is not None and not isinstance(self.payload, bytes):
            raise ValueError(f"Payload must be bytes, got {type(self.payload).__name__}")

    @classmethod
    def image_request(cls, sequence: int = 0) -> Packet:
        return cls(PacketKind.IMAGE_REQUEST, sequence)

    @classmethod
    def image(
        cls, payload: bytes, width: int, height: int, sequence: int = 0
    ) -> Packet:
        """Build an Image packet.

        Args:
            payload: Raw pixel bytes (may be empty, never ``None``).
            width: Frame width in pixels.
            height: Frame height in pixels.
            sequence: Sequence number.
        """
        if payload is None:
            raise ValueError("Image packet requires a payload")
        return cls(PacketKind.IMAGE, sequence, width, height, bytes(payload))

    @classmethod
    def acknowledge(cls, sequence: int = 0) -> Packet:
        return cls(PacketKind.ACKNOWLEDGE, sequence)

    @classmethod
    def unknown(cls, sequence: int = 0) -> Packet:
        return cls(PacketKind.UNKNOWN, sequence)

    def __repr__(self) -> str:
        if self.payload is None:
            return f"Packet({self.kind.name}, sequence={self.sequence})"
        return (
            f"Packet({self.kind.name}, sequence={self.sequence}, "
            f"size={self.width}x{self.height}, payload_len={len(self.payload)})"
        )


def encode(packet: Packet) -> bytes:
    """Encode a packet as one binary message."""
    return build_frame(
        packet.kind.value,
        packet.sequence,
        packet.width,
        packet.height,
        packet.payload,
    )
