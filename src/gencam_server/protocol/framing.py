"""Message frame builder and parser for GenCam binary messages.

Frame layout::

    +----------+------+-------+----------+-------+--------+-------------+---------+----------+
    | Preamble | Kind | Flags | Sequence | Width | Height | Payload len | Payload | Checksum |
    | 2 bytes  | 1 B  | 1 B   | 4 bytes  | 2 B   | 2 B    | 4 bytes     | n bytes | 2 bytes  |
    +----------+------+-------+----------+-------+--------+-------------+---------+----------+

- Preamble: 0x47 0x43 ("GC")
- Kind: packet kind tag (see :class:`~gencam_server.protocol.packets.PacketKind`)
- Flags: bit 0 set when a payload is present (an empty payload is still present)
- All integers little-endian
- Checksum: CRC-16 over everything between the preamble and the checksum

One WebSocket binary message carries exactly one frame, so there is no
length prefix ahead of the preamble and no padding after the checksum.
"""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass

from ..utils.crc import crc16

logger = logging.getLogger(__name__)

PREAMBLE = b"\x47\x43"
HEADER = struct.Struct("<BBIHHI")  # kind, flags, sequence, width, height, payload_len
CHECKSUM_SIZE = 2
MIN_FRAME_SIZE = len(PREAMBLE) + HEADER.size + CHECKSUM_SIZE

FLAG_PAYLOAD = 0x01

MAX_SEQUENCE = 0xFFFFFFFF
MAX_DIMENSION = 0xFFFF


@dataclass(frozen=True)
class Frame:
    """A parsed frame, before the kind tag is interpreted."""

    kind: int
    flags: int
    sequence: int
    width: int
    height: int
    payload: bytes

    @property
    def has_payload(self) -> bool:
        return bool(self.flags & FLAG_PAYLOAD)

    def __repr__(self) -> str:
        return (
            f"Frame(kind=0x{self.kind:02X}, flags=0x{self.flags:02X}, "
            f"sequence={self.sequence}, size={self.width}x{self.height}, "
            f"payload_len={len(self.payload)})"
        )


def build_frame(
    kind: int,
    sequence: int = 0,
    width: int = 0,
    height: int = 0,
    payload: bytes | None = None,
) -> bytes:
    """Build one binary message containing a single protocol frame.

    Args:
        kind: Single-byte kind tag.
        sequence: Unsigned 32-bit sequence number.
        width: Unsigned 16-bit frame width.
        height: Unsigned 16-bit frame height.
        payload: Payload bytes, or ``None`` for no payload.

    Returns:
        The encoded frame.

    Raises:
        ValueError: If a numeric field is out of range.
    """
    if not 0 <= kind <= 0xFF:
        raise ValueError(f"Kind tag must be 0-255, got {kind}")
    if not 0 <= sequence <= MAX_SEQUENCE:
        raise ValueError(f"Sequence must be 0-{MAX_SEQUENCE}, got {sequence}")
    if not 0 <= width <= MAX_DIMENSION or not 0 <= height <= MAX_DIMENSION:
        raise ValueError(
            f"Width and height must be 0-{MAX_DIMENSION}, got {width}x{height}"
        )

    flags = FLAG_PAYLOAD if payload is not None else 0
    body = HEADER.pack(kind, flags, sequence, width, height, len(payload or b""))
    body += payload or b""
    checksum = crc16(body).to_bytes(CHECKSUM_SIZE, "little")
    return PREAMBLE + body + checksum


def parse_frame(data: bytes) -> Frame | None:
    """Parse one binary message into a Frame.

    Args:
        data: The raw message bytes.

    Returns:
        A ``Frame`` if the message is a structurally valid frame, or
        ``None`` if the preamble, length or checksum is wrong.
    """
    if len(data) < MIN_FRAME_SIZE:
        logger.debug("Frame too short: %d bytes", len(data))
        return None

    if data[: len(PREAMBLE)] != PREAMBLE:
        logger.debug("Bad preamble: %s", data[: len(PREAMBLE)].hex(" "))
        return None

    header_end = len(PREAMBLE) + HEADER.size
    kind, flags, sequence, width, height, payload_len = HEADER.unpack(
        data[len(PREAMBLE) : header_end]
    )

    expected_size = header_end + payload_len + CHECKSUM_SIZE
    if len(data) != expected_size:
        logger.debug(
            "Length mismatch: declared %d bytes, got %d", expected_size, len(data)
        )
        return None

    body = data[len(PREAMBLE) : header_end + payload_len]
    expected_checksum = int.from_bytes(data[-CHECKSUM_SIZE:], "little")
    actual_checksum = crc16(body)
    if actual_checksum != expected_checksum:
        logger.debug(
            "Checksum mismatch: expected 0x%04X, got 0x%04X",
            expected_checksum,
            actual_checksum,
        )
        return None

    return Frame(
        kind=kind,
        flags=flags,
        sequence=sequence,
        width=width,
        height=height,
        payload=bytes(data[header_end : header_end + payload_len]),
    )
