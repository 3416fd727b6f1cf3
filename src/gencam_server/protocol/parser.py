"""Inbound message parsing: classify raw messages into Packets."""

from __future__ import annotations

from .framing import FLAG_PAYLOAD, parse_frame
from .packets import Packet, PacketKind

# Plain-text command understood by early clients, answered like an ImageRequest.
TEXT_IMAGE_REQUEST = "send test image"


class DecodeError(ValueError):
    """Raised when an inbound message cannot be turned into a Packet."""


class MalformedPacketError(DecodeError):
    """The message does not form a well-formed packet of any known kind."""


def decode(data: bytes) -> Packet:
    """Decode one binary message into a Packet.

    Args:
        data: Raw message bytes.

    Returns:
        The decoded ``Packet``.

    Raises:
        MalformedPacketError: If the framing is invalid, the kind tag is
            unknown, or the payload does not match the kind.
    """
    frame = parse_frame(bytes(data))
    if frame is None:
        raise MalformedPacketError("Not a valid GenCam frame")

    if frame.flags & ~FLAG_PAYLOAD:
        raise MalformedPacketError(f"Unsupported flags 0x{frame.flags:02X}")
    if not frame.has_payload and frame.payload:
        raise MalformedPacketError("Payload bytes present without payload flag")

    try:
        kind = PacketKind(frame.kind)
    except ValueError:
        raise MalformedPacketError(f"Unknown kind tag 0x{frame.kind:02X}") from None

    if frame.has_payload and kind is not PacketKind.IMAGE:
        raise MalformedPacketError(f"{kind.name} packet carries a payload")
    if not frame.has_payload and kind is PacketKind.IMAGE:
        raise MalformedPacketError("IMAGE packet without payload")

    try:
        return Packet(
            kind=kind,
            sequence=frame.sequence,
            width=frame.width,
            height=frame.height,
            payload=frame.payload if frame.has_payload else None,
        )
    except ValueError as e:
        raise MalformedPacketError(str(e)) from e


def parse_message(message: bytes | str) -> Packet:
    """Classify a transport message.

    Binary messages are decoded with :func:`decode`. Text messages are
    accepted only for the legacy ``"send test image"`` command.

    Raises:
        MalformedPacketError: If the message is not understood.
    """
    if isinstance(message, str):
        if message.strip() == TEXT_IMAGE_REQUEST:
            return Packet.image_request()
        raise MalformedPacketError(f"Unsupported text message: {message[:32]!r}")
    return decode(message)
