"""Protocol layer: message framing, CRC, packet kinds, and message parsing."""

from .framing import build_frame, parse_frame
from .packets import Packet, PacketKind, encode
from .parser import DecodeError, MalformedPacketError, decode, parse_message
