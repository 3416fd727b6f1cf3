"""CRC-16/CCITT-FALSE checksum used by the packet framing.

Polynomial 0x1021, initial value 0xFFFF, no reflection, no final XOR.
The check value for ``b"123456789"`` is 0x29B1.
"""

from __future__ import annotations

POLYNOMIAL = 0x1021
INITIAL_VALUE = 0xFFFF


def _build_table() -> tuple[int, ...]:
    table = []
    for byte in range(256):
        crc = byte << 8
        for _ in range(8):
            if crc & 0x8000:
                crc = (crc << 1) ^ POLYNOMIAL
            else:
                crc <<= 1
            crc &= 0xFFFF
        table.append(crc)
    return tuple(table)


_TABLE = _build_table()


def crc16(data: bytes, initial: int = INITIAL_VALUE) -> int:
    """Compute the CRC-16 of ``data``.

    Args:
        data: Bytes to checksum.
        initial: Starting register value, for checksumming in pieces.

    Returns:
        The 16-bit checksum as an ``int``.
    """
    crc = initial
    for byte in data:
        crc = ((crc << 8) & 0xFFFF) ^ _TABLE[((crc >> 8) ^ byte) & 0xFF]
    return crc
