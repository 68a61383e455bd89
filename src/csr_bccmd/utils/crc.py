"""CRC-CCITT as used by the BCSP and three-wire UART link layers.

The CRC is computed least-significant bit first (polynomial 0x8408,
initial value 0xFFFF, no final XOR) over the packet header and payload.
On the wire the result is bit-reversed and sent most-significant byte
first.
"""

from __future__ import annotations

# Nibble-wise table for the reflected polynomial 0x8408
_CRC_TABLE = (
    0x0000, 0x1081, 0x2102, 0x3183,
    0x4204, 0x5285, 0x6306, 0x7387,
    0x8408, 0x9489, 0xA50A, 0xB58B,
    0xC60C, 0xD68D, 0xE70E, 0xF78F,
)


def crc16_ccitt(data: bytes, crc: int = 0xFFFF) -> int:
    """Compute the reflected CRC-CCITT of *data*."""
    for byte in data:
        crc = (crc >> 4) ^ _CRC_TABLE[(crc ^ byte) & 0x0F]
        crc = (crc >> 4) ^ _CRC_TABLE[(crc ^ (byte >> 4)) & 0x0F]
    return crc


def bitrev16(value: int) -> int:
    """Reverse the bit order of a 16-bit value."""
    result = 0
    for _ in range(16):
        result = (result << 1) | (value & 1)
        value >>= 1
    return result


def link_crc(data: bytes) -> bytes:
    """Return the two CRC bytes appended to a link-layer packet."""
    return bitrev16(crc16_ccitt(data)).to_bytes(2, "big")
