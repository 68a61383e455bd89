"""Operation identifiers and per-operation request frame builders.

Every chip function is selected by a 16-bit varid. The frame passed with
it has an operation-specific layout of little-endian 16-bit fields:

=================  ====================================================
size query         key(0-1), stores(2-3)
PS read / write    key(0-1), length in words(2-3), stores(4-5), data(6-)
enumerate next     previous key(0-1), stores(2-3)
clear stores       key(0-1), stores(2-3)
memory type        single store bit(0-1)
=================  ====================================================

Simple frames are 8 bytes; PS read/write frames are ``(length + 3) * 2``.
"""

from __future__ import annotations

import struct
from enum import IntEnum

from ..exceptions import FrameTooLarge, InvalidArgument


class VarId(IntEnum):
    """BCCMD variable identifiers."""

    CHIPREV = 0x281B
    RAND = 0x282A
    BT_CLOCK = 0x2C00
    PS_NEXT = 0x3005
    PS_SIZE = 0x3006
    CRYPT_KEY_LENGTH = 0x3008
    GET_NEXT_BUILDDEF = 0x300B
    PS_MEMORY_TYPE = 0x3012
    COLD_RESET = 0x4001
    WARM_RESET = 0x4002
    COLD_HALT = 0x4003
    WARM_HALT = 0x4004
    ENABLE_TX = 0x4007
    DISABLE_TX = 0x4008
    HOPPING_ON = 0x4011
    READ_BUILD_NAME = 0x4825
    SINGLE_CHAN = 0x482E
    RADIOTEST = 0x5004
    PS_CLR_STORES = 0x500C
    PANIC_ARG = 0x6805
    FAULT_ARG = 0x6806
    PS = 0x7003


# Varids after which the chip restarts instead of answering
RESET_VARIDS = frozenset({
    VarId.COLD_RESET,
    VarId.WARM_RESET,
    VarId.COLD_HALT,
    VarId.WARM_HALT,
})


class RadioTest(IntEnum):
    """Radio test identifiers accepted by the RADIOTEST varid."""

    PAUSE = 0x0000
    TXSTART = 0x0001
    RXSTART1 = 0x0002
    RXSTART2 = 0x0003
    TXDATA1 = 0x0004
    TXDATA2 = 0x0005
    TXDATA3 = 0x0006
    TXDATA4 = 0x0007
    RXDATA1 = 0x0008
    RXDATA2 = 0x0009


SIMPLE_FRAME_SIZE = 8
BUILD_NAME_FRAME_SIZE = 128
WORKING_BUFFER_SIZE = 256
PS_HEADER_SIZE = 6

# Largest PS value a single write frame can carry
MAX_PS_WORDS = (WORKING_BUFFER_SIZE - PS_HEADER_SIZE) // 2
# Largest PS value a get accepts before refusing to read
MAX_GET_WORDS = WORKING_BUFFER_SIZE // 2 - PS_HEADER_SIZE

MAX_CHANNEL = 78


def encode_words(words) -> bytes:
    """Pack 16-bit words low byte first."""
    for word in words:
        if not 0 <= word <= 0xFFFF:
            raise InvalidArgument(f"Value 0x{word:x} does not fit in 16 bits")
    return struct.pack(f"<{len(words)}H", *words)


def decode_words(data: bytes) -> tuple[int, ...]:
    """Unpack little-endian 16-bit words; a trailing odd byte is ignored."""
    count = len(data) // 2
    return struct.unpack_from(f"<{count}H", data)


def uint32_to_words(value: int) -> tuple[int, int]:
    """Split a 32-bit value into the chip's (high word, low word) order.

    The firmware stores 32-bit quantities with the high word first, each
    word low byte first: bytes ``01 02 03 04`` are the value 0x02010403.
    """
    if not 0 <= value <= 0xFFFFFFFF:
        raise InvalidArgument(f"Value 0x{value:x} does not fit in 32 bits")
    return (value >> 16) & 0xFFFF, value & 0xFFFF


def words_to_uint32(high: int, low: int) -> int:
    """Join a (high word, low word) pair back into a 32-bit value."""
    return (high << 16) | low


def _frame(*fields: int, size: int = SIMPLE_FRAME_SIZE) -> bytes:
    data = encode_words([field & 0xFFFF for field in fields])
    return data + b"\x00" * (size - len(data))


def ps_frame_size(length: int) -> int:
    """Return the byte size of a PS read/write frame for *length* words."""
    return (length + 3) * 2


def build_ps_size(key: int, stores: int) -> bytes:
    """Build a PS_SIZE request asking for the length of *key*."""
    return _frame(key, stores)


def build_ps_read(key: int, length: int, stores: int) -> bytes:
    """Build a PS read request for *length* words of *key*.

    Raises:
        FrameTooLarge: If the value cannot fit the working buffer.
    """
    if length > MAX_PS_WORDS:
        raise FrameTooLarge(
            f"PS read of {length} words exceeds {MAX_PS_WORDS}-word frame"
        )
    return _frame(key, length, stores, size=ps_frame_size(length))


def build_ps_write(key: int, stores: int, data: bytes) -> bytes:
    """Build a PS write frame carrying *data* (its byte image) for *key*.

    Raises:
        InvalidArgument: If *data* is not word aligned.
        FrameTooLarge: If the value cannot fit the working buffer.
    """
    if len(data) % 2:
        raise InvalidArgument(
            f"PS value for 0x{key:04x} has odd length {len(data)}"
        )
    length = len(data) // 2
    if length > MAX_PS_WORDS:
        raise FrameTooLarge(
            f"PS value of {length} words exceeds {MAX_PS_WORDS}-word frame"
        )
    return encode_words([key, length, stores]) + bytes(data)


def build_ps_next(key: int, stores: int) -> bytes:
    """Build a PS_NEXT request for the key following *key*."""
    return _frame(key, stores)


def build_ps_clear(key: int, stores: int) -> bytes:
    """Build a PS_CLR_STORES request."""
    return _frame(key, stores)


def build_memory_type(store: int) -> bytes:
    """Build a PS_MEMORY_TYPE request for a single store bit."""
    return _frame(store)


def build_next_builddef(builddef: int) -> bytes:
    """Build a GET_NEXT_BUILDDEF request."""
    return _frame(builddef)


def build_crypt_key_length(handle: int) -> bytes:
    """Build a CRYPT_KEY_LENGTH request for an ACL connection handle."""
    return _frame(handle)


def build_single_channel(channel: int) -> bytes:
    """Build a SINGLE_CHAN request.

    Args:
        channel: Channel index 0-78, or a frequency 2402-2480 in MHz.
    """
    if 2401 < channel < 2481:
        channel -= 2402
    if not 0 <= channel <= MAX_CHANNEL:
        raise InvalidArgument(f"Channel must be 0-{MAX_CHANNEL}, got {channel}")
    return _frame(channel)


def build_radiotest(test: int, freq: int, level: int) -> bytes:
    """Build a RADIOTEST request: test id, frequency in MHz, power level."""
    return _frame(test, freq, level)


def build_empty(size: int = SIMPLE_FRAME_SIZE) -> bytes:
    """Build a zeroed request frame for queries that take no arguments."""
    return b"\x00" * size
