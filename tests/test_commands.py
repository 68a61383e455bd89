"""Tests for request frame builders."""

import pytest

from csr_bccmd.exceptions import FrameTooLarge, InvalidArgument
from csr_bccmd.protocol.commands import (
    MAX_PS_WORDS,
    RESET_VARIDS,
    RadioTest,
    VarId,
    build_crypt_key_length,
    build_empty,
    build_memory_type,
    build_ps_clear,
    build_ps_next,
    build_ps_read,
    build_ps_size,
    build_ps_write,
    build_radiotest,
    build_single_channel,
    decode_words,
    encode_words,
    ps_frame_size,
    uint32_to_words,
    words_to_uint32,
)


def test_varid_values():
    assert VarId.PS == 0x7003
    assert VarId.PS_SIZE == 0x3006
    assert VarId.PS_NEXT == 0x3005
    assert VarId.PS_CLR_STORES == 0x500C
    assert VarId.PS_MEMORY_TYPE == 0x3012
    assert VarId.WARM_RESET == 0x4002


def test_reset_varids():
    assert VarId.WARM_RESET in RESET_VARIDS
    assert VarId.COLD_RESET in RESET_VARIDS
    assert VarId.PS not in RESET_VARIDS


def test_build_ps_size():
    """Size query: key(0-1), stores(2-3), 8 bytes."""
    frame = build_ps_size(0x0001, 0x0003)
    assert frame == bytes([0x01, 0x00, 0x03, 0x00, 0, 0, 0, 0])


def test_build_ps_read_layout():
    """Read: key, length in words, stores; frame sized for the value."""
    frame = build_ps_read(0x01BE, 1, 0x0008)
    assert len(frame) == ps_frame_size(1) == 8
    assert frame[0:6] == bytes([0xBE, 0x01, 0x01, 0x00, 0x08, 0x00])


def test_build_ps_read_array_size():
    frame = build_ps_read(0x0001, 4, 0x0003)
    assert len(frame) == 14


def test_build_ps_read_too_large():
    with pytest.raises(FrameTooLarge):
        build_ps_read(0x0001, MAX_PS_WORDS + 1, 0)


def test_build_ps_write_layout():
    frame = build_ps_write(0x01BE, 0x0008, b"\xD8\x01")
    assert frame == bytes([0xBE, 0x01, 0x01, 0x00, 0x08, 0x00, 0xD8, 0x01])


def test_build_ps_write_largest_value_fits_buffer():
    frame = build_ps_write(0x0001, 0x0008, b"\x00" * (MAX_PS_WORDS * 2))
    assert len(frame) == 256


def test_build_ps_write_too_large():
    """Oversized values fail before any I/O."""
    with pytest.raises(FrameTooLarge):
        build_ps_write(0x0001, 0x0008, b"\x00" * ((MAX_PS_WORDS + 1) * 2))


def test_build_ps_write_odd_length():
    with pytest.raises(InvalidArgument):
        build_ps_write(0x0001, 0x0008, b"\x01\x02\x03")


def test_build_ps_next_and_clear():
    assert build_ps_next(0x0002, 0x0003)[:4] == bytes([0x02, 0x00, 0x03, 0x00])
    assert build_ps_clear(0x01BE, 0x0008) == bytes([0xBE, 0x01, 0x08, 0x00, 0, 0, 0, 0])


def test_build_memory_type():
    assert build_memory_type(0x0008) == bytes([0x08, 0x00, 0, 0, 0, 0, 0, 0])


def test_build_crypt_key_length():
    assert build_crypt_key_length(0x002A)[:2] == b"\x2A\x00"


def test_build_single_channel_index():
    assert build_single_channel(39)[:2] == bytes([39, 0])


def test_build_single_channel_frequency():
    """Frequencies 2402-2480 MHz map onto channels 0-78."""
    assert build_single_channel(2402)[:2] == bytes([0, 0])
    assert build_single_channel(2480)[:2] == bytes([78, 0])


def test_build_single_channel_out_of_range():
    with pytest.raises(InvalidArgument):
        build_single_channel(79)
    with pytest.raises(InvalidArgument):
        build_single_channel(2481)


def test_build_radiotest():
    frame = build_radiotest(RadioTest.TXDATA1, 2441, 0x32FF)
    assert frame == bytes([0x04, 0x00, 0x89, 0x09, 0xFF, 0x32, 0x00, 0x00])


def test_build_empty():
    assert build_empty() == b"\x00" * 8
    assert len(build_empty(128)) == 128


def test_encode_words_rejects_wide_values():
    with pytest.raises(InvalidArgument):
        encode_words([0x10000])


def test_decode_words_low_byte_first():
    assert decode_words(bytes([0x34, 0x12, 0x78, 0x56])) == (0x1234, 0x5678)


def test_scalar32_interleave():
    """Bytes 01 02 03 04 hold high word 0x0201 then low word 0x0403."""
    high, low = decode_words(bytes([0x01, 0x02, 0x03, 0x04]))
    assert words_to_uint32(high, low) == 0x02010403


def test_uint32_to_words():
    assert uint32_to_words(0x02010403) == (0x0201, 0x0403)
    assert encode_words(uint32_to_words(0x02010403)) == bytes([0x01, 0x02, 0x03, 0x04])


def test_uint32_to_words_out_of_range():
    with pytest.raises(InvalidArgument):
        uint32_to_words(0x1_0000_0000)
