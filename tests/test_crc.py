"""Tests for the link-layer CRC."""

from csr_bccmd.utils.crc import bitrev16, crc16_ccitt, link_crc


def test_crc16_empty():
    """CRC of empty data is the initial value."""
    assert crc16_ccitt(b"") == 0xFFFF


def test_crc16_check_value():
    """Reflected CCITT, init 0xFFFF, no final XOR: check value 0x6F91."""
    assert crc16_ccitt(b"123456789") == 0x6F91


def test_crc16_incremental():
    """Feeding data in pieces gives the same result as one pass."""
    whole = crc16_ccitt(b"123456789")
    assert crc16_ccitt(b"6789", crc16_ccitt(b"12345")) == whole


def test_bitrev16():
    assert bitrev16(0x0001) == 0x8000
    assert bitrev16(0x8000) == 0x0001
    assert bitrev16(0x6F91) == 0x89F6
    assert bitrev16(bitrev16(0x1234)) == 0x1234


def test_link_crc_is_bit_reversed_big_endian():
    """Link packets carry the bit-reversed CRC, high byte first."""
    assert link_crc(b"123456789") == bytes([0x89, 0xF6])


def test_link_crc_different_inputs():
    assert link_crc(b"\x01") != link_crc(b"\x02")
