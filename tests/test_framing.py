"""Tests for BCCMD message framing and HCI wrapping."""

import pytest

from csr_bccmd.exceptions import FrameTooLarge, ProtocolIOError
from csr_bccmd.protocol.framing import (
    HEADER_SIZE,
    Message,
    MessageType,
    Status,
    build_hci_command,
    build_message,
    check_response,
    message_words,
    parse_hci_command_status,
    parse_hci_vendor_event,
    parse_message,
    status_name,
)


def test_message_words_minimum():
    """Short payloads still produce a 9-word message."""
    assert message_words(0) == 9
    assert message_words(7) == 9


def test_message_words_grows_with_payload():
    assert message_words(8) == 9
    assert message_words(10) == 10
    assert message_words(11) == 11
    assert message_words(256) == 133


def test_build_message_header():
    """Header: type, length, seqnum, varid, status, each little-endian."""
    msg = build_message(MessageType.GETREQ, 0x0102, 0x7003, b"\xAA" * 8)
    assert msg[0:2] == b"\x00\x00"      # GETREQ
    assert msg[2:4] == b"\x09\x00"      # 9 words
    assert msg[4:6] == b"\x02\x01"      # seqnum
    assert msg[6:8] == b"\x03\x70"      # varid
    assert msg[8:10] == b"\x00\x00"     # status
    assert msg[HEADER_SIZE:] == b"\xAA" * 8


def test_build_message_pads_to_length():
    msg = build_message(MessageType.SETREQ, 0, 0x4002)
    assert len(msg) == 18
    assert msg[HEADER_SIZE:] == b"\x00" * 8


def test_parse_message_roundtrip():
    raw = build_message(MessageType.GETREQ, 7, 0x282A, b"\x01\x02\x03\x04\x00\x00\x00\x00")
    msg = parse_message(raw)
    assert msg.type == MessageType.GETREQ
    assert msg.seqnum == 7
    assert msg.varid == 0x282A
    assert msg.status == Status.OK
    assert msg.payload[:4] == b"\x01\x02\x03\x04"


def test_parse_message_too_short():
    with pytest.raises(ProtocolIOError):
        parse_message(b"\x01\x00\x09")


def test_check_response_returns_payload_prefix():
    msg = Message(MessageType.GETRESP, 0, 0x3006, Status.OK, bytes(range(10)))
    assert check_response(msg, 0x3006, 8) == bytes(range(8))


def test_check_response_status_error():
    """A non-zero status is reported by name and kept on the exception."""
    msg = Message(MessageType.GETRESP, 0, 0x3006, Status.NO_VALUE, b"\x00" * 8)
    with pytest.raises(ProtocolIOError, match="NO_VALUE") as excinfo:
        check_response(msg, 0x3006, 8)
    assert excinfo.value.status == Status.NO_VALUE
    assert excinfo.value.varid == 0x3006


def test_check_response_varid_mismatch():
    msg = Message(MessageType.GETRESP, 0, 0x3005, Status.OK, b"\x00" * 8)
    with pytest.raises(ProtocolIOError, match="mismatch"):
        check_response(msg, 0x3006, 8)


def test_check_response_wrong_type():
    msg = Message(MessageType.GETREQ, 0, 0x3006, Status.OK, b"\x00" * 8)
    with pytest.raises(ProtocolIOError):
        check_response(msg, 0x3006, 8)


def test_check_response_short_payload():
    msg = Message(MessageType.GETRESP, 0, 0x7003, Status.OK, b"\x00" * 8)
    with pytest.raises(ProtocolIOError, match="Short"):
        check_response(msg, 0x7003, 12)


def test_status_name_unknown():
    assert status_name(Status.TOO_BIG) == "TOO_BIG"
    assert status_name(0x0042) == "0x0042"


def test_build_hci_command_layout():
    """Vendor opcode 0xFC00, parameter length, 0xC2 descriptor, message."""
    msg = build_message(MessageType.GETREQ, 0, 0x282A, b"\x00" * 8)
    cmd = build_hci_command(msg)
    assert cmd[0:2] == b"\x00\xFC"
    assert cmd[2] == len(msg) + 1
    assert cmd[3] == 0xC2
    assert cmd[4:] == msg


def test_build_hci_command_too_large():
    with pytest.raises(FrameTooLarge):
        build_hci_command(b"\x00" * 255)


def test_parse_hci_vendor_event():
    msg = build_message(MessageType.GETRESP, 3, 0x282A, b"\x34\x12" + b"\x00" * 6)
    event = bytes([0xFF, len(msg) + 1, 0xC2]) + msg
    parsed = parse_hci_vendor_event(event)
    assert parsed is not None
    assert parsed.seqnum == 3
    assert parsed.varid == 0x282A
    assert parsed.payload[:2] == b"\x34\x12"


def test_parse_hci_vendor_event_ignores_other_events():
    assert parse_hci_vendor_event(bytes([0x0E, 0x04, 0x01, 0x00, 0xFC, 0x00])) is None
    assert parse_hci_vendor_event(bytes([0xFF, 0x02, 0x20, 0x00])) is None


def test_parse_hci_command_status():
    event = bytes([0x0F, 0x04, 0x01, 0x01, 0x00, 0xFC])
    assert parse_hci_command_status(event) == 0x01
    other = bytes([0x0F, 0x04, 0x00, 0x01, 0x03, 0x0C])
    assert parse_hci_command_status(other) is None
