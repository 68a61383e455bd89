"""BCCMD message framing and its HCI vendor-command wrapping.

BCCMD message layout (all fields little-endian 16-bit words)::

    +---------+---------+---------+---------+---------+------------------+
    |  Type   | Length  | Seq No  |  VarID  | Status  |     Payload      |
    | 2 bytes | 2 bytes | 2 bytes | 2 bytes | 2 bytes | padded to length |
    +---------+---------+---------+---------+---------+------------------+

- Type: GETREQ (0), GETRESP (1) or SETREQ (2)
- Length: total message length in 16-bit words, never less than 9
- Status: zero in requests, result code in responses

Over HCI the message travels as the parameters of vendor command 0xFC00,
prefixed with the payload descriptor 0xC2 (BCCMD channel, single
fragment). The reply comes back as vendor event 0xFF with the same
descriptor.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum

from ..exceptions import FrameTooLarge, ProtocolIOError

HEADER_SIZE = 10
MIN_MESSAGE_WORDS = 9

BCCMD_DESCRIPTOR = 0xC2
HCI_VENDOR_OPCODE = 0xFC00
HCI_EVENT_VENDOR = 0xFF
HCI_EVENT_CMD_STATUS = 0x0F
HCI_MAX_PARAM_LEN = 255

_HEADER = struct.Struct("<5H")


class MessageType(IntEnum):
    """BCCMD message types."""

    GETREQ = 0x0000
    GETRESP = 0x0001
    SETREQ = 0x0002


class Status(IntEnum):
    """Result codes carried in BCCMD responses."""

    OK = 0x0000
    NO_SUCH_VARID = 0x0001
    TOO_BIG = 0x0002
    NO_VALUE = 0x0003
    BAD_REQ = 0x0004
    NO_ACCESS = 0x0005
    READ_ONLY = 0x0006
    WRITE_ONLY = 0x0007
    ERROR = 0x0008
    PERMISSION_DENIED = 0x0009


@dataclass
class Message:
    """A parsed BCCMD message."""

    type: int
    seqnum: int
    varid: int
    status: int
    payload: bytes

    def __repr__(self) -> str:
        return (
            f"Message(type={self.type}, seqnum={self.seqnum}, "
            f"varid=0x{self.varid:04X}, status={self.status}, "
            f"payload={self.payload.hex(' ') if self.payload else '(empty)'})"
        )


def message_words(length: int) -> int:
    """Return the BCCMD length field for a payload of *length* bytes."""
    if length < 8:
        return MIN_MESSAGE_WORDS
    return (length + 1) // 2 + 5


def build_message(
    msg_type: int, seqnum: int, varid: int, value: bytes = b""
) -> bytes:
    """Build a BCCMD message carrying *value* as its payload.

    The payload is zero-padded so that the message is exactly
    ``message_words(len(value))`` words long.
    """
    words = message_words(len(value))
    header = _HEADER.pack(msg_type, words, seqnum & 0xFFFF, varid, Status.OK)
    body = value + b"\x00" * (words * 2 - HEADER_SIZE - len(value))
    return header + body


def parse_message(data: bytes) -> Message:
    """Parse a raw BCCMD message.

    Raises:
        ProtocolIOError: If the data is shorter than a message header.
    """
    if len(data) < HEADER_SIZE:
        raise ProtocolIOError(f"BCCMD message too short: {len(data)} bytes")
    msg_type, _, seqnum, varid, status = _HEADER.unpack_from(data)
    return Message(
        type=msg_type,
        seqnum=seqnum,
        varid=varid,
        status=status,
        payload=bytes(data[HEADER_SIZE:]),
    )


def status_name(status: int) -> str:
    try:
        return Status(status).name
    except ValueError:
        return f"0x{status:04x}"


def check_response(message: Message, varid: int, length: int) -> bytes:
    """Validate a GETRESP message and return the first *length* payload bytes.

    Raises:
        ProtocolIOError: On a wrong message type, varid mismatch, non-zero
            status, or a payload shorter than *length*.
    """
    if message.type != MessageType.GETRESP:
        raise ProtocolIOError(
            f"Unexpected BCCMD message type {message.type}", varid=varid
        )
    if message.varid != varid:
        raise ProtocolIOError(
            f"BCCMD varid mismatch: sent 0x{varid:04x}, "
            f"got 0x{message.varid:04x}",
            varid=varid,
        )
    if message.status != Status.OK:
        raise ProtocolIOError(
            f"Chip rejected varid 0x{varid:04x}: {status_name(message.status)}",
            varid=varid,
            status=message.status,
        )
    if len(message.payload) < length:
        raise ProtocolIOError(
            f"Short BCCMD response: {len(message.payload)} of {length} bytes",
            varid=varid,
        )
    return message.payload[:length]


def build_hci_command(message: bytes) -> bytes:
    """Wrap a BCCMD message as an HCI vendor command (without H4 indicator).

    Layout: opcode (LE) + parameter length + 0xC2 + message.

    Raises:
        FrameTooLarge: If the parameters exceed the HCI limit of 255 bytes.
    """
    params = bytes([BCCMD_DESCRIPTOR]) + message
    if len(params) > HCI_MAX_PARAM_LEN:
        raise FrameTooLarge(
            f"BCCMD message of {len(message)} bytes does not fit an HCI command"
        )
    return HCI_VENDOR_OPCODE.to_bytes(2, "little") + bytes([len(params)]) + params


def parse_hci_vendor_event(event: bytes) -> Message | None:
    """Extract a BCCMD message from an HCI event (without H4 indicator).

    Args:
        event: Event code, parameter length, then parameters.

    Returns:
        The parsed message, or ``None`` if this is not a BCCMD vendor event.
    """
    if len(event) < 3 or event[0] != HCI_EVENT_VENDOR:
        return None
    params = event[2 : 2 + event[1]]
    if not params or params[0] != BCCMD_DESCRIPTOR:
        return None
    return parse_message(params[1:])


def parse_hci_command_status(event: bytes) -> int | None:
    """Return the status of a Command Status event for the vendor opcode."""
    if len(event) < 6 or event[0] != HCI_EVENT_CMD_STATUS:
        return None
    opcode = int.from_bytes(event[4:6], "little")
    if opcode != HCI_VENDOR_OPCODE:
        return None
    return event[2]
