"""In-memory BlueCore responders for command and transport tests."""

from __future__ import annotations

import struct

from csr_bccmd.exceptions import ProtocolIOError
from csr_bccmd.protocol.commands import VarId
from csr_bccmd.protocol.framing import (
    BCCMD_DESCRIPTOR,
    HCI_EVENT_VENDOR,
    Message,
    MessageType,
    Status,
    build_message,
    parse_message,
)
from csr_bccmd.transport.base import Transport
from csr_bccmd.transport.link import (
    ACK_CHANNEL,
    SlipDecoder,
    build_link_packet,
    parse_link_packet,
    slip_encode,
)


def _word(frame: bytes, offset: int) -> int:
    return struct.unpack_from("<H", frame, offset)[0]


def _put(frame: bytearray, offset: int, value: int) -> None:
    struct.pack_into("<H", frame, offset, value)


class FakeChip(Transport):
    """A chip that answers BCCMD requests from dictionaries.

    ``keys`` maps key id to the value's byte image. Clearing a key
    restores it from ``defaults``, or removes it if there is no default.
    Every request is recorded in ``requests`` as ``(type, varid, frame)``.
    """

    kind = "fake"

    def __init__(self, keys: dict[int, bytes] | None = None,
                 defaults: dict[int, bytes] | None = None) -> None:
        super().__init__("fake0")
        self._connected = True
        self.keys = dict(keys or {})
        self.defaults = dict(defaults or {})
        self.fail_writes: set[int] = set()
        self.fail_sizes: set[int] = set()
        self.fail_varids: set[int] = set()
        self.next_keys: list[int] | None = None
        self.builddef_list = [0x0005, 0x000B, 0x0031]
        self.memory_types = {0x0001: 0x0000, 0x0002: 0x0000, 0x0008: 0x0002}
        self.rand_value = 0x1234
        self.chiprev_value = 0x0030
        self.panic_value = 0x0042
        self.fault_value = 0x0100
        self.clock_bytes = bytes([0x01, 0x02, 0x03, 0x04])
        self.name = "BlueCore4-ROM 2005"
        self.requests: list[tuple[int, int, bytes]] = []
        self.closed = False
        self._next_calls = 0

    def close(self) -> None:
        self.closed = True
        super().close()

    def varids(self) -> list[int]:
        return [varid for _, varid, _ in self.requests]

    def _exchange(self, msg_type, varid, value, expect_reply=True):
        self._require_connected()
        self.requests.append((msg_type, varid, bytes(value)))
        seqnum = self._next_seqnum()

        if varid in self.fail_varids:
            if not expect_reply:
                raise ProtocolIOError("simulated send failure", varid=varid)
            return Message(MessageType.GETRESP, seqnum, varid, Status.ERROR, bytes(value))

        frame = bytearray(value)
        status = self._handle(msg_type, varid, frame)
        if not expect_reply:
            return None
        return Message(MessageType.GETRESP, seqnum, varid, status, bytes(frame))

    def _handle(self, msg_type, varid, frame: bytearray) -> int:
        if varid == VarId.PS_SIZE:
            key = _word(frame, 0)
            if key in self.fail_sizes or key not in self.keys:
                return Status.NO_VALUE
            _put(frame, 2, len(self.keys[key]) // 2)
            return Status.OK

        if varid == VarId.PS:
            key, length = _word(frame, 0), _word(frame, 2)
            if msg_type == MessageType.SETREQ:
                if key in self.fail_writes:
                    return Status.ERROR
                self.keys[key] = bytes(frame[6 : 6 + length * 2])
                return Status.OK
            data = self.keys.get(key)
            if data is None:
                return Status.NO_VALUE
            if len(data) != length * 2:
                return Status.BAD_REQ
            frame[6 : 6 + len(data)] = data
            return Status.OK

        if varid == VarId.PS_CLR_STORES:
            key = _word(frame, 0)
            if key in self.defaults:
                self.keys[key] = self.defaults[key]
            else:
                self.keys.pop(key, None)
            return Status.OK

        if varid == VarId.PS_NEXT:
            prev = _word(frame, 0)
            if self.next_keys is not None:
                index = self._next_calls
                self._next_calls += 1
                nxt = self.next_keys[index] if index < len(self.next_keys) else 0
            else:
                nxt = min((k for k in self.keys if k > prev), default=0)
            _put(frame, 4, nxt)
            return Status.OK

        if varid == VarId.GET_NEXT_BUILDDEF:
            prev = _word(frame, 0)
            _put(frame, 2, min((d for d in self.builddef_list if d > prev), default=0))
            return Status.OK

        if varid == VarId.PS_MEMORY_TYPE:
            store = _word(frame, 0)
            if store not in self.memory_types:
                return Status.NO_SUCH_VARID
            _put(frame, 2, self.memory_types[store])
            return Status.OK

        if varid == VarId.CRYPT_KEY_LENGTH:
            _put(frame, 2, 16)
            return Status.OK

        if varid == VarId.BT_CLOCK:
            frame[0:4] = self.clock_bytes
            return Status.OK

        if varid == VarId.READ_BUILD_NAME:
            for i, char in enumerate(self.name.encode("ascii")):
                frame[4 + i * 2] = char
            return Status.OK

        words = {
            VarId.RAND: self.rand_value,
            VarId.CHIPREV: self.chiprev_value,
            VarId.PANIC_ARG: self.panic_value,
            VarId.FAULT_ARG: self.fault_value,
        }
        if varid in words:
            _put(frame, 0, words[varid])
            return Status.OK

        if msg_type == MessageType.SETREQ:
            return Status.OK
        return Status.NO_SUCH_VARID


def bccmd_reply(request: bytes, fill: bytes = b"", status: int = Status.OK) -> bytes:
    """Turn a raw BCCMD request into its GETRESP, overlaying *fill* on the payload."""
    msg = parse_message(request)
    payload = fill + msg.payload[len(fill):]
    raw = bytearray(build_message(MessageType.GETRESP, msg.seqnum, msg.varid, payload))
    struct.pack_into("<H", raw, 8, status)
    return bytes(raw)


def vendor_event(message: bytes) -> bytes:
    """Wrap a raw BCCMD message as an HCI vendor event."""
    params = bytes([BCCMD_DESCRIPTOR]) + message
    return bytes([HCI_EVENT_VENDOR, len(params)]) + params


class FakeSerial:
    """Byte-level stand-in for a ``serial.Serial`` port.

    Bytes queued with :meth:`feed` are returned by :meth:`read`; everything
    the host writes is kept in ``written`` and passed to :meth:`on_write`.
    """

    def __init__(self) -> None:
        self.rx = bytearray()
        self.written = bytearray()
        self.closed = False

    @property
    def in_waiting(self) -> int:
        return len(self.rx)

    def feed(self, data: bytes) -> None:
        self.rx += data

    def read(self, size: int = 1) -> bytes:
        data = bytes(self.rx[:size])
        del self.rx[:size]
        return data

    def write(self, data: bytes) -> int:
        self.written += data
        self.on_write(bytes(data))
        return len(data)

    def on_write(self, data: bytes) -> None:
        pass

    def flush(self) -> None:
        pass

    def reset_input_buffer(self) -> None:
        self.rx.clear()

    def close(self) -> None:
        self.closed = True


class LinkPeer(FakeSerial):
    """The chip end of a BCSP or H5 link.

    Answers the link handshake described by *link* (a ``ReliableLink``
    subclass), acknowledges reliable packets, and sends back whatever
    ``respond(channel, payload)`` returns as ``(channel, payload)`` pairs.
    """

    def __init__(self, link, respond=None, answer_sync: bool = True) -> None:
        super().__init__()
        self.link = link
        self.respond = respond
        self.answer_sync = answer_sync
        self.drop_next = 0
        self.received: list = []
        self._decoder = SlipDecoder()
        self._seq = 0

    def on_write(self, data: bytes) -> None:
        for raw in self._decoder.feed(data):
            self._handle(parse_link_packet(raw))

    def send(self, channel: int, payload: bytes = b"", reliable: bool = False,
             ack: int = 0) -> None:
        packet = build_link_packet(
            channel, payload, seq=self._seq if reliable else 0, ack=ack,
            reliable=reliable, crc=reliable and self.link.use_crc,
        )
        self.feed(slip_encode(packet))
        if reliable:
            self._seq = (self._seq + 1) % 8

    def _handle(self, packet) -> None:
        link = self.link
        if packet.channel == link.le_channel:
            if not self.answer_sync:
                return
            if packet.payload == link.sync:
                self.send(link.le_channel, link.sync_resp)
            elif packet.payload.startswith(link.conf):
                self.send(link.le_channel, link.conf_resp + link.conf_tail)
            return

        if not packet.reliable:
            return
        if self.drop_next:
            self.drop_next -= 1
            return

        self.received.append(packet)
        ack = (packet.seq + 1) % 8
        replies = self.respond(packet.channel, packet.payload) if self.respond else []
        if not replies:
            self.send(ACK_CHANNEL, ack=ack)
        for channel, payload in replies:
            self.send(channel, payload, reliable=True, ack=ack)
