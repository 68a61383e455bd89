"""SLIP-framed reliable link layer shared by BCSP and three-wire UART.

Packet layout (before SLIP encoding)::

    +--------+--------+--------+--------+-------------+---------+
    | flags  | chan/  | length | header |   payload   |  CRC    |
    |        | len lo | hi     | check  |  (length)   | (opt.)  |
    +--------+--------+--------+--------+-------------+---------+

- flags: bits 0-2 sequence number, bits 3-5 acknowledgement number,
  bit 6 CRC present, bit 7 reliable
- chan/len lo: bits 0-3 channel (packet type), bits 4-7 low nibble of
  the 12-bit payload length
- header check: one's complement of the sum of the first three bytes

Packets are delimited by 0xC0; inside a packet 0xC0 is sent as DB DC and
0xDB as DB DD.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass

from ..exceptions import ProtocolIOError, TransportOpenFailed
from ..utils.crc import link_crc
from .uart import SerialReader

logger = logging.getLogger(__name__)

SLIP_END = 0xC0
SLIP_ESC = 0xDB
SLIP_ESC_END = 0xDC
SLIP_ESC_ESC = 0xDD

LINK_HEADER_SIZE = 4
MAX_PAYLOAD = 0xFFF
ACK_CHANNEL = 0

ACK_TIMEOUT = 0.25
MAX_ATTEMPTS = 8
SYNC_TIMEOUT = 5.0


def slip_encode(packet: bytes) -> bytes:
    """Escape *packet* and wrap it in frame delimiters."""
    out = bytearray([SLIP_END])
    for byte in packet:
        if byte == SLIP_END:
            out += bytes([SLIP_ESC, SLIP_ESC_END])
        elif byte == SLIP_ESC:
            out += bytes([SLIP_ESC, SLIP_ESC_ESC])
        else:
            out.append(byte)
    out.append(SLIP_END)
    return bytes(out)


class SlipDecoder:
    """Incremental SLIP decoder.

    Feed raw bytes with :meth:`feed`; complete packets are returned in
    arrival order. Empty frames (back-to-back delimiters) are dropped.
    """

    def __init__(self) -> None:
        self._buffer = bytearray()
        self._escaped = False
        self._in_frame = False

    def feed(self, data: bytes) -> list[bytes]:
        packets = []
        for byte in data:
            if byte == SLIP_END:
                if self._buffer:
                    packets.append(bytes(self._buffer))
                self._buffer.clear()
                self._escaped = False
                self._in_frame = True
            elif not self._in_frame:
                continue
            elif self._escaped:
                self._escaped = False
                if byte == SLIP_ESC_END:
                    self._buffer.append(SLIP_END)
                elif byte == SLIP_ESC_ESC:
                    self._buffer.append(SLIP_ESC)
                else:
                    logger.debug("Bad SLIP escape 0x%02x, dropping frame", byte)
                    self._buffer.clear()
                    self._in_frame = False
            elif byte == SLIP_ESC:
                self._escaped = True
            else:
                self._buffer.append(byte)
        return packets


@dataclass
class LinkPacket:
    """One decoded link-layer packet."""

    channel: int
    payload: bytes
    seq: int = 0
    ack: int = 0
    reliable: bool = False

    def __repr__(self) -> str:
        kind = "rel" if self.reliable else "unrel"
        return (
            f"LinkPacket(ch={self.channel}, {kind}, seq={self.seq}, "
            f"ack={self.ack}, payload={self.payload.hex(' ') or '(empty)'})"
        )


def header_checksum(b0: int, b1: int, b2: int) -> int:
    return ~(b0 + b1 + b2) & 0xFF


def build_link_packet(
    channel: int,
    payload: bytes = b"",
    seq: int = 0,
    ack: int = 0,
    reliable: bool = False,
    crc: bool = False,
) -> bytes:
    """Build an unframed link packet (header, payload, optional CRC)."""
    if len(payload) > MAX_PAYLOAD:
        raise ValueError(f"Link payload too large: {len(payload)} bytes")
    b0 = (seq & 0x07) | ((ack & 0x07) << 3) | (0x40 if crc else 0) | (0x80 if reliable else 0)
    b1 = (channel & 0x0F) | ((len(payload) & 0x0F) << 4)
    b2 = (len(payload) >> 4) & 0xFF
    packet = bytes([b0, b1, b2, header_checksum(b0, b1, b2)]) + payload
    if crc:
        packet += link_crc(packet)
    return packet


def parse_link_packet(data: bytes) -> LinkPacket:
    """Parse an unframed link packet.

    Raises:
        ValueError: On a short packet, header checksum, length or CRC error.
    """
    if len(data) < LINK_HEADER_SIZE:
        raise ValueError(f"Link packet too short: {len(data)} bytes")
    b0, b1, b2, check = data[:4]
    if header_checksum(b0, b1, b2) != check:
        raise ValueError("Link header checksum mismatch")

    length = (b1 >> 4) | (b2 << 4)
    has_crc = bool(b0 & 0x40)
    expected = LINK_HEADER_SIZE + length + (2 if has_crc else 0)
    if len(data) != expected:
        raise ValueError(f"Link packet length {len(data)}, expected {expected}")
    if has_crc and link_crc(data[:-2]) != data[-2:]:
        raise ValueError("Link packet CRC mismatch")

    return LinkPacket(
        channel=b1 & 0x0F,
        payload=bytes(data[LINK_HEADER_SIZE : LINK_HEADER_SIZE + length]),
        seq=b0 & 0x07,
        ack=(b0 >> 3) & 0x07,
        reliable=bool(b0 & 0x80),
    )


class ReliableLink:
    """Sliding-window-of-one reliable link over a serial port.

    Subclasses name the link-establishment channel and its four control
    messages. :meth:`establish` runs the SYNC/CONF handshake;
    :meth:`send` and :meth:`receive` then carry reliable packets on the
    other channels.
    """

    le_channel = 1
    sync = b""
    sync_resp = b""
    conf = b""
    conf_resp = b""
    conf_tail = b""
    use_crc = True

    def __init__(self, port) -> None:
        self._io = SerialReader(port)
        self._decoder = SlipDecoder()
        self._inbox: deque[LinkPacket] = deque()
        self._tx_seq = 0
        self._rx_seq = 0
        self._acked = True
        self._established = False

    @property
    def established(self) -> bool:
        return self._established

    def establish(self, timeout: float = SYNC_TIMEOUT) -> None:
        """Run the link handshake.

        Raises:
            TransportOpenFailed: If the peer does not answer in time.
        """
        deadline = time.monotonic() + timeout
        for request, answer in (
            (self.sync, self.sync_resp),
            (self.conf + self.conf_tail, self.conf_resp),
        ):
            while True:
                if time.monotonic() >= deadline:
                    raise TransportOpenFailed(
                        f"{type(self).__name__} link establishment timed out"
                    )
                self._send_le(request)
                if self._wait_le(answer, time.monotonic() + ACK_TIMEOUT):
                    break
        self._established = True
        logger.info("%s link established", type(self).__name__)

    def send(self, channel: int, payload: bytes) -> None:
        """Send a reliable packet and wait for its acknowledgement.

        Raises:
            ProtocolIOError: If no acknowledgement arrives.
        """
        packet = build_link_packet(
            channel, payload, seq=self._tx_seq, ack=self._rx_seq,
            reliable=True, crc=self.use_crc,
        )
        self._acked = False
        for attempt in range(MAX_ATTEMPTS):
            if attempt:
                logger.debug("Retransmitting seq %d (attempt %d)", self._tx_seq, attempt + 1)
            self._io.write(slip_encode(packet))
            deadline = time.monotonic() + ACK_TIMEOUT
            while not self._acked and time.monotonic() < deadline:
                self._pump()
            if self._acked:
                self._tx_seq = (self._tx_seq + 1) % 8
                return
        raise ProtocolIOError(
            f"No acknowledgement for packet on channel {channel}"
        )

    def receive(self, channel: int, timeout: float) -> bytes | None:
        """Return the next reliable payload received on *channel*."""
        deadline = time.monotonic() + timeout
        while True:
            while self._inbox:
                packet = self._inbox.popleft()
                if packet.channel == channel:
                    return packet.payload
                logger.debug("Discarding %r", packet)
            if time.monotonic() >= deadline:
                return None
            self._pump()

    def _send_le(self, message: bytes) -> None:
        self._io.write(slip_encode(build_link_packet(self.le_channel, message)))

    def _send_ack(self) -> None:
        self._io.write(slip_encode(build_link_packet(ACK_CHANNEL, ack=self._rx_seq)))

    def _wait_le(self, answer: bytes, deadline: float) -> bool:
        while time.monotonic() < deadline:
            for packet in self._read_packets():
                if packet.channel != self.le_channel:
                    continue
                if packet.payload.startswith(answer):
                    return True
                self._answer_le(packet.payload)
        return False

    def _answer_le(self, message: bytes) -> bool:
        if message == self.sync:
            self._send_le(self.sync_resp)
            return True
        if message.startswith(self.conf):
            self._send_le(self.conf_resp + self.conf_tail)
            return True
        return False

    def _pump(self) -> None:
        for packet in self._read_packets():
            self._handle(packet)

    def _handle(self, packet: LinkPacket) -> None:
        if not self._acked and packet.ack == (self._tx_seq + 1) % 8:
            self._acked = True

        if packet.channel == self.le_channel and not packet.reliable:
            if self._answer_le(packet.payload) and packet.payload == self.sync:
                logger.warning("Peer restarted link establishment")
            return

        if not packet.reliable:
            return

        if packet.seq == self._rx_seq:
            self._rx_seq = (self._rx_seq + 1) % 8
            self._inbox.append(packet)
        else:
            logger.debug("Out of order seq %d (want %d)", packet.seq, self._rx_seq)
        self._send_ack()

    def _read_packets(self) -> list[LinkPacket]:
        packets = []
        for raw in self._decoder.feed(self._io.read_available()):
            try:
                packet = parse_link_packet(raw)
            except ValueError as e:
                logger.debug("Dropping bad link packet %s: %s", raw.hex(" "), e)
                continue
            logger.debug("Link <- %r", packet)
            packets.append(packet)
        return packets
