"""BlueCore Serial Protocol (BCSP) backend.

BCCMD messages travel unwrapped on BCSP channel 2 as reliable packets;
no HCI framing is involved.
"""

from __future__ import annotations

import logging
import time

import serial

from ..exceptions import ProtocolIOError, TransportError
from ..protocol.framing import Message, build_message, parse_message
from .base import RESPONSE_TIMEOUT, Transport
from .link import ReliableLink
from .uart import DEFAULT_SERIAL_DEVICE, DEFAULT_SPEED, close_serial, open_serial

logger = logging.getLogger(__name__)

BCSP_LE_CHANNEL = 1
BCSP_BCCMD_CHANNEL = 2


class BCSPLink(ReliableLink):
    """BCSP link establishment messages on channel 1."""

    le_channel = BCSP_LE_CHANNEL
    sync = bytes([0xDA, 0xDC, 0xED, 0xED])
    sync_resp = bytes([0xAC, 0xAF, 0xEF, 0xEE])
    conf = bytes([0xAD, 0xEF, 0xAC, 0xED])
    conf_resp = bytes([0xDE, 0xAD, 0xD0, 0xD0])
    use_crc = True


class BCSPTransport(Transport):
    """BCCMD over BCSP on a UART (8 data bits, even parity)."""

    kind = "bcsp"
    timeout = RESPONSE_TIMEOUT

    def __init__(
        self,
        device: str | None = None,
        speed: int = DEFAULT_SPEED,
        port=None,
    ) -> None:
        super().__init__(device or DEFAULT_SERIAL_DEVICE)
        self._speed = speed
        self._port = port
        self._link: BCSPLink | None = None

    def open(self) -> None:
        if self._connected:
            return
        if self._port is None:
            self._port = open_serial(self._device, self._speed, parity=serial.PARITY_EVEN)
        link = BCSPLink(self._port)
        try:
            link.establish()
        except TransportError:
            self.close()
            raise
        self._link = link
        self._connected = True

    def close(self) -> None:
        if self._port is not None:
            close_serial(self._port)
            self._port = None
        self._link = None
        super().close()

    def _exchange(
        self,
        msg_type: int,
        varid: int,
        value: bytes,
        expect_reply: bool = True,
    ) -> Message | None:
        self._require_connected()
        seqnum = self._next_seqnum()
        message = build_message(msg_type, seqnum, varid, value)
        logger.debug("BCCMD -> %s", message.hex(" "))
        self._link.send(BCSP_BCCMD_CHANNEL, message)
        if not expect_reply:
            return None

        deadline = time.monotonic() + self.timeout
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            payload = self._link.receive(BCSP_BCCMD_CHANNEL, remaining)
            if payload is None:
                break
            logger.debug("BCCMD <- %s", payload.hex(" "))
            response = parse_message(payload)
            if response.seqnum != seqnum:
                logger.debug(
                    "Ignoring stale BCCMD response seq %d (want %d)",
                    response.seqnum, seqnum,
                )
                continue
            return response

        raise ProtocolIOError(
            f"Timed out waiting for varid 0x{varid:04x}", varid=varid
        )
