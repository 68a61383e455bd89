"""Three-wire UART (H5) backend.

Carries the same HCI vendor command and event as the H4 and USB
backends, but as reliable H5 packets of type 1 (command) and 4 (event)
after the SYNC/CONFIG link handshake on packet type 15.
"""

from __future__ import annotations

import logging

import serial

from ..exceptions import TransportError
from .base import HCICommandTransport
from .link import ReliableLink
from .uart import DEFAULT_SERIAL_DEVICE, DEFAULT_SPEED, close_serial, open_serial

logger = logging.getLogger(__name__)

H5_COMMAND_PKT = 0x01
H5_EVENT_PKT = 0x04
H5_LINK_CONTROL_PKT = 0x0F

# Sliding window of one, no out-of-frame flow control, no CRC
H5_CONFIG = 0x01


class ThreeWireLink(ReliableLink):
    """H5 link control messages on packet type 15."""

    le_channel = H5_LINK_CONTROL_PKT
    sync = bytes([0x01, 0x7E])
    sync_resp = bytes([0x02, 0x7D])
    conf = bytes([0x03, 0xFC])
    conf_resp = bytes([0x04, 0x7B])
    conf_tail = bytes([H5_CONFIG])
    use_crc = False


class ThreeWireTransport(HCICommandTransport):
    """BCCMD over HCI on a three-wire UART link."""

    kind = "3wire"

    def __init__(
        self,
        device: str | None = None,
        speed: int = DEFAULT_SPEED,
        port=None,
    ) -> None:
        super().__init__(device or DEFAULT_SERIAL_DEVICE)
        self._speed = speed
        self._port = port
        self._link: ThreeWireLink | None = None

    def open(self) -> None:
        if self._connected:
            return
        if self._port is None:
            self._port = open_serial(self._device, self._speed, parity=serial.PARITY_EVEN)
        link = ThreeWireLink(self._port)
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

    def _send_command(self, command: bytes) -> None:
        self._link.send(H5_COMMAND_PKT, command)

    def _receive_event(self, timeout: float) -> bytes | None:
        return self._link.receive(H5_EVENT_PKT, timeout)
