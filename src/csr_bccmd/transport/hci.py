"""Raw HCI socket backend (Linux BlueZ).

Opens an ``AF_BLUETOOTH``/``BTPROTO_HCI`` socket bound to one controller
and filters it down to event packets for command status and vendor
events.
"""

from __future__ import annotations

import logging
import select
import socket
import struct

from ..exceptions import InvalidArgument, ProtocolIOError, TransportOpenFailed
from ..protocol.framing import HCI_EVENT_CMD_STATUS, HCI_EVENT_VENDOR
from .base import HCICommandTransport

logger = logging.getLogger(__name__)

DEFAULT_HCI_DEVICE = "hci0"

# From <bluetooth/hci.h>
SOL_HCI = 0
HCI_FILTER = 2
HCI_COMMAND_PKT = 0x01
HCI_EVENT_PKT = 0x04
HCI_MAX_FRAME_SIZE = 260


def parse_hci_device(name: str | None) -> int:
    """Map ``hciN`` (or a bare number) to a controller index."""
    text = (name or DEFAULT_HCI_DEVICE).strip().lower()
    if text.startswith("hci"):
        text = text[3:]
    if not text.isdigit():
        raise InvalidArgument(f"Invalid HCI device: {name!r}")
    return int(text)


def event_filter(*events: int) -> bytes:
    """Build a ``struct hci_filter`` passing event packets for *events*."""
    mask = [0, 0]
    for event in events:
        bit = event & 63
        mask[bit >> 5] |= 1 << (bit & 31)
    return struct.pack("<IIIH", 1 << HCI_EVENT_PKT, mask[0], mask[1], 0)


class HCITransport(HCICommandTransport):
    """BCCMD over a raw HCI socket."""

    kind = "hci"

    def __init__(self, device: str | None = None, sock=None) -> None:
        super().__init__(device or DEFAULT_HCI_DEVICE)
        self._sock = sock
        if sock is not None:
            self._connected = True

    def open(self) -> None:
        if self._connected:
            return
        dev_id = parse_hci_device(self._device)
        try:
            sock = socket.socket(
                socket.AF_BLUETOOTH, socket.SOCK_RAW, socket.BTPROTO_HCI
            )
        except AttributeError as e:
            raise TransportOpenFailed(
                "Bluetooth HCI sockets are not available on this platform"
            ) from e
        except OSError as e:
            raise TransportOpenFailed(
                f"Can't open HCI socket: {e.strerror or e}", errno=e.errno
            ) from e

        try:
            sock.bind((dev_id,))
            sock.setsockopt(
                SOL_HCI,
                HCI_FILTER,
                event_filter(HCI_EVENT_CMD_STATUS, HCI_EVENT_VENDOR),
            )
        except OSError as e:
            sock.close()
            raise TransportOpenFailed(
                f"Can't open device hci{dev_id}: {e.strerror or e}", errno=e.errno
            ) from e

        self._sock = sock
        self._connected = True
        logger.info("Opened HCI device hci%d", dev_id)

    def close(self) -> None:
        if self._sock is not None:
            try:
                self._sock.close()
            except OSError as e:
                logger.warning("Error closing HCI socket: %s", e)
            finally:
                self._sock = None
        super().close()

    def _send_command(self, command: bytes) -> None:
        try:
            self._sock.send(bytes([HCI_COMMAND_PKT]) + command)
        except OSError as e:
            raise ProtocolIOError(f"HCI send failed: {e.strerror or e}") from e

    def _receive_event(self, timeout: float) -> bytes | None:
        try:
            ready, _, _ = select.select([self._sock], [], [], timeout)
            if not ready:
                return None
            packet = self._sock.recv(HCI_MAX_FRAME_SIZE)
        except OSError as e:
            raise ProtocolIOError(f"HCI receive failed: {e.strerror or e}") from e

        if not packet or packet[0] != HCI_EVENT_PKT:
            return None
        return bytes(packet[1:])
