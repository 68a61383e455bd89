"""Serial (UART) backends: the H4 transport and the shared port opener."""

from __future__ import annotations

import logging
import time

import serial

from ..exceptions import ProtocolIOError, TransportOpenFailed
from .base import HCICommandTransport

logger = logging.getLogger(__name__)

DEFAULT_SERIAL_DEVICE = "/dev/ttyS0"
DEFAULT_SPEED = 38400
POLL_INTERVAL = 0.05

H4_COMMAND_PKT = 0x01
H4_EVENT_PKT = 0x04


def open_serial(
    device: str,
    speed: int,
    parity: str = serial.PARITY_NONE,
    rtscts: bool = False,
) -> serial.Serial:
    """Open *device* as a raw 8-bit serial port.

    Raises:
        TransportOpenFailed: If the port cannot be opened or configured.
    """
    try:
        port = serial.Serial(
            port=device,
            baudrate=speed,
            bytesize=serial.EIGHTBITS,
            parity=parity,
            stopbits=serial.STOPBITS_ONE,
            rtscts=rtscts,
            timeout=POLL_INTERVAL,
        )
    except (serial.SerialException, ValueError) as e:
        raise TransportOpenFailed(
            f"Can't open serial port {device}: {e}",
            errno=getattr(e, "errno", None),
        ) from e
    port.reset_input_buffer()
    logger.info("Opened %s at %d baud", device, speed)
    return port


def close_serial(port) -> None:
    try:
        port.close()
    except serial.SerialException as e:
        logger.warning("Error closing serial port: %s", e)


class SerialReader:
    """Exact-length reads from a serial port against a deadline."""

    def __init__(self, port) -> None:
        self._port = port

    def read_available(self) -> bytes:
        try:
            return bytes(self._port.read(max(1, self._port.in_waiting)))
        except serial.SerialException as e:
            raise ProtocolIOError(f"Serial read failed: {e}") from e

    def read_exact(self, size: int, deadline: float) -> bytes | None:
        data = bytearray()
        while len(data) < size:
            if time.monotonic() >= deadline:
                return None
            try:
                data += self._port.read(size - len(data))
            except serial.SerialException as e:
                raise ProtocolIOError(f"Serial read failed: {e}") from e
        return bytes(data)

    def write(self, data: bytes) -> None:
        try:
            self._port.write(data)
            self._port.flush()
        except serial.SerialException as e:
            raise ProtocolIOError(f"Serial write failed: {e}") from e


class H4Transport(HCICommandTransport):
    """BCCMD over HCI on a UART using H4 packet indicators."""

    kind = "h4"

    def __init__(
        self,
        device: str | None = None,
        speed: int = DEFAULT_SPEED,
        port=None,
    ) -> None:
        super().__init__(device or DEFAULT_SERIAL_DEVICE)
        self._speed = speed
        self._port = port
        self._reader = SerialReader(port) if port is not None else None
        if port is not None:
            self._connected = True

    def open(self) -> None:
        if self._connected:
            return
        self._port = open_serial(self._device, self._speed, rtscts=True)
        self._reader = SerialReader(self._port)
        self._connected = True

    def close(self) -> None:
        if self._port is not None:
            close_serial(self._port)
            self._port = None
            self._reader = None
        super().close()

    def _send_command(self, command: bytes) -> None:
        self._reader.write(bytes([H4_COMMAND_PKT]) + command)

    def _receive_event(self, timeout: float) -> bytes | None:
        deadline = time.monotonic() + timeout
        indicator = self._reader.read_exact(1, deadline)
        if indicator is None:
            return None
        if indicator[0] != H4_EVENT_PKT:
            logger.debug("Skipping H4 byte 0x%02x", indicator[0])
            return None

        header = self._reader.read_exact(2, deadline)
        if header is None:
            return None
        params = self._reader.read_exact(header[1], deadline)
        if params is None:
            logger.debug("Truncated H4 event %s", header.hex(" "))
            return None
        return header + params
