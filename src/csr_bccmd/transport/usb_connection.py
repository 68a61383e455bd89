"""USB connection to a CSR BlueCore running HCI-over-USB firmware.

HCI commands go out on the default control endpoint as class requests
to the device; events come back on interrupt endpoint 0x81. Uses
``pyusb`` with the libusb backend.
"""

from __future__ import annotations

import logging

from ..exceptions import InvalidArgument, ProtocolIOError, TransportOpenFailed
from .base import HCICommandTransport

logger = logging.getLogger(__name__)

VENDOR_ID = 0x0A12
PRODUCT_ID = 0x0001
HCI_INTERFACE = 0
EP_EVENT = 0x81
EVENT_PACKET_SIZE = 16
# bmRequestType: host-to-device, class, device recipient
HCI_COMMAND_REQUEST_TYPE = 0x20
READ_TIMEOUT_MS = 100
WRITE_TIMEOUT_MS = 1000


def parse_usb_device(name: str | None) -> tuple[int, int]:
    """Parse a ``VID:PID`` selector (hex), defaulting to the CSR dongle ids."""
    if not name:
        return VENDOR_ID, PRODUCT_ID
    vid, sep, pid = name.partition(":")
    try:
        if not sep:
            raise ValueError(name)
        return int(vid, 16), int(pid, 16)
    except ValueError:
        raise InvalidArgument(f"Invalid USB device {name!r}, expected VID:PID") from None


class USBTransport(HCICommandTransport):
    """BCCMD over HCI on a USB BlueCore.

    Usage::

        transport = USBTransport("0a12:0001")
        transport.open()
        frame = transport.read(VarId.RAND, build_empty())
        transport.close()
    """

    kind = "usb"

    def __init__(self, device: str | None = None, usb_device=None) -> None:
        super().__init__(device)
        self._vendor_id, self._product_id = parse_usb_device(device)
        self._usb = usb_device
        self._claimed = False
        self._detached = False
        if usb_device is not None:
            self._connected = True

    def open(self) -> None:
        """Find the device and claim its HCI interface.

        Raises:
            TransportOpenFailed: If the device cannot be found or claimed.
        """
        if self._connected:
            return

        import usb.core
        import usb.util

        try:
            dev = usb.core.find(idVendor=self._vendor_id, idProduct=self._product_id)
        except usb.core.NoBackendError as e:
            raise TransportOpenFailed(f"No libusb backend available: {e}") from e
        if dev is None:
            raise TransportOpenFailed(
                f"No USB device {self._vendor_id:04x}:{self._product_id:04x} found"
            )

        try:
            # The kernel's btusb driver owns the interface by default
            if dev.is_kernel_driver_active(HCI_INTERFACE):
                dev.detach_kernel_driver(HCI_INTERFACE)
                self._detached = True
            usb.util.claim_interface(dev, HCI_INTERFACE)
        except usb.core.USBError as e:
            self._reattach(dev)
            usb.util.dispose_resources(dev)
            raise TransportOpenFailed(
                f"Can't claim USB interface: {e.strerror or e}", errno=e.errno
            ) from e

        self._usb = dev
        self._claimed = True
        self._connected = True
        logger.info(
            "Opened USB device %04x:%04x (%s %s) on bus %s address %s",
            self._vendor_id,
            self._product_id,
            _descriptor_string(dev, dev.iManufacturer),
            _descriptor_string(dev, dev.iProduct),
            dev.bus,
            dev.address,
        )

    def close(self) -> None:
        if self._usb is not None and self._claimed:
            import usb.core
            import usb.util

            try:
                usb.util.release_interface(self._usb, HCI_INTERFACE)
            except usb.core.USBError as e:
                logger.warning("Error releasing USB interface: %s", e)
            finally:
                self._reattach(self._usb)
                usb.util.dispose_resources(self._usb)
        self._usb = None
        self._claimed = False
        super().close()

    def _reattach(self, dev) -> None:
        """Hand the interface back to the kernel driver if we took it."""
        if not self._detached:
            return
        import usb.core

        self._detached = False
        try:
            dev.attach_kernel_driver(HCI_INTERFACE)
        except usb.core.USBError as e:
            logger.warning("Could not reattach kernel driver: %s", e)

    def _send_command(self, command: bytes) -> None:
        import usb.core

        try:
            self._usb.ctrl_transfer(
                HCI_COMMAND_REQUEST_TYPE, 0, 0, HCI_INTERFACE, command,
                timeout=WRITE_TIMEOUT_MS,
            )
        except usb.core.USBError as e:
            raise ProtocolIOError(f"USB control transfer failed: {e}") from e

    def _receive_event(self, timeout: float) -> bytes | None:
        """Collect interrupt packets until one whole HCI event is assembled."""
        event = bytearray()
        while len(event) < 2 or len(event) < 2 + event[1]:
            chunk = self._read_interrupt(timeout if not event else READ_TIMEOUT_MS / 1000)
            if chunk is None:
                if event:
                    logger.debug("Dropping partial USB event %s", event.hex(" "))
                return None
            event += chunk
        return bytes(event[: 2 + event[1]])

    def _read_interrupt(self, timeout: float) -> bytes | None:
        import usb.core

        timeout_ms = max(1, int(min(timeout, READ_TIMEOUT_MS / 1000) * 1000))
        try:
            data = self._usb.read(EP_EVENT, EVENT_PACKET_SIZE, timeout=timeout_ms)
        except usb.core.USBTimeoutError:
            return None
        except usb.core.USBError as e:
            raise ProtocolIOError(f"USB interrupt read failed: {e.strerror or e}") from e
        return bytes(data) or None


def _descriptor_string(dev, index: int) -> str:
    import usb.core
    import usb.util

    if not index:
        return ""
    try:
        return usb.util.get_string(dev, index) or ""
    except (usb.core.USBError, ValueError) as e:
        logger.debug("Could not read string descriptor %d: %s", index, e)
        return ""
