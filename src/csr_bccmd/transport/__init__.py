"""Transport gateway: pick and open a backend by name."""

from __future__ import annotations

import logging
from enum import Enum

from ..exceptions import UnsupportedTransport
from .base import Transport
from .uart import DEFAULT_SPEED

logger = logging.getLogger(__name__)


class TransportKind(Enum):
    HCI = "hci"
    USB = "usb"
    BCSP = "bcsp"
    H4 = "h4"
    THREE_WIRE = "3wire"


DEFAULT_TRANSPORT = TransportKind.HCI

_ALIASES = {
    "h5": TransportKind.THREE_WIRE,
    "twutl": TransportKind.THREE_WIRE,
}


def parse_transport_kind(name: str) -> TransportKind:
    """Map a transport name (case-insensitive) to its kind.

    Raises:
        UnsupportedTransport: For an unknown name.
    """
    key = name.strip().lower()
    if key in _ALIASES:
        return _ALIASES[key]
    try:
        return TransportKind(key)
    except ValueError:
        raise UnsupportedTransport(name) from None


def create_transport(
    kind: TransportKind | str,
    device: str | None = None,
    speed: int = DEFAULT_SPEED,
) -> Transport:
    """Instantiate the backend for *kind* without opening it."""
    if isinstance(kind, str):
        kind = parse_transport_kind(kind)

    if kind is TransportKind.HCI:
        from .hci import HCITransport
        return HCITransport(device)
    if kind is TransportKind.USB:
        from .usb_connection import USBTransport
        return USBTransport(device)
    if kind is TransportKind.BCSP:
        from .bcsp import BCSPTransport
        return BCSPTransport(device, speed)
    if kind is TransportKind.H4:
        from .uart import H4Transport
        return H4Transport(device, speed)
    if kind is TransportKind.THREE_WIRE:
        from .h5 import ThreeWireTransport
        return ThreeWireTransport(device, speed)
    raise UnsupportedTransport(str(kind))


def open_transport(
    kind: TransportKind | str,
    device: str | None = None,
    speed: int = DEFAULT_SPEED,
) -> Transport:
    """Create and open a transport session.

    Raises:
        UnsupportedTransport: For an unknown transport name.
        TransportOpenFailed: If the backend cannot be opened.
    """
    transport = create_transport(kind, device, speed)
    logger.debug("Opening %s transport on %s", transport.kind, transport.device)
    transport.open()
    return transport


__all__ = [
    "DEFAULT_TRANSPORT",
    "Transport",
    "TransportKind",
    "create_transport",
    "open_transport",
    "parse_transport_kind",
]
