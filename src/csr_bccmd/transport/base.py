"""Transport session base classes.

A transport carries one BCCMD request at a time and blocks until the chip
answers or the backend gives up. Subclasses implement :meth:`open`,
:meth:`close` and either :meth:`Transport._exchange` (raw BCCMD messages)
or, for backends that tunnel BCCMD through HCI vendor commands,
:meth:`HCICommandTransport._send_command` and
:meth:`HCICommandTransport._receive_event`.
"""

from __future__ import annotations

import logging
import time

from ..exceptions import OperationNotSupported, ProtocolIOError
from ..protocol.commands import RESET_VARIDS
from ..protocol.framing import (
    Message,
    MessageType,
    build_hci_command,
    build_message,
    check_response,
    parse_hci_command_status,
    parse_hci_vendor_event,
)

logger = logging.getLogger(__name__)

RESPONSE_TIMEOUT = 2.0


class Transport:
    """An open session to the chip over one backend.

    Usage::

        with open_transport("hci", "hci0") as transport:
            frame = transport.read(VarId.RAND, build_empty())
    """

    kind = ""

    def __init__(self, device: str | None = None) -> None:
        self._device = device
        self._connected = False
        self._seqnum = 0

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def device(self) -> str | None:
        return self._device

    def open(self) -> None:
        raise OperationNotSupported(f"{self.kind or 'This'} transport cannot be opened")

    def close(self) -> None:
        self._connected = False

    def __enter__(self) -> Transport:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def read(self, varid: int, value: bytes, length: int | None = None) -> bytes:
        """Send a GETREQ carrying *value* and return the response frame.

        Args:
            varid: Operation identifier.
            value: Request frame, exactly *length* bytes.
            length: Expected frame size; defaults to ``len(value)``.

        Returns:
            The response frame, exactly *length* bytes.

        Raises:
            ProtocolIOError: On a size mismatch, I/O failure, timeout, or a
                non-OK status from the chip.
        """
        if length is None:
            length = len(value)
        if len(value) != length:
            raise ProtocolIOError(
                f"Frame for varid 0x{varid:04x} is {len(value)} bytes, "
                f"expected {length}",
                varid=varid,
            )
        message = self._exchange(MessageType.GETREQ, varid, bytes(value))
        return check_response(message, varid, length)

    def write(self, varid: int, value: bytes = b"") -> None:
        """Send a SETREQ carrying *value*.

        Reset and halt varids are not answered by the chip, so no response
        is awaited for them.
        """
        expect_reply = varid not in RESET_VARIDS
        message = self._exchange(
            MessageType.SETREQ, varid, bytes(value), expect_reply=expect_reply
        )
        if message is not None:
            check_response(message, varid, 0)

    def _next_seqnum(self) -> int:
        seqnum = self._seqnum
        self._seqnum = (self._seqnum + 1) & 0xFFFF
        return seqnum

    def _exchange(
        self,
        msg_type: int,
        varid: int,
        value: bytes,
        expect_reply: bool = True,
    ) -> Message | None:
        raise OperationNotSupported(
            f"{self.kind or 'This'} transport cannot carry BCCMD requests"
        )

    def _require_connected(self) -> None:
        if not self._connected:
            raise ProtocolIOError("Transport is not open")


class HCICommandTransport(Transport):
    """Transport that carries BCCMD inside HCI vendor commands and events."""

    timeout = RESPONSE_TIMEOUT

    def _send_command(self, command: bytes) -> None:
        """Send an HCI command (opcode, length, parameters)."""
        raise NotImplementedError

    def _receive_event(self, timeout: float) -> bytes | None:
        """Return the next HCI event (code, length, parameters) or ``None``."""
        raise NotImplementedError

    def _exchange(
        self,
        msg_type: int,
        varid: int,
        value: bytes,
        expect_reply: bool = True,
    ) -> Message | None:
        self._require_connected()
        seqnum = self._next_seqnum()
        command = build_hci_command(build_message(msg_type, seqnum, varid, value))
        logger.debug("BCCMD -> %s", command.hex(" "))
        self._send_command(command)
        if not expect_reply:
            return None

        deadline = time.monotonic() + self.timeout
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            event = self._receive_event(remaining)
            if event is None:
                continue
            logger.debug("BCCMD <- %s", event.hex(" "))

            status = parse_hci_command_status(event)
            if status:
                raise ProtocolIOError(
                    f"HCI command status 0x{status:02x} for varid 0x{varid:04x}",
                    varid=varid,
                )

            message = parse_hci_vendor_event(event)
            if message is None:
                continue
            if message.seqnum != seqnum:
                logger.debug(
                    "Ignoring stale BCCMD response seq %d (want %d)",
                    message.seqnum, seqnum,
                )
                continue
            return message

        raise ProtocolIOError(
            f"Timed out waiting for varid 0x{varid:04x}", varid=varid
        )
