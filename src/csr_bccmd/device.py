"""PS store and diagnostic commands over an open transport session.

:class:`BccmdDevice` owns no connection state of its own; it drives the
transport it is given, one request at a time.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Iterator

from .exceptions import (
    ArgumentCountMismatch,
    BccmdError,
    InvalidArgument,
    KeyTooLarge,
)
from .models.pskeys import KEY_SENTINEL, ValueType, lookup, parse_number, symbol
from .models.psr import PSRecord
from .models.stores import (
    DEFAULT_READ_STORES,
    DEFAULT_WRITE_STORES,
    SINGLE_STORES,
)
from .protocol.commands import (
    BUILD_NAME_FRAME_SIZE,
    MAX_GET_WORDS,
    RadioTest,
    VarId,
    build_crypt_key_length,
    build_empty,
    build_memory_type,
    build_next_builddef,
    build_ps_clear,
    build_ps_next,
    build_ps_read,
    build_ps_size,
    build_ps_write,
    build_radiotest,
    build_single_channel,
    encode_words,
    uint32_to_words,
)
from .protocol.parser import (
    CryptKeyLength,
    PSValue,
    parse_build_name,
    parse_clock,
    parse_crypt_key_length,
    parse_memory_type,
    parse_next_builddef,
    parse_ps_next,
    parse_ps_size,
    parse_ps_value,
    parse_word,
)
from .transport.base import Transport

logger = logging.getLogger(__name__)

# Upper bound on iterate-to-sentinel loops
MAX_ITERATIONS = 0x10000


@dataclass
class LoadOutcome:
    """Result of writing one record during a bulk load."""

    record: PSRecord
    error: BccmdError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def is_declared_array(key: int) -> bool:
    entry = lookup(key)
    return entry is not None and entry.type == ValueType.ARRAY


def encode_set_tokens(key: int, length: int, tokens: list[str]) -> bytes:
    """Encode user value tokens into the byte image of a *length*-word value.

    A one-word key takes one 16-bit token and a two-word key one 32-bit
    token, unless the key is registered as an array. Arrays take one
    byte token per byte, ``2 * length`` in all.

    Raises:
        ArgumentCountMismatch: If the token count does not fit the length.
        InvalidArgument: If a token is not a number or does not fit.
    """
    if length in (1, 2) and not is_declared_array(key):
        if len(tokens) != 1:
            raise ArgumentCountMismatch(key, 1, len(tokens))
        value = parse_number(tokens[0])
        if length == 1:
            return encode_words([value])
        return encode_words(uint32_to_words(value))

    if len(tokens) != length * 2:
        raise ArgumentCountMismatch(key, length * 2, len(tokens))
    data = bytearray()
    for token in tokens:
        byte = parse_number(token)
        if not 0 <= byte <= 0xFF:
            raise InvalidArgument(f"Byte value out of range: {token!r}")
        data.append(byte)
    return bytes(data)


class BccmdDevice:
    """Command layer for a BlueCore chip reached through *transport*.

    Usage::

        with open_transport("usb") as transport:
            device = BccmdDevice(transport)
            value = device.ps_get(resolve_key("bdaddr"))
    """

    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    @property
    def transport(self) -> Transport:
        return self._transport

    # ─── PS store ─────────────────────────────────────────────────────

    def ps_size(self, key: int, stores: int = DEFAULT_READ_STORES) -> int:
        """Return the length of *key* in words."""
        frame = self._transport.read(VarId.PS_SIZE, build_ps_size(key, stores))
        return parse_ps_size(frame)

    def ps_get(self, key: int, stores: int = DEFAULT_READ_STORES) -> PSValue:
        """Read the value of *key*.

        Raises:
            KeyTooLarge: If the key is longer than one read frame allows.
            ProtocolIOError: If either request fails.
        """
        length = self.ps_size(key, stores)
        if length > MAX_GET_WORDS:
            raise KeyTooLarge(key, length, MAX_GET_WORDS)
        frame = self._transport.read(VarId.PS, build_ps_read(key, length, stores))
        value = parse_ps_value(key, frame, length)
        logger.debug("Read %r", value)
        return value

    def ps_set(
        self, key: int, tokens: list[str], stores: int = DEFAULT_WRITE_STORES
    ) -> PSValue:
        """Write *tokens* to *key*, shaped by the length the chip reports.

        Returns:
            The value as written.

        Raises:
            ArgumentCountMismatch: Before any write, on a wrong token count.
        """
        length = self.ps_size(key, stores)
        if length > MAX_GET_WORDS:
            raise KeyTooLarge(key, length, MAX_GET_WORDS)
        data = encode_set_tokens(key, length, list(tokens))
        self.ps_write(key, data, stores)
        return PSValue.from_bytes(key, data)

    def ps_write(self, key: int, data: bytes, stores: int = DEFAULT_WRITE_STORES) -> None:
        """Write the byte image *data* to *key*."""
        self._transport.write(VarId.PS, build_ps_write(key, stores, data))
        logger.debug("Wrote key 0x%04x (%d bytes) to stores 0x%04x", key, len(data), stores)

    def ps_clear(self, key: int, stores: int = DEFAULT_WRITE_STORES) -> None:
        self._transport.write(VarId.PS_CLR_STORES, build_ps_clear(key, stores))

    def iter_keys(
        self, stores: int = DEFAULT_READ_STORES, limit: int = MAX_ITERATIONS
    ) -> Iterator[int]:
        """Yield the keys present in *stores*, in firmware order.

        Stops at the 0x0000 sentinel, when the next-key request fails, or
        after *limit* keys. Repeated keys are not detected.
        """
        key = KEY_SENTINEL
        for _ in range(limit):
            try:
                frame = self._transport.read(VarId.PS_NEXT, build_ps_next(key, stores))
            except BccmdError as e:
                logger.warning("Key enumeration stopped after 0x%04x: %s", key, e)
                return
            key = parse_ps_next(frame)
            if key == KEY_SENTINEL:
                return
            yield key
        logger.warning("Key enumeration stopped after %d keys", limit)

    def ps_list(self, stores: int = DEFAULT_READ_STORES) -> Iterator[tuple[int, int]]:
        """Yield ``(key, length in words)`` for every key in *stores*."""
        for key in self.iter_keys(stores):
            try:
                length = self.ps_size(key, stores)
            except BccmdError as e:
                logger.warning("Skipping key 0x%04x: %s", key, e)
                continue
            yield key, length

    def ps_read(self, stores: int = DEFAULT_READ_STORES) -> Iterator[PSValue]:
        """Yield the value of every readable key in *stores*."""
        for key in self.iter_keys(stores):
            try:
                yield self.ps_get(key, stores)
            except BccmdError as e:
                logger.warning("Skipping key 0x%04x: %s", key, e)

    def load_records(
        self, records: Iterable[PSRecord], stores: int = DEFAULT_WRITE_STORES
    ) -> Iterator[LoadOutcome]:
        """Write each record in turn, continuing past failed writes.

        A malformed record file still raises, since the remaining records
        cannot be trusted.
        """
        for record in records:
            try:
                self.ps_write(record.key, record.data, stores)
            except BccmdError as e:
                logger.error("Loading %s failed: %s", symbol(record.key), e)
                yield LoadOutcome(record, e)
            else:
                yield LoadOutcome(record)

    def warm_reset_after(self) -> bool:
        """Issue a warm reset after a completed operation.

        Returns:
            ``False`` if the reset could not be sent; the error is logged.
        """
        try:
            self.warm_reset()
        except BccmdError as e:
            logger.error("Warm reset failed: %s", e)
            return False
        return True

    def memtypes(self) -> Iterator[tuple[int, int]]:
        """Yield ``(store, memory type)`` for each single store that answers."""
        for store in SINGLE_STORES:
            try:
                frame = self._transport.read(VarId.PS_MEMORY_TYPE, build_memory_type(store))
            except BccmdError as e:
                logger.warning("No memory type for store 0x%04x: %s", store, e)
                continue
            yield store, parse_memory_type(frame)

    # ─── Diagnostics ──────────────────────────────────────────────────

    def builddefs(self, limit: int = MAX_ITERATIONS) -> Iterator[int]:
        """Yield the firmware's build definitions until the 0x0000 sentinel."""
        builddef = 0x0000
        for _ in range(limit):
            frame = self._transport.read(
                VarId.GET_NEXT_BUILDDEF, build_next_builddef(builddef)
            )
            builddef = parse_next_builddef(frame)
            if builddef == 0x0000:
                return
            yield builddef
        logger.warning("Build definition enumeration stopped after %d entries", limit)

    def crypt_key_length(self, handle: int) -> CryptKeyLength:
        frame = self._transport.read(VarId.CRYPT_KEY_LENGTH, build_crypt_key_length(handle))
        return parse_crypt_key_length(frame)

    def bt_clock(self) -> int:
        return parse_clock(self._transport.read(VarId.BT_CLOCK, build_empty()))

    def random(self) -> int:
        return parse_word(self._transport.read(VarId.RAND, build_empty()))

    def chip_revision(self) -> int:
        return parse_word(self._transport.read(VarId.CHIPREV, build_empty()))

    def build_name(self) -> str:
        frame = self._transport.read(
            VarId.READ_BUILD_NAME, build_empty(BUILD_NAME_FRAME_SIZE)
        )
        return parse_build_name(frame)

    def panic_arg(self) -> int:
        return parse_word(self._transport.read(VarId.PANIC_ARG, build_empty()))

    def fault_arg(self) -> int:
        return parse_word(self._transport.read(VarId.FAULT_ARG, build_empty()))

    def cold_reset(self) -> None:
        self._transport.write(VarId.COLD_RESET)

    def warm_reset(self) -> None:
        self._transport.write(VarId.WARM_RESET)

    def disable_tx(self) -> None:
        self._transport.write(VarId.DISABLE_TX)

    def enable_tx(self) -> None:
        self._transport.write(VarId.ENABLE_TX)

    def hopping_on(self) -> None:
        self._transport.write(VarId.HOPPING_ON)

    def single_channel(self, channel: int) -> None:
        """Lock the radio on *channel* (0-78, or 2402-2480 MHz)."""
        self._transport.write(VarId.SINGLE_CHAN, build_single_channel(channel))

    def radio_test(self, test: int, freq: int, level: int) -> None:
        self._transport.write(VarId.RADIOTEST, build_radiotest(test, freq, level))

    def rt_txdata1(self, freq: int, level: int) -> None:
        self.radio_test(RadioTest.TXDATA1, freq, level)
