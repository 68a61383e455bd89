"""Persistent store banks and memory types."""

from __future__ import annotations

from enum import IntEnum, IntFlag

from ..exceptions import InvalidArgument
from .pskeys import parse_number


class Stores(IntFlag):
    """Bit set over the four PS banks.

    A mask of zero asks the firmware for its default bank selection.
    """

    DEFAULT = 0x0000
    PSI = 0x0001
    PSF = 0x0002
    PSROM = 0x0004
    PSRAM = 0x0008


DEFAULT_READ_STORES = Stores.PSI | Stores.PSF
DEFAULT_WRITE_STORES = Stores.PSRAM

SINGLE_STORES = (Stores.PSI, Stores.PSF, Stores.PSROM, Stores.PSRAM)

STORE_NAMES: dict[str, int] = {
    "default": Stores.DEFAULT,
    "implementation": Stores.PSI,
    "factory": Stores.PSF,
    "rom": Stores.PSROM,
    "ram": Stores.PSRAM,
    "psi": Stores.PSI,
    "psf": Stores.PSF,
    "psrom": Stores.PSROM,
    "psram": Stores.PSRAM,
}

_STORE_LABELS = {
    Stores.DEFAULT: "Default",
    Stores.PSI: "psi",
    Stores.PSF: "psf",
    Stores.PSROM: "psrom",
    Stores.PSRAM: "psram",
}


class MemoryType(IntEnum):
    """Memory technology backing a store, as reported by PS_MEMORY_TYPE."""

    FLASH = 0x0000
    EEPROM = 0x0001
    RAM = 0x0002
    ROM = 0x0003


_MEMORY_LABELS = {
    MemoryType.FLASH: "Flash memory",
    MemoryType.EEPROM: "EEPROM",
    MemoryType.RAM: "RAM (transient)",
    MemoryType.ROM: 'ROM (or "read-only" flash memory)',
}


def parse_stores(token: str) -> int:
    """Parse a store token: a bank name or a hex/decimal mask.

    Raises:
        InvalidArgument: If the token is unknown or the mask exceeds 16 bits.
    """
    name = token.strip().lower()
    if name in STORE_NAMES:
        return STORE_NAMES[name]
    value = parse_number(token)
    if not 0 <= value <= 0xFFFF:
        raise InvalidArgument(f"Store mask out of range: {token!r}")
    return value


def stores_name(stores: int) -> str:
    return _STORE_LABELS.get(stores, "Unknown")


def memory_type_name(mem_type: int) -> str:
    return _MEMORY_LABELS.get(mem_type, "Unknown")
