"""Command kinds and their handlers.

Each command is a frozen dataclass carrying exactly the arguments it
needs. :data:`HANDLERS` maps every command type to the function that runs
it against a :class:`~csr_bccmd.device.BccmdDevice` and writes its
output lines.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Union

from .device import BccmdDevice, is_declared_array
from .models.builddefs import builddef_name, chiprev_name
from .models.pskeys import display_name, symbol
from .models.psr import format_entry, open_records
from .models.stores import (
    DEFAULT_READ_STORES,
    DEFAULT_WRITE_STORES,
    memory_type_name,
    stores_name,
)
from .protocol.parser import PSValue

logger = logging.getLogger(__name__)

Output = Callable[[str], None]


# ─── Diagnostics ──────────────────────────────────────────────────────

@dataclass(frozen=True)
class BuildDefs:
    pass


@dataclass(frozen=True)
class KeyLen:
    handle: int


@dataclass(frozen=True)
class Clock:
    pass


@dataclass(frozen=True)
class Rand:
    pass


@dataclass(frozen=True)
class ChipRev:
    pass


@dataclass(frozen=True)
class BuildName:
    pass


@dataclass(frozen=True)
class PanicArg:
    pass


@dataclass(frozen=True)
class FaultArg:
    pass


@dataclass(frozen=True)
class ColdReset:
    pass


@dataclass(frozen=True)
class WarmReset:
    pass


@dataclass(frozen=True)
class DisableTx:
    pass


@dataclass(frozen=True)
class EnableTx:
    pass


@dataclass(frozen=True)
class SingleChan:
    channel: int


@dataclass(frozen=True)
class HoppingOn:
    pass


@dataclass(frozen=True)
class RtTxData1:
    freq: int
    level: int


@dataclass(frozen=True)
class RunRadioTest:
    freq: int
    level: int
    test: int


@dataclass(frozen=True)
class MemTypes:
    pass


# ─── PS store ─────────────────────────────────────────────────────────

@dataclass(frozen=True)
class PSGet:
    key: int
    stores: int = DEFAULT_READ_STORES
    reset: bool = False


@dataclass(frozen=True)
class PSSet:
    key: int
    values: tuple[str, ...]
    stores: int = DEFAULT_WRITE_STORES
    reset: bool = False


@dataclass(frozen=True)
class PSClear:
    key: int
    stores: int = DEFAULT_WRITE_STORES
    reset: bool = False


@dataclass(frozen=True)
class PSList:
    stores: int = DEFAULT_READ_STORES
    reset: bool = False


@dataclass(frozen=True)
class PSRead:
    stores: int = DEFAULT_READ_STORES
    reset: bool = False


@dataclass(frozen=True)
class PSLoad:
    path: str
    stores: int = DEFAULT_WRITE_STORES
    reset: bool = False


@dataclass(frozen=True)
class PSCheck:
    path: str


Action = Union[
    BuildDefs, KeyLen, Clock, Rand, ChipRev, BuildName, PanicArg, FaultArg,
    ColdReset, WarmReset, DisableTx, EnableTx, SingleChan, HoppingOn,
    RtTxData1, RunRadioTest, MemTypes,
    PSGet, PSSet, PSClear, PSList, PSRead, PSLoad, PSCheck,
]

ACTION_TYPES: tuple[type, ...] = Action.__args__

# Commands that never touch the chip
OFFLINE_ACTIONS = frozenset({PSCheck})


def format_value(value: PSValue) -> str:
    """Format a PS value the way ``psget`` prints it."""
    name = display_name(value.key)
    if value.length == 1 and not is_declared_array(value.key):
        return f"{name}: 0x{value.scalar16:04x} ({value.scalar16})"
    if value.length == 2 and not is_declared_array(value.key):
        return f"{name}: 0x{value.scalar32:08x} ({value.scalar32})"
    words = "".join(f" 0x{word & 0xFF:02x}{word >> 8:02x}" for word in value.words)
    return f"{name}:{words}"


def _validity(code: int) -> str:
    return "valid" if code < 0x100 else "invalid"


def _finish(device: BccmdDevice, reset: bool) -> int:
    if reset:
        device.warm_reset_after()
    return 0


# ─── Handlers ─────────────────────────────────────────────────────────

def _builddefs(action: BuildDefs, device: BccmdDevice, out: Output) -> int:
    out("Build definitions:")
    for builddef in device.builddefs():
        out(f"0x{builddef:04x} - {builddef_name(builddef)}")
    return 0


def _keylen(action: KeyLen, device: BccmdDevice, out: Output) -> int:
    out(f"Crypt key length: {device.crypt_key_length(action.handle).bits} bit")
    return 0


def _clock(action: Clock, device: BccmdDevice, out: Output) -> int:
    clock = device.bt_clock()
    out(f"Bluetooth clock: 0x{clock:04x} ({clock})")
    return 0


def _rand(action: Rand, device: BccmdDevice, out: Output) -> int:
    value = device.random()
    out(f"Random number: 0x{value:02x} ({value})")
    return 0


def _chiprev(action: ChipRev, device: BccmdDevice, out: Output) -> int:
    rev = device.chip_revision()
    out(f"Chip revision: 0x{rev:04x} ({chiprev_name(rev)})")
    return 0


def _buildname(action: BuildName, device: BccmdDevice, out: Output) -> int:
    out(f"Build name: {device.build_name()}")
    return 0


def _panicarg(action: PanicArg, device: BccmdDevice, out: Output) -> int:
    code = device.panic_arg()
    out(f"Panic code: 0x{code:02x} ({_validity(code)})")
    return 0


def _faultarg(action: FaultArg, device: BccmdDevice, out: Output) -> int:
    code = device.fault_arg()
    out(f"Fault code: 0x{code:02x} ({_validity(code)})")
    return 0


def _coldreset(action: ColdReset, device: BccmdDevice, out: Output) -> int:
    device.cold_reset()
    return 0


def _warmreset(action: WarmReset, device: BccmdDevice, out: Output) -> int:
    device.warm_reset()
    return 0


def _disabletx(action: DisableTx, device: BccmdDevice, out: Output) -> int:
    device.disable_tx()
    return 0


def _enabletx(action: EnableTx, device: BccmdDevice, out: Output) -> int:
    device.enable_tx()
    return 0


def _singlechan(action: SingleChan, device: BccmdDevice, out: Output) -> int:
    device.single_channel(action.channel)
    return 0


def _hoppingon(action: HoppingOn, device: BccmdDevice, out: Output) -> int:
    device.hopping_on()
    return 0


def _rttxdata1(action: RtTxData1, device: BccmdDevice, out: Output) -> int:
    device.rt_txdata1(action.freq, action.level)
    return 0


def _radiotest(action: RunRadioTest, device: BccmdDevice, out: Output) -> int:
    device.radio_test(action.test, action.freq, action.level)
    return 0


def _memtypes(action: MemTypes, device: BccmdDevice, out: Output) -> int:
    for store, mem_type in device.memtypes():
        out(
            f"{stores_name(store)} (0x{store:04x}) = "
            f"{memory_type_name(mem_type)} ({mem_type})"
        )
    return 0


def _psget(action: PSGet, device: BccmdDevice, out: Output) -> int:
    out(format_value(device.ps_get(action.key, action.stores)))
    return _finish(device, action.reset)


def _psset(action: PSSet, device: BccmdDevice, out: Output) -> int:
    value = device.ps_set(action.key, list(action.values), action.stores)
    logger.info("Set %r", value)
    return _finish(device, action.reset)


def _psclr(action: PSClear, device: BccmdDevice, out: Output) -> int:
    device.ps_clear(action.key, action.stores)
    return _finish(device, action.reset)


def _pslist(action: PSList, device: BccmdDevice, out: Output) -> int:
    for key, length in device.ps_list(action.stores):
        out(f"0x{key:04x} - {display_name(key)} ({length * 2} bytes)")
    return _finish(device, action.reset)


def _psread(action: PSRead, device: BccmdDevice, out: Output) -> int:
    for value in device.ps_read(action.stores):
        out(format_entry(value.key, value.words))
    return _finish(device, action.reset)


def _psload(action: PSLoad, device: BccmdDevice, out: Output) -> int:
    loaded = failed = 0
    with open_records(action.path) as records:
        for outcome in device.load_records(records, action.stores):
            out(
                f"Loading {symbol(outcome.record.key)} ... "
                f"{'done' if outcome.ok else 'failed'}"
            )
            if outcome.ok:
                loaded += 1
            else:
                failed += 1
    logger.info("Loaded %d record(s), %d failed", loaded, failed)
    return _finish(device, action.reset)


def _pscheck(action: PSCheck, device: Optional[BccmdDevice], out: Output) -> int:
    with open_records(action.path) as records:
        for record in records:
            data = "".join(f" 0x{byte:02x}" for byte in record.data)
            out(f"0x{record.key:04x} ={data}")
    return 0


HANDLERS: dict[type, Callable[..., int]] = {
    BuildDefs: _builddefs,
    KeyLen: _keylen,
    Clock: _clock,
    Rand: _rand,
    ChipRev: _chiprev,
    BuildName: _buildname,
    PanicArg: _panicarg,
    FaultArg: _faultarg,
    ColdReset: _coldreset,
    WarmReset: _warmreset,
    DisableTx: _disabletx,
    EnableTx: _enabletx,
    SingleChan: _singlechan,
    HoppingOn: _hoppingon,
    RtTxData1: _rttxdata1,
    RunRadioTest: _radiotest,
    MemTypes: _memtypes,
    PSGet: _psget,
    PSSet: _psset,
    PSClear: _psclr,
    PSList: _pslist,
    PSRead: _psread,
    PSLoad: _psload,
    PSCheck: _pscheck,
}


def run_action(action: Action, device: Optional[BccmdDevice], out: Output = print) -> int:
    """Run *action* and return its exit status.

    Raises:
        TypeError: If no handler is registered for the action's type.
        BccmdError: Whatever the command itself raises.
    """
    handler = HANDLERS.get(type(action))
    if handler is None:
        raise TypeError(f"No handler for {type(action).__name__}")
    logger.debug("Running %r", action)
    return handler(action, device, out)
