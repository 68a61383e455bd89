"""Command-line entry point: ``bccmd [options] <command> [args]``."""

from __future__ import annotations

import argparse
import logging
import sys

from . import actions
from .device import BccmdDevice
from .exceptions import BccmdError
from .models.pskeys import ALIASES, parse_number, resolve_key
from .models.stores import DEFAULT_READ_STORES, DEFAULT_WRITE_STORES, parse_stores
from .transport import DEFAULT_TRANSPORT, open_transport
from .transport.uart import DEFAULT_SPEED

logger = logging.getLogger(__name__)


def _keys_epilog(width: int = 60) -> str:
    lines, line = [], ""
    for entry in ALIASES:
        line += entry.alias + " "
        if len(line) > width:
            lines.append(line.rstrip())
            line = ""
    if line:
        lines.append(line.rstrip())
    return "Transports:\n  HCI USB BCSP H4 3WIRE\n\nKeys:\n  " + "\n  ".join(lines)


def _stores(args, default: int) -> int:
    return default if args.stores is None else parse_stores(args.stores)


def _add_ps_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-s", "--stores",
        help="store bank(s): default, implementation|psi, factory|psf, "
             "rom|psrom, ram|psram, or a number",
    )
    parser.add_argument(
        "-r", "--reset", action="store_true",
        help="warm reset the chip afterwards",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bccmd",
        description="bccmd - Utility for the CSR BCCMD interface",
        epilog=_keys_epilog(),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-t", "--transport",
        default=DEFAULT_TRANSPORT.value,
        help="transport: hci, usb, bcsp, h4, 3wire (default: %(default)s)",
    )
    parser.add_argument(
        "-d", "-i", "--device",
        help="device: hciN, VID:PID for usb, or a serial port",
    )
    parser.add_argument(
        "--speed", type=int, default=DEFAULT_SPEED,
        help="UART speed for bcsp, h4 and 3wire (default: %(default)s)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")

    sub = parser.add_subparsers(dest="command", metavar="<command>")

    # ─── Diagnostics ──────────────────────────────────────────────────
    p = sub.add_parser("builddef", help="Get build definitions")
    p.set_defaults(build=lambda a: actions.BuildDefs())

    p = sub.add_parser("keylen", help="Get current crypt key length")
    p.add_argument("handle")
    p.set_defaults(build=lambda a: actions.KeyLen(parse_number(a.handle)))

    p = sub.add_parser("clock", help="Get local Bluetooth clock")
    p.set_defaults(build=lambda a: actions.Clock())

    p = sub.add_parser("rand", help="Get random number")
    p.set_defaults(build=lambda a: actions.Rand())

    p = sub.add_parser("chiprev", help="Get chip revision")
    p.set_defaults(build=lambda a: actions.ChipRev())

    p = sub.add_parser("buildname", help="Get the full build name")
    p.set_defaults(build=lambda a: actions.BuildName())

    p = sub.add_parser("panicarg", help="Get panic code argument")
    p.set_defaults(build=lambda a: actions.PanicArg())

    p = sub.add_parser("faultarg", help="Get fault code argument")
    p.set_defaults(build=lambda a: actions.FaultArg())

    p = sub.add_parser("coldreset", help="Perform cold reset")
    p.set_defaults(build=lambda a: actions.ColdReset())

    p = sub.add_parser("warmreset", help="Perform warm reset")
    p.set_defaults(build=lambda a: actions.WarmReset())

    p = sub.add_parser("disabletx", help="Disable TX on the device")
    p.set_defaults(build=lambda a: actions.DisableTx())

    p = sub.add_parser("enabletx", help="Enable TX on the device")
    p.set_defaults(build=lambda a: actions.EnableTx())

    p = sub.add_parser("singlechan", help="Lock radio on specific channel")
    p.add_argument("channel")
    p.set_defaults(build=lambda a: actions.SingleChan(parse_number(a.channel)))

    p = sub.add_parser("hoppingon", help="Revert to channel hopping")
    p.set_defaults(build=lambda a: actions.HoppingOn())

    p = sub.add_parser("rttxdata1", help="TXData1 radio test")
    p.add_argument("freq")
    p.add_argument("level")
    p.set_defaults(build=lambda a: actions.RtTxData1(
        parse_number(a.freq), parse_number(a.level)))

    p = sub.add_parser("radiotest", help="Run radio tests")
    p.add_argument("freq")
    p.add_argument("level")
    p.add_argument("id")
    p.set_defaults(build=lambda a: actions.RunRadioTest(
        parse_number(a.freq), parse_number(a.level), parse_number(a.id)))

    p = sub.add_parser("memtypes", help="Get memory types")
    p.set_defaults(build=lambda a: actions.MemTypes())

    # ─── PS store ─────────────────────────────────────────────────────
    p = sub.add_parser("psget", help="Get value for PS key")
    p.add_argument("key")
    _add_ps_options(p)
    p.set_defaults(build=lambda a: actions.PSGet(
        resolve_key(a.key), _stores(a, DEFAULT_READ_STORES), a.reset))

    p = sub.add_parser("psset", help="Set value for PS key")
    p.add_argument("key")
    p.add_argument("values", nargs="+", metavar="value")
    _add_ps_options(p)
    p.set_defaults(build=lambda a: actions.PSSet(
        resolve_key(a.key), tuple(a.values), _stores(a, DEFAULT_WRITE_STORES), a.reset))

    p = sub.add_parser("psclr", help="Clear value for PS key")
    p.add_argument("key")
    _add_ps_options(p)
    p.set_defaults(build=lambda a: actions.PSClear(
        resolve_key(a.key), _stores(a, DEFAULT_WRITE_STORES), a.reset))

    p = sub.add_parser("pslist", help="List all PS keys")
    _add_ps_options(p)
    p.set_defaults(build=lambda a: actions.PSList(
        _stores(a, DEFAULT_READ_STORES), a.reset))

    p = sub.add_parser("psread", help="Read all PS keys")
    _add_ps_options(p)
    p.set_defaults(build=lambda a: actions.PSRead(
        _stores(a, DEFAULT_READ_STORES), a.reset))

    p = sub.add_parser("psload", help="Load all PS keys from PSR file")
    p.add_argument("file")
    _add_ps_options(p)
    p.set_defaults(build=lambda a: actions.PSLoad(
        a.file, _stores(a, DEFAULT_WRITE_STORES), a.reset))

    p = sub.add_parser("pscheck", help="Check PSR file")
    p.add_argument("file")
    p.set_defaults(build=lambda a: actions.PSCheck(a.file))

    return parser


def main(argv: list[str] | None = None) -> int:
    """Parse arguments, open the transport, and run one command."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 1

    try:
        action = args.build(args)
        if type(action) in actions.OFFLINE_ACTIONS:
            return actions.run_action(action, None)
        with open_transport(args.transport, args.device, args.speed) as transport:
            return actions.run_action(action, BccmdDevice(transport))
    except BccmdError as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Can't execute command: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
