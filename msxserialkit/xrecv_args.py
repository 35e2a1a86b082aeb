"""Command-line options of the XMODEM receive command."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

FOSSIL_BAUD_RATE_NAMES: tuple[str, ...] = (
    "75",
    "300",
    "600",
    "1200",
    "2400",
    "4800",
    "9600",
    "19200",
    "38400",
    "57600",
    "unknown",
    "115200",
)

BAUD_RATES: dict[str, int] = {
    "75": 0,
    "300": 1 * 256 + 1,
    "600": 2 * 256 + 2,
    "1200": 3 * 256 + 3,
    "2400": 4 * 256 + 4,
    "4800": 5 * 256 + 5,
    "9600": 6 * 256 + 6,
    "19200": 7 * 256 + 7,
    "38400": 8 * 256 + 8,
    "57600": 9 * 256 + 9,
    "115200": 11 * 256 + 11,
}

DEFAULT_BAUD_RATE = BAUD_RATES["19200"]

_USAGE = (
    "Usage:  xrecv <filename> [options]\n\n"
    "Receive a file using xmodem protocol\n"
    "using the active fossil driver\n\n"
    "  /b<rate>, /baud=<rate>\n"
    "    The desired tx/rx baud <rate>\n"
    "    eg 19200\n"
    "  /d<ip:port> /atd=<ip:port>\n"
    "    Dial connection on modem\n"
    "   eg: 192.168.1.2:3000\n"
)


class UsageError(Exception):
    """The command line cannot be used; the message is what to show."""

    exit_code = 1


@dataclass(frozen=True)
class XrecvOptions:
    filename: str
    baud_rate: int = DEFAULT_BAUD_RATE
    dial_address: Optional[str] = None


def usage_text() -> str:
    """Return the help text of the command."""
    return _USAGE


def rate_to_string(rate: int) -> str:
    """Return the display name of a fossil baud-rate code."""
    index = rate & 0xF
    if index >= len(FOSSIL_BAUD_RATE_NAMES):
        raise ValueError(f"unknown baud rate code {rate:#x}")
    return FOSSIL_BAUD_RATE_NAMES[index]


def _with_usage(message: str) -> UsageError:
    return UsageError(message + _USAGE)


def _baud_value(arg: str) -> Optional[str]:
    if arg[:5].lower() == "/baud":
        if arg[5:6] != "=":
            raise _with_usage("Invalid baud switch - use /baud=<rate>\n")
        return arg[6:]
    if arg.startswith("/b"):
        return arg[2:]
    return None


def _dial_value(arg: str) -> Optional[str]:
    if arg[:4].lower() == "/atd":
        if arg[4:5] != "=":
            raise _with_usage("Invalid atd switch - use /atd=<ip:port>\n")
        return arg[5:]
    if arg.startswith("/d"):
        return arg[2:]
    return None


def parse_arguments(argv: Sequence[str]) -> XrecvOptions:
    """Parse the arguments that follow the program name."""
    filename: Optional[str] = None
    baud_rate = DEFAULT_BAUD_RATE
    dial_address: Optional[str] = None

    for arg in argv:
        rate = _baud_value(arg)
        if rate is not None:
            if rate not in BAUD_RATES:
                raise UsageError(f"Invalid baud rate setting '{rate}'\n")
            baud_rate = BAUD_RATES[rate]
            continue

        if arg == "/h" or arg.lower() == "/help":
            raise UsageError(_USAGE)

        if not arg.startswith("/"):
            if filename is not None:
                raise _with_usage("Invalid usage\n")
            filename = arg
            continue

        address = _dial_value(arg)
        if address is not None:
            dial_address = address
            continue

        raise _with_usage(f"Invalid command line option '{arg}'\n\n")

    if filename is None:
        raise _with_usage("Missing filename.\n\n")

    return XrecvOptions(filename=filename, baud_rate=baud_rate, dial_address=dial_address)