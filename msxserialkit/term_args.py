"""Command-line options of the terminal command."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

_USAGE = (
    "Usage:  term [options]\n\n"
    "Connect to a remote BBS system using\n"
    "a serial port\n\n"
    "/a      turn off automatic download\n"
    "        detection\n"
    "/o      turn off ANSI rendering and\n"
    "        use plain text rendering\n"
    "/r      Use alternative download\n"
    "        method\n"
    "/i      Display information and\n"
    "        instructions\n"
)

_INFO = (
    "TERM written for Yellow MSX Series\n"
    "designed for RC2014\n"
    "Version 0.0.1\n\n"
    "F1 ---------> Download File\n"
    "F2 ---------> Toggle Local echo\n"
    "F3 ---------> Toggle CR/CRLF\n"
    "CTRL-BREAK -> Exit\n"
)


class UsageError(Exception):
    """The command should stop; the message is what to show."""

    exit_code = 1


@dataclass(frozen=True)
class TermOptions:
    auto_download: bool = True
    ansi: bool = True
    standard_data_transfer: bool = True


def parse_arguments(argv: Sequence[str]) -> TermOptions:
    """Parse the arguments that follow the program name."""
    auto_download = True
    ansi = True
    standard_data_transfer = True

    for arg in argv:
        if arg == "/h" or arg.lower() == "/help":
            raise UsageError(_USAGE)
        if arg == "/i":
            raise UsageError(_INFO)
        if arg == "/a":
            auto_download = False
        elif arg == "/o":
            ansi = False
        elif arg == "/r":
            standard_data_transfer = False
        else:
            raise UsageError(f"Invalid command line option '{arg}'\n\n" + _USAGE)

    return TermOptions(
        auto_download=auto_download,
        ansi=ansi,
        standard_data_transfer=standard_data_transfer,
    )