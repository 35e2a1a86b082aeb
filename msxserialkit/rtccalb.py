"""Options and drift reporting for the RTC calibration tool."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Sequence

DEFAULT_CLOCK = 3686400
T_STATES_WITHOUT_M1 = 77
T_STATES_WITH_M1 = 68
T_STATES_OVERHEAD = 0

_UINT32_MASK = 0xFFFFFFFF

_USAGE = (
    "Usage:  rtccalb [options]\n\n"
    "RTC Calibration Tool\n\n"
    "  /c<clock>, /cpu=<clock> (Optional)\n"
    "    The cpu <clock> eg 3686400\n"
    "\n"
    "  /m1\n"
    "    Assume MSX M1 wait states are\n"
    "    active\n"
)

_LEADING_INTEGER = re.compile(r"\s*([+-]?\d+)")


class UsageError(Exception):
    """The command line cannot be used; the message is what to show."""

    exit_code = 1


@dataclass(frozen=True)
class CalibrationOptions:
    clock: int = DEFAULT_CLOCK
    m1_state: bool = False


def _atol(text: str) -> int:
    match = _LEADING_INTEGER.match(text)
    if match is None:
        return 0
    return int(match.group(1)) & _UINT32_MASK


def _clock_value(arg: str) -> str | None:
    if arg[:4].lower() == "/cpu":
        if arg[4:5] != "=":
            raise UsageError("Invalid cpu switch - use /cpu=<clock>\n" + _USAGE)
        return arg[5:]
    if arg.startswith("/c"):
        return arg[2:]
    return None


def parse_arguments(argv: Sequence[str]) -> CalibrationOptions:
    """Parse the arguments that follow the program name."""
    clock = DEFAULT_CLOCK
    m1_state = False

    for arg in argv:
        value = _clock_value(arg)
        if value is not None:
            clock = _atol(value)
            continue
        if arg == "/h" or arg.lower() == "/help":
            raise UsageError(_USAGE)
        if arg == "/m1":
            m1_state = True
            continue
        raise UsageError(f"Invalid command line option '{arg}'\n\n" + _USAGE)

    if clock == 0:
        raise UsageError("Missing cpu clock rate argument\n\n" + _USAGE)

    return CalibrationOptions(clock=clock, m1_state=m1_state)


def expected_count(clock: int, m1_state: bool) -> int:
    """Return how many timing loops the CPU should run per RTC second."""
    wait_states = T_STATES_WITHOUT_M1 if m1_state else T_STATES_WITH_M1
    return clock // wait_states


def _to_int8(value: int) -> int:
    low = value & 0xFF
    return low - 0x100 if low & 0x80 else low


def drift_message(clock: int, m1_state: bool, measurement: int) -> str:
    """Describe how far a measured loop count is from the expected one."""
    expect = expected_count(clock, m1_state)
    diff = _to_int8(expect - measurement + T_STATES_OVERHEAD)
    if diff == 0:
        return "Approx. in sync with CPU clock"
    if diff > 0:
        return f"Approx. Fast By {diff:02d}/{clock} secs"
    return f"Approx. Slow By {-diff:02d}/{clock} secs"