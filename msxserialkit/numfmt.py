"""Unsigned integer to text conversion in bases 2 to 16."""

from __future__ import annotations

_DIGITS = "0123456789ABCDEF"
_UINT32_MAX = 0xFFFFFFFF


def ultostr(value: int, base: int = 10) -> str:
    """Return the 32-bit unsigned ``value`` written in ``base`` with upper-case digits."""
    if not 2 <= base <= len(_DIGITS):
        raise ValueError(f"base must lie in 2..{len(_DIGITS)}, not {base}")
    if not 0 <= value <= _UINT32_MAX:
        raise ValueError(f"value {value} is not a 32-bit unsigned integer")
    digits = []
    while True:
        value, remainder = divmod(value, base)
        digits.append(_DIGITS[remainder])
        if not value:
            break
    return "".join(reversed(digits))


def uint32_to_string(value: int) -> str:
    """Return the 32-bit unsigned ``value`` in decimal."""
    return ultostr(value, 10)