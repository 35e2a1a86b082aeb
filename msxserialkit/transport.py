"""Byte-level access to a serial link, with jiffy-based timeouts."""

from __future__ import annotations

import time
from typing import Callable, Optional, Protocol

import serial

VDP_FREQUENCY = 50
"""Clock ticks (jiffies) per second."""

DEFAULT_BAUD_RATE = 19200


class Stream(Protocol):
    """The subset of a serial port that a link needs."""

    @property
    def in_waiting(self) -> int: ...

    def read(self, size: int = 1) -> bytes: ...

    def write(self, data: bytes) -> Optional[int]: ...

    def close(self) -> None: ...


def jiffy_clock() -> int:
    """Return a monotonic tick count at VDP_FREQUENCY ticks per second."""
    return int(time.monotonic() * VDP_FREQUENCY)


class ByteLink:
    """A serial stream with polling reads and tick-counted waits."""

    POLL_INTERVAL = 0.001

    def __init__(self, stream: Stream, clock: Optional[Callable[[], int]] = None):
        self._stream = stream
        self._clock = clock if clock is not None else jiffy_clock

    @property
    def stream(self) -> Stream:
        return self._stream

    @property
    def clock(self) -> Callable[[], int]:
        return self._clock

    def __enter__(self) -> "ByteLink":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def read_available(self, limit: int) -> bytes:
        """Return up to ``limit`` bytes that are already waiting, without blocking."""
        if limit <= 0:
            return b""
        count = min(self._stream.in_waiting, limit)
        if not count:
            return b""
        return bytes(self._stream.read(count))

    def write(self, data: bytes) -> None:
        """Send every byte of ``data``."""
        payload = bytes(data)
        if payload:
            self._stream.write(payload)

    def write_byte(self, value: int) -> None:
        """Send a single byte; ``value`` must lie in 0..255."""
        self.write(bytes((value,)))

    def wait_for_byte(self, period: int) -> bool:
        """Wait up to ``period`` ticks for input; return whether a byte is waiting."""
        deadline = self._clock() + period
        while not self._stream.in_waiting:
            if deadline - self._clock() < 0:
                break
            if self.POLL_INTERVAL:
                time.sleep(self.POLL_INTERVAL)
        return bool(self._stream.in_waiting)

    def read_byte(self) -> int:
        """Read one byte, raising TimeoutError if the stream yields nothing."""
        data = self._stream.read(1)
        if not data:
            raise TimeoutError("no byte received")
        return data[0]

    def flush_input(self, period: int) -> None:
        """Discard input until the line has been quiet for ``period`` ticks."""
        while self.wait_for_byte(period):
            self.read_byte()

    def close(self) -> None:
        self._stream.close()


def open_serial(port: str, baudrate: int = DEFAULT_BAUD_RATE) -> ByteLink:
    """Open ``port`` (a device name or a pyserial URL) as an 8N1 link."""
    stream = serial.serial_for_url(
        port,
        baudrate=baudrate,
        bytesize=serial.EIGHTBITS,
        parity=serial.PARITY_NONE,
        stopbits=serial.STOPBITS_ONE,
        timeout=None,
    )
    return ByteLink(stream)