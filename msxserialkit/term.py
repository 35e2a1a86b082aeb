"""Interactive serial terminal for BBS sessions with telnet handling."""

from __future__ import annotations

import enum
import os
import select
import sys
import time
from pathlib import Path
from types import TracebackType
from typing import Callable, List, Optional, Sequence, TextIO, Union

from .telnet import RECEIVE_MEMORY_SIZE, TelnetSession
from .term_args import TermOptions, UsageError, parse_arguments
from .transport import ByteLink, open_serial
from .ymodem import XYModemReceiver

if sys.platform == "win32":
    import msvcrt
else:
    import termios
    import tty

CURSOR_UP = b"\x1b[A"
CURSOR_DOWN = b"\x1b[B"
CURSOR_FORWARD = b"\x1b[C"
CURSOR_BACKWARD = b"\x1b[D"

KEY_ENTER = 13
KEY_ESCAPE = 0x1B
KEY_RIGHT = 28
KEY_LEFT = 29
KEY_UP = 30
KEY_DOWN = 31

_KEY_SEQUENCES = {
    KEY_RIGHT: CURSOR_FORWARD,
    KEY_LEFT: CURSOR_BACKWARD,
    KEY_UP: CURSOR_UP,
    KEY_DOWN: CURSOR_DOWN,
}

DOWNLOAD_PROMPT = (
    "\n\nXMODEM Download type file Name\n"
    "YMODEM Download type Y\n"
    "YMODEM-G Download type G: "
)

DEFAULT_BAUD_RATE = 57600
PORT_ENVIRONMENT = "MSXSERIAL_PORT"
DEFAULT_PORT = "/dev/ttyUSB0"
_KEY_POLL_TIMEOUT = 0.01


class FunctionKey(enum.Enum):
    """Terminal commands bound to function keys."""

    DOWNLOAD = "F1"
    ECHO = "F2"
    CRLF = "F3"
    EXIT = "F5"


Key = Union[int, FunctionKey]


def translate_key(key: int, use_crlf: bool = False) -> bytes:
    """Return the bytes to send for a key code."""
    if key == KEY_ENTER:
        return b"\r\n" if use_crlf else b"\r"
    sequence = _KEY_SEQUENCES.get(key)
    if sequence is not None:
        return sequence
    if not 0 <= key <= 0xFF:
        raise ValueError(f"key code {key} is not a byte")
    return bytes((key,))


class Terminal:
    """A telnet-aware terminal over a byte link."""

    def __init__(
        self,
        link: ByteLink,
        options: Optional[TermOptions] = None,
        console: Optional[TextIO] = None,
    ):
        self.link = link
        self.options = options if options is not None else TermOptions()
        self.console = console if console is not None else sys.stdout
        self.use_crlf = False
        self.directory = Path(".")
        self.read_line: Callable[[], str] = sys.stdin.readline
        self.abort_requested: Callable[[], bool] = lambda: False
        self.session = TelnetSession(
            link,
            ansi=self.options.ansi,
            width40=False,
            auto_download=self.options.auto_download,
            on_binary_transfer=self.download,
        )

    @property
    def echo(self) -> bool:
        return self.session.echo

    @echo.setter
    def echo(self, value: bool) -> None:
        self.session.echo = bool(value)

    def _show(self, text: str) -> None:
        self.console.write(text)
        self.console.flush()

    def toggle_echo(self) -> bool:
        """Switch local echo and return the new setting."""
        self.echo = not self.echo
        return self.echo

    def toggle_crlf(self) -> bool:
        """Switch between sending CR and CR LF for Enter; return the new setting."""
        self.use_crlf = not self.use_crlf
        return self.use_crlf

    def handle_key(self, key: int) -> bytes:
        """Send a typed key to the remote end and return what was sent."""
        if not key:
            return b""
        data = translate_key(key, self.use_crlf)
        self.link.write(data)
        if key == KEY_ENTER:
            self.session.enter_hit = True
        if self.echo:
            self._show("\n" if key == KEY_ENTER else chr(key))
        return data

    def poll(self) -> bytes:
        """Process waiting input and return the bytes that were displayed."""
        data = self.link.read_available(RECEIVE_MEMORY_SIZE)
        if not data:
            return b""
        text = self.session.feed(data)
        if text:
            self._show(text.decode("latin-1"))
        return text

    def download(self, choice: Optional[str] = None) -> int:
        """Ask for and run a file download; return how many files completed."""
        self._show(DOWNLOAD_PROMPT)
        if choice is None:
            choice = self.read_line()
        choice = choice.strip("\r\n")
        self._show("\n")
        receiver = XYModemReceiver(
            self.link, console=self.console, directory=self.directory
        )
        return receiver.download(
            choice, self.options.standard_data_transfer, self.abort_requested
        )


_ESCAPE_SEQUENCES: dict[bytes, Key] = {
    b"\x1bOP": FunctionKey.DOWNLOAD,
    b"\x1b[11~": FunctionKey.DOWNLOAD,
    b"\x1bOQ": FunctionKey.ECHO,
    b"\x1b[12~": FunctionKey.ECHO,
    b"\x1bOR": FunctionKey.CRLF,
    b"\x1b[13~": FunctionKey.CRLF,
    b"\x1b[15~": FunctionKey.EXIT,
    b"\x1b[A": KEY_UP,
    b"\x1b[B": KEY_DOWN,
    b"\x1b[C": KEY_RIGHT,
    b"\x1b[D": KEY_LEFT,
}

_WINDOWS_SCAN_CODES: dict[str, Key] = {
    ";": FunctionKey.DOWNLOAD,
    "<": FunctionKey.ECHO,
    "=": FunctionKey.CRLF,
    "?": FunctionKey.EXIT,
    "H": KEY_UP,
    "P": KEY_DOWN,
    "M": KEY_RIGHT,
    "K": KEY_LEFT,
}


def _decode_keys(data: bytes) -> List[Key]:
    known = _ESCAPE_SEQUENCES.get(data)
    if known is not None:
        return [known]
    return [KEY_ENTER if value == 10 else value for value in data]


class _PosixKeyboard:
    def __init__(self) -> None:
        self._fd = sys.stdin.fileno()
        self._saved = None

    def __enter__(self) -> "_PosixKeyboard":
        if os.isatty(self._fd):
            self._saved = termios.tcgetattr(self._fd)
            tty.setcbreak(self._fd)
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        if self._saved is not None:
            termios.tcsetattr(self._fd, termios.TCSADRAIN, self._saved)

    def read_keys(self, timeout: float) -> List[Key]:
        ready, _, _ = select.select([self._fd], [], [], timeout)
        if not ready:
            return []
        data = os.read(self._fd, 16)
        if not data:
            raise EOFError("keyboard closed")
        return _decode_keys(data)

    def line(self) -> str:
        if self._saved is not None:
            termios.tcsetattr(self._fd, termios.TCSADRAIN, self._saved)
        try:
            return os.read(self._fd, 256).decode("latin-1")
        finally:
            if self._saved is not None:
                tty.setcbreak(self._fd)

    def escape_pressed(self) -> bool:
        return KEY_ESCAPE in self.read_keys(0)


class _WindowsKeyboard:
    def __enter__(self) -> "_WindowsKeyboard":
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        return None

    def read_keys(self, timeout: float) -> List[Key]:
        deadline = time.monotonic() + timeout
        while not msvcrt.kbhit():
            if time.monotonic() >= deadline:
                return []
            time.sleep(0.005)
        char = msvcrt.getwch()
        if char in ("\x00", "\xe0"):
            mapped = _WINDOWS_SCAN_CODES.get(msvcrt.getwch())
            return [mapped] if mapped is not None else []
        code = ord(char)
        return [code] if code <= 0xFF else []

    def line(self) -> str:
        return sys.stdin.readline()

    def escape_pressed(self) -> bool:
        return KEY_ESCAPE in self.read_keys(0)


def _open_keyboard() -> Union[_PosixKeyboard, _WindowsKeyboard]:
    if sys.platform == "win32":
        return _WindowsKeyboard()
    return _PosixKeyboard()


def _split_port(args: Sequence[str]) -> tuple[str, list[str]]:
    port = os.environ.get(PORT_ENVIRONMENT, DEFAULT_PORT)
    rest = []
    for arg in args:
        if arg.lower().startswith("/port="):
            port = arg[len("/port="):]
        else:
            rest.append(arg)
    return port, rest


def _run(terminal: Terminal, keyboard: Union[_PosixKeyboard, _WindowsKeyboard]) -> bool:
    """Run the session loop; return True when the user asked to leave."""
    try:
        while True:
            for key in keyboard.read_keys(_KEY_POLL_TIMEOUT):
                if key is FunctionKey.EXIT:
                    return True
                if key is FunctionKey.DOWNLOAD:
                    terminal.download()
                elif key is FunctionKey.ECHO:
                    terminal.toggle_echo()
                elif key is FunctionKey.CRLF:
                    terminal.toggle_crlf()
                elif isinstance(key, int):
                    terminal.handle_key(key)
            terminal.poll()
    except KeyboardInterrupt:
        return True
    except (OSError, EOFError):
        return False


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the terminal command; return the process exit status."""
    out = sys.stdout
    args = list(sys.argv[1:] if argv is None else argv)
    port, rest = _split_port(args)

    try:
        options = parse_arguments(rest)
    except UsageError as error:
        out.write(str(error))
        return error.exit_code

    try:
        link = open_serial(port, DEFAULT_BAUD_RATE)
    except OSError:
        out.write("Unable to connect to serial port\n")
        return 1

    terminal = Terminal(link, options, out)
    with link, _open_keyboard() as keyboard:
        terminal.read_line = keyboard.line
        terminal.abort_requested = keyboard.escape_pressed
        if options.ansi:
            out.write("\x1b[32mTerm Ready\x1b[0m\n\n")
        else:
            out.write("Term Ready\n\n")
        out.flush()

        user_exit = _run(terminal, keyboard)

        if user_exit:
            out.write("Closing connection...\n")
        else:
            out.write("Connection closed on the other end...\n")
        out.flush()
    return 0


if __name__ == "__main__":
    sys.exit(main())