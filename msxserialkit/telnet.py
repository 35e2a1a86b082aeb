"""Telnet stream parsing and option negotiation for a terminal session."""

from __future__ import annotations

import enum
from typing import Callable, Optional

from .transport import ByteLink

DO = 0xFD
WONT = 0xFC
WILL = 0xFB
DONT = 0xFE
IAC = 0xFF
SB = 0xFA
SE = 0xF0
IS = 0
SEND = 1

GA = 0xF9
EL = 0xF8
EC = 0xF7
AYT = 0xF6
AO = 0xF5
IP = 0xF4
BRK = 0xF3
DM = 0xF2
NOP = 0xF1

CMD_TRANSMIT_BINARY = 0
CMD_ECHO = 1
CMD_SUPPRESS_GO_AHEAD = 3
CMD_TTYPE = 24
CMD_WINDOW_SIZE = 31
CMD_TERMINAL_SPEED = 32
CMD_REMOTE_FLOW_CONTROL = 33
CMD_LINE_MODE = 34
CMD_ENV_VARIABLES = 36
CMD_ENCRYPTION = 38

COMMAND_BUFFER_SIZE = 128
RECEIVE_MEMORY_SIZE = 1024

WINDOW_SIZE_80X24 = bytes(
    (IAC, WILL, CMD_WINDOW_SIZE, IAC, SB, CMD_WINDOW_SIZE, 0, 80, 0, 24, IAC, SE)
)
WINDOW_SIZE_40X24 = bytes(
    (IAC, WILL, CMD_WINDOW_SIZE, IAC, SB, CMD_WINDOW_SIZE, 0, 40, 0, 24, IAC, SE)
)
WINDOW_SIZE_80X25 = bytes(
    (IAC, WILL, CMD_WINDOW_SIZE, IAC, SB, CMD_WINDOW_SIZE, 0, 80, 0, 25, IAC, SE)
)
TTYPE_ANSI = bytes((IAC, SB, CMD_TTYPE, IS)) + b"ANSI" + bytes((IAC, SE))
TTYPE_VT52 = bytes((IAC, SB, CMD_TTYPE, IS)) + b"VT52" + bytes((IAC, SE))


class ParserState(enum.IntEnum):
    IDLE = 0
    CMD_INPROGRESS = 1
    SUB_INPROGRESS = 2
    SUB_WAITEND = 3
    ESC_INPROGRESS = 4


def cursor_position_response(row: int, column: int) -> bytes:
    """Return the ANSI cursor position report for ``row`` and ``column``."""
    return f"\x1b[{row};{column}R".encode("ascii")


class TelnetSession:
    """Strip telnet commands from received data and answer negotiations."""

    def __init__(
        self,
        link: ByteLink,
        ansi: bool = True,
        width40: bool = False,
        auto_download: bool = True,
        on_binary_transfer: Optional[Callable[[], None]] = None,
    ):
        self.link = link
        self.ansi = ansi
        self.width40 = width40
        self.auto_download = auto_download
        self.on_binary_transfer = on_binary_transfer
        self.echo = False
        self.enter_hit = False
        self.state = ParserState.IDLE
        self._command = bytearray(COMMAND_BUFFER_SIZE)
        self._counter = 0

    def _send(self, data: bytes) -> bytes:
        self.link.write(data)
        return data

    def _reply(self, command: bytearray, verb: int) -> bytes:
        command[1] = verb
        return self._send(bytes(command[:3]))

    def negotiate(self, command: bytes) -> bytes:
        """Answer a received command (IAC, verb, option...); return what was sent."""
        buf = bytearray(command[:3])
        buf.extend(b"\x00" * (3 - len(buf)))
        verb, option = buf[1], buf[2]

        if verb == DO:
            if option == CMD_WINDOW_SIZE:
                if self.ansi:
                    return self._send(WINDOW_SIZE_80X25)
                if not self.width40:
                    return self._send(WINDOW_SIZE_80X24)
                return self._send(WINDOW_SIZE_40X24)
            if option in (CMD_TTYPE, CMD_TRANSMIT_BINARY):
                return self._reply(buf, WILL)
            return self._reply(buf, WONT)

        if verb == WILL:
            if option == CMD_ECHO:
                self.echo = False
                return self._reply(buf, DO)
            if option == CMD_TRANSMIT_BINARY:
                sent = self._reply(buf, DO)
                if not self.enter_hit:
                    # Binary mode offered during the opening handshake does
                    # not announce file transfers on this server.
                    self.auto_download = False
                elif self.auto_download and self.on_binary_transfer is not None:
                    self.on_binary_transfer()
                return sent
            return self._reply(buf, DO)

        if verb == SB:
            if option == CMD_TTYPE:
                return self._send(TTYPE_ANSI if self.ansi else TTYPE_VT52)
            return b""

        if verb == WONT:
            if option == CMD_ECHO:
                self.echo = True
            return self._reply(buf, DONT)

        if verb == DONT:
            return self._reply(buf, WONT)

        return b""

    def _store(self, value: int) -> None:
        if self._counter < COMMAND_BUFFER_SIZE:
            self._command[self._counter] = value

    def _current_command(self) -> bytes:
        return bytes(self._command[: min(max(self._counter, 3), COMMAND_BUFFER_SIZE)])

    def feed(self, data: bytes) -> bytes:
        """Process received bytes and return the text that should be displayed."""
        output = bytearray()
        for value in bytes(data):
            state = self.state
            if state == ParserState.IDLE:
                if value == IAC:
                    self._command[0] = value
                    self.state = ParserState.CMD_INPROGRESS
                    self._counter = 1
                else:
                    output.append(value)
            elif state == ParserState.CMD_INPROGRESS:
                self._store(value)
                if self._counter == 1 and value == IAC:
                    self.state = ParserState.IDLE
                    output.append(0xFF)
                elif self._counter == 1 and NOP <= value <= GA:
                    self.state = ParserState.IDLE
                elif self._counter == 1 and value == SB:
                    self.state = ParserState.SUB_INPROGRESS
                    self._counter += 1
                else:
                    self._counter += 1
                    if self._counter == 3:
                        self.state = ParserState.IDLE
                        self.negotiate(self._current_command())
            elif state == ParserState.SUB_INPROGRESS:
                self._store(value)
                if value == IAC:
                    self.state = ParserState.SUB_WAITEND
                self._counter += 1
            elif state == ParserState.SUB_WAITEND:
                self._store(value)
                if value == SE:
                    self.state = ParserState.IDLE
                    self.negotiate(self._current_command())
                else:
                    self._counter += 1
        return bytes(output)

    def send_cursor_position(self, position: int) -> bytes:
        """Report a cursor position (row in the high byte, column in the low)."""
        column = position & 0xFF
        row = (position >> 8) & 0xFF
        return self._send(cursor_position_response(row, column))