"""X/YMODEM and YMODEM-G file reception for a terminal session.

Packets are not CRC-checked: the transfer is meant to run over a reliable
connection, and several servers send malformed CRCs.
"""

from __future__ import annotations

import enum
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Callable, Optional, TextIO, Union

from .transport import ByteLink

SOH = 0x01
STX = 0x02
EOT = 0x04
ACK = 0x06
NAK = 0x15
ETB = 0x17
CAN = 0x18
ESC = 0x1B

START_CRC = ord("C")
START_G = ord("G")

PACKET_TIMEOUT = 360
START_PACKET_RETRIES = 3
PACKET_RETRIES = 10
CANCEL_COUNT = 5
SPINNER = "-\\|/"

_SHORT_PACKET = 133
_LONG_PACKET = 1029
_HEADER_SCAN_LIMIT = 140


class Outcome(enum.IntEnum):
    """Result of one packet exchange."""

    FAILED = 0
    RECEIVED = 1
    END_OF_TRANSMISSION = EOT
    END_OF_BLOCK = ETB
    CANCELLED = CAN
    NO_MORE_FILES = 254
    NEW_FILE = 255


class ControlReceived(Exception):
    """The sender ended the packet stream with a control byte."""

    def __init__(self, code: int):
        super().__init__(f"control byte {code:#04x} received")
        self.code = code


@dataclass(frozen=True)
class Packet:
    """A whole packet as received: start byte, number, complement, data, trailer."""

    data: bytes
    is_1k: bool

    @property
    def size(self) -> int:
        return 1024 if self.is_1k else 128

    @property
    def number(self) -> int:
        return self.data[1]

    @property
    def complement(self) -> int:
        return self.data[2]

    @property
    def payload(self) -> bytes:
        return self.data[3 : 3 + self.size]


def _packet_length(is_1k: bool) -> int:
    return _LONG_PACKET if is_1k else _SHORT_PACKET


class XYModemReceiver:
    """Receive files with XMODEM, YMODEM or YMODEM-G over a byte link."""

    def __init__(
        self,
        link: ByteLink,
        clock: Optional[Callable[[], int]] = None,
        console: Optional[TextIO] = None,
        directory: Union[str, Path] = ".",
    ):
        self.link = link
        self.clock = clock if clock is not None else link.clock
        self.console = console if console is not None else sys.stdout
        self.directory = Path(directory)
        self.g_mode = False
        self.test_transfer = False
        self.double_ff = True
        self.file: Optional[BinaryIO] = None
        self.filename = ""
        self.poll_interval = ByteLink.POLL_INTERVAL
        self._file_size = 0
        self._received_size = 0

    def _show(self, text: str) -> None:
        self.console.write(text)

    def get_packet(self, is_1k: bool = False) -> Optional[Packet]:
        """Read one packet, or return None after PACKET_TIMEOUT ticks.

        Raises ControlReceived when EOT, ETB or CAN arrives before a packet
        starts. With ``double_ff`` set, every byte following a 0xFF is dropped.
        """
        buffer = bytearray()
        found = False
        skip_ff = False
        deadline = self.clock() + PACKET_TIMEOUT

        while True:
            chunk = self.link.read_available(_packet_length(is_1k) - len(buffer))
            if chunk:
                if not found:
                    for index, value in enumerate(chunk):
                        if value in (STX, SOH):
                            is_1k = value == STX
                            chunk = chunk[index:]
                            found = True
                            break
                        if value in (EOT, ETB, CAN):
                            raise ControlReceived(value)
                if found:
                    if self.test_transfer:
                        self.test_transfer = False
                        if (
                            len(chunk) > 3
                            and chunk[1] == 0x00
                            and chunk[2] == 0xFF
                            and chunk[3] != 0xFF
                        ):
                            self.double_ff = False
                    if self.double_ff:
                        for value in chunk:
                            if skip_ff:
                                skip_ff = False
                                continue
                            if value == 0xFF:
                                skip_ff = True
                            buffer.append(value)
                    else:
                        buffer.extend(chunk)
                    if len(buffer) >= _packet_length(is_1k):
                        return Packet(bytes(buffer), is_1k)
            elif self.poll_interval:
                time.sleep(self.poll_interval)

            if self.clock() > deadline:
                return None

    def packet_receive(
        self,
        file: Optional[BinaryIO],
        action: int,
        packet_number: int,
        is_ymodem: bool,
    ) -> Outcome:
        """Send ``action`` and receive the next packet, retrying as needed.

        Without a file and with an action other than a start request, only the
        action byte is sent. A YMODEM header packet opens a new output file,
        kept in :attr:`file`.
        """
        starting = action in (START_CRC, START_G)
        if file is None and not starting:
            self.link.write_byte(action)
            return Outcome.RECEIVED

        if starting:
            retries = START_PACKET_RETRIES
        elif not self.g_mode:
            retries = PACKET_RETRIES
        else:
            retries = 1

        is_1k = False
        for _ in range(retries):
            deadline = self.clock() + PACKET_TIMEOUT
            if action:
                self.link.write_byte(action)
            while True:
                try:
                    packet = self.get_packet(is_1k)
                except ControlReceived as control:
                    return Outcome(control.code)
                if packet is not None:
                    is_1k = packet.is_1k
                    outcome = self._handle_packet(
                        packet, file, action, packet_number, is_ymodem
                    )
                    if outcome is not None:
                        return outcome
                    break
                is_1k = False
                if self.clock() > deadline:
                    break
        return Outcome.FAILED

    def _handle_packet(
        self,
        packet: Packet,
        file: Optional[BinaryIO],
        action: int,
        packet_number: int,
        is_ymodem: bool,
    ) -> Optional[Outcome]:
        starting = action in (START_CRC, START_G)
        if is_ymodem and starting and packet.number == 0:
            return self._open_from_header(packet, action)
        if packet.number == packet_number and packet.complement == 0xFF - packet_number:
            if file is None:
                self.link.write_byte(NAK)
                return None
            self._write_block(file, packet, is_ymodem)
            return Outcome.RECEIVED
        if packet.number == packet_number - 1:
            # The sender repeated the previous packet before our reply arrived.
            return None
        self.link.write_byte(NAK)
        return None

    def _write_block(self, file: BinaryIO, packet: Packet, is_ymodem: bool) -> None:
        size = packet.size
        if is_ymodem:
            self._received_size += size
        count = size
        if self._file_size > 0 and self._received_size > self._file_size:
            count = max(0, size - (self._received_size - self._file_size))
        file.write(packet.payload[:count])

    def _open_from_header(self, packet: Packet, action: int) -> Optional[Outcome]:
        data = packet.data

        def at(index: int) -> int:
            return data[index] if index < len(data) else 0

        if at(3) == 0:
            return Outcome.NO_MORE_FILES

        self._received_size = 0
        end = 3
        while end < _HEADER_SCAN_LIMIT and at(end) != 0:
            end += 1
        end += 1

        name_end = data.find(0, 3)
        name = data[3 : name_end if name_end >= 0 else len(data)].decode("latin-1")

        digits = ""
        position = end
        while chr(at(position)).isdigit() and at(position) < 0x80:
            digits += chr(at(position))
            position += 1
        if digits:
            self._file_size = int(digits)

        if self._file_size == 0:
            self._show(f"Receiving file: {name} Unknown size.\n")
            self._file_size = -1
        else:
            self._show(f"Receiving file: {name} Size: {digits}\n")

        self.filename = name
        try:
            handle = open(self.directory / Path(name).name, "wb")
        except OSError:
            self.link.write_byte(NAK)
            return None

        self.file = handle
        if action != START_G:
            self.link.write_byte(ACK)
        return Outcome.NEW_FILE

    def cancel_transfer(self) -> None:
        """Tell the sender to abandon the transfer."""
        for _ in range(CANCEL_COUNT):
            self.link.write_byte(CAN)

    def download(
        self,
        choice: str,
        telnet_transfer: bool = True,
        key_pressed: Optional[Callable[[], bool]] = None,
    ) -> int:
        """Download files and return how many completed.

        ``choice`` is "Y" for YMODEM, "G" for YMODEM-G, or else the name of the
        file to receive with XMODEM. ``telnet_transfer`` says whether the
        server doubles 0xFF bytes. ``key_pressed`` returns True when the user
        asks to abort.
        """
        escape = key_pressed if key_pressed is not None else (lambda: False)
        self.double_ff = bool(telnet_transfer)
        self.g_mode = choice in ("g", "G")

        if self.g_mode or choice in ("y", "Y"):
            cancelled, completed = self._download_ymodem(escape)
        else:
            self.g_mode = False
            cancelled, completed = self._download_xmodem(choice, escape)

        if cancelled:
            self.cancel_transfer()
        return completed

    def _finish(self, outcome: Outcome) -> tuple[bool, int]:
        """Report how a file's packet stream ended: (cancel needed, completed)."""
        if outcome == Outcome.FAILED:
            self._show("Error receiving file\n")
            return True, 0
        if outcome == Outcome.CANCELLED:
            self.link.write_byte(ACK)
            self._show("Server canceled transfer\n")
            return False, 0
        if outcome in (Outcome.END_OF_TRANSMISSION, Outcome.END_OF_BLOCK):
            self.link.write_byte(ACK)
            self._show("File Transfer Completed!\n")
            return False, 1
        return False, 0

    def _receive_stream(
        self, file: BinaryIO, number: int, action: int, is_ymodem: bool,
        escape: Callable[[], bool],
    ) -> tuple[Outcome, bool]:
        outcome = Outcome.RECEIVED
        while True:
            if escape():
                return outcome, True
            self._show("\b" + SPINNER[number % 4])
            number = (number + 1) & 0xFF
            outcome = self.packet_receive(file, action, number, is_ymodem)
            if outcome != Outcome.RECEIVED:
                return outcome, False

    def _download_ymodem(self, escape: Callable[[], bool]) -> tuple[bool, int]:
        self.test_transfer = True
        start = START_G if self.g_mode else START_CRC
        next_action = 0 if self.g_mode else ACK
        files = 0
        completed = 0

        while True:
            if escape():
                return True, completed
            outcome = self.packet_receive(None, start, 1, True)
            self._show("S")

            if outcome == Outcome.NEW_FILE:
                file = self.file
                assert file is not None
                try:
                    if escape():
                        return True, completed
                    files += 1
                    outcome = self.packet_receive(file, start, 1, True)
                    if not outcome:
                        self._show("Timeout waiting for file...\n")
                        return True, completed
                    outcome, aborted = self._receive_stream(
                        file, 1, next_action, True, escape
                    )
                    if aborted:
                        return True, completed
                    cancel, done = self._finish(outcome)
                    completed += done
                    if cancel:
                        return True, completed
                finally:
                    file.close()
                    self.file = None
            elif outcome == Outcome.NO_MORE_FILES:
                self.link.write_byte(ACK)
                self._show(f"DONE! Transferred {files} files...\n")
                return False, completed
            else:
                self._show("Unknown error waiting for file...\n")
                return True, completed

    def _download_xmodem(
        self, filename: str, escape: Callable[[], bool]
    ) -> tuple[bool, int]:
        self.test_transfer = False
        try:
            handle = open(self.directory / filename, "wb")
        except OSError:
            self._show(f"Error creating file {filename} ...\n")
            return True, 0

        with handle:
            self._show("S")
            outcome = self.packet_receive(handle, START_CRC, 1, False)
            if not outcome:
                self._show("Timeout waiting for file...\n")
                return True, 0
            outcome, aborted = self._receive_stream(handle, 1, ACK, False, escape)
            if aborted:
                return True, 0
            return self._finish(outcome)