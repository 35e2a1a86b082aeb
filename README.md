# msxserialkit

Tools for talking to bulletin-board systems over a serial line: a small
terminal that understands telnet option negotiation and downloads files with
XMODEM, YMODEM and YMODEM-G, plus helpers for command-line options, number
formatting and real-time-clock calibration arithmetic.

## Installation

```
pip install msxserialkit
```

For running the test suite:

```
pip install "msxserialkit[test]"
pytest
```

## The `msx-term` command

```
msx-term [/port=<device>] [options]
```

The serial port is taken from `/port=<device>`, else from the
`MSXSERIAL_PORT` environment variable, else `/dev/ttyUSB0`. Any pyserial
URL works as the device. The line runs at 57600 baud, 8N1.

Options:

- `/a` – turn off automatic download detection.
- `/o` – turn off ANSI mode (the terminal then reports itself as `VT52`
  and its window as 80x24).
- `/r` – use the alternative download method: the sender does not double
  `0xFF` bytes in file data.
- `/i` – show information and key bindings, then stop.
- `/h` or `/help` – show the usage text.

Keys while connected:

- F1 – download a file. At the prompt type `Y` for YMODEM, `G` for
  YMODEM-G, or a file name for XMODEM. Files are written to the current
  directory; Escape aborts the transfer.
- F2 – toggle local echo.
- F3 – toggle sending CR or CR/LF for Enter.
- F5 or Ctrl-C – leave the terminal.

Cursor keys are sent as ANSI cursor sequences. Telnet commands are removed
from the received text, and the host's option requests are answered: window
size (80x25 in ANSI mode, otherwise 80x24), terminal type (`ANSI` or
`VT52`), local echo switched off when the host will echo and on when it
won't. When the host announces binary transmission after Enter has been
pressed, a download starts automatically unless `/a` was given.

## Library use

- `msxserialkit.transport` – `ByteLink` wraps a serial stream with
  non-blocking reads (`read_available`), `write`, `write_byte`,
  `wait_for_byte(period)` and `flush_input(period)`, with periods counted in
  50 Hz ticks. `open_serial(port, baudrate)` builds one over a port.
- `msxserialkit.telnet` – `TelnetSession(link, ansi, width40,
  auto_download, on_binary_transfer)`. `feed(data)` returns the displayable
  bytes, answers negotiations over the link, turns a doubled `0xFF` into one
  byte and keeps its state across buffers. `negotiate(command)` answers one
  command; `send_cursor_position(position)` and
  `cursor_position_response(row, column)` produce an `ESC[row;colR` report.

  ```python
  from msxserialkit.telnet import TelnetSession

  session = TelnetSession(link, ansi=True, width40=False,
                          auto_download=False, on_binary_transfer=None)
  text = session.feed(received_bytes)
  ```

- `msxserialkit.ymodem` – `XYModemReceiver(link, clock, console,
  directory)`; `download(choice, telnet_transfer, key_pressed)` runs an
  XMODEM, YMODEM or YMODEM-G reception and returns how many files
  completed. Packets are not CRC-checked.
- `msxserialkit.term` – `Terminal(link, options, console)` with
  `handle_key`, `poll`, `toggle_echo`, `toggle_crlf` and `download`;
  `translate_key(key, use_crlf)` gives the bytes sent for a key code.
- `msxserialkit.term_args.parse_arguments(argv)` returns `TermOptions`, or
  raises `UsageError` carrying the text to show.
- `msxserialkit.xrecv_args.parse_arguments(argv)` parses
  `<filename> [/b<rate>|/baud=<rate>] [/d<ip:port>|/atd=<ip:port>]` into
  `XrecvOptions`; `rate_to_string(rate)` names a baud-rate code and
  `usage_text()` returns the help text.
- `msxserialkit.numfmt` – `ultostr(value, base)` writes a 32-bit unsigned
  value in bases 2 to 16; `uint32_to_string(value)` in decimal.
- `msxserialkit.rtccalb` – `parse_arguments(argv)` reads `/c<clock>`,
  `/cpu=<clock>` and `/m1` into `CalibrationOptions`;
  `expected_count(clock, m1_state)` gives the loop count a correct clock
  should produce and `drift_message(clock, m1_state, measurement)` says how
  far a measurement is fast or slow.

## What is not included

- There is no standalone XMODEM receive command: `xrecv_args` parses its
  options, but nothing here runs such a transfer outside the terminal.
- There is no CRC-16 or checksum verification of received packets.
- There is no clock-measurement program; `rtccalb` only provides the option
  parsing and arithmetic.
- The terminal does not render ANSI escape sequences itself; received text
  is written to the console as it is, and cursor-position requests are not
  answered automatically.