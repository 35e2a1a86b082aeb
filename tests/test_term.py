import io
import itertools

import pytest

from msxserialkit.telnet import CMD_ECHO, CMD_WINDOW_SIZE, DO, IAC, WONT, WINDOW_SIZE_80X25, WINDOW_SIZE_80X24
from msxserialkit.term import Terminal, translate_key
from msxserialkit.term_args import TermOptions, UsageError, parse_arguments
from msxserialkit.transport import ByteLink


class FakeStream:
    def __init__(self, incoming=b"", chunk=None):
        self.incoming = bytearray(incoming)
        self.written = bytearray()
        self.chunk = chunk
        self.closed = False

    @property
    def in_waiting(self):
        size = len(self.incoming)
        return min(size, self.chunk) if self.chunk else size

    def read(self, size=1):
        data = bytes(self.incoming[:size])
        del self.incoming[:size]
        return data

    def write(self, data):
        self.written.extend(data)
        return len(data)

    def close(self):
        self.closed = True


def make_terminal(incoming=b"", options=None, chunk=None):
    stream = FakeStream(incoming, chunk)
    counter = itertools.count(0, 50)
    link = ByteLink(stream, lambda: next(counter))
    console = io.StringIO()
    terminal = Terminal(link, options or TermOptions(), console)
    return terminal, stream, console


@pytest.mark.parametrize(
    "key, crlf, expected",
    [
        (13, False, b"\r"),
        (13, True, b"\r\n"),
        (28, False, b"\x1b[C"),
        (29, False, b"\x1b[D"),
        (30, False, b"\x1b[A"),
        (31, True, b"\x1b[B"),
        (ord("A"), False, b"A"),
    ],
)
def test_translate_key(key, crlf, expected):
    assert translate_key(key, crlf) == expected


def test_translate_key_rejects_non_byte():
    with pytest.raises(ValueError):
        translate_key(300, False)


def test_handle_key_sends_and_marks_enter():
    terminal, stream, _ = make_terminal()
    assert terminal.session.enter_hit is False
    sent = terminal.handle_key(13)
    assert bytes(stream.written) == sent
    assert terminal.session.enter_hit is True


def test_handle_key_uses_crlf_after_toggle():
    terminal, stream, _ = make_terminal()
    assert terminal.toggle_crlf() is True
    terminal.handle_key(13)
    assert bytes(stream.written) == b"\r\n"


def test_handle_key_zero_sends_nothing():
    terminal, stream, _ = make_terminal()
    assert terminal.handle_key(0) == b""
    assert bytes(stream.written) == b""


def test_local_echo_shows_typed_keys():
    terminal, _, console = make_terminal()
    terminal.handle_key(ord("x"))
    assert console.getvalue() == ""
    assert terminal.toggle_echo() is True
    terminal.handle_key(ord("x"))
    assert console.getvalue() == "x"


def test_host_wont_echo_turns_local_echo_on():
    terminal, stream, _ = make_terminal(bytes((IAC, WONT, CMD_ECHO)))
    terminal.poll()
    assert terminal.echo is True
    assert bytes(stream.written)[:3] == bytes((IAC, 0xFE, CMD_ECHO))


def test_poll_displays_text_and_undoubles_iac():
    terminal, _, console = make_terminal(b"hi" + bytes((IAC, IAC)))
    shown = terminal.poll()
    assert shown == b"hi\xff"
    assert console.getvalue() == "hi\xff"


def test_poll_answers_window_size_in_ansi_mode():
    terminal, stream, console = make_terminal(bytes((IAC, DO, CMD_WINDOW_SIZE)))
    assert terminal.poll() == b""
    assert bytes(stream.written) == WINDOW_SIZE_80X25
    assert console.getvalue() == ""


def test_poll_answers_window_size_without_ansi():
    options = TermOptions(ansi=False)
    terminal, stream, _ = make_terminal(bytes((IAC, DO, CMD_WINDOW_SIZE)), options)
    terminal.poll()
    assert bytes(stream.written) == WINDOW_SIZE_80X24


def test_poll_without_data_returns_empty():
    terminal, stream, console = make_terminal()
    assert terminal.poll() == b""
    assert console.getvalue() == ""


def test_options_flow_into_session():
    options = parse_arguments(["/a", "/o"])
    terminal, _, _ = make_terminal(options=options)
    assert terminal.session.auto_download is False
    assert terminal.session.ansi is False


def test_xmodem_download_completes_on_end_of_transmission(tmp_path):
    terminal, stream, console = make_terminal(bytes((0x04, 0x04)), chunk=1)
    terminal.directory = tmp_path
    terminal.read_line = lambda: "file.bin\n"
    completed = terminal.download()
    assert completed == 1
    assert bytes(stream.written) == b"C" + bytes((0x06, 0x06))
    assert (tmp_path / "file.bin").read_bytes() == b""
    assert "File Transfer Completed!" in console.getvalue()


def test_invalid_option_raises_usage_error():
    with pytest.raises(UsageError):
        parse_arguments(["/z"])