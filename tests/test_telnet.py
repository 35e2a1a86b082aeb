import pytest

from msxserialkit.telnet import (
    CMD_ECHO,
    CMD_TRANSMIT_BINARY,
    CMD_TTYPE,
    CMD_WINDOW_SIZE,
    DO,
    DONT,
    IAC,
    NOP,
    SB,
    SE,
    SEND,
    WILL,
    WONT,
    ParserState,
    TelnetSession,
    cursor_position_response,
)
from msxserialkit.transport import ByteLink


class FakeStream:
    def __init__(self):
        self.written = bytearray()

    @property
    def in_waiting(self):
        return 0

    def read(self, size=1):
        return b""

    def write(self, data):
        self.written.extend(data)
        return len(data)

    def close(self):
        pass


@pytest.fixture
def stream():
    return FakeStream()


def make_session(stream, **kwargs):
    return TelnetSession(ByteLink(stream, clock=lambda: 0), **kwargs)


def test_plain_text_passes_through(stream):
    session = make_session(stream)
    assert session.feed(b"hello") == b"hello"
    assert bytes(stream.written) == b""


def test_doubled_iac_is_data(stream):
    session = make_session(stream)
    assert session.feed(bytes((0x41, IAC, IAC, 0x42))) == b"A\xffB"
    assert session.state == ParserState.IDLE


def test_two_byte_command_is_dropped(stream):
    session = make_session(stream)
    assert session.feed(b"a" + bytes((IAC, NOP)) + b"b") == b"ab"
    assert bytes(stream.written) == b""


def test_window_size_ansi(stream):
    session = make_session(stream, ansi=True)
    session.feed(bytes((IAC, DO, CMD_WINDOW_SIZE)))
    assert bytes(stream.written) == bytes(
        (IAC, WILL, CMD_WINDOW_SIZE, IAC, SB, CMD_WINDOW_SIZE, 0, 80, 0, 25, IAC, SE)
    )


def test_window_size_forty_columns(stream):
    session = make_session(stream, ansi=False, width40=True)
    session.feed(bytes((IAC, DO, CMD_WINDOW_SIZE)))
    assert bytes(stream.written) == bytes(
        (IAC, WILL, CMD_WINDOW_SIZE, IAC, SB, CMD_WINDOW_SIZE, 0, 40, 0, 24, IAC, SE)
    )


def test_do_ttype_answers_will(stream):
    session = make_session(stream)
    session.feed(bytes((IAC, DO, CMD_TTYPE)))
    assert bytes(stream.written) == bytes((IAC, WILL, CMD_TTYPE))


def test_unknown_do_answers_wont(stream):
    session = make_session(stream)
    session.feed(bytes((IAC, DO, 99)))
    assert bytes(stream.written) == bytes((IAC, WONT, 99))


def test_dont_answers_wont(stream):
    session = make_session(stream)
    session.feed(bytes((IAC, DONT, 5)))
    assert bytes(stream.written) == bytes((IAC, WONT, 5))


def test_will_echo_turns_local_echo_off(stream):
    session = make_session(stream)
    session.echo = True
    session.feed(bytes((IAC, WILL, CMD_ECHO)))
    assert session.echo is False
    assert bytes(stream.written) == bytes((IAC, DO, CMD_ECHO))


def test_wont_echo_turns_local_echo_on(stream):
    session = make_session(stream)
    session.feed(bytes((IAC, WONT, CMD_ECHO)))
    assert session.echo is True
    assert bytes(stream.written) == bytes((IAC, DONT, CMD_ECHO))


@pytest.mark.parametrize("ansi, name", [(True, b"ANSI"), (False, b"VT52")])
def test_terminal_type_subnegotiation(stream, ansi, name):
    session = make_session(stream, ansi=ansi)
    out = session.feed(bytes((IAC, SB, CMD_TTYPE, SEND, IAC, SE)) + b"x")
    assert out == b"x"
    assert bytes(stream.written) == bytes((IAC, SB, CMD_TTYPE, 0)) + name + bytes((IAC, SE))


def test_command_split_across_feeds(stream):
    session = make_session(stream)
    assert session.feed(b"ab" + bytes((IAC,))) == b"ab"
    assert session.state == ParserState.CMD_INPROGRESS
    assert session.feed(bytes((DO, CMD_TTYPE)) + b"c") == b"c"
    assert bytes(stream.written) == bytes((IAC, WILL, CMD_TTYPE))


def test_binary_before_enter_disables_auto_download(stream):
    calls = []
    session = make_session(stream, on_binary_transfer=lambda: calls.append(1))
    session.feed(bytes((IAC, WILL, CMD_TRANSMIT_BINARY)))
    assert session.auto_download is False
    assert calls == []
    assert bytes(stream.written) == bytes((IAC, DO, CMD_TRANSMIT_BINARY))


def test_binary_after_enter_starts_download(stream):
    calls = []
    session = make_session(stream, on_binary_transfer=lambda: calls.append(1))
    session.enter_hit = True
    session.feed(bytes((IAC, WILL, CMD_TRANSMIT_BINARY)))
    assert calls == [1]
    assert session.auto_download is True


def test_negotiate_returns_what_was_sent(stream):
    session = make_session(stream)
    sent = session.negotiate(bytes((IAC, WILL, 3)))
    assert sent == bytes(stream.written)
    assert sent == bytes((IAC, DO, 3))


def test_cursor_position_response_format():
    assert cursor_position_response(3, 7) == b"\x1b[3;7R"


def test_send_cursor_position(stream):
    session = make_session(stream)
    session.send_cursor_position((3 << 8) | 7)
    assert bytes(stream.written) == cursor_position_response(3, 7)