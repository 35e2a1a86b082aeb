import pytest

from msxserialkit.xrecv_args import (
    BAUD_RATES,
    DEFAULT_BAUD_RATE,
    UsageError,
    XrecvOptions,
    parse_arguments,
    rate_to_string,
    usage_text,
)


def test_filename_only_uses_defaults():
    options = parse_arguments(["data.bin"])
    assert options == XrecvOptions(filename="data.bin", baud_rate=7 * 256 + 7, dial_address=None)
    assert rate_to_string(options.baud_rate) == "19200"


def test_short_baud_switch():
    options = parse_arguments(["file.txt", "/b9600"])
    assert options.baud_rate == 6 * 256 + 6


def test_long_baud_switch_is_case_insensitive():
    options = parse_arguments(["/BAUD=115200", "file.txt"])
    assert options.baud_rate == 11 * 256 + 11
    assert options.filename == "file.txt"


@pytest.mark.parametrize("name", sorted(BAUD_RATES))
def test_every_rate_round_trips(name):
    options = parse_arguments(["f", "/b" + name])
    assert rate_to_string(options.baud_rate) == name


def test_rate_75_code_is_zero():
    assert parse_arguments(["f", "/baud=75"]).baud_rate == 0


def test_rate_to_string_unknown_slot():
    assert rate_to_string(10) == "unknown"


def test_rate_to_string_out_of_table():
    with pytest.raises(ValueError):
        rate_to_string(0x0C)


def test_invalid_baud_rate():
    with pytest.raises(UsageError, match="Invalid baud rate setting '1234'"):
        parse_arguments(["f", "/b1234"])


def test_baud_switch_without_equals():
    with pytest.raises(UsageError, match="Invalid baud switch"):
        parse_arguments(["f", "/baud9600"])


def test_dial_short_and_long():
    assert parse_arguments(["f", "/d192.168.1.2:3000"]).dial_address == "192.168.1.2:3000"
    assert parse_arguments(["f", "/ATD=192.168.1.2:3000"]).dial_address == "192.168.1.2:3000"


def test_atd_without_equals():
    with pytest.raises(UsageError, match="Invalid atd switch"):
        parse_arguments(["f", "/atd192.168.1.2:3000"])


def test_two_filenames_rejected():
    with pytest.raises(UsageError, match="Invalid usage"):
        parse_arguments(["one", "two"])


def test_missing_filename():
    with pytest.raises(UsageError, match="Missing filename"):
        parse_arguments(["/b9600"])


def test_unknown_option():
    with pytest.raises(UsageError, match="Invalid command line option '/x'"):
        parse_arguments(["f", "/x"])


@pytest.mark.parametrize("switch", ["/h", "/help", "/HELP"])
def test_help_shows_usage(switch):
    with pytest.raises(UsageError) as info:
        parse_arguments([switch])
    assert str(info.value) == usage_text()
    assert info.value.exit_code == 1


def test_default_constant_matches_parse():
    assert parse_arguments(["f", "/b19200"]).baud_rate == DEFAULT_BAUD_RATE