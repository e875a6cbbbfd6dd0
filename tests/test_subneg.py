import pytest

from rttterm.protocol import (
    EnvironCode,
    EnvironCommand,
    EnvironValue,
    ErrorCode,
    EventType,
    MsspCode,
    ProtocolError,
    Telopt,
    TTypeCode,
)
from rttterm.subneg import parse_environ, parse_mssp, parse_ttype, parse_zmp

VAR = bytes([EnvironCode.VAR])
VALUE = bytes([EnvironCode.VALUE])
ESC = bytes([EnvironCode.ESC])
USERVAR = bytes([EnvironCode.USERVAR])
MVAR = bytes([MsspCode.VAR])
MVAL = bytes([MsspCode.VAL])


# --- ENVIRON ---------------------------------------------------------------


def test_environ_empty_passes_through():
    assert parse_environ(Telopt.NEW_ENVIRON, b"") is None


def test_environ_invalid_command():
    with pytest.raises(ProtocolError) as info:
        parse_environ(Telopt.NEW_ENVIRON, bytes([7]))
    assert "39" in str(info.value)
    assert info.value.code == ErrorCode.PROTOCOL


@pytest.mark.parametrize("cmd", list(EnvironCommand))
def test_environ_command_only(cmd):
    event = parse_environ(Telopt.NEW_ENVIRON, bytes([cmd]))
    assert event.cmd == cmd
    assert event.values == ()
    assert event.type == EventType.ENVIRON


def test_environ_missing_variable_type():
    with pytest.raises(ProtocolError):
        parse_environ(Telopt.ENVIRON, bytes([EnvironCommand.IS]) + b"USER")


def test_environ_ends_with_esc():
    data = bytes([EnvironCommand.IS]) + VAR + b"USER" + ESC
    with pytest.raises(ProtocolError):
        parse_environ(Telopt.NEW_ENVIRON, data)


def test_environ_var_and_value():
    data = bytes([EnvironCommand.IS]) + VAR + b"USER" + VALUE + b"alice"
    event = parse_environ(Telopt.NEW_ENVIRON, data)
    assert event.cmd == EnvironCommand.IS
    assert event.values == (EnvironValue(b"USER", b"alice", EnvironCode.VAR),)


def test_environ_several_variables_keep_order_and_type():
    data = (
        bytes([EnvironCommand.INFO])
        + VAR + b"USER" + VALUE + b"alice"
        + USERVAR + b"SHELL" + VALUE + b"sh"
        + VAR + b"LANG"
    )
    event = parse_environ(Telopt.NEW_ENVIRON, data)
    assert [v.var for v in event.values] == [b"USER", b"SHELL", b"LANG"]
    assert [v.value for v in event.values] == [b"alice", b"sh", b""]
    assert [v.type for v in event.values] == [
        EnvironCode.VAR,
        EnvironCode.USERVAR,
        EnvironCode.VAR,
    ]


def test_environ_send_request_names_only():
    data = bytes([EnvironCommand.SEND]) + VAR + b"USER" + USERVAR + b"TERM"
    event = parse_environ(Telopt.NEW_ENVIRON, data)
    assert event.cmd == EnvironCommand.SEND
    assert all(v.value == b"" for v in event.values)
    assert [v.var for v in event.values] == [b"USER", b"TERM"]


def test_environ_escaped_markers_are_literal():
    data = bytes([EnvironCommand.IS]) + VAR + b"A" + ESC + VAR + b"B" + VALUE + b"x" + ESC + USERVAR
    event = parse_environ(Telopt.NEW_ENVIRON, data)
    assert len(event.values) == 1
    assert event.values[0].var == b"A" + VAR + b"B"
    assert event.values[0].value == b"x" + USERVAR


def test_environ_value_keeps_raw_value_marker():
    data = bytes([EnvironCommand.IS]) + VAR + b"K" + VALUE + b"a" + VALUE + b"b"
    event = parse_environ(Telopt.NEW_ENVIRON, data)
    assert event.values[0].value == b"a" + VALUE + b"b"


def test_environ_empty_name():
    data = bytes([EnvironCommand.IS]) + VAR + VALUE + b"v"
    event = parse_environ(Telopt.ENVIRON, data)
    assert event.values == (EnvironValue(b"", b"v", EnvironCode.VAR),)


# --- MSSP ------------------------------------------------------------------


def test_mssp_empty_passes_through():
    assert parse_mssp(b"") is None


def test_mssp_must_start_with_var():
    with pytest.raises(ProtocolError):
        parse_mssp(MVAL + b"x")


def test_mssp_pairs():
    data = MVAR + b"NAME" + MVAL + b"Realm" + MVAR + b"PLAYERS" + MVAL + b"12"
    event = parse_mssp(data)
    assert event.type == EventType.MSSP
    assert [(v.var, v.value) for v in event.values] == [
        (b"NAME", b"Realm"),
        (b"PLAYERS", b"12"),
    ]


def test_mssp_multiple_values_for_one_variable():
    data = MVAR + b"PORT" + MVAL + b"23" + MVAL + b"4000"
    event = parse_mssp(data)
    assert [v.var for v in event.values] == [b"PORT", b"PORT"]
    assert [v.value for v in event.values] == [b"23", b"4000"]


def test_mssp_variable_without_value_yields_nothing():
    event = parse_mssp(MVAR + b"NAME")
    assert event.values == ()


def test_mssp_empty_value_in_middle():
    data = MVAR + b"A" + MVAL + MVAL + b"z"
    event = parse_mssp(data)
    assert [v.value for v in event.values] == [b"", b"z"]


# --- ZMP -------------------------------------------------------------------


def test_zmp_arguments():
    event = parse_zmp(b"zmp.ident\0client\0version\0")
    assert event.args == (b"zmp.ident", b"client", b"version")
    assert event.type == EventType.ZMP


def test_zmp_single_empty_argument():
    assert parse_zmp(b"\0").args == (b"",)


def test_zmp_consecutive_nuls_are_empty_arguments():
    assert parse_zmp(b"cmd\0\0").args == (b"cmd", b"")


@pytest.mark.parametrize("data", [b"", b"zmp.ping", b"a\0b"])
def test_zmp_incomplete_frame(data):
    with pytest.raises(ProtocolError) as info:
        parse_zmp(data)
    assert "incomplete ZMP frame" in str(info.value)


# --- TERMINAL-TYPE ---------------------------------------------------------


def test_ttype_is():
    event = parse_ttype(bytes([TTypeCode.IS]) + b"xterm-256color")
    assert event.cmd == TTypeCode.IS
    assert event.name == b"xterm-256color"
    assert event.type == EventType.TTYPE


def test_ttype_is_empty_name():
    event = parse_ttype(bytes([TTypeCode.IS]))
    assert event.name == b""


def test_ttype_send():
    event = parse_ttype(bytes([TTypeCode.SEND]))
    assert event.cmd == TTypeCode.SEND
    assert event.name is None


def test_ttype_empty():
    with pytest.raises(ProtocolError) as info:
        parse_ttype(b"")
    assert "incomplete TERMINAL-TYPE request" in str(info.value)


def test_ttype_invalid_type():
    with pytest.raises(ProtocolError) as info:
        parse_ttype(bytes([5]) + b"vt100")
    assert "invalid type" in str(info.value)