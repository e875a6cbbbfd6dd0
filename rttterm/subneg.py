"""Parsers for the subnegotiation payloads the engine understands."""

from __future__ import annotations

from typing import FrozenSet, List, Optional, Tuple

from .protocol import (
    EnvironCode,
    EnvironCommand,
    EnvironEvent,
    EnvironValue,
    MsspCode,
    MsspEvent,
    ProtocolError,
    TTypeCode,
    TTypeEvent,
    ZmpEvent,
)

_ENVIRON_COMMANDS = frozenset(int(cmd) for cmd in EnvironCommand)
_ENVIRON_VAR_TYPES = frozenset({EnvironCode.VAR, EnvironCode.USERVAR})
_ENVIRON_NAME_STOPS = frozenset(
    {EnvironCode.VAR, EnvironCode.VALUE, EnvironCode.USERVAR}
)
_MSSP_MARKERS = frozenset({MsspCode.VAR, MsspCode.VAL})


def _scan_escaped(data: bytes, pos: int, stops: FrozenSet[int]) -> Tuple[bytes, int]:
    """Collect bytes from ``pos`` up to a stop marker, honouring ENVIRON ESC."""
    out = bytearray()
    end = len(data)
    while pos < end and data[pos] not in stops:
        if data[pos] == EnvironCode.ESC:
            pos += 1
        out.append(data[pos])
        pos += 1
    return bytes(out), pos


def parse_environ(telopt: int, data: bytes) -> Optional[EnvironEvent]:
    """Parse an ENVIRON / NEW-ENVIRON payload.

    Returns None for an empty payload and raises ProtocolError for a
    malformed one.
    """
    data = bytes(data)
    if not data:
        return None

    if data[0] not in _ENVIRON_COMMANDS:
        raise ProtocolError(f"telopt {telopt} subneg has invalid command")
    cmd = EnvironCommand(data[0])

    if len(data) == 1:
        return EnvironEvent(cmd, ())

    if data[1] not in _ENVIRON_VAR_TYPES:
        raise ProtocolError(f"telopt {telopt} subneg missing variable type")

    # A trailing ESC would escape past the end of the payload.
    if data[-1] == EnvironCode.ESC:
        raise ProtocolError(f"telopt {telopt} subneg ends with ESC")

    values: List[EnvironValue] = []
    pos = 1
    end = len(data)
    while pos < end:
        var_type = data[pos]
        name, pos = _scan_escaped(data, pos + 1, _ENVIRON_NAME_STOPS)
        value = b""
        if pos < end and data[pos] == EnvironCode.VALUE:
            value, pos = _scan_escaped(data, pos + 1, _ENVIRON_VAR_TYPES)
        values.append(EnvironValue(name, value, var_type))

    return EnvironEvent(cmd, tuple(values))


def parse_mssp(data: bytes) -> Optional[MsspEvent]:
    """Parse an MSSP payload into variable/value pairs.

    A variable followed by several values yields one pair per value.
    Returns None for an empty payload and raises ProtocolError for a
    malformed one.
    """
    data = bytes(data)
    if not data:
        return None

    if data[0] != MsspCode.VAR:
        raise ProtocolError("MSSP subnegotiation has invalid data")

    values: List[EnvironValue] = []
    var: Optional[bytes] = None
    next_type: int = data[0]
    pos = 1
    end = len(data)
    while pos < end:
        start = pos
        while pos < end and data[pos] not in _MSSP_MARKERS:
            pos += 1
        segment = data[start:pos]

        if next_type == MsspCode.VAR:
            var = segment
        elif next_type == MsspCode.VAL and var is not None:
            values.append(EnvironValue(var, segment))
        else:
            raise ProtocolError("invalid MSSP subnegotiation data")

        if pos < end:
            next_type = data[pos]
        pos += 1

    return MsspEvent(tuple(values))


def parse_zmp(data: bytes) -> ZmpEvent:
    """Split a ZMP payload into its NUL-terminated arguments."""
    data = bytes(data)
    if not data or data[-1] != 0:
        raise ProtocolError("incomplete ZMP frame")
    return ZmpEvent(tuple(data[:-1].split(b"\0")))


def parse_ttype(data: bytes) -> TTypeEvent:
    """Parse a TERMINAL-TYPE IS or SEND payload."""
    data = bytes(data)
    if not data:
        raise ProtocolError("incomplete TERMINAL-TYPE request")
    if data[0] == TTypeCode.IS:
        return TTypeEvent(TTypeCode.IS, data[1:])
    if data[0] == TTypeCode.SEND:
        return TTypeEvent(TTypeCode.SEND, None)
    raise ProtocolError("TERMINAL-TYPE request has invalid type")