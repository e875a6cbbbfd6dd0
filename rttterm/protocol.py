"""TELNET protocol constants, error types and event records."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum, IntFlag
from typing import ClassVar, Optional, Tuple


class Command(IntEnum):
    """TELNET commands and special byte values."""

    IAC = 255
    DONT = 254
    DO = 253
    WONT = 252
    WILL = 251
    SB = 250
    GA = 249
    EL = 248
    EC = 247
    AYT = 246
    AO = 245
    IP = 244
    BREAK = 243
    DM = 242
    NOP = 241
    SE = 240
    EOR = 239
    ABORT = 238
    SUSP = 237
    EOF = 236


class Telopt(IntEnum):
    """TELNET option codes."""

    BINARY = 0
    ECHO = 1
    RCP = 2
    SGA = 3
    NAMS = 4
    STATUS = 5
    TM = 6
    RCTE = 7
    NAOL = 8
    NAOP = 9
    NAOCRD = 10
    NAOHTS = 11
    NAOHTD = 12
    NAOFFD = 13
    NAOVTS = 14
    NAOVTD = 15
    NAOLFD = 16
    XASCII = 17
    LOGOUT = 18
    BM = 19
    DET = 20
    SUPDUP = 21
    SUPDUPOUTPUT = 22
    SNDLOC = 23
    TTYPE = 24
    EOR = 25
    TUID = 26
    OUTMRK = 27
    TTYLOC = 28
    REGIME_3270 = 29
    X3PAD = 30
    NAWS = 31
    TSPEED = 32
    LFLOW = 33
    LINEMODE = 34
    XDISPLOC = 35
    ENVIRON = 36
    AUTHENTICATION = 37
    ENCRYPT = 38
    NEW_ENVIRON = 39
    MSSP = 70
    COMPRESS = 85
    COMPRESS2 = 86
    ZMP = 93
    EXOPL = 255
    MCCP2 = 86


class TTypeCode(IntEnum):
    """TERMINAL-TYPE subnegotiation commands."""

    IS = 0
    SEND = 1


class EnvironCommand(IntEnum):
    """ENVIRON / NEW-ENVIRON subnegotiation commands."""

    IS = 0
    SEND = 1
    INFO = 2


class EnvironCode(IntEnum):
    """ENVIRON / NEW-ENVIRON field markers."""

    VAR = 0
    VALUE = 1
    ESC = 2
    USERVAR = 3


class MsspCode(IntEnum):
    """MSSP field markers."""

    VAR = 1
    VAL = 2


class Flag(IntFlag):
    """Behaviour flags of a state tracker; the upper bits are internal."""

    NONE = 0
    PROXY = 1 << 0
    NVT_EOL = 1 << 1
    TRANSMIT_BINARY = 1 << 5
    RECEIVE_BINARY = 1 << 6
    DEFLATE = 1 << 7


class ErrorCode(IntEnum):
    """Error categories reported by the protocol engine."""

    OK = 0
    BADVAL = 1
    NOMEM = 2
    OVERFLOW = 3
    PROTOCOL = 4
    COMPRESS = 5


class EventType(IntEnum):
    """Kinds of event delivered to the event handler."""

    DATA = 0
    SEND = 1
    IAC = 2
    WILL = 3
    WONT = 4
    DO = 5
    DONT = 6
    SUBNEGOTIATION = 7
    COMPRESS = 8
    ZMP = 9
    TTYPE = 10
    ENVIRON = 11
    MSSP = 12
    WARNING = 13
    ERROR = 14


_NEGOTIATION_TYPES = frozenset(
    {EventType.WILL, EventType.WONT, EventType.DO, EventType.DONT}
)


class TelnetError(Exception):
    """Base error raised by the telnet engine."""

    code: ErrorCode = ErrorCode.BADVAL

    def __init__(self, message: str, code: Optional[int] = None) -> None:
        super().__init__(message)
        if code is not None:
            self.code = ErrorCode(code)


class ProtocolError(TelnetError):
    """An invalid sequence of protocol bytes was seen."""

    code = ErrorCode.PROTOCOL


@dataclass(frozen=True)
class TeloptSupport:
    """One entry of the table of options an application supports."""

    telopt: int
    us: Command = Command.WONT
    him: Command = Command.DONT

    def __post_init__(self) -> None:
        if not 0 <= self.telopt <= 255:
            raise ValueError(f"telopt out of range: {self.telopt}")
        us = Command(self.us)
        him = Command(self.him)
        if us not in (Command.WILL, Command.WONT):
            raise ValueError(f"local support must be WILL or WONT, got {us.name}")
        if him not in (Command.DO, Command.DONT):
            raise ValueError(f"remote support must be DO or DONT, got {him.name}")
        object.__setattr__(self, "us", us)
        object.__setattr__(self, "him", him)


@dataclass(frozen=True)
class EnvironValue:
    """A variable carried by an ENVIRON or MSSP subnegotiation."""

    var: bytes
    value: bytes = b""
    type: int = EnvironCode.VAR


@dataclass(frozen=True)
class DataEvent:
    """Application data received from the peer."""

    type: ClassVar[EventType] = EventType.DATA
    data: bytes


@dataclass(frozen=True)
class SendEvent:
    """Bytes that must be written to the peer."""

    type: ClassVar[EventType] = EventType.SEND
    data: bytes


@dataclass(frozen=True)
class IacEvent:
    """A generic IAC command received."""

    type: ClassVar[EventType] = EventType.IAC
    cmd: int


@dataclass(frozen=True)
class NegotiationEvent:
    """A WILL, WONT, DO or DONT negotiation result."""

    type: EventType
    telopt: int

    def __post_init__(self) -> None:
        kind = EventType(self.type)
        if kind not in _NEGOTIATION_TYPES:
            raise ValueError(f"not a negotiation event type: {kind.name}")
        object.__setattr__(self, "type", kind)


@dataclass(frozen=True)
class SubnegotiationEvent:
    """Raw subnegotiation payload received."""

    type: ClassVar[EventType] = EventType.SUBNEGOTIATION
    telopt: int
    data: bytes


@dataclass(frozen=True)
class ZmpEvent:
    """A parsed ZMP command."""

    type: ClassVar[EventType] = EventType.ZMP
    args: Tuple[bytes, ...]


@dataclass(frozen=True)
class TTypeEvent:
    """A TERMINAL-TYPE IS or SEND command."""

    type: ClassVar[EventType] = EventType.TTYPE
    cmd: TTypeCode
    name: Optional[bytes] = None


@dataclass(frozen=True)
class CompressEvent:
    """Compression was switched on or off."""

    type: ClassVar[EventType] = EventType.COMPRESS
    enabled: bool


@dataclass(frozen=True)
class EnvironEvent:
    """A parsed ENVIRON or NEW-ENVIRON command."""

    type: ClassVar[EventType] = EventType.ENVIRON
    cmd: EnvironCommand
    values: Tuple[EnvironValue, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class MsspEvent:
    """A parsed MSSP variable list."""

    type: ClassVar[EventType] = EventType.MSSP
    values: Tuple[EnvironValue, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ErrorEvent:
    """A recoverable (warning) or fatal error reported by the engine."""

    code: ErrorCode
    message: str
    fatal: bool = False
    func: str = ""

    @property
    def type(self) -> EventType:
        return EventType.ERROR if self.fatal else EventType.WARNING