"""TELNET protocol state tracker driven by an event handler."""

from __future__ import annotations

import zlib
from enum import Enum, auto
from typing import Any, Callable, Iterable, Optional, Sequence, Union

from .negotiation import OptionTable, QState, supports
from .protocol import (
    Command,
    CompressEvent,
    DataEvent,
    ErrorCode,
    ErrorEvent,
    EventType,
    Flag,
    IacEvent,
    NegotiationEvent,
    ProtocolError,
    SendEvent,
    SubnegotiationEvent,
    Telopt,
    TeloptSupport,
    TTypeCode,
)
from .subneg import parse_environ, parse_mssp, parse_ttype, parse_zmp

Handler = Callable[[Any], None]
BytesLike = Union[bytes, bytearray, memoryview, str]

_CR = 0x0D
_LF = 0x0A
_NUL = 0x00
_CRLF = b"\r\n"
_CRNUL = b"\r\0"
_SB_BUFFER_LIMIT = 16384

_NEGOTIATION_COMMANDS = frozenset(
    {Command.WILL, Command.WONT, Command.DO, Command.DONT}
)
_NEGOTIATION_EVENTS = {
    Command.WILL: EventType.WILL,
    Command.WONT: EventType.WONT,
    Command.DO: EventType.DO,
    Command.DONT: EventType.DONT,
}


class _State(Enum):
    DATA = auto()
    EOL = auto()
    IAC = auto()
    NEGOTIATE = auto()
    SB = auto()
    SB_DATA = auto()
    SB_DATA_IAC = auto()


def _to_bytes(data: BytesLike) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


class Telnet:
    """Parses bytes from a peer and formats bytes for it.

    Every result is delivered to ``handler`` as an event object: received
    data, negotiation results, parsed subnegotiations, warnings and errors,
    and ``SendEvent`` records holding the bytes to write to the peer.
    """

    def __init__(
        self,
        handler: Handler,
        telopts: Optional[Iterable[TeloptSupport]] = None,
        flags: int = Flag.NONE,
    ) -> None:
        if not callable(handler):
            raise TypeError("handler must be callable")
        self._handler = handler
        self._telopts = tuple(telopts) if telopts is not None else None
        self._flags = Flag(flags)
        self._options = OptionTable()
        self._state = _State.DATA
        self._neg_cmd = Command.WILL
        self._sb_telopt = 0
        self._buffer = bytearray()
        self._z: Any = None

    # -- public state -----------------------------------------------------

    @property
    def flags(self) -> Flag:
        """Current flags, including the internal binary and deflate bits."""
        return self._flags

    @property
    def options(self) -> OptionTable:
        """The RFC 1143 option state table."""
        return self._options

    @property
    def compressing(self) -> bool:
        """True while a compression or decompression stream is active."""
        return self._z is not None

    # -- internals --------------------------------------------------------

    def _emit(self, event: Any) -> None:
        self._handler(event)

    def _error(
        self, code: ErrorCode, message: str, fatal: bool = False, func: str = ""
    ) -> ErrorCode:
        self._emit(ErrorEvent(code, message, fatal, func))
        return code

    def _init_zlib(self, deflate: bool, fatal: bool) -> bool:
        if self._z is not None:
            self._error(
                ErrorCode.BADVAL,
                "cannot initialize compression twice",
                fatal,
                "_init_zlib",
            )
            return False
        if deflate:
            self._z = zlib.compressobj()
            self._flags |= Flag.DEFLATE
        else:
            self._z = zlib.decompressobj()
            self._flags &= ~Flag.DEFLATE
        return True

    def _send(self, data: bytes) -> None:
        if self._z is not None and Flag.DEFLATE in self._flags:
            if not data:
                return
            try:
                out = self._z.compress(data) + self._z.flush(zlib.Z_SYNC_FLUSH)
            except zlib.error as exc:
                self._error(
                    ErrorCode.COMPRESS, f"deflate() failed: {exc}", True, "_send"
                )
                self._z = None
                return
            self._emit(SendEvent(out))
            return
        self._emit(SendEvent(bytes(data)))

    def _send_negotiate(self, cmd: int, telopt: int) -> None:
        self._send(bytes((Command.IAC, cmd, telopt)))

    def _set_option(self, telopt: int, us: QState, him: QState) -> None:
        existed = telopt in self._options
        self._options.set(telopt, us, him)
        if not existed or telopt != Telopt.BINARY:
            return
        self._flags &= ~(Flag.TRANSMIT_BINARY | Flag.RECEIVE_BINARY)
        if us == QState.YES:
            self._flags |= Flag.TRANSMIT_BINARY
        if him == QState.YES:
            self._flags |= Flag.RECEIVE_BINARY

    def _negotiation_event(self, kind: EventType, telopt: int) -> None:
        self._emit(NegotiationEvent(kind, telopt))

    def _on_negotiate(self, cmd: Command, telopt: int) -> None:
        if Flag.PROXY in self._flags:
            self._negotiation_event(_NEGOTIATION_EVENTS[cmd], telopt)
            return

        q = self._options.get(telopt)
        us, him = q.us, q.him
        func = "_negotiate"

        if cmd == Command.WILL:
            if him == QState.NO:
                if supports(self._telopts, telopt, False):
                    self._set_option(telopt, us, QState.YES)
                    self._send_negotiate(Command.DO, telopt)
                    self._negotiation_event(EventType.WILL, telopt)
                else:
                    self._send_negotiate(Command.DONT, telopt)
            elif him == QState.WANTNO:
                self._set_option(telopt, us, QState.NO)
                self._negotiation_event(EventType.WONT, telopt)
                self._error(ErrorCode.PROTOCOL, "DONT answered by WILL", False, func)
            elif him == QState.WANTNO_OP:
                self._set_option(telopt, us, QState.YES)
                self._error(ErrorCode.PROTOCOL, "DONT answered by WILL", False, func)
            elif him == QState.WANTYES:
                self._set_option(telopt, us, QState.YES)
                self._negotiation_event(EventType.WILL, telopt)
            elif him == QState.WANTYES_OP:
                self._set_option(telopt, us, QState.WANTNO)
                self._send_negotiate(Command.DONT, telopt)
                self._negotiation_event(EventType.WILL, telopt)

        elif cmd == Command.WONT:
            if him == QState.YES:
                self._set_option(telopt, us, QState.NO)
                self._send_negotiate(Command.DONT, telopt)
                self._negotiation_event(EventType.WONT, telopt)
            elif him == QState.WANTNO:
                self._set_option(telopt, us, QState.NO)
                self._negotiation_event(EventType.WONT, telopt)
            elif him == QState.WANTNO_OP:
                self._set_option(telopt, us, QState.WANTYES)
                self._send_negotiate(Command.DO, telopt)
                self._negotiation_event(EventType.WONT, telopt)
            elif him in (QState.WANTYES, QState.WANTYES_OP):
                self._set_option(telopt, us, QState.NO)

        elif cmd == Command.DO:
            if us == QState.NO:
                if supports(self._telopts, telopt, True):
                    self._set_option(telopt, QState.YES, him)
                    self._send_negotiate(Command.WILL, telopt)
                    self._negotiation_event(EventType.DO, telopt)
                else:
                    self._send_negotiate(Command.WONT, telopt)
            elif us == QState.WANTNO:
                self._set_option(telopt, QState.NO, him)
                self._negotiation_event(EventType.DONT, telopt)
                self._error(ErrorCode.PROTOCOL, "WONT answered by DO", False, func)
            elif us == QState.WANTNO_OP:
                self._set_option(telopt, QState.YES, him)
                self._error(ErrorCode.PROTOCOL, "WONT answered by DO", False, func)
            elif us == QState.WANTYES:
                self._set_option(telopt, QState.YES, him)
                self._negotiation_event(EventType.DO, telopt)
            elif us == QState.WANTYES_OP:
                self._set_option(telopt, QState.WANTNO, him)
                self._send_negotiate(Command.WONT, telopt)
                self._negotiation_event(EventType.DO, telopt)

        elif cmd == Command.DONT:
            if us == QState.YES:
                self._set_option(telopt, QState.NO, him)
                self._send_negotiate(Command.WONT, telopt)
                self._negotiation_event(EventType.DONT, telopt)
            elif us == QState.WANTNO:
                self._set_option(telopt, QState.NO, him)
                self._negotiation_event(EventType.DONT, telopt)
            elif us == QState.WANTNO_OP:
                self._set_option(telopt, QState.WANTYES, him)
                self._send_negotiate(Command.WILL, telopt)
                self._negotiation_event(EventType.DONT, telopt)
            elif us in (QState.WANTYES, QState.WANTYES_OP):
                self._set_option(telopt, QState.NO, him)

    def _buffer_byte(self, byte: int) -> bool:
        if len(self._buffer) >= _SB_BUFFER_LIMIT:
            self._error(
                ErrorCode.OVERFLOW,
                "subnegotiation buffer size limit reached",
                False,
                "_buffer_byte",
            )
            return False
        self._buffer.append(byte)
        return True

    def _subnegotiate(self) -> bool:
        """Handle a finished subnegotiation; True if compression just began."""
        telopt = self._sb_telopt
        payload = bytes(self._buffer)
        self._emit(SubnegotiationEvent(telopt, payload))

        if telopt == Telopt.COMPRESS2:
            if not self._init_zlib(False, True):
                return False
            self._emit(CompressEvent(True))
            return True

        try:
            if telopt == Telopt.ZMP:
                self._emit(parse_zmp(payload))
            elif telopt == Telopt.TTYPE:
                self._emit(parse_ttype(payload))
            elif telopt in (Telopt.ENVIRON, Telopt.NEW_ENVIRON):
                event = parse_environ(telopt, payload)
                if event is not None:
                    self._emit(event)
            elif telopt == Telopt.MSSP:
                event = parse_mssp(payload)
                if event is not None:
                    self._emit(event)
        except ProtocolError as exc:
            self._error(exc.code, str(exc), False, "_subnegotiate")
        return False

    def _process(self, data: bytes) -> None:
        start = 0
        for i, byte in enumerate(data):
            state = self._state

            if state is _State.DATA:
                if byte == Command.IAC:
                    if i != start:
                        self._emit(DataEvent(data[start:i]))
                    self._state = _State.IAC
                elif (
                    byte == _CR
                    and Flag.NVT_EOL in self._flags
                    and Flag.RECEIVE_BINARY not in self._flags
                ):
                    if i != start:
                        self._emit(DataEvent(data[start:i]))
                    self._state = _State.EOL

            elif state is _State.EOL:
                if byte != _LF:
                    self._emit(DataEvent(b"\r"))
                start = i + 1 if byte == _NUL else i
                self._state = _State.DATA

            elif state is _State.IAC:
                if byte == Command.SB:
                    self._state = _State.SB
                elif byte in _NEGOTIATION_COMMANDS:
                    self._neg_cmd = Command(byte)
                    self._state = _State.NEGOTIATE
                elif byte == Command.IAC:
                    self._emit(DataEvent(bytes((byte,))))
                    start = i + 1
                    self._state = _State.DATA
                else:
                    self._emit(IacEvent(byte))
                    start = i + 1
                    self._state = _State.DATA

            elif state is _State.NEGOTIATE:
                self._on_negotiate(self._neg_cmd, byte)
                start = i + 1
                self._state = _State.DATA

            elif state is _State.SB:
                self._sb_telopt = byte
                self._buffer.clear()
                self._state = _State.SB_DATA

            elif state is _State.SB_DATA:
                if byte == Command.IAC:
                    self._state = _State.SB_DATA_IAC
                elif self._sb_telopt == Telopt.COMPRESS and byte == Command.WILL:
                    # Obsolete MCCPv1 start sequence (IAC SB 85 WILL SE): discard.
                    start = i + 2
                    self._state = _State.DATA
                elif not self._buffer_byte(byte):
                    start = i + 1
                    self._state = _State.DATA

            elif state is _State.SB_DATA_IAC:
                if byte == Command.SE:
                    start = i + 1
                    self._state = _State.DATA
                    if self._subnegotiate():
                        # The rest of this chunk is compressed.
                        self.recv(data[start:])
                        return
                elif byte == Command.IAC:
                    if self._buffer_byte(Command.IAC):
                        self._state = _State.SB_DATA
                    else:
                        start = i + 1
                        self._state = _State.DATA
                else:
                    self._error(
                        ErrorCode.PROTOCOL,
                        f"unexpected byte after IAC inside SB: {byte}",
                        False,
                        "_process",
                    )
                    start = i + 1
                    self._state = _State.IAC
                    if self._subnegotiate():
                        self.recv(data[start:])
                        return
                    # Handle the offending byte as an ordinary IAC command.
                    self._process(bytes((byte,)))

        if self._state is _State.DATA and len(data) > start:
            self._emit(DataEvent(data[start:]))

    # -- receiving --------------------------------------------------------

    def recv(self, data: BytesLike) -> None:
        """Feed bytes received from the peer into the parser."""
        data = _to_bytes(data)
        z = self._z
        if z is None or Flag.DEFLATE in self._flags:
            self._process(data)
            return

        try:
            out = z.decompress(data)
        except zlib.error as exc:
            self._error(ErrorCode.COMPRESS, f"inflate() failed: {exc}", True, "recv")
            self._z = None
            self._emit(CompressEvent(False))
            return

        if out:
            self._process(out)
        if self._z is z and z.eof:
            self._z = None
            self._emit(CompressEvent(False))

    # -- sending ----------------------------------------------------------

    def iac(self, cmd: int) -> None:
        """Send IAC followed by ``cmd``."""
        self._send(bytes((Command.IAC, cmd)))

    def negotiate(self, cmd: int, telopt: int) -> None:
        """Request an option change; redundant requests send nothing."""
        cmd = Command(cmd)
        if Flag.PROXY in self._flags:
            self._send(bytes((Command.IAC, cmd, telopt)))
            return

        q = self._options.get(telopt)
        us, him = q.us, q.him

        if cmd == Command.WILL:
            if us == QState.NO:
                self._set_option(telopt, QState.WANTYES, him)
                self._send_negotiate(Command.WILL, telopt)
            elif us == QState.WANTNO:
                self._set_option(telopt, QState.WANTNO_OP, him)
            elif us == QState.WANTYES_OP:
                self._set_option(telopt, QState.WANTYES, him)
        elif cmd == Command.WONT:
            if us == QState.YES:
                self._set_option(telopt, QState.WANTNO, him)
                self._send_negotiate(Command.WONT, telopt)
            elif us == QState.WANTYES:
                self._set_option(telopt, QState.WANTYES_OP, him)
            elif us == QState.WANTNO_OP:
                self._set_option(telopt, QState.WANTNO, him)
        elif cmd == Command.DO:
            if him == QState.NO:
                self._set_option(telopt, us, QState.WANTYES)
                self._send_negotiate(Command.DO, telopt)
            elif him == QState.WANTNO:
                self._set_option(telopt, us, QState.WANTNO_OP)
            elif him == QState.WANTYES_OP:
                self._set_option(telopt, us, QState.WANTYES)
        elif cmd == Command.DONT:
            if him == QState.YES:
                self._set_option(telopt, us, QState.WANTNO)
                self._send_negotiate(Command.DONT, telopt)
            elif him == QState.WANTYES:
                self._set_option(telopt, us, QState.WANTYES_OP)
            elif him == QState.WANTNO_OP:
                self._set_option(telopt, us, QState.WANTNO)

    def _send_escaped(self, data: bytes, translate: bool) -> None:
        start = 0
        for i, byte in enumerate(data):
            if byte == Command.IAC:
                if i != start:
                    self._send(data[start:i])
                start = i + 1
                self.iac(Command.IAC)
            elif translate and byte in (_CR, _LF):
                if i != start:
                    self._send(data[start:i])
                start = i + 1
                self._send(_CRNUL if byte == _CR else _CRLF)
        if start < len(data):
            self._send(data[start:])

    def send(self, data: BytesLike) -> None:
        """Send data, doubling IAC bytes."""
        self._send_escaped(_to_bytes(data), False)

    def send_text(self, data: BytesLike) -> None:
        """Send text, doubling IAC and translating CR and LF unless binary."""
        translate = Flag.TRANSMIT_BINARY not in self._flags
        self._send_escaped(_to_bytes(data), translate)

    def begin_sb(self, telopt: int) -> None:
        """Send IAC SB ``telopt``."""
        self._send(bytes((Command.IAC, Command.SB, telopt)))

    def finish_sb(self) -> None:
        """Send IAC SE."""
        self.iac(Command.SE)

    def subnegotiation(self, telopt: int, data: BytesLike) -> None:
        """Send a complete subnegotiation carrying ``data``."""
        self._send(bytes((Command.IAC, Command.SB, telopt)))
        self.send(data)
        self._send(bytes((Command.IAC, Command.SE)))

        if Flag.PROXY in self._flags and telopt == Telopt.COMPRESS2:
            if not self._init_zlib(True, True):
                return
            self._emit(CompressEvent(True))

    def begin_compress2(self) -> None:
        """Send the COMPRESS2 marker and compress everything sent after it."""
        if not self._init_zlib(True, False):
            return
        # The marker itself goes out uncompressed.
        self._emit(
            SendEvent(
                bytes(
                    (
                        Command.IAC,
                        Command.SB,
                        Telopt.COMPRESS2,
                        Command.IAC,
                        Command.SE,
                    )
                )
            )
        )
        self._emit(CompressEvent(True))

    @staticmethod
    def _format(fmt: BytesLike, args: Sequence[Any]) -> bytes:
        if isinstance(fmt, str):
            return (fmt % tuple(args)).encode("utf-8")
        return bytes(fmt) % tuple(args)

    def printf(self, fmt: BytesLike, *args: Any) -> int:
        """Format and send text with IAC escaping and CR/LF translation.

        Returns the length of the formatted text.
        """
        output = self._format(fmt, args)
        self._send_escaped(output, True)
        return len(output)

    def raw_printf(self, fmt: BytesLike, *args: Any) -> int:
        """Format and send data with IAC escaping only.

        Returns the length of the formatted data.
        """
        output = self._format(fmt, args)
        self.send(output)
        return len(output)

    def begin_newenviron(self, cmd: int) -> None:
        """Start a NEW-ENVIRON subnegotiation with command ``cmd``."""
        self.begin_sb(Telopt.NEW_ENVIRON)
        self.send(bytes((cmd,)))

    def newenviron_value(self, type_: int, value: Optional[BytesLike] = None) -> None:
        """Send a NEW-ENVIRON marker followed by an optional name or value."""
        self.send(bytes((type_,)))
        if value is not None:
            self.send(value)

    def finish_newenviron(self) -> None:
        """End a NEW-ENVIRON subnegotiation."""
        self.finish_sb()

    def ttype_send(self) -> None:
        """Send TERMINAL-TYPE SEND."""
        self._send(
            bytes(
                (
                    Command.IAC,
                    Command.SB,
                    Telopt.TTYPE,
                    TTypeCode.SEND,
                    Command.IAC,
                    Command.SE,
                )
            )
        )

    def ttype_is(self, ttype: Optional[BytesLike] = None) -> None:
        """Send TERMINAL-TYPE IS with ``ttype`` (default ``NVT``)."""
        name = _to_bytes(ttype) if ttype else b"NVT"
        self._send(bytes((Command.IAC, Command.SB, Telopt.TTYPE, TTypeCode.IS)))
        self._send(name)
        self.finish_sb()

    def send_zmp(self, args: Sequence[BytesLike]) -> None:
        """Send a ZMP command; the first argument is the command name."""
        if not args:
            raise ValueError("a ZMP command needs at least a command name")
        first, *rest = args
        self.begin_zmp(first)
        for arg in rest:
            self.zmp_arg(arg)
        self.finish_zmp()

    def send_zmpv(self, *args: BytesLike) -> None:
        """Send a ZMP command given as separate arguments."""
        self.begin_sb(Telopt.ZMP)
        for arg in args:
            self.zmp_arg(arg)
        self.finish_zmp()

    def begin_zmp(self, cmd: BytesLike) -> None:
        """Start a ZMP command named ``cmd``."""
        self.begin_sb(Telopt.ZMP)
        self.zmp_arg(cmd)

    def zmp_arg(self, arg: BytesLike) -> None:
        """Send one NUL-terminated ZMP argument."""
        self.send(_to_bytes(arg) + b"\0")

    def finish_zmp(self) -> None:
        """End a ZMP command."""
        self.finish_sb()

    # -- lifetime ---------------------------------------------------------

    def close(self) -> None:
        """Release buffers, compression state and option states."""
        self._buffer = bytearray()
        self._z = None
        self._flags &= ~Flag.DEFLATE
        self._options = OptionTable()
        self._state = _State.DATA

    def __enter__(self) -> "Telnet":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()