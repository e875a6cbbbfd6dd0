# rttterm

A TELNET protocol state tracker and a small client for the GDB remote
serial protocol. Only the standard library is needed.

## Telnet

`rttterm.telnet.Telnet` parses incoming bytes and formats outgoing ones.
It never touches a socket: everything it produces is handed to a handler
callable, one event object per call, and you decide what to do with it.

```python
from rttterm.telnet import Telnet
from rttterm.protocol import (
    Command, Flag, Telopt, TeloptSupport,
    DataEvent, SendEvent, NegotiationEvent, ErrorEvent,
)

def handler(event):
    if isinstance(event, SendEvent):
        sock.sendall(event.data)
    elif isinstance(event, DataEvent):
        print(event.data.decode(errors="replace"), end="")
    elif isinstance(event, NegotiationEvent):
        print("negotiated", event.type.name, event.telopt)
    elif isinstance(event, ErrorEvent):
        print("error:", event.message)

telopts = [
    TeloptSupport(Telopt.ECHO, Command.WONT, Command.DO),
    TeloptSupport(Telopt.TTYPE, Command.WILL, Command.DONT),
]

with Telnet(handler, telopts, Flag.NVT_EOL) as telnet:
    telnet.negotiate(Command.DO, Telopt.ECHO)
    telnet.send_text(b"hello\n")
    telnet.recv(sock.recv(4096))
```

Features:

- Q-method (RFC 1143) option negotiation, tracked in an
  `rttterm.negotiation.OptionTable` (available as `Telnet.options`), or
  pass-through in proxy mode (`Flag.PROXY`)
- NVT end-of-line translation on receive (`Flag.NVT_EOL`) and on send
  (`send_text`, `printf`); both are switched off while BINARY is in effect
- Parsing of TERMINAL-TYPE, ENVIRON / NEW-ENVIRON, MSSP and ZMP
  subnegotiations into `TTypeEvent`, `EnvironEvent`, `MsspEvent` and
  `ZmpEvent`; the parsers are also available on their own in
  `rttterm.subneg` (`parse_ttype`, `parse_environ`, `parse_mssp`,
  `parse_zmp`), where malformed input raises `ProtocolError`
- COMPRESS2 (MCCP2) with `zlib`: incoming compressed streams are inflated
  after `IAC SB COMPRESS2 IAC SE`, and `begin_compress2` compresses all
  later output; changes are reported as `CompressEvent`
- Helpers for sending: `iac`, `send`, `subnegotiation`,
  `begin_sb` / `finish_sb`, `printf`, `raw_printf`, `ttype_send`,
  `ttype_is`, `begin_newenviron` / `newenviron_value` /
  `finish_newenviron`, `send_zmp`, `send_zmpv`,
  `begin_zmp` / `zmp_arg` / `finish_zmp`

Protocol problems are reported as `ErrorEvent`s through the handler, just
like every other event; `ErrorEvent.type` is `EventType.ERROR` for fatal
ones and `EventType.WARNING` otherwise.

## GDB remote client

`rttterm.gdbremote` builds packets of the form `$payload#checksum` and
talks to a debug server, such as an on-chip debugger's GDB port.
`checksum` is the 8-bit sum of the payload bytes; `payload_command`
writes it in decimal and keeps at most 123 bytes of payload.

```python
from rttterm.gdbremote import payload_command, open_tcp, dump_ram

packet = payload_command("m%x,%x", 0x20000000, 16)
sock = open_tcp(3333, "127.0.0.1")
reply = dump_ram(sock, 0x20000000, 16)
```

The command-line entry point connects (by default to port 3333 on
127.0.0.1), sends `monitor reset halt`, then reads one block of target
RAM and logs the exchange:

```
rtt-terminal
rtt-terminal --host 127.0.0.1 --port 3333 --addr 0x200006c0 --length 124
```

## What it does not do

The command performs that single exchange and exits. It does not decode
the memory reply, stream RTT output, or offer an interactive terminal,
and it does not use the `Telnet` engine. The `Telnet` class itself opens
no connections: reading from and writing to a socket is left to the
caller's handler.