"""Minimal GDB remote-protocol client for reading target memory."""

from __future__ import annotations

import argparse
import socket
import sys
from typing import Optional, Sequence, Union

_PACKET_TEXT_LIMIT = 123
_RECV_SIZE = 1024
_DEFAULT_PORT = 3333
_DEFAULT_HOST = "127.0.0.1"
_DUMP_ADDR = 0x200006C0
_DUMP_LEN = 124


def _info(msg: str) -> None:
    print(f"[\033[32mINFO\033[0m]  {msg}")


def _warn(msg: str) -> None:
    print(f"[\033[33mWARN\033[0m]  {msg}")


def _error(msg: str) -> None:
    print(f"[\033[31mERROR\033[0m] {msg}")


def _as_bytes(text: Union[str, bytes]) -> bytes:
    return text.encode("utf-8") if isinstance(text, str) else bytes(text)


def _show(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


def checksum(text: Union[str, bytes]) -> int:
    """Return the 8-bit sum of the bytes of ``text``."""
    return sum(_as_bytes(text)) & 0xFF


def payload_command(fmt: str, *args: object) -> bytes:
    """Build a ``$<text>#<checksum>`` packet; the checksum is in decimal."""
    text = _as_bytes(fmt % args if args else fmt)[:_PACKET_TEXT_LIMIT]
    return b"$" + text + b"#" + str(checksum(text)).encode("ascii")


def open_tcp(port: int, host: str = _DEFAULT_HOST) -> socket.socket:
    """Connect to ``host:port`` over TCP; raises OSError on failure."""
    try:
        sock = socket.create_connection((host, port))
    except OSError:
        _error("Connection failed")
        raise
    _info("Establish connection: ")
    return sock


def dump_ram(sock: socket.socket, addr: int, length: int) -> bytes:
    """Request ``length`` bytes at ``addr`` and return the raw reply."""
    tx = payload_command("m%x,%x", addr, length)
    sock.sendall(tx)
    _info(f"send: {_show(tx)}")

    reply = sock.recv(_RECV_SIZE)
    _info(f"recv: {_show(reply)}")
    if not reply:
        _error(f"Recived {len(reply)}")
        return b""
    return reply


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Reset and halt the target, then dump a block of its RAM."""
    parser = argparse.ArgumentParser(prog="rttterm")
    parser.add_argument("--host", default=_DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=_DEFAULT_PORT)
    parser.add_argument("--addr", type=lambda s: int(s, 0), default=_DUMP_ADDR)
    parser.add_argument("--length", type=lambda s: int(s, 0), default=_DUMP_LEN)
    opts = parser.parse_args(argv)

    _info("Terminal Start...1")
    try:
        sock = open_tcp(opts.port, opts.host)
    except OSError:
        return 1

    with sock:
        tx = payload_command("monitor reset halt")
        sock.sendall(tx)
        _info(f"send: {_show(tx)}")

        reply = sock.recv(_RECV_SIZE)
        _info(f"recv: {_show(reply)}")

        rx = dump_ram(sock, opts.addr, opts.length)
        if not rx:
            _warn("no memory data received")
        _info(f"recv: {_show(rx)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())