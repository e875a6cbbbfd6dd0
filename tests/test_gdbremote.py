import socket
import threading

import pytest

from rttterm.gdbremote import checksum, dump_ram, main, open_tcp, payload_command


def _split(packet: bytes):
    assert packet.startswith(b"$")
    body, _, check = packet[1:].rpartition(b"#")
    return body, int(check)


def test_checksum_empty_is_zero():
    assert checksum("") == 0


def test_checksum_wraps_to_eight_bits():
    assert checksum(b"\xff\x01") == 0
    assert 0 <= checksum("x" * 500) <= 255


def test_checksum_str_and_bytes_agree():
    assert checksum("monitor reset halt") == checksum(b"monitor reset halt")


def test_payload_literal_command():
    packet = payload_command("monitor reset halt")
    body, check = _split(packet)
    assert body == b"monitor reset halt"
    assert check == checksum(body)


def test_payload_formats_hex_arguments():
    body, check = _split(payload_command("m%x,%x", 0x200006C0, 124))
    assert body == b"m200006c0,7c"
    assert check == checksum(body)


def test_payload_truncates_long_text():
    body, check = _split(payload_command("a" * 300))
    assert body == b"a" * 123
    assert check == checksum(body)


def test_dump_ram_sends_request_and_returns_reply():
    ours, theirs = socket.socketpair()
    with ours, theirs:
        theirs.sendall(b"$deadbeef#00")
        result = dump_ram(ours, 0x20000000, 4)
        sent = theirs.recv(1024)
    assert result == b"$deadbeef#00"
    assert sent == payload_command("m%x,%x", 0x20000000, 4)


def _free_port():
    with socket.socket() as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def test_open_tcp_refused_raises():
    with pytest.raises(OSError):
        open_tcp(_free_port(), "127.0.0.1")


def _serve(server, received):
    conn, _ = server.accept()
    with conn:
        received.append(conn.recv(1024))
        conn.sendall(b"+$OK#9a")
        received.append(conn.recv(1024))
        conn.sendall(b"+$0011#00")


def test_main_talks_to_server(capsys):
    server = socket.socket()
    server.bind(("127.0.0.1", 0))
    server.listen(1)
    port = server.getsockname()[1]
    received = []
    worker = threading.Thread(target=_serve, args=(server, received))
    worker.start()
    try:
        code = main(["--port", str(port), "--addr", "0x10", "--length", "2"])
    finally:
        worker.join(timeout=5)
        server.close()
    assert code == 0
    assert received[0] == payload_command("monitor reset halt")
    assert received[1] == payload_command("m%x,%x", 0x10, 2)
    out = capsys.readouterr().out
    assert "+$0011#00" in out


def test_main_connection_failure_returns_one():
    assert main(["--port", str(_free_port())]) == 1