"""Tests for the shared utilities, against real loopback sockets."""

import socket
import threading
import time

import pytest

from emudock.utils.common import command_exists, port_responds


@pytest.fixture
def listener():
    """Start a loopback server that hands each connection to ``handler``; returns its port."""
    servers = []

    def start(handler):
        server = socket.create_server(("127.0.0.1", 0))
        server.settimeout(0.1)
        servers.append(server)

        def loop():
            while True:
                try:
                    conn, _ = server.accept()
                except TimeoutError:
                    continue
                except OSError:
                    return
                with conn:
                    handler(conn)

        threading.Thread(target=loop, daemon=True).start()
        return server.getsockname()[1]

    yield start
    for server in servers:
        server.close()


def _answer_http(conn):
    conn.settimeout(1.0)
    conn.recv(1024)
    conn.sendall(b"HTTP/1.1 200 OK\r\nContent-Length: 2\r\n\r\nOk")


def _accept_and_close(conn):
    pass


def _banner(conn):
    conn.sendall(b"SSH-2.0-OpenSSH_9.6\r\n")


def _never_answer(conn):
    time.sleep(0.5)


def _free_port():
    with socket.create_server(("127.0.0.1", 0)) as sock:
        return sock.getsockname()[1]


class TestPortResponds:
    """Test the HTTP readiness check."""

    def test_http_server(self, listener):
        port = listener(_answer_http)
        assert port_responds("127.0.0.1", port) is True

    def test_closed_port(self):
        assert port_responds("127.0.0.1", _free_port()) is False

    def test_accept_then_close_is_not_ready(self, listener):
        # What a published port looks like before the emulator inside listens
        port = listener(_accept_and_close)
        assert port_responds("127.0.0.1", port) is False

    def test_non_http_reply_is_not_ready(self, listener):
        port = listener(_banner)
        assert port_responds("127.0.0.1", port) is False

    def test_silent_server_times_out(self, listener):
        port = listener(_never_answer)

        started = time.monotonic()
        assert port_responds("127.0.0.1", port, timeout=0.2) is False
        assert time.monotonic() - started < 0.5


def test_command_exists():
    assert command_exists("sh") is True
    assert command_exists("emudock-no-such-command") is False
