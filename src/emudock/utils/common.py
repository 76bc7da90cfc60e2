"""Common utilities shared across emudock."""

import shutil
import socket

from rich.console import Console

# Single shared console instance for the entire CLI
console = Console()


def command_exists(cmd: str) -> bool:
    """Check if a command exists in the system PATH.

    Args:
        cmd: Command name to check (e.g., 'docker')

    Returns:
        True if command exists, False otherwise
    """
    return shutil.which(cmd) is not None


def port_responds(host: str, port: int, timeout: float = 1.0) -> bool:
    """Check whether an HTTP server answers on ``host:port``.

    A completed TCP handshake is not enough: docker's port proxy accepts
    connections on a published port before anything in the container listens,
    then closes them. Only an HTTP status line counts.
    """
    request = f"GET / HTTP/1.0\r\nHost: {host}:{port}\r\n\r\n".encode("ascii")
    try:
        with socket.create_connection((host, port), timeout=timeout) as sock:
            sock.sendall(request)
            with sock.makefile("rb") as reader:
                status_line = reader.readline(256)
    except OSError:
        return False
    return status_line.startswith(b"HTTP/")


__all__ = [
    "console",
    "command_exists",
    "port_responds",
]
