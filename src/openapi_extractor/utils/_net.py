"""Network helpers for wiring local processes together."""

import socket
from typing import cast


def find_open_port(host: str = "127.0.0.1") -> int:
    """Find an available port on the given host.

    Note: There is an inherent TOCTOU race condition between discovering
    the port and binding to it. The process should fail its startup check
    if another process claims the port first.

    Args:
        host: The host to bind to for port discovery.

    Returns:
        An available port number.
    """
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, 0))
        addr = cast("tuple[str, int]", sock.getsockname())
        return addr[1]
