"""Socket setup for both peers.

This module provides:
- A single-attempt TCP connector for reaching the SOCKS5 proxy
- A listening socket for the chat server

Neither function retries or applies timeouts; the caller decides what to do
with a failure.

Example:
    stream = connect_tcp("127.0.0.1", 9050)
"""

import ipaddress
import socket

from loguru import logger

from onion_chat.core.exceptions import ConnectError, ListenError
from onion_chat.core.stream import DEFAULT_BUFFER_SIZE, ChatStream

DEFAULT_BACKLOG = 5


def _address_family(host: str) -> socket.AddressFamily:
    """Return the socket family for a literal IP address."""
    try:
        address = ipaddress.ip_address(host)
    except ValueError as e:
        raise ConnectError(f"Invalid address: {host!r}") from e
    return socket.AF_INET6 if address.version == 6 else socket.AF_INET


def connect_tcp(host: str, port: int, buffer_size: int = DEFAULT_BUFFER_SIZE) -> ChatStream:
    """Open a TCP connection to ``host:port``.

    Args:
        host: Literal IPv4 or IPv6 address
        port: Port number to connect to
        buffer_size: Largest single read on the returned stream

    Returns:
        ChatStream: The connected stream

    Raises:
        ConnectError: If the address is malformed or the connection fails
    """
    family = _address_family(host)
    try:
        sock = socket.socket(family, socket.SOCK_STREAM)
    except OSError as e:
        raise ConnectError(f"Cannot create socket: {e}") from e

    logger.info(f"Connecting to {host}:{port}")
    try:
        sock.connect((host, port))
    except OSError as e:
        sock.close()
        raise ConnectError(f"Cannot connect to {host}:{port}: {e}") from e

    logger.info(f"Connected to {host}:{port}")
    return ChatStream(sock, buffer_size)


def open_listener(host: str, port: int, backlog: int = DEFAULT_BACKLOG) -> socket.socket:
    """Create a listening socket bound to ``host:port`` with address reuse."""
    try:
        family = _address_family(host)
    except ConnectError as e:
        raise ListenError(str(e)) from e

    try:
        sock = socket.socket(family, socket.SOCK_STREAM)
    except OSError as e:
        raise ListenError(f"Cannot create socket: {e}") from e

    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
        sock.listen(backlog)
    except OSError as e:
        sock.close()
        raise ListenError(f"Cannot listen on {host}:{port}: {e}") from e

    logger.info(f"Listening on {host}:{port}")
    return sock
