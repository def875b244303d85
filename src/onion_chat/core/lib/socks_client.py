"""SOCKS5 client handshake (RFC 1928, CONNECT with a domain-name target).

The engine walks a fixed sequence of states over an already-connected
stream to the proxy:

    GREETING -> METHOD_SELECTED -> REQUEST_SENT -> ESTABLISHED

Any failure moves it to REJECTED and raises. Only the "no authentication"
method and the CONNECT command are supported. The bound address in the
proxy's reply is read and discarded; after ESTABLISHED the proxy relays
bytes between the stream and the target unchanged.

Example:
    request = HandshakeRequest("abcdefghijklmnop.onion", 1234)
    Socks5Handshake(stream, request).run()
"""

import struct
from dataclasses import dataclass
from enum import Enum
from typing import Final

from loguru import logger

from onion_chat.core.exceptions import ProtocolError, ProxyRejected, StreamIOError
from onion_chat.core.stream import ChatStream

# SOCKS protocol constants
SOCKS_VERSION: Final = 5
METHOD_NO_AUTH: Final = 0
CONNECT_CMD: Final = 1
RESERVED: Final = 0
ADDR_TYPE_IPV4: Final = 1
ADDR_TYPE_DOMAIN: Final = 3
ADDR_TYPE_IPV6: Final = 4
MAX_DOMAIN_LENGTH: Final = 255

# Response codes
RESP_SUCCESS: Final = 0

REPLY_MESSAGES: Final = {
    0x01: "General failure",
    0x02: "Connection not allowed",
    0x03: "Network unreachable",
    0x04: "Host unreachable",
    0x05: "Connection refused",
    0x06: "TTL expired",
    0x07: "Command not supported",
    0x08: "Address type not supported",
}
UNKNOWN_REPLY: Final = "Unknown error"

GREETING: Final = struct.pack("!BBB", SOCKS_VERSION, 1, METHOD_NO_AUTH)

# Bound address sizes (without the port)
_FIXED_ADDR_SIZES: Final = {
    ADDR_TYPE_IPV4: 4,
    ADDR_TYPE_IPV6: 16,
}
PORT_SIZE: Final = 2


def reply_message(status: int) -> str:
    """Human-readable cause for a SOCKS5 reply status."""
    if status == RESP_SUCCESS:
        return "Succeeded"
    return REPLY_MESSAGES.get(status, UNKNOWN_REPLY)


@dataclass(frozen=True)
class HandshakeRequest:
    """CONNECT target: domain name and port."""

    domain: str
    port: int

    def __post_init__(self):
        if not (1 <= self.port <= 65535):
            raise ValueError(f"Port must be between 1 and 65535, got {self.port}")


@dataclass(frozen=True)
class HandshakeReply:
    """Parsed CONNECT reply. Only ``status`` is acted upon."""

    status: int
    addr_type: int
    bound_addr: bytes
    bound_port: int


def build_connect_request(request: HandshakeRequest) -> bytes:
    """Serialize a CONNECT request for a domain-name target.

    Raises:
        ProtocolError: If the domain is empty or longer than 255 bytes
    """
    domain = request.domain.encode("utf-8")
    if not domain:
        raise ProtocolError("Domain name is empty")
    if len(domain) > MAX_DOMAIN_LENGTH:
        raise ProtocolError(f"Domain name too long ({len(domain)} > {MAX_DOMAIN_LENGTH} bytes)")

    header = struct.pack(
        "!BBBBB", SOCKS_VERSION, CONNECT_CMD, RESERVED, ADDR_TYPE_DOMAIN, len(domain)
    )
    return header + domain + struct.pack("!H", request.port)


class HandshakeState(Enum):
    GREETING = "greeting"
    METHOD_SELECTED = "method-selected"
    REQUEST_SENT = "request-sent"
    ESTABLISHED = "established"
    REJECTED = "rejected"


class Socks5Handshake:
    """Negotiate a CONNECT through a SOCKS5 proxy on an open stream."""

    def __init__(self, stream: ChatStream, request: HandshakeRequest) -> None:
        self.stream = stream
        self.request = request
        self.state = HandshakeState.GREETING
        self.reply: HandshakeReply | None = None

    def _greet(self) -> None:
        """Offer only the no-auth method and check the proxy accepts it."""
        self.stream.send_all(GREETING)
        try:
            version, method = struct.unpack("!BB", self.stream.recv_exact(2))
        except StreamIOError as e:
            raise ProtocolError("Failed to receive greeting response") from e

        if version != SOCKS_VERSION:
            raise ProtocolError(f"Invalid version in greeting response: {version}")
        if method != METHOD_NO_AUTH:
            raise ProtocolError(f"Proxy requires unsupported authentication method 0x{method:02x}")
        self.state = HandshakeState.METHOD_SELECTED

    def _send_request(self) -> None:
        self.stream.send_all(build_connect_request(self.request))
        self.state = HandshakeState.REQUEST_SENT

    def _read_bound_address(self, addr_type: int) -> tuple[bytes, int]:
        """Consume the bound address and port that follow the reply header."""
        if addr_type in _FIXED_ADDR_SIZES:
            addr = self.stream.recv_exact(_FIXED_ADDR_SIZES[addr_type])
        elif addr_type == ADDR_TYPE_DOMAIN:
            (length,) = struct.unpack("!B", self.stream.recv_exact(1))
            addr = self.stream.recv_exact(length) if length else b""
        else:
            raise ProtocolError(f"Unsupported address type in reply: 0x{addr_type:02x}")

        (port,) = struct.unpack("!H", self.stream.recv_exact(PORT_SIZE))
        return addr, port

    def _read_reply(self) -> HandshakeReply:
        version, status, _, addr_type = struct.unpack("!BBBB", self.stream.recv_exact(4))

        if version != SOCKS_VERSION:
            raise ProtocolError(f"Invalid version in connection response: {version}")
        if status != RESP_SUCCESS:
            raise ProxyRejected(status, reply_message(status))

        bound_addr, bound_port = self._read_bound_address(addr_type)
        return HandshakeReply(status, addr_type, bound_addr, bound_port)

    def run(self) -> ChatStream:
        """Perform the handshake and return the now-relayed stream."""
        target = f"{self.request.domain}:{self.request.port}"
        logger.info(f"Establishing SOCKS5 connection to {target}")
        try:
            self._greet()
            self._send_request()
            self.reply = self._read_reply()
        except Exception:
            self.state = HandshakeState.REJECTED
            raise

        self.state = HandshakeState.ESTABLISHED
        logger.info(f"SOCKS5 connection to {target} established")
        return self.stream
