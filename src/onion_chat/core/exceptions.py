"""Custom exceptions for the chat client and server.

This module defines the error taxonomy shared by every stage of a chat
connection. Each stage raises one of these and never retries; the caller
closes the stream and decides how to report the failure:

- ConnectError: the proxy (or listening address) cannot be reached
- ProtocolError: the SOCKS5 exchange is malformed or the request is invalid
- ProxyRejected: the proxy answered the CONNECT request with a failure status
- StreamIOError: a short read/write or a read/write on a closed stream
- AuthFailed: the password exchange failed or the peer disconnected during it

Example:
    try:
        stream = open_proxied_stream(config, request)
    except ProxyRejected as e:
        console.print(f"[red]Proxy refused connection to target: {e.message}")
"""


class ChatError(Exception):
    """Base exception for chat errors."""


class ConfigurationError(ChatError):
    """Raised when configuration values are invalid."""


class ConnectError(ChatError):
    """Raised when a TCP connection to the proxy cannot be opened."""


class ListenError(ChatError):
    """Raised when the server cannot bind or listen on its address."""


class ProtocolError(ChatError):
    """Raised when the SOCKS5 exchange violates the protocol."""


class ProxyRejected(ChatError):
    """Raised when the proxy refuses the CONNECT request."""

    def __init__(self, status: int, message: str):
        self.status = status
        self.message = message
        super().__init__(f"SOCKS5 connection failed (0x{status:02x}): {message}")


class StreamIOError(ChatError):
    """Raised on a short read/write or use of a closed stream."""


class AuthFailed(ChatError):
    """Raised when password authentication does not succeed."""

    def __init__(self, message: str, attempts: int = 0):
        self.attempts = attempts
        super().__init__(message)


class LineTooLongError(ChatError):
    """Raised when a local line exceeds the configured maximum length."""

    def __init__(self, length: int, limit: int):
        self.length = length
        self.limit = limit
        super().__init__(f"Line of {length} bytes exceeds the {limit} byte limit")
