"""Configuration data model."""

from dataclasses import dataclass
from typing import Final

from onion_chat.core.exceptions import ConfigurationError

DEFAULT_PROXY_HOST: Final = "127.0.0.1"
DEFAULT_PROXY_PORT: Final = 9050  # Tor SOCKS port
DEFAULT_LISTEN_HOST: Final = "127.0.0.1"
DEFAULT_LISTEN_PORT: Final = 1234
DEFAULT_PASSWORD: Final = "secret123"
DEFAULT_MAX_AUTH_ATTEMPTS: Final = 3
DEFAULT_BUFFER_SIZE: Final = 4096
MIN_BUFFER_SIZE: Final = 64


@dataclass
class ChatConfig:
    """Settings shared by the client and server.

    Attributes:
        proxy_host: Literal IP address of the SOCKS5 proxy
        proxy_port: Port of the SOCKS5 proxy
        listen_host: Address the server binds to
        listen_port: Port the server listens on
        password: Shared secret the server challenges for
        max_auth_attempts: Password rounds allowed per connection
        buffer_size: Largest single read from the stream
        max_line_length: Longest local line that may be sent
    """

    proxy_host: str = DEFAULT_PROXY_HOST
    proxy_port: int = DEFAULT_PROXY_PORT
    listen_host: str = DEFAULT_LISTEN_HOST
    listen_port: int = DEFAULT_LISTEN_PORT
    password: str = DEFAULT_PASSWORD
    max_auth_attempts: int = DEFAULT_MAX_AUTH_ATTEMPTS
    buffer_size: int = DEFAULT_BUFFER_SIZE
    max_line_length: int | None = None

    def __post_init__(self):
        """Validate configuration after initialization."""
        for name in ("proxy_port", "listen_port"):
            value = getattr(self, name)
            if not (1 <= value <= 65535):
                raise ConfigurationError(f"{name} must be between 1 and 65535, got {value}")

        if not self.password:
            raise ConfigurationError("password cannot be empty")

        if self.max_auth_attempts < 1:
            raise ConfigurationError("max_auth_attempts must be at least 1")

        if self.buffer_size < MIN_BUFFER_SIZE:
            raise ConfigurationError(f"buffer_size must be at least {MIN_BUFFER_SIZE}")

        if self.max_line_length is None:
            self.max_line_length = self.buffer_size - 1

        if not (1 <= self.max_line_length <= self.buffer_size):
            raise ConfigurationError("max_line_length must be between 1 and buffer_size")
