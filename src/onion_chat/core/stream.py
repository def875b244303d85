"""Stream handle wrapping one connected peer socket.

The stream is handed from stage to stage (handshake, authentication, chat
loop) and is closed exactly once, on whichever exit path comes first. It
provides the three read shapes the protocol needs:

- exact reads for fixed-size SOCKS5 fields
- bounded chunk reads for chat and password lines
- whole writes that either send everything or fail

Example:
    with connect_tcp("127.0.0.1", 9050) as stream:
        stream.send_all(b"\\x05\\x01\\x00")
        reply = stream.recv_exact(2)
"""

import socket

from loguru import logger

from onion_chat.core.exceptions import StreamIOError
from onion_chat.core.utils.utils import strip_line_terminators

DEFAULT_BUFFER_SIZE = 4096


class ChatStream:
    """Close-once bidirectional byte channel bound to one peer."""

    def __init__(self, sock: socket.socket, buffer_size: int = DEFAULT_BUFFER_SIZE) -> None:
        self._sock = sock
        self._buffer_size = buffer_size
        self._closed = False
        self.auth_started = False
        try:
            self.peer = sock.getpeername()
        except OSError:
            self.peer = None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def buffer_size(self) -> int:
        return self._buffer_size

    def fileno(self) -> int:
        """Return the socket descriptor so the stream can be selected on."""
        self._ensure_open()
        return self._sock.fileno()

    def _ensure_open(self) -> None:
        if self._closed:
            raise StreamIOError("Stream is closed")

    def send_all(self, data: bytes) -> None:
        """Write all of ``data`` or raise StreamIOError."""
        self._ensure_open()
        try:
            self._sock.sendall(data)
        except OSError as e:
            raise StreamIOError(f"Write failed: {e}") from e

    def send_text(self, text: str) -> int:
        """Encode ``text`` as UTF-8 and write it as-is, without a terminator."""
        data = text.encode("utf-8")
        self.send_all(data)
        return len(data)

    def recv_exact(self, size: int) -> bytes:
        """Read exactly ``size`` bytes; a peer close before that is an error."""
        self._ensure_open()
        chunks = []
        remaining = size
        while remaining > 0:
            try:
                chunk = self._sock.recv(remaining)
            except OSError as e:
                raise StreamIOError(f"Read failed: {e}") from e
            if not chunk:
                raise StreamIOError(f"Short read: expected {size} bytes, got {size - remaining}")
            chunks.append(chunk)
            remaining -= len(chunk)
        return b"".join(chunks)

    def recv_chunk(self) -> bytes:
        """Read up to the buffer size. Returns b"" when the peer disconnected."""
        self._ensure_open()
        try:
            return self._sock.recv(self._buffer_size)
        except OSError as e:
            raise StreamIOError(f"Read failed: {e}") from e

    def read_line(self) -> str | None:
        """Read one chunk as a text line with trailing terminators removed.

        Returns:
            The decoded line, or None if the peer disconnected.
        """
        data = self.recv_chunk()
        if not data:
            return None
        return strip_line_terminators(data.decode("utf-8", errors="replace"))

    def close(self) -> None:
        """Close the underlying socket. Later calls do nothing."""
        if self._closed:
            return
        self._closed = True
        try:
            self._sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            # Peer already gone
            pass
        self._sock.close()
        logger.debug(f"Stream to {self.peer} closed")

    def __enter__(self) -> "ChatStream":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
