"""Duplex chat loop over the peer stream and local input.

The loop waits (no timeout) until the peer stream or the local input is
readable, and handles whichever is ready:

- peer data is shown on the UI with trailing line terminators removed
- a local line is either a command for this role, run locally, or a chat
  message written to the stream without a terminator

Reads are not reassembled into lines: whatever one read returns is shown as
one message, so a line split across two reads is shown as two messages.

The loop ends on a peer disconnect, a quit command, end of local input, or a
failed write, and always closes the stream before returning.
"""

import os
import select
from enum import Enum
from typing import IO, Final

from loguru import logger

from onion_chat.core.exceptions import LineTooLongError, StreamIOError
from onion_chat.core.lib.chat_stats import ChatStats
from onion_chat.core.stream import ChatStream
from onion_chat.core.utils.utils import check_line_length, strip_line_terminators

SHUTDOWN_MESSAGE: Final = "Server is shutting down. Goodbye!\n"
INPUT_CHUNK_SIZE: Final = 4096


class Role(Enum):
    CLIENT = "client"
    SERVER = "server"


class LoopExit(Enum):
    PEER_DISCONNECTED = "peer disconnected"
    LOCAL_QUIT = "local quit"
    INPUT_CLOSED = "input closed"
    WRITE_FAILED = "write failed"


QUIT_COMMANDS: Final = frozenset({"/quit", "/exit"})

ROLE_COMMANDS: Final = {
    Role.CLIENT: {
        "/quit": "Exit the chat",
        "/exit": "Exit the chat",
        "/help": "Show this help message",
        "/clear": "Clear the screen",
    },
    Role.SERVER: {
        "/quit": "Disconnect the client and stop the server",
        "/exit": "Disconnect the client and stop the server",
        "/status": "Show session status",
    },
}


def is_command(line: str, role: Role) -> bool:
    """Whether ``line`` is exactly one of the reserved tokens for ``role``."""
    return line in ROLE_COMMANDS[role]


class LocalLines:
    """Line splitter over the raw descriptor of the local input.

    Reads go straight to the file descriptor, so nothing is held in a Python
    buffer that ``select`` cannot see. One read may complete several lines;
    all of them are returned together.
    """

    def __init__(self, source: IO[str], chunk_size: int = INPUT_CHUNK_SIZE) -> None:
        self.source = source
        self.chunk_size = chunk_size
        self.eof = False
        self._pending = b""

    def fileno(self) -> int:
        return self.source.fileno()

    def read_lines(self) -> list[str]:
        """Read once and return the lines completed by it.

        At end of input any unterminated remainder is returned as a last line
        and ``eof`` is set.
        """
        data = os.read(self.fileno(), self.chunk_size)
        if not data:
            self.eof = True
            rest, self._pending = self._pending, b""
            return [rest.decode("utf-8", errors="replace")] if rest else []

        *complete, self._pending = (self._pending + data).split(b"\n")
        return [line.decode("utf-8", errors="replace") for line in complete]


class ChatLoop:
    """Multiplex one peer stream with local interactive input."""

    def __init__(
        self,
        stream: ChatStream,
        ui,
        role: Role,
        input_source: IO[str],
        max_line_length: int,
        stats: ChatStats | None = None,
        farewell: str | None = None,
    ) -> None:
        self.stream = stream
        self.ui = ui
        self.role = role
        self.local_lines = LocalLines(input_source)
        self.max_line_length = max_line_length
        self.stats = stats or ChatStats()
        self.farewell = farewell

    def _handle_peer(self) -> LoopExit | None:
        try:
            text = self.stream.read_line()
        except StreamIOError as e:
            logger.warning(f"Read from peer failed: {e}")
            return LoopExit.PEER_DISCONNECTED
        if text is None:
            return LoopExit.PEER_DISCONNECTED

        self.stats.message_received(len(text.encode("utf-8")))
        self.ui.peer_message(text)
        return None

    def _run_command(self, command: str) -> LoopExit | None:
        if command in QUIT_COMMANDS:
            if self.farewell:
                try:
                    self.stream.send_text(self.farewell)
                except StreamIOError as e:
                    logger.warning(f"Could not send farewell: {e}")
            return LoopExit.LOCAL_QUIT
        if command == "/help":
            self.ui.show_help(ROLE_COMMANDS[self.role])
        elif command == "/clear":
            self.ui.clear()
        elif command == "/status":
            self.ui.show_status(self.stats, self.stream.peer)
        return None

    def _handle_input(self) -> LoopExit | None:
        for raw in self.local_lines.read_lines():
            result = self._handle_line(raw)
            if result is not None:
                return result
        if self.local_lines.eof:
            return LoopExit.INPUT_CLOSED
        return None

    def _handle_line(self, raw: str) -> LoopExit | None:
        line = strip_line_terminators(raw)
        if not line:
            return None

        if is_command(line, self.role):
            return self._run_command(line)

        try:
            check_line_length(line, self.max_line_length)
        except LineTooLongError as e:
            self.ui.warning(f"Message not sent: {e}")
            return None

        try:
            sent = self.stream.send_text(line)
        except StreamIOError as e:
            logger.error(f"Send failed: {e}")
            return LoopExit.WRITE_FAILED

        self.stats.message_sent(sent)
        self.ui.own_message(line)
        return None

    def run(self) -> LoopExit:
        """Run until the session ends; the stream is closed on return."""
        logger.info(f"Chat session started with {self.stream.peer}")
        try:
            while True:
                readable, _, _ = select.select([self.stream, self.local_lines], [], [])

                if self.stream in readable:
                    result = self._handle_peer()
                    if result is not None:
                        return result

                if self.local_lines in readable:
                    result = self._handle_input()
                    if result is not None:
                        return result
        finally:
            self.stream.close()
            logger.info(f"Chat session with {self.stream.peer} ended")
