"""Per-session chat statistics.

Tracks what the server's ``/status`` command reports:
- Messages and bytes exchanged in each direction
- Session uptime

One instance belongs to one chat session; the chat loop is single-threaded,
so no locking is needed.

Example:
    stats = ChatStats()
    stats.message_sent(len(data))
"""

import time
from datetime import datetime, timezone


class ChatStats:
    """Counters for one chat session."""

    def __init__(self) -> None:
        self.messages_sent = 0
        self.messages_received = 0
        self.bytes_sent = 0
        self.bytes_received = 0
        self.started_at = datetime.now(tz=timezone.utc)
        self._start = time.monotonic()

    def message_sent(self, size: int) -> None:
        self.messages_sent += 1
        self.bytes_sent += size

    def message_received(self, size: int) -> None:
        self.messages_received += 1
        self.bytes_received += size

    @property
    def uptime(self) -> float:
        """Seconds since the session started."""
        return time.monotonic() - self._start
