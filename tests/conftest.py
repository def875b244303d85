import contextlib
import os
import socket
import threading
import time

import pytest

from onion_chat.core.stream import ChatStream

TIMEOUT = 5.0


def wait_for(predicate, timeout: float = TIMEOUT) -> None:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return
        time.sleep(0.01)
    raise AssertionError("condition not met in time")


class Worker(threading.Thread):
    """Run a blocking call in the background and hand back its outcome."""

    def __init__(self, fn, *args, **kwargs):
        super().__init__(daemon=True)
        self._call = (fn, args, kwargs)
        self.result = None
        self.error = None

    def run(self):
        fn, args, kwargs = self._call
        try:
            self.result = fn(*args, **kwargs)
        except BaseException as e:  # surfaced by outcome()
            self.error = e

    def outcome(self, timeout: float = TIMEOUT):
        self.join(timeout)
        assert not self.is_alive(), "worker did not finish"
        if self.error is not None:
            raise self.error
        return self.result


class RawPeer:
    """Test-side end of a socket, driven by hand."""

    def __init__(self, sock: socket.socket):
        sock.settimeout(TIMEOUT)
        self.sock = sock
        self.buffer = ""

    def send(self, text: str) -> None:
        self.sock.sendall(text.encode("utf-8"))

    def recv(self) -> str:
        data = self.sock.recv(4096)
        self.buffer += data.decode("utf-8")
        return data.decode("utf-8")

    def read_until(self, text: str, count: int = 1) -> str:
        while self.buffer.count(text) < count:
            if not self.recv():
                raise AssertionError(f"peer closed before {text!r} x{count}")
        return self.buffer

    def read_to_eof(self) -> str:
        while self.recv():
            pass
        return self.buffer

    def close(self) -> None:
        self.sock.close()


class RecordingUI:
    """Stands in for ChatUI and keeps everything it is asked to show."""

    def __init__(self, secrets=None):
        self.peer = []
        self.own = []
        self.notices = []
        self.warnings = []
        self.errors = []
        self.help_calls = []
        self.status_calls = []
        self.clears = 0
        self.banners = []
        self.peer_label = "Server"
        self._secrets = list(secrets or [])

    def banner(self, subtitle):
        self.banners.append(subtitle)

    def show_help(self, commands):
        self.help_calls.append(commands)

    def peer_message(self, text):
        self.peer.append(text)

    def own_message(self, text):
        self.own.append(text)

    def notice(self, text):
        self.notices.append(text)

    def success(self, text):
        self.notices.append(text)

    def warning(self, text):
        self.warnings.append(text)

    def error(self, text):
        self.errors.append(text)

    def clear(self):
        self.clears += 1

    def show_status(self, stats, peer):
        self.status_calls.append((stats, peer))

    def prompt_secret(self, attempt, max_attempts):
        return self._secrets.pop(0) if self._secrets else None


class LocalInput:
    """A select-able pipe standing in for the terminal."""

    def __init__(self):
        r, w = os.pipe()
        self.source = os.fdopen(r, "r", encoding="utf-8")
        self._writer = os.fdopen(w, "w", encoding="utf-8")

    def write(self, text: str) -> None:
        self._writer.write(text)
        self._writer.flush()

    def type(self, line: str) -> None:
        self.write(line + "\n")

    def close_writer(self) -> None:
        self._writer.close()

    def close(self) -> None:
        with contextlib.suppress(OSError):
            self._writer.close()
        with contextlib.suppress(OSError):
            self.source.close()


@pytest.fixture
def stream_pair():
    """A ChatStream and the raw peer on the other end."""
    left, right = socket.socketpair()
    stream = ChatStream(left)
    peer = RawPeer(right)
    yield stream, peer
    stream.close()
    peer.close()


@pytest.fixture
def streams():
    """Two ChatStreams connected to each other."""
    left, right = socket.socketpair()
    a, b = ChatStream(left), ChatStream(right)
    yield a, b
    a.close()
    b.close()


@pytest.fixture
def local_input():
    source = LocalInput()
    yield source
    source.close()


@pytest.fixture
def free_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]
