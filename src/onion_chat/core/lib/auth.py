"""Password challenge/response between the two chat peers.

Runs over the stream once the proxy relays it. The server (responder) sends a
prompt and compares each reply with the shared secret; the client (initiator)
watches for prompts and answers them with locally entered secrets. The text
lines below are the whole protocol: there is no framing, so the initiator
recognizes prompts and outcomes by substring.

Note that any server line containing "password" counts as a prompt for the
initiator, including ordinary text that happens to contain the word.

This provides a shared-secret gate only. The secret crosses the stream in
plaintext.
"""

import hmac
from collections.abc import Callable
from dataclasses import dataclass
from typing import Final

from loguru import logger

from onion_chat.core.exceptions import AuthFailed, StreamIOError
from onion_chat.core.stream import ChatStream
from onion_chat.core.utils.utils import strip_line_terminators

DEFAULT_MAX_ATTEMPTS: Final = 3

PASSWORD_PROMPT: Final = "Enter password: "
SUCCESS_MESSAGE: Final = "Authentication successful! Welcome to the secure chat.\n"
RETRY_MESSAGE: Final = "Authentication failed. Please try again.\n"
EXHAUSTED_MESSAGE: Final = "Maximum authentication attempts exceeded. Connection closed.\n"

SUCCESS_MARKER: Final = "Authentication successful"
EXHAUSTED_MARKER: Final = "Maximum authentication attempts"
PROMPT_KEYWORD: Final = "password"

# Called with (attempt, max_attempts); returns None when local input is closed
SecretReader = Callable[[int, int], "str | None"]


def is_success_marker(text: str) -> bool:
    return SUCCESS_MARKER in text


def is_exhaustion_marker(text: str) -> bool:
    return EXHAUSTED_MARKER in text


def looks_like_prompt(text: str) -> bool:
    """Whether a server line asks for the password (case-insensitive)."""
    return PROMPT_KEYWORD in text.lower()


@dataclass
class AuthSession:
    """Attempt counter for one connection's authentication."""

    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    attempts: int = 0
    concluded: bool = False

    @classmethod
    def for_stream(cls, stream: ChatStream, max_attempts: int = DEFAULT_MAX_ATTEMPTS) -> "AuthSession":
        """Create the session for ``stream``; a stream gets at most one."""
        if stream.auth_started:
            raise AuthFailed("Authentication already ran on this connection")
        stream.auth_started = True
        return cls(max_attempts=max_attempts)

    @property
    def exhausted(self) -> bool:
        return self.attempts >= self.max_attempts

    def record_attempt(self) -> None:
        if self.concluded:
            raise AuthFailed("Authentication session already concluded", self.attempts)
        self.attempts += 1

    def conclude(self) -> None:
        self.concluded = True

    def fail(self, message: str) -> AuthFailed:
        """Conclude the session and build the error to raise."""
        self.conclude()
        return AuthFailed(message, self.attempts)


def authenticate_peer(stream: ChatStream, secret: str, session: AuthSession) -> bool:
    """Challenge the connected peer for ``secret`` (server side).

    Returns:
        True once the peer supplied the secret

    Raises:
        AuthFailed: When attempts run out or the peer disconnects
    """
    if session.concluded:
        raise AuthFailed("Authentication session already concluded", session.attempts)

    expected = secret.encode("utf-8")
    try:
        while not session.exhausted:
            stream.send_text(PASSWORD_PROMPT)

            attempt = stream.read_line()
            if attempt is None:
                raise session.fail("Peer disconnected during authentication")

            matched = hmac.compare_digest(attempt.encode("utf-8"), expected)
            logger.info(
                f"Authentication attempt {session.attempts + 1} from {stream.peer}: "
                f"{'SUCCESS' if matched else 'FAILED'}"
            )
            if matched:
                stream.send_text(SUCCESS_MESSAGE)
                session.conclude()
                return True

            session.record_attempt()
            if session.exhausted:
                stream.send_text(EXHAUSTED_MESSAGE)
                raise session.fail("Maximum authentication attempts exceeded")
            stream.send_text(RETRY_MESSAGE)
    except StreamIOError as e:
        raise session.fail(f"Connection lost during authentication: {e}") from e

    raise session.fail("Maximum authentication attempts exceeded")


def authenticate_with_server(
    stream: ChatStream,
    read_secret: SecretReader,
    session: AuthSession,
    on_message: Callable[[str], None] | None = None,
) -> bool:
    """Answer the server's password prompts (client side).

    Args:
        stream: Stream relayed to the server
        read_secret: Supplies the secret for each honored prompt
        session: Attempt counter for this connection
        on_message: Receives every server line for display

    Returns:
        True once the server reports success

    Raises:
        AuthFailed: On the exhaustion marker, a prompt beyond the attempt
            limit, missing local input, or a disconnect
    """
    if session.concluded:
        raise AuthFailed("Authentication session already concluded", session.attempts)

    logger.info("Starting authentication")
    try:
        while True:
            text = stream.read_line()
            if text is None:
                raise session.fail("Server disconnected during authentication")

            if on_message is not None:
                on_message(text)

            if is_success_marker(text):
                session.conclude()
                logger.info(f"Authenticated after {session.attempts} attempt(s)")
                return True

            if is_exhaustion_marker(text):
                raise session.fail("Maximum authentication attempts exceeded")

            if not looks_like_prompt(text):
                continue

            if session.exhausted:
                raise session.fail("Too many authentication attempts")

            session.record_attempt()
            secret = read_secret(session.attempts, session.max_attempts)
            if secret is None:
                raise session.fail("No password entered")
            stream.send_text(strip_line_terminators(secret))
    except StreamIOError as e:
        raise session.fail(f"Connection lost during authentication: {e}") from e
