"""Session orchestration for both peers.

Chains the stages of a connection, handing the same stream from one to the
next:

    connect -> SOCKS5 handshake -> authentication -> chat loop   (client)
    accept  -> authentication -> chat loop                      (server)

A failing stage raises and the stream is closed before the error reaches
the caller; later stages never run. The server handles one connection at a
time and keeps accepting after a peer leaves or fails authentication.

Example:
    config = ChatConfig()
    run_client(config, HandshakeRequest("abcdefghijklmnop.onion", 1234), ui)
"""

import sys
from typing import IO, Final

from loguru import logger

from onion_chat.core.config import ChatConfig
from onion_chat.core.exceptions import AuthFailed, ChatError
from onion_chat.core.lib.auth import (
    AuthSession,
    SecretReader,
    authenticate_peer,
    authenticate_with_server,
)
from onion_chat.core.lib.chat_loop import ROLE_COMMANDS, SHUTDOWN_MESSAGE, ChatLoop, LoopExit, Role
from onion_chat.core.lib.chat_stats import ChatStats
from onion_chat.core.lib.socks_client import HandshakeRequest, Socks5Handshake
from onion_chat.core.stream import ChatStream
from onion_chat.core.network import connect_tcp, open_listener

WELCOME_MESSAGE: Final = "Welcome to the secure chat server! Type your messages.\n"

# Ending the server's chat loop this way stops the whole server
SERVER_STOP_EXITS: Final = frozenset({LoopExit.LOCAL_QUIT, LoopExit.INPUT_CLOSED})


def open_proxied_stream(config: ChatConfig, request: HandshakeRequest) -> ChatStream:
    """Connect to the proxy and CONNECT through it to ``request``'s target."""
    stream = connect_tcp(config.proxy_host, config.proxy_port, config.buffer_size)
    try:
        Socks5Handshake(stream, request).run()
    except Exception:
        stream.close()
        raise
    return stream


def run_client(
    config: ChatConfig,
    request: HandshakeRequest,
    ui,
    input_source: IO[str] | None = None,
    read_secret: SecretReader | None = None,
) -> LoopExit:
    """Run a full client session and return how the chat ended.

    Raises:
        ConnectError, ProtocolError, ProxyRejected, StreamIOError, AuthFailed
    """
    stream = open_proxied_stream(config, request)
    ui.success(f"Connected to {request.domain}:{request.port} via proxy")

    with stream:
        session = AuthSession.for_stream(stream, config.max_auth_attempts)
        authenticate_with_server(
            stream,
            read_secret or ui.prompt_secret,
            session,
            on_message=ui.peer_message,
        )

        ui.banner("Connection established")
        ui.show_help(ROLE_COMMANDS[Role.CLIENT])
        ui.success("You are now connected! Start chatting...")

        loop = ChatLoop(
            stream,
            ui,
            Role.CLIENT,
            input_source or sys.stdin,
            config.max_line_length,
        )
        result = loop.run()

    if result is LoopExit.PEER_DISCONNECTED:
        ui.error("Server disconnected")
    else:
        ui.warning("Disconnecting...")
    return result


def serve_connection(stream: ChatStream, config: ChatConfig, ui, input_source: IO[str]) -> LoopExit | None:
    """Authenticate one accepted peer and chat with it.

    Returns:
        How the chat ended, or None if the peer failed authentication
    """
    with stream:
        session = AuthSession.for_stream(stream, config.max_auth_attempts)
        try:
            authenticate_peer(stream, config.password, session)
        except AuthFailed as e:
            logger.warning(f"Client {stream.peer} failed authentication: {e}")
            ui.error(f"Client failed authentication: {e}")
            return None

        ui.success("Client authenticated successfully")
        stream.send_text(WELCOME_MESSAGE)

        loop = ChatLoop(
            stream,
            ui,
            Role.SERVER,
            input_source,
            config.max_line_length,
            stats=ChatStats(),
            farewell=SHUTDOWN_MESSAGE,
        )
        result = loop.run()

    if result is LoopExit.PEER_DISCONNECTED:
        ui.error("Client disconnected")
    return result


def run_server(config: ChatConfig, ui, input_source: IO[str] | None = None) -> None:
    """Accept and serve one client at a time until a local quit."""
    input_source = input_source or sys.stdin
    listener = open_listener(config.listen_host, config.listen_port)
    ui.notice(f"Server listening on {config.listen_host}:{config.listen_port}")

    with listener:
        while True:
            ui.notice("Waiting for incoming connections...")
            try:
                conn, addr = listener.accept()
            except OSError as e:
                logger.warning(f"Accept failed: {e}")
                continue

            ui.peer_label = f"Client {addr[0]}:{addr[1]}"
            ui.success(f"New client connected from {addr[0]}:{addr[1]}")
            try:
                result = serve_connection(ChatStream(conn, config.buffer_size), config, ui, input_source)
            except ChatError as e:
                logger.warning(f"Connection from {addr} aborted: {e}")
                result = None
            finally:
                ui.notice(f"Connection with {addr[0]}:{addr[1]} closed")

            if result in SERVER_STOP_EXITS:
                ui.notice("Server shutting down...")
                return
