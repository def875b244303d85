"""Core chat library components."""

from .auth import AuthSession, authenticate_peer, authenticate_with_server
from .chat_loop import ChatLoop, LoopExit, Role
from .session import open_proxied_stream, run_client, run_server, serve_connection
from .socks_client import HandshakeRequest, Socks5Handshake
from ..stream import ChatStream

__all__ = [
    "authenticate_peer",
    "authenticate_with_server",
    "AuthSession",
    "ChatLoop",
    "ChatStream",
    "HandshakeRequest",
    "LoopExit",
    "open_proxied_stream",
    "Role",
    "run_client",
    "run_server",
    "serve_connection",
    "Socks5Handshake",
]
