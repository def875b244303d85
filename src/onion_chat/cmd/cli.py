"""Command-line interface for the chat client and server.

This module provides the two entry points:
- ``client``: reach a chat server through a SOCKS5 proxy (e.g. Tor) and chat
- ``server``: listen locally, challenge one client at a time for the shared
  password, and chat with it

Every option can also be set through an ``ONION_CHAT_*`` environment
variable. Failures to connect, negotiate with the proxy, or authenticate
exit with status 1; a normal shutdown exits with 0.

Example:
    # Run from command line:
    $ onion-chat server --port 1234 --password hunter2
    $ onion-chat client abcdefghijklmnop.onion 1234
"""

import typer
from loguru import logger
from rich.console import Console
from rich.markup import escape

from onion_chat import __version__
from onion_chat.core.config import (
    DEFAULT_BUFFER_SIZE,
    DEFAULT_LISTEN_HOST,
    DEFAULT_LISTEN_PORT,
    DEFAULT_MAX_AUTH_ATTEMPTS,
    DEFAULT_PASSWORD,
    DEFAULT_PROXY_HOST,
    DEFAULT_PROXY_PORT,
    ChatConfig,
)
from onion_chat.core.exceptions import (
    AuthFailed,
    ChatError,
    ConfigurationError,
    ConnectError,
    ListenError,
    ProtocolError,
    ProxyRejected,
)
from onion_chat.core.lib.session import run_client, run_server
from onion_chat.core.lib.socks_client import HandshakeRequest
from onion_chat.core.utils.log_config import setup_logging
from onion_chat.core.utils.prompt import ChatUI

console = Console()
app = typer.Typer(help="Two-peer chat over a SOCKS5 proxy")

ENV_PREFIX = "ONION_CHAT_"


def _fail(message: str) -> None:
    console.print(f"[red]{escape(message)}")
    raise typer.Exit(1)


@app.callback()
def version_callback(
    debug: bool = typer.Option(
        default=False,
        envvar=f"{ENV_PREFIX}DEBUG",
        help="Enable debug logging",
    ),
):
    """Show version information and configure logging."""
    setup_logging(debug)
    console.print(f"[cyan]Onion Chat v{__version__}[/cyan]")


@app.command(name="client")
def start_client(
    hostname: str = typer.Argument(..., help="Target host, e.g. an .onion address"),
    port: int = typer.Argument(..., min=1, max=65535, help="Target port"),
    proxy_host: str = typer.Option(DEFAULT_PROXY_HOST, "--proxy-host", envvar=f"{ENV_PREFIX}PROXY_HOST", help="SOCKS5 proxy address"),
    proxy_port: int = typer.Option(DEFAULT_PROXY_PORT, "--proxy-port", envvar=f"{ENV_PREFIX}PROXY_PORT", help="SOCKS5 proxy port"),
    max_attempts: int = typer.Option(
        DEFAULT_MAX_AUTH_ATTEMPTS, "--max-attempts", envvar=f"{ENV_PREFIX}MAX_ATTEMPTS", help="Password prompts to answer"
    ),
    buffer_size: int = typer.Option(DEFAULT_BUFFER_SIZE, "--buffer-size", envvar=f"{ENV_PREFIX}BUFFER_SIZE", help="Read buffer size"),
):
    """Connect to a chat server through the SOCKS5 proxy."""
    try:
        config = ChatConfig(
            proxy_host=proxy_host,
            proxy_port=proxy_port,
            max_auth_attempts=max_attempts,
            buffer_size=buffer_size,
        )
    except ConfigurationError as e:
        _fail(f"Error: {e}")

    console.print(f"[cyan]Connecting to {hostname}:{port}")
    console.print(f"[yellow]Make sure the proxy is running on {proxy_host}:{proxy_port}")

    ui = ChatUI("SECURE TOR CHAT CLIENT", peer_label="Server")
    try:
        run_client(config, HandshakeRequest(hostname, port), ui)
    except ConnectError as e:
        logger.error(f"Proxy unreachable: {e}")
        _fail(f"Failed to connect to proxy: {e}")
    except ProxyRejected as e:
        logger.error(f"CONNECT rejected: {e}")
        _fail(f"Proxy refused connection to target: {e.message}")
    except ProtocolError as e:
        logger.error(f"SOCKS5 handshake failed: {e}")
        _fail(f"SOCKS5 handshake failed: {e}")
    except AuthFailed as e:
        logger.error(f"Authentication failed: {e}")
        _fail(f"Authentication failed: {e}")
    except ChatError as e:
        logger.error(f"Session failed: {e}")
        _fail(f"Error: {e}")
    except KeyboardInterrupt:
        logger.info("Interrupted")

    console.print("[green]Connection closed.")


@app.command(name="server")
def start_server(
    host: str = typer.Option(DEFAULT_LISTEN_HOST, "--host", envvar=f"{ENV_PREFIX}HOST", help="Address to listen on"),
    port: int = typer.Option(DEFAULT_LISTEN_PORT, "--port", envvar=f"{ENV_PREFIX}PORT", help="Port to listen on"),
    password: str = typer.Option(DEFAULT_PASSWORD, "--password", envvar=f"{ENV_PREFIX}PASSWORD", help="Shared password"),
    max_attempts: int = typer.Option(
        DEFAULT_MAX_AUTH_ATTEMPTS, "--max-attempts", envvar=f"{ENV_PREFIX}MAX_ATTEMPTS", help="Password attempts per client"
    ),
    buffer_size: int = typer.Option(DEFAULT_BUFFER_SIZE, "--buffer-size", envvar=f"{ENV_PREFIX}BUFFER_SIZE", help="Read buffer size"),
):
    """Serve one chat client at a time."""
    try:
        config = ChatConfig(
            listen_host=host,
            listen_port=port,
            password=password,
            max_auth_attempts=max_attempts,
            buffer_size=buffer_size,
        )
    except ConfigurationError as e:
        _fail(f"Error: {e}")

    ui = ChatUI("SECURE TOR CHAT SERVER", peer_label="Client", show_timestamps=True)
    ui.banner("Server is running")
    logger.info(f"Starting chat server on {host}:{port}")

    try:
        run_server(config, ui)
    except ListenError as e:
        logger.error(f"Cannot start server: {e}")
        _fail(f"Error: {e}")
    except KeyboardInterrupt:
        logger.info("Shutting down chat server")

    console.print("[green]Server shutdown")


if __name__ == "__main__":
    app()
