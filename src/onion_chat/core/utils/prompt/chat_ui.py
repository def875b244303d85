"""Chat-specific UI components."""

from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from onion_chat.core.lib.chat_stats import ChatStats
from onion_chat.core.utils.prompt.prompt import PromptHandler
from onion_chat.core.utils.utils import format_bytes, format_duration


class ChatUI(PromptHandler):
    """Terminal display for one side of the chat.

    The server shows timestamps and labels peer lines with the client's
    address; the client labels them "Server".
    """

    def __init__(self, title: str, peer_label: str = "Server", show_timestamps: bool = False, output=None) -> None:
        """Initialize the chat UI.

        Args:
            title: Banner title, e.g. "SECURE TOR CHAT CLIENT"
            peer_label: Prefix for lines received from the peer
            show_timestamps: Prefix printed lines with the local time
            output: Console to print to
        """
        super().__init__(show_timestamps=show_timestamps, output=output)
        self.title = title
        self.peer_label = peer_label

    def banner(self, subtitle: str) -> None:
        """Print the banner panel."""
        body = Text(subtitle, style="green", justify="center")
        self.console.print(
            Panel(
                body,
                title=Text(self.title, style="bold magenta"),
                subtitle="Messages are sent in plaintext past the proxy",
                border_style="cyan",
                padding=(1, 2),
            )
        )

    def show_help(self, commands: dict[str, str]) -> None:
        table = Table(show_header=False, box=None, padding=(0, 1))
        table.add_column("Command", style="cyan", no_wrap=True)
        table.add_column("Description")
        for command, description in commands.items():
            table.add_row(command, description)
        table.add_row("", "Just type and press Enter to send a message")
        self.console.print(Panel(table, title="Available commands", border_style="yellow"))

    def peer_message(self, text: str) -> None:
        self.console.print(f"{self._stamp()}[blue]{escape(self.peer_label)}: {escape(text)}[/blue]")

    def own_message(self, text: str) -> None:
        self.console.print(f"{self._stamp()}[cyan]You: {escape(text)}[/cyan]")

    def notice(self, text: str) -> None:
        self.console.print(f"{self._stamp()}{escape(text)}")

    def success(self, text: str) -> None:
        self.console.print(f"{self._stamp()}[green]✓ {escape(text)}[/green]")

    def warning(self, text: str) -> None:
        self.console.print(f"{self._stamp()}[yellow]{escape(text)}[/yellow]")

    def error(self, text: str) -> None:
        self.console.print(f"{self._stamp()}[red]{escape(text)}[/red]")

    def clear(self) -> None:
        """Clear the screen and reprint the banner."""
        self.console.clear()
        self.banner("Connection established")

    def show_status(self, stats: ChatStats, peer: tuple | None) -> None:
        """Print the session status table."""
        table = Table(show_header=False, box=None, padding=(0, 1))
        table.add_column("Property", style="cyan", no_wrap=True)
        table.add_column("Value", style="green", no_wrap=True)

        peer_text = f"{peer[0]}:{peer[1]}" if peer else "unknown"
        table.add_row("Status", "Active, 1 client connected")
        table.add_row("Client", peer_text)
        table.add_row("Started", stats.started_at.astimezone().strftime("%Y-%m-%d %H:%M:%S"))
        table.add_row("Uptime", format_duration(stats.uptime))
        table.add_row("Messages sent", str(stats.messages_sent))
        table.add_row("Messages received", str(stats.messages_received))
        table.add_row(
            "Data transferred",
            f"{format_bytes(stats.bytes_sent)} sent / {format_bytes(stats.bytes_received)} received",
        )
        self.console.print(Panel(table, title=Text("Server status", style="bold cyan"), border_style="blue"))

    def prompt_secret(self, attempt: int, max_attempts: int) -> str | None:
        """Ask for the password without echo."""
        return self.read_secret(f"Enter password (attempt {attempt}/{max_attempts}): ")
