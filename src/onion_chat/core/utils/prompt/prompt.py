"""Base prompt handling and UI components."""

from datetime import datetime

from prompt_toolkit import prompt
from rich.console import Console

console = Console()


class PromptHandler:
    """Base class for handling terminal prompts and UI."""

    def __init__(self, show_timestamps: bool = False, output: Console | None = None) -> None:
        """Initialize the PromptHandler.

        Args:
            show_timestamps: Prefix each printed line with the local time
            output: Console to print to (default: the module console)
        """
        self.console = output or console
        self.show_timestamps = show_timestamps

    def _stamp(self) -> str:
        if not self.show_timestamps:
            return ""
        return f"[yellow][{datetime.now():%H:%M:%S}][/yellow] "

    def read_secret(self, message: str) -> str | None:
        """Read a line without echoing it. Returns None on end of input."""
        try:
            return prompt(message, is_password=True)
        except EOFError:
            return None
