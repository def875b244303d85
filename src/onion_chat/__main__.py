"""Allow ``python -m onion_chat``."""

from onion_chat.cmd.cli import app

app(prog_name="onion-chat")
