import io

from rich.console import Console

from onion_chat.core.lib.chat_loop import ROLE_COMMANDS, Role
from onion_chat.core.lib.chat_stats import ChatStats
from onion_chat.core.utils.prompt import ChatUI


def make_ui(**kwargs):
    buffer = io.StringIO()
    console = Console(file=buffer, width=120, color_system=None)
    return ChatUI("SECURE TOR CHAT CLIENT", output=console, **kwargs), buffer


def test_peer_text_is_not_markup():
    ui, buffer = make_ui()

    ui.peer_message("[bold]not bold[/bold]")

    assert "Server: [bold]not bold[/bold]" in buffer.getvalue()


def test_server_lines_have_timestamps():
    ui, buffer = make_ui(peer_label="Client 127.0.0.1:5000", show_timestamps=True)

    ui.peer_message("hi")

    output = buffer.getvalue()
    assert output.startswith("[")
    assert "Client 127.0.0.1:5000: hi" in output


def test_help_lists_role_commands():
    ui, buffer = make_ui()

    ui.show_help(ROLE_COMMANDS[Role.CLIENT])

    for command in ("/quit", "/help", "/clear"):
        assert command in buffer.getvalue()


def test_status_table():
    ui, buffer = make_ui()
    stats = ChatStats()
    stats.message_sent(2048)
    stats.message_received(10)

    ui.show_status(stats, ("127.0.0.1", 5000))

    output = buffer.getvalue()
    assert "127.0.0.1:5000" in output
    assert "2.0 KB sent" in output
    assert "Messages received" in output
    assert "Started" in output
