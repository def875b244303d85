from conftest import LocalInput, RecordingUI, Worker, wait_for

from onion_chat.core.lib.auth import AuthSession, authenticate_peer, authenticate_with_server
from onion_chat.core.lib.chat_loop import SHUTDOWN_MESSAGE, ChatLoop, LoopExit, Role


def server_side(stream, ui, source):
    authenticate_peer(stream, "secret123", AuthSession.for_stream(stream, 3))
    return ChatLoop(stream, ui, Role.SERVER, source, 4095, farewell=SHUTDOWN_MESSAGE).run()


def client_side(stream, ui, source, secrets, auth_lines):
    authenticate_with_server(
        stream,
        lambda attempt, max_attempts: secrets.pop(0),
        AuthSession.for_stream(stream, 3),
        on_message=auth_lines.append,
    )
    return ChatLoop(stream, ui, Role.CLIENT, source, 4095).run()


def test_wrong_then_right_password_then_hello_both_ways(streams):
    server_stream, client_stream = streams
    server_ui, client_ui = RecordingUI(), RecordingUI()
    server_input, client_input = LocalInput(), LocalInput()
    auth_lines = []
    try:
        server = Worker(server_side, server_stream, server_ui, server_input.source)
        client = Worker(
            client_side, client_stream, client_ui, client_input.source, ["wrong", "secret123"], auth_lines
        )
        server.start()
        client.start()

        wait_for(lambda: any("successful" in line for line in auth_lines))
        transcript = "\n".join(auth_lines)
        assert transcript.count("Please try again") == 1
        assert transcript.count("Enter password") == 2

        client_input.type("hello")
        wait_for(lambda: server_ui.peer == ["hello"])
        server_input.type("hello")
        wait_for(lambda: client_ui.peer == ["hello"])

        client_input.type("/quit")
        assert client.outcome() is LoopExit.LOCAL_QUIT
        assert server.outcome() is LoopExit.PEER_DISCONNECTED
    finally:
        server_input.close()
        client_input.close()

    assert server_ui.peer == ["hello"]
    assert client_ui.peer == ["hello"]
    assert server_ui.own == ["hello"]
    assert client_ui.own == ["hello"]
