import socket
import struct

import pytest

from onion_chat.core.exceptions import ProtocolError, ProxyRejected, StreamIOError
from onion_chat.core.lib.socks_client import (
    GREETING,
    REPLY_MESSAGES,
    UNKNOWN_REPLY,
    HandshakeRequest,
    HandshakeState,
    Socks5Handshake,
    build_connect_request,
    reply_message,
)

METHOD_OK = b"\x05\x00"
IPV4_REPLY = b"\x05\x00\x00\x01" + bytes([127, 0, 0, 1]) + struct.pack("!H", 9050)


def test_greeting_offers_only_no_auth():
    assert GREETING == b"\x05\x01\x00"


@pytest.mark.parametrize("length", [1, 2, 63, 64, 128, 254, 255])
def test_connect_request_size_and_length_byte(length):
    request = HandshakeRequest("a" * length, 1234)

    data = build_connect_request(request)

    assert len(data) == 7 + length
    assert data[:4] == b"\x05\x01\x00\x03"
    assert data[4] == length
    assert data[5 : 5 + length] == b"a" * length
    assert data[-2:] == struct.pack("!H", 1234)


def test_connect_request_length_counts_bytes_not_characters():
    data = build_connect_request(HandshakeRequest("é" * 10, 80))

    assert data[4] == 20
    assert len(data) == 27


def test_connect_request_port_is_big_endian():
    data = build_connect_request(HandshakeRequest("example.onion", 0x1F90))
    assert data[-2:] == b"\x1f\x90"


@pytest.mark.parametrize("port", [0, 65536, -1])
def test_request_rejects_out_of_range_port(port):
    with pytest.raises(ValueError):
        HandshakeRequest("example.onion", port)


def test_empty_domain_is_protocol_error():
    with pytest.raises(ProtocolError):
        build_connect_request(HandshakeRequest("", 80))


def test_oversized_domain_sends_no_request(stream_pair):
    stream, proxy = stream_pair
    proxy.sock.sendall(METHOD_OK)
    handshake = Socks5Handshake(stream, HandshakeRequest("a" * 256, 80))

    with pytest.raises(ProtocolError, match="too long"):
        handshake.run()

    assert handshake.state is HandshakeState.REJECTED
    stream.close()
    received = b""
    while True:
        data = proxy.sock.recv(4096)
        if not data:
            break
        received += data
    assert received == GREETING


def test_status_messages_are_distinct():
    messages = [reply_message(status) for status in range(0x01, 0x09)]

    assert len(set(messages)) == 8
    assert UNKNOWN_REPLY not in messages
    assert reply_message(0x05) == "Connection refused"
    assert reply_message(0x08) == "Address type not supported"


@pytest.mark.parametrize("status", [0x09, 0x42, 0xFF])
def test_unknown_status_message(status):
    assert reply_message(status) == UNKNOWN_REPLY
    assert status not in REPLY_MESSAGES


def test_successful_handshake_sends_exact_bytes(stream_pair):
    stream, proxy = stream_pair
    proxy.sock.sendall(METHOD_OK + IPV4_REPLY)
    handshake = Socks5Handshake(stream, HandshakeRequest("abc.onion", 1234))

    assert handshake.run() is stream

    assert handshake.state is HandshakeState.ESTABLISHED
    assert handshake.reply.status == 0
    assert handshake.reply.bound_addr == bytes([127, 0, 0, 1])
    assert handshake.reply.bound_port == 9050
    expected = GREETING + b"\x05\x01\x00\x03\x09abc.onion" + struct.pack("!H", 1234)
    received = b""
    while len(received) < len(expected):
        received += proxy.sock.recv(4096)
    assert received == expected


@pytest.mark.parametrize(
    "tail",
    [
        pytest.param(b"\x01" + b"\x0a\x00\x00\x01" + b"\x00\x50", id="ipv4"),
        pytest.param(b"\x03" + b"\x0bexample.com" + b"\x00\x50", id="domain"),
        pytest.param(b"\x04" + bytes(16) + b"\x00\x50", id="ipv6"),
    ],
)
def test_reply_tail_consumed_exactly(stream_pair, tail):
    stream, proxy = stream_pair
    proxy.sock.sendall(METHOD_OK + b"\x05\x00\x00" + tail + b"NEXT")

    Socks5Handshake(stream, HandshakeRequest("abc.onion", 1234)).run()

    # Anything after the reply belongs to the relayed connection
    assert stream.recv_exact(4) == b"NEXT"


def test_unsupported_reply_address_type(stream_pair):
    stream, proxy = stream_pair
    proxy.sock.sendall(METHOD_OK + b"\x05\x00\x00\x02")

    with pytest.raises(ProtocolError, match="address type"):
        Socks5Handshake(stream, HandshakeRequest("abc.onion", 1234)).run()


@pytest.mark.parametrize("status", [0x01, 0x05, 0x08, 0x77])
def test_proxy_rejection(stream_pair, status):
    stream, proxy = stream_pair
    proxy.sock.sendall(METHOD_OK + bytes([5, status, 0, 1]) + bytes(6))
    handshake = Socks5Handshake(stream, HandshakeRequest("abc.onion", 1234))

    with pytest.raises(ProxyRejected) as excinfo:
        handshake.run()

    assert excinfo.value.status == status
    assert excinfo.value.message == reply_message(status)
    assert handshake.state is HandshakeState.REJECTED


def test_greeting_short_read_is_protocol_error(stream_pair):
    stream, proxy = stream_pair
    proxy.sock.sendall(b"\x05")
    proxy.sock.shutdown(socket.SHUT_WR)

    with pytest.raises(ProtocolError):
        Socks5Handshake(stream, HandshakeRequest("abc.onion", 1234)).run()


@pytest.mark.parametrize("reply", [b"\x04\x00", b"\x05\x02", b"\x05\xff"])
def test_bad_greeting_reply(stream_pair, reply):
    stream, proxy = stream_pair
    proxy.sock.sendall(reply)
    handshake = Socks5Handshake(stream, HandshakeRequest("abc.onion", 1234))

    with pytest.raises(ProtocolError):
        handshake.run()
    assert handshake.state is HandshakeState.REJECTED


def test_reply_with_wrong_version(stream_pair):
    stream, proxy = stream_pair
    proxy.sock.sendall(METHOD_OK + b"\x04\x00\x00\x01" + bytes(6))

    with pytest.raises(ProtocolError, match="version"):
        Socks5Handshake(stream, HandshakeRequest("abc.onion", 1234)).run()


def test_short_reply_is_io_error(stream_pair):
    stream, proxy = stream_pair
    proxy.sock.sendall(METHOD_OK + b"\x05\x00")
    proxy.sock.shutdown(socket.SHUT_WR)

    with pytest.raises(StreamIOError):
        Socks5Handshake(stream, HandshakeRequest("abc.onion", 1234)).run()


def test_short_reply_tail_is_io_error(stream_pair):
    stream, proxy = stream_pair
    proxy.sock.sendall(METHOD_OK + b"\x05\x00\x00\x04" + bytes(10))
    proxy.sock.shutdown(socket.SHUT_WR)

    with pytest.raises(StreamIOError):
        Socks5Handshake(stream, HandshakeRequest("abc.onion", 1234)).run()
