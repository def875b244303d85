"""Core chat implementation.

This package contains the protocol and session components:
- Stream handle and TCP connector
- SOCKS5 client handshake
- Password authentication between the peers
- Duplex chat loop
- Configuration, errors and logging

The command-line interface lives in ``onion_chat.cmd`` and only wires
these components to the terminal.
"""
