"""
Network configuration for online TicTacToe.
Ports, timing and wire format settings.
"""

import struct


class NetConfig:
    """
    Configuration class for network settings.
    Subclass or override attributes on an instance to change them.
    """

    # ==================== PORT SETTINGS ====================
    # Both players must use the same port.
    # Ports below 5000 are refused by the command line.
    MIN_PORT = 5000
    MAX_PORT = 65535
    DEFAULT_PORT = 5001

    # Interface the listening socket binds to ("" = all interfaces)
    BIND_ADDRESS = ""
    LISTEN_BACKLOG = 1

    # ==================== RENDEZVOUS TIMING ====================
    # How long each accept() waits before we try connecting out (seconds)
    POLL_INTERVAL = 1.0

    # Timeout for a single outbound connect attempt (seconds)
    CONNECT_TIMEOUT = 1.0

    # ==================== WIRE FORMAT ====================
    # Every message is a length header followed by the payload.
    # A move payload is a single unsigned byte: the cell index (0-8).
    HEADER_FORMAT = struct.Struct("!H")
    MOVE_FORMAT = struct.Struct("!B")
    CELL_COUNT = 9

    # ==================== REMOTE LAUNCH ====================
    SSH_COMMAND = "ssh"
    REMOTE_COMMAND = "python3 main.py --serve-stdio"
    REMOTE_LOG_FILE = "logs.txt"

    # ==================== DEBUG SETTINGS ====================
    VERBOSE = True
