"""
Transport channel for online TicTacToe.
Carries one move at a time, in order, in both directions.
"""

import socket
import struct
import sys
import threading
from typing import Callable, Optional

from .config import NetConfig
from .errors import LinkError


class TransportChannel:
    """
    A move stream over a pair of binary streams.

    Each move is framed as a length header plus payload (see NetConfig),
    so receive() either returns a whole move or raises.
    """

    def __init__(
        self,
        reader,
        writer,
        closer: Optional[Callable[[], None]] = None,
        config: Optional[NetConfig] = None,
    ):
        """
        Args:
            reader: Binary stream the peer's moves are read from.
            writer: Binary stream our moves are written to.
            closer: Called once by close(). Defaults to closing both streams.
            config: Network configuration. Uses defaults if not provided.
        """
        self.config = config or NetConfig()
        self.reader = reader
        self.writer = writer
        self._closer = closer
        self._send_lock = threading.Lock()
        self._closed = False

    @classmethod
    def from_socket(cls, sock: socket.socket, config: Optional[NetConfig] = None) -> "TransportChannel":
        """Wrap a connected TCP socket."""
        sock.settimeout(None)
        reader = sock.makefile("rb")
        writer = sock.makefile("wb")

        def close_socket():
            try:
                sock.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass  # already disconnected
            reader.close()
            writer.close()
            sock.close()

        return cls(reader, writer, closer=close_socket, config=config)

    @classmethod
    def from_stdio(cls, config: Optional[NetConfig] = None) -> "TransportChannel":
        """Use this process's stdin/stdout as the channel (remote launch)."""
        return cls(sys.stdin.buffer, sys.stdout.buffer, config=config)

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, cell: int):
        """
        Send one move to the peer.

        Raises:
            LinkError: The link is down or the cell cannot be encoded.
        """
        try:
            payload = self.config.MOVE_FORMAT.pack(cell)
        except struct.error as e:
            raise LinkError(f"cannot encode move {cell!r}: {e}") from e

        frame = self.config.HEADER_FORMAT.pack(len(payload)) + payload

        with self._send_lock:
            try:
                self.writer.write(frame)
                self.writer.flush()
            except (OSError, ValueError) as e:
                raise LinkError(f"send failed: {e}") from e

    def receive(self) -> int:
        """
        Wait for the next move from the peer.

        Returns:
            The cell index the peer played.

        Raises:
            LinkError: The peer disconnected or sent a malformed frame.
        """
        header = self._read_exactly(self.config.HEADER_FORMAT.size)
        (length,) = self.config.HEADER_FORMAT.unpack(header)

        if length != self.config.MOVE_FORMAT.size:
            raise LinkError(f"malformed frame: payload length {length}")

        payload = self._read_exactly(length, mid_message=True)
        (cell,) = self.config.MOVE_FORMAT.unpack(payload)
        if cell >= self.config.CELL_COUNT:
            raise LinkError(f"malformed move: cell {cell}")

        return cell

    def _read_exactly(self, size: int, mid_message: bool = False) -> bytes:
        data = b""
        while len(data) < size:
            try:
                chunk = self.reader.read(size - len(data))
            except (OSError, ValueError) as e:
                raise LinkError(f"receive failed: {e}") from e

            if not chunk:
                if data or mid_message:
                    raise LinkError("connection closed in the middle of a message")
                raise LinkError("connection closed by peer")
            data += chunk
        return data

    def close(self):
        """Close the channel. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True

        if self._closer is not None:
            self._closer()
            return

        for stream in (self.writer, self.reader):
            try:
                stream.close()
            except OSError:
                pass  # already closed by the other side
