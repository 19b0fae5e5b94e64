"""
Rendezvous for online TicTacToe.

Two copies of the program are started with the same address and port.
Neither knows who should serve. Whoever manages to accept a connection
becomes the HOST; whoever manages to connect out becomes the PEER.
"""

import errno
import os
import socket
import time
from typing import Optional, Tuple

from logic.turn_controller import Role

from .channel import TransportChannel
from .config import NetConfig
from .errors import ChannelError, RendezvousError, UsageError


def resolve_address(address: str) -> str:
    """
    Resolve a host name to an IPv4 address.

    Raises:
        UsageError: The name does not resolve.
    """
    try:
        return socket.gethostbyname(address)
    except (socket.gaierror, UnicodeError) as e:
        raise UsageError(f"cannot resolve address {address!r}: {e}") from e


def is_local_address(ip: str) -> bool:
    """
    Check whether an IPv4 address points back at this machine.

    Only an address that belongs to one of our interfaces can be bound,
    so a successful bind on an ephemeral port answers the question.
    """
    if ip.startswith("127.") or ip == "0.0.0.0":
        return True

    probe = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        probe.bind((ip, 0))
    except OSError:
        return False
    finally:
        probe.close()
    return True


def outbound_wins(own_ip: str, other_ip: str) -> bool:
    """
    Pick one of two crossing connections.

    Both sides see the same pair of addresses, so both keep the
    connection opened by the lower address.
    """
    return socket.inet_aton(own_ip) < socket.inet_aton(other_ip)


class RendezvousNegotiator:
    """
    Turns two unconnected processes into one connected, role-assigned pair.

    Algorithm:
    1. Try to listen on the port. If it is already taken, another copy
       on this machine holds it, so only ever connect out.
    2. Otherwise poll: accept for POLL_INTERVAL seconds, then (only when
       the target is another machine) try one connect out.
    3. The first attempt that succeeds decides the role. A connect that
       lands on our own listener is dropped. A connect that crossed one
       already queued from the target is settled by outbound_wins().
    """

    def __init__(self, address: str, port: int, config: Optional[NetConfig] = None):
        """
        Args:
            address: Address of the other player (may be this machine).
            port: Port both players use.
            config: Network configuration. Uses defaults if not provided.
        """
        self.config = config or NetConfig()
        self.address = address
        self.port = port
        self.target_ip = resolve_address(address)
        self.target_is_local = is_local_address(self.target_ip)

        # True once binding failed because the port was taken
        self.bind_denied = False

        # Local ends of connections we made to our own listener
        self._own_outbound = set()

    def _log(self, message: str):
        if self.config.VERBOSE:
            print(message)

    def negotiate(self, deadline: Optional[float] = None) -> Tuple[TransportChannel, Role]:
        """
        Run the rendezvous. Blocks until connected.

        Args:
            deadline: Optional limit in seconds. Without one, an
                unreachable target blocks forever.

        Returns:
            (channel, role)

        Raises:
            RendezvousError: The port cannot be bound, accept failed,
                or the deadline passed.
        """
        give_up_at = None if deadline is None else time.monotonic() + deadline

        self._log(f"Connecting to {self.address} on port {self.port}")
        server = self._open_listener()

        try:
            if server is None:
                conn, role = self._connect_loop(give_up_at), Role.PEER
            else:
                conn, role = self._race_loop(server, give_up_at)
        finally:
            if server is not None:
                server.close()

        conn.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        self._log(f"TCP connection established... [role = {role.value}]")
        return TransportChannel.from_socket(conn, self.config), role

    def _open_listener(self) -> Optional[socket.socket]:
        """
        Bind and listen on the port.

        Returns:
            The listening socket, or None if the port is already taken.
        """
        self._log(f"Trying to bind to port {self.port}, please wait.")
        server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        if os.name == "posix":
            server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        try:
            server.bind((self.config.BIND_ADDRESS, self.port))
            server.listen(self.config.LISTEN_BACKLOG)
        except OSError as e:
            server.close()
            if e.errno == errno.EADDRINUSE:
                self._log(f"Port {self.port} is taken, connecting out only.")
                self.bind_denied = True
                return None
            raise RendezvousError(f"cannot bind port {self.port}: {e}") from e

        server.settimeout(self.config.POLL_INTERVAL)
        return server

    def _connect(self) -> socket.socket:
        """
        Make one connection attempt.

        Raises:
            ChannelError: The attempt was refused or timed out.
        """
        try:
            return socket.create_connection(
                (self.target_ip, self.port),
                timeout=self.config.CONNECT_TIMEOUT
            )
        except OSError as e:
            raise ChannelError(f"connect to {self.target_ip}:{self.port} failed: {e}") from e

    def _accept(self, server: socket.socket) -> Optional[socket.socket]:
        """Wait up to POLL_INTERVAL for an inbound connection."""
        while True:
            try:
                conn, addr = server.accept()
            except socket.timeout:
                return None
            except OSError as e:
                raise RendezvousError(f"accept on port {self.port} failed: {e}") from e

            # The far end of a connection we made to ourselves
            if addr[:2] not in self._own_outbound:
                break
            conn.close()

        self._log(f"Accepted connection from {addr[0]}:{addr[1]}")
        return conn

    def _check_deadline(self, give_up_at: Optional[float]):
        if give_up_at is not None and time.monotonic() >= give_up_at:
            raise RendezvousError(
                f"no connection with {self.address}:{self.port} before the deadline"
            )

    def _connect_loop(self, give_up_at: Optional[float]) -> socket.socket:
        while True:
            self._check_deadline(give_up_at)
            try:
                return self._connect()
            except ChannelError:
                time.sleep(self.config.POLL_INTERVAL)

    def _race_loop(
        self,
        server: socket.socket,
        give_up_at: Optional[float]
    ) -> Tuple[socket.socket, Role]:
        self._log("Waiting for a connection request.")
        while True:
            self._check_deadline(give_up_at)

            conn = self._accept(server)
            if conn is not None:
                return conn, Role.HOST

            # A local target is our own listener, never connect to it
            if self.target_is_local:
                continue

            try:
                conn = self._connect()
            except ChannelError:
                continue  # refused, keep polling

            if self._is_own_listener(conn):
                self._log("Connected to our own listener, dropping it.")
                self._own_outbound.add(conn.getsockname())
                conn.close()
                continue

            return self._settle_crossing(server, conn)

    def _is_own_listener(self, conn: socket.socket) -> bool:
        peer_ip, peer_port = conn.getpeername()[:2]
        return peer_port == self.port and is_local_address(peer_ip)

    def _settle_crossing(
        self,
        server: socket.socket,
        outbound: socket.socket
    ) -> Tuple[socket.socket, Role]:
        """
        Check for a connection from the target that crossed ours.

        If both sides connected out in the same poll window, each also has
        the other's connection queued. Both keep the one opened by the
        lower address, so the roles still come out complementary.
        """
        server.settimeout(0.0)
        try:
            inbound, addr = server.accept()
        except BlockingIOError:
            return outbound, Role.PEER
        except OSError as e:
            outbound.close()
            raise RendezvousError(f"accept on port {self.port} failed: {e}") from e

        if addr[0] != self.target_ip:
            inbound.close()
            return outbound, Role.PEER

        own_ip = outbound.getsockname()[0]
        if outbound_wins(own_ip, self.target_ip):
            self._log("Connections crossed, keeping ours.")
            inbound.close()
            return outbound, Role.PEER

        self._log("Connections crossed, keeping theirs.")
        outbound.close()
        inbound.settimeout(None)
        return inbound, Role.HOST
