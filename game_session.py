"""
Game session for online TicTacToe.

Ties together:
- Rendezvous (who is HOST, who is PEER)
- The turn controller (board + turn flag)
- A receive thread reading the peer's moves

Every change to the game goes through one inbox, drained by one
dispatch thread, in the order the events arrived.
"""

import queue
import threading
from dataclasses import dataclass
from typing import List, Optional

from logic.board_model import BoardModel, GameOutcome, Mark
from logic.turn_controller import ProtocolViolation, Role, TurnController
from network.config import NetConfig
from network.errors import LinkError
from network.rendezvous import RendezvousNegotiator


# ==================== EVENTS ====================

@dataclass(frozen=True)
class LocalMove:
    """The local player clicked a cell."""
    cell: int


@dataclass(frozen=True)
class RemoteMove:
    """The peer's move arrived."""
    cell: int


@dataclass(frozen=True)
class Restart:
    """The local player chose to play again."""


@dataclass(frozen=True)
class ReceiveFailed:
    """The receive thread lost the link."""
    error: Exception


@dataclass(frozen=True)
class Shutdown:
    """The local player chose to stop."""


class SessionListener:
    """
    Receives updates from a GameSession.

    Every method is a no-op here; front ends override what they need.
    Callbacks run on the session's dispatch thread.
    """

    def on_ready(self, session: "GameSession", role: Role, my_turn: bool):
        pass

    def on_cell_marked(self, cell: int, mark: Mark):
        pass

    def on_turn_changed(self, my_turn: bool):
        pass

    def on_move_rejected(self, cell: int):
        pass

    def on_outcome(self, outcome: GameOutcome):
        pass

    def on_board_reset(self, my_turn: bool):
        pass

    def on_session_error(self, phase: str, error: Exception):
        pass

    def on_closed(self):
        pass


class GameSession:
    """
    One game connection between two players.

    Flow:
    1. Rendezvous (or a ready-made channel from a remote launch)
    2. start() - receive thread and dispatch thread begin
    3. request_local_move() / restart() from the front end
    4. close(), or a fatal error, ends the session
    """

    def __init__(self, channel, role: Role, listener: Optional[SessionListener] = None):
        """
        Args:
            channel: Connected TransportChannel.
            role: Role assigned by rendezvous.
            listener: Front end to notify. Nothing is notified if not given.
        """
        self.channel = channel
        self.role = role
        self.listener = listener or SessionListener()
        self.controller = TurnController(role, channel)

        self.inbox: "queue.Queue" = queue.Queue()

        # Remote moves that arrived after the game ended, waiting for restart
        self._deferred: List[int] = []

        self.error: Optional[Exception] = None
        self.error_phase: Optional[str] = None

        self._closing = False
        self._started = False
        self._finished = threading.Event()
        self._receiver: Optional[threading.Thread] = None
        self._worker: Optional[threading.Thread] = None

    @classmethod
    def rendezvous(
        cls,
        address: str,
        port: int,
        listener: Optional[SessionListener] = None,
        config: Optional[NetConfig] = None,
        deadline: Optional[float] = None
    ) -> "GameSession":
        """
        Meet the other player and build a session.

        Raises:
            RendezvousError: The rendezvous could not complete.
        """
        negotiator = RendezvousNegotiator(address, port, config)
        channel, role = negotiator.negotiate(deadline)
        return cls(channel, role, listener)

    # ==================== STATE ====================

    @property
    def my_turn(self) -> bool:
        return self.controller.my_turn

    @property
    def outcome(self) -> GameOutcome:
        return self.controller.outcome

    @property
    def board(self) -> BoardModel:
        return self.controller.board

    @property
    def is_finished(self) -> bool:
        return self._finished.is_set()

    # ==================== FRONT END API ====================

    def start(self):
        """Start processing moves."""
        if self._started:
            return
        self._started = True

        print(f"Session started as {self.role.value.upper()} "
              f"({'moves first' if self.role.moves_first else 'moves second'})")
        self.listener.on_ready(self, self.role, self.controller.my_turn)

        self._worker = threading.Thread(target=self._dispatch_loop, daemon=True)
        self._receiver = threading.Thread(target=self._receive_loop, daemon=True)
        self._worker.start()
        self._receiver.start()

    def request_local_move(self, cell: int):
        """Ask to play a cell. Rejections come back through the listener."""
        if not self.is_finished:
            self.inbox.put(LocalMove(cell))

    def restart(self):
        """Start a new game on the same connection."""
        if not self.is_finished:
            self.inbox.put(Restart())

    def close(self):
        """End the session without telling the peer."""
        self._closing = True
        self.inbox.put(Shutdown())
        self.channel.close()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the session ends.

        Returns:
            True if the session ended, False on timeout.
        """
        return self._finished.wait(timeout)

    # ==================== THREADS ====================

    def _receive_loop(self):
        """Read moves from the peer until the link goes down."""
        while not self._closing:
            try:
                cell = self.channel.receive()
            except LinkError as e:
                if not self._closing:
                    self.inbox.put(ReceiveFailed(e))
                return
            self.inbox.put(RemoteMove(cell))

    def _dispatch_loop(self):
        """Apply events one at a time."""
        try:
            while True:
                event = self.inbox.get()
                if isinstance(event, Shutdown):
                    break

                try:
                    self._handle(event)
                except (LinkError, ProtocolViolation) as e:
                    self._fail(e)
                    break
        finally:
            self._finish()

    def _handle(self, event):
        if isinstance(event, LocalMove):
            self._handle_local_move(event.cell)
        elif isinstance(event, RemoteMove):
            self._handle_remote_move(event.cell)
        elif isinstance(event, Restart):
            self._handle_restart()
        elif isinstance(event, ReceiveFailed) and not self._closing:
            raise event.error

    def _handle_local_move(self, cell: int):
        outcome = self.controller.request_local_move(cell)
        if outcome is None:
            self.listener.on_move_rejected(cell)
            return

        self.listener.on_cell_marked(cell, self.controller.local_mark)
        self._report(outcome)

    def _handle_remote_move(self, cell: int):
        if self.controller.outcome.is_over:
            # The peer already restarted; hold the move until we do too
            self._deferred.append(cell)
            return

        outcome = self.controller.apply_remote_move(cell)
        self.listener.on_cell_marked(cell, self.controller.remote_mark)
        self._report(outcome)

    def _handle_restart(self):
        self.controller.restart()
        self.listener.on_board_reset(self.controller.my_turn)

        pending, self._deferred = self._deferred, []
        for cell in pending:
            self._handle_remote_move(cell)

    def _report(self, outcome: GameOutcome):
        if outcome.is_over:
            self.listener.on_outcome(outcome)
        else:
            self.listener.on_turn_changed(self.controller.my_turn)

    def _fail(self, error: Exception):
        self.error = error
        self.error_phase = "in-game"
        print(f"ERROR: in-game failure: {error}")
        self.listener.on_session_error(self.error_phase, error)

    def _finish(self):
        self._closing = True
        self.channel.close()
        self.listener.on_closed()
        self._finished.set()
