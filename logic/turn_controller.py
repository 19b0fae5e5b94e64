"""
Turn controller for online TicTacToe.

Owns the board and the turn flag. A local click and a move arriving
from the network both go through here, one at a time.
"""

import threading
from enum import Enum
from typing import Optional

from .board_model import BoardModel, GameOutcome, Mark, ONGOING


class Role(Enum):
    """
    Which side of the connection this process ended up on.

    HOST accepted the connection and moves second (the "latter").
    PEER connected out and moves first (the "former").
    """
    HOST = "host"
    PEER = "peer"

    @property
    def moves_first(self) -> bool:
        return self == Role.PEER

    @property
    def symbol(self) -> str:
        """The symbol this role plays with. The first mover uses O."""
        return "O" if self.moves_first else "X"

    def opposite(self) -> "Role":
        return Role.PEER if self == Role.HOST else Role.HOST


class ProtocolViolation(RuntimeError):
    """The peer sent a move that does not fit the game we are playing."""


class TurnController:
    """
    Enforces alternation between the local player and the remote one.

    Both entry points hold the same lock for their whole duration, so a
    local move and a remote move can never interleave mid-update.
    """

    local_mark = Mark.MINE
    remote_mark = Mark.THEIRS

    def __init__(self, role: Role, channel, board: Optional[BoardModel] = None):
        """
        Args:
            role: Role from rendezvous. Decides who moves first.
            channel: Anything with a send(cell) method.
            board: Board to drive (a new empty one by default).
        """
        self.role = role
        self.channel = channel
        self._board = board if board is not None else BoardModel()
        self._my_turn = role.moves_first
        self._outcome = ONGOING
        self._lock = threading.Lock()

    @property
    def my_turn(self) -> bool:
        return self._my_turn

    @property
    def outcome(self) -> GameOutcome:
        return self._outcome

    @property
    def board(self) -> BoardModel:
        """A snapshot of the board."""
        with self._lock:
            return self._board.copy()

    def can_move(self, cell: int) -> bool:
        return (
            self._my_turn
            and not self._outcome.is_over
            and BoardModel.in_range(cell)
            and self._board.is_empty(cell)
        )

    def request_local_move(self, cell: int) -> Optional[GameOutcome]:
        """
        Play a cell for the local player.

        Args:
            cell: Cell index (0-8).

        Returns:
            The outcome after the move, or None if the move was rejected
            (not our turn, game over, or cell taken).

        Raises:
            LinkError: The move could not be sent to the peer.
        """
        with self._lock:
            if not self.can_move(cell):
                return None

            self._board.mark(cell, self.local_mark)
            self._my_turn = False
            self.channel.send(cell)

            self._outcome = self._board.outcome()
            return self._outcome

    def apply_remote_move(self, cell: int) -> GameOutcome:
        """
        Play a cell for the remote player.

        Raises:
            ProtocolViolation: The cell is out of range or already taken,
                or the peer moved out of turn.
        """
        with self._lock:
            if self._my_turn:
                raise ProtocolViolation(f"peer played cell {cell} out of turn")
            if self._outcome.is_over:
                raise ProtocolViolation(f"peer played cell {cell} after the game ended")
            if not BoardModel.in_range(cell):
                raise ProtocolViolation(f"peer played cell {cell}, which does not exist")
            if not self._board.mark(cell, self.remote_mark):
                raise ProtocolViolation(f"peer played cell {cell}, which is already occupied")

            self._my_turn = True
            self._outcome = self._board.outcome()
            return self._outcome

    def restart(self):
        """Clear the board and give the first move back to the first mover."""
        with self._lock:
            self._board.reset()
            self._my_turn = self.role.moves_first
            self._outcome = ONGOING
