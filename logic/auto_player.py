"""
Autoplayer for online TicTacToe.
Picks a random empty cell whenever it is its turn.
"""

import random
from typing import Optional

from .board_model import BoardModel


class AutoPlayer:
    """
    A very simple opponent: every move is a uniformly random empty cell.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        """
        Args:
            rng: Random source. Pass a seeded one to get repeatable games.
        """
        self.rng = rng or random.Random()

        # How many moves it has picked (for the log)
        self.moves_played = 0

    def choose_move(self, board: BoardModel) -> Optional[int]:
        """
        Pick the next cell to play.

        Args:
            board: Current board.

        Returns:
            A cell index, or None if the board is full.
        """
        empty_cells = board.empty_cells()
        if not empty_cells:
            return None

        self.moves_played += 1
        return self.rng.choice(empty_cells)
