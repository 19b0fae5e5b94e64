"""
Board model for online TicTacToe.
Tracks the 9 cells and decides wins and draws.
"""

from enum import Enum
from typing import Dict, List, Optional, Tuple
from dataclasses import dataclass

import numpy as np


BOARD_CELLS = 9

# Value stored in an empty cell of the board vector
EMPTY = 0


class Mark(Enum):
    """Who owns a cell, relative to the local process."""
    MINE = 1
    THEIRS = 2

    def opposite(self) -> "Mark":
        """Get the other mark."""
        return Mark.THEIRS if self == Mark.MINE else Mark.MINE


class OutcomeKind(Enum):
    NONE = "none"
    WIN = "win"
    DRAW = "draw"


@dataclass(frozen=True)
class GameOutcome:
    """
    Result of the game after a move.

    Derived from the board every time, never stored on its own.
    """
    kind: OutcomeKind = OutcomeKind.NONE
    winner: Optional[Mark] = None
    line: Optional[Tuple[int, int, int]] = None

    @property
    def is_over(self) -> bool:
        return self.kind != OutcomeKind.NONE

    @classmethod
    def win(cls, mark: Mark, line: Tuple[int, int, int]) -> "GameOutcome":
        return cls(kind=OutcomeKind.WIN, winner=mark, line=line)

    @classmethod
    def draw(cls) -> "GameOutcome":
        return cls(kind=OutcomeKind.DRAW)


ONGOING = GameOutcome()


class BoardModel:
    """
    The 3x3 TicTacToe board, indexed 0-8 row by row:

         0 | 1 | 2
        ---+---+---
         3 | 4 | 5
        ---+---+---
         6 | 7 | 8

    A cell holds at most one Mark until reset().
    """

    # All possible winning lines, as cell indices
    WINNING_LINES = np.array([
        # Rows
        (0, 1, 2),
        (3, 4, 5),
        (6, 7, 8),
        # Columns
        (0, 3, 6),
        (1, 4, 7),
        (2, 5, 8),
        # Diagonals
        (0, 4, 8),
        (2, 4, 6),
    ], dtype=np.intp)

    def __init__(self):
        self.cells = np.full(BOARD_CELLS, EMPTY, dtype=np.int8)

    @staticmethod
    def in_range(index: int) -> bool:
        return 0 <= index < BOARD_CELLS

    def cell(self, index: int) -> Optional[Mark]:
        """
        Get the mark at a cell, or None if it is empty.

        Raises:
            IndexError: The index is not 0-8.
        """
        value = int(self.cells[self._check_index(index)])
        return None if value == EMPTY else Mark(value)

    def is_empty(self, index: int) -> bool:
        return bool(self.cells[self._check_index(index)] == EMPTY)

    def _check_index(self, index: int) -> int:
        # numpy would wrap negative indices around to the other end
        if not self.in_range(index):
            raise IndexError(f"cell {index} is not on the board")
        return index

    def mark(self, index: int, mark: Mark) -> bool:
        """
        Put a mark on a cell.

        Args:
            index: Cell index (0-8).
            mark: The mark to place.

        Returns:
            True if the cell was empty and is now marked, False otherwise.
        """
        if not self.in_range(index) or not self.is_empty(index):
            return False

        self.cells[index] = mark.value
        return True

    def empty_cells(self) -> List[int]:
        """Get the indices of all empty cells."""
        return [int(i) for i in np.flatnonzero(self.cells == EMPTY)]

    def winning_line(self, mark: Mark) -> Optional[Tuple[int, int, int]]:
        """
        Get the first complete line held by a mark.

        Returns:
            The line as a tuple of 3 cell indices, or None.
        """
        complete = np.all(self.cells[self.WINNING_LINES] == mark.value, axis=1)
        hits = np.flatnonzero(complete)
        if hits.size == 0:
            return None
        return tuple(int(i) for i in self.WINNING_LINES[hits[0]])

    def is_winner(self, mark: Mark) -> bool:
        return self.winning_line(mark) is not None

    def is_full(self) -> bool:
        return not np.any(self.cells == EMPTY)

    def outcome(self) -> GameOutcome:
        """
        Work out the game result.

        A win is checked before a draw, so a full board that contains
        a winning line is always a win.
        """
        for mark in Mark:
            line = self.winning_line(mark)
            if line is not None:
                return GameOutcome.win(mark, line)

        if self.is_full():
            return GameOutcome.draw()

        return ONGOING

    def reset(self):
        """Clear every cell."""
        self.cells.fill(EMPTY)

    def copy(self) -> "BoardModel":
        new_board = BoardModel()
        new_board.cells = self.cells.copy()
        return new_board

    def render(self, symbols: Dict[Mark, str]) -> str:
        """
        Draw the board as text.

        Args:
            symbols: The symbol to print for each mark, e.g. {MINE: "O"}.
                Empty cells show their index.
        """
        rows = []
        for row in range(3):
            items = []
            for col in range(3):
                index = row * 3 + col
                mark = self.cell(index)
                items.append(symbols[mark] if mark else str(index))
            rows.append(" " + " | ".join(items))
        return "\n---+---+---\n".join(rows)
