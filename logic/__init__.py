"""
Logic module for online TicTacToe.
Handles the board, turn order, and the autoplayer.
"""

from .board_model import BoardModel, Mark, GameOutcome, OutcomeKind
from .turn_controller import TurnController, Role, ProtocolViolation
from .auto_player import AutoPlayer
