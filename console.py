"""
Headless front ends for online TicTacToe.

- ConsoleListener: play from the terminal by typing cell numbers
- AutoPlayListener: let the autoplayer play for this side
"""

import threading
from typing import Dict, Optional

from game_session import GameSession, SessionListener
from logic.auto_player import AutoPlayer
from logic.board_model import GameOutcome, Mark
from logic.turn_controller import Role


def mark_symbols(role: Role) -> Dict[Mark, str]:
    """Map relational marks to the symbols shown on screen."""
    return {Mark.MINE: role.symbol, Mark.THEIRS: role.opposite().symbol}


def describe_outcome(outcome: GameOutcome, role: Role) -> str:
    if outcome.winner is None:
        return "It's a DRAW!"
    symbol = mark_symbols(role)[outcome.winner]
    who = "You win" if outcome.winner == Mark.MINE else "Opponent wins"
    return f"{symbol} won! {who}."


class ConsoleListener(SessionListener):
    """Prints the board to the terminal after every change."""

    def __init__(self):
        self.session: Optional[GameSession] = None
        self.symbols: Dict[Mark, str] = {}

        # Set while the game is over and we wait for "play again?"
        self.awaiting_restart = threading.Event()

    def on_ready(self, session, role, my_turn):
        self.session = session
        self.symbols = mark_symbols(role)
        print("\n" + "=" * 60)
        print(f"   OnlineTicTacToe ({'former' if role.moves_first else 'latter'}) "
              f"- you play {role.symbol}")
        print("=" * 60)
        self._print_board()
        self._print_turn(my_turn)

    def on_cell_marked(self, cell, mark):
        who = "You" if mark == Mark.MINE else "Opponent"
        print(f"\n>>> {who} played {self.symbols[mark]} at cell {cell}")
        self._print_board()

    def on_turn_changed(self, my_turn):
        self._print_turn(my_turn)

    def on_move_rejected(self, cell):
        print(f"WARNING: cell {cell} can't be played right now.")

    def on_outcome(self, outcome):
        print("\n" + "=" * 60)
        print(f"   GAME OVER! {describe_outcome(outcome, self.session.role)}")
        print("=" * 60)
        print("Wanna restart? [y/n]")
        self.awaiting_restart.set()

    def on_board_reset(self, my_turn):
        print("\nNew game!")
        self._print_board()
        self._print_turn(my_turn)

    def on_session_error(self, phase, error):
        print(f"ERROR ({phase}): {error}")

    def on_closed(self):
        print("Thanks for playing!")

    def _print_board(self):
        print()
        print(self.session.board.render(self.symbols))

    def _print_turn(self, my_turn: bool):
        if my_turn:
            print("Your turn: enter a cell number (0-8).")
        else:
            print("Waiting for the opponent...")

    def handle_line(self, line: str):
        """Turn one line of terminal input into a session request."""
        text = line.strip().lower()
        if not text:
            return

        if self.awaiting_restart.is_set():
            if text in ("y", "yes"):
                self.awaiting_restart.clear()
                self.session.restart()
            elif text in ("n", "no"):
                self.awaiting_restart.clear()
                self.session.close()
            else:
                print("Please answer y or n.")
            return

        if text in ("q", "quit"):
            self.session.close()
            return

        try:
            cell = int(text)
        except ValueError:
            print(f"WARNING: '{text}' is not a cell number.")
            return
        self.session.request_local_move(cell)


def run_console(session: GameSession, listener: ConsoleListener):
    """Feed terminal input to the session until it ends."""
    def read_input():
        while not session.is_finished:
            try:
                line = input()
            except EOFError:
                session.close()
                return
            listener.handle_line(line)

    threading.Thread(target=read_input, daemon=True).start()
    session.wait()


class AutoPlayListener(SessionListener):
    """
    Plays this side with the autoplayer.

    After each game it restarts, until max_games games have been
    played (forever if max_games is None).
    """

    def __init__(self, player: Optional[AutoPlayer] = None, max_games: Optional[int] = None):
        self.player = player or AutoPlayer()
        self.max_games = max_games
        self.games_played = 0
        self.session: Optional[GameSession] = None

    def on_ready(self, session, role, my_turn):
        self.session = session
        print(f"Autoplay: got started as {role.value}.")
        if my_turn:
            self._play()

    def on_cell_marked(self, cell, mark):
        if mark == Mark.MINE:
            print(f"Autoplay: I played {cell}")
        else:
            print(f"Autoplay: opponent played {cell}")

    def on_turn_changed(self, my_turn):
        if my_turn:
            self._play()

    def on_board_reset(self, my_turn):
        if my_turn:
            self._play()

    def on_outcome(self, outcome):
        self.games_played += 1
        print(f"Autoplay: game {self.games_played} over, {describe_outcome(outcome, self.session.role)}")

        if self.max_games is not None and self.games_played >= self.max_games:
            self.session.close()
        else:
            self.session.restart()

    def on_session_error(self, phase, error):
        print(f"Autoplay: ERROR ({phase}): {error}")

    def _play(self):
        cell = self.player.choose_move(self.session.board)
        if cell is not None:
            self.session.request_local_move(cell)
