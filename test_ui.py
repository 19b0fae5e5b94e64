"""
Test script for the Tk front end.
Drives the game-over dialogs with the message boxes replaced, so no
display is needed.

Usage:
    python test_ui.py     # Run all tests
    pytest test_ui.py
"""

import sys
from pathlib import Path

import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent))

pytest.importorskip("tkinter")

import ui
from logic import GameOutcome, Mark, Role


class FakeWidget:
    def configure(self, **options):
        pass


class FakeSession:
    role = Role.HOST

    def __init__(self):
        self.restarts = 0
        self.closed = False

    def restart(self):
        self.restarts += 1

    def close(self):
        self.closed = True


def make_ui():
    """A TicTacToeUI with stand-in widgets instead of a Tk window."""
    window = ui.TicTacToeUI.__new__(ui.TicTacToeUI)
    window.session = FakeSession()
    window.board_cells = [FakeWidget() for _ in range(9)]
    window.turn_label = FakeWidget()
    window.exit_code = 0
    window._quitting = False
    return window


WIN = GameOutcome.win(Mark.MINE, (0, 3, 6))


def test_restart_answer_restarts(monkeypatch):
    window = make_ui()
    monkeypatch.setattr(ui.messagebox, "showinfo", lambda *args: None)
    monkeypatch.setattr(ui.messagebox, "askyesno", lambda *args: True)

    window._show_outcome(WIN)

    assert window.session.restarts == 1
    assert not window._quitting


def test_fatal_error_during_restart_prompt(monkeypatch):
    window = make_ui()
    shown = []

    def error_while_asking(*args):
        # The window was torn down by a connection error meanwhile
        window._quitting = True
        return False

    monkeypatch.setattr(ui.messagebox, "showinfo", lambda title, text: shown.append(text))
    monkeypatch.setattr(ui.messagebox, "askyesno", error_while_asking)

    window._show_outcome(WIN)

    assert "Thanks for playing!" not in shown
    assert window.session.restarts == 0
    assert not window.session.closed


def test_fatal_error_during_outcome_message(monkeypatch):
    window = make_ui()
    asked = []

    def error_while_showing(*args):
        window._quitting = True

    monkeypatch.setattr(ui.messagebox, "showinfo", error_while_showing)
    monkeypatch.setattr(ui.messagebox, "askyesno", lambda *args: asked.append(args))

    window._show_outcome(WIN)

    assert not asked
    assert window.session.restarts == 0


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-q"]))
