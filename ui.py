"""
OnlineTicTacToe UI
A graphical board for online TicTacToe using Tkinter.

Shows:
- The 3x3 board (click a cell to play it)
- Which side you are and whose turn it is
- Game over and restart prompts
"""

import threading
import tkinter as tk
from tkinter import messagebox, ttk
from typing import Callable, Dict, Optional

from console import describe_outcome, mark_symbols
from game_session import GameSession, SessionListener
from logic.board_model import GameOutcome, Mark
from logic.turn_controller import Role
from network.errors import RendezvousError, UsageError


# Builds a connected session for the given listener (rendezvous or remote launch)
SessionFactory = Callable[[SessionListener], GameSession]


class TicTacToeUI(SessionListener):
    """
    Main UI class for online TicTacToe.

    Session callbacks arrive on the session's thread, so every widget
    update is handed to the Tk thread with root.after().
    """

    COLORS = {
        "background": '#1a1a2e',
        "cell": '#16213e',
        "mine": '#10b981',
        "theirs": '#f87171',
        "win": '#ffd700',
    }

    def __init__(self, connect: SessionFactory):
        """
        Args:
            connect: Called on a background thread to build the session.
        """
        self.connect = connect
        self.session: Optional[GameSession] = None
        self.symbols: Dict[Mark, str] = {}
        self.exit_code = 0
        self._quitting = False

        self._create_ui()

    def _create_ui(self):
        """Create the Tkinter UI."""
        self.root = tk.Tk()
        self.root.title("OnlineTicTacToe")
        self.root.configure(bg=self.COLORS["background"])
        self.root.resizable(False, False)

        style = ttk.Style()
        style.theme_use('clam')
        style.configure('TFrame', background=self.COLORS["background"])
        style.configure('TLabel', background=self.COLORS["background"], foreground='white', font=('Segoe UI', 11))
        style.configure('Status.TLabel', font=('Segoe UI', 12), foreground='#ffd700')

        main_frame = ttk.Frame(self.root)
        main_frame.pack(fill=tk.BOTH, expand=True, padx=10, pady=10)

        self.board_frame = ttk.Frame(main_frame)
        self.board_frame.pack(pady=10)

        self.board_cells = []
        for index in range(9):
            cell = tk.Button(
                self.board_frame,
                text="",
                font=('Segoe UI', 24, 'bold'),
                width=4,
                height=2,
                bg=self.COLORS["cell"],
                fg='white',
                relief='ridge',
                borderwidth=2,
                state='disabled',
                command=lambda i=index: self._on_cell_clicked(i)
            )
            cell.grid(row=index // 3, column=index % 3, padx=2, pady=2)
            self.board_cells.append(cell)

        self.status_label = ttk.Label(main_frame, text="Connecting...", style='Status.TLabel')
        self.status_label.pack(pady=5)

        self.turn_label = ttk.Label(main_frame, text="Turn: -")
        self.turn_label.pack()

        self.root.protocol("WM_DELETE_WINDOW", self._quit)

    # ==================== STARTUP ====================

    def _connect(self):
        """Build and start the session (runs in background thread)."""
        try:
            session = self.connect(self)
        except (RendezvousError, UsageError, OSError) as e:
            print(f"ERROR: rendezvous failed: {e}")
            self.root.after(0, lambda err=e: self._fatal("rendezvous", err))
            return

        session.start()

    def _on_cell_clicked(self, index: int):
        if self.session is not None:
            self.session.request_local_move(index)

    # ==================== SESSION CALLBACKS ====================

    def on_ready(self, session, role, my_turn):
        self.session = session
        self.symbols = mark_symbols(role)
        self.root.after(0, lambda: self._show_ready(role, my_turn))

    def on_cell_marked(self, cell, mark):
        self.root.after(0, lambda: self._draw_cell(cell, mark))

    def on_turn_changed(self, my_turn):
        self.root.after(0, lambda: self._show_turn(my_turn))

    def on_outcome(self, outcome):
        self.root.after(0, lambda: self._show_outcome(outcome))

    def on_board_reset(self, my_turn):
        self.root.after(0, lambda: self._clear_board(my_turn))

    def on_session_error(self, phase, error):
        self.root.after(0, lambda: self._fatal(phase, error))

    # ==================== WIDGET UPDATES (Tk thread) ====================

    def _show_ready(self, role: Role, my_turn: bool):
        side = "former" if role.moves_first else "latter"
        self.root.title(f"OnlineTicTacToe({side}) {role.symbol}")
        self.status_label.configure(text=f"You play {role.symbol}")
        self._clear_board(my_turn)

    def _draw_cell(self, cell: int, mark: Mark):
        color = self.COLORS["mine"] if mark == Mark.MINE else self.COLORS["theirs"]
        self.board_cells[cell].configure(
            text=self.symbols[mark],
            state='disabled',
            disabledforeground=color
        )

    def _show_turn(self, my_turn: bool):
        self.turn_label.configure(text="Turn: you" if my_turn else "Turn: opponent")

    def _clear_board(self, my_turn: bool):
        for cell in self.board_cells:
            cell.configure(text="", state='normal', bg=self.COLORS["cell"])
        self._show_turn(my_turn)

    def _show_outcome(self, outcome: GameOutcome):
        for index in outcome.line or ():
            self.board_cells[index].configure(bg=self.COLORS["win"])
        for cell in self.board_cells:
            cell.configure(state='disabled')

        self.turn_label.configure(text="Game Over")
        messagebox.showinfo("Game Over", describe_outcome(outcome, self.session.role))
        # A fatal error may have closed the window while the dialog was up
        if self._quitting:
            return

        restart = messagebox.askyesno("Game Over", "Wanna restart?")
        if self._quitting:
            return

        if restart:
            self.session.restart()
        else:
            messagebox.showinfo("Game Over", "Thanks for playing!")
            self._quit()

    def _fatal(self, phase: str, error: Exception):
        if self._quitting:
            return
        self.exit_code = 1
        for cell in self.board_cells:
            cell.configure(state='disabled')
        messagebox.showerror("OnlineTicTacToe", f"Connection problem ({phase}):\n{error}")
        self._quit()

    def _quit(self):
        """Quit the application."""
        if self._quitting:
            return
        self._quitting = True
        print("Quitting...")
        if self.session is not None:
            self.session.close()

        self.root.quit()
        self.root.destroy()

    def run(self) -> int:
        """
        Run the UI main loop.

        Returns:
            Process exit status.
        """
        threading.Thread(target=self._connect, daemon=True).start()
        self.root.mainloop()
        return self.exit_code
