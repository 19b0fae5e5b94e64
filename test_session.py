"""
Test script for the game session.
Plays whole games between two sessions connected by a socket pair.

Usage:
    python test_session.py     # Run all tests
    pytest test_session.py
"""

import random
import socket
import sys
import threading
import time
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent))

from console import AutoPlayListener, ConsoleListener
from game_session import GameSession, SessionListener
from logic import AutoPlayer, Mark, OutcomeKind, ProtocolViolation, Role
from network import LinkError, NetConfig, TransportChannel


TIMEOUT = 5.0


def wait_until(predicate, timeout: float = TIMEOUT):
    """Poll until predicate() is true."""
    end = time.monotonic() + timeout
    while time.monotonic() < end:
        if predicate():
            return True
        time.sleep(0.01)
    raise AssertionError("timed out waiting for the session")


class RecordingListener(SessionListener):
    """Remembers every callback."""

    def __init__(self):
        self.lock = threading.Lock()
        self.marked = []
        self.rejected = []
        self.outcomes = []
        self.resets = []
        self.errors = []
        self.ready = None
        self.closed = False

    def on_ready(self, session, role, my_turn):
        self.ready = (role, my_turn)

    def on_cell_marked(self, cell, mark):
        with self.lock:
            self.marked.append((cell, mark))

    def on_move_rejected(self, cell):
        with self.lock:
            self.rejected.append(cell)

    def on_outcome(self, outcome):
        with self.lock:
            self.outcomes.append(outcome)

    def on_board_reset(self, my_turn):
        with self.lock:
            self.resets.append(my_turn)

    def on_session_error(self, phase, error):
        with self.lock:
            self.errors.append((phase, error))

    def on_closed(self):
        self.closed = True

    def saw(self, cell, mark) -> bool:
        with self.lock:
            return (cell, mark) in self.marked


def session_pair():
    """A started PEER session and HOST session talking to each other."""
    a, b = socket.socketpair()
    peer_listener, host_listener = RecordingListener(), RecordingListener()
    peer = GameSession(TransportChannel.from_socket(a), Role.PEER, peer_listener)
    host = GameSession(TransportChannel.from_socket(b), Role.HOST, host_listener)
    peer.start()
    host.start()
    return peer, peer_listener, host, host_listener


def host_against_raw_peer():
    """A started HOST session; the test drives the other end by hand."""
    a, b = socket.socketpair()
    listener = RecordingListener()
    host = GameSession(TransportChannel.from_socket(a), Role.HOST, listener)
    raw = TransportChannel.from_socket(b)
    host.start()
    return host, listener, raw


def play_moves(first, first_listener, second, second_listener, cells):
    """Alternate moves between two sessions, waiting for each to land."""
    players = [(first, second_listener), (second, first_listener)]
    for i, cell in enumerate(cells):
        mover, other_listener = players[i % 2]
        mover.request_local_move(cell)
        wait_until(lambda c=cell: other_listener.saw(c, Mark.THEIRS))


def test_ready_reports_role_and_first_mover():
    peer, peer_listener, host, host_listener = session_pair()
    try:
        assert peer_listener.ready == (Role.PEER, True)
        assert host_listener.ready == (Role.HOST, False)
    finally:
        peer.close()
        host.close()


def test_host_wins_column():
    peer, peer_listener, host, host_listener = session_pair()
    try:
        play_moves(peer, peer_listener, host, host_listener, [4, 0, 1, 3, 8, 6])

        wait_until(lambda: host_listener.outcomes and peer_listener.outcomes)
        host_outcome = host_listener.outcomes[0]
        peer_outcome = peer_listener.outcomes[0]

        assert host_outcome.kind == OutcomeKind.WIN
        assert host_outcome.winner == Mark.MINE
        assert host_outcome.line == (0, 3, 6)
        assert peer_outcome.winner == Mark.THEIRS
    finally:
        peer.close()
        host.close()


def test_draw_game():
    peer, peer_listener, host, host_listener = session_pair()
    try:
        play_moves(peer, peer_listener, host, host_listener, [0, 1, 2, 4, 3, 5, 7, 6, 8])

        wait_until(lambda: host_listener.outcomes and peer_listener.outcomes)
        assert peer_listener.outcomes[0].kind == OutcomeKind.DRAW
        assert host_listener.outcomes[0].kind == OutcomeKind.DRAW
    finally:
        peer.close()
        host.close()


def test_out_of_turn_click_is_rejected():
    peer, peer_listener, host, host_listener = session_pair()
    try:
        host.request_local_move(4)
        wait_until(lambda: host_listener.rejected == [4])

        assert host.board.empty_cells() == list(range(9))
        assert peer.board.empty_cells() == list(range(9))
    finally:
        peer.close()
        host.close()


def test_remote_move_on_taken_cell_ends_session():
    host, listener, raw = host_against_raw_peer()
    try:
        raw.send(4)
        wait_until(lambda: listener.saw(4, Mark.THEIRS))
        host.request_local_move(0)
        assert raw.receive() == 0

        raw.send(0)
        assert host.wait(TIMEOUT)

        assert isinstance(host.error, ProtocolViolation)
        assert "occupied" in str(host.error)
        assert host.error_phase == "in-game"
        assert listener.errors[0][0] == "in-game"
        assert listener.closed
    finally:
        raw.close()


def test_link_loss_ends_session():
    host, listener, raw = host_against_raw_peer()
    raw.close()

    assert host.wait(TIMEOUT)
    assert isinstance(host.error, LinkError)
    assert listener.closed


def test_voluntary_close_is_not_an_error():
    peer, peer_listener, host, host_listener = session_pair()
    peer.close()

    assert peer.wait(TIMEOUT)
    assert peer.error is None
    assert not peer_listener.errors

    # The other side is not told; it just loses the link
    assert host.wait(TIMEOUT)
    assert isinstance(host.error, LinkError)


def test_remote_move_after_game_over_waits_for_restart():
    host, listener, raw = host_against_raw_peer()
    try:
        # Peer takes the top row: 0, 1, 2 against host 3, 4
        for remote, local in [(0, 3), (1, 4)]:
            raw.send(remote)
            wait_until(lambda c=remote: listener.saw(c, Mark.THEIRS))
            host.request_local_move(local)
            assert raw.receive() == local
        raw.send(2)
        wait_until(lambda: listener.outcomes)
        assert listener.outcomes[0].winner == Mark.THEIRS

        # The peer restarted already and opens the next game at cell 5
        raw.send(5)
        time.sleep(0.2)
        assert host.board.cell(5) is None
        assert host.board.cell(0) == Mark.THEIRS

        host.restart()
        wait_until(lambda: listener.resets)
        wait_until(lambda: host.board.cell(5) == Mark.THEIRS)

        assert host.board.cell(0) is None
        assert host.my_turn
        assert listener.resets == [False]
        assert host.error is None
    finally:
        raw.close()
        host.close()


def test_restart_keeps_role_and_connection():
    peer, peer_listener, host, host_listener = session_pair()
    try:
        play_moves(peer, peer_listener, host, host_listener, [0, 3, 1, 4, 2])
        wait_until(lambda: host_listener.outcomes and peer_listener.outcomes)

        peer.restart()
        host.restart()
        wait_until(lambda: peer_listener.resets and host_listener.resets)

        assert peer.role == Role.PEER and peer.my_turn
        assert host.role == Role.HOST and not host.my_turn

        # Same connection, new game
        peer.request_local_move(8)
        wait_until(lambda: host.board.cell(8) == Mark.THEIRS)
    finally:
        peer.close()
        host.close()


def test_autoplayers_finish_their_games():
    a, b = socket.socketpair()
    first = AutoPlayListener(AutoPlayer(random.Random(1)), max_games=3)
    second = AutoPlayListener(AutoPlayer(random.Random(2)), max_games=3)
    peer = GameSession(TransportChannel.from_socket(a), Role.PEER, first)
    host = GameSession(TransportChannel.from_socket(b), Role.HOST, second)
    peer.start()
    host.start()

    assert peer.wait(TIMEOUT) and host.wait(TIMEOUT)
    assert first.games_played == 3
    assert second.games_played == 3
    assert peer.error is None
    assert host.error is None


def test_console_input_drives_session():
    a, b = socket.socketpair()
    listener = ConsoleListener()
    peer = GameSession(TransportChannel.from_socket(a), Role.PEER, listener)
    raw = TransportChannel.from_socket(b)
    peer.start()
    try:
        listener.handle_line("not a number")
        listener.handle_line(" 4 ")
        assert raw.receive() == 4

        listener.handle_line("q")
        assert peer.wait(TIMEOUT)
        assert peer.error is None
    finally:
        raw.close()


def test_rendezvous_builds_a_session():
    class FastConfig(NetConfig):
        POLL_INTERVAL = 0.05
        VERBOSE = False

    probe = socket.socket()
    probe.bind(("127.0.0.1", 0))
    port = probe.getsockname()[1]
    probe.close()

    sessions = {}

    def join(name):
        sessions[name] = GameSession.rendezvous("127.0.0.1", port, config=FastConfig(), deadline=10)

    threads = [threading.Thread(target=join, args=(name,)) for name in ("a", "b")]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=15)

    a, b = sessions["a"], sessions["b"]
    try:
        assert {a.role, b.role} == {Role.HOST, Role.PEER}
        first = a if a.role == Role.PEER else b
        second = b if first is a else a
        first.start()
        second.start()

        first.request_local_move(4)
        wait_until(lambda: second.board.cell(4) == Mark.THEIRS)
    finally:
        a.close()
        b.close()


def run_all_tests():
    """Run all tests without pytest."""
    print("=" * 60)
    print("   OnlineTicTacToe - Session Tests")
    print("=" * 60)

    tests = {name: func for name, func in globals().items()
             if name.startswith("test_") and callable(func)}

    failed = 0
    for name, func in tests.items():
        try:
            func()
            print(f"  {name}: ✓ PASS")
        except Exception as e:
            failed += 1
            print(f"  {name}: ✗ FAIL ({e})")

    print("=" * 60)
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(run_all_tests())
