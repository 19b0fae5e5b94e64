"""
Main entry point for online TicTacToe.

Usage:
    python main.py ADDRESS PORT             # play with the Tk board
    python main.py ADDRESS PORT --no-ui     # play in the terminal
    python main.py ADDRESS PORT --auto      # let the autoplayer play
    python main.py --launch HOST [--user USER]
                                            # start an autoplayer on HOST over ssh
    python main.py --serve-stdio            # counterpart side of --launch

Start the same command (same address and port) on both machines, or
twice on one machine with ADDRESS = localhost. The two copies decide
between themselves who moves first.
"""

import argparse
import sys
from typing import List, Optional, Tuple

from console import AutoPlayListener, ConsoleListener, run_console
from game_session import GameSession, SessionListener
from logic.auto_player import AutoPlayer
from logic.turn_controller import Role
from network.bootstrap import RemoteLauncher
from network.channel import TransportChannel
from network.config import NetConfig
from network.errors import ChannelError, RendezvousError, UsageError
from network.rendezvous import resolve_address


def parse_port(text: str, config: Optional[NetConfig] = None) -> int:
    """
    Check a port argument.

    Raises:
        UsageError: Not a number, or outside MIN_PORT..MAX_PORT.
    """
    config = config or NetConfig()
    try:
        port = int(text)
    except (TypeError, ValueError):
        raise UsageError(f"port must be a number, got {text!r}") from None

    if not config.MIN_PORT <= port <= config.MAX_PORT:
        raise UsageError(f"port must be between {config.MIN_PORT} and {config.MAX_PORT}, got {port}")
    return port


def parse_endpoint(address: Optional[str], port_text: Optional[str],
                   config: Optional[NetConfig] = None) -> Tuple[str, int]:
    """Check the ADDRESS PORT pair before any networking starts."""
    if not address or port_text is None:
        raise UsageError("ADDRESS and PORT are required (or use --launch / --serve-stdio)")

    port = parse_port(port_text, config)
    resolve_address(address)
    return address, port


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Online TicTacToe")
    parser.add_argument("address", nargs="?", help="Address of the other player")
    parser.add_argument("port", nargs="?", help=f"Port both players use (>= {NetConfig.MIN_PORT})")
    parser.add_argument(
        "--auto",
        action="store_true",
        help="Let the autoplayer play this side"
    )
    parser.add_argument(
        "--no-ui",
        action="store_true",
        help="Play in the terminal instead of the Tk window"
    )
    parser.add_argument(
        "--games",
        type=int,
        default=None,
        help="With --auto: stop after this many games"
    )
    parser.add_argument(
        "--deadline",
        type=float,
        default=None,
        help="Give up the rendezvous after this many seconds"
    )
    parser.add_argument(
        "--launch",
        metavar="HOST",
        help="Start an autoplayer on HOST over ssh and play against it"
    )
    parser.add_argument("--user", help="ssh login name for --launch")
    parser.add_argument(
        "--remote-command",
        default=None,
        help=f"Command run on HOST (default: {NetConfig.REMOTE_COMMAND!r})"
    )
    parser.add_argument(
        "--serve-stdio",
        action="store_true",
        help="Play as the launched counterpart over stdin/stdout"
    )
    parser.add_argument(
        "--log-file",
        default=NetConfig.REMOTE_LOG_FILE,
        help="Where --serve-stdio writes its messages"
    )
    return parser


def serve_stdio(log_file: str, config: NetConfig) -> int:
    """
    Counterpart side of --launch.

    stdout is the channel, so all messages go to the log file instead.
    Always plays HOST (second) with the autoplayer.
    """
    channel = TransportChannel.from_stdio(config)

    with open(log_file, "a", buffering=1) as log:
        sys.stdout = log
        session = GameSession(channel, Role.HOST, AutoPlayListener())
        session.start()
        session.wait()

    sys.stdout = sys.__stdout__
    return 1 if session.error else 0


def run_headless(connect, listener: SessionListener) -> int:
    """Connect and play without a window."""
    try:
        session = connect(listener)
    except (RendezvousError, ChannelError) as e:
        print(f"ERROR: rendezvous failed: {e}")
        return 1

    session.start()
    if isinstance(listener, ConsoleListener):
        run_console(session, listener)
    else:
        session.wait()

    return 1 if session.error else 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    config = NetConfig()

    if args.serve_stdio:
        return serve_stdio(args.log_file, config)

    try:
        if args.launch:
            launcher = RemoteLauncher(args.launch, args.user, args.remote_command, config)

            def connect(listener):
                return GameSession(launcher.launch(), Role.PEER, listener)
        else:
            address, port = parse_endpoint(args.address, args.port, config)

            def connect(listener):
                return GameSession.rendezvous(address, port, listener, config, args.deadline)
    except UsageError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        parser.print_usage(sys.stderr)
        return 1

    try:
        if args.auto:
            return run_headless(connect, AutoPlayListener(AutoPlayer(), max_games=args.games))
        if args.no_ui:
            return run_headless(connect, ConsoleListener())

        from ui import TicTacToeUI
        print("\n" + "=" * 60)
        print("   OnlineTicTacToe")
        print("=" * 60 + "\n")
        return TicTacToeUI(connect).run()
    except KeyboardInterrupt:
        print("\n\nGame interrupted by user.")
        return 1
    finally:
        print("Goodbye!")


if __name__ == "__main__":
    sys.exit(main())
