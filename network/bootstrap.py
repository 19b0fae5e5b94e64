"""
Remote launch for online TicTacToe.

Starts the counterpart on another machine over ssh and talks to it
through the ssh process's stdin/stdout instead of doing a rendezvous.
ssh asks for the password itself.
"""

import shlex
import subprocess
from typing import List, Optional

from .channel import TransportChannel
from .config import NetConfig
from .errors import LinkError, UsageError


class RemoteLauncher:
    """
    Launches `main.py --serve-stdio` on a remote host.

    The remote side always plays HOST (second) with the autoplayer,
    so the launching side plays PEER and moves first.
    """

    def __init__(
        self,
        host: str,
        user: Optional[str] = None,
        command: Optional[str] = None,
        config: Optional[NetConfig] = None
    ):
        """
        Args:
            host: Machine to run the counterpart on.
            user: Login name (ssh default if not given).
            command: Command line to run remotely.
            config: Network configuration. Uses defaults if not provided.
        """
        if not host:
            raise UsageError("remote host must not be empty")

        self.config = config or NetConfig()
        self.host = host
        self.user = user
        self.command = command or self.config.REMOTE_COMMAND
        self.process: Optional[subprocess.Popen] = None

    def build_command(self) -> List[str]:
        """Get the full ssh command line."""
        argv = shlex.split(self.config.SSH_COMMAND)
        if self.user:
            argv += ["-l", self.user]
        argv.append(self.host)
        argv += shlex.split(self.command)
        return argv

    def launch(self) -> TransportChannel:
        """
        Start the remote counterpart.

        Returns:
            A channel connected to the remote process.

        Raises:
            LinkError: ssh could not be started.
        """
        argv = self.build_command()
        print(f"Launching counterpart: {' '.join(argv)}")

        try:
            self.process = subprocess.Popen(
                argv,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
            )
        except OSError as e:
            raise LinkError(f"cannot start {argv[0]}: {e}") from e

        return TransportChannel(
            self.process.stdout,
            self.process.stdin,
            closer=self._stop,
            config=self.config
        )

    def _stop(self):
        """Close the pipes and wait for ssh to exit."""
        if self.process is None:
            return

        for stream in (self.process.stdin, self.process.stdout):
            try:
                stream.close()
            except OSError:
                pass  # ssh already gone

        try:
            self.process.wait(timeout=5)
        except subprocess.TimeoutExpired:
            self.process.kill()
            self.process.wait()
