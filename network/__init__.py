"""
Network module for online TicTacToe.
Handles rendezvous, the move channel, and remote launch.
"""

from .config import NetConfig
from .errors import UsageError, RendezvousError, ChannelError, LinkError
from .channel import TransportChannel
from .rendezvous import RendezvousNegotiator
from .bootstrap import RemoteLauncher
