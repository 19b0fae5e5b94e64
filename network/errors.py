"""
Errors raised by the network layer.
"""


class UsageError(ValueError):
    """Bad command line arguments. Raised before any network activity."""


class RendezvousError(RuntimeError):
    """Rendezvous cannot complete (e.g. the port cannot be bound)."""


class ChannelError(OSError):
    """A transport failure. Single refused connects during rendezvous are retried."""


class LinkError(ChannelError):
    """The established connection failed or carried malformed data."""
