"""
Relay Errors
============

Exceptions raised by the event relay.

Upstream transport errors are never surfaced as exceptions; the
StreamClient logs them and reconnects. The only fatal path is a
listener that cannot start.
"""


class RelayError(Exception):
    """Base class for event relay errors."""


class StartupError(RelayError):
    """
    The relay cannot start.

    Raised before serving when the configured listen address is
    unusable, e.g. the port is already in use.
    """

    def __init__(self, message: str, host: str, port: int) -> None:
        super().__init__(message)
        self.host = host
        self.port = port
