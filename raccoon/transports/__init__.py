"""Raccoon transports."""

from raccoon.transports.base import LineConnection, StreamConnection
from raccoon.transports.irc_transport import IrcSession, SessionState

__all__ = [
    "LineConnection",
    "StreamConnection",
    "IrcSession",
    "SessionState",
]
