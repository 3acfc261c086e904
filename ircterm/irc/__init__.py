"""IRC subsystem package.

Contains the wire codec, the per-server connection session, the handle used
to submit commands to it, and the dispatcher that turns its events into
conversation updates.
"""

from .dispatcher import EventDispatcher, route_message  # noqa: F401
from .handle import SessionHandle  # noqa: F401
from .models import (  # noqa: F401
    Disconnected,
    MessageReceived,
    SessionEvent,
    SessionInfo,
    SessionState,
)
from .protocol import ServerMessage, decode, decode_lenient, encode  # noqa: F401
from .session import IRCSession  # noqa: F401

__all__ = [
    "Disconnected",
    "EventDispatcher",
    "IRCSession",
    "MessageReceived",
    "ServerMessage",
    "SessionEvent",
    "SessionHandle",
    "SessionInfo",
    "SessionState",
    "decode",
    "decode_lenient",
    "encode",
    "route_message",
]
