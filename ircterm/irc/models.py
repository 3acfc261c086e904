"""Shared IRC session data models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto

from .protocol import ServerMessage


class SessionState(Enum):
    CONNECTING = auto()
    HANDSHAKING = auto()
    ACTIVE = auto()
    CLOSED = auto()


@dataclass(frozen=True, slots=True)
class SessionInfo:
    """Immutable connection parameters supplied once at session creation."""

    address: str
    port: int
    nick: str
    user: str
    realname: str

    @property
    def name(self) -> str:
        return self.address


@dataclass(frozen=True, slots=True)
class MessageReceived:
    message: ServerMessage


@dataclass(frozen=True, slots=True)
class Disconnected:
    """Terminal notification: no further events follow on this session.

    ``reason`` is ``None`` for a clean end-of-stream and holds the error
    description when the transport failed or never connected.
    """

    reason: str | None = None


SessionEvent = MessageReceived | Disconnected
