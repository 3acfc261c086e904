"""Centralized internal error hierarchy.

These exceptions provide semantic categories for the client's failure
policies. Only raise these inside protocol/network boundaries – never surface
raw socket or parsing errors to callers; wrap them instead.

Classes:
  InternalError           – Base for all internal errors.
  NetworkError            – Transport level issues.
  ParsingError            – Wire data that could not be decoded.
  MalformedMessageError   – Known command missing an expected parameter.
  ConnectFailure          – Initial transport connect failed.
  TransportError          – Mid-session read/write failure.
  CommandArgumentError    – Slash-command missing a required argument.
  ChannelSaturationError  – Bounded outbound queue stayed full.
  SessionClosedError      – Submission to a session that already ended.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence


class InternalError(Exception):
    """Base class for all internal application errors with metadata support.

    Attributes:
        data: Dictionary containing arbitrary structured context data.

    Args:
        message: Descriptive error message.
        data: Optional mapping of additional context data.
    """

    data: dict[str, object]

    def __init__(
        self, message: str, *, data: Mapping[str, object] | None = None
    ) -> None:
        super().__init__(message)
        # Copy into a plain dict to avoid unexpected mutations from caller.
        self.data = dict(data) if data else {}


class NetworkError(InternalError):
    """Exception raised for network or transport layer errors."""


class ParsingError(InternalError):
    """Exception raised for wire data that cannot be decoded."""


class MalformedMessageError(ParsingError):
    """A line names a known command but lacks an expected parameter.

    Recoverable: the session degrades the line to a diagnostic instead of
    aborting.

    Args:
        message: Error message.
        command: The command or numeric token of the line.
        params: The parameters that were present.
        raw: The raw line, when known.
    """

    def __init__(
        self,
        message: str,
        *,
        command: str,
        params: Sequence[str] = (),
        raw: str | None = None,
    ) -> None:
        super().__init__(
            message, data={"command": command, "params": list(params), "raw": raw}
        )
        self.command = command
        self.params = list(params)
        self.raw = raw


class ConnectFailure(NetworkError):
    """The initial transport connect failed. Fatal to that attempt only."""


class TransportError(NetworkError):
    """A read or write failed on an established session."""


class CommandArgumentError(InternalError):
    """A slash-command was missing a required argument."""


class ChannelSaturationError(InternalError):
    """The bounded outbound queue stayed full past the send timeout."""


class SessionClosedError(InternalError):
    """The session behind a handle has already terminated."""


__all__ = [
    "InternalError",
    "NetworkError",
    "ParsingError",
    "MalformedMessageError",
    "ConnectFailure",
    "TransportError",
    "CommandArgumentError",
    "ChannelSaturationError",
    "SessionClosedError",
]
