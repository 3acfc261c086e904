"""Error taxonomy and error logging helpers."""

from .handling import log_error  # noqa: F401
from .internal import (  # noqa: F401
    ChannelSaturationError,
    CommandArgumentError,
    ConnectFailure,
    InternalError,
    MalformedMessageError,
    NetworkError,
    ParsingError,
    SessionClosedError,
    TransportError,
)

__all__ = [
    "log_error",
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
