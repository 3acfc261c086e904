from __future__ import annotations

from ..logging_config import log_structured_error
from .internal import (
    ChannelSaturationError,
    CommandArgumentError,
    InternalError,
    NetworkError,
    ParsingError,
    SessionClosedError,
)


def log_error(message: str, error: Exception, context: dict | None = None) -> None:
    """Logs an error message with the associated exception details.

    The error is categorised from its type and forwarded to structured
    logging so that recurring failure patterns are aggregated.

    Args:
        message: A descriptive message about the error context.
        error: The exception instance to be logged.
        context: Optional additional context data for debugging.
    """
    error_type = "unknown"
    if isinstance(error, NetworkError | OSError | ConnectionError):
        error_type = "network"
    elif isinstance(error, ParsingError):
        error_type = "parsing"
    elif isinstance(error, ChannelSaturationError | SessionClosedError):
        error_type = "session"
    elif isinstance(error, CommandArgumentError):
        error_type = "input"
    elif isinstance(error, InternalError):
        error_type = "internal"

    log_structured_error(
        error_type=error_type,
        message=f"{message}: {str(error)}",
        exception=error,
        context=context,
    )
