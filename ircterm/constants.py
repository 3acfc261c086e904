"""
Tunable constants for the ircterm client

Each constant can be overridden by setting an environment variable with the same name.
"""

import os


def _get_env_int(name: str, default: int) -> int:
    """Retrieve an integer value from an environment variable.

    Attempts to parse the environment variable as an integer. If the variable
    is not set or cannot be parsed, prints a warning and returns the default value.

    Args:
        name: The name of the environment variable to read.
        default: The default integer value to return if parsing fails.

    Returns:
        The parsed integer value from the environment, or the default if unavailable.
    """
    value = os.getenv(name)
    if value is not None:
        try:
            return int(value)
        except ValueError:
            print(
                f"Warning: Invalid integer value for {name}='{value}', using default {default}"
            )
    return default


def _get_env_float(name: str, default: float) -> float:
    """Retrieve a float value from an environment variable.

    Args:
        name: The name of the environment variable to read.
        default: The default float value to return if parsing fails.

    Returns:
        The parsed float value from the environment, or the default if unavailable.
    """
    value = os.getenv(name)
    if value is not None:
        try:
            return float(value)
        except ValueError:
            print(
                f"Warning: Invalid float value for {name}='{value}', using default {default}"
            )
    return default


# Connection defaults
DEFAULT_PORT = _get_env_int("DEFAULT_PORT", 6667)
CONNECT_TIMEOUT = _get_env_float("CONNECT_TIMEOUT", 15.0)  # seconds per attempt
CONNECT_ATTEMPTS = _get_env_int("CONNECT_ATTEMPTS", 1)  # 1 = single attempt, no retry
CONNECT_RETRY_MAX_WAIT = _get_env_float("CONNECT_RETRY_MAX_WAIT", 10.0)

# Channel sizing between session, handle and dispatcher
SESSION_QUEUE_SIZE = _get_env_int("SESSION_QUEUE_SIZE", 100)
OUTBOUND_SEND_TIMEOUT = _get_env_float(
    "OUTBOUND_SEND_TIMEOUT", 5.0
)  # Seconds a submission may wait on a full outbound queue

# Conversation model
HISTORY_LIMIT = _get_env_int("HISTORY_LIMIT", 0)  # 0 = unbounded tab history
DEBUG_TAB_LABEL = "__debug__"

# Default identity when nothing is configured
DEFAULT_NICK = "meager-irc-client"
DEFAULT_USER = "guest"
DEFAULT_REALNAME = "Meager"
