"""ircterm: a minimal multi-server IRC client for the terminal."""

__version__ = "0.1.0"
