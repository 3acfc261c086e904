"""Terminal user interface: conversation model, input commands and the app loop."""

from .app import ChatApp, Key, KeyPress  # noqa: F401
from .tabs import ConversationModel  # noqa: F401

__all__ = ["ChatApp", "ConversationModel", "Key", "KeyPress"]
