"""Client configuration model.

The configuration is built once at startup (``ClientConfig.from_env``) and
passed explicitly into the components that need it.
"""

from __future__ import annotations

import os
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .constants import (
    DEFAULT_NICK,
    DEFAULT_PORT,
    DEFAULT_REALNAME,
    DEFAULT_USER,
    HISTORY_LIMIT,
)
from .irc.models import SessionInfo


def _env_flag(value: str | None) -> bool:
    return (value or "").strip().lower() in ("true", "1", "yes", "on")


class ClientConfig(BaseModel):
    """Identity and behaviour settings for the client.

    Attributes:
        nick: Nickname sent in the NICK handshake.
        user: Username sent in the USER handshake.
        realname: Real name sent as the USER trailing parameter.
        port: Port used when ``/connect`` does not name one.
        history_limit: Maximum lines kept per tab; ``0`` keeps everything.
        auto_open_queries: Open a private-query tab when a message arrives for
            one that does not exist, instead of logging it to the debug tab.
        log_file: Where log records are written while the terminal UI runs.
    """

    model_config = ConfigDict(frozen=True)

    nick: str = Field(default=DEFAULT_NICK, min_length=1)
    user: str = Field(default=DEFAULT_USER, min_length=1)
    realname: str = Field(default=DEFAULT_REALNAME, min_length=1)
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535)
    history_limit: int = Field(default=HISTORY_LIMIT, ge=0)
    auto_open_queries: bool = False
    log_file: str | None = "ircterm.log"

    @field_validator("nick", "user", mode="before")
    @classmethod
    def validate_token(cls, v: object) -> str:
        """Nick and user are sent as middle parameters and cannot hold spaces."""
        if not isinstance(v, str):
            raise ValueError("must be a string")
        stripped = v.strip()
        if not stripped or any(ch.isspace() for ch in stripped):
            raise ValueError("must be a single non-empty word")
        if stripped.startswith(":"):
            raise ValueError("must not start with ':'")
        return stripped

    @field_validator("realname", mode="before")
    @classmethod
    def validate_realname(cls, v: object) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("realname must be a non-empty string")
        return v.strip()

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ClientConfig:
        """Create the configuration from ``IRC_*`` environment variables.

        Args:
            environ: Mapping to read from; defaults to ``os.environ``.

        Returns:
            ClientConfig instance with unset values left at their defaults.
        """
        env = os.environ if environ is None else environ
        data: dict[str, object] = {}
        for key, field in (
            ("IRC_NICK", "nick"),
            ("IRC_USER", "user"),
            ("IRC_REAL", "realname"),
            ("IRC_PORT", "port"),
            ("IRC_HISTORY_LIMIT", "history_limit"),
        ):
            if env.get(key):
                data[field] = env[key]
        if "IRC_AUTO_OPEN_QUERIES" in env:
            data["auto_open_queries"] = _env_flag(env["IRC_AUTO_OPEN_QUERIES"])
        if "IRC_LOG_FILE" in env:
            data["log_file"] = env["IRC_LOG_FILE"] or None
        return cls.model_validate(data)

    def session_info(self, address: str) -> SessionInfo:
        """Build connection parameters for ``address`` (``host`` or ``host:port``).

        Raises:
            ValueError: If the port part is not a valid port number.
        """
        host, port = address, self.port
        if ":" in address:
            host, _, port_text = address.rpartition(":")
            if not port_text.isdigit() or not 0 < int(port_text) < 65536:
                raise ValueError(f"Invalid port in server address: {address}")
            port = int(port_text)
        host = host.strip()
        if not host:
            raise ValueError("No server address provided")
        return SessionInfo(
            address=host,
            port=port,
            nick=self.nick,
            user=self.user,
            realname=self.realname,
        )
