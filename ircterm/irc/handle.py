"""Session handle: the caller-facing capability for a running session."""

from __future__ import annotations

import asyncio
import logging

from ..constants import OUTBOUND_SEND_TIMEOUT
from ..errors import ChannelSaturationError, SessionClosedError
from ..logs.logger import logger
from .protocol import ClientCommand, JoinCmd, NickCmd, PrivMsgCmd, QuitCmd, encode


class SessionHandle:
    """Formats client commands and submits them to a session's outbound queue.

    ``cur_nick`` is a local cache used to echo the user's own messages. It is
    updated when the user issues a NICK and never from server traffic.
    """

    def __init__(
        self,
        name: str,
        cur_nick: str,
        outbound: asyncio.Queue[str],
        closed: asyncio.Event,
        send_timeout: float = OUTBOUND_SEND_TIMEOUT,
    ) -> None:
        self.name = name
        self.cur_nick = cur_nick
        self._outbound = outbound
        self._closed = closed
        self._send_timeout = send_timeout

    def clone(self) -> SessionHandle:
        return SessionHandle(
            self.name, self.cur_nick, self._outbound, self._closed, self._send_timeout
        )

    @property
    def is_closed(self) -> bool:
        return self._closed.is_set()

    async def wait_closed(self) -> None:
        await self._closed.wait()

    async def send(self, cmd: ClientCommand) -> None:
        """Queue ``cmd`` for the session.

        Raises:
            SessionClosedError: If the session has already terminated.
            ChannelSaturationError: If the queue stays full past the send timeout.
        """
        if self.is_closed:
            raise SessionClosedError(f"Session {self.name} is closed")
        line = encode(cmd)
        try:
            await asyncio.wait_for(self._outbound.put(line), timeout=self._send_timeout)
        except TimeoutError:
            logger.log_event(
                "irc",
                "outbound_saturated",
                level=logging.ERROR,
                server=self.name,
                timeout=self._send_timeout,
            )
            raise ChannelSaturationError(
                f"Outbound queue for {self.name} is full",
                data={"timeout": self._send_timeout, "command": line.rstrip()},
            ) from None

    async def quit(self, msg: str = "") -> None:
        await self.send(QuitCmd(msg))

    async def join(self, chan: str) -> None:
        await self.send(JoinCmd(chan))

    async def nick(self, new_nick: str) -> None:
        await self.send(NickCmd(new_nick))
        self.cur_nick = new_nick

    async def privmsg(self, target: str, msg: str) -> None:
        await self.send(PrivMsgCmd(target, msg))
