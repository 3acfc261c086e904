"""Event dispatch: decoded session events into conversation updates.

The dispatcher never touches the conversation model. It turns each event
into update messages and hands them to ``post``, which delivers them to the
single coordination context that owns the model.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from ..logs.logger import logger
from .models import Disconnected, MessageReceived, SessionEvent
from .protocol import (
    ChannelTarget,
    Error,
    InfoReply,
    Join,
    Malformed,
    MsgTarget,
    NameReply,
    Nick,
    Notice,
    Part,
    PrivMsg,
    Quit,
    RplMyInfo,
    ServerMessage,
    ServerPrefix,
    ServerTarget,
    UserPrefix,
    UserTarget,
)


@dataclass(frozen=True, slots=True)
class TabLine:
    """Append ``text`` to the tab that ``target`` resolves to on ``serv``."""

    serv: str
    target: MsgTarget
    text: str


@dataclass(frozen=True, slots=True)
class DebugLine:
    text: str


@dataclass(frozen=True, slots=True)
class SessionEnded:
    serv: str
    reason: str | None = None


Update = TabLine | DebugLine | SessionEnded
Post = Callable[[Update], Awaitable[None]]


def _who(prefix: UserPrefix) -> str:
    return f"{prefix.nick} ({prefix.user}@{prefix.host})"


def _unhandled(serv: str, message: ServerMessage) -> list[Update]:
    cmd = message.command
    token = getattr(cmd, "command", type(cmd).__name__)
    if isinstance(cmd, Malformed):
        logger.log_event(
            "dispatch", "malformed", level=logging.WARNING, server=serv, command=token
        )
        return [DebugLine(f"[{serv}] malformed {token}: {cmd.reason} {message!r}")]
    logger.log_event(
        "dispatch", "unhandled", level=logging.DEBUG, server=serv, command=token
    )
    return [DebugLine(f"[{serv}] unhandled command {token}: {message!r}")]


def route_message(serv: str, message: ServerMessage) -> list[Update]:  # noqa: C901
    """Translate one decoded message from session ``serv`` into updates."""
    prefix = message.prefix
    cmd = message.command
    own_tab = ServerTarget(serv)

    if isinstance(cmd, PrivMsg):
        if isinstance(prefix, UserPrefix):
            # A message addressed to a user is addressed to us: file it under the sender.
            target: MsgTarget = cmd.target
            if isinstance(target, UserTarget):
                target = UserTarget(prefix.nick)
            return [TabLine(serv, target, f"<{prefix.nick}> {cmd.msg}")]
        if isinstance(prefix, ServerPrefix):
            return [TabLine(serv, own_tab, f"[{prefix.name}] {cmd.msg}")]
        return [DebugLine(f"[{serv}] PRIVMSG with no prefix {cmd.msg!r}")]

    if isinstance(cmd, Join):
        if isinstance(prefix, UserPrefix):
            return [TabLine(serv, ChannelTarget(cmd.chan), f"{_who(prefix)} joined {cmd.chan}")]
        return _unhandled(serv, message)

    if isinstance(cmd, Part):
        if isinstance(prefix, UserPrefix):
            text = f"{_who(prefix)} left {cmd.chan}"
            if cmd.msg:
                text = f"{text} ({cmd.msg})"
            return [TabLine(serv, ChannelTarget(cmd.chan), text)]
        return _unhandled(serv, message)

    if isinstance(cmd, Nick):
        # No per-channel membership is tracked, so renames go to the server tab.
        if isinstance(prefix, UserPrefix):
            return [TabLine(serv, own_tab, f"{prefix.nick} is now known as {cmd.nick}")]
        return _unhandled(serv, message)

    if isinstance(cmd, Quit):
        if isinstance(prefix, UserPrefix):
            text = f"{_who(prefix)} quit"
            if cmd.msg:
                text = f"{text} ({cmd.msg})"
            return [TabLine(serv, own_tab, text)]
        return _unhandled(serv, message)

    if isinstance(cmd, Notice):
        if isinstance(prefix, UserPrefix):
            return [TabLine(serv, own_tab, f"-{prefix.nick}- {cmd.msg}")]
        return [TabLine(serv, own_tab, cmd.msg)]

    if isinstance(cmd, Error):
        # Termination comes from the transport, not from ERROR itself.
        return [TabLine(serv, own_tab, cmd.msg)]

    if isinstance(cmd, RplMyInfo):
        return [
            TabLine(
                serv,
                own_tab,
                f"{cmd.version} {cmd.umodes} {cmd.cmodes} {cmd.cmodes_param}",
            )
        ]

    if isinstance(cmd, NameReply):
        return [TabLine(serv, own_tab, f"{cmd.symbol} {cmd.chan} {' '.join(cmd.nicks)}")]

    if isinstance(cmd, InfoReply):
        return [TabLine(serv, own_tab, cmd.msg)]

    return _unhandled(serv, message)


def route_disconnect(serv: str, event: Disconnected) -> list[Update]:
    if event.reason:
        text = f"{serv}: connection lost ({event.reason})"
    else:
        text = f"{serv}: connection closed"
    return [DebugLine(text), SessionEnded(serv, event.reason)]


class EventDispatcher:
    """Drains one session's event and debug queues until it disconnects."""

    def __init__(
        self,
        serv: str,
        events: asyncio.Queue[SessionEvent],
        debug: asyncio.Queue[str],
        post: Post,
    ) -> None:
        self.serv = serv
        self.events = events
        self.debug = debug
        self.post = post

    async def run(self) -> None:
        logger.log_event("dispatch", "start", level=logging.DEBUG, server=self.serv)
        event_task: asyncio.Task[SessionEvent] | None = None
        debug_task: asyncio.Task[str] | None = None
        try:
            while True:
                if event_task is None:
                    event_task = asyncio.create_task(self.events.get())
                if debug_task is None:
                    debug_task = asyncio.create_task(self.debug.get())
                done, _ = await asyncio.wait(
                    {event_task, debug_task}, return_when=asyncio.FIRST_COMPLETED
                )
                if debug_task in done:
                    await self.post(DebugLine(debug_task.result()))
                    debug_task = None
                if event_task in done:
                    event = event_task.result()
                    event_task = None
                    if isinstance(event, Disconnected) and debug_task is not None:
                        line = await self._settle(debug_task)
                        debug_task = None
                        if line is not None:
                            await self.post(DebugLine(line))
                    if await self.handle_event(event):
                        return
        finally:
            for task in (event_task, debug_task):
                if task is not None:
                    await self._settle(task)
            logger.log_event("dispatch", "stop", level=logging.DEBUG, server=self.serv)

    @staticmethod
    async def _settle(task: asyncio.Task) -> object | None:
        """Cancel a pending get; return its item if it had already taken one."""
        if not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        if task.cancelled():
            return None
        return task.result()

    async def handle_event(self, event: SessionEvent) -> bool:
        """Post the updates for ``event``; return True once the session is over."""
        if isinstance(event, Disconnected):
            await self._drain_debug()
            for update in route_disconnect(self.serv, event):
                await self.post(update)
            return True
        if isinstance(event, MessageReceived):
            for update in route_message(self.serv, event.message):
                await self.post(update)
            return False
        logger.log_event(
            "dispatch",
            "unknown_event",
            level=logging.WARNING,
            server=self.serv,
            event=repr(event),
        )
        await self.post(DebugLine(f"[{self.serv}] unknown session event {event!r}"))
        return False

    async def _drain_debug(self) -> None:
        while True:
            try:
                line = self.debug.get_nowait()
            except asyncio.QueueEmpty:
                return
            await self.post(DebugLine(line))
