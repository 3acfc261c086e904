"""Coordination context: owns the conversation model and the session handles.

Everything that changes the model arrives on one mailbox (keystrokes from the
terminal, updates from dispatchers) and is applied by :meth:`ChatApp.run`, one
item at a time, followed by a redraw.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum, auto
from typing import Protocol

from ..config import ClientConfig
from ..constants import SESSION_QUEUE_SIZE
from ..errors import (
    ChannelSaturationError,
    CommandArgumentError,
    SessionClosedError,
    log_error,
)
from ..irc.dispatcher import DebugLine, EventDispatcher, SessionEnded, TabLine, Update
from ..irc.handle import SessionHandle
from ..irc.models import SessionInfo
from ..irc.protocol import ChannelTarget, UserTarget
from ..irc.session import IRCSession
from ..logs.logger import logger
from . import command
from .tabs import (
    ChannelTab,
    ConversationModel,
    DebugTab,
    QueryTab,
    ServerTab,
    server_of,
)

QUIT_GRACE_SECONDS = 1.0


class Key(Enum):
    CHAR = auto()
    ENTER = auto()
    BACKSPACE = auto()
    TAB = auto()
    ESC = auto()


@dataclass(frozen=True, slots=True)
class KeyPress:
    key: Key
    char: str = ""


@dataclass(frozen=True, slots=True)
class Redraw:
    pass


AppMessage = KeyPress | Redraw | Update


class Renderer(Protocol):
    def draw(self, model: ConversationModel) -> None: ...  # noqa: E704


class NullRenderer:
    """Renderer for headless runs and tests."""

    def __init__(self) -> None:
        self.frames = 0

    def draw(self, model: ConversationModel) -> None:  # noqa: ARG002
        self.frames += 1


SessionFactory = Callable[[SessionInfo], IRCSession]


class ChatApp:  # pylint: disable=too-many-instance-attributes
    def __init__(
        self,
        config: ClientConfig,
        renderer: Renderer | None = None,
        session_factory: SessionFactory = IRCSession,
        mailbox_size: int = SESSION_QUEUE_SIZE,
    ) -> None:
        self.config = config
        self.model = ConversationModel(
            history_limit=config.history_limit,
            auto_open_queries=config.auto_open_queries,
        )
        self.renderer: Renderer = renderer or NullRenderer()
        self.session_factory = session_factory
        self.mailbox: asyncio.Queue[AppMessage] = asyncio.Queue(maxsize=mailbox_size)
        self.handles: dict[str, SessionHandle] = {}
        self.running = False
        self._tasks: set[asyncio.Task[None]] = set()

    # --- mailbox ------------------------------------------------------------

    async def post(self, message: AppMessage) -> None:
        await self.mailbox.put(message)

    def submit_key(self, key: KeyPress | Redraw) -> None:
        """Queue terminal input without waiting; dropped with a warning when full."""
        try:
            self.mailbox.put_nowait(key)
        except asyncio.QueueFull:
            name = key.key.name if isinstance(key, KeyPress) else "REDRAW"
            logger.log_event("app", "key_dropped", level=logging.WARNING, key=name)

    async def run(self) -> None:
        """Apply mailbox items until Esc is pressed, then shut down."""
        self.running = True
        logger.log_event("app", "start", nick=self.config.nick)
        self.draw()
        try:
            while self.running:
                message = await self.mailbox.get()
                await self.apply(message)
                self.draw()
        finally:
            await self.shutdown()

    def draw(self) -> None:
        self.renderer.draw(self.model)

    async def apply(self, message: AppMessage) -> None:
        if isinstance(message, KeyPress):
            await self.handle_key(message)
        elif isinstance(message, TabLine):
            self.model.add_msg(message.serv, message.target, message.text)
        elif isinstance(message, DebugLine):
            self.model.debug(message.text)
        elif isinstance(message, SessionEnded):
            self._session_ended(message)
        elif isinstance(message, Redraw):
            return
        else:
            logger.log_event(
                "app", "unknown_message", level=logging.WARNING, message=repr(message)
            )
            self.model.debug(f"Unknown message {message!r}")

    def _session_ended(self, message: SessionEnded) -> None:
        self.handles.pop(message.serv, None)
        logger.log_event("app", "session_ended", server=message.serv, reason=message.reason)

    # --- keys ---------------------------------------------------------------

    async def handle_key(self, press: KeyPress) -> None:
        if press.key is Key.ESC:
            self.running = False
        elif press.key is Key.CHAR:
            self.model.push_input(press.char)
        elif press.key is Key.BACKSPACE:
            self.model.pop_input()
        elif press.key is Key.TAB:
            self.model.next_tab()
        elif press.key is Key.ENTER:
            await self.commit_input()

    async def commit_input(self) -> None:
        text = self.model.take_input()
        try:
            cmd = command.parse_input(text)
        except CommandArgumentError as e:
            self.model.debug(f"Command parse error: {e}")
            return
        await self.execute(cmd)

    # --- commands -----------------------------------------------------------

    async def execute(self, cmd: command.Cmd) -> None:  # noqa: C901
        try:
            if isinstance(cmd, command.Connect):
                self.connect(cmd.address)
            elif isinstance(cmd, command.Join):
                await self._join(cmd.chan)
            elif isinstance(cmd, command.Quit):
                handle = self._handle_for_current_tab()
                if handle is not None:
                    await handle.quit(cmd.msg)
            elif isinstance(cmd, command.Nick):
                await self._nick(cmd.nick)
            elif isinstance(cmd, command.Query):
                self._query(cmd.nick)
            elif isinstance(cmd, command.Msg):
                await self._message(cmd.text)
            elif isinstance(cmd, command.Unsupported):
                self.model.debug(f"Unsupported command: {cmd.cmd} {cmd.rest}")
            else:
                self.model.debug(f"Unhandled command {cmd!r}")
        except (ChannelSaturationError, SessionClosedError) as e:
            log_error("Command submission failed", e, context={"command": repr(cmd)})
            self.model.debug(f"Command failed: {e}")

    def connect(self, address: str) -> None:
        try:
            info = self.config.session_info(address)
        except ValueError as e:
            self.model.debug(f"Command parse error: {e}")
            return
        if info.name in self.handles:
            self.model.debug(f"Already connected to {info.name}")
            return

        self.model.debug(f"Connecting to {address}")
        self.model.debug(repr(info))
        tab_id = ServerTab(info.name)
        self.model.add_tab(tab_id)
        self.model.change_to(tab_id)

        session = self.session_factory(info)
        self.handles[info.name] = session.handle()
        dispatcher = EventDispatcher(info.name, session.events, session.debug, self.post)
        self._spawn(session.run(), f"session:{info.name}")
        self._spawn(dispatcher.run(), f"dispatch:{info.name}")
        logger.log_event("app", "session_started", server=info.name, port=info.port)

    def _handle_for_current_tab(self) -> SessionHandle | None:
        serv = server_of(self.model.current.id)
        if serv is None:
            self.model.debug("No server for the debug tab")
            return None
        handle = self.handles.get(serv)
        if handle is None:
            self.model.debug(f"No client found for server {serv}")
        return handle

    async def _join(self, chan: str) -> None:
        handle = self._handle_for_current_tab()
        if handle is None:
            return
        self.model.debug(f"Joining {chan} on {handle.name}")
        await handle.join(chan)
        tab_id = ChannelTab(handle.name, chan)
        self.model.add_tab(tab_id)
        self.model.change_to(tab_id)

    async def _nick(self, nick: str) -> None:
        if not nick:
            self.model.debug("Command parse error: No nickname provided")
            return
        handle = self._handle_for_current_tab()
        if handle is not None:
            await handle.nick(nick)

    def _query(self, nick: str) -> None:
        serv = server_of(self.model.current.id)
        if serv is None:
            self.model.debug("Query command on debug tab")
            return
        tab_id = QueryTab(serv, nick)
        self.model.add_tab(tab_id)
        self.model.change_to(tab_id)

    async def _message(self, text: str) -> None:
        if not text:
            return
        tab_id = self.model.current.id
        if isinstance(tab_id, DebugTab):
            self.model.debug("Message command on debug tab")
            return
        if isinstance(tab_id, ServerTab):
            self.model.debug(f"Message sent on server tab: {text}")
            return
        if isinstance(tab_id, ChannelTab):
            dest, target = tab_id.chan, ChannelTarget(tab_id.chan)
        else:
            dest, target = tab_id.nick, UserTarget(tab_id.nick)
        handle = self.handles.get(tab_id.serv)
        if handle is None:
            self.model.debug(f"No client found for server {tab_id.serv}")
            return
        self.model.debug(f"Sending message to {dest} on {tab_id.serv}: {text}")
        await handle.privmsg(dest, text)
        self.model.add_msg(handle.name, target, f"<{handle.cur_nick}> {text}")

    # --- tasks --------------------------------------------------------------

    def _spawn(self, coro, name: str) -> None:  # type: ignore[no-untyped-def]
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            log_error(f"Task {task.get_name()} crashed", error)  # type: ignore[arg-type]
            # Done callbacks run outside the mailbox loop; report through it.
            with contextlib.suppress(asyncio.QueueFull):
                self.mailbox.put_nowait(DebugLine(f"{task.get_name()} crashed: {error}"))

    async def shutdown(self) -> None:
        """Send QUIT to every live session, wait briefly, then cancel tasks."""
        live = [h for h in self.handles.values() if not h.is_closed]
        for handle in live:
            try:
                await handle.quit("")
            except (ChannelSaturationError, SessionClosedError) as e:
                log_error("Quit on shutdown failed", e, context={"server": handle.name})
        if live:
            waiters = [asyncio.create_task(h.wait_closed()) for h in live]
            _, pending = await asyncio.wait(waiters, timeout=QUIT_GRACE_SECONDS)
            for waiter in pending:
                waiter.cancel()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.log_event("app", "stopped", sessions=len(live))
