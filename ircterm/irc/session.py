"""Connection session: one transport stream to one server.

The session owns the reader/writer pair. While active it waits on two
sources at once, inbound lines and the outbound command queue, and forwards
every inbound line on the debug queue and its decoded form on the event
queue. Handles and dispatchers only ever see the queues.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable

from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..constants import (
    CONNECT_ATTEMPTS,
    CONNECT_RETRY_MAX_WAIT,
    CONNECT_TIMEOUT,
    OUTBOUND_SEND_TIMEOUT,
    SESSION_QUEUE_SIZE,
)
from ..errors import ConnectFailure, TransportError, log_error
from ..logs.logger import logger
from .handle import SessionHandle
from .models import Disconnected, MessageReceived, SessionEvent, SessionInfo, SessionState
from .protocol import Malformed, NickCmd, UserCmd, decode_lenient, encode, is_ping, pong_for

Opener = Callable[[str, int], Awaitable[tuple[asyncio.StreamReader, asyncio.StreamWriter]]]


class IRCSession:  # pylint: disable=too-many-instance-attributes
    def __init__(
        self,
        info: SessionInfo,
        *,
        queue_size: int = SESSION_QUEUE_SIZE,
        connect_timeout: float = CONNECT_TIMEOUT,
        connect_attempts: int = CONNECT_ATTEMPTS,
        opener: Opener | None = None,
    ) -> None:
        self.info = info
        self.state = SessionState.CONNECTING
        self.outbound: asyncio.Queue[str] = asyncio.Queue(maxsize=queue_size)
        self.events: asyncio.Queue[SessionEvent] = asyncio.Queue(maxsize=queue_size)
        self.debug: asyncio.Queue[str] = asyncio.Queue(maxsize=queue_size)
        self.closed = asyncio.Event()
        self.connect_timeout = connect_timeout
        self.connect_attempts = max(1, connect_attempts)
        self.reader: asyncio.StreamReader | None = None
        self.writer: asyncio.StreamWriter | None = None
        self._opener: Opener = opener or asyncio.open_connection
        self._finished = False

    @property
    def name(self) -> str:
        return self.info.name

    def handle(self, send_timeout: float = OUTBOUND_SEND_TIMEOUT) -> SessionHandle:
        """Create a handle for submitting commands to this session."""
        return SessionHandle(
            name=self.name,
            cur_nick=self.info.nick,
            outbound=self.outbound,
            closed=self.closed,
            send_timeout=send_timeout,
        )

    def _set_state(self, new_state: SessionState) -> None:
        if self.state != new_state:
            logger.log_event(
                "irc",
                "state_change",
                level=logging.DEBUG,
                server=self.name,
                old_state=self.state.name,
                new_state=new_state.name,
            )
            self.state = new_state

    async def run(self) -> None:
        """Connect, handshake and serve until the transport ends.

        Always ends with exactly one :class:`Disconnected` on ``events``
        unless the task itself is cancelled.
        """
        reason: str | None = None
        try:
            await self._connect()
            await self._handshake()
            await self._serve()
        except (ConnectFailure, TransportError) as e:
            log_error(f"Session {self.name} ended", e, context={"state": self.state.name})
            reason = str(e)
        except asyncio.CancelledError:
            self._mark_closed()
            await self._close_transport()
            raise
        await self._close_transport()
        await self._finish(reason)

    async def _connect(self) -> None:
        self._set_state(SessionState.CONNECTING)
        logger.log_event(
            "irc",
            "connect_start",
            server=self.name,
            port=self.info.port,
            attempts=self.connect_attempts,
        )
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.connect_attempts),
            wait=wait_exponential(multiplier=1, max=CONNECT_RETRY_MAX_WAIT),
            retry=retry_if_exception_type((OSError, TimeoutError)),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    self.reader, self.writer = await asyncio.wait_for(
                        self._opener(self.info.address, self.info.port),
                        timeout=self.connect_timeout,
                    )
        except TimeoutError as e:
            raise ConnectFailure(
                f"Timed out connecting to {self.info.address}:{self.info.port}",
                data={"timeout": self.connect_timeout},
            ) from e
        except OSError as e:
            raise ConnectFailure(
                f"Could not connect to {self.info.address}:{self.info.port}: {e}"
            ) from e
        logger.log_event("irc", "connected", server=self.name, port=self.info.port)

    async def _handshake(self) -> None:
        self._set_state(SessionState.HANDSHAKING)
        await self._write(encode(NickCmd(self.info.nick)))
        await self._write(encode(UserCmd(self.info.user, self.info.realname)))
        logger.log_event(
            "irc", "handshake_sent", level=logging.DEBUG, server=self.name, nick=self.info.nick
        )
        self._set_state(SessionState.ACTIVE)

    async def _serve(self) -> None:
        read_task: asyncio.Task[str | None] | None = None
        cmd_task: asyncio.Task[str] | None = None
        try:
            while True:
                if read_task is None:
                    read_task = asyncio.create_task(self._read_line())
                if cmd_task is None:
                    cmd_task = asyncio.create_task(self.outbound.get())
                done, _ = await asyncio.wait(
                    {read_task, cmd_task}, return_when=asyncio.FIRST_COMPLETED
                )
                if cmd_task in done:
                    line = cmd_task.result()
                    cmd_task = None
                    await self._write(line)
                if read_task in done:
                    inbound = read_task.result()
                    read_task = None
                    if inbound is None:
                        logger.log_event("irc", "end_of_stream", server=self.name)
                        return
                    await self._handle_line(inbound)
        finally:
            for task in (read_task, cmd_task):
                if task is not None and not task.done():
                    task.cancel()
                    with contextlib.suppress(asyncio.CancelledError):
                        await task

    async def _handle_line(self, line: str) -> None:
        if is_ping(line):
            await self._write(encode(pong_for(line)))
            logger.log_event("irc", "ping", level=logging.DEBUG, server=self.name, raw=line)
            await self.debug.put(line)
            return
        await self.debug.put(line)
        if not line:
            return
        message = decode_lenient(line)
        if isinstance(message.command, Malformed):
            logger.log_event(
                "irc",
                "malformed_line",
                level=logging.WARNING,
                server=self.name,
                reason=message.command.reason,
                raw=line,
            )
        await self.events.put(MessageReceived(message))

    async def _read_line(self) -> str | None:
        if self.reader is None:
            raise TransportError("Session has no reader")
        try:
            data = await self.reader.readline()
        except (OSError, ValueError) as e:
            raise TransportError(f"Read from {self.name} failed: {e}") from e
        if not data:
            return None
        return data.decode("utf-8", errors="replace").rstrip("\r\n")

    async def _write(self, line: str) -> None:
        if self.writer is None:
            raise TransportError("Session has no writer")
        try:
            self.writer.write(line.encode("utf-8"))
            await self.writer.drain()
        except (OSError, RuntimeError) as e:
            raise TransportError(f"Write to {self.name} failed: {e}") from e

    def _mark_closed(self) -> None:
        self._set_state(SessionState.CLOSED)
        self.closed.set()

    def _drop_pending_commands(self) -> None:
        dropped = 0
        while True:
            try:
                self.outbound.get_nowait()
            except asyncio.QueueEmpty:
                break
            dropped += 1
        if dropped:
            logger.log_event(
                "irc", "pending_dropped", level=logging.WARNING, server=self.name, count=dropped
            )

    async def _close_transport(self) -> None:
        writer, self.writer, self.reader = self.writer, None, None
        if writer is None:
            return
        try:
            writer.close()
            await writer.wait_closed()
        except (OSError, RuntimeError) as e:
            logger.log_event(
                "irc", "close_error", level=logging.DEBUG, server=self.name, error=str(e)
            )

    async def _finish(self, reason: str | None) -> None:
        if self._finished:
            return
        self._finished = True
        self._mark_closed()
        self._drop_pending_commands()
        logger.log_event(
            "irc",
            "disconnected",
            level=logging.WARNING,
            server=self.name,
            reason=reason or "end of stream",
        )
        await self.events.put(Disconnected(reason=reason))
