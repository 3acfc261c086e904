from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from ircterm.errors import ChannelSaturationError, SessionClosedError
from ircterm.irc.dispatcher import DebugLine, SessionEnded, TabLine
from ircterm.irc.protocol import ChannelTarget
from ircterm.irc.session import IRCSession
from ircterm.ui import command
from ircterm.ui.app import ChatApp, Key, KeyPress, NullRenderer, Redraw
from ircterm.ui.tabs import ChannelTab, DebugTab, QueryTab, ServerTab

SERV = "irc.example.net"


def _debug_lines(app: ChatApp) -> list[str]:
    return list(app.model.tabs[0].lines)


class TestChatApp:
    @pytest.fixture
    def app(self, config, fake_server):  # type: ignore[no-untyped-def]
        def factory(info):  # type: ignore[no-untyped-def]
            return IRCSession(info, opener=fake_server.open, connect_timeout=1.0)

        return ChatApp(config, session_factory=factory)

    @pytest.mark.asyncio
    async def test_connect_opens_server_tab(self, app, fake_server):  # type: ignore[no-untyped-def]
        await app.execute(command.Connect(SERV))
        assert app.model.current.id == ServerTab(SERV)
        assert SERV in app.handles
        assert "Connecting to irc.example.net" in _debug_lines(app)
        assert await fake_server.wait_for_write("USER") == "USER guest 0 * :Meager\r\n"
        assert fake_server.writer.lines[0] == "NICK tester\r\n"
        await app.shutdown()

    @pytest.mark.asyncio
    async def test_connect_with_port(self, app, fake_server):  # type: ignore[no-untyped-def]
        await app.execute(command.Connect(f"{SERV}:6697"))
        await fake_server.wait_for_write("USER")
        assert fake_server.opened == [(SERV, 6697)]
        await app.shutdown()

    @pytest.mark.asyncio
    async def test_connect_bad_port(self, app):  # type: ignore[no-untyped-def]
        await app.execute(command.Connect(f"{SERV}:notaport"))
        assert app.handles == {}
        assert "Invalid port" in _debug_lines(app)[-1]

    @pytest.mark.asyncio
    async def test_connect_twice_is_refused(self, app, fake_server):  # type: ignore[no-untyped-def]
        await app.execute(command.Connect(SERV))
        await app.execute(command.Connect(SERV))
        assert _debug_lines(app)[-1] == f"Already connected to {SERV}"
        assert len([t for t in app.model.tabs if t.id == ServerTab(SERV)]) == 1
        await app.shutdown()

    @pytest.mark.asyncio
    async def test_join_and_message_echo(self, app, fake_server):  # type: ignore[no-untyped-def]
        await app.execute(command.Connect(SERV))
        await app.execute(command.Join("#bobcat"))
        assert app.model.current.id == ChannelTab(SERV, "#bobcat")
        await app.execute(command.Msg("hello there"))
        assert list(app.model.current.lines) == ["<tester> hello there"]
        assert await fake_server.wait_for_write("PRIVMSG") == "PRIVMSG #bobcat :hello there\r\n"
        assert "JOIN #bobcat\r\n" in fake_server.writer.lines
        await app.shutdown()
        assert "QUIT :\r\n" in fake_server.writer.lines

    @pytest.mark.asyncio
    async def test_nick_changes_echo_name(self, app, fake_server):  # type: ignore[no-untyped-def]
        await app.execute(command.Connect(SERV))
        await app.execute(command.Nick("renamed"))
        await app.execute(command.Query("friend"))
        assert app.model.current.id == QueryTab(SERV, "friend")
        await app.execute(command.Msg("hi"))
        assert list(app.model.current.lines) == ["<renamed> hi"]
        assert await fake_server.wait_for_write("PRIVMSG") == "PRIVMSG friend :hi\r\n"
        assert "NICK renamed\r\n" in fake_server.writer.lines
        await app.shutdown()

    @pytest.mark.asyncio
    async def test_empty_nick_is_reported(self, app):  # type: ignore[no-untyped-def]
        await app.execute(command.Nick(""))
        assert _debug_lines(app)[-1] == "Command parse error: No nickname provided"

    @pytest.mark.asyncio
    async def test_commands_without_session(self, app):  # type: ignore[no-untyped-def]
        await app.execute(command.Join("#c"))
        await app.execute(command.Msg("hi"))
        await app.execute(command.Query("friend"))
        assert _debug_lines(app)[-3:] == [
            "No server for the debug tab",
            "Message command on debug tab",
            "Query command on debug tab",
        ]
        assert len(app.model.tabs) == 1

    @pytest.mark.asyncio
    async def test_message_on_server_tab_is_not_sent(self, app, fake_server):  # type: ignore[no-untyped-def]
        await app.execute(command.Connect(SERV))
        await app.execute(command.Msg("raw text"))
        assert _debug_lines(app)[-1] == "Message sent on server tab: raw text"
        await app.shutdown()
        assert not any(line.startswith("PRIVMSG") for line in fake_server.writer.lines)

    @pytest.mark.asyncio
    async def test_unsupported_is_echoed(self, app):  # type: ignore[no-untyped-def]
        await app.execute(command.Unsupported(cmd="/foo", rest="a b"))
        assert _debug_lines(app)[-1] == "Unsupported command: /foo a b"

    @pytest.mark.asyncio
    async def test_parse_error_goes_to_debug(self, app):  # type: ignore[no-untyped-def]
        for ch in "/join":
            await app.handle_key(KeyPress(Key.CHAR, ch))
        await app.handle_key(KeyPress(Key.ENTER))
        assert _debug_lines(app)[-1] == "Command parse error: No channel name provided"
        assert app.model.current.input == ""

    @pytest.mark.asyncio
    async def test_updates_mutate_model(self, app):  # type: ignore[no-untyped-def]
        app.model.add_tab(ChannelTab(SERV, "#bobcat"))
        await app.apply(TabLine(SERV, ChannelTarget("#bobcat"), "<a> hi"))
        await app.apply(DebugLine("raw"))
        await app.apply(TabLine(SERV, ChannelTarget("#gone"), "<a> lost"))
        assert list(app.model.find_tab(ChannelTab(SERV, "#bobcat")).lines) == ["<a> hi"]
        lines = _debug_lines(app)
        assert lines[0] == "raw"
        assert "No tab found" in lines[1]

    @pytest.mark.asyncio
    async def test_session_ended_forgets_handle(self, app, fake_server):  # type: ignore[no-untyped-def]
        await app.execute(command.Connect(SERV))
        fake_server.eof()
        update = None
        while not isinstance(update, SessionEnded):
            update = await asyncio.wait_for(app.mailbox.get(), 1.0)
            await app.apply(update)
        assert SERV not in app.handles
        assert f"{SERV}: connection closed" in _debug_lines(app)
        await app.shutdown()

    @pytest.mark.asyncio
    async def test_run_loop_with_keys(self, config):  # type: ignore[no-untyped-def]
        renderer = NullRenderer()
        app = ChatApp(config, renderer=renderer)
        for ch in "hi":
            app.submit_key(KeyPress(Key.CHAR, ch))
        app.submit_key(KeyPress(Key.ENTER))
        app.submit_key(KeyPress(Key.TAB))
        app.submit_key(Redraw())
        app.submit_key(KeyPress(Key.ESC))
        await asyncio.wait_for(app.run(), 1.0)
        assert not app.running
        assert _debug_lines(app) == ["Message command on debug tab"]
        assert app.model.current.id == DebugTab()
        assert renderer.frames == 7

    @pytest.mark.asyncio
    async def test_full_mailbox_drops_keys(self, config):  # type: ignore[no-untyped-def]
        app = ChatApp(config, mailbox_size=1)
        app.submit_key(KeyPress(Key.CHAR, "a"))
        app.submit_key(KeyPress(Key.CHAR, "b"))
        assert app.mailbox.qsize() == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [ChannelSaturationError("Outbound queue for irc.example.net is full"), SessionClosedError("closed")],
    )
    async def test_submission_failure_is_reported(self, app, error):  # type: ignore[no-untyped-def]
        handle = AsyncMock()
        handle.name = SERV
        handle.join.side_effect = error
        app.handles[SERV] = handle
        app.model.add_tab(ServerTab(SERV))
        app.model.change_to(ServerTab(SERV))
        await app.execute(command.Join("#bobcat"))
        handle.join.assert_awaited_once_with("#bobcat")
        assert _debug_lines(app)[-1] == f"Command failed: {error}"
        assert app.model.find_tab(ChannelTab(SERV, "#bobcat")) is None


class TestConcurrentSessions:
    @pytest.mark.asyncio
    async def test_lines_attributed_to_their_own_server(self, config, server_factory):  # type: ignore[no-untyped-def]
        servers = {"alpha.example.net": server_factory(), "beta.example.net": server_factory()}

        async def opener(address, port):  # type: ignore[no-untyped-def]
            return await servers[address].open(address, port)

        def factory(info):  # type: ignore[no-untyped-def]
            return IRCSession(info, opener=opener, connect_timeout=1.0)

        app = ChatApp(config, session_factory=factory)
        for name in servers:
            await app.execute(command.Connect(name))
            await app.execute(command.Join("#chan"))
        for name, server in servers.items():
            await server.wait_for_write("JOIN")
            server.feed(f":a!u@h PRIVMSG #chan :hello from {name}")

        applied: list = []  # type: ignore[type-arg]
        while len([u for u in applied if isinstance(u, TabLine)]) < 2:
            update = await asyncio.wait_for(app.mailbox.get(), 1.0)
            await app.apply(update)
            applied.append(update)

        for name in servers:
            tab = app.model.find_tab(ChannelTab(name, "#chan"))
            assert list(tab.lines) == [f"<a> hello from {name}"]

        servers["alpha.example.net"].eof()
        update = None
        while not isinstance(update, SessionEnded):
            update = await asyncio.wait_for(app.mailbox.get(), 1.0)
            await app.apply(update)
        assert update.serv == "alpha.example.net"
        assert list(app.handles) == ["beta.example.net"]

        await app.shutdown()
        assert "QUIT :\r\n" in servers["beta.example.net"].writer.lines
        assert "QUIT :\r\n" not in servers["alpha.example.net"].writer.lines
