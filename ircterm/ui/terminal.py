"""Curses front end: renders the conversation model and feeds keystrokes.

Keystrokes are read on the event loop thread (``add_reader`` on stdin with a
non-blocking window) so curses is only ever touched from one thread.
"""

from __future__ import annotations

import asyncio
import curses
import logging
import sys
from typing import Any

from ..config import ClientConfig
from ..logging_config import LoggerConfigurator
from ..logs.logger import logger
from .app import ChatApp, Key, KeyPress, Redraw
from .tabs import ConversationModel

_ENTER_KEYS = {"\n", "\r", curses.KEY_ENTER}
_BACKSPACE_KEYS = {"\x7f", "\b", curses.KEY_BACKSPACE}

# Control characters from server text would move the cursor or, for NUL, make
# curses refuse the string outright.
_CONTROL_CHARS = {code: "\ufffd" for code in (*range(0x20), 0x7F)}
_CONTROL_CHARS[ord("\t")] = " "


def translate_key(wch: str | int) -> KeyPress | None:
    """Map a ``get_wch`` result to a key press; ``None`` for keys we ignore."""
    if wch in _ENTER_KEYS:
        return KeyPress(Key.ENTER)
    if wch in _BACKSPACE_KEYS:
        return KeyPress(Key.BACKSPACE)
    if wch == "\t":
        return KeyPress(Key.TAB)
    if wch == "\x1b":
        return KeyPress(Key.ESC)
    if isinstance(wch, str) and wch.isprintable():
        return KeyPress(Key.CHAR, wch)
    return None


class CursesRenderer:
    """Tab bar on the first row, tab lines in the middle, input on the last row."""

    def __init__(self, stdscr: Any) -> None:
        self.stdscr = stdscr

    def _put(self, y: int, x: int, text: str, attr: int = 0) -> None:
        _, width = self.stdscr.getmaxyx()
        if x >= width - 1:
            return
        try:
            self.stdscr.addnstr(y, x, text.translate(_CONTROL_CHARS), width - 1 - x, attr)
        except (curses.error, ValueError):
            # Writing into the bottom-right cell raises even when it succeeds.
            pass

    def draw(self, model: ConversationModel) -> None:
        height, _ = self.stdscr.getmaxyx()
        if height < 3:
            return
        self.stdscr.erase()

        x = 0
        for pos, tab in enumerate(model.tabs):
            active = pos == model.cur_tab
            label = f"[{tab.id.label}]" if active else f" {tab.id.label} "
            self._put(0, x, label, curses.A_BOLD if active else 0)
            x += len(label)

        tab = model.current
        rows = height - 2
        visible = list(tab.lines)[-rows:]
        for offset, line in enumerate(visible):
            self._put(1 + rows - len(visible) + offset, 0, line)

        self._put(height - 1, 0, tab.input)
        try:
            curses.curs_set(1)
            self.stdscr.move(height - 1, min(len(tab.input), self.stdscr.getmaxyx()[1] - 1))
        except curses.error:
            pass
        self.stdscr.refresh()


class KeyReader:
    """Reads all pending keystrokes whenever stdin becomes readable."""

    def __init__(self, stdscr: Any, app: ChatApp) -> None:
        self.stdscr = stdscr
        self.app = app
        self._loop: asyncio.AbstractEventLoop | None = None

    def start(self) -> None:
        self.stdscr.nodelay(True)
        self.stdscr.keypad(True)
        self._loop = asyncio.get_running_loop()
        self._loop.add_reader(sys.stdin.fileno(), self._on_readable)

    def stop(self) -> None:
        if self._loop is not None:
            self._loop.remove_reader(sys.stdin.fileno())
            self._loop = None

    def _on_readable(self) -> None:
        while True:
            try:
                wch = self.stdscr.get_wch()
            except curses.error:
                return
            if wch == curses.KEY_RESIZE:
                self.app.submit_key(Redraw())
                continue
            press = translate_key(wch)
            if press is not None:
                self.app.submit_key(press)


async def run_terminal(stdscr: Any, config: ClientConfig) -> None:
    curses.raw()
    curses.noecho()
    app = ChatApp(config, renderer=CursesRenderer(stdscr))
    reader = KeyReader(stdscr, app)
    reader.start()
    try:
        await app.run()
    finally:
        reader.stop()


def main() -> None:
    config = ClientConfig.from_env()
    LoggerConfigurator(config.log_file).configure()
    logger.log_event("app", "configured", level=logging.DEBUG, nick=config.nick)
    curses.wrapper(lambda stdscr: asyncio.run(run_terminal(stdscr, config)))
