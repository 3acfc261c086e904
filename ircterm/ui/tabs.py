"""Conversation model: the ordered tabs and the active one.

Only the coordination context mutates a :class:`ConversationModel`. Tab 0 is
the permanent debug tab; ``cur_tab`` always indexes an existing tab.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field

from ..constants import DEBUG_TAB_LABEL
from ..irc.protocol import ChannelTarget, MsgTarget, ServerTarget, UserTarget
from ..logs.logger import logger


@dataclass(frozen=True, slots=True)
class DebugTab:
    @property
    def label(self) -> str:
        return DEBUG_TAB_LABEL


@dataclass(frozen=True, slots=True)
class ServerTab:
    serv: str

    @property
    def label(self) -> str:
        return self.serv


@dataclass(frozen=True, slots=True)
class ChannelTab:
    serv: str
    chan: str

    @property
    def label(self) -> str:
        return self.chan


@dataclass(frozen=True, slots=True)
class QueryTab:
    serv: str
    nick: str

    @property
    def label(self) -> str:
        return self.nick


TabKind = DebugTab | ServerTab | ChannelTab | QueryTab


def tab_for_target(serv: str, target: MsgTarget) -> TabKind:
    if isinstance(target, ChannelTarget):
        return ChannelTab(serv, target.name)
    if isinstance(target, UserTarget):
        return QueryTab(serv, target.name)
    return ServerTab(target.name)


def server_of(kind: TabKind) -> str | None:
    """Server a tab belongs to; ``None`` for the debug tab."""
    if isinstance(kind, DebugTab):
        return None
    return kind.serv


@dataclass
class Tab:
    id: TabKind
    input: str = ""
    lines: deque[str] = field(default_factory=deque)

    def add_line(self, line: str) -> None:
        self.lines.append(line)


class ConversationModel:
    def __init__(self, history_limit: int = 0, auto_open_queries: bool = False) -> None:
        self.history_limit = history_limit
        self.auto_open_queries = auto_open_queries
        self.tabs: list[Tab] = [self._new_tab(DebugTab())]
        self.cur_tab = 0

    def _new_tab(self, kind: TabKind) -> Tab:
        return Tab(id=kind, lines=deque(maxlen=self.history_limit or None))

    @property
    def current(self) -> Tab:
        return self.tabs[self.cur_tab]

    def debug(self, text: str) -> None:
        self.tabs[0].add_line(text)

    def tab_position(self, kind: TabKind) -> int | None:
        for pos, tab in enumerate(self.tabs):
            if tab.id == kind:
                return pos
        return None

    def find_tab(self, kind: TabKind) -> Tab | None:
        pos = self.tab_position(kind)
        return None if pos is None else self.tabs[pos]

    def add_tab(self, kind: TabKind) -> Tab:
        """Append a tab for ``kind``; an existing tab with that id is returned as is."""
        existing = self.find_tab(kind)
        if existing is not None:
            logger.log_event(
                "tabs", "duplicate", level=logging.DEBUG, tab=kind.label
            )
            return existing
        tab = self._new_tab(kind)
        self.tabs.append(tab)
        return tab

    def change_to(self, kind: TabKind) -> bool:
        pos = self.tab_position(kind)
        if pos is None:
            self.debug(f"change_to_tab: No tab found for {kind.label}")
            return False
        self.cur_tab = pos
        return True

    def next_tab(self) -> None:
        self.cur_tab = (self.cur_tab + 1) % len(self.tabs)

    def push_input(self, ch: str) -> None:
        self.current.input += ch

    def pop_input(self) -> None:
        self.current.input = self.current.input[:-1]

    def take_input(self) -> str:
        tab = self.current
        text, tab.input = tab.input, ""
        return text

    def add_msg(self, serv: str, target: MsgTarget, text: str) -> bool:
        """Append ``text`` to the tab ``target`` resolves to on ``serv``.

        A missing tab is never created implicitly, except private queries when
        ``auto_open_queries`` is set; otherwise the line is redirected to the
        debug tab and False is returned.
        """
        kind = tab_for_target(serv, target)
        tab = self.find_tab(kind)
        if tab is None and self.auto_open_queries and isinstance(kind, QueryTab):
            tab = self.add_tab(kind)
        if tab is None:
            self.debug(f"[{serv}] No tab found {target!r} ({text})")
            return False
        tab.add_line(text)
        return True

    def add_serv_msg(self, serv: str, text: str) -> bool:
        return self.add_msg(serv, ServerTarget(serv), text)
