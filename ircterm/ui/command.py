"""Input line interpretation."""

from __future__ import annotations

from dataclasses import dataclass

from ..errors import CommandArgumentError


@dataclass(frozen=True, slots=True)
class Connect:
    address: str


@dataclass(frozen=True, slots=True)
class Join:
    chan: str


@dataclass(frozen=True, slots=True)
class Quit:
    msg: str = ""


@dataclass(frozen=True, slots=True)
class Nick:
    nick: str


@dataclass(frozen=True, slots=True)
class Query:
    nick: str


@dataclass(frozen=True, slots=True)
class Msg:
    text: str


@dataclass(frozen=True, slots=True)
class Unsupported:
    cmd: str
    rest: str


Cmd = Connect | Join | Quit | Nick | Query | Msg | Unsupported


def _make_cmd(name: str, rest: str) -> Cmd:
    if name == "/connect":
        if not rest:
            raise CommandArgumentError("No server address provided")
        return Connect(rest)
    if name == "/join":
        if not rest:
            raise CommandArgumentError("No channel name provided")
        return Join(rest)
    if name == "/quit":
        return Quit(rest)
    if name == "/nick":
        return Nick(rest)
    if name == "/query":
        if not rest:
            raise CommandArgumentError("No nickname provided")
        return Query(rest)
    return Unsupported(cmd=name, rest=rest)


def parse_input(line: str) -> Cmd:
    """Interpret a committed input line.

    Lines not starting with ``/`` are messages, verbatim. Otherwise the first
    whitespace-delimited token names the command and the trimmed remainder is its
    argument.

    Raises:
        CommandArgumentError: If a command is missing a required argument.
    """
    if not line.startswith("/"):
        return Msg(line)
    name, *rest = line.split(None, 1)
    return _make_cmd(name, rest[0].strip() if rest else "")
