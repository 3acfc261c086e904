"""IRC wire-format codec.

``decode`` turns one raw line into a :class:`ServerMessage`; ``encode`` turns a
client command into a CRLF-terminated line. Both are pure: no I/O, no state.

A line is ``[":" prefix SP] command [SP middle...] [SP ":" trailing]``. The
trailing parameter is taken verbatim from the first ``" :"`` boundary so that
runs of spaces inside it survive decoding.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar

from ..errors import MalformedMessageError

CRLF = "\r\n"


# --- prefixes & targets ---------------------------------------------------


@dataclass(frozen=True, slots=True)
class ServerPrefix:
    name: str


@dataclass(frozen=True, slots=True)
class UserPrefix:
    nick: str
    user: str
    host: str


Prefix = ServerPrefix | UserPrefix


@dataclass(frozen=True, slots=True)
class ChannelTarget:
    name: str


@dataclass(frozen=True, slots=True)
class UserTarget:
    name: str


@dataclass(frozen=True, slots=True)
class ServerTarget:
    name: str


MsgTarget = ChannelTarget | UserTarget | ServerTarget


def parse_prefix(token: str) -> Prefix:
    """Parse a prefix token with its leading ``:`` already removed."""
    if "!" in token and "@" in token:
        nick, _, rest = token.partition("!")
        user, _, host = rest.partition("@")
        return UserPrefix(nick=nick, user=user, host=host)
    return ServerPrefix(token)


def resolve_target(token: str) -> ChannelTarget | UserTarget:
    """Resolve a PRIVMSG/NOTICE destination token."""
    if token.startswith("#"):
        return ChannelTarget(token)
    return UserTarget(token)


# --- server commands --------------------------------------------------------


class ServCmd:
    """Base class of every decoded server command."""

    __slots__ = ()


@dataclass(frozen=True, slots=True)
class Join(ServCmd):
    chan: str


@dataclass(frozen=True, slots=True)
class Part(ServCmd):
    chan: str
    msg: str = ""


@dataclass(frozen=True, slots=True)
class PrivMsg(ServCmd):
    target: ChannelTarget | UserTarget
    msg: str


@dataclass(frozen=True, slots=True)
class Notice(ServCmd):
    target: ChannelTarget | UserTarget
    msg: str


@dataclass(frozen=True, slots=True)
class Nick(ServCmd):
    nick: str


@dataclass(frozen=True, slots=True)
class Quit(ServCmd):
    msg: str = ""


@dataclass(frozen=True, slots=True)
class Error(ServCmd):
    msg: str


@dataclass(frozen=True, slots=True)
class RplMyInfo(ServCmd):
    """004: server version and supported modes."""

    version: str
    umodes: str
    cmodes: str
    cmodes_param: str


@dataclass(frozen=True, slots=True)
class NameReply(ServCmd):
    """353: one chunk of a channel's member list."""

    symbol: str
    chan: str
    nicks: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class InfoReply(ServCmd):
    """A numeric reply whose only payload is its text after the target nick."""

    code: ClassVar[str] = ""
    msg: str


class RplWelcome(InfoReply):
    code = "001"


class RplYourHost(InfoReply):
    code = "002"


class RplCreated(InfoReply):
    code = "003"


class RplISupport(InfoReply):
    code = "005"


class RplLuserClient(InfoReply):
    code = "251"


class RplLuserOp(InfoReply):
    code = "252"


class RplLuserUnknown(InfoReply):
    code = "253"


class RplLuserChannels(InfoReply):
    code = "254"


class RplLuserMe(InfoReply):
    code = "255"


class RplLocalUsers(InfoReply):
    code = "265"


class RplGlobalUsers(InfoReply):
    code = "266"


class EndOfNames(InfoReply):
    """366: channel name followed by the end-of-list text."""

    code = "366"


class Motd(InfoReply):
    code = "372"


class MotdStart(InfoReply):
    code = "375"


class MotdEnd(InfoReply):
    code = "376"


class DisplayedHost(InfoReply):
    code = "396"


@dataclass(frozen=True, slots=True)
class Unknown(ServCmd):
    """Any command without a dedicated variant; parameters kept untouched."""

    command: str
    params: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class Malformed(ServCmd):
    """A known command that was missing an expected parameter."""

    command: str
    params: tuple[str, ...] = ()
    reason: str = ""


INFO_REPLIES: dict[str, type[InfoReply]] = {
    cls.code: cls
    for cls in (
        RplWelcome,
        RplYourHost,
        RplCreated,
        RplISupport,
        RplLuserClient,
        RplLuserOp,
        RplLuserUnknown,
        RplLuserChannels,
        RplLuserMe,
        RplLocalUsers,
        RplGlobalUsers,
        EndOfNames,
        Motd,
        MotdStart,
        MotdEnd,
        DisplayedHost,
    )
}


@dataclass(frozen=True, slots=True)
class ServerMessage:
    prefix: Prefix | None
    command: ServCmd
    raw: str = field(default="", compare=False)


# --- decoding -----------------------------------------------------------------


def split_params(text: str) -> list[str]:
    """Split the parameter section of a line.

    Middle parameters are whitespace separated; everything after the first
    ``" :"`` (or a leading ``":"``) is one trailing parameter, kept verbatim
    without its marker.
    """
    trailing: str | None = None
    if text.startswith(":"):
        middle, trailing = "", text[1:]
    elif " :" in text:
        middle, trailing = text.split(" :", 1)
    else:
        middle = text
    params = middle.split()
    if trailing is not None:
        params.append(trailing)
    return params


def _require(command: str, params: list[str], count: int, what: str) -> None:
    if len(params) < count:
        raise MalformedMessageError(
            f"{command} is missing {what}", command=command, params=params
        )


def _build_command(command: str, params: list[str]) -> ServCmd:  # noqa: C901
    code = command.upper()
    if code == "JOIN":
        _require(command, params, 1, "a channel")
        return Join(chan=params[0])
    if code == "PART":
        _require(command, params, 1, "a channel")
        if len(params) == 1:
            return Part(chan=params[0], msg="")
        return Part(chan=params[0], msg=params[-1])
    if code == "PRIVMSG":
        _require(command, params, 2, "a target and a message")
        return PrivMsg(target=resolve_target(params[0]), msg=params[1])
    if code == "NOTICE":
        _require(command, params, 2, "a target and a message")
        return Notice(target=resolve_target(params[0]), msg=params[1])
    if code == "NICK":
        _require(command, params, 1, "a nickname")
        return Nick(nick=params[0])
    if code == "QUIT":
        return Quit(msg=params[0] if params else "")
    if code == "ERROR":
        _require(command, params, 1, "a message")
        return Error(msg=params[0])
    if code == "004":
        _require(command, params, 6, "version and mode parameters")
        return RplMyInfo(
            version=params[2],
            umodes=params[3],
            cmodes=params[4],
            cmodes_param=params[5],
        )
    if code == "353":
        _require(command, params, 4, "symbol, channel and nick list")
        symbol = params[1]
        if len(symbol) != 1:
            raise MalformedMessageError(
                f"{command} has an invalid channel symbol {symbol!r}",
                command=command,
                params=params,
            )
        return NameReply(symbol=symbol, chan=params[2], nicks=tuple(params[3].split()))
    info_cls = INFO_REPLIES.get(code)
    if info_cls is not None:
        _require(command, params, 2, "reply text")
        return info_cls(msg=" ".join(params[1:]))
    return Unknown(command=command, params=tuple(params))


def decode(line: str) -> ServerMessage:
    """Decode one raw protocol line (without its CRLF).

    Raises:
        MalformedMessageError: If the line has no command, or a known command
            lacks one of its expected parameters.
    """
    rest = line.rstrip("\r\n").lstrip(" ")
    prefix: Prefix | None = None
    if rest.startswith(":"):
        token, _, rest = rest[1:].partition(" ")
        prefix = parse_prefix(token)
        rest = rest.lstrip(" ")
    command, _, rest = rest.partition(" ")
    if not command:
        raise MalformedMessageError("line has no command", command="", raw=line)
    params = split_params(rest.lstrip(" "))
    try:
        cmd = _build_command(command, params)
    except MalformedMessageError as e:
        raise MalformedMessageError(
            str(e), command=e.command, params=e.params, raw=line
        ) from None
    return ServerMessage(prefix=prefix, command=cmd, raw=line)


def decode_lenient(line: str) -> ServerMessage:
    """Like :func:`decode` but degrades malformed lines to :class:`Malformed`."""
    try:
        return decode(line)
    except MalformedMessageError as e:
        prefix: Prefix | None = None
        stripped = line.lstrip(" ")
        if stripped.startswith(":"):
            prefix = parse_prefix(stripped[1:].partition(" ")[0])
        return ServerMessage(
            prefix=prefix,
            command=Malformed(command=e.command, params=tuple(e.params), reason=str(e)),
            raw=line,
        )


# --- client commands --------------------------------------------------------


class ClientCommand:
    """Base class of commands the client sends."""

    __slots__ = ()

    def to_line(self) -> str:
        raise NotImplementedError


@dataclass(frozen=True, slots=True)
class NickCmd(ClientCommand):
    nick: str

    def to_line(self) -> str:
        return f"NICK {self.nick}"


@dataclass(frozen=True, slots=True)
class UserCmd(ClientCommand):
    user: str
    realname: str

    def to_line(self) -> str:
        return f"USER {self.user} 0 * :{self.realname}"


@dataclass(frozen=True, slots=True)
class JoinCmd(ClientCommand):
    chan: str

    def to_line(self) -> str:
        return f"JOIN {self.chan}"


@dataclass(frozen=True, slots=True)
class PrivMsgCmd(ClientCommand):
    target: str
    msg: str

    def to_line(self) -> str:
        return f"PRIVMSG {self.target} :{self.msg}"


@dataclass(frozen=True, slots=True)
class QuitCmd(ClientCommand):
    msg: str = ""

    def to_line(self) -> str:
        return f"QUIT :{self.msg}"


@dataclass(frozen=True, slots=True)
class PongCmd(ClientCommand):
    token: str

    def to_line(self) -> str:
        return f"PONG {self.token}" if self.token else "PONG"


def encode(cmd: ClientCommand) -> str:
    """Render a client command as a CRLF-terminated wire line."""
    return f"{cmd.to_line()}{CRLF}"


def is_ping(line: str) -> bool:
    return line.startswith("PING")


def pong_for(ping_line: str) -> PongCmd:
    """Build the keepalive reply echoing the token after ``PING `` verbatim."""
    return PongCmd(token=ping_line[5:].rstrip("\r\n"))
