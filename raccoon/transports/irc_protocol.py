"""IRC message parsing and serialisation (RFC 1459 / RFC 2812)."""

from __future__ import annotations

from dataclasses import dataclass, field

RPL_WELCOME = "001"
ERR_NOSUCHCHANNEL = "403"
ERR_TOOMANYCHANNELS = "405"
ERR_ERRONEUSNICKNAME = "432"
ERR_NICKNAMEINUSE = "433"
ERR_NICKCOLLISION = "436"
ERR_UNAVAILRESOURCE = "437"
ERR_PASSWDMISMATCH = "464"
ERR_YOUREBANNEDCREEP = "465"
ERR_CHANNELISFULL = "471"
ERR_INVITEONLYCHAN = "473"
ERR_BANNEDFROMCHAN = "474"
ERR_BADCHANNELKEY = "475"
ERR_BADCHANMASK = "476"
ERR_NEEDREGGEDNICK = "477"

NICK_IN_USE = frozenset({ERR_NICKNAMEINUSE, ERR_NICKCOLLISION, ERR_UNAVAILRESOURCE})
JOIN_ERRORS = frozenset({
    ERR_NOSUCHCHANNEL,
    ERR_TOOMANYCHANNELS,
    ERR_CHANNELISFULL,
    ERR_INVITEONLYCHAN,
    ERR_BANNEDFROMCHAN,
    ERR_BADCHANNELKEY,
    ERR_BADCHANMASK,
    ERR_NEEDREGGEDNICK,
})

_FORBIDDEN = ("\r", "\n", "\0")


@dataclass(frozen=True)
class IrcMessage:
    command: str
    params: tuple[str, ...] = ()
    prefix: str = ""
    tags: dict[str, str] = field(default_factory=dict, compare=False)

    @property
    def nick(self) -> str:
        """Nickname part of the prefix, ``nick!user@host``."""
        return self.prefix.split("!", 1)[0]

    @property
    def trailing(self) -> str:
        return self.params[-1] if self.params else ""

    def param(self, index: int, default: str = "") -> str:
        return self.params[index] if index < len(self.params) else default


def parse_line(line: str) -> IrcMessage:
    """Parse one line (without CRLF). Raises ValueError on an empty line."""
    line = line.rstrip("\r\n")
    tags: dict[str, str] = {}
    prefix = ""

    if line.startswith("@"):
        raw_tags, _, line = line[1:].partition(" ")
        for item in raw_tags.split(";"):
            key, _, value = item.partition("=")
            tags[key] = value
        line = line.lstrip(" ")

    if line.startswith(":"):
        prefix, _, line = line[1:].partition(" ")
        line = line.lstrip(" ")

    trailing = None
    if " :" in line:
        line, trailing = line.split(" :", 1)
    elif line.startswith(":"):
        line, trailing = "", line[1:]

    parts = line.split()
    if not parts:
        raise ValueError("empty IRC message")

    params = parts[1:]
    if trailing is not None:
        params.append(trailing)
    return IrcMessage(command=parts[0].upper(), params=tuple(params), prefix=prefix, tags=tags)


def build_line(command: str, *params: str) -> str:
    """Serialise a command. Only the last parameter may contain spaces."""
    for value in params:
        if any(ch in value for ch in _FORBIDDEN):
            raise ValueError(f"IRC parameter contains a line break or NUL: {value!r}")

    if not params:
        return command

    *middle, last = params
    for value in middle:
        if not value or " " in value or value.startswith(":"):
            raise ValueError(f"invalid middle IRC parameter: {value!r}")

    if not last or " " in last or last.startswith(":"):
        last = f":{last}"
    return " ".join([command, *middle, last])


def nick(name: str) -> str:
    return build_line("NICK", name)


def user(username: str, realname: str) -> str:
    return build_line("USER", username, "0", "*", realname)


def password(secret: str) -> str:
    return build_line("PASS", secret)


def join(channel: str, key: str | None = None) -> str:
    if key:
        return build_line("JOIN", channel, key)
    return build_line("JOIN", channel)


def privmsg(target: str, text: str) -> str:
    return build_line("PRIVMSG", target, text)


def pong(token: str) -> str:
    return build_line("PONG", token)


def ping(token: str) -> str:
    return build_line("PING", token)


def quit_(reason: str) -> str:
    return build_line("QUIT", reason)
