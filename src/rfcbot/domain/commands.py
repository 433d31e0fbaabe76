"""Bot command parsing.

A command is the first comment line starting with the bot mention, e.g.

    @rfcbot: fcp merge
    @rfcbot concern naming is unclear
    @rfcbot f? @someone
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from rfcbot.config import RFC_BOT_MENTION
from rfcbot.domain.models import FcpDisposition


class CommandParseError(ValueError):
    """Comment does not contain a valid bot command."""

    pass


@dataclass(frozen=True)
class FcpPropose:
    disposition: FcpDisposition


@dataclass(frozen=True)
class FcpCancel:
    pass


@dataclass(frozen=True)
class Reviewed:
    pass


@dataclass(frozen=True)
class NewConcern:
    name: str


@dataclass(frozen=True)
class ResolveConcern:
    name: str


@dataclass(frozen=True)
class FeedbackRequest:
    username: str


RfcBotCommand = Union[FcpPropose, FcpCancel, Reviewed, NewConcern, ResolveConcern, FeedbackRequest]

_FCP_INVOCATIONS = ("fcp", "pr")

_DISPOSITIONS = {
    "merge": FcpDisposition.MERGE,
    "close": FcpDisposition.CLOSE,
    "postpone": FcpDisposition.POSTPONE,
}


def _command_line(body: str) -> str:
    for line in body.splitlines():
        if line.startswith(RFC_BOT_MENTION):
            return line[len(RFC_BOT_MENTION):].lstrip(":").strip()
    raise CommandParseError("no bot mention found")


def _rest_after(command: str, invocation: str) -> str:
    return command[len(invocation):].strip()


def parse_command(body: str) -> RfcBotCommand:
    """Parse the bot command out of a comment body.

    Args:
        body: Full comment body.

    Returns:
        One of the command dataclasses.

    Raises:
        CommandParseError: If there is no mention line or the command is
            unknown or incomplete.
    """
    command = _command_line(body)
    tokens = command.split()
    if not tokens:
        raise CommandParseError("empty command")

    invocation = tokens[0]

    if invocation in _FCP_INVOCATIONS:
        if len(tokens) < 2:
            raise CommandParseError("missing fcp subcommand")
        subcommand = tokens[1]
        if subcommand == "cancel":
            return FcpCancel()
        disposition = _DISPOSITIONS.get(subcommand)
        if disposition is None:
            raise CommandParseError(f"unknown fcp subcommand: {subcommand}")
        return FcpPropose(disposition)

    if invocation == "concern":
        name = _rest_after(command, invocation)
        if not name:
            raise CommandParseError("missing concern name")
        return NewConcern(name)

    if invocation == "resolved":
        name = _rest_after(command, invocation)
        if not name:
            raise CommandParseError("missing concern name")
        return ResolveConcern(name)

    if invocation == "reviewed":
        return Reviewed()

    if invocation == "f?":
        if len(tokens) < 2:
            raise CommandParseError("no user specified")
        username = tokens[1][1:] if tokens[1].startswith("@") else tokens[1]
        if not username:
            raise CommandParseError("no user specified")
        return FeedbackRequest(username)

    raise CommandParseError(f"unknown command: {invocation}")
