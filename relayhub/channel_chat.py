"""Deciding where chat said on a channel has to go.

Chat on a god channel goes to the GM.  Chat on a special channel that must be
handed to the game servers goes to one server or to all of them, tagged with
the team, faction, tong, screen or broadcast it is meant for.  Other chat is
delivered straight to the players who listen to the channel, grouped by the
game server they are on.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional, Sequence, TypeVar

from relayhub.channel_names import ChannelKind
from relayhub.channel_registry import ChannelError, ChannelInfo, ChannelRegistry

_DWORD = 0xFFFFFFFF

T = TypeVar("T")


class RouteTarget(Enum):
    """Who a piece of channel chat is delivered to."""

    GM = "gm"
    TEAM = "team"
    FACTION = "faction"
    TONG = "tong"
    SCREEN = "screen"
    BROADCAST = "broadcast"
    MEMBERS = "members"


@dataclass(frozen=True)
class ChatRoute:
    """Where one piece of channel chat goes.

    ``ip`` is the game server to send to, or None for every server.
    ``members`` maps each server address to the ``(param, nameid)`` pairs of
    its listening players; it is filled only for ``RouteTarget.MEMBERS``.
    """

    target: RouteTarget
    target_id: int = 0
    ip: Optional[int] = None
    members: dict[int, list[tuple[int, int]]] = field(default_factory=dict)


def subscribed_members(registry: ChannelRegistry,
                       channel_id: int) -> dict[int, list[tuple[int, int]]]:
    """Return the listening players of a channel, grouped by server address.

    Servers and players come in ascending order; servers with no listener
    are left out.
    """
    info = registry.info(channel_id)
    grouped: dict[int, list[tuple[int, int]]] = {}
    for ip in sorted(info.members):
        players = info.members[ip]
        listeners = [
            (param, players[param].nameid)
            for param in sorted(players)
            if players[param].subscribed
        ]
        if listeners:
            grouped[ip] = listeners
    return grouped


def filter_subscribed(registry: ChannelRegistry, ip: int, channel_id: int,
                      params: Iterable[int]) -> list[int]:
    """Keep, in order, the players on server ``ip`` who listen to the channel."""
    return [param for param in params if registry.is_subscribed(ip, param, channel_id)]


def batch_members(members: Sequence[T], payload_size: int, member_size: int,
                  max_package: int) -> list[list[T]]:
    """Split ``members`` into groups that each fit in one package.

    A package holds ``payload_size`` bytes followed by ``member_size`` bytes
    per member and may not exceed ``max_package`` bytes.  Raises ValueError
    when not even one member fits.
    """
    if member_size <= 0:
        raise ValueError("member size must be positive")
    if payload_size + member_size > max_package:
        raise ValueError("payload leaves no room for a member")
    batches: list[list[T]] = []
    current: list[T] = []
    cursor = payload_size
    for member in members:
        current.append(member)
        cursor += member_size
        if cursor + member_size > max_package:
            batches.append(current)
            current = []
            cursor = payload_size
    if current:
        batches.append(current)
    return batches


def _relegated(registry: ChannelRegistry, info: ChannelInfo, source_param: int,
               allow_screen: bool) -> ChatRoute:
    config = registry.config
    try:
        ident, ip = config.parse_name(info.name)
    except ValueError as exc:
        raise ChannelError(str(exc)) from None
    kind = config.kind_of(info.name)
    if kind is ChannelKind.TEAM:
        if ip == 0:
            raise ChannelError(f"team channel {info.name!r} has no server")
        return ChatRoute(RouteTarget.TEAM, ident, ip)
    if kind is ChannelKind.FACTION:
        return ChatRoute(RouteTarget.FACTION, ident, None)
    if kind is ChannelKind.TONG:
        return ChatRoute(RouteTarget.TONG, ident, None)
    if kind is ChannelKind.SCREEN:
        if not allow_screen:
            raise ChannelError("screen channels cannot be spoken on from here")
        if ip == 0:
            raise ChannelError(f"screen channel {info.name!r} has no server")
        return ChatRoute(RouteTarget.SCREEN, source_param, ip)
    if kind is ChannelKind.BROADCAST:
        if ip == 0:
            raise ChannelError(f"broadcast channel {info.name!r} has no server")
        return ChatRoute(RouteTarget.BROADCAST, 0, ip)
    raise ChannelError(f"channel {info.name!r} cannot be relegated")


def _route(registry: ChannelRegistry, channel_id: int, info: ChannelInfo,
           filtered: bool, source_param: int, allow_screen: bool) -> ChatRoute:
    if info.god:
        return ChatRoute(RouteTarget.GM)
    if registry.config.needs_relegate(info.name, filtered):
        return _relegated(registry, info, source_param, allow_screen)
    return ChatRoute(RouteTarget.MEMBERS, members=subscribed_members(registry, channel_id))


def route_channel_chat(registry: ChannelRegistry, channel_id: int, cost: int,
                       filtered: bool, source_param: int) -> ChatRoute:
    """Route chat a player said on a channel.

    ``cost`` must match the channel's cost.  ``source_param`` identifies the
    speaker on its server and addresses screen chat.  Raises ChannelError
    when the chat cannot be delivered.
    """
    if channel_id == _DWORD:
        raise ChannelError("no channel id given")
    info = registry.info(channel_id)
    if cost != info.cost:
        raise ChannelError(f"cost {cost} does not match channel cost {info.cost}")
    return _route(registry, channel_id, info, filtered, source_param, allow_screen=True)


def route_gm_say(registry: ChannelRegistry, channel_id: int,
                 filtered: bool) -> ChatRoute:
    """Route words the GM says on a channel; screen channels refuse."""
    info = registry.info(channel_id)
    return _route(registry, channel_id, info, filtered, 0, allow_screen=False)