"""The table of chat channels, their ids and the players who use them.

A channel is known by name and by a numeric id handed out by the registry.
Stock channels come from configuration and live until the registry is torn
down.  Other channels are made on demand when a player or the GM asks for
their id.  They are destroyed once nobody uses them.  Each channel tracks,
per game server address, the players who hold its id and whether they
listen to it.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Mapping, Optional

from relayhub.channel_names import ChannelConfig

log = logging.getLogger(__name__)

_DWORD = 0xFFFFFFFF


class ChannelError(Exception):
    """Raised when a channel operation cannot be carried out."""


@dataclass
class Member:
    """A player holding a channel id."""

    nameid: int
    subscribed: bool = False


@dataclass
class ChannelInfo:
    """One channel and its members, grouped by game server address."""

    name: str
    god: bool = False
    stock: bool = False
    cost: int = 0
    gm_use: bool = False
    gm_sub: bool = False
    members: dict[int, dict[int, Member]] = field(default_factory=dict)

    def member(self, ip: int, param: int) -> Optional[Member]:
        return self.members.get(ip, {}).get(param)


class ChannelRegistry:
    """Hands out channel ids and tracks who uses and listens to each channel."""

    def __init__(self, config: ChannelConfig) -> None:
        self.config = config
        self._lock = threading.RLock()
        self._last_id = 0
        self._gm_id: Optional[int] = None
        self._by_id: dict[int, ChannelInfo] = {}
        self._by_name: dict[str, int] = {}

    # -- life cycle ------------------------------------------------------------

    @property
    def gm_channel_id(self) -> Optional[int]:
        """Id of the GM channel, or None when there is none."""
        return self._gm_id

    def initialize(self, gm_channel: str = "",
                   stock_channels: Optional[Mapping[str, int]] = None) -> None:
        """Create the GM channel (if named) and the stock channels.

        ``stock_channels`` maps each stock channel name to its cost; the GM
        channel takes its cost from there too, else the default cost.
        """
        stock_channels = dict(stock_channels or {})
        with self._lock:
            if gm_channel:
                cost = stock_channels.get(gm_channel, self.config.default_cost)
                self._gm_id = self._create(gm_channel, cost, god=True, stock=True)
                log.info("Create Channel: [Stock, GM] <%08X> %s", self._gm_id, gm_channel)
            for name, cost in stock_channels.items():
                if not name:
                    raise ChannelError("stock channel without a name")
                if name == gm_channel:
                    continue
                channel_id = self._create(name, cost, stock=True)
                log.info("Create Channel: [Stock] <%08X> %s", channel_id, name)

    def uninitialize(self) -> None:
        """Forget every channel."""
        with self._lock:
            self._by_id.clear()
            self._by_name.clear()
            self._gm_id = None

    # -- internals -------------------------------------------------------------

    def _gen_id(self) -> int:
        if self._last_id != _DWORD:
            channel_id = self._last_id
            self._last_id += 1
            return channel_id
        candidate = 0
        for used in sorted(self._by_id):
            if used != candidate:
                return candidate
            candidate += 1
        if candidate >= _DWORD:
            raise ChannelError("no channel id left")
        return candidate

    def _create(self, name: str, cost: int, *, god: bool = False,
                stock: bool = False, gm_use: bool = False) -> int:
        channel_id = self._gen_id()
        self._by_name[name] = channel_id
        self._by_id[channel_id] = ChannelInfo(
            name=name, god=god, stock=stock, cost=cost, gm_use=gm_use
        )
        return channel_id

    def _destroy(self, channel_id: int) -> None:
        info = self._by_id.pop(channel_id)
        self._by_name.pop(info.name, None)
        log.info("Destroy Channel: <%08X> %s", channel_id, info.name)

    def _get(self, channel_id: int) -> ChannelInfo:
        try:
            return self._by_id[channel_id]
        except KeyError:
            raise ChannelError(f"no channel {channel_id}") from None

    def _member(self, channel_id: int, ip: int, param: int) -> Member:
        member = self._get(channel_id).member(ip, param)
        if member is None:
            raise ChannelError(
                f"player ({ip:08X}, {param:08X}) does not hold channel {channel_id}"
            )
        return member

    # -- player operations -----------------------------------------------------

    def query_channel_id(self, channel: str, ip: int, param: int,
                         nameid: int) -> tuple[int, int]:
        """Give player ``param`` on server ``ip`` the id of ``channel``.

        Special channels that do not exist yet are created.  Returns
        ``(channel_id, cost)``.  Raises ValueError for a malformed name and
        ChannelError for an unknown plain channel.
        """
        full_name = self.config.make_name(channel, ip)
        with self._lock:
            channel_id = self._by_name.get(full_name)
            if channel_id is None:
                if full_name[0] != self.config.escape:
                    raise ChannelError(f"no channel named {full_name!r}")
                channel_id = self._create(full_name, self.config.pre_cost(channel))
                log.info("Create Channel: <%08X> %s", channel_id, full_name)
            info = self._by_id[channel_id]
            if channel_id != self._gm_id:
                info.members.setdefault(ip, {})[param] = Member(nameid, False)
            return channel_id, info.cost

    def subscribe(self, ip: int, param: int, channel_id: int) -> None:
        """Start the player listening to a channel whose id it holds."""
        with self._lock:
            if channel_id == self._gm_id:
                return
            self._member(channel_id, ip, param).subscribed = True

    def unsubscribe(self, ip: int, param: int, channel_id: int) -> None:
        """Stop the player listening to a channel; the GM channel refuses."""
        with self._lock:
            if channel_id == self._gm_id:
                raise ChannelError("the GM channel cannot be left")
            self._member(channel_id, ip, param).subscribed = False

    def free_channel_id(self, channel_id: int, ip: int, param: int) -> bool:
        """Release the player's hold on a channel.

        Returns True when that destroyed the channel.
        """
        with self._lock:
            if channel_id == self._gm_id:
                return False
            info = self._get(channel_id)
            if info.god:
                return False
            players = info.members.get(ip)
            if players is None:
                raise ChannelError(f"server {ip:08X} holds no player on channel {channel_id}")
            players.pop(param, None)
            if players:
                return False
            del info.members[ip]
            if info.stock or info.gm_use or info.members:
                return False
            self._destroy(channel_id)
            return True

    def clear_player(self, ip: int, param: int) -> list[int]:
        """Drop the player from every channel; return the destroyed ids."""
        destroyed = []
        with self._lock:
            for channel_id, info in list(self._by_id.items()):
                if channel_id == self._gm_id:
                    continue
                players = info.members.get(ip)
                if players is None:
                    continue
                players.pop(param, None)
                if players:
                    continue
                del info.members[ip]
                if info.stock or info.gm_use or info.members:
                    continue
                self._destroy(channel_id)
                destroyed.append(channel_id)
        return destroyed

    def is_used(self, ip: int, param: int, channel_id: int) -> bool:
        with self._lock:
            info = self._by_id.get(channel_id)
            return info is not None and info.member(ip, param) is not None

    def is_subscribed(self, ip: int, param: int, channel_id: int) -> bool:
        with self._lock:
            info = self._by_id.get(channel_id)
            member = None if info is None else info.member(ip, param)
            return member is not None and member.subscribed

    # -- GM operations ---------------------------------------------------------

    def gm_query_channel_id(self, channel: str,
                            force: bool = False) -> Optional[tuple[int, int]]:
        """Mark ``channel`` as used by the GM; return ``(channel_id, cost)``.

        With ``force`` a missing channel is created; otherwise a missing
        channel gives None.
        """
        with self._lock:
            channel_id = self._by_name.get(channel)
            if channel_id is not None:
                info = self._by_id[channel_id]
                info.gm_use = True
                return channel_id, info.cost
            if not force:
                return None
            channel_id = self._create(channel, self.config.pre_cost(channel), gm_use=True)
            log.info("GM Create Channel: <%08X> %s", channel_id, channel)
            return channel_id, self._by_id[channel_id].cost

    def gm_free_channel_id(self, channel_id: int) -> bool:
        """Release the GM's hold; return True when that destroyed the channel."""
        with self._lock:
            info = self._get(channel_id)
            info.gm_sub = False
            info.gm_use = False
            if not info.stock and not info.members:
                self._destroy(channel_id)
                return True
            return False

    def is_gm_used(self, channel_id: int) -> bool:
        with self._lock:
            info = self._by_id.get(channel_id)
            return info is not None and info.gm_use

    def gm_subscribe(self, channel_id: int) -> None:
        """Start the GM listening to a channel it holds."""
        with self._lock:
            if channel_id == self._gm_id:
                return
            info = self._get(channel_id)
            if not info.gm_use:
                raise ChannelError(f"the GM does not hold channel {channel_id}")
            info.gm_sub = True

    def gm_unsubscribe(self, channel_id: int) -> None:
        """Stop the GM listening; the GM channel refuses."""
        with self._lock:
            if channel_id == self._gm_id:
                raise ChannelError("the GM channel cannot be left")
            info = self._get(channel_id)
            if not info.gm_use:
                raise ChannelError(f"the GM does not hold channel {channel_id}")
            info.gm_sub = False

    def is_gm_subscribed(self, channel_id: int) -> bool:
        with self._lock:
            if channel_id == self._gm_id:
                return True
            info = self._by_id.get(channel_id)
            return info is not None and info.gm_sub

    # -- lookups ---------------------------------------------------------------

    def channel_name(self, channel_id: int, advanced: bool = False) -> str:
        """Return the channel's name; reduced to what players see unless advanced."""
        with self._lock:
            name = self._get(channel_id).name
        return name if advanced else self.config.reduce_name(name)

    def channel_id(self, name: str, ip: int = 0) -> Optional[int]:
        """Return the id of ``name`` as seen from server ``ip``, or None."""
        if ip != 0:
            try:
                name = self.config.make_name(name, ip)
            except ValueError:
                return None
        if not name:
            return None
        with self._lock:
            return self._by_name.get(name)

    def info(self, channel_id: int) -> ChannelInfo:
        """Return the record of a channel; raise ChannelError if unknown."""
        with self._lock:
            return self._get(channel_id)

    def is_god_channel(self, channel_id: int) -> bool:
        with self._lock:
            info = self._by_id.get(channel_id)
            return info is not None and info.god

    def is_stock_channel(self, channel_id: int) -> bool:
        with self._lock:
            info = self._by_id.get(channel_id)
            return info is not None and info.stock

    def __len__(self) -> int:
        with self._lock:
            return len(self._by_id)