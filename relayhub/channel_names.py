"""Channel naming rules: special channel prefixes, ids, costs and config files.

A channel whose name starts with the escape character is special.  The
character after it says which kind: a team, faction, tong, screen or
broadcast channel.  Team, faction and tong names carry a decimal id after
the two leading characters.  Team names are bound to one game server by
appending the split character and the server's address as a decimal
number.  Screen and broadcast names have the address appended straight
after the two leading characters.
"""

from __future__ import annotations

import configparser
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

CHANNEL_CONFIG_FILE = "relay_channcfg.ini"
STOCK_CHANNEL_FILE = "relay_channel.ini"

_DWORD = 0xFFFFFFFF
_BYTE = 0xFF
_LEADING_INT = re.compile(r"[+-]?\d+")


class ChannelKind(Enum):
    """What a channel name denotes."""

    PLAIN = "plain"
    TEAM = "team"
    FACTION = "faction"
    TONG = "tong"
    SCREEN = "screen"
    BROADCAST = "broadcast"


def _leading_int(text: str) -> int:
    """Parse the integer at the start of ``text``; 0 when there is none."""
    match = _LEADING_INT.match(text.lstrip())
    return int(match.group()) if match else 0


def _dword(text: str) -> int:
    return _leading_int(text) & _DWORD


def _read_ini(path) -> configparser.ConfigParser:
    parser = configparser.ConfigParser(
        interpolation=None, strict=False, allow_no_value=True
    )
    parser.read(path, encoding="utf-8")
    return parser


@dataclass(frozen=True)
class ChannelConfig:
    """The characters, id ranges and costs that govern channel names.

    An id range whose minimum is above its maximum accepts every id.
    """

    escape: str = "\\"
    split: str = ":"
    team: str = "T"
    faction: str = "F"
    tong: str = "O"
    screen: str = "S"
    broadcast: str = "B"
    min_team_id: int = 0
    max_team_id: int = _DWORD
    min_faction_id: int = 0
    max_faction_id: int = _DWORD
    min_tong_id: int = 0
    max_tong_id: int = _DWORD
    default_cost: int = 0
    team_cost: int = 0
    faction_cost: int = 0
    tong_cost: int = 0
    screen_cost: int = 0
    broadcast_cost: int = 0
    gm_channel: str = ""

    @classmethod
    def from_ini(cls, path) -> "ChannelConfig":
        """Read a channel configuration file; missing entries keep defaults."""
        parser = _read_ini(path)

        def char(section: str, key: str, default: str) -> str:
            value = parser.get(section, key, fallback=None)
            return value[0] if value else default

        def number(section: str, key: str, default: int) -> int:
            value = parser.get(section, key, fallback=None)
            return default if value is None else _leading_int(value)

        default_cost = number("system", "defCost", 0) & _BYTE

        def cost(section: str) -> int:
            return number(section, "cost", default_cost) & _BYTE

        return cls(
            escape=char("system", "charEsc", "\\"),
            split=char("system", "charSplt", ":"),
            team=char("team", "escSpec", "T"),
            faction=char("faction", "escSpec", "F"),
            tong=char("tong", "escSpec", "O"),
            screen=char("screen", "escSpec", "S"),
            broadcast=char("broadcast", "escSpec", "B"),
            min_team_id=number("team", "minID", 0) & _DWORD,
            max_team_id=number("team", "maxID", -1) & _DWORD,
            min_faction_id=number("faction", "minID", 0) & _DWORD,
            max_faction_id=number("faction", "maxID", -1) & _DWORD,
            min_tong_id=number("tong", "minID", 0) & _DWORD,
            max_tong_id=number("tong", "maxID", -1) & _DWORD,
            default_cost=default_cost,
            team_cost=cost("team"),
            faction_cost=cost("faction"),
            tong_cost=cost("tong"),
            screen_cost=cost("screen"),
            broadcast_cost=cost("broadcast"),
            gm_channel=parser.get("system", "nameGM", fallback=None) or "",
        )

    # -- id ranges -----------------------------------------------------------

    @staticmethod
    def _in_range(value: int, low: int, high: int) -> bool:
        if low > high:
            return True
        return low <= value <= high

    def is_valid_team_id(self, team_id: int) -> bool:
        return self._in_range(team_id, self.min_team_id, self.max_team_id)

    def is_valid_faction_id(self, faction_id: int) -> bool:
        return self._in_range(faction_id, self.min_faction_id, self.max_faction_id)

    def is_valid_tong_id(self, tong_id: int) -> bool:
        return self._in_range(tong_id, self.min_tong_id, self.max_tong_id)

    # -- names ---------------------------------------------------------------

    def _spec_kind(self, spec: str) -> Optional[ChannelKind]:
        for char, kind in (
            (self.team, ChannelKind.TEAM),
            (self.faction, ChannelKind.FACTION),
            (self.tong, ChannelKind.TONG),
            (self.screen, ChannelKind.SCREEN),
            (self.broadcast, ChannelKind.BROADCAST),
        ):
            if spec == char:
                return kind
        return None

    def kind_of(self, name: str) -> Optional[ChannelKind]:
        """Return the kind of ``name``, or None if it is not a usable name."""
        if not name:
            return None
        if name[0] != self.escape:
            return ChannelKind.PLAIN
        if len(name) < 2:
            return None
        return self._spec_kind(name[1])

    def make_name(self, name: str, ip: int) -> str:
        """Return the full internal name of ``name`` as seen from server ``ip``.

        Raises ValueError when the name is malformed, its id is out of range,
        or a team name is asked for without a server address.
        """
        kind = self.kind_of(name)
        if kind is None:
            raise ValueError(f"invalid channel name {name!r}")
        if kind is ChannelKind.PLAIN:
            return name
        if kind in (ChannelKind.TEAM, ChannelKind.FACTION, ChannelKind.TONG):
            digits = name[2:]
            if not digits or not digits.isascii() or not digits.isdigit():
                raise ValueError(f"channel name {name!r} lacks a numeric id")
            ident = int(digits) & _DWORD
            if kind is ChannelKind.FACTION:
                if not self.is_valid_faction_id(ident):
                    raise ValueError(f"faction id {ident} out of range")
                return name
            if kind is ChannelKind.TONG:
                if not self.is_valid_tong_id(ident):
                    raise ValueError(f"tong id {ident} out of range")
                return name
            if ip == 0:
                raise ValueError("a team channel needs a server address")
            if not self.is_valid_team_id(ident):
                raise ValueError(f"team id {ident} out of range")
            return f"{name}{self.split}{ip & _DWORD}"
        if len(name) > 2:
            raise ValueError(f"channel name {name!r} takes no suffix")
        return f"{name}{ip & _DWORD}"

    def reduce_name(self, name: str) -> str:
        """Strip the server part from an internal name, as players see it."""
        kind = self.kind_of(name)
        if kind is None:
            raise ValueError(f"invalid channel name {name!r}")
        if kind is ChannelKind.TEAM:
            position = name.rfind(self.split)
            if position == -1:
                raise ValueError(f"team channel {name!r} has no server part")
            return name[:position]
        if kind in (ChannelKind.SCREEN, ChannelKind.BROADCAST):
            return name[:2]
        return name

    def parse_name(self, name: str) -> tuple[int, int]:
        """Return ``(id, ip)`` carried by a special internal name.

        Faction and tong names give ip 0; screen and broadcast names give
        id 0.  Raises ValueError for plain or malformed names.
        """
        kind = self.kind_of(name)
        if kind is None or kind is ChannelKind.PLAIN:
            raise ValueError(f"{name!r} is not a special channel name")
        if kind is ChannelKind.TEAM:
            position = name.rfind(self.split)
            if position == -1:
                raise ValueError(f"team channel {name!r} has no server part")
            return _dword(name[2:]), _dword(name[position + 1:])
        if kind in (ChannelKind.FACTION, ChannelKind.TONG):
            return _dword(name[2:]), 0
        return 0, _dword(name[2:])

    def pre_cost(self, name: str) -> int:
        """Return the cost a newly created channel of this name starts with."""
        costs = {
            ChannelKind.TEAM: self.team_cost,
            ChannelKind.FACTION: self.faction_cost,
            ChannelKind.TONG: self.tong_cost,
            ChannelKind.SCREEN: self.screen_cost,
            ChannelKind.BROADCAST: self.broadcast_cost,
        }
        if len(name) >= 2 and name[0] == self.escape:
            kind = self._spec_kind(name[1])
            if kind is not None:
                return costs[kind]
        return self.default_cost

    def needs_relegate(self, name: str, filtered: bool) -> bool:
        """Tell whether chat on ``name`` must be handed to the game servers."""
        if not name or name[0] != self.escape:
            return False
        if name[1:2] == self.screen:
            return True
        return not filtered


def load_stock_channels(path, default_cost: int) -> dict[str, int]:
    """Read the stock channel file: each section is a channel, with its cost.

    Channels keep the order of the file; a channel without a cost entry
    costs ``default_cost``.
    """
    parser = _read_ini(path)
    channels: dict[str, int] = {}
    for section in parser.sections():
        value = parser.get(section, "cost", fallback=None)
        cost = default_cost if value is None else _leading_int(value)
        channels[section] = cost & _BYTE
    return channels