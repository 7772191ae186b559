# relayhub

Server-side building blocks for the chat channels of an online
role-playing game's relay: how channel names are formed, which channels
exist and who holds them, and where a line said on a channel has to go.

## Install

```
pip install relayhub
```

For the tests:

```
pip install "relayhub[test]"
pytest
```

## What is inside

- `relayhub.channel_names` — `ChannelConfig` holds the escape and split
  characters, the id ranges and the costs for special channels (team,
  faction, tong, screen, broadcast; see `ChannelKind`). It classifies
  names (`kind_of`), builds, reduces and parses them (`make_name`,
  `reduce_name`, `parse_name`), gives a new channel's cost (`pre_cost`)
  and tells whether chat must be handed to the game servers
  (`needs_relegate`). Malformed names raise `ValueError`.
  `ChannelConfig.from_ini` reads the configuration from an INI file, and
  `load_stock_channels` reads a file whose sections are the stock
  channels, each with its cost.
- `relayhub.channel_registry` — `ChannelRegistry` assigns channel ids and
  tracks which players on which game servers hold or listen to each
  channel, and what the GM holds. It creates special channels on demand
  and destroys them once nobody holds them; stock channels and the GM
  channel are made by `initialize`. `ChannelInfo` and `Member` describe
  its state, and operations that cannot be carried out raise
  `ChannelError`.
- `relayhub.channel_chat` — works out where a chat line goes
  (`route_channel_chat`, `route_gm_say`, each returning a `ChatRoute`
  with a `RouteTarget`). It also lists the listening players of a channel
  by server (`subscribed_members`), filters a player list down to
  listeners (`filter_subscribed`), and splits players into groups that
  fit in one package (`batch_members`).

## Example

```python
from relayhub.channel_names import ChannelConfig
from relayhub.channel_registry import ChannelRegistry
from relayhub.channel_chat import RouteTarget, route_channel_chat

registry = ChannelRegistry(ChannelConfig())
registry.initialize(gm_channel="", stock_channels={"world": 0})

channel_id, cost = registry.query_channel_id("\\F12", ip=1, param=7, nameid=100)
registry.subscribe(1, 7, channel_id)
assert registry.is_subscribed(1, 7, channel_id)

route = route_channel_chat(registry, channel_id, cost, filtered=True, source_param=7)
assert route.target is RouteTarget.MEMBERS
assert route.members == {1: [(7, 100)]}
```

## What it does not do

relayhub decides and records; it does not talk to anyone. It has no
network server or client, sends no packages, and has no command to run.
It keeps channels in memory only. It has no friend lists and no storage
for records of any kind.