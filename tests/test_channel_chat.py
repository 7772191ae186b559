import pytest

from relayhub.channel_chat import (
    ChatRoute,
    RouteTarget,
    batch_members,
    filter_subscribed,
    route_channel_chat,
    route_gm_say,
    subscribed_members,
)
from relayhub.channel_names import ChannelConfig
from relayhub.channel_registry import ChannelError, ChannelRegistry


@pytest.fixture
def registry():
    reg = ChannelRegistry(ChannelConfig())
    reg.initialize("GM", {"World": 3})
    return reg


def test_god_channel_goes_to_gm(registry):
    route = route_channel_chat(registry, registry.gm_channel_id, 0, False, 1)
    assert route == ChatRoute(RouteTarget.GM)


def test_team_channel_relegated(registry):
    channel_id, cost = registry.query_channel_id("\\T5", 100, 1, 11)
    route = route_channel_chat(registry, channel_id, cost, False, 1)
    assert route.target is RouteTarget.TEAM
    assert route.target_id == 5
    assert route.ip == 100


def test_faction_and_tong_go_to_all_servers(registry):
    fac_id, fac_cost = registry.query_channel_id("\\F7", 100, 1, 11)
    tong_id, tong_cost = registry.query_channel_id("\\O9", 100, 1, 11)
    fac = route_channel_chat(registry, fac_id, fac_cost, False, 1)
    tong = route_channel_chat(registry, tong_id, tong_cost, False, 1)
    assert (fac.target, fac.target_id, fac.ip) == (RouteTarget.FACTION, 7, None)
    assert (tong.target, tong.target_id, tong.ip) == (RouteTarget.TONG, 9, None)


def test_screen_always_relegated_with_source(registry):
    channel_id, cost = registry.query_channel_id("\\S", 100, 42, 11)
    route = route_channel_chat(registry, channel_id, cost, True, 42)
    assert (route.target, route.target_id, route.ip) == (RouteTarget.SCREEN, 42, 100)


def test_broadcast_relegated(registry):
    channel_id, cost = registry.query_channel_id("\\B", 100, 42, 11)
    route = route_channel_chat(registry, channel_id, cost, False, 42)
    assert (route.target, route.target_id, route.ip) == (RouteTarget.BROADCAST, 0, 100)


def test_filtered_team_goes_to_members(registry):
    channel_id, cost = registry.query_channel_id("\\T5", 100, 1, 11)
    registry.subscribe(100, 1, channel_id)
    route = route_channel_chat(registry, channel_id, cost, True, 1)
    assert route.target is RouteTarget.MEMBERS
    assert route.members == {100: [(1, 11)]}


def test_plain_channel_lists_only_listeners(registry):
    world = registry.channel_id("World")
    registry.query_channel_id("World", 200, 2, 22)
    registry.query_channel_id("World", 100, 1, 11)
    registry.query_channel_id("World", 100, 3, 33)
    registry.subscribe(100, 3, world)
    registry.subscribe(200, 2, world)
    route = route_channel_chat(registry, world, 3, False, 1)
    assert route.target is RouteTarget.MEMBERS
    assert route.members == {100: [(3, 33)], 200: [(2, 22)]}
    assert subscribed_members(registry, world) == route.members


def test_cost_mismatch_rejected(registry):
    world = registry.channel_id("World")
    with pytest.raises(ChannelError):
        route_channel_chat(registry, world, 4, False, 1)


def test_unknown_and_missing_channel_rejected(registry):
    with pytest.raises(ChannelError):
        route_channel_chat(registry, 0xFFFFFFFF, 0, False, 1)
    with pytest.raises(ChannelError):
        route_channel_chat(registry, 999, 0, False, 1)


def test_gm_say_refuses_screen(registry):
    channel_id, _ = registry.query_channel_id("\\S", 100, 42, 11)
    with pytest.raises(ChannelError):
        route_gm_say(registry, channel_id, False)


def test_gm_say_on_broadcast_and_god(registry):
    channel_id, _ = registry.query_channel_id("\\B", 100, 42, 11)
    route = route_gm_say(registry, channel_id, False)
    assert (route.target, route.target_id, route.ip) == (RouteTarget.BROADCAST, 0, 100)
    assert route_gm_say(registry, registry.gm_channel_id, False).target is RouteTarget.GM


def test_filter_subscribed_keeps_order(registry):
    world = registry.channel_id("World")
    for param in (5, 1, 3):
        registry.query_channel_id("World", 100, param, param)
    registry.subscribe(100, 5, world)
    registry.subscribe(100, 3, world)
    assert filter_subscribed(registry, 100, world, [5, 1, 3, 8]) == [5, 3]
    assert filter_subscribed(registry, 200, world, [5, 3]) == []


def test_batch_members_splits_to_fit():
    members = list(range(5))
    batches = batch_members(members, 10, 2, 16)
    assert batches == [[0, 1, 2], [3, 4]]


def test_batch_members_invariants():
    members = list(range(37))
    batches = batch_members(members, 7, 3, 40)
    assert [m for batch in batches for m in batch] == members
    assert all(7 + 3 * len(batch) <= 40 for batch in batches)
    assert all(batch for batch in batches)


def test_batch_members_empty_and_too_large():
    assert batch_members([], 10, 2, 16) == []
    with pytest.raises(ValueError):
        batch_members([1], 15, 2, 16)