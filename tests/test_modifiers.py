from sitesim.engine import catalog
from sitesim.engine.models import Activity, BuffEffect, Card, CardEffect, DeckType, Player
from sitesim.engine.modifiers import apply_buffs, apply_execution, resolve_activity


def _player(**kw):
    base = dict(id="p", nickname="P", bp=30, coins=6, workers=3, machines=1)
    base.update(kw)
    return Player(**base)


ACT = Activity(id="X1", name="Formwork", base_time=2, base_cost=5, req_workers=3)
FASTER = Card(id="P99", type=DeckType.PROD, title="Faster", effect=CardEffect(time_delta=-1))


def test_clean_execution_with_time_card():
    player = _player(workers=3)
    result = resolve_activity(ACT, player, set(), FASTER)
    assert result.actual_time == 1
    assert result.actual_cost == 5
    assert result.clean

    apply_execution(player, result, FASTER)
    assert player.time == 1
    assert player.bp == 25
    assert player.coins == 7
    assert player.activity_index == 1


def test_resource_shortage_is_not_clean():
    player = _player(workers=1)
    result = resolve_activity(ACT, player, set(), FASTER)
    assert result.actual_time == 2
    assert result.actual_cost == 5
    assert not result.clean

    apply_execution(player, result, FASTER)
    assert player.coins == 6


def test_fs_penalty_blocks_clean_reward():
    act = Activity(id="X2", name="Pour", base_time=2, base_cost=4, dep={"type": "FS", "on": ["X1"]})
    result = resolve_activity(act, _player(), set(), None)
    assert (result.actual_time, result.actual_cost) == (3, 5)
    assert not result.clean
    assert result.warnings


def test_ss_bonus_applies_with_productivity():
    act = Activity(id="X3", name="Glazing", base_time=2, base_cost=4, dep={"type": "SS", "with": ["X4"]})
    result = resolve_activity(act, _player(productivity=1), set(), None)
    assert result.actual_time == 1
    assert result.clean
    assert resolve_activity(act, _player(productivity=0), set(), None).actual_time == 2


def test_buffs_stack_and_clamp_at_zero():
    player = _player()
    player.buffs.grant("a", BuffEffect.TIME_MINUS_1, 2)
    player.buffs.grant("b", BuffEffect.TIME_MINUS_1, 2)
    player.buffs.grant("c", BuffEffect.COST_MINUS_1, 1)
    assert apply_buffs(player, 3, 4) == (1, 3)
    assert apply_buffs(player, 1, 0) == (0, 0)


def test_final_values_never_negative():
    act = Activity(id="X5", name="Tiny", base_time=0, base_cost=0)
    card = Card(id="F99", type=DeckType.FIN, title="Rebate", effect=CardEffect(time_delta=-3, cost_delta=-3))
    result = resolve_activity(act, _player(), set(), card)
    assert result.actual_time == 0
    assert result.actual_cost == 0


def test_ignore_site_once_cancels_site_card():
    player = _player()
    player.buffs.grant("U04", BuffEffect.IGNORE_SITE_ONCE, 3)
    site = Card(id="S99", type=DeckType.SITE, title="Rain", effect=CardEffect(time_delta=2, cost_delta=1))

    result = resolve_activity(ACT, player, set(), site)
    assert result.site_ignored
    assert result.actual_time == ACT.base_time
    assert result.actual_cost == ACT.base_cost

    apply_execution(player, result, site)
    assert not player.buffs.has(BuffEffect.IGNORE_SITE_ONCE)


def test_ignore_site_once_leaves_other_cards_alone():
    player = _player()
    player.buffs.grant("U04", BuffEffect.IGNORE_SITE_ONCE, 3)
    result = resolve_activity(ACT, player, set(), FASTER)
    assert not result.site_ignored
    assert result.actual_time == 1
    apply_execution(player, result, FASTER)
    assert player.buffs.has(BuffEffect.IGNORE_SITE_ONCE)


def test_granted_buff_reaches_the_next_activity():
    player = _player()
    card = Card(
        id="U98",
        type=DeckType.UPG,
        title="Crane",
        effect=CardEffect(buff={"effect": "TIME_MINUS_1", "turns": 1}),
    )
    apply_execution(player, resolve_activity(ACT, player, set(), card), card)
    assert player.buffs.count(BuffEffect.TIME_MINUS_1) == 1

    second = resolve_activity(ACT, player, set(), None)
    assert second.actual_time == ACT.base_time - 1
    apply_execution(player, second, None)
    assert player.buffs.count(BuffEffect.TIME_MINUS_1) == 0


def test_catalog_cards_resolve_without_error():
    player = _player()
    for card in catalog.get_cards():
        result = resolve_activity(ACT, player, set(), card)
        assert result.actual_time >= 0
        assert result.actual_cost >= 0
