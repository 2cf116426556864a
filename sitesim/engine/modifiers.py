"""
modifiers.py — Activity execution pipeline
===========================================
Turns (activity, player, card) into the weeks and BP actually spent.

ORDER:
------
1. base time / cost
2. active buffs (TIME_MINUS_1 / COST_MINUS_1 stack), clamped at 0
3. FS penalty            (+1 week, +1 BP)
4. resource shortage     (+1 week)
5. SS bonus              (-1 week when productivity >= 1)
6. card deltas
7. final clamp at 0

`resolve_activity` is pure; `apply_execution` writes the result onto the
player, pays the clean-execution coin, advances the cursor and ticks buffs.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from sitesim.engine.models import (
    Activity,
    BuffEffect,
    Card,
    CardEffect,
    DeckType,
    Player,
)
from sitesim.engine.prereqs import evaluate_dependency, resource_penalty, ss_bonus

CLEAN_EXECUTION_COINS = 1


@dataclass
class ExecutionResult:
    actual_time: int
    actual_cost: int
    prod_delta: int = 0
    coin_delta: int = 0
    fs_time_delta: int = 0
    resource_time_delta: int = 0
    clean: bool = False
    site_ignored: bool = False
    warnings: list[str] = field(default_factory=list)


def apply_buffs(player: Player, base_time: int, base_cost: int) -> tuple[int, int]:
    t = base_time - player.buffs.count(BuffEffect.TIME_MINUS_1)
    c = base_cost - player.buffs.count(BuffEffect.COST_MINUS_1)
    return max(0, t), max(0, c)


def card_deltas(card: Card | None, player: Player) -> tuple[CardEffect, bool]:
    """
    Effective card effect for this player.

    A SITE card drawn while the player holds IGNORE_SITE_ONCE counts as no
    card at all; the caller consumes the buff.
    """
    if card is None:
        return CardEffect(), False
    if card.type == DeckType.SITE and player.buffs.has(BuffEffect.IGNORE_SITE_ONCE):
        return CardEffect(), True
    return card.effect, False


def resolve_activity(
    activity: Activity,
    player: Player,
    completed: set[str],
    card: Card | None = None,
) -> ExecutionResult:
    time, cost = apply_buffs(player, activity.base_time, activity.base_cost)

    dep = evaluate_dependency(activity, completed)
    res = resource_penalty(player, activity)
    bonus = ss_bonus(activity, player)
    effect, site_ignored = card_deltas(card, player)

    actual_time = max(0, time + dep.time_delta + res.time_delta + bonus + effect.time_delta)
    actual_cost = max(0, cost + dep.cost_delta + effect.cost_delta)

    clean = (
        dep.time_delta == 0
        and res.time_delta == 0
        and actual_time <= activity.base_time
    )

    return ExecutionResult(
        actual_time=actual_time,
        actual_cost=actual_cost,
        prod_delta=effect.prod_delta,
        coin_delta=effect.coin_delta,
        fs_time_delta=dep.time_delta,
        resource_time_delta=res.time_delta,
        clean=clean,
        site_ignored=site_ignored,
        warnings=[w for w in (dep.warning, res.warning) if w],
    )


def apply_execution(player: Player, result: ExecutionResult, card: Card | None = None) -> None:
    player.time += result.actual_time
    player.bp -= result.actual_cost
    player.productivity += result.prod_delta
    player.coins += result.coin_delta
    if result.clean:
        player.coins += CLEAN_EXECUTION_COINS

    player.activity_index += 1

    if result.site_ignored:
        player.buffs.consume(BuffEffect.IGNORE_SITE_ONCE)
    player.buffs.advance()

    # granted after the tick so a "next activity" buff reaches the next activity
    if card is not None and card.effect.buff is not None and not result.site_ignored:
        player.buffs.grant(card.id, card.effect.buff.effect, card.effect.buff.turns)
